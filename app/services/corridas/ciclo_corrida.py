"""
Ciclo de vida da corrida.

Transmissao para motoristas, aceite (primeiro que gravar vence),
confirmacao por CPF, cancelamentos, expiracao e nova tentativa.
"""
import logging
from typing import TYPE_CHECKING, Optional

from app.core.config import CorridasConfig
from app.core.exceptions import DatabaseError
from app.core.logging import mascarar
from app.core.timezone import iso_utc
from app.repositories.corridas import (
    CANCELADO_POR_MOTORISTA,
    CANCELADO_POR_PASSAGEIRO,
    STATUS_CANCELADA,
    STATUS_CONCLUIDA,
    STATUS_EXPIRADA,
    STATUS_PENDENTE,
    Atribuicao,
    Corrida,
)
from app.repositories.pessoas import Motorista, Usuario
from app.schemas.mensagem import Localizacao
from app.services.whatsapp import numero_de
from .avaliacoes import formatar_reputacao
from .constantes import (
    Estado,
    MOTIVO_CORRIDA_NAO_ENCONTRADA,
    MOTIVO_CPF_FALHOU,
    MOTIVO_CPF_VALIDADO,
    MOTIVO_MOTORISTA_ACEITOU,
    MOTIVO_SEM_MOTORISTAS,
    MOTIVO_SUBSTITUIDA,
    MOTIVO_TRANSMITIDA,
    TIPO_MOTOTAXI,
)
from .identidade import identificador_envio, normalizar_cpf
from .sessoes import SessaoConversa
from .traducoes import formatar_telefone, m, t

if TYPE_CHECKING:
    from .central import CentralCorridas

logger = logging.getLogger(__name__)


class CicloCorrida:
    """Transicoes de status da corrida e mensagens de cada transicao."""

    def __init__(self, central: "CentralCorridas"):
        self.central = central

    # ------------------------------------------------------------------
    # Criacao e transmissao
    # ------------------------------------------------------------------

    async def criar_corrida_inicial(self, sessao: SessaoConversa) -> Corrida:
        """Cria a corrida assim que o tipo de veiculo e escolhido."""
        usuario = await self.central.identidade.buscar_ou_criar_usuario(
            sessao.identificador, nome=sessao.nome, telefone=sessao.telefone
        )
        corrida = await self.central.corridas.criar({
            "status": STATUS_PENDENTE,
            "tipo_veiculo": sessao.tipo_veiculo,
            "idioma": sessao.idioma,
            "usuario_id": usuario.id,
            "modo_teste": sessao.modo_teste,
            "tentativas": 0,
            "created_at": self.central.agora_iso(),
        })
        logger.info(f"Corrida {corrida.id} criada para passageiro {usuario.id}")
        return corrida

    async def atualizar_corrida(self, corrida_id: int, dados: dict) -> Optional[Corrida]:
        return await self.central.corridas.atualizar(corrida_id, dados)

    async def listar_destinos_motoristas(self, tipo_veiculo: str, modo_teste: bool) -> list[str]:
        """Identificadores de envio dos motoristas elegiveis."""
        if modo_teste:
            destino = self.central.settings.TEST_DRIVER_JID
            return [destino] if destino else []
        motoristas = await self.central.motoristas.listar_ativos_por_veiculo(tipo_veiculo)
        destinos = [identificador_envio(motorista) for motorista in motoristas]
        return [d for d in destinos if d]

    def _texto_para_motoristas(
        self, corrida: Corrida, sessao: SessaoConversa, usuario: Optional[Usuario], reenvio: bool
    ) -> str:
        nome = sessao.nome or (usuario.nome if usuario else None) or ""
        telefone = sessao.telefone or (usuario.telefone if usuario else None) or ""
        mototaxi = corrida.tipo_veiculo == TIPO_MOTOTAXI
        return m(
            "nova_corrida",
            icone="🏍️" if mototaxi else "🚗",
            rotulo="MOTOTAXI" if mototaxi else "TÁXI",
            tag=" 🧪 [TESTE]" if corrida.modo_teste else "",
            banner=m("banner_reenvio") if reenvio else "",
            nome=nome,
            telefone=telefone,
            reputacao=formatar_reputacao(usuario.reputacao if usuario else None),
            local=corrida.local_texto or "",
            destino=corrida.destino or "",
            identificacao=corrida.identificacao or "",
            tempo_espera=corrida.tempo_espera,
            corrida_id=corrida.id,
        )

    async def confirmar_pedido(self, sessao: SessaoConversa):
        """CONFIRMAR na conversa: avisa o passageiro e transmite."""
        corrida = await self.central.corridas.buscar_por_id(sessao.corrida_id)
        if corrida is None:
            await self._corrida_sumiu(sessao)
            return

        texto = t(sessao.idioma, "pedido_enviado", corrida_id=corrida.id)
        if corrida.modo_teste:
            texto += t(sessao.idioma, "tag_teste")
        await self.central.mensageiro.enviar(sessao.identificador, texto)
        await self.enviar_corrida_para_motoristas(corrida, sessao)

    async def enviar_corrida_para_motoristas(
        self, corrida: Corrida, sessao: SessaoConversa, reenvio: bool = False
    ) -> bool:
        """
        Transmite a corrida para os motoristas elegiveis.

        Grava transmitida_em, encerra a conversa do passageiro e arma
        os timers de espera e keepalive.

        Returns:
            False quando nao ha motorista elegivel
        """
        passageiro = sessao.identificador
        destinos = await self.listar_destinos_motoristas(
            corrida.tipo_veiculo, corrida.modo_teste or sessao.modo_teste
        )

        if not destinos:
            logger.warning(f"Nenhum motorista para corrida {corrida.id} ({corrida.tipo_veiculo})")
            await self.central.corridas.expirar_se_pendente(corrida.id, self.central.relogio.agora())
            await self.central.encerrar_sessao(passageiro, MOTIVO_SEM_MOTORISTAS)
            await self.central.mensageiro.enviar(passageiro, t(sessao.idioma, "sem_motoristas"))
            return False

        usuario = await self.central.usuarios.buscar_por_id(corrida.usuario_id)
        texto = self._texto_para_motoristas(corrida, sessao, usuario, reenvio)
        localizacao = None
        if corrida.tem_localizacao:
            localizacao = Localizacao(latitude=corrida.local_lat, longitude=corrida.local_lng)

        enviados = 0
        for destino in destinos:
            if await self.central.mensageiro.enviar(destino, texto, localizacao=localizacao):
                enviados += 1

        transmitida_em = self.central.relogio.agora()
        atualizada = await self.central.corridas.atualizar(
            corrida.id, {"transmitida_em": iso_utc(transmitida_em)}
        )
        if atualizada is not None:
            corrida = atualizada
        else:
            corrida.transmitida_em = transmitida_em

        await self.central.encerrar_sessao(passageiro, MOTIVO_TRANSMITIDA)
        self.central.sessoes.registrar_corrida(passageiro, corrida.id)
        self.central.temporizadores.agendar_expiracao(corrida)
        self.central.temporizadores.iniciar_keepalive(corrida, passageiro)

        logger.info(
            f"Corrida {corrida.id} transmitida para {enviados}/{len(destinos)} motorista(s)"
            f"{' (reenvio)' if reenvio else ''}"
        )
        return True

    # ------------------------------------------------------------------
    # Aceite
    # ------------------------------------------------------------------

    async def aceitar_corrida(
        self,
        motorista: Motorista,
        remetente: str,
        corrida_id: int,
        via_cpf: bool = False,
    ) -> bool:
        """
        Aceite de corrida pelo motorista.

        A transicao para completed e um UPDATE condicionado a
        status = pending; quem nao recebe a linha perdeu a corrida e
        nada e alterado.

        Returns:
            True se este motorista ficou com a corrida
        """
        corrida = await self.central.corridas.buscar_por_id(corrida_id)
        if corrida is None:
            await self.central.mensageiro.enviar(remetente, m("corrida_nao_encontrada"))
            return False
        if corrida.status == STATUS_EXPIRADA:
            await self.central.mensageiro.enviar(remetente, m("corrida_expirada"))
            return False
        if corrida.status == STATUS_CONCLUIDA:
            await self.central.mensageiro.enviar(remetente, m("corrida_ja_aceita"))
            return False
        if corrida.status != STATUS_PENDENTE or corrida.transmitida_em is None:
            await self.central.mensageiro.enviar(remetente, m("corrida_indisponivel"))
            return False

        agora = self.central.relogio.agora()
        aceita = await self.central.corridas.marcar_aceita(corrida_id, agora)
        if aceita is None:
            logger.info(f"Motorista {motorista.id} perdeu a corrida {corrida_id}")
            await self.central.mensageiro.enviar(remetente, m("corrida_ja_aceita"))
            return False

        try:
            await self.central.atribuicoes.criar({
                "corrida_id": corrida_id,
                "motorista_id": motorista.id,
                "aceita_em": iso_utc(agora),
            })
        except DatabaseError as e:
            logger.error(f"Atribuicao da corrida {corrida_id} falhou, revertendo aceite: {e}")
            await self.central.corridas.atualizar(
                corrida_id, {"status": STATUS_PENDENTE, "completed_at": None}
            )
            await self.central.mensageiro.enviar(remetente, m("corrida_ja_aceita"))
            return False

        self.central.temporizadores.cancelar_expiracao(corrida_id)
        self.central.temporizadores.cancelar_keepalive(corrida_id)
        self.central.temporizadores.agendar_avaliacoes(aceita)

        usuario = await self.central.usuarios.buscar_por_id(aceita.usuario_id)
        passageiro = identificador_envio(usuario)

        await self.central.mensageiro.enviar(
            remetente,
            m(
                "aceite_confirmado",
                prefixo=m("prefixo_cpf") if via_cpf else "",
                corrida_id=corrida_id,
                nome=(usuario.nome if usuario else None) or "",
                telefone=(usuario.telefone if usuario else None) or "",
                reputacao=formatar_reputacao(usuario.reputacao if usuario else None),
                local=aceita.local_texto or "",
                destino=aceita.destino or "",
                identificacao=aceita.identificacao or "",
                tempo_espera=aceita.tempo_espera,
            ),
        )

        numero_motorista = numero_de(remetente)
        descricao = f"@{numero_motorista}"
        if motorista.nome:
            descricao = f"{motorista.nome} ({descricao})"
        telefone = "".join(c for c in (motorista.telefone or "") if c.isdigit()) or numero_motorista

        await self.central.mensageiro.enviar(
            passageiro,
            t(
                aceita.idioma,
                "corrida_aceita",
                corrida_id=corrida_id,
                motorista=descricao,
                telefone=formatar_telefone(telefone),
                reputacao=formatar_reputacao(motorista.reputacao, aceita.idioma),
            ),
            mentions=[remetente],
        )

        if passageiro and passageiro in self.central.sessoes:
            await self.central.encerrar_sessao(passageiro, MOTIVO_MOTORISTA_ACEITOU)
        if passageiro:
            self.central.sessoes.registrar_corrida(passageiro, corrida_id)

        logger.info(
            f"Corrida {corrida_id} aceita pelo motorista {motorista.id}"
            f"{' apos CPF' if via_cpf else ''}"
        )
        return True

    # ------------------------------------------------------------------
    # Confirmacao por CPF
    # ------------------------------------------------------------------

    async def solicitar_confirmacao_cpf(self, remetente: str, corrida_id: int) -> SessaoConversa:
        """Remetente nao reconhecido tentou aceitar: pede o CPF de cadastro."""
        sessao = await self.central.sessoes.iniciar(
            remetente,
            Estado.AWAITING_DRIVER_CPF_CONFIRMATION,
            idioma="pt",
            corrida_id=corrida_id,
            tentativas_cpf=0,
        )
        self.central.temporizadores.reiniciar_timeout_conversa(remetente)
        await self.central.mensageiro.enviar(remetente, m("cpf_pedido", corrida_id=corrida_id))
        logger.info(f"CPF solicitado a {mascarar(remetente)} para corrida {corrida_id}")
        return sessao

    async def processar_cpf(self, sessao: SessaoConversa, texto: Optional[str]):
        """
        Valida o CPF informado.

        Formato invalido nao conta tentativa. CPF sem motorista conta;
        ao atingir o limite a sessao e encerrada.
        """
        remetente = sessao.identificador
        self.central.temporizadores.reiniciar_timeout_conversa(remetente)

        cpf = normalizar_cpf(texto)
        if cpf is None:
            await self.central.mensageiro.enviar(remetente, m("cpf_formato_invalido"))
            return

        motorista = await self.central.motoristas.buscar_por_cpf(cpf)
        if motorista is None:
            sessao.tentativas_cpf += 1
            restantes = CorridasConfig.MAX_TENTATIVAS_CPF - sessao.tentativas_cpf
            if restantes <= 0:
                await self.central.encerrar_sessao(remetente, MOTIVO_CPF_FALHOU)
                await self.central.mensageiro.enviar(remetente, m("cpf_max_tentativas"))
                logger.warning(f"CPF nao validado para {mascarar(remetente)} apos tentativas")
                return
            await self.central.sessoes.salvar(sessao)
            await self.central.mensageiro.enviar(remetente, m("cpf_invalido", restantes=restantes))
            return

        motorista = await self.central.identidade.vincular_motorista(motorista, remetente)
        await self.central.encerrar_sessao(remetente, MOTIVO_CPF_VALIDADO)
        await self.aceitar_corrida(motorista, remetente, sessao.corrida_id, via_cpf=True)

    # ------------------------------------------------------------------
    # Cancelamentos
    # ------------------------------------------------------------------

    async def cancelar_pelo_passageiro(self, remetente: str, corrida: Corrida, usuario: Usuario):
        """Passageiro cancela corrida nao terminal; motorista atribuido e avisado."""
        if corrida.status in (STATUS_CANCELADA, STATUS_EXPIRADA):
            await self.central.mensageiro.enviar(remetente, t(corrida.idioma, "ja_cancelada"))
            return

        await self.central.corridas.atualizar(corrida.id, {
            "status": STATUS_CANCELADA,
            "cancelado_por": CANCELADO_POR_PASSAGEIRO,
            "cancelled_at": self.central.agora_iso(),
        })
        self.central.temporizadores.cancelar_timers_corrida(corrida.id)
        self.central.sessoes.esquecer_corrida(remetente)

        await self.central.mensageiro.enviar(
            remetente, t(corrida.idioma, "cancelada_pelo_passageiro", corrida_id=corrida.id)
        )

        atribuicao = await self.central.atribuicoes.buscar_por_corrida(corrida.id)
        if atribuicao is not None:
            motorista = await self.central.motoristas.buscar_por_id(atribuicao.motorista_id)
            if motorista is not None:
                await self.central.mensageiro.enviar(
                    identificador_envio(motorista),
                    m("passageiro_cancelou", corrida_id=corrida.id, nome=usuario.nome or ""),
                )
                await self.central.mensageiro.enviar(
                    remetente, t(corrida.idioma, "motorista_notificado")
                )

        logger.info(f"Corrida {corrida.id} cancelada pelo passageiro")

    async def cancelar_pelo_motorista(
        self, remetente: str, corrida: Corrida, atribuicao: Atribuicao
    ):
        """
        Motorista desiste: atribuicao removida, corrida volta a pending e
        o passageiro decide entre reenviar (1) ou cancelar (2).
        """
        if corrida.status in (STATUS_CANCELADA, STATUS_EXPIRADA):
            await self.central.mensageiro.enviar(remetente, m("ja_cancelada"))
            return

        await self.central.atribuicoes.remover(atribuicao.id)
        atualizada = await self.central.corridas.atualizar(corrida.id, {
            "status": STATUS_PENDENTE,
            "cancelado_por": CANCELADO_POR_MOTORISTA,
            "cancelled_at": self.central.agora_iso(),
            "completed_at": None,
            "transmitida_em": None,
            "avaliacao_passageiro_enviada": False,
            "avaliacao_motorista_enviada": False,
            "avaliacao_enviada_em": None,
            "prazo_avaliacao_em": None,
        })
        corrida = atualizada or corrida
        self.central.temporizadores.cancelar_timers_corrida(corrida.id)

        usuario = await self.central.usuarios.buscar_por_id(corrida.usuario_id)
        passageiro = identificador_envio(usuario)
        if passageiro:
            self.central.sessoes.esquecer_corrida(passageiro)

        await self.central.mensageiro.enviar(
            remetente, m("cancelamento_confirmado", corrida_id=corrida.id)
        )

        if passageiro:
            await self.central.mensageiro.enviar(
                passageiro, t(corrida.idioma, "motorista_cancelou", corrida_id=corrida.id)
            )
            await self._descartar_pedido_em_montagem(passageiro, corrida.id)
            await self.central.sessoes.iniciar(
                passageiro,
                Estado.AWAITING_DRIVER_CANCEL_DECISION,
                **self._campos_sessao(corrida, usuario),
            )
            self.central.temporizadores.reiniciar_timeout_conversa(passageiro)

        logger.info(f"Corrida {corrida.id} cancelada pelo motorista {atribuicao.motorista_id}")

    # ------------------------------------------------------------------
    # Expiracao e nova tentativa
    # ------------------------------------------------------------------

    def _campos_sessao(self, corrida: Corrida, usuario: Optional[Usuario]) -> dict:
        return {
            "idioma": corrida.idioma,
            "tipo_veiculo": corrida.tipo_veiculo,
            "pular_dados_usuario": True,
            "nome": usuario.nome if usuario else None,
            "telefone": usuario.telefone if usuario else None,
            "local_texto": corrida.local_texto,
            "local_lat": corrida.local_lat,
            "local_lng": corrida.local_lng,
            "destino": corrida.destino,
            "identificacao": corrida.identificacao,
            "tempo_espera": corrida.tempo_espera,
            "corrida_id": corrida.id,
            "modo_teste": corrida.modo_teste,
        }

    async def _descartar_pedido_em_montagem(self, passageiro: str, corrida_id: int):
        """
        Encerra a conversa de outro pedido que o passageiro estava montando.

        A corrida desse pedido, ainda nao transmitida, e expirada para nao
        ficar pending sem sessao.
        """
        sessao = self.central.sessoes.obter(passageiro)
        if sessao is None or sessao.corrida_id == corrida_id:
            return
        if sessao.corrida_id:
            outra = await self.central.corridas.buscar_por_id(sessao.corrida_id)
            if outra is not None and outra.pendente and outra.transmitida_em is None:
                await self.central.corridas.expirar_se_pendente(
                    outra.id, self.central.relogio.agora()
                )
                logger.info(f"Pedido {outra.id} em montagem substituido pela corrida {corrida_id}")
        await self.central.encerrar_sessao(passageiro, MOTIVO_SUBSTITUIDA)

    async def expirar_corrida(self, corrida_id: int) -> bool:
        """
        Timer de espera venceu.

        So expira corrida ainda pending e ja transmitida; o passageiro
        recebe a oferta de nova tentativa.
        """
        corrida = await self.central.corridas.buscar_por_id(corrida_id)
        if corrida is None or not corrida.pendente or corrida.transmitida_em is None:
            logger.info(f"Expiracao ignorada: corrida {corrida_id} nao esta aguardando motorista")
            return False

        expirada = await self.central.corridas.expirar_se_pendente(
            corrida_id, self.central.relogio.agora()
        )
        if expirada is None:
            logger.info(f"Corrida {corrida_id} saiu de pending antes de expirar")
            return False

        self.central.temporizadores.cancelar_expiracao(corrida_id)
        self.central.temporizadores.cancelar_keepalive(corrida_id)

        usuario = await self.central.usuarios.buscar_por_id(expirada.usuario_id)
        passageiro = identificador_envio(usuario)
        if not passageiro:
            logger.warning(f"Corrida {corrida_id} expirada sem passageiro para avisar")
            return True

        self.central.sessoes.esquecer_corrida(passageiro)
        chave = "corrida_expirada_novamente" if expirada.tentativas > 0 else "corrida_expirada"
        await self.central.mensageiro.enviar(
            passageiro, t(expirada.idioma, chave, tempo_espera=expirada.tempo_espera)
        )

        await self._descartar_pedido_em_montagem(passageiro, corrida_id)
        await self.central.sessoes.iniciar(
            passageiro, Estado.AWAITING_RETRY_DECISION, **self._campos_sessao(expirada, usuario)
        )
        self.central.temporizadores.reiniciar_timeout_conversa(passageiro)
        logger.info(f"Corrida {corrida_id} expirada (tentativas={expirada.tentativas})")
        return True

    async def _corrida_sumiu(self, sessao: SessaoConversa):
        await self.central.encerrar_sessao(sessao.identificador, MOTIVO_CORRIDA_NAO_ENCONTRADA)
        await self.central.mensageiro.enviar(
            sessao.identificador, t(sessao.idioma, "tentativa_cancelada")
        )

    async def tentar_novamente(self, sessao: SessaoConversa, tempo_espera: int):
        """Mesma corrida, tentativas + 1, novo tempo de espera."""
        corrida = await self.central.corridas.buscar_por_id(sessao.corrida_id)
        if corrida is None:
            await self._corrida_sumiu(sessao)
            return

        corrida = await self.central.corridas.atualizar(corrida.id, {
            "status": STATUS_PENDENTE,
            "tempo_espera": tempo_espera,
            "tentativas": corrida.tentativas + 1,
            "expired_at": None,
            "transmitida_em": None,
        }) or corrida
        sessao.tempo_espera = tempo_espera
        self.central.temporizadores.limpar_timeout_conversa(sessao.identificador)

        await self.central.mensageiro.enviar(
            sessao.identificador, t(sessao.idioma, "nova_tentativa", tempo_espera=tempo_espera)
        )
        logger.info(f"Nova tentativa {corrida.tentativas} da corrida {corrida.id}")
        await self.enviar_corrida_para_motoristas(corrida, sessao)

    async def reenviar_apos_cancelamento(self, sessao: SessaoConversa):
        """Passageiro aceitou reenviar a corrida cancelada pelo motorista."""
        corrida = await self.central.corridas.buscar_por_id(sessao.corrida_id)
        if corrida is None:
            await self._corrida_sumiu(sessao)
            return

        corrida = await self.central.corridas.atualizar(corrida.id, {
            "status": STATUS_PENDENTE,
            "cancelado_por": None,
            "cancelled_at": None,
        }) or corrida
        self.central.temporizadores.limpar_timeout_conversa(sessao.identificador)

        await self.central.mensageiro.enviar(
            sessao.identificador, t(sessao.idioma, "reenviada", corrida_id=corrida.id)
        )
        await self.enviar_corrida_para_motoristas(corrida, sessao, reenvio=True)
