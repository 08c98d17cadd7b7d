"""
Maquina de estados da conversa do passageiro.

Cada turno valida a resposta do estado atual; se invalida, repete a
pergunta sem avancar. Se valida, atualiza a sessao, grava e envia a
proxima pergunta.
"""
import logging
import re
from typing import TYPE_CHECKING, Optional

from app.core.config import CorridasConfig
from app.core.logging import mascarar
from app.repositories.corridas import STATUS_CANCELADA, CANCELADO_POR_PASSAGEIRO
from app.schemas.mensagem import Localizacao
from .constantes import (
    Estado,
    IDIOMA_INGLES,
    IDIOMA_PORTUGUES,
    MOTIVO_CANCELADA,
    MOTIVO_CANCELADA_APOS_EXPIRAR,
    MOTIVO_CANCELADA_APOS_MOTORISTA,
    MOTIVO_TIMEOUT,
    TIPO_MOTOTAXI,
    TIPO_TAXI,
)
from .sessoes import SessaoConversa
from .traducoes import BOAS_VINDAS, BOAS_VINDAS_RETORNO, IDIOMA_INVALIDO, m, rotulo_veiculo, t

if TYPE_CHECKING:
    from .central import CentralCorridas

logger = logging.getLogger(__name__)

_PADRAO_TELEFONE = re.compile(r"^\+[1-9]\d{8,14}$")
_CARACTERES_TELEFONE = re.compile(r"[\s\-()]")

CONFIRMAR = ("CONFIRM", "CONFIRMAR")
CANCELAR = ("CANCEL", "CANCELAR")


def validar_telefone(texto: str) -> bool:
    """Aceita +<DDI><numero> com 9 a 15 digitos apos limpar espacos, tracos e parenteses."""
    return bool(_PADRAO_TELEFONE.match(_CARACTERES_TELEFONE.sub("", texto or "")))


def interpretar_tempo_espera(texto: str) -> Optional[int]:
    """Minutos de espera (inteiro >= minimo) ou None."""
    texto = (texto or "").strip()
    if not texto.isdigit():
        return None
    minutos = int(texto)
    if minutos < CorridasConfig.TEMPO_ESPERA_MINIMO:
        return None
    return minutos


class FluxoConversa:
    """Conduz a coleta do pedido e as decisoes de nova tentativa."""

    def __init__(self, central: "CentralCorridas"):
        self.central = central
        self._handlers = {
            Estado.AWAITING_LANGUAGE: self._idioma,
            Estado.AWAITING_VEHICLE_TYPE: self._tipo_veiculo,
            Estado.AWAITING_NAME: self._nome,
            Estado.AWAITING_PHONE: self._telefone,
            Estado.AWAITING_LOCATION_TEXT: self._local_texto,
            Estado.AWAITING_LOCATION_PIN: self._local_pin,
            Estado.AWAITING_DESTINATION: self._destino,
            Estado.AWAITING_IDENTIFIER: self._identificacao,
            Estado.AWAITING_WAIT_TIME: self._tempo_espera,
            Estado.AWAITING_CONFIRMATION: self._confirmacao,
            Estado.AWAITING_DRIVER_ACCEPTANCE: self._aguardando_motorista,
            Estado.AWAITING_RETRY_DECISION: self._decisao_nova_tentativa,
            Estado.AWAITING_RETRY_WAIT_TIME: self._novo_tempo_espera,
            Estado.AWAITING_DRIVER_CANCEL_DECISION: self._decisao_apos_cancelamento,
        }

    async def _enviar(self, sessao: SessaoConversa, chave: str, **kwargs) -> bool:
        return await self.central.mensageiro.enviar(
            sessao.identificador, t(sessao.idioma, chave, **kwargs)
        )

    async def iniciar_pedido(self, remetente: str, modo_teste: bool = False) -> SessaoConversa:
        """
        Abre a conversa de um novo pedido.

        Passageiro que ja tem nome e telefone guardados e cumprimentado
        pelo nome e pula essas perguntas.
        """
        usuario = await self.central.identidade.buscar_usuario(remetente)
        tag = " 🧪 [TEST / TESTE]" if modo_teste else ""

        if usuario is not None and usuario.tem_dados_contato:
            sessao = await self.central.sessoes.iniciar(
                remetente,
                Estado.AWAITING_LANGUAGE,
                nome=usuario.nome,
                telefone=usuario.telefone,
                pular_dados_usuario=True,
                modo_teste=modo_teste,
            )
            texto = BOAS_VINDAS_RETORNO.format(nome=usuario.nome, tag=tag)
        else:
            sessao = await self.central.sessoes.iniciar(
                remetente, Estado.AWAITING_LANGUAGE, modo_teste=modo_teste
            )
            texto = BOAS_VINDAS.format(tag=tag)

        await self.central.mensageiro.enviar(remetente, texto)
        self.central.temporizadores.reiniciar_timeout_conversa(remetente)
        logger.info(
            f"Pedido iniciado por {mascarar(remetente)} "
            f"(retorno={sessao.pular_dados_usuario}, teste={modo_teste})"
        )
        return sessao

    async def processar(
        self,
        sessao: SessaoConversa,
        texto: Optional[str],
        localizacao: Optional[Localizacao] = None,
    ):
        """Processa um turno da conversa no estado atual da sessao."""
        handler = self._handlers.get(sessao.estado)
        if handler is None:
            logger.warning(f"Estado {sessao.estado.value} sem handler de conversa")
            return

        if sessao.estado != Estado.AWAITING_DRIVER_ACCEPTANCE:
            self.central.temporizadores.reiniciar_timeout_conversa(sessao.identificador)

        await handler(sessao, (texto or "").strip(), localizacao)

    # ------------------------------------------------------------------
    # Coleta do pedido
    # ------------------------------------------------------------------

    async def _idioma(self, sessao, texto, localizacao):
        if texto not in ("1", "2"):
            await self.central.mensageiro.enviar(sessao.identificador, IDIOMA_INVALIDO)
            return
        sessao.idioma = IDIOMA_INGLES if texto == "1" else IDIOMA_PORTUGUES
        sessao.estado = Estado.AWAITING_VEHICLE_TYPE
        await self.central.sessoes.salvar(sessao)
        await self._enviar(sessao, "tipo_veiculo")

    async def _tipo_veiculo(self, sessao, texto, localizacao):
        if texto not in ("1", "2"):
            await self._enviar(sessao, "tipo_veiculo_invalido")
            return
        sessao.tipo_veiculo = TIPO_MOTOTAXI if texto == "1" else TIPO_TAXI

        corrida = await self.central.ciclo.criar_corrida_inicial(sessao)
        sessao.corrida_id = corrida.id
        sessao.estado = (
            Estado.AWAITING_LOCATION_TEXT if sessao.pular_dados_usuario else Estado.AWAITING_NAME
        )
        await self.central.sessoes.salvar(sessao)

        await self._enviar(sessao, "saudacao")
        await self._enviar(sessao, "local_texto" if sessao.pular_dados_usuario else "nome")

    async def _nome(self, sessao, texto, localizacao):
        if not texto:
            await self._enviar(sessao, "nome")
            return
        sessao.nome = texto
        sessao.estado = Estado.AWAITING_PHONE
        await self.central.sessoes.salvar(sessao)
        await self._enviar(sessao, "telefone")

    async def _telefone(self, sessao, texto, localizacao):
        if not validar_telefone(texto):
            await self._enviar(sessao, "telefone_invalido")
            return
        sessao.telefone = texto
        await self.central.identidade.buscar_ou_criar_usuario(
            sessao.identificador, nome=sessao.nome, telefone=sessao.telefone
        )
        sessao.estado = Estado.AWAITING_LOCATION_TEXT
        await self.central.sessoes.salvar(sessao)
        await self._enviar(sessao, "local_texto")

    async def _local_texto(self, sessao, texto, localizacao):
        if not texto:
            await self._enviar(sessao, "local_texto")
            return
        sessao.local_texto = texto
        await self.central.ciclo.atualizar_corrida(sessao.corrida_id, {"local_texto": texto})
        sessao.estado = Estado.AWAITING_LOCATION_PIN
        await self.central.sessoes.salvar(sessao)
        await self._enviar(sessao, "local_pin")

    async def _local_pin(self, sessao, texto, localizacao):
        if localizacao is None:
            await self._enviar(sessao, "local_pin_invalido")
            return
        sessao.local_lat = localizacao.latitude
        sessao.local_lng = localizacao.longitude
        await self.central.ciclo.atualizar_corrida(
            sessao.corrida_id,
            {"local_lat": localizacao.latitude, "local_lng": localizacao.longitude},
        )
        sessao.estado = Estado.AWAITING_DESTINATION
        await self.central.sessoes.salvar(sessao)
        await self._enviar(sessao, "destino")

    async def _destino(self, sessao, texto, localizacao):
        if not texto:
            await self._enviar(sessao, "destino")
            return
        sessao.destino = texto
        await self.central.ciclo.atualizar_corrida(sessao.corrida_id, {"destino": texto})
        sessao.estado = Estado.AWAITING_IDENTIFIER
        await self.central.sessoes.salvar(sessao)
        await self._enviar(sessao, "identificacao")

    async def _identificacao(self, sessao, texto, localizacao):
        if not texto:
            await self._enviar(sessao, "identificacao")
            return
        sessao.identificacao = texto
        await self.central.ciclo.atualizar_corrida(sessao.corrida_id, {"identificacao": texto})
        sessao.estado = Estado.AWAITING_WAIT_TIME
        await self.central.sessoes.salvar(sessao)
        await self._enviar(sessao, "tempo_espera")

    async def _tempo_espera(self, sessao, texto, localizacao):
        minutos = interpretar_tempo_espera(texto)
        if minutos is None:
            await self._enviar(sessao, "tempo_espera_invalido")
            return
        sessao.tempo_espera = minutos
        await self.central.ciclo.atualizar_corrida(sessao.corrida_id, {"tempo_espera": minutos})
        sessao.estado = Estado.AWAITING_CONFIRMATION
        await self.central.sessoes.salvar(sessao)
        await self._enviar(
            sessao,
            "confirmacao",
            veiculo=rotulo_veiculo(sessao.tipo_veiculo, sessao.idioma),
            nome=sessao.nome or "",
            telefone=sessao.telefone or "",
            local=sessao.local_texto or "",
            destino=sessao.destino or "",
            identificacao=sessao.identificacao or "",
            tempo_espera=sessao.tempo_espera,
        )

    async def _confirmacao(self, sessao, texto, localizacao):
        resposta = texto.upper()
        if resposta in CONFIRMAR:
            await self.central.ciclo.confirmar_pedido(sessao)
        elif resposta in CANCELAR:
            await self._cancelar(sessao, MOTIVO_CANCELADA, "cancelada")
        else:
            await self._enviar(sessao, "confirmacao_invalida")

    async def _aguardando_motorista(self, sessao, texto, localizacao):
        # Pedido ja transmitido; nada a coletar
        logger.debug(f"Mensagem ignorada de {mascarar(sessao.identificador)} aguardando motorista")

    # ------------------------------------------------------------------
    # Decisoes apos expiracao / cancelamento do motorista
    # ------------------------------------------------------------------

    async def _decisao_nova_tentativa(self, sessao, texto, localizacao):
        if texto == "1":
            sessao.estado = Estado.AWAITING_RETRY_WAIT_TIME
            await self.central.sessoes.salvar(sessao)
            await self._enviar(sessao, "novo_tempo_espera")
        elif texto == "2":
            await self._cancelar(sessao, MOTIVO_CANCELADA_APOS_EXPIRAR, "tentativa_cancelada")
        else:
            await self._enviar(sessao, "tentativa_invalida")

    async def _novo_tempo_espera(self, sessao, texto, localizacao):
        minutos = interpretar_tempo_espera(texto)
        if minutos is None:
            await self._enviar(sessao, "tempo_espera_invalido")
            return
        await self.central.ciclo.tentar_novamente(sessao, minutos)

    async def _decisao_apos_cancelamento(self, sessao, texto, localizacao):
        if texto == "1":
            await self.central.ciclo.reenviar_apos_cancelamento(sessao)
        elif texto == "2":
            await self._cancelar(sessao, MOTIVO_CANCELADA_APOS_MOTORISTA, "tentativa_cancelada")
        else:
            await self._enviar(sessao, "tentativa_invalida")

    async def _cancelar(self, sessao: SessaoConversa, motivo: str, chave: str):
        if sessao.corrida_id:
            await self.central.corridas.atualizar(sessao.corrida_id, {
                "status": STATUS_CANCELADA,
                "cancelado_por": CANCELADO_POR_PASSAGEIRO,
                "cancelled_at": self.central.agora_iso(),
            })
        await self.central.encerrar_sessao(sessao.identificador, motivo)
        await self._enviar(sessao, chave)
        logger.info(f"Pedido {sessao.corrida_id} cancelado pelo passageiro ({motivo})")

    # ------------------------------------------------------------------
    # Inatividade
    # ------------------------------------------------------------------

    async def avisar_inatividade(self, identificador: str):
        sessao = self.central.sessoes.obter(identificador)
        if sessao is None:
            return
        if sessao.is_confirmacao_cpf:
            return
        await self._enviar(sessao, "aviso_timeout")
        logger.info(f"Aviso de inatividade enviado para {mascarar(identificador)}")

    async def encerrar_por_inatividade(self, identificador: str):
        """
        Encerra a sessao inativa.

        Um pedido ainda em montagem (pending sem transmitida_em) e marcado
        como expirado.
        """
        sessao = self.central.sessoes.obter(identificador)
        if sessao is None:
            return

        if sessao.is_confirmacao_cpf:
            await self.central.encerrar_sessao(identificador, MOTIVO_TIMEOUT)
            await self.central.mensageiro.enviar(identificador, m("cpf_sessao_expirada"))
            logger.info(f"Confirmacao de CPF expirada para {mascarar(identificador)}")
            return

        if sessao.corrida_id:
            corrida = await self.central.corridas.buscar_por_id(sessao.corrida_id)
            if corrida is not None and corrida.pendente and corrida.transmitida_em is None:
                await self.central.corridas.expirar_se_pendente(
                    corrida.id, self.central.relogio.agora()
                )
                logger.info(f"Pedido {corrida.id} em montagem expirado por inatividade")

        await self.central.encerrar_sessao(identificador, MOTIVO_TIMEOUT)
        await self._enviar(sessao, "sessao_expirada")
        logger.info(f"Sessao de {mascarar(identificador)} expirada por inatividade")
