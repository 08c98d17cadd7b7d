"""
Avaliacoes e reputacao.

Passageiro e motorista recebem pedido de avaliacao 2h apos o aceite e
tem 24h para responder "avaliar N" / "rate N". A reputacao e a media
das notas recebidas, com uma casa decimal.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import TYPE_CHECKING, Iterable, Optional

from app.core.config import CorridasConfig
from app.core.logging import mascarar
from app.core.timezone import iso_utc
from app.repositories.avaliacoes import AVALIADOR_MOTORISTA, AVALIADOR_PASSAGEIRO
from app.repositories.corridas import STATUS_CONCLUIDA, Corrida
from .constantes import IDIOMA_PORTUGUES
from .identidade import identificador_envio
from .traducoes import t

if TYPE_CHECKING:
    from .central import CentralCorridas

logger = logging.getLogger(__name__)


def calcular_reputacao(notas: Iterable[int]) -> Optional[float]:
    """
    Media das notas arredondada para uma casa (meio para cima).

    Sem notas retorna None, nunca 0.
    """
    notas = list(notas)
    if not notas:
        return None
    media = Decimal(sum(notas)) / Decimal(len(notas))
    return float(media.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def formatar_reputacao(reputacao: Optional[float], idioma: Optional[str] = IDIOMA_PORTUGUES) -> str:
    """Ex: "4.5 ⭐⭐⭐⭐⭐"; sem reputacao usa o texto traduzido."""
    if reputacao is None:
        return t(idioma, "sem_reputacao")
    estrelas = int(Decimal(str(reputacao)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return f"{reputacao:.1f} " + "⭐" * estrelas


@dataclass
class AvaliacaoPendente:
    """Corrida que o remetente ainda pode avaliar."""

    corrida: Corrida
    tipo_avaliador: str
    avaliador_id: int
    avaliado_id: int

    @property
    def idioma(self) -> str:
        if self.tipo_avaliador == AVALIADOR_PASSAGEIRO:
            return self.corrida.idioma
        return IDIOMA_PORTUGUES


class ServicoAvaliacoes:
    """Pedidos de avaliacao, registro de notas e recalculo de reputacao."""

    def __init__(self, central: "CentralCorridas"):
        self.central = central

    # ------------------------------------------------------------------
    # Pedidos de avaliacao
    # ------------------------------------------------------------------

    def _marcar_envio(self, corrida: Corrida, dados: dict) -> dict:
        # O primeiro pedido enviado define o prazo das duas partes
        if corrida.avaliacao_enviada_em is None:
            agora = self.central.relogio.agora()
            dados["avaliacao_enviada_em"] = iso_utc(agora)
            dados["prazo_avaliacao_em"] = iso_utc(
                agora + timedelta(seconds=CorridasConfig.PRAZO_AVALIACAO)
            )
        return dados

    async def _corrida_para_pedido(self, corrida_id: int, campo_enviado: str) -> Optional[Corrida]:
        corrida = await self.central.corridas.buscar_por_id(corrida_id)
        if corrida is None or corrida.status != STATUS_CONCLUIDA:
            logger.info(f"Pedido de avaliacao ignorado: corrida {corrida_id} nao esta concluida")
            return None
        if getattr(corrida, campo_enviado):
            return None
        return corrida

    async def enviar_pedido_passageiro(self, corrida_id: int) -> bool:
        """Pede ao passageiro a nota do motorista, junto do formulario de feedback."""
        corrida = await self._corrida_para_pedido(corrida_id, "avaliacao_passageiro_enviada")
        if corrida is None:
            return False

        usuario = await self.central.usuarios.buscar_por_id(corrida.usuario_id)
        atribuicao = await self.central.atribuicoes.buscar_por_corrida(corrida_id)
        motorista = None
        if atribuicao is not None:
            motorista = await self.central.motoristas.buscar_por_id(atribuicao.motorista_id)

        destino = identificador_envio(usuario)
        idioma = corrida.idioma
        nome = (motorista.nome if motorista else None) or t(idioma, "nome_motorista_padrao")

        await self.central.mensageiro.enviar(
            destino,
            t(idioma, "feedback_passageiro", corrida_id=corrida_id,
              link_formulario=self.central.settings.FEEDBACK_FORM_URL),
        )
        await self.central.mensageiro.enviar(
            destino, t(idioma, "pedido_avaliacao_passageiro", nome=nome, corrida_id=corrida_id)
        )

        dados = self._marcar_envio(corrida, {"avaliacao_passageiro_enviada": True})
        await self.central.corridas.atualizar(corrida_id, dados)
        logger.info(f"Pedido de avaliacao enviado ao passageiro da corrida {corrida_id}")
        return True

    async def enviar_pedido_motorista(self, corrida_id: int) -> bool:
        """Pede ao motorista a nota do passageiro (sempre em portugues)."""
        corrida = await self._corrida_para_pedido(corrida_id, "avaliacao_motorista_enviada")
        if corrida is None:
            return False

        atribuicao = await self.central.atribuicoes.buscar_por_corrida(corrida_id)
        if atribuicao is None:
            logger.warning(f"Corrida {corrida_id} concluida sem atribuicao")
            return False
        motorista = await self.central.motoristas.buscar_por_id(atribuicao.motorista_id)
        usuario = await self.central.usuarios.buscar_por_id(corrida.usuario_id)

        destino = identificador_envio(motorista)
        nome = (usuario.nome if usuario else None) or t(IDIOMA_PORTUGUES, "nome_passageiro_padrao")

        await self.central.mensageiro.enviar(
            destino,
            t(IDIOMA_PORTUGUES, "feedback_motorista", corrida_id=corrida_id,
              link_formulario=self.central.settings.FEEDBACK_FORM_URL),
        )
        await self.central.mensageiro.enviar(
            destino,
            t(IDIOMA_PORTUGUES, "pedido_avaliacao_motorista", nome=nome, corrida_id=corrida_id),
        )

        dados = self._marcar_envio(corrida, {"avaliacao_motorista_enviada": True})
        await self.central.corridas.atualizar(corrida_id, dados)
        logger.info(f"Pedido de avaliacao enviado ao motorista da corrida {corrida_id}")
        return True

    # ------------------------------------------------------------------
    # Registro de notas
    # ------------------------------------------------------------------

    async def buscar_pendente(self, remetente: str) -> Optional[AvaliacaoPendente]:
        """
        Corrida mais recentemente avaliavel pelo remetente.

        Procura primeiro como passageiro, depois como motorista. So vale
        corrida concluida, dentro do prazo e ainda nao avaliada naquela
        direcao.
        """
        agora = self.central.relogio.agora()
        repo = self.central.avaliacoes_repo

        usuario = await self.central.identidade.buscar_usuario(remetente)
        if usuario is not None:
            corridas = await self.central.corridas.listar_aguardando_avaliacao(
                agora, usuario_id=usuario.id
            )
            for corrida in corridas:
                if await repo.buscar_da_corrida(corrida.id, AVALIADOR_PASSAGEIRO):
                    continue
                atribuicao = await self.central.atribuicoes.buscar_por_corrida(corrida.id)
                if atribuicao is None:
                    continue
                return AvaliacaoPendente(corrida, AVALIADOR_PASSAGEIRO, usuario.id, atribuicao.motorista_id)

        motorista = await self.central.identidade.buscar_motorista(remetente)
        if motorista is not None:
            atribuicoes = await self.central.atribuicoes.listar_por_motorista(motorista.id)
            corridas = await self.central.corridas.listar_aguardando_avaliacao(
                agora, ids=[a.corrida_id for a in atribuicoes]
            )
            for corrida in corridas:
                if await repo.buscar_da_corrida(corrida.id, AVALIADOR_MOTORISTA):
                    continue
                return AvaliacaoPendente(corrida, AVALIADOR_MOTORISTA, motorista.id, corrida.usuario_id)

        return None

    async def processar_avaliacao(self, remetente: str, nota: int) -> bool:
        """
        Registra a nota do remetente.

        Returns:
            False se o remetente nao tem avaliacao pendente (mensagem segue
            no roteamento)
        """
        pendente = await self.buscar_pendente(remetente)
        if pendente is None:
            return False

        corrida_id = pendente.corrida.id
        if pendente.tipo_avaliador == AVALIADOR_PASSAGEIRO:
            dados = {
                "tipo_avaliador": AVALIADOR_PASSAGEIRO,
                "tipo_avaliado": AVALIADOR_MOTORISTA,
                "avaliador_usuario_id": pendente.avaliador_id,
                "avaliado_motorista_id": pendente.avaliado_id,
            }
        else:
            dados = {
                "tipo_avaliador": AVALIADOR_MOTORISTA,
                "tipo_avaliado": AVALIADOR_PASSAGEIRO,
                "avaliador_motorista_id": pendente.avaliador_id,
                "avaliado_usuario_id": pendente.avaliado_id,
            }

        await self.central.avaliacoes_repo.criar({
            "corrida_id": corrida_id,
            "nota": nota,
            "created_at": iso_utc(self.central.relogio.agora()),
            **dados,
        })

        if pendente.tipo_avaliador == AVALIADOR_PASSAGEIRO:
            await self.recalcular_reputacao_motorista(pendente.avaliado_id)
        else:
            await self.recalcular_reputacao_usuario(pendente.avaliado_id)

        await self.central.mensageiro.enviar(
            remetente, t(pendente.idioma, "avaliacao_registrada", nota=nota)
        )
        logger.info(
            f"Avaliacao {nota} registrada na corrida {corrida_id} "
            f"por {pendente.tipo_avaliador} {mascarar(remetente)}"
        )
        return True

    async def processar_tentativa_invalida(self, remetente: str) -> bool:
        """Responde com o formato correto se houver avaliacao pendente."""
        pendente = await self.buscar_pendente(remetente)
        if pendente is None:
            return False
        await self.central.mensageiro.enviar(remetente, t(pendente.idioma, "avaliacao_invalida"))
        return True

    # ------------------------------------------------------------------
    # Reputacao
    # ------------------------------------------------------------------

    async def recalcular_reputacao_usuario(self, usuario_id: int) -> Optional[float]:
        notas = await self.central.avaliacoes_repo.notas_recebidas_usuario(usuario_id)
        reputacao = calcular_reputacao(notas)
        await self.central.usuarios.atualizar(usuario_id, {"reputacao": reputacao})
        return reputacao

    async def recalcular_reputacao_motorista(self, motorista_id: int) -> Optional[float]:
        notas = await self.central.avaliacoes_repo.notas_recebidas_motorista(motorista_id)
        reputacao = calcular_reputacao(notas)
        await self.central.motoristas.atualizar(motorista_id, {"reputacao": reputacao})
        return reputacao
