"""
Temporizadores duraveis da central.

Todo timer e uma task asyncio com atraso relativo, mas o instante
absoluto de disparo sempre e derivavel de um timestamp persistido:

| Timer               | Dispara em                                   |
|---------------------|----------------------------------------------|
| aviso de conversa   | ultima_atividade_em + 2,5 min                |
| timeout de conversa | ultima_atividade_em + 5 min                  |
| espera da corrida   | transmitida_em + tempo_espera                |
| keepalive           | transmitida_em + k * 6 min (enquanto pending)|
| pedido de avaliacao | completed_at + 2 h                           |

Por isso `restaurar_tudo()` reconstroi tudo apos restart lendo o banco:
o que ja venceu roda uma vez na hora, o resto e reagendado.
"""
import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Awaitable, Callable, Hashable, Optional

from app.core.config import CorridasConfig
from app.core.logging import mascarar
from app.core.tasks import schedule_with_delay
from app.core.timezone import agora_utc
from app.repositories.corridas import Corrida
from .identidade import identificador_envio
from .traducoes import t

if TYPE_CHECKING:
    from .central import CentralCorridas

logger = logging.getLogger(__name__)

GRUPO_AVISO_CONVERSA = "aviso_conversa"
GRUPO_TIMEOUT_CONVERSA = "timeout_conversa"
GRUPO_ESPERA = "espera_corrida"
GRUPO_KEEPALIVE = "keepalive"
GRUPO_AVALIACAO_PASSAGEIRO = "avaliacao_passageiro"
GRUPO_AVALIACAO_MOTORISTA = "avaliacao_motorista"
GRUPO_AVISO_CADASTRO = "aviso_cadastro"
GRUPO_TIMEOUT_CADASTRO = "timeout_cadastro"


class Relogio:
    """Fonte de tempo. Testes substituem por um relogio manual."""

    def agora(self) -> datetime:
        return agora_utc()


class Agendador:
    """
    Dono de todos os handles de timer, agrupados por tipo e chave.

    Agendar uma chave ja agendada substitui o timer anterior. O handle
    sai do mapa quando o timer dispara ou e cancelado.
    """

    def __init__(self):
        self._tarefas: dict[str, dict[Hashable, asyncio.Task]] = defaultdict(dict)

    def agendar(
        self,
        grupo: str,
        chave: Hashable,
        atraso: float,
        acao: Callable[[], Awaitable],
    ) -> asyncio.Task:
        self.cancelar(grupo, chave)

        async def disparar():
            if self._tarefas[grupo].get(chave) is asyncio.current_task():
                del self._tarefas[grupo][chave]
            return await acao()

        tarefa = schedule_with_delay(disparar, max(0.0, atraso), name=f"{grupo}:{chave}")
        self._tarefas[grupo][chave] = tarefa
        return tarefa

    def cancelar(self, grupo: str, chave: Hashable) -> bool:
        """Cancela o timer se existir. Idempotente."""
        tarefa = self._tarefas[grupo].pop(chave, None)
        if tarefa is None:
            return False
        if not tarefa.done():
            tarefa.cancel()
        return True

    def ativo(self, grupo: str, chave: Hashable) -> bool:
        return chave in self._tarefas[grupo]

    def pendentes(self, grupo: str) -> list:
        return list(self._tarefas[grupo].keys())

    def total(self) -> dict[str, int]:
        return {grupo: len(tarefas) for grupo, tarefas in self._tarefas.items() if tarefas}

    async def encerrar(self):
        """Cancela todos os timers (shutdown)."""
        tarefas = [t for grupo in self._tarefas.values() for t in grupo.values()]
        for grupo in self._tarefas.values():
            grupo.clear()
        for tarefa in tarefas:
            tarefa.cancel()
        if tarefas:
            await asyncio.gather(*tarefas, return_exceptions=True)
        logger.info(f"{len(tarefas)} temporizador(es) cancelado(s) no shutdown")


def _segundos_ate(instante: datetime, agora: datetime) -> float:
    return (instante - agora).total_seconds()


class Temporizadores:
    """Agenda, cancela e restaura os timers do fluxo de corridas."""

    def __init__(self, central: "CentralCorridas"):
        self.central = central

    @property
    def agendador(self) -> Agendador:
        return self.central.agendador

    def _agora(self) -> datetime:
        return self.central.relogio.agora()

    # ------------------------------------------------------------------
    # Conversa
    # ------------------------------------------------------------------

    def reiniciar_timeout_conversa(self, identificador: str, base: Optional[datetime] = None):
        """
        (Re)arma aviso e timeout de inatividade a partir de `base`
        (ultima atividade; agora quando omitido). Aviso ja vencido nao e
        reenviado.
        """
        agora = self._agora()
        base = base or agora
        aviso_em = base + timedelta(seconds=CorridasConfig.AVISO_CONVERSA)
        timeout_em = base + timedelta(seconds=CorridasConfig.TIMEOUT_CONVERSA)

        if aviso_em > agora:
            self.agendador.agendar(
                GRUPO_AVISO_CONVERSA,
                identificador,
                _segundos_ate(aviso_em, agora),
                lambda: self.central.conversa.avisar_inatividade(identificador),
            )
        else:
            self.agendador.cancelar(GRUPO_AVISO_CONVERSA, identificador)

        self.agendador.agendar(
            GRUPO_TIMEOUT_CONVERSA,
            identificador,
            _segundos_ate(timeout_em, agora),
            lambda: self.central.conversa.encerrar_por_inatividade(identificador),
        )

    def limpar_timeout_conversa(self, identificador: str):
        self.agendador.cancelar(GRUPO_AVISO_CONVERSA, identificador)
        self.agendador.cancelar(GRUPO_TIMEOUT_CONVERSA, identificador)

    # ------------------------------------------------------------------
    # Corrida transmitida
    # ------------------------------------------------------------------

    def agendar_expiracao(self, corrida: Corrida) -> bool:
        """Arma o timer de espera em base_espera + tempo_espera."""
        base = corrida.base_espera
        if not corrida.tempo_espera or base is None:
            logger.warning(f"Corrida {corrida.id} sem tempo de espera; expiracao nao agendada")
            return False

        vencimento = base + timedelta(minutes=corrida.tempo_espera)
        atraso = _segundos_ate(vencimento, self._agora())
        corrida_id = corrida.id
        self.agendador.agendar(
            GRUPO_ESPERA,
            corrida_id,
            atraso,
            lambda: self.central.ciclo.expirar_corrida(corrida_id),
        )
        logger.info(f"Expiracao da corrida {corrida_id} em {max(0, int(atraso))}s")
        return True

    def cancelar_expiracao(self, corrida_id: int):
        self.agendador.cancelar(GRUPO_ESPERA, corrida_id)

    def iniciar_keepalive(self, corrida: Corrida, destino: str):
        """
        Agenda o proximo aviso "ainda procurando" em
        transmitida_em + k * intervalo. Ticks perdidos nao sao reenviados.
        """
        intervalo = CorridasConfig.INTERVALO_KEEPALIVE
        agora = self._agora()
        base = corrida.transmitida_em or agora
        k = int(max(0.0, (agora - base).total_seconds()) // intervalo) + 1
        self._agendar_tick(corrida.id, destino, corrida.idioma, base, k)

    def _agendar_tick(self, corrida_id: int, destino: str, idioma: str, base: datetime, k: int):
        instante = base + timedelta(seconds=k * CorridasConfig.INTERVALO_KEEPALIVE)
        self.agendador.agendar(
            GRUPO_KEEPALIVE,
            corrida_id,
            _segundos_ate(instante, self._agora()),
            lambda: self._keepalive(corrida_id, destino, idioma, base, k),
        )

    async def _keepalive(self, corrida_id: int, destino: str, idioma: str, base: datetime, k: int):
        corrida = await self.central.corridas.buscar_por_id(corrida_id)
        if corrida is None or not corrida.pendente or corrida.transmitida_em is None:
            logger.info(f"Corrida {corrida_id} nao esta mais pendente, keepalive encerrado")
            return

        await self.central.mensageiro.enviar(destino, t(idioma, "keepalive"))
        logger.info(f"Keepalive {k} enviado para corrida {corrida_id}")
        self._agendar_tick(corrida_id, destino, idioma, base, k + 1)

    def cancelar_keepalive(self, corrida_id: int):
        self.agendador.cancelar(GRUPO_KEEPALIVE, corrida_id)

    # ------------------------------------------------------------------
    # Avaliacao
    # ------------------------------------------------------------------

    def agendar_avaliacoes(self, corrida: Corrida):
        """Pedidos de avaliacao para as duas partes em completed_at + 2h."""
        base = corrida.completed_at or self._agora()
        vencimento = base + timedelta(seconds=CorridasConfig.ATRASO_AVALIACAO)
        atraso = _segundos_ate(vencimento, self._agora())
        corrida_id = corrida.id

        if not corrida.avaliacao_passageiro_enviada:
            self.agendador.agendar(
                GRUPO_AVALIACAO_PASSAGEIRO,
                corrida_id,
                atraso,
                lambda: self.central.avaliacoes.enviar_pedido_passageiro(corrida_id),
            )
        if not corrida.avaliacao_motorista_enviada:
            self.agendador.agendar(
                GRUPO_AVALIACAO_MOTORISTA,
                corrida_id,
                atraso,
                lambda: self.central.avaliacoes.enviar_pedido_motorista(corrida_id),
            )

    def cancelar_avaliacoes(self, corrida_id: int):
        self.agendador.cancelar(GRUPO_AVALIACAO_PASSAGEIRO, corrida_id)
        self.agendador.cancelar(GRUPO_AVALIACAO_MOTORISTA, corrida_id)

    def cancelar_timers_corrida(self, corrida_id: int):
        self.cancelar_expiracao(corrida_id)
        self.cancelar_keepalive(corrida_id)
        self.cancelar_avaliacoes(corrida_id)

    # ------------------------------------------------------------------
    # Restauracao
    # ------------------------------------------------------------------

    async def restaurar_tudo(self) -> dict:
        """
        Reconstroi sessoes e timers a partir do banco.

        Conversas primeiro: uma corrida vencida abre sessao de nova
        tentativa e essa sessao nao deve ser restaurada de novo.
        """
        resumo = {
            "conversas": await self.restaurar_conversas(),
            "corridas": await self.restaurar_corridas_pendentes(),
            "avaliacoes": await self.restaurar_avaliacoes(),
        }
        logger.info(f"Temporizadores restaurados: {resumo}")
        return resumo

    async def restaurar_conversas(self) -> dict:
        reagendadas = encerradas = 0
        agora = self._agora()

        for sessao in await self.central.sessoes.carregar_ativas():
            try:
                self.central.sessoes.restaurar(sessao)
                base = sessao.ultima_atividade_em or agora
                if agora >= base + timedelta(seconds=CorridasConfig.TIMEOUT_CONVERSA):
                    await self.central.conversa.encerrar_por_inatividade(sessao.identificador)
                    encerradas += 1
                else:
                    self.reiniciar_timeout_conversa(sessao.identificador, base=base)
                    reagendadas += 1
            except Exception as e:
                logger.error(
                    f"Erro ao restaurar conversa de {mascarar(sessao.identificador)}: {e}",
                    exc_info=True,
                )

        return {"reagendadas": reagendadas, "encerradas": encerradas}

    async def restaurar_corridas_pendentes(self) -> dict:
        reagendadas = expiradas = 0
        agora = self._agora()

        for corrida in await self.central.corridas.listar_pendentes():
            # Sem transmitida_em: corrida em montagem ou aguardando decisao
            if corrida.transmitida_em is None:
                continue
            if self.agendador.ativo(GRUPO_ESPERA, corrida.id):
                continue
            try:
                if not corrida.tempo_espera:
                    logger.warning(f"Corrida pendente {corrida.id} sem tempo de espera")
                    continue
                vencimento = corrida.base_espera + timedelta(minutes=corrida.tempo_espera)
                if agora >= vencimento:
                    await self.central.ciclo.expirar_corrida(corrida.id)
                    expiradas += 1
                    continue

                usuario = await self.central.usuarios.buscar_por_id(corrida.usuario_id)
                destino = identificador_envio(usuario)
                self.agendar_expiracao(corrida)
                if destino:
                    self.iniciar_keepalive(corrida, destino)
                    self.central.sessoes.registrar_corrida(destino, corrida.id)
                reagendadas += 1
            except Exception as e:
                logger.error(f"Erro ao restaurar corrida {corrida.id}: {e}", exc_info=True)

        return {"reagendadas": reagendadas, "expiradas": expiradas}

    async def restaurar_avaliacoes(self) -> dict:
        reagendadas = enviadas = 0
        agora = self._agora()

        for corrida in await self.central.corridas.listar_com_avaliacao_a_enviar():
            try:
                vencimento = corrida.completed_at + timedelta(seconds=CorridasConfig.ATRASO_AVALIACAO)
                if agora >= vencimento:
                    if not corrida.avaliacao_passageiro_enviada:
                        await self.central.avaliacoes.enviar_pedido_passageiro(corrida.id)
                    if not corrida.avaliacao_motorista_enviada:
                        await self.central.avaliacoes.enviar_pedido_motorista(corrida.id)
                    enviadas += 1
                else:
                    self.agendar_avaliacoes(corrida)
                    reagendadas += 1
            except Exception as e:
                logger.error(f"Erro ao restaurar avaliacao da corrida {corrida.id}: {e}", exc_info=True)

        return {"reagendadas": reagendadas, "enviadas": enviadas}
