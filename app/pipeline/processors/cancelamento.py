"""
Processadores de "cancelar <id>".

O passageiro da corrida tem prioridade; se o remetente nao e o
passageiro, o pedido segue para o handler do motorista.
"""
import logging

from ..base import CentralPreProcessor, ProcessorContext, ProcessorResult
from app.core.logging import mascarar
from app.services.corridas.comandos import CMD_CANCELAR
from app.services.corridas.identidade import is_mesma_pessoa
from app.services.corridas.traducoes import (
    CORRIDA_NAO_ENCONTRADA_BILINGUE,
    NAO_PODE_CANCELAR_BILINGUE,
    m,
)

logger = logging.getLogger(__name__)


def _is_cancelamento(context: ProcessorContext) -> bool:
    return context.comando is not None and context.comando.nome == CMD_CANCELAR


class CancelamentoPassageiroProcessor(CentralPreProcessor):
    """
    Passageiro cancelando a propria corrida.

    Prioridade: 40
    """
    name = "cancelamento_passageiro"
    priority = 40

    def should_run(self, context: ProcessorContext) -> bool:
        return _is_cancelamento(context)

    async def process(self, context: ProcessorContext) -> ProcessorResult:
        corrida_id = context.comando.corrida_id
        corrida = await self.central.corridas.buscar_por_id(corrida_id)
        if corrida is None:
            return ProcessorResult(
                success=True,
                should_continue=False,
                response=CORRIDA_NAO_ENCONTRADA_BILINGUE,
            )
        context.metadata["corrida"] = corrida

        usuario = await self.central.usuarios.buscar_por_id(corrida.usuario_id)
        if not is_mesma_pessoa(context.remetente, usuario):
            return ProcessorResult(success=True)

        logger.info(f"Cancelamento da corrida {corrida_id} pelo passageiro {mascarar(context.remetente)}")
        await self.central.ciclo.cancelar_pelo_passageiro(context.remetente, corrida, usuario)
        return ProcessorResult(success=True, should_continue=False)


class CancelamentoMotoristaProcessor(CentralPreProcessor):
    """
    Motorista atribuido desistindo da corrida.

    Prioridade: 45
    """
    name = "cancelamento_motorista"
    priority = 45

    def should_run(self, context: ProcessorContext) -> bool:
        return _is_cancelamento(context)

    async def process(self, context: ProcessorContext) -> ProcessorResult:
        corrida_id = context.comando.corrida_id
        corrida = context.metadata.get("corrida")
        if corrida is None:
            corrida = await self.central.corridas.buscar_por_id(corrida_id)
        if corrida is None:
            return ProcessorResult(
                success=True,
                should_continue=False,
                response=CORRIDA_NAO_ENCONTRADA_BILINGUE,
            )

        atribuicao = await self.central.atribuicoes.buscar_por_corrida(corrida_id)
        motorista = None
        if atribuicao is not None:
            motorista = await self.central.motoristas.buscar_por_id(atribuicao.motorista_id)

        if atribuicao is None or not is_mesma_pessoa(context.remetente, motorista):
            resposta = m("nao_atribuido") if context.motorista else NAO_PODE_CANCELAR_BILINGUE
            return ProcessorResult(success=True, should_continue=False, response=resposta)

        logger.info(f"Cancelamento da corrida {corrida_id} pelo motorista {motorista.id}")
        await self.central.ciclo.cancelar_pelo_motorista(context.remetente, corrida, atribuicao)
        return ProcessorResult(success=True, should_continue=False)
