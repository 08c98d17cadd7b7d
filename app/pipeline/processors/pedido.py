"""
Processadores de historico e de novo pedido.
"""
import logging

from ..base import CentralPreProcessor, ProcessorContext, ProcessorResult
from app.core.logging import mascarar
from app.services.corridas.comandos import CMD_HISTORICO, CMD_PEDIDO

logger = logging.getLogger(__name__)


class HistoricoProcessor(CentralPreProcessor):
    """
    "my rides" / "minhas corridas".

    Prioridade: 70
    """
    name = "historico"
    priority = 70

    def should_run(self, context: ProcessorContext) -> bool:
        return context.comando is not None and context.comando.nome == CMD_HISTORICO

    async def process(self, context: ProcessorContext) -> ProcessorResult:
        await self.central.historico.enviar_historico(context.remetente)
        return ProcessorResult(success=True, should_continue=False)


class NovoPedidoProcessor(CentralPreProcessor):
    """
    "taxi" / "mototaxi" abre um novo pedido. Motorista cadastrado e
    ignorado (as mensagens de corrida citam essas palavras).

    Prioridade: 80
    """
    name = "novo_pedido"
    priority = 80

    def should_run(self, context: ProcessorContext) -> bool:
        return context.comando is not None and context.comando.nome == CMD_PEDIDO

    async def process(self, context: ProcessorContext) -> ProcessorResult:
        if context.motorista is not None:
            logger.info(f"Pedido de motorista cadastrado {mascarar(context.remetente)} ignorado")
            return ProcessorResult(
                success=True,
                should_continue=False,
                metadata={"motivo": "pedido de motorista"},
            )

        await self.central.conversa.iniciar_pedido(
            context.remetente, modo_teste=context.comando.modo_teste
        )
        return ProcessorResult(success=True, should_continue=False)
