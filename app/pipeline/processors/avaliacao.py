"""
Processadores de avaliacao ("avaliar N" / "rate N").
"""
import logging

from ..base import CentralPreProcessor, ProcessorContext, ProcessorResult
from app.services.corridas.comandos import CMD_AVALIAR, CMD_AVALIAR_INVALIDO

logger = logging.getLogger(__name__)


class AvaliacaoProcessor(CentralPreProcessor):
    """
    Registra a nota se o remetente tem avaliacao pendente.

    Prioridade: 50 (antes do aceite, para "rate 5" nao virar numero)
    """
    name = "avaliacao"
    priority = 50

    def should_run(self, context: ProcessorContext) -> bool:
        return context.comando is not None and context.comando.nome == CMD_AVALIAR

    async def process(self, context: ProcessorContext) -> ProcessorResult:
        registrada = await self.central.avaliacoes.processar_avaliacao(
            context.remetente, context.comando.nota
        )
        if not registrada:
            return ProcessorResult(success=True)
        return ProcessorResult(success=True, should_continue=False)


class AvaliacaoInvalidaProcessor(CentralPreProcessor):
    """
    "avaliar"/"rate" fora do formato: explica o formato a quem tem
    avaliacao pendente.

    Prioridade: 55
    """
    name = "avaliacao_invalida"
    priority = 55

    def should_run(self, context: ProcessorContext) -> bool:
        return context.comando is not None and context.comando.nome == CMD_AVALIAR_INVALIDO

    async def process(self, context: ProcessorContext) -> ProcessorResult:
        if not await self.central.avaliacoes.processar_tentativa_invalida(context.remetente):
            return ProcessorResult(success=True)
        return ProcessorResult(success=True, should_continue=False)
