"""
Processador de identidade (passageiro e motorista do remetente).
"""
import logging

from ..base import CentralPreProcessor, ProcessorContext, ProcessorResult

logger = logging.getLogger(__name__)


class LoadIdentidadeProcessor(CentralPreProcessor):
    """
    Resolve o remetente contra usuarios e motoristas (JID ou LID).

    Prioridade: 20
    """
    name = "load_identidade"
    priority = 20

    async def process(self, context: ProcessorContext) -> ProcessorResult:
        identidade = self.central.identidade
        context.usuario = await identidade.buscar_usuario(context.remetente)
        context.motorista = await identidade.buscar_motorista(context.remetente)
        return ProcessorResult(success=True)
