"""
Processadores do cadastro de motorista.
"""
import logging

from ..base import CentralPreProcessor, ProcessorContext, ProcessorResult
from app.services.corridas.comandos import CMD_CADASTRO_MOTORISTA

logger = logging.getLogger(__name__)


class CadastroAtivoProcessor(CentralPreProcessor):
    """
    Remetente no meio do cadastro: a mensagem e a resposta da etapa atual.

    Prioridade: 27
    """
    name = "cadastro_ativo"
    priority = 27

    def should_run(self, context: ProcessorContext) -> bool:
        return self.central.cadastro.em_andamento(context.remetente)

    async def process(self, context: ProcessorContext) -> ProcessorResult:
        await self.central.cadastro.processar(context.remetente, context.mensagem_texto)
        return ProcessorResult(success=True, should_continue=False)


class CadastroMotoristaProcessor(CentralPreProcessor):
    """
    "sou motorista", "cadastrar motorista", ... inicia o cadastro.

    Prioridade: 65
    """
    name = "cadastro_motorista"
    priority = 65

    def should_run(self, context: ProcessorContext) -> bool:
        return context.comando is not None and context.comando.nome == CMD_CADASTRO_MOTORISTA

    async def process(self, context: ProcessorContext) -> ProcessorResult:
        await self.central.cadastro.iniciar(context.remetente)
        return ProcessorResult(success=True, should_continue=False)
