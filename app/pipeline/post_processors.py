"""
Pos-processadores do pipeline.
"""
import logging
import time

from app.core.logging import mascarar
from app.services.whatsapp import Mensageiro
from .base import PostProcessor, ProcessorContext, ProcessorResult

logger = logging.getLogger(__name__)


class SendMessageProcessor(PostProcessor):
    """
    Envia a resposta simples de um handler para o remetente.

    Prioridade: 20
    """
    name = "send_message"
    priority = 20

    def __init__(self, mensageiro: Mensageiro):
        self.mensageiro = mensageiro

    async def process(
        self,
        context: ProcessorContext,
        response: str
    ) -> ProcessorResult:
        if not response or not context.remetente:
            return ProcessorResult(success=True, response=response)

        enviado = await self.mensageiro.enviar(context.remetente, response)
        if not enviado:
            return ProcessorResult(
                success=False,
                response=response,
                error=f"Falha ao responder {mascarar(context.remetente)}",
            )

        context.metadata["resposta_enviada"] = True
        return ProcessorResult(success=True, response=response)


class TimingProcessor(PostProcessor):
    """
    Registra o tempo de processamento da mensagem.

    Prioridade: 40 (roda por ultimo)
    """
    name = "timing"
    priority = 40

    async def process(
        self,
        context: ProcessorContext,
        response: str
    ) -> ProcessorResult:
        tempo_inicio = context.metadata.get("tempo_inicio", time.time())
        duracao = time.time() - tempo_inicio
        context.metadata["duracao_s"] = round(duracao, 3)
        logger.debug(f"Mensagem de {mascarar(context.remetente)} processada em {duracao:.2f}s")
        return ProcessorResult(success=True, response=response)
