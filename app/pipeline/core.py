"""
Core processor - mensagem que nenhum handler consumiu.
"""
import logging

from app.core.logging import mascarar
from .base import ProcessorContext, ProcessorResult

logger = logging.getLogger(__name__)


class MensagemIgnoradaProcessor:
    """
    Fim do roteamento: a central nao responde mensagens que nao casam
    com nenhum comando.
    """

    name = "ignorada"

    async def process(self, context: ProcessorContext) -> ProcessorResult:
        logger.debug(f"Mensagem de {mascarar(context.remetente)} sem handler")
        return ProcessorResult(
            success=True,
            should_continue=False,
            metadata={"ignorada": True},
        )
