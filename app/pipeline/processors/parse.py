"""
Processador de parsing de mensagens.
"""
import logging

from ..base import PreProcessor, ProcessorContext, ProcessorResult
from app.core.logging import mascarar
from app.services.corridas.comandos import interpretar
from app.services.parser import parsear_mensagem, deve_processar

logger = logging.getLogger(__name__)


class ParseMessageProcessor(PreProcessor):
    """
    Parseia mensagem do webhook da Evolution e reconhece o comando.

    Prioridade: 10 (roda primeiro)
    """
    name = "parse_message"
    priority = 10

    async def process(self, context: ProcessorContext) -> ProcessorResult:
        mensagem = parsear_mensagem(context.mensagem_raw)

        if not mensagem:
            return ProcessorResult(
                success=False,
                should_continue=False,
                error="Mensagem nao pode ser parseada"
            )

        if not deve_processar(mensagem):
            return ProcessorResult(
                success=True,
                should_continue=False,  # Para silenciosamente
                metadata={"motivo": "mensagem ignorada (propria/grupo/status/sem conteudo)"}
            )

        context.mensagem = mensagem
        context.remetente = mensagem.remetente
        context.mensagem_texto = (mensagem.texto or "").strip()
        context.localizacao = mensagem.localizacao
        context.comando = interpretar(context.mensagem_texto)
        context.metadata["nome_contato"] = mensagem.nome_contato
        context.metadata["tipo"] = mensagem.tipo

        logger.debug(
            f"Mensagem {mensagem.tipo} de {mascarar(mensagem.remetente)}"
            f" comando={context.comando.nome if context.comando else None}"
        )
        return ProcessorResult(success=True)
