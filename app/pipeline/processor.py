"""
Processador principal de mensagens.
"""

import logging
import time

from .base import ProcessorContext, ProcessorResult, PreProcessor, PostProcessor

logger = logging.getLogger(__name__)


class MessageProcessor:
    """
    Orquestra o pipeline de processamento de mensagens.

    Uso:
        processor = MessageProcessor()
        processor.add_pre_processor(ParseMessageProcessor())
        processor.add_pre_processor(ConversaAtivaProcessor(central))
        processor.add_post_processor(SendMessageProcessor(central.mensageiro))

        result = await processor.process(data)
    """

    def __init__(self):
        self.pre_processors: list[PreProcessor] = []
        self.post_processors: list[PostProcessor] = []
        self._core_processor = None

    def add_pre_processor(self, processor: PreProcessor) -> "MessageProcessor":
        """Adiciona pre-processador e reordena por prioridade."""
        self.pre_processors.append(processor)
        self.pre_processors.sort(key=lambda p: p.priority)
        return self

    def add_post_processor(self, processor: PostProcessor) -> "MessageProcessor":
        """Adiciona pos-processador e reordena por prioridade."""
        self.post_processors.append(processor)
        self.post_processors.sort(key=lambda p: p.priority)
        return self

    def set_core_processor(self, processor) -> "MessageProcessor":
        """Define o processador core (mensagem que nenhum handler consumiu)."""
        self._core_processor = processor
        return self

    async def _run_post_processors(
        self, context: ProcessorContext, response: str
    ) -> ProcessorResult:
        """Roda pos-processadores; falha de um nao impede os demais."""
        for processor in self.post_processors:
            if not processor.should_run(context):
                logger.debug(f"Pulando {processor.name}")
                continue

            logger.debug(f"Rodando pos: {processor.name}")
            result = await processor.process(context, response)

            if not result.success:
                logger.warning(f"Pos-processor {processor.name} falhou: {result.error}")
                continue

            if result.response:
                response = result.response

        return ProcessorResult(success=True, response=response, should_continue=False)

    async def process(self, mensagem_raw: dict) -> ProcessorResult:
        """
        Processa mensagem pelo pipeline completo.

        Args:
            mensagem_raw: data do evento messages.upsert

        Returns:
            ProcessorResult final
        """
        context = ProcessorContext(mensagem_raw=mensagem_raw)
        context.metadata["tempo_inicio"] = time.time()

        try:
            # FASE 1: Handlers em ordem de prioridade
            logger.debug(f"Iniciando {len(self.pre_processors)} pre-processadores")

            for processor in self.pre_processors:
                if not processor.should_run(context):
                    logger.debug(f"Pulando {processor.name}")
                    continue

                logger.debug(f"Rodando pre: {processor.name}")
                result = await processor.process(context)

                if not result.success:
                    logger.warning(f"Pre-processor {processor.name} falhou: {result.error}")
                    return result

                if not result.should_continue:
                    logger.info(f"Mensagem consumida por {processor.name}")
                    result.metadata.setdefault("handler", processor.name)
                    if result.response:
                        final = await self._run_post_processors(context, result.response)
                        final.metadata = result.metadata
                        return final
                    return result

            # FASE 2: Nenhum handler consumiu
            if self._core_processor is None:
                return ProcessorResult(success=True, should_continue=False)

            core_result = await self._core_processor.process(context)
            if core_result.success and core_result.response:
                return await self._run_post_processors(context, core_result.response)
            return core_result

        except Exception as e:
            logger.error(f"Erro no pipeline: {e}", exc_info=True)
            return ProcessorResult(success=False, error=str(e))
