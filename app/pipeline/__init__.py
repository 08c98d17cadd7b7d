"""
Pipeline de processamento de mensagens.

Cada handler de roteamento e um pre-processador com prioridade fixa.
"""

from .processor import MessageProcessor, ProcessorResult
from .base import PreProcessor, PostProcessor, ProcessorContext, CentralPreProcessor
from .setup import criar_pipeline, get_pipeline

__all__ = [
    "MessageProcessor",
    "ProcessorResult",
    "ProcessorContext",
    "PreProcessor",
    "PostProcessor",
    "CentralPreProcessor",
    "criar_pipeline",
    "get_pipeline",
]
