"""
Classes base para processadores.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional
import logging

from app.schemas.mensagem import Localizacao, MensagemRecebida

if TYPE_CHECKING:
    from app.repositories.pessoas import Motorista, Usuario
    from app.services.corridas.central import CentralCorridas
    from app.services.corridas.comandos import Comando

logger = logging.getLogger(__name__)


@dataclass
class ProcessorContext:
    """Contexto compartilhado entre processadores."""
    mensagem_raw: dict                              # Payload original (data do webhook)
    mensagem: Optional[MensagemRecebida] = None     # Mensagem parseada
    remetente: str = ""                             # JID/LID do remetente
    mensagem_texto: str = ""                        # Texto da mensagem
    localizacao: Optional[Localizacao] = None       # Pin de localizacao
    usuario: Optional["Usuario"] = None             # Passageiro, se existir
    motorista: Optional["Motorista"] = None         # Motorista, se existir
    comando: Optional["Comando"] = None             # Comando reconhecido
    resposta: Optional[str] = None                  # Resposta a enviar
    metadata: dict = field(default_factory=dict)    # Dados extras


@dataclass
class ProcessorResult:
    """Resultado de um processador."""
    success: bool = True
    should_continue: bool = True          # Se deve continuar pipeline
    response: Optional[str] = None        # Resposta a enviar (se parar)
    error: Optional[str] = None           # Mensagem de erro
    metadata: dict = field(default_factory=dict)


class PreProcessor(ABC):
    """
    Base para pre-processadores.

    Cada handler de roteamento e um pre-processador. O primeiro que
    retorna should_continue=False consome a mensagem.
    """

    name: str = "base_preprocessor"
    priority: int = 100  # Menor = roda primeiro

    @abstractmethod
    async def process(self, context: ProcessorContext) -> ProcessorResult:
        """
        Processa o contexto.

        Args:
            context: Contexto atual do pipeline

        Returns:
            ProcessorResult indicando se deve continuar
        """
        pass

    def should_run(self, context: ProcessorContext) -> bool:
        """
        Verifica se este processador deve rodar.

        Override para adicionar condicoes.
        """
        return True


class PostProcessor(ABC):
    """
    Base para pos-processadores.

    Rodam quando um pre-processador para o pipeline com uma resposta
    simples (ex: enviar a resposta).
    """

    name: str = "base_postprocessor"
    priority: int = 100

    @abstractmethod
    async def process(
        self,
        context: ProcessorContext,
        response: str
    ) -> ProcessorResult:
        """
        Processa a resposta.

        Args:
            context: Contexto do pipeline
            response: Resposta gerada

        Returns:
            ProcessorResult com resposta possivelmente modificada
        """
        pass

    def should_run(self, context: ProcessorContext) -> bool:
        """Verifica se este processador deve rodar."""
        return True


class CentralPreProcessor(PreProcessor):
    """Pre-processador que atua sobre a central de corridas."""

    def __init__(self, central: "CentralCorridas"):
        self.central = central
