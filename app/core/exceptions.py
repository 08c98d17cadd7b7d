"""
Exceptions customizadas da central de corridas.
"""
from typing import Optional


class CorridasException(Exception):
    """Base exception para todos os erros do sistema."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None
    ):
        self.message = message
        self.details = details or {}
        self.original_error = original_error
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class DatabaseError(CorridasException):
    """Erro de banco de dados (Supabase)."""
    pass


class ExternalAPIError(CorridasException):
    """Erro de API externa (Evolution/WhatsApp)."""

    def __init__(
        self,
        message: str,
        service: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None
    ):
        self.service = service
        super().__init__(message, details, original_error)


class ValidationError(CorridasException):
    """Erro de validacao de dados de entrada."""
    pass


class CorridaIndisponivelError(CorridasException):
    """Corrida nao pode mais ser aceita ou alterada."""

    def __init__(self, corrida_id: int, status: Optional[str] = None):
        details = {"corrida_id": corrida_id}
        if status:
            details["status"] = status
        super().__init__("Corrida indisponivel", details)
        self.corrida_id = corrida_id
        self.status = status


class ConfigurationError(CorridasException):
    """Erro de configuracao do sistema."""
    pass
