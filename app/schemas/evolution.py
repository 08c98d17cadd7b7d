"""
Schemas para payloads da Evolution API.
"""

from pydantic import BaseModel, ConfigDict
from typing import Optional, Any


class MessageKey(BaseModel):
    """Identificador da mensagem."""

    remoteJid: str  # 558499999999@s.whatsapp.net ou 12345@lid
    fromMe: bool = False
    id: str
    remoteJidAlt: Optional[str] = None  # JID com telefone quando remoteJid é LID


class LocationMessage(BaseModel):
    """Pin de localização enviado pelo contato."""

    model_config = ConfigDict(extra="allow")

    degreesLatitude: float
    degreesLongitude: float
    name: Optional[str] = None
    address: Optional[str] = None


class MessageContent(BaseModel):
    """Conteúdo da mensagem."""

    model_config = ConfigDict(extra="allow")

    conversation: Optional[str] = None  # Texto simples
    extendedTextMessage: Optional[dict] = None  # Texto com preview
    locationMessage: Optional[LocationMessage] = None
    liveLocationMessage: Optional[LocationMessage] = None


class MessageData(BaseModel):
    """Dados da mensagem recebida (evento messages.upsert)."""

    model_config = ConfigDict(extra="allow")

    key: MessageKey
    message: Optional[MessageContent] = None
    messageTimestamp: Optional[int] = None
    pushName: Optional[str] = None  # Nome do contato


class EvolutionWebhookPayload(BaseModel):
    """Payload completo do webhook Evolution."""

    event: str  # messages.upsert, connection.update, ...
    instance: Optional[str] = None
    data: Any  # Dados variam por tipo de evento
