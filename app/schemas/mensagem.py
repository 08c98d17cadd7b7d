"""
Schema para mensagem parseada (nosso formato interno).
"""
from pydantic import BaseModel
from typing import Optional, Literal
from datetime import datetime


class Localizacao(BaseModel):
    """Coordenadas de um pin do WhatsApp."""

    latitude: float
    longitude: float


class MensagemRecebida(BaseModel):
    """Mensagem recebida e parseada do WhatsApp."""

    # Identificação
    remetente: str  # JID ou LID completo, usado para responder
    message_id: str
    from_me: bool

    # Conteúdo
    tipo: Literal["texto", "localizacao", "audio", "imagem", "documento", "video", "sticker", "outro"]
    texto: Optional[str] = None
    localizacao: Optional[Localizacao] = None

    # Metadados
    nome_contato: Optional[str] = None  # Nome salvo no WhatsApp
    timestamp: datetime

    # Flags
    is_grupo: bool = False
    is_status: bool = False
    is_lid: bool = False
    remetente_alt: Optional[str] = None  # JID com telefone real quando remetente é LID
