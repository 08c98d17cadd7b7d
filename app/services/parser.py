"""
Parser de mensagens da Evolution API.
"""
from datetime import datetime, timezone
from typing import Optional
import logging

from pydantic import ValidationError as PydanticValidationError

from app.core.logging import mascarar
from app.schemas.evolution import MessageContent, MessageData
from app.schemas.mensagem import Localizacao, MensagemRecebida

logger = logging.getLogger(__name__)


def extrair_telefone(jid: str) -> str:
    """
    Extrai número de telefone do JID do WhatsApp.

    Exemplo:
        "558499999999@s.whatsapp.net" -> "558499999999"
        "558499999999:12@s.whatsapp.net" -> "558499999999" (dispositivo)
    """
    if not jid:
        return ""
    return jid.split("@")[0].split(":")[0]


def is_grupo(jid: str) -> bool:
    """Verifica se JID é de grupo."""
    return "@g.us" in jid if jid else False


def is_status(jid: str) -> bool:
    """Verifica se é status/story."""
    return "status@broadcast" in jid if jid else False


def is_lid(jid: str) -> bool:
    """Verifica se é identificador LID (dispositivo vinculado)."""
    return jid.endswith("@lid") if jid else False


def extrair_texto(message: Optional[MessageContent]) -> Optional[str]:
    """
    Extrai texto da mensagem.
    WhatsApp tem vários formatos possíveis.
    """
    if message is None:
        return None

    if message.conversation is not None:
        return message.conversation

    if message.extendedTextMessage:
        return message.extendedTextMessage.get("text")

    return None


def extrair_localizacao(message: Optional[MessageContent]) -> Optional[Localizacao]:
    """Extrai coordenadas de pin fixo ou de localização em tempo real."""
    if message is None:
        return None
    pin = message.locationMessage or message.liveLocationMessage
    if pin is None:
        return None
    return Localizacao(latitude=pin.degreesLatitude, longitude=pin.degreesLongitude)


def identificar_tipo(message: Optional[MessageContent]) -> str:
    """Identifica o tipo de mensagem."""
    if message is None:
        return "outro"

    if message.conversation is not None or message.extendedTextMessage:
        return "texto"
    if message.locationMessage or message.liveLocationMessage:
        return "localizacao"

    extras = message.model_extra or {}
    for chave, tipo in (
        ("audioMessage", "audio"),
        ("imageMessage", "imagem"),
        ("documentMessage", "documento"),
        ("videoMessage", "video"),
        ("stickerMessage", "sticker"),
    ):
        if chave in extras:
            return tipo
    return "outro"


def _timestamp(valor: Optional[int]) -> datetime:
    if not valor:
        return datetime.now(timezone.utc)
    return datetime.fromtimestamp(valor, tz=timezone.utc)


def parsear_mensagem(data: dict) -> Optional[MensagemRecebida]:
    """
    Converte payload da Evolution para nosso formato interno.

    Args:
        data: campo `data` do evento messages.upsert

    Returns:
        MensagemRecebida ou None se não for válida
    """
    try:
        dados = MessageData.model_validate(data)
    except PydanticValidationError as e:
        logger.warning(f"Payload de mensagem invalido: {e.error_count()} erro(s)")
        return None

    jid = dados.key.remoteJid
    if not jid or not dados.key.id:
        logger.warning("Mensagem sem JID ou ID")
        return None

    if is_status(jid):
        logger.debug("Status/story recebido")
        return MensagemRecebida(
            remetente=jid,
            message_id=dados.key.id,
            from_me=dados.key.fromMe,
            tipo="outro",
            timestamp=_timestamp(dados.messageTimestamp),
            is_status=True,
        )

    return MensagemRecebida(
        remetente=jid,
        message_id=dados.key.id,
        from_me=dados.key.fromMe,
        tipo=identificar_tipo(dados.message),
        texto=extrair_texto(dados.message),
        localizacao=extrair_localizacao(dados.message),
        nome_contato=dados.pushName,
        timestamp=_timestamp(dados.messageTimestamp),
        is_grupo=is_grupo(jid),
        is_lid=is_lid(jid),
        remetente_alt=dados.key.remoteJidAlt,
    )


def deve_processar(mensagem: MensagemRecebida) -> bool:
    """Verifica se mensagem deve ser processada."""

    # Ignorar nossas próprias mensagens
    if mensagem.from_me:
        return False

    # A central só atende conversas privadas
    if mensagem.is_grupo:
        return False

    if mensagem.is_status:
        return False

    if not mensagem.texto and mensagem.localizacao is None:
        logger.debug(f"Mensagem sem texto de {mascarar(mensagem.remetente)} ignorada")
        return False

    return True
