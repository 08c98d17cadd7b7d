"""
Endpoint de webhook da Evolution API.
"""
import asyncio
import logging

from fastapi import APIRouter, Request, BackgroundTasks
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from app.pipeline.setup import get_pipeline
from app.schemas.evolution import EvolutionWebhookPayload

router = APIRouter(prefix="/webhook", tags=["Webhooks"])
logger = logging.getLogger(__name__)

# Mensagens processadas uma por vez, em ordem de chegada
_lock_processamento = asyncio.Lock()


@router.post("/evolution")
async def evolution_webhook(
    request: Request,
    background_tasks: BackgroundTasks
):
    """
    Recebe webhooks da Evolution API.

    Responde imediatamente com 200 e processa em background
    para nao bloquear a Evolution.
    """
    try:
        payload = EvolutionWebhookPayload.model_validate(await request.json())
    except (ValueError, PydanticValidationError) as e:
        logger.warning(f"Payload invalido: {e}")
        return JSONResponse({"status": "invalid_payload"}, status_code=400)

    if payload.event == "messages.upsert":
        if isinstance(payload.data, dict):
            background_tasks.add_task(processar_mensagem_pipeline, payload.data)
            logger.debug("Mensagem agendada para processamento")
        else:
            logger.warning("messages.upsert sem data")

    elif payload.event == "connection.update":
        logger.info(f"Status conexao: {payload.data}")

    else:
        logger.debug(f"Evento ignorado: {payload.event}")

    return JSONResponse({"status": "received"})


async def processar_mensagem_pipeline(data: dict):
    """
    Processa mensagem usando o pipeline de roteamento.

    Cada handler decide se consome a mensagem; o primeiro que consome
    encerra o pipeline.
    """
    async with _lock_processamento:
        try:
            result = await get_pipeline().process(data)

            if not result.success:
                logger.error(f"Pipeline falhou: {result.error}")
            else:
                logger.debug(f"Pipeline concluido: {result.metadata}")

        except Exception as e:
            logger.error(f"Erro no pipeline: {e}", exc_info=True)
