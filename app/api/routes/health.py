"""
Rotas de health check.

- /health: Liveness basico (sempre 200 se app rodando)
- /health/ready: Readiness (Supabase e Evolution)
"""
from fastapi import APIRouter
import logging

from app.core.config import settings
from app.core.exceptions import CorridasException
from app.core.tasks import get_task_failure_counts
from app.core.timezone import iso_utc
from app.services.corridas.central import get_central
from app.services.supabase import get_supabase_client, verificar_conexao

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check():
    """
    Verifica se a API esta funcionando.
    Inclui contagem de timers ativos e falhas de tasks em background.
    """
    resposta = {
        "status": "healthy",
        "timestamp": iso_utc(),
        "service": settings.APP_NAME,
        "task_failures": get_task_failure_counts(),
    }
    try:
        resposta["central"] = get_central().resumo()
    except CorridasException as e:
        resposta["central"] = {"erro": str(e)}
    return resposta


@router.get("/health/ready")
async def readiness_check():
    """
    Verifica se a API esta pronta para receber requests.
    """
    checks = {}

    try:
        checks["database"] = "ok" if verificar_conexao(get_supabase_client()) else "error"
    except CorridasException as e:
        logger.error(f"Supabase nao configurado: {e}")
        checks["database"] = "error"

    try:
        status = await get_central().mensageiro.client.verificar_conexao()
        estado = (status.get("instance") or {}).get("state") or status.get("state")
        checks["evolution"] = "ok" if estado == "open" else f"state:{estado or 'unknown'}"
    except CorridasException as e:
        logger.error(f"Evolution indisponivel: {e}")
        checks["evolution"] = "error"

    ok = all(v == "ok" for v in checks.values())
    return {
        "status": "ready" if ok else "degraded",
        "checks": checks,
    }
