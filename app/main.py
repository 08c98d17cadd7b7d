"""
Central de Corridas - API Principal
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.error_handlers import register_exception_handlers
from app.api.routes import health, webhook
from app.core.config import settings
from app.core.logging import setup_logging
from app.services.corridas.central import get_central
from app.services.http_client import close_http_client

# Configurar logging
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Gerencia startup e shutdown da aplicação."""
    # Startup
    logger.info(f"Iniciando {settings.APP_NAME}...")
    if settings.RESTAURAR_TEMPORIZADORES:
        resumo = await get_central().restaurar()
        logger.info(f"Estado restaurado: {resumo}")
    yield
    # Shutdown
    logger.info(f"Encerrando {settings.APP_NAME}...")
    await get_central().desligar()
    await close_http_client()


app = FastAPI(
    title=settings.APP_NAME,
    description="Central de corridas de táxi e mototáxi via WhatsApp",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Ajustar em produção
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Rotas
app.include_router(health.router, tags=["Health"])
app.include_router(webhook.router)


@app.get("/")
async def root():
    """Endpoint raiz."""
    return {
        "app": settings.APP_NAME,
        "status": "running",
        "docs": "/docs",
    }
