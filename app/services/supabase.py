"""
Cliente Supabase para operacoes de banco de dados.
"""
from functools import lru_cache
import logging

from supabase import create_client, Client

from app.core.config import settings
from app.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@lru_cache()
def get_supabase_client() -> Client:
    """
    Retorna cliente Supabase cacheado.
    Usa service key para acesso completo.
    """
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
        raise ConfigurationError("SUPABASE_URL e SUPABASE_SERVICE_KEY sao obrigatorios")

    logger.info("Criando cliente Supabase")
    return create_client(
        settings.SUPABASE_URL,
        settings.SUPABASE_SERVICE_KEY
    )


def verificar_conexao(client: Client) -> bool:
    """Consulta leve usada pelo health check."""
    try:
        client.table("corridas").select("id").limit(1).execute()
        return True
    except Exception as e:
        logger.error(f"Supabase indisponivel: {e}")
        return False
