"""
HTTP Client singleton com connection pooling.

Centraliza as chamadas para a Evolution API:
- Reutilização de conexões
- HTTP/2 multiplexing
- Timeout padronizado
- Fechamento gracioso no shutdown
"""

import httpx
import logging
from typing import Optional

logger = logging.getLogger(__name__)

# Cliente HTTP global (singleton)
_client: Optional[httpx.AsyncClient] = None


async def get_http_client() -> httpx.AsyncClient:
    """
    Obtém o cliente HTTP singleton.

    Cria o cliente na primeira chamada.
    """
    global _client
    if _client is None:
        _client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=10.0,
                read=30.0,
                write=30.0,
                pool=5.0,
            ),
            limits=httpx.Limits(
                max_connections=50,
                max_keepalive_connections=10,
                keepalive_expiry=30.0,
            ),
            http2=True,
            headers={
                "User-Agent": "Central-Corridas/1.0",
            },
            follow_redirects=True,
        )
        logger.info("HTTP client singleton criado")

    return _client


async def close_http_client() -> None:
    """
    Fecha o cliente HTTP.

    Chamado no shutdown da aplicação.
    """
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
        logger.info("HTTP client singleton fechado")
