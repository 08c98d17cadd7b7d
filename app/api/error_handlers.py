"""
Exception handlers para FastAPI.
"""

import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.exceptions import (
    CorridasException,
    CorridaIndisponivelError,
    DatabaseError,
    ExternalAPIError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_POR_TIPO = (
    (ValidationError, 400),
    (CorridaIndisponivelError, 409),
    (ExternalAPIError, 502),
    (DatabaseError, 503),
)


async def corridas_exception_handler(request: Request, exc: CorridasException) -> JSONResponse:
    """Handler para todas as exceptions customizadas."""
    status_code = 500
    for tipo, codigo in _STATUS_POR_TIPO:
        if isinstance(exc, tipo):
            status_code = codigo
            break

    error_type = exc.__class__.__name__
    logger.error(
        f"{error_type}: {exc.message}",
        extra={"error_type": error_type, "details": exc.details, "path": request.url.path},
    )

    return JSONResponse(
        status_code=status_code,
        content={"error": error_type, "message": exc.message, "details": exc.details},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler para exceptions nao tratadas."""
    logger.exception(f"Erro nao tratado: {exc}", extra={"path": request.url.path})

    return JSONResponse(
        status_code=500,
        content={
            "error": "InternalServerError",
            "message": "Erro interno do servidor",
            "details": {},
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Registra os exception handlers no app FastAPI."""
    app.add_exception_handler(CorridasException, corridas_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
