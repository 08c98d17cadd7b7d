"""
Utilidades para tasks assincronas.

Wrappers seguros para asyncio.create_task usados pelos temporizadores:
uma falha dentro de um timer e logada e nunca derruba o event loop.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Coroutine, Any, Optional

logger = logging.getLogger(__name__)

# Contador de falhas por tipo (exposto no /health)
_task_failures: dict[str, int] = {}


def _nome_base(task_name: str) -> str:
    """Agrupa 'expiracao_corrida:42' em 'expiracao_corrida'."""
    return task_name.split(":", 1)[0]


async def _safe_wrapper(
    coro: Coroutine,
    task_name: str,
    on_error: Optional[Callable[[Exception], None]] = None
) -> Any:
    """
    Executa coroutine com error handling.

    Args:
        coro: Coroutine a executar
        task_name: Nome para logging/metricas
        on_error: Callback opcional para erros
    """
    try:
        return await coro
    except asyncio.CancelledError:
        logger.debug(f"Task cancelada: {task_name}")
        raise
    except Exception as e:
        chave = _nome_base(task_name)
        _task_failures[chave] = _task_failures.get(chave, 0) + 1

        logger.error(
            f"Erro em background task '{task_name}': {e}",
            exc_info=True,
            extra={
                "task_name": task_name,
                "error_type": type(e).__name__,
                "total_failures": _task_failures[chave]
            }
        )

        if on_error:
            try:
                on_error(e)
            except Exception as callback_error:
                logger.error(f"Erro no callback on_error: {callback_error}")

        # Nao re-raise para nao crashar outras tasks
        return None


def safe_create_task(
    coro: Coroutine,
    name: Optional[str] = None,
    on_error: Optional[Callable[[Exception], None]] = None
) -> asyncio.Task:
    """
    Cria task com error handling automatico.

    Uso:
        safe_create_task(enviar_pedido_avaliacao(42), name="avaliacao:42")
    """
    task_name = name or (coro.__qualname__ if hasattr(coro, '__qualname__') else "unknown")
    wrapped = _safe_wrapper(coro, task_name, on_error)
    return asyncio.create_task(wrapped, name=task_name)


def schedule_with_delay(
    fabrica: Callable[[], Awaitable[Any]],
    delay_seconds: float,
    name: Optional[str] = None
) -> asyncio.Task:
    """
    Agenda execucao apos delay.

    Recebe uma fabrica (callable sem argumentos) em vez da coroutine pronta
    para que um agendamento cancelado antes do disparo nao deixe coroutine
    criada e nunca aguardada.

    Uso:
        schedule_with_delay(
            lambda: expirar_corrida(42),
            delay_seconds=600,
            name="expiracao_corrida:42"
        )
    """
    async def delayed():
        if delay_seconds > 0:
            await asyncio.sleep(delay_seconds)
        return await fabrica()

    return safe_create_task(delayed(), name=name or "delayed_task")


def get_task_failure_counts() -> dict[str, int]:
    """Retorna contagem de falhas por task."""
    return _task_failures.copy()


def reset_task_failure_counts():
    """Reseta contadores (para testes)."""
    _task_failures.clear()
