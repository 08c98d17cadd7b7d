"""
Testes para utilidades de tasks assincronas.
"""
import asyncio
from unittest.mock import patch

import pytest

from app.core.tasks import (
    get_task_failure_counts,
    reset_task_failure_counts,
    safe_create_task,
    schedule_with_delay,
)


class TestSafeCreateTask:
    """Testes para safe_create_task."""

    def setup_method(self):
        """Limpa contadores antes de cada teste."""
        reset_task_failure_counts()

    @pytest.mark.asyncio
    async def test_executa_task_com_sucesso(self):
        """Task bem sucedida deve retornar resultado."""
        async def task_ok():
            return "sucesso"

        task = safe_create_task(task_ok(), name="task_ok")
        result = await task

        assert result == "sucesso"
        assert get_task_failure_counts().get("task_ok", 0) == 0

    @pytest.mark.asyncio
    async def test_captura_erro_sem_crashar(self):
        """Task com erro deve ser capturada sem crashar."""
        async def task_erro():
            raise ValueError("Erro simulado")

        task = safe_create_task(task_erro(), name="task_erro")
        result = await task

        assert result is None
        assert get_task_failure_counts()["task_erro"] == 1

    @pytest.mark.asyncio
    async def test_agrupa_falhas_pelo_prefixo(self):
        """'expiracao:42' e 'expiracao:43' contam no mesmo grupo."""
        async def task_erro():
            raise RuntimeError("boom")

        await safe_create_task(task_erro(), name="espera_corrida:42")
        await safe_create_task(task_erro(), name="espera_corrida:43")

        assert get_task_failure_counts() == {"espera_corrida": 2}

    @pytest.mark.asyncio
    async def test_loga_erro(self):
        """Erro deve ser logado."""
        async def task_erro():
            raise RuntimeError("Erro de teste")

        with patch("app.core.tasks.logger") as mock_logger:
            await safe_create_task(task_erro(), name="task_logada")

        mock_logger.error.assert_called_once()
        assert "task_logada" in mock_logger.error.call_args[0][0]

    @pytest.mark.asyncio
    async def test_on_error_chamado(self):
        """Callback on_error recebe a exception."""
        recebidas = []

        async def task_erro():
            raise KeyError("x")

        await safe_create_task(task_erro(), name="cb", on_error=recebidas.append)

        assert len(recebidas) == 1
        assert isinstance(recebidas[0], KeyError)


class TestScheduleWithDelay:
    """Testes para schedule_with_delay."""

    @pytest.mark.asyncio
    async def test_executa_apos_delay(self):
        """Fabrica e chamada depois do atraso."""
        chamadas = []

        async def acao():
            chamadas.append(1)
            return "ok"

        task = schedule_with_delay(acao, 0.01, name="atrasada")
        assert chamadas == []
        assert await task == "ok"
        assert chamadas == [1]

    @pytest.mark.asyncio
    async def test_cancelada_antes_do_disparo_nao_cria_coroutine(self):
        """Cancelar antes do atraso nunca chama a fabrica."""
        chamadas = []

        def fabrica():
            chamadas.append(1)

            async def nada():
                return None
            return nada()

        task = schedule_with_delay(fabrica, 10, name="cancelada")
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert chamadas == []
