"""
Testes para o webhook da Evolution.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.routes import webhook
from app.pipeline.base import ProcessorResult
from app.services.corridas.traducoes import t
from tests.conftest import PASSAGEIRO, payload_texto


@pytest.fixture
def pipeline_mock():
    pipeline = MagicMock()
    pipeline.process = AsyncMock(return_value=ProcessorResult(success=True))
    with patch("app.api.routes.webhook.get_pipeline", return_value=pipeline):
        yield pipeline


@pytest.fixture
def client():
    app = FastAPI()
    app.include_router(webhook.router)
    return TestClient(app)


class TestEvolutionWebhook:

    def test_mensagem_vai_para_o_pipeline(self, client, pipeline_mock):
        data = payload_texto(PASSAGEIRO, "taxi")

        response = client.post(
            "/webhook/evolution",
            json={"event": "messages.upsert", "instance": "Corridas", "data": data},
        )

        assert response.status_code == 200
        assert response.json() == {"status": "received"}
        pipeline_mock.process.assert_awaited_once_with(data)

    def test_payload_invalido(self, client, pipeline_mock):
        response = client.post("/webhook/evolution", json={"data": {}})

        assert response.status_code == 400
        assert response.json() == {"status": "invalid_payload"}
        pipeline_mock.process.assert_not_called()

    def test_corpo_que_nao_e_json(self, client, pipeline_mock):
        response = client.post(
            "/webhook/evolution",
            content=b"nao e json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400

    @pytest.mark.parametrize("evento", ["connection.update", "qrcode.updated"])
    def test_outros_eventos_nao_processam(self, client, pipeline_mock, evento):
        response = client.post(
            "/webhook/evolution",
            json={"event": evento, "data": {"state": "open"}},
        )

        assert response.status_code == 200
        pipeline_mock.process.assert_not_called()

    def test_upsert_sem_data(self, client, pipeline_mock):
        response = client.post(
            "/webhook/evolution",
            json={"event": "messages.upsert", "data": None},
        )

        assert response.status_code == 200
        pipeline_mock.process.assert_not_called()


class TestProcessarMensagemPipeline:

    @pytest.mark.asyncio
    async def test_erro_no_pipeline_nao_propaga(self, pipeline_mock):
        pipeline_mock.process.side_effect = RuntimeError("boom")

        await webhook.processar_mensagem_pipeline({"key": {}})

        pipeline_mock.process.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_processamento_em_serie(self, pipeline, mensageiro):
        with patch("app.api.routes.webhook.get_pipeline", return_value=pipeline):
            await webhook.processar_mensagem_pipeline(payload_texto(PASSAGEIRO, "taxi"))
            await webhook.processar_mensagem_pipeline(payload_texto(PASSAGEIRO, "2"))

        assert mensageiro.ultimo_texto(PASSAGEIRO) == t("pt", "tipo_veiculo")
