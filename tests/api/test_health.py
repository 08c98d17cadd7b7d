"""
Testes para as rotas de health check.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.routes import health
from app.core.exceptions import ConfigurationError, ExternalAPIError


@pytest.fixture
def central_mock():
    central = MagicMock()
    central.resumo.return_value = {"sessoes_ativas": 2, "temporizadores": {"espera": 1}}
    central.mensageiro.client.verificar_conexao = AsyncMock(
        return_value={"instance": {"instanceName": "Corridas", "state": "open"}}
    )
    with patch("app.api.routes.health.get_central", return_value=central):
        yield central


@pytest.fixture
def client():
    app = FastAPI()
    app.include_router(health.router)
    return TestClient(app)


def test_liveness(client, central_mock):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["central"] == {"sessoes_ativas": 2, "temporizadores": {"espera": 1}}
    assert data["task_failures"] == {}


def test_liveness_sem_central_configurada(client):
    with patch("app.api.routes.health.get_central", side_effect=ConfigurationError("sem chave")):
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["central"] == {"erro": "sem chave"}


class TestReadiness:

    def test_tudo_ok(self, client, central_mock):
        with patch("app.api.routes.health.get_supabase_client"), \
             patch("app.api.routes.health.verificar_conexao", return_value=True):
            response = client.get("/health/ready")

        assert response.json() == {
            "status": "ready",
            "checks": {"database": "ok", "evolution": "ok"},
        }

    def test_whatsapp_desconectado(self, client, central_mock):
        central_mock.mensageiro.client.verificar_conexao.return_value = {"state": "close"}

        with patch("app.api.routes.health.get_supabase_client"), \
             patch("app.api.routes.health.verificar_conexao", return_value=True):
            response = client.get("/health/ready")

        data = response.json()
        assert data["status"] == "degraded"
        assert data["checks"]["evolution"] == "state:close"

    def test_falhas_de_dependencias(self, client, central_mock):
        central_mock.mensageiro.client.verificar_conexao.side_effect = ExternalAPIError(
            "fora", service="evolution"
        )

        with patch(
            "app.api.routes.health.get_supabase_client",
            side_effect=ConfigurationError("SUPABASE_URL ausente"),
        ):
            response = client.get("/health/ready")

        assert response.json() == {
            "status": "degraded",
            "checks": {"database": "error", "evolution": "error"},
        }
