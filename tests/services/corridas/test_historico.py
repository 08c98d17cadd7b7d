"""
Testes para o relatorio "my rides" / "minhas corridas".
"""
from datetime import timedelta

import pytest

from app.core.timezone import iso_utc
from app.services.corridas.historico import SEM_HISTORICO
from tests.conftest import (
    INSTANTE_INICIAL,
    MOTORISTA_1,
    PASSAGEIRO,
    conversar,
    corrida_aceita,
    criar_usuario,
)


@pytest.mark.asyncio
async def test_sem_historico(pipeline, mensageiro):
    await conversar(pipeline, PASSAGEIRO, "my rides")

    assert mensageiro.ultimo_texto(PASSAGEIRO) == SEM_HISTORICO


@pytest.mark.asyncio
@pytest.mark.usefixtures("motoristas")
async def test_corrida_aceita_menciona_motorista(pipeline, mensageiro):
    await corrida_aceita(pipeline)

    await conversar(pipeline, PASSAGEIRO, "minhas corridas")

    envio = mensageiro.para(PASSAGEIRO)[-1]
    assert "Your Last 1 Ride(s)" in envio.texto
    assert "*1. Ride #1* ✅ Completed" in envio.texto
    assert "🏍️ Mototaxi" in envio.texto
    assert "📅 10/03/2025 às 12:00" in envio.texto
    assert "📍 *From / De:* Praça Central" in envio.texto
    assert "👤 *Driver / Motorista:* @5584000000001" in envio.texto
    assert envio.mentions == [MOTORISTA_1]


@pytest.mark.asyncio
async def test_status_idioma_e_tentativas(pipeline, db, mensageiro):
    usuario = criar_usuario(db, "5584911110000")
    db.inserir(
        "corridas",
        usuario_id=usuario["id"],
        status="expired",
        idioma="pt",
        tipo_veiculo="taxi",
        tentativas=2,
        created_at=iso_utc(INSTANTE_INICIAL),
    )

    await conversar(pipeline, PASSAGEIRO, "my rides")

    texto = mensageiro.ultimo_texto(PASSAGEIRO)
    assert "⏰ Expirada" in texto
    assert "🚗 Táxi" in texto
    assert "Nenhum motorista aceitou" in texto
    assert "📍 *From / De:* N/A" in texto
    assert "🔄 *Retry attempts / Tentativas:* 2" in texto


@pytest.mark.asyncio
async def test_limita_as_cinco_mais_recentes(pipeline, db, mensageiro):
    usuario = criar_usuario(db, "5584911110000")
    for minutos in range(7):
        db.inserir(
            "corridas",
            usuario_id=usuario["id"],
            status="cancelled",
            idioma="en",
            tipo_veiculo="mototaxi",
            created_at=iso_utc(INSTANTE_INICIAL + timedelta(minutes=minutos)),
        )

    await conversar(pipeline, PASSAGEIRO, "my rides")

    texto = mensageiro.ultimo_texto(PASSAGEIRO)
    assert "Your Last 5 Ride(s)" in texto
    assert texto.count("❌ Cancelled") == 5
    assert "Ride #7*" in texto
    assert "Ride #2*" not in texto
