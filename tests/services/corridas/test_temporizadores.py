"""
Testes para temporizadores e restauracao apos restart.

A restauracao e exercitada montando uma segunda central sobre o mesmo
banco, como acontece quando o processo reinicia.
"""
import asyncio
from datetime import timedelta

import pytest

from app.core.tasks import get_task_failure_counts
from app.core.timezone import iso_utc
from app.pipeline.setup import criar_pipeline
from app.services.corridas.constantes import Estado
from app.services.corridas.temporizadores import (
    GRUPO_AVALIACAO_MOTORISTA,
    GRUPO_AVALIACAO_PASSAGEIRO,
    GRUPO_AVISO_CONVERSA,
    GRUPO_ESPERA,
    GRUPO_KEEPALIVE,
    GRUPO_TIMEOUT_CONVERSA,
    Agendador,
)
from app.services.corridas.traducoes import t
from tests.conftest import (
    MOTORISTA_1,
    PASSAGEIRO,
    AgendadorManual,
    conversar,
    corrida_aceita,
    montar_central,
    pedir_corrida,
)


@pytest.fixture
def reiniciar(db, mensageiro, relogio, settings_teste):
    """Monta uma central nova sobre o mesmo banco (processo reiniciado)."""
    def _reiniciar():
        agendador = AgendadorManual()
        return montar_central(db, mensageiro, relogio, agendador, settings_teste), agendador
    return _reiniciar


class TestAgendador:

    @pytest.mark.asyncio
    async def test_reagendar_substitui_timer(self):
        agendador = Agendador()
        disparos = []

        async def acao(nome):
            disparos.append(nome)

        agendador.agendar("grupo", 1, 0.01, lambda: acao("primeiro"))
        agendador.agendar("grupo", 1, 0.01, lambda: acao("segundo"))
        await asyncio.sleep(0.05)

        assert disparos == ["segundo"]
        assert not agendador.ativo("grupo", 1)

    @pytest.mark.asyncio
    async def test_cancelar_e_idempotente(self):
        agendador = Agendador()
        agendador.agendar("grupo", 1, 10, lambda: asyncio.sleep(0))

        assert agendador.cancelar("grupo", 1) is True
        assert agendador.cancelar("grupo", 1) is False
        assert agendador.pendentes("grupo") == []
        await asyncio.sleep(0)

    @pytest.mark.asyncio
    async def test_encerrar_cancela_tudo(self):
        agendador = Agendador()
        agendador.agendar("a", 1, 10, lambda: asyncio.sleep(0))
        agendador.agendar("b", 2, 10, lambda: asyncio.sleep(0))
        assert agendador.total() == {"a": 1, "b": 1}

        await agendador.encerrar()

        assert agendador.total() == {}

    @pytest.mark.asyncio
    async def test_falha_no_timer_e_contada(self):
        agendador = Agendador()

        async def quebra():
            raise RuntimeError("boom")

        agendador.agendar(GRUPO_ESPERA, 7, 0, quebra)
        await asyncio.sleep(0.01)

        assert get_task_failure_counts() == {GRUPO_ESPERA: 1}


@pytest.mark.usefixtures("motoristas")
class TestRestaurarCorridas:

    @pytest.mark.asyncio
    async def test_reagenda_espera_e_keepalive(self, pipeline, relogio, reiniciar):
        await pedir_corrida(pipeline)
        relogio.avancar(minutes=4)

        nova, agendador = reiniciar()
        resumo = await nova.restaurar()

        assert resumo["corridas"] == {"reagendadas": 1, "expiradas": 0}
        assert agendador.atraso(GRUPO_ESPERA, 1) == 360
        assert agendador.atraso(GRUPO_KEEPALIVE, 1) == 120
        assert nova.sessoes.corrida_de(PASSAGEIRO) == 1

    @pytest.mark.asyncio
    async def test_espera_vencida_expira_uma_vez(self, pipeline, db, mensageiro, relogio, reiniciar):
        await pedir_corrida(pipeline)
        relogio.avancar(minutes=11)

        nova, _ = reiniciar()
        resumo = await nova.restaurar()

        assert resumo["corridas"] == {"reagendadas": 0, "expiradas": 1}
        assert db.linha("corridas", 1)["status"] == "expired"
        assert nova.sessoes.obter(PASSAGEIRO).estado == Estado.AWAITING_RETRY_DECISION

        outra, agendador = reiniciar()
        resumo = await outra.restaurar()

        assert resumo["corridas"]["expiradas"] == 0
        assert resumo["conversas"] == {"reagendadas": 1, "encerradas": 0}
        assert outra.sessoes.obter(PASSAGEIRO).estado == Estado.AWAITING_RETRY_DECISION
        assert agendador.atraso(GRUPO_TIMEOUT_CONVERSA, PASSAGEIRO) == 300
        avisos = [x for x in mensageiro.textos_para(PASSAGEIRO) if "within 10 minutes" in x]
        assert len(avisos) == 1

    @pytest.mark.asyncio
    async def test_corrida_em_montagem_nao_e_reagendada(self, pipeline, reiniciar):
        await conversar(pipeline, PASSAGEIRO, "taxi", "1", "1")

        nova, agendador = reiniciar()
        resumo = await nova.restaurar()

        assert resumo["corridas"] == {"reagendadas": 0, "expiradas": 0}
        assert not agendador.ativo(GRUPO_ESPERA, 1)


class TestRestaurarConversas:

    @pytest.mark.asyncio
    async def test_reagenda_pelo_tempo_restante(self, pipeline, db, relogio, reiniciar):
        await conversar(pipeline, PASSAGEIRO, "taxi", "1")
        relogio.avancar(minutes=2)

        nova, agendador = reiniciar()
        resumo = await nova.restaurar()

        assert resumo["conversas"] == {"reagendadas": 1, "encerradas": 0}
        assert agendador.atraso(GRUPO_TIMEOUT_CONVERSA, PASSAGEIRO) == 180
        assert agendador.atraso(GRUPO_AVISO_CONVERSA, PASSAGEIRO) == 30

        sessao = nova.sessoes.obter(PASSAGEIRO)
        assert sessao.estado == Estado.AWAITING_VEHICLE_TYPE
        assert sessao.idioma == "en"

        await conversar(criar_pipeline(nova), PASSAGEIRO, "2")
        assert nova.sessoes.obter(PASSAGEIRO).estado == Estado.AWAITING_NAME
        assert db.linha("corridas", 1)["tipo_veiculo"] == "taxi"

    @pytest.mark.asyncio
    async def test_aviso_vencido_nao_e_reenviado(self, pipeline, relogio, reiniciar):
        await conversar(pipeline, PASSAGEIRO, "taxi")
        relogio.avancar(minutes=3)

        nova, agendador = reiniciar()
        await nova.restaurar()

        assert not agendador.ativo(GRUPO_AVISO_CONVERSA, PASSAGEIRO)
        assert agendador.atraso(GRUPO_TIMEOUT_CONVERSA, PASSAGEIRO) == 120

    @pytest.mark.asyncio
    async def test_conversa_vencida_encerra_e_expira_pedido(self, pipeline, db, mensageiro, relogio, reiniciar):
        await conversar(pipeline, PASSAGEIRO, "taxi", "1", "1")
        relogio.avancar(minutes=6)

        nova, _ = reiniciar()
        resumo = await nova.restaurar()

        assert resumo["conversas"] == {"reagendadas": 0, "encerradas": 1}
        assert db.linha("corridas", 1)["status"] == "expired"
        assert PASSAGEIRO not in nova.sessoes
        assert mensageiro.ultimo_texto(PASSAGEIRO) == t("en", "sessao_expirada")


@pytest.mark.usefixtures("motoristas")
class TestRestaurarAvaliacoes:

    @pytest.mark.asyncio
    async def test_pedidos_vencidos_sao_enviados(self, pipeline, db, mensageiro, relogio, reiniciar):
        await corrida_aceita(pipeline)
        relogio.avancar(hours=3)

        nova, _ = reiniciar()
        resumo = await nova.restaurar()

        assert resumo["avaliacoes"] == {"reagendadas": 0, "enviadas": 1}
        corrida = db.linha("corridas", 1)
        assert corrida["avaliacao_passageiro_enviada"] is True
        assert corrida["avaliacao_motorista_enviada"] is True
        assert corrida["prazo_avaliacao_em"] == iso_utc(relogio.agora() + timedelta(hours=24))
        assert "*Rate Your Driver*" in mensageiro.ultimo_texto(PASSAGEIRO)
        assert "*Avalie Seu Passageiro*" in mensageiro.ultimo_texto(MOTORISTA_1)

        outra, _ = reiniciar()
        assert (await outra.restaurar())["avaliacoes"] == {"reagendadas": 0, "enviadas": 0}

    @pytest.mark.asyncio
    async def test_pedidos_futuros_sao_reagendados(self, pipeline, relogio, reiniciar):
        await corrida_aceita(pipeline)
        relogio.avancar(hours=1)

        nova, agendador = reiniciar()
        resumo = await nova.restaurar()

        assert resumo["avaliacoes"] == {"reagendadas": 1, "enviadas": 0}
        assert agendador.atraso(GRUPO_AVALIACAO_PASSAGEIRO, 1) == 3600
        assert agendador.atraso(GRUPO_AVALIACAO_MOTORISTA, 1) == 3600
