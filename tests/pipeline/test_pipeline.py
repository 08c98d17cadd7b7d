"""
Testes para o pipeline de roteamento de mensagens.
"""
import pytest

from app.pipeline.base import PostProcessor, PreProcessor, ProcessorResult
from app.pipeline.processor import MessageProcessor
from app.pipeline.setup import criar_pipeline
from app.services.corridas.constantes import Estado
from app.services.corridas.traducoes import (
    CORRIDA_NAO_ENCONTRADA_BILINGUE,
    NAO_PODE_CANCELAR_BILINGUE,
    m,
)
from tests.conftest import (
    MOTORISTA_2,
    PASSAGEIRO,
    conversar,
    jid,
    payload_texto,
    pedir_corrida,
)

ESTRANHO = jid("5584977770000")


# =============================================================================
# MessageProcessor isolado
# =============================================================================


class PreFake(PreProcessor):

    def __init__(self, name, priority, chamadas, result=None, erro=None):
        self.name = name
        self.priority = priority
        self.chamadas = chamadas
        self.result = result or ProcessorResult(success=True)
        self.erro = erro

    async def process(self, context):
        self.chamadas.append(self.name)
        if self.erro:
            raise self.erro
        return self.result


class PostFake(PostProcessor):

    def __init__(self, name, priority, chamadas, result):
        self.name = name
        self.priority = priority
        self.chamadas = chamadas
        self.result = result

    async def process(self, context, response):
        self.chamadas.append(self.name)
        return self.result


class TestMessageProcessor:

    @pytest.mark.asyncio
    async def test_roda_por_prioridade_ate_consumir(self):
        chamadas = []
        processor = MessageProcessor()
        processor.add_pre_processor(PreFake("c", 30, chamadas))
        processor.add_pre_processor(
            PreFake("b", 20, chamadas, ProcessorResult(success=True, should_continue=False))
        )
        processor.add_pre_processor(PreFake("a", 10, chamadas))

        result = await processor.process({})

        assert chamadas == ["a", "b"]
        assert result.metadata["handler"] == "b"

    @pytest.mark.asyncio
    async def test_falha_de_pre_processador_interrompe(self):
        chamadas = []
        processor = MessageProcessor()
        processor.add_pre_processor(
            PreFake("a", 10, chamadas, ProcessorResult(success=False, error="ruim"))
        )
        processor.add_pre_processor(PreFake("b", 20, chamadas))

        result = await processor.process({})

        assert result.success is False
        assert result.error == "ruim"
        assert chamadas == ["a"]

    @pytest.mark.asyncio
    async def test_excecao_vira_resultado_de_erro(self):
        processor = MessageProcessor()
        processor.add_pre_processor(PreFake("a", 10, [], erro=RuntimeError("boom")))

        result = await processor.process({})

        assert result.success is False
        assert result.error == "boom"

    @pytest.mark.asyncio
    async def test_falha_de_pos_processador_nao_impede_os_demais(self):
        chamadas = []
        processor = MessageProcessor()
        processor.add_pre_processor(
            PreFake("a", 10, [], ProcessorResult(success=True, should_continue=False, response="oi"))
        )
        processor.add_post_processor(
            PostFake("envio", 20, chamadas, ProcessorResult(success=False, error="fora"))
        )
        processor.add_post_processor(
            PostFake("timing", 40, chamadas, ProcessorResult(success=True, response="oi"))
        )

        result = await processor.process({})

        assert result.success is True
        assert result.response == "oi"
        assert chamadas == ["envio", "timing"]

    @pytest.mark.asyncio
    async def test_sem_core_nao_responde(self):
        processor = MessageProcessor()
        processor.add_pre_processor(PreFake("a", 10, []))

        result = await processor.process({})

        assert result.success is True
        assert result.response is None


# =============================================================================
# Roteamento da central
# =============================================================================


def test_ordem_dos_handlers(central):
    pipeline = criar_pipeline(central)

    assert [p.name for p in pipeline.pre_processors] == [
        "parse_message",
        "load_identidade",
        "cadastro_ativo",
        "conversa_ativa",
        "confirmacao_cpf",
        "cancelamento_passageiro",
        "cancelamento_motorista",
        "avaliacao",
        "avaliacao_invalida",
        "aceite_motorista",
        "cadastro_motorista",
        "historico",
        "novo_pedido",
    ]
    assert [p.name for p in pipeline.post_processors] == ["send_message", "timing"]


class TestMensagensIgnoradas:

    @pytest.mark.asyncio
    async def test_propria_mensagem(self, pipeline, mensageiro):
        result = await pipeline.process(payload_texto(PASSAGEIRO, "taxi", from_me=True))

        assert result.success is True
        assert "motivo" in result.metadata
        assert mensageiro.envios == []

    @pytest.mark.asyncio
    async def test_grupo(self, pipeline, mensageiro, central):
        await pipeline.process(payload_texto("120363000000000000@g.us", "taxi"))

        assert mensageiro.envios == []
        assert central.sessoes.ativas() == []

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("motoristas")
    async def test_pedido_de_motorista_cadastrado(self, pipeline, mensageiro, central):
        [result] = await conversar(pipeline, MOTORISTA_2, "taxi")

        assert result.metadata["motivo"] == "pedido de motorista"
        assert MOTORISTA_2 not in central.sessoes
        assert mensageiro.envios == []

    @pytest.mark.asyncio
    async def test_numero_solto_sem_corrida_transmitida(self, pipeline, mensageiro, central):
        [result] = await conversar(pipeline, ESTRANHO, "7")

        assert result.metadata == {"ignorada": True}
        assert mensageiro.envios == []
        assert ESTRANHO not in central.sessoes

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("motoristas")
    async def test_numero_da_propria_corrida_e_ignorado(self, pipeline, mensageiro, central):
        await pedir_corrida(pipeline)
        mensageiro.limpar()

        [result] = await conversar(pipeline, PASSAGEIRO, "1")

        assert result.metadata == {"ignorada": True}
        assert PASSAGEIRO not in central.sessoes
        assert mensageiro.envios == []

    @pytest.mark.asyncio
    async def test_payload_invalido(self, pipeline):
        result = await pipeline.process({})

        assert result.success is False
        assert result.error


class TestRespostasSimples:

    @pytest.mark.asyncio
    async def test_aceitar_sem_numero(self, pipeline, mensageiro):
        [result] = await conversar(pipeline, ESTRANHO, "aceitar")

        assert result.response == m("aceitar_sem_numero")
        assert result.metadata["handler"] == "aceite_motorista"
        assert mensageiro.ultimo_texto(ESTRANHO) == m("aceitar_sem_numero")

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("motoristas")
    async def test_numero_solto_de_desconhecido_pede_cpf(self, pipeline, central, mensageiro):
        desconhecido = "99999@lid"
        await pedir_corrida(pipeline)

        await conversar(pipeline, desconhecido, "1")

        sessao = central.sessoes.obter(desconhecido)
        assert sessao.estado == Estado.AWAITING_DRIVER_CPF_CONFIRMATION
        assert sessao.corrida_id == 1
        assert mensageiro.ultimo_texto(desconhecido) == m("cpf_pedido", corrida_id=1)

    @pytest.mark.asyncio
    async def test_cancelar_corrida_inexistente(self, pipeline, mensageiro):
        await conversar(pipeline, ESTRANHO, "cancelar 99")

        assert mensageiro.ultimo_texto(ESTRANHO) == CORRIDA_NAO_ENCONTRADA_BILINGUE

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("motoristas")
    async def test_estranho_nao_cancela_corrida_alheia(self, pipeline, db, mensageiro):
        await pedir_corrida(pipeline)

        await conversar(pipeline, ESTRANHO, "cancelar 1")

        assert mensageiro.ultimo_texto(ESTRANHO) == NAO_PODE_CANCELAR_BILINGUE
        assert db.linha("corridas", 1)["status"] == "pending"

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("motoristas")
    async def test_motorista_nao_atribuido(self, pipeline, db, mensageiro):
        await pedir_corrida(pipeline)

        await conversar(pipeline, MOTORISTA_2, "cancelar 1")

        assert mensageiro.ultimo_texto(MOTORISTA_2) == m("nao_atribuido")
        assert db.linha("corridas", 1)["status"] == "pending"

    @pytest.mark.asyncio
    async def test_falha_de_envio_nao_falha_o_pipeline(self, pipeline, mensageiro):
        mensageiro.falhar_para.add(ESTRANHO)

        [result] = await conversar(pipeline, ESTRANHO, "aceitar")

        assert result.success is True
        assert mensageiro.envios == []
