"""
Testes para resolucao de identidade (JID/LID/CPF).
"""
import pytest

from app.repositories.pessoas import Usuario
from app.services.corridas.identidade import (
    ResolvedorIdentidade,
    identificador_envio,
    identificador_principal,
    is_mesma_pessoa,
    normalizar_cpf,
    preparar_campos_identificador,
    tipo_identificador,
    validar_cpf,
)
from tests.conftest import criar_motorista, criar_usuario, jid


@pytest.fixture
def resolvedor(central) -> ResolvedorIdentidade:
    return central.identidade


class TestFuncoes:

    def test_tipo_identificador(self):
        assert tipo_identificador("123@lid") == "lid"
        assert tipo_identificador(jid("5584")) == "jid"

    def test_preparar_campos_so_o_tipo_detectado(self):
        assert preparar_campos_identificador("123@lid") == {"lid": "123@lid"}
        assert preparar_campos_identificador(jid("5584")) == {"jid": jid("5584")}

    def test_is_mesma_pessoa(self):
        usuario = Usuario(id=1, jid=jid("5584"), lid="9@lid")

        assert is_mesma_pessoa("9@lid", usuario)
        assert is_mesma_pessoa(jid("5584"), {"jid": jid("5584")})
        assert not is_mesma_pessoa("8@lid", usuario)
        assert not is_mesma_pessoa("9@lid", None)

    def test_principal_prefere_lid_e_envio_prefere_jid(self):
        registro = {"jid": jid("5584"), "lid": "9@lid"}

        assert identificador_principal(registro) == "9@lid"
        assert identificador_envio(registro) == jid("5584")
        assert identificador_envio({"lid": "9@lid"}) == "9@lid"

    @pytest.mark.parametrize("texto,esperado", [
        ("529.982.247-25", "52998224725"),
        (" 529 982 247 25 ", "52998224725"),
        ("52998224725", "52998224725"),
        ("5299822472", None),
        ("abc.def.ghi-jk", None),
        (None, None),
    ])
    def test_normalizar_cpf(self, texto, esperado):
        assert normalizar_cpf(texto) == esperado

    @pytest.mark.parametrize("cpf,valido", [
        ("52998224725", True),
        ("11144477735", True),
        ("52998224726", False),
        ("11111111111", False),
        ("123", False),
    ])
    def test_validar_cpf(self, cpf, valido):
        assert validar_cpf(cpf) is valido


class TestResolvedorIdentidade:

    @pytest.mark.asyncio
    async def test_busca_pelo_campo_oposto(self, db, resolvedor):
        db.inserir("usuarios", jid="77@lid", nome="Bia")

        usuario = await resolvedor.buscar_usuario("77@lid")

        assert usuario.nome == "Bia"

    @pytest.mark.asyncio
    async def test_motorista_por_cpf(self, db, resolvedor):
        criar_motorista(db, "5584000000001", cpf="52998224725")

        motorista = await resolvedor.buscar_motorista("529.982.247-25")

        assert motorista.id == 1

    @pytest.mark.asyncio
    async def test_is_motorista_registrado(self, db, resolvedor):
        criar_motorista(db, "5584000000001", lid="55@lid")

        assert await resolvedor.is_motorista_registrado("55@lid")
        assert await resolvedor.is_motorista_registrado(jid("5584000000001"))
        assert not await resolvedor.is_motorista_registrado(jid("5584000000002"))
        assert not await resolvedor.is_motorista_registrado("")

    @pytest.mark.asyncio
    async def test_buscar_ou_criar_grava_no_campo_do_tipo(self, db, resolvedor):
        usuario = await resolvedor.buscar_ou_criar_usuario("88@lid")

        assert usuario.lid == "88@lid"
        assert usuario.jid is None

    @pytest.mark.asyncio
    async def test_buscar_ou_criar_atualiza_sem_apagar(self, db, resolvedor):
        criar_usuario(db, "5584911110000", lid="88@lid")

        usuario = await resolvedor.buscar_ou_criar_usuario(
            jid("5584911110000"), nome="Carla"
        )

        assert usuario.nome == "Carla"
        assert usuario.telefone == "+5584911110000"
        assert usuario.lid == "88@lid"
        assert len(db.tabelas["usuarios"]) == 1

    @pytest.mark.asyncio
    async def test_vincular_motorista_preserva_jid(self, db, resolvedor):
        criar_motorista(db, "5584000000001")
        motorista = await resolvedor.buscar_motorista(jid("5584000000001"))

        vinculado = await resolvedor.vincular_motorista(motorista, "321@lid")

        assert vinculado.lid == "321@lid"
        assert vinculado.jid == jid("5584000000001")
        assert (await resolvedor.buscar_motorista("321@lid")).id == motorista.id
