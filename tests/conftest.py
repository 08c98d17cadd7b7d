"""
Configuração global de testes - Fixtures compartilhadas.

Fakes em memoria para o Supabase, o envio de mensagens, o relogio e o
agendador de timers. A central montada em `central` usa todos eles,
entao um teste exercita o fluxo completo sem rede e sem esperar.

Usage:
    async def test_algo(central, db, mensageiro, relogio, agendador):
        ...
"""

import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Hashable, Optional

import pytest

from app.core.config import Settings
from app.core.tasks import reset_task_failure_counts
from app.repositories.avaliacoes import AvaliacaoRepository
from app.repositories.conversas import EstadoConversaRepository
from app.repositories.corridas import AtribuicaoRepository, CorridaRepository
from app.repositories.pessoas import MotoristaRepository, UsuarioRepository
from app.services.corridas.central import CentralCorridas
from app.services.corridas.temporizadores import Agendador, Relogio
from app.services.whatsapp import Mensageiro

INSTANTE_INICIAL = datetime(2025, 3, 10, 15, 0, 0, tzinfo=timezone.utc)
MOTORISTA_TESTE_JID = "5584000000000@s.whatsapp.net"


# =============================================================================
# SUPABASE FAKE
# =============================================================================


class ErroBancoFake(Exception):
    """Erro levantado pelo fake (equivalente ao APIError do postgrest)."""


# Colunas unicas por tabela (tuplas = unicidade composta)
UNICOS = {
    "usuarios": [("jid",), ("lid",)],
    "motoristas": [("jid",), ("lid",), ("cpf",)],
    "atribuicoes": [("corrida_id",)],
    "avaliacoes": [("corrida_id", "tipo_avaliador")],
}


def _comparavel(valor):
    if isinstance(valor, str):
        try:
            return datetime.fromisoformat(valor.replace("Z", "+00:00"))
        except ValueError:
            return valor
    return valor


@dataclass
class RespostaFake:
    data: list


class ConsultaFake:
    """Encadeamento table().select().eq()...execute() sobre listas de dicts."""

    def __init__(self, banco: "SupabaseFake", tabela: str):
        self.banco = banco
        self.tabela = tabela
        self.operacao = "select"
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.filtros: list[Callable[[dict], bool]] = []
        self.ordem: Optional[tuple[str, bool]] = None
        self.limite: Optional[int] = None
        self.intervalo: Optional[tuple[int, int]] = None

    # Operacoes
    def select(self, *colunas):
        self.operacao = "select"
        return self

    def insert(self, dados):
        self.operacao, self.payload = "insert", dados
        return self

    def update(self, dados):
        self.operacao, self.payload = "update", dados
        return self

    def upsert(self, dados, on_conflict: Optional[str] = None):
        self.operacao, self.payload, self.on_conflict = "upsert", dados, on_conflict
        return self

    def delete(self):
        self.operacao = "delete"
        return self

    # Filtros
    def eq(self, coluna, valor):
        self.filtros.append(lambda linha: linha.get(coluna) == valor)
        return self

    def neq(self, coluna, valor):
        self.filtros.append(lambda linha: linha.get(coluna) != valor)
        return self

    def in_(self, coluna, valores):
        valores = list(valores)
        self.filtros.append(lambda linha: linha.get(coluna) in valores)
        return self

    def is_(self, coluna, valor):
        esperado = None if valor in (None, "null") else valor
        self.filtros.append(lambda linha: linha.get(coluna) is esperado)
        return self

    def gte(self, coluna, valor):
        self.filtros.append(
            lambda linha: linha.get(coluna) is not None
            and _comparavel(linha[coluna]) >= _comparavel(valor)
        )
        return self

    def lte(self, coluna, valor):
        self.filtros.append(
            lambda linha: linha.get(coluna) is not None
            and _comparavel(linha[coluna]) <= _comparavel(valor)
        )
        return self

    def order(self, coluna, desc: bool = False):
        self.ordem = (coluna, desc)
        return self

    def limit(self, n: int):
        self.limite = n
        return self

    def range(self, inicio: int, fim: int):
        self.intervalo = (inicio, fim)
        return self

    def _casa(self, linha: dict) -> bool:
        return all(filtro(linha) for filtro in self.filtros)

    def execute(self) -> RespostaFake:
        self.banco._talvez_falhar(self.tabela, self.operacao)
        linhas = self.banco.tabelas[self.tabela]

        if self.operacao == "insert":
            itens = self.payload if isinstance(self.payload, list) else [self.payload]
            return RespostaFake([self.banco._inserir(self.tabela, item) for item in itens])

        if self.operacao == "upsert":
            itens = self.payload if isinstance(self.payload, list) else [self.payload]
            return RespostaFake([self.banco._upsert(self.tabela, item, self.on_conflict) for item in itens])

        if self.operacao == "update":
            alteradas = []
            for linha in linhas:
                if self._casa(linha):
                    linha.update(self.payload)
                    alteradas.append(dict(linha))
            return RespostaFake(alteradas)

        if self.operacao == "delete":
            removidas = [linha for linha in linhas if self._casa(linha)]
            self.banco.tabelas[self.tabela] = [l for l in linhas if not self._casa(l)]
            return RespostaFake([dict(l) for l in removidas])

        resultado = [dict(linha) for linha in linhas if self._casa(linha)]
        if self.ordem:
            coluna, desc = self.ordem
            preenchidas = [l for l in resultado if l.get(coluna) is not None]
            vazias = [l for l in resultado if l.get(coluna) is None]
            preenchidas.sort(key=lambda l: _comparavel(l[coluna]), reverse=desc)
            resultado = vazias + preenchidas if desc else preenchidas + vazias
        if self.intervalo:
            inicio, fim = self.intervalo
            resultado = resultado[inicio:fim + 1]
        if self.limite is not None:
            resultado = resultado[:self.limite]
        return RespostaFake(resultado)


class SupabaseFake:
    """
    Cliente Supabase em memoria.

    Ids sao sequenciais por tabela e as restricoes UNIQUE de UNICOS sao
    respeitadas (insert duplicado levanta ErroBancoFake).
    """

    def __init__(self):
        self.tabelas: dict[str, list[dict]] = defaultdict(list)
        self._sequencias: dict[str, int] = defaultdict(int)
        self._falhas: set[tuple[str, str]] = set()

    def table(self, nome: str) -> ConsultaFake:
        return ConsultaFake(self, nome)

    def falhar(self, tabela: str, operacao: str):
        """Faz a proxima (e toda) operacao `operacao` em `tabela` levantar erro."""
        self._falhas.add((tabela, operacao))

    def _talvez_falhar(self, tabela: str, operacao: str):
        if (tabela, operacao) in self._falhas:
            raise ErroBancoFake(f"falha simulada em {tabela}.{operacao}")

    def _checar_unicos(self, tabela: str, item: dict, ignorar: Optional[dict] = None):
        for colunas in UNICOS.get(tabela, []):
            valores = tuple(item.get(c) for c in colunas)
            if any(v is None for v in valores):
                continue
            for linha in self.tabelas[tabela]:
                if linha is ignorar:
                    continue
                if tuple(linha.get(c) for c in colunas) == valores:
                    raise ErroBancoFake(
                        f"duplicate key value violates unique constraint {tabela}{colunas}"
                    )

    def _inserir(self, tabela: str, item: dict) -> dict:
        linha = dict(item)
        self._checar_unicos(tabela, linha)
        if "id" not in linha:
            self._sequencias[tabela] += 1
            linha["id"] = self._sequencias[tabela]
        self.tabelas[tabela].append(linha)
        return dict(linha)

    def _upsert(self, tabela: str, item: dict, on_conflict: Optional[str]) -> dict:
        chave = on_conflict or "id"
        for linha in self.tabelas[tabela]:
            if linha.get(chave) == item.get(chave):
                linha.update(item)
                return dict(linha)
        linha = dict(item)
        self.tabelas[tabela].append(linha)
        return dict(linha)

    # Atalhos para montar cenarios
    def inserir(self, tabela: str, **dados) -> dict:
        return self._inserir(tabela, dados)

    def linha(self, tabela: str, id: Any) -> Optional[dict]:
        for linha in self.tabelas[tabela]:
            if linha.get("id") == id:
                return linha
        return None


# =============================================================================
# MENSAGEIRO, RELOGIO E AGENDADOR FAKES
# =============================================================================


@dataclass
class Envio:
    identificador: str
    texto: Optional[str]
    mentions: Optional[list]
    localizacao: Any


class MensageiroFake(Mensageiro):
    """Registra os envios em vez de chamar a Evolution API."""

    def __init__(self):
        super().__init__(client=None)
        self.envios: list[Envio] = []
        self.falhar_para: set[str] = set()

    async def enviar(self, identificador, texto=None, mentions=None, localizacao=None) -> bool:
        if not identificador or identificador in self.falhar_para:
            return False
        self.envios.append(
            Envio(identificador, texto, list(mentions) if mentions else None, localizacao)
        )
        return True

    def para(self, identificador: str) -> list[Envio]:
        return [e for e in self.envios if e.identificador == identificador]

    def textos_para(self, identificador: str) -> list[str]:
        return [e.texto for e in self.para(identificador) if e.texto]

    def ultimo_texto(self, identificador: str) -> Optional[str]:
        textos = self.textos_para(identificador)
        return textos[-1] if textos else None

    def limpar(self):
        self.envios.clear()


class RelogioFalso(Relogio):
    """Relogio manual."""

    def __init__(self, instante: datetime = INSTANTE_INICIAL):
        self.instante = instante

    def agora(self) -> datetime:
        return self.instante

    def avancar(self, **delta):
        self.instante = self.instante + timedelta(**delta)


class AgendadorManual(Agendador):
    """
    Agendador que so guarda os timers; o teste dispara quando quiser.

    Mesma semantica de substituicao e cancelamento do Agendador real.
    """

    def __init__(self):
        super().__init__()
        self.timers: dict[str, dict[Hashable, tuple[float, Callable]]] = defaultdict(dict)

    def agendar(self, grupo, chave, atraso, acao):
        self.timers[grupo][chave] = (max(0.0, atraso), acao)
        return None

    def cancelar(self, grupo, chave) -> bool:
        return self.timers[grupo].pop(chave, None) is not None

    def ativo(self, grupo, chave) -> bool:
        return chave in self.timers[grupo]

    def pendentes(self, grupo) -> list:
        return list(self.timers[grupo].keys())

    def total(self) -> dict[str, int]:
        return {grupo: len(t) for grupo, t in self.timers.items() if t}

    async def encerrar(self):
        self.timers.clear()

    def atraso(self, grupo, chave) -> float:
        return self.timers[grupo][chave][0]

    async def disparar(self, grupo, chave):
        """Executa o timer como se o atraso tivesse passado."""
        _, acao = self.timers[grupo].pop(chave)
        return await acao()


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def limpar_contadores_tasks():
    reset_task_failure_counts()
    yield


@pytest.fixture
def db() -> SupabaseFake:
    return SupabaseFake()


@pytest.fixture
def mensageiro() -> MensageiroFake:
    return MensageiroFake()


@pytest.fixture
def relogio() -> RelogioFalso:
    return RelogioFalso()


@pytest.fixture
def agendador() -> AgendadorManual:
    return AgendadorManual()


@pytest.fixture
def settings_teste() -> Settings:
    return Settings(
        ENVIRONMENT="test",
        SUPABASE_URL="",
        SUPABASE_SERVICE_KEY="",
        EVOLUTION_API_KEY="chave-teste",
        TEST_DRIVER_JID=MOTORISTA_TESTE_JID,
    )


def montar_central(db, mensageiro, relogio, agendador, settings) -> CentralCorridas:
    return CentralCorridas(
        usuarios=UsuarioRepository(db),
        motoristas=MotoristaRepository(db),
        corridas=CorridaRepository(db),
        atribuicoes=AtribuicaoRepository(db),
        avaliacoes_repo=AvaliacaoRepository(db),
        conversas_repo=EstadoConversaRepository(db),
        mensageiro=mensageiro,
        relogio=relogio,
        agendador=agendador,
        settings=settings,
    )


@pytest.fixture
def central(db, mensageiro, relogio, agendador, settings_teste) -> CentralCorridas:
    """Central completa sobre os fakes."""
    return montar_central(db, mensageiro, relogio, agendador, settings_teste)


# =============================================================================
# HELPERS DE CENARIO
# =============================================================================


def jid(numero: str) -> str:
    return f"{numero}@s.whatsapp.net"


def criar_motorista(db: SupabaseFake, numero: str, **campos) -> dict:
    dados = {
        "jid": jid(numero),
        "nome": f"Motorista {numero[-4:]}",
        "telefone": f"+{numero}",
        "ativo": True,
        "is_taxi": False,
        "is_mototaxi": True,
    }
    dados.update(campos)
    return db.inserir("motoristas", **dados)


def criar_usuario(db: SupabaseFake, numero: str, **campos) -> dict:
    dados = {"jid": jid(numero), "nome": "Ana", "telefone": f"+{numero}"}
    dados.update(campos)
    return db.inserir("usuarios", **dados)


def payload_texto(remetente: str, texto: str, from_me: bool = False) -> dict:
    """Campo `data` de um messages.upsert de texto."""
    return {
        "key": {"remoteJid": remetente, "fromMe": from_me, "id": uuid.uuid4().hex},
        "message": {"conversation": texto},
        "messageTimestamp": int(INSTANTE_INICIAL.timestamp()),
        "pushName": "Contato",
    }


def payload_localizacao(remetente: str, latitude: float, longitude: float) -> dict:
    """Campo `data` de um messages.upsert com pin de localizacao."""
    return {
        "key": {"remoteJid": remetente, "fromMe": False, "id": uuid.uuid4().hex},
        "message": {
            "locationMessage": {"degreesLatitude": latitude, "degreesLongitude": longitude}
        },
        "messageTimestamp": int(INSTANTE_INICIAL.timestamp()),
    }


PASSAGEIRO = jid("5584911110000")
TELEFONE_PASSAGEIRO = "+55 84 99999-0000"
PIN = (-5.7945, -35.2110)


@pytest.fixture
def pipeline(central):
    """Pipeline de roteamento ligado a central de teste."""
    from app.pipeline.setup import criar_pipeline
    return criar_pipeline(central)


async def conversar(pipeline, remetente: str, *mensagens) -> list:
    """
    Processa mensagens em sequencia pelo pipeline.

    Tuplas (lat, lng) viram pins de localizacao.
    """
    resultados = []
    for mensagem in mensagens:
        if isinstance(mensagem, tuple):
            data = payload_localizacao(remetente, *mensagem)
        else:
            data = payload_texto(remetente, mensagem)
        resultados.append(await pipeline.process(data))
    return resultados


async def pedir_corrida(
    pipeline,
    passageiro: str = PASSAGEIRO,
    idioma: str = "1",
    tipo: str = "1",
    tempo: str = "10",
    gatilho: str = "taxi",
) -> list:
    """Conversa completa de um passageiro novo ate o CONFIRM."""
    return await conversar(
        pipeline,
        passageiro,
        gatilho,
        idioma,
        tipo,
        "Ana",
        TELEFONE_PASSAGEIRO,
        "Praça Central",
        PIN,
        "Aeroporto",
        "camisa azul",
        tempo,
        "CONFIRM" if idioma == "1" else "CONFIRMAR",
    )


MOTORISTA_1 = jid("5584000000001")
MOTORISTA_2 = jid("5584000000002")


@pytest.fixture
def motoristas(db) -> list[dict]:
    """Dois motoristas de mototaxi ativos (ids 1 e 2)."""
    return [
        criar_motorista(db, "5584000000001"),
        criar_motorista(db, "5584000000002"),
    ]


async def corrida_aceita(pipeline, motorista: str = MOTORISTA_1) -> None:
    """Pedido completo do PASSAGEIRO aceito por `motorista` (corrida 1)."""
    await pedir_corrida(pipeline)
    await conversar(pipeline, motorista, "aceitar 1")
