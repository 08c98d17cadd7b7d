"""
Gramatica de comandos de texto.

Tabela declarativa (padrao -> comando), testavel isoladamente. A ordem
da tabela importa: o primeiro padrao que casa define o comando.
"""
import re
from dataclasses import dataclass, field
from typing import Optional

CMD_CANCELAR = "cancelar"
CMD_AVALIAR = "avaliar"
CMD_AVALIAR_INVALIDO = "avaliar_invalido"
CMD_ACEITAR = "aceitar"
CMD_ACEITAR_SEM_NUMERO = "aceitar_sem_numero"
CMD_NUMERO = "numero"
CMD_CADASTRO_MOTORISTA = "cadastro_motorista"
CMD_HISTORICO = "historico"
CMD_PEDIDO = "pedido"

GATILHOS_CADASTRO = (
    "cadastrar motorista",
    "cadastro motorista",
    "registrar motorista",
    "registro motorista",
    "quero ser motorista",
    "virar motorista",
    "sou motorista",
)

_PADRAO_CADASTRO = "|".join(re.escape(g) for g in GATILHOS_CADASTRO)

TABELA_COMANDOS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"^(?:cancel|cancelar)(?:\s+(?:ride|corrida))?\s+(?P<corrida_id>\d+)$"), CMD_CANCELAR),
    (re.compile(r"^(?:avaliar|rate)\s+(?P<nota>[1-5])$"), CMD_AVALIAR),
    (re.compile(r"^(?:avaliar|rate)"), CMD_AVALIAR_INVALIDO),
    (re.compile(r"^aceitar\s+(?:corrida\s+)?(?P<corrida_id>\d+)$"), CMD_ACEITAR),
    (re.compile(r"^aceitar$"), CMD_ACEITAR_SEM_NUMERO),
    (re.compile(r"^(?P<corrida_id>\d{1,9})$"), CMD_NUMERO),
    (re.compile(rf"(?:{_PADRAO_CADASTRO})"), CMD_CADASTRO_MOTORISTA),
    (re.compile(r"^(?:my rides|minhas corridas)$"), CMD_HISTORICO),
    (re.compile(r"taxi"), CMD_PEDIDO),
]


@dataclass
class Comando:
    """Comando reconhecido em uma mensagem."""

    nome: str
    corrida_id: Optional[int] = None
    nota: Optional[int] = None
    modo_teste: bool = False
    grupos: dict = field(default_factory=dict)


def normalizar_texto(texto: Optional[str]) -> str:
    return (texto or "").strip().lower()


def interpretar(texto: Optional[str]) -> Optional[Comando]:
    """
    Interpreta o texto contra a tabela de comandos.

    Returns:
        Comando ou None se nada casar
    """
    normalizado = normalizar_texto(texto)
    if not normalizado:
        return None

    for padrao, nome in TABELA_COMANDOS:
        match = padrao.search(normalizado)
        if not match:
            continue
        grupos = match.groupdict()
        corrida_id = grupos.get("corrida_id")
        nota = grupos.get("nota")
        return Comando(
            nome=nome,
            corrida_id=int(corrida_id) if corrida_id else None,
            nota=int(nota) if nota else None,
            modo_teste=nome == CMD_PEDIDO and "test" in normalizado,
            grupos=grupos,
        )
    return None
