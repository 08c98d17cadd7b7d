"""
Módulo centralizado para tratamento de timezone.

O projeto usa:
- UTC para armazenamento no banco de dados
- America/Sao_Paulo para exibição ao usuário (histórico de corridas)

Convenções:
- `agora_utc()`: Para armazenar no banco
- `de_iso(valor)`: Converter timestamp vindo do Supabase em datetime UTC
- `iso_utc(dt)`: Converter datetime em string para o banco
- `formatar_data_brasilia(dt)`: Exibição DD/MM/YYYY HH:MM
"""

from datetime import datetime, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo


TZ_BRASILIA = ZoneInfo("America/Sao_Paulo")
TZ_UTC = timezone.utc


def agora_utc() -> datetime:
    """
    Retorna datetime atual em UTC (timezone-aware).

    Returns:
        datetime em UTC com tzinfo
    """
    return datetime.now(TZ_UTC)


def para_brasilia(dt: datetime) -> datetime:
    """
    Converte datetime para horário de Brasília.

    Args:
        dt: datetime a converter (naive é tratado como UTC)
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=TZ_UTC)
    return dt.astimezone(TZ_BRASILIA)


def para_utc(dt: datetime) -> datetime:
    """
    Converte datetime para UTC.

    Args:
        dt: datetime a converter (naive é tratado como UTC, que é como o
            Postgres devolve colunas `timestamp` sem fuso)
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=TZ_UTC)
    return dt.astimezone(TZ_UTC)


def de_iso(valor: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Converte timestamp ISO 8601 (formato do PostgREST) em datetime UTC.

    Aceita o sufixo 'Z' e datetimes já convertidos. Retorna None para
    valores vazios.
    """
    if valor is None or valor == "":
        return None
    if isinstance(valor, datetime):
        return para_utc(valor)
    texto = valor.strip()
    if texto.endswith("Z"):
        texto = texto[:-1] + "+00:00"
    return para_utc(datetime.fromisoformat(texto))


def iso_utc(dt: datetime | None = None) -> str:
    """
    Retorna datetime em formato ISO 8601 UTC.

    Conveniente para inserir no banco de dados.
    """
    if dt is None:
        dt = agora_utc()
    return para_utc(dt).isoformat()


def formatar_data_brasilia(dt: datetime, formato: str = "%d/%m/%Y %H:%M") -> str:
    """
    Formata datetime para exibição no formato brasileiro.

    Returns:
        String formatada no horário de Brasília
    """
    return para_brasilia(dt).strftime(formato)
