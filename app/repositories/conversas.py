"""
Repository para estados de conversa persistidos.

Cada transicao da conversa faz upsert da linha do remetente; quando o
fluxo termina a linha e marcada inativa (nunca apagada). No startup as
linhas ativas sao recarregadas para reconstruir sessoes e timers.
"""

import logging
from typing import Optional, List
from datetime import datetime

from app.core.exceptions import DatabaseError
from app.core.timezone import iso_utc
from .base import BaseRepository

logger = logging.getLogger(__name__)


class EstadoConversaRepository(BaseRepository[dict]):
    """
    Repository de estados_conversa (PK = identificador).

    Trabalha com dicts; a conversao para SessaoConversa fica no servico.
    """

    @property
    def table_name(self) -> str:
        return "estados_conversa"

    def _from_dict(self, data: dict) -> dict:
        return data

    async def salvar(self, registro: dict) -> dict:
        """Upsert do estado pelo identificador."""
        try:
            response = (
                self._query()
                .upsert(registro, on_conflict="identificador")
                .execute()
            )
        except Exception as e:
            logger.error(f"Erro ao salvar estado de conversa: {e}")
            raise DatabaseError(
                "Erro ao salvar estado de conversa", original_error=e
            ) from e
        return response.data[0] if response.data else registro

    async def buscar_ativo(self, identificador: str) -> Optional[dict]:
        try:
            response = (
                self._query()
                .select("*")
                .eq("identificador", identificador)
                .eq("ativa", True)
                .execute()
            )
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Erro ao buscar estado de conversa: {e}")
            return None

    async def listar_ativos(self) -> List[dict]:
        try:
            response = self._query().select("*").eq("ativa", True).execute()
            return list(response.data or [])
        except Exception as e:
            logger.error(f"Erro ao listar conversas ativas: {e}")
            return []

    async def desativar(self, identificador: str, motivo: str, encerrada_em: datetime) -> bool:
        """Marca a conversa como encerrada."""
        try:
            response = (
                self._query()
                .update({
                    "ativa": False,
                    "motivo_encerramento": motivo,
                    "encerrada_em": iso_utc(encerrada_em),
                })
                .eq("identificador", identificador)
                .execute()
            )
        except Exception as e:
            logger.error(f"Erro ao desativar conversa: {e}")
            raise DatabaseError(
                "Erro ao desativar conversa", original_error=e
            ) from e
        return bool(response.data)
