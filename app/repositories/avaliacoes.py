"""
Repository para avaliacoes (notas 1-5 trocadas apos a corrida).
"""

import logging
from typing import Optional, List
from dataclasses import dataclass
from datetime import datetime

from app.core.timezone import de_iso
from .base import BaseRepository

logger = logging.getLogger(__name__)

AVALIADOR_PASSAGEIRO = "passenger"
AVALIADOR_MOTORISTA = "driver"


@dataclass
class Avaliacao:
    """Nota dada por uma das partes da corrida. Imutavel."""

    id: int
    corrida_id: int
    tipo_avaliador: str
    tipo_avaliado: str
    nota: int
    avaliador_usuario_id: Optional[int] = None
    avaliador_motorista_id: Optional[int] = None
    avaliado_usuario_id: Optional[int] = None
    avaliado_motorista_id: Optional[int] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Avaliacao":
        return cls(
            id=data["id"],
            corrida_id=data["corrida_id"],
            tipo_avaliador=data["tipo_avaliador"],
            tipo_avaliado=data["tipo_avaliado"],
            nota=data["nota"],
            avaliador_usuario_id=data.get("avaliador_usuario_id"),
            avaliador_motorista_id=data.get("avaliador_motorista_id"),
            avaliado_usuario_id=data.get("avaliado_usuario_id"),
            avaliado_motorista_id=data.get("avaliado_motorista_id"),
            created_at=de_iso(data.get("created_at")),
        )


class AvaliacaoRepository(BaseRepository[Avaliacao]):
    """Repository de avaliacoes."""

    @property
    def table_name(self) -> str:
        return "avaliacoes"

    def _from_dict(self, data: dict) -> Avaliacao:
        return Avaliacao.from_dict(data)

    async def buscar_da_corrida(self, corrida_id: int, tipo_avaliador: str) -> Optional[Avaliacao]:
        """Avaliacao ja feita nessa corrida por esse tipo de avaliador."""
        try:
            response = (
                self._query()
                .select("*")
                .eq("corrida_id", corrida_id)
                .eq("tipo_avaliador", tipo_avaliador)
                .limit(1)
                .execute()
            )
            if response.data:
                return Avaliacao.from_dict(response.data[0])
            return None
        except Exception as e:
            logger.error(f"Erro ao buscar avaliacao da corrida {corrida_id}: {e}")
            return None

    async def notas_recebidas_usuario(self, usuario_id: int) -> List[int]:
        return await self._notas("avaliado_usuario_id", usuario_id)

    async def notas_recebidas_motorista(self, motorista_id: int) -> List[int]:
        return await self._notas("avaliado_motorista_id", motorista_id)

    async def _notas(self, coluna: str, valor: int) -> List[int]:
        try:
            response = self._query().select("nota").eq(coluna, valor).execute()
            return [item["nota"] for item in response.data or []]
        except Exception as e:
            logger.error(f"Erro ao buscar notas ({coluna}={valor}): {e}")
            return []
