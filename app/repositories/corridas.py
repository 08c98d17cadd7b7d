"""
Repositories para corridas e atribuicoes de motorista.

Status de corrida:
- pending: aguardando motorista (ou sendo montada pelo passageiro)
- completed: aceita por um motorista (existe atribuicao)
- expired: tempo de espera esgotado sem aceite
- cancelled: cancelada pelo passageiro
"""

import logging
from typing import Optional, List, Iterable
from dataclasses import dataclass
from datetime import datetime

from app.core.exceptions import DatabaseError
from app.core.timezone import de_iso, iso_utc
from .base import BaseRepository

logger = logging.getLogger(__name__)

STATUS_PENDENTE = "pending"
STATUS_CONCLUIDA = "completed"
STATUS_EXPIRADA = "expired"
STATUS_CANCELADA = "cancelled"

CANCELADO_POR_PASSAGEIRO = "user"
CANCELADO_POR_MOTORISTA = "driver"


@dataclass
class Corrida:
    """Pedido de corrida."""

    id: int
    status: str = STATUS_PENDENTE
    tipo_veiculo: Optional[str] = None
    idioma: str = "pt"
    usuario_id: Optional[int] = None
    local_texto: Optional[str] = None
    local_lat: Optional[float] = None
    local_lng: Optional[float] = None
    destino: Optional[str] = None
    identificacao: Optional[str] = None
    tempo_espera: Optional[int] = None
    tentativas: int = 0
    modo_teste: bool = False
    created_at: Optional[datetime] = None
    transmitida_em: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelado_por: Optional[str] = None
    avaliacao_passageiro_enviada: bool = False
    avaliacao_motorista_enviada: bool = False
    avaliacao_enviada_em: Optional[datetime] = None
    prazo_avaliacao_em: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Corrida":
        """Cria Corrida a partir de dict do banco."""
        return cls(
            id=data["id"],
            status=data.get("status", STATUS_PENDENTE),
            tipo_veiculo=data.get("tipo_veiculo"),
            idioma=data.get("idioma") or "pt",
            usuario_id=data.get("usuario_id"),
            local_texto=data.get("local_texto"),
            local_lat=data.get("local_lat"),
            local_lng=data.get("local_lng"),
            destino=data.get("destino"),
            identificacao=data.get("identificacao"),
            tempo_espera=data.get("tempo_espera"),
            tentativas=data.get("tentativas") or 0,
            modo_teste=data.get("modo_teste", False),
            created_at=de_iso(data.get("created_at")),
            transmitida_em=de_iso(data.get("transmitida_em")),
            completed_at=de_iso(data.get("completed_at")),
            expired_at=de_iso(data.get("expired_at")),
            cancelled_at=de_iso(data.get("cancelled_at")),
            cancelado_por=data.get("cancelado_por"),
            avaliacao_passageiro_enviada=data.get("avaliacao_passageiro_enviada", False),
            avaliacao_motorista_enviada=data.get("avaliacao_motorista_enviada", False),
            avaliacao_enviada_em=de_iso(data.get("avaliacao_enviada_em")),
            prazo_avaliacao_em=de_iso(data.get("prazo_avaliacao_em")),
        )

    @property
    def pendente(self) -> bool:
        return self.status == STATUS_PENDENTE

    @property
    def tem_localizacao(self) -> bool:
        return self.local_lat is not None and self.local_lng is not None

    @property
    def base_espera(self) -> Optional[datetime]:
        """Instante a partir do qual o tempo de espera e contado."""
        return self.transmitida_em or self.created_at


@dataclass
class Atribuicao:
    """Vinculo corrida -> motorista que aceitou."""

    id: int
    corrida_id: int
    motorista_id: int
    aceita_em: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Atribuicao":
        return cls(
            id=data["id"],
            corrida_id=data["corrida_id"],
            motorista_id=data["motorista_id"],
            aceita_em=de_iso(data.get("aceita_em")),
        )


class CorridaRepository(BaseRepository[Corrida]):
    """
    Repository de corridas.

    Uso:
        repo = CorridaRepository(supabase)
        corrida = await repo.marcar_aceita(42, agora)
        if corrida is None:
            # outro motorista aceitou antes
    """

    @property
    def table_name(self) -> str:
        return "corridas"

    def _from_dict(self, data: dict) -> Corrida:
        return Corrida.from_dict(data)

    async def marcar_aceita(self, corrida_id: int, aceita_em: datetime) -> Optional[Corrida]:
        """
        Transicao pending -> completed condicionada ao status atual.

        Um unico UPDATE com `status = 'pending'` no filtro: quando dois
        motoristas aceitam ao mesmo tempo so um deles recebe a linha.

        Returns:
            Corrida atualizada, ou None se ela nao estava mais pendente
        """
        try:
            response = (
                self._query()
                .update({"status": STATUS_CONCLUIDA, "completed_at": iso_utc(aceita_em)})
                .eq("id", corrida_id)
                .eq("status", STATUS_PENDENTE)
                .execute()
            )
        except Exception as e:
            logger.error(f"Erro ao aceitar corrida {corrida_id}: {e}")
            raise DatabaseError(
                "Erro ao aceitar corrida", details={"id": corrida_id}, original_error=e
            ) from e
        if response.data:
            return Corrida.from_dict(response.data[0])
        return None

    async def expirar_se_pendente(self, corrida_id: int, expirada_em: datetime) -> Optional[Corrida]:
        """Transicao pending -> expired condicionada ao status atual."""
        try:
            response = (
                self._query()
                .update({"status": STATUS_EXPIRADA, "expired_at": iso_utc(expirada_em)})
                .eq("id", corrida_id)
                .eq("status", STATUS_PENDENTE)
                .execute()
            )
        except Exception as e:
            logger.error(f"Erro ao expirar corrida {corrida_id}: {e}")
            raise DatabaseError(
                "Erro ao expirar corrida", details={"id": corrida_id}, original_error=e
            ) from e
        if response.data:
            return Corrida.from_dict(response.data[0])
        return None

    async def listar_pendentes(self) -> List[Corrida]:
        """Corridas aguardando motorista."""
        try:
            response = self._query().select("*").eq("status", STATUS_PENDENTE).execute()
            return [Corrida.from_dict(item) for item in response.data or []]
        except Exception as e:
            logger.error(f"Erro ao listar corridas pendentes: {e}")
            return []

    async def listar_com_avaliacao_a_enviar(self) -> List[Corrida]:
        """Corridas aceitas com algum pedido de avaliacao ainda nao enviado."""
        try:
            response = self._query().select("*").eq("status", STATUS_CONCLUIDA).execute()
        except Exception as e:
            logger.error(f"Erro ao listar corridas para avaliacao: {e}")
            return []
        corridas = [Corrida.from_dict(item) for item in response.data or []]
        return [
            c for c in corridas
            if c.completed_at is not None
            and not (c.avaliacao_passageiro_enviada and c.avaliacao_motorista_enviada)
        ]

    async def listar_por_usuario(self, usuario_id: int, limite: int) -> List[Corrida]:
        """Ultimas corridas do passageiro, mais recentes primeiro."""
        try:
            response = (
                self._query()
                .select("*")
                .eq("usuario_id", usuario_id)
                .order("created_at", desc=True)
                .limit(limite)
                .execute()
            )
            return [Corrida.from_dict(item) for item in response.data or []]
        except Exception as e:
            logger.error(f"Erro ao listar corridas do usuario {usuario_id}: {e}")
            return []

    async def listar_por_ids(self, ids: Iterable[int], limite: int) -> List[Corrida]:
        """Corridas pelos ids, mais recentes primeiro."""
        ids = list(ids)
        if not ids:
            return []
        try:
            response = (
                self._query()
                .select("*")
                .in_("id", ids)
                .order("created_at", desc=True)
                .limit(limite)
                .execute()
            )
            return [Corrida.from_dict(item) for item in response.data or []]
        except Exception as e:
            logger.error(f"Erro ao listar corridas por ids: {e}")
            return []

    async def listar_aguardando_avaliacao(
        self,
        agora: datetime,
        usuario_id: Optional[int] = None,
        ids: Optional[Iterable[int]] = None,
    ) -> List[Corrida]:
        """
        Corridas aceitas cujo prazo de avaliacao ainda nao passou.

        Filtra por passageiro (usuario_id) ou por um conjunto de ids
        (corridas de um motorista). Ordena pelo envio do pedido de
        avaliacao, mais recente primeiro.
        """
        try:
            query = (
                self._query()
                .select("*")
                .eq("status", STATUS_CONCLUIDA)
                .gte("prazo_avaliacao_em", iso_utc(agora))
            )
            if usuario_id is not None:
                query = query.eq("usuario_id", usuario_id)
            if ids is not None:
                ids = list(ids)
                if not ids:
                    return []
                query = query.in_("id", ids)
            response = query.order("avaliacao_enviada_em", desc=True).execute()
            return [Corrida.from_dict(item) for item in response.data or []]
        except Exception as e:
            logger.error(f"Erro ao listar corridas aguardando avaliacao: {e}")
            return []


class AtribuicaoRepository(BaseRepository[Atribuicao]):
    """Repository de atribuicoes (corrida_id e UNIQUE no banco)."""

    @property
    def table_name(self) -> str:
        return "atribuicoes"

    def _from_dict(self, data: dict) -> Atribuicao:
        return Atribuicao.from_dict(data)

    async def buscar_por_corrida(self, corrida_id: int) -> Optional[Atribuicao]:
        return await self.buscar_por_campo("corrida_id", corrida_id)

    async def listar_por_motorista(self, motorista_id: int) -> List[Atribuicao]:
        try:
            response = (
                self._query().select("*").eq("motorista_id", motorista_id).execute()
            )
            return [Atribuicao.from_dict(item) for item in response.data or []]
        except Exception as e:
            logger.error(f"Erro ao listar atribuicoes do motorista {motorista_id}: {e}")
            return []

    async def remover(self, atribuicao_id: int) -> bool:
        """Remove atribuicao (cancelamento pelo motorista)."""
        try:
            response = self._query().delete().eq("id", atribuicao_id).execute()
        except Exception as e:
            logger.error(f"Erro ao remover atribuicao {atribuicao_id}: {e}")
            raise DatabaseError(
                "Erro ao remover atribuicao",
                details={"id": atribuicao_id},
                original_error=e,
            ) from e
        return bool(response.data)
