"""
Repositories para passageiros (usuarios) e motoristas.

Uma pessoa e identificada por JID e/ou LID do WhatsApp; os dois campos
sao unicos por tabela quando presentes.
"""

import logging
from typing import Optional, List
from dataclasses import dataclass
from datetime import datetime

from app.core.timezone import de_iso
from .base import BaseRepository

logger = logging.getLogger(__name__)


@dataclass
class Usuario:
    """Passageiro."""

    id: int
    jid: Optional[str] = None
    lid: Optional[str] = None
    nome: Optional[str] = None
    telefone: Optional[str] = None
    reputacao: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Usuario":
        """Cria Usuario a partir de dict do banco."""
        return cls(
            id=data["id"],
            jid=data.get("jid"),
            lid=data.get("lid"),
            nome=data.get("nome"),
            telefone=data.get("telefone"),
            reputacao=_reputacao(data.get("reputacao")),
            created_at=de_iso(data.get("created_at")),
            updated_at=de_iso(data.get("updated_at")),
        )

    @property
    def tem_dados_contato(self) -> bool:
        return bool(self.nome and self.telefone)


@dataclass
class Motorista(Usuario):
    """Motorista de taxi e/ou mototaxi."""

    cpf: Optional[str] = None
    ativo: bool = True
    is_taxi: bool = False
    is_mototaxi: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "Motorista":
        """Cria Motorista a partir de dict do banco."""
        return cls(
            id=data["id"],
            jid=data.get("jid"),
            lid=data.get("lid"),
            nome=data.get("nome"),
            telefone=data.get("telefone"),
            reputacao=_reputacao(data.get("reputacao")),
            created_at=de_iso(data.get("created_at")),
            updated_at=de_iso(data.get("updated_at")),
            cpf=data.get("cpf"),
            ativo=data.get("ativo", True),
            is_taxi=data.get("is_taxi", False),
            is_mototaxi=data.get("is_mototaxi", False),
        )

    def atende(self, tipo_veiculo: str) -> bool:
        """Verifica se o motorista atende o tipo de veiculo."""
        if tipo_veiculo == "taxi":
            return self.is_taxi
        if tipo_veiculo == "mototaxi":
            return self.is_mototaxi
        return False


def _reputacao(valor) -> Optional[float]:
    # PostgREST devolve numeric como string em algumas versoes
    if valor is None:
        return None
    return float(valor)


class UsuarioRepository(BaseRepository[Usuario]):
    """
    Repository de passageiros.

    Uso:
        repo = UsuarioRepository(supabase)
        usuario = await repo.buscar_por_campo("jid", "5584...@s.whatsapp.net")
    """

    @property
    def table_name(self) -> str:
        return "usuarios"

    def _from_dict(self, data: dict) -> Usuario:
        return Usuario.from_dict(data)


class MotoristaRepository(BaseRepository[Motorista]):
    """Repository de motoristas."""

    @property
    def table_name(self) -> str:
        return "motoristas"

    def _from_dict(self, data: dict) -> Motorista:
        return Motorista.from_dict(data)

    async def buscar_por_cpf(self, cpf: str) -> Optional[Motorista]:
        """Busca motorista pelo CPF (11 digitos, sem pontuacao)."""
        return await self.buscar_por_campo("cpf", cpf)

    async def listar_ativos_por_veiculo(self, tipo_veiculo: str) -> List[Motorista]:
        """
        Lista motoristas ativos habilitados para o tipo de veiculo.

        Args:
            tipo_veiculo: "taxi" ou "mototaxi"
        """
        coluna = "is_taxi" if tipo_veiculo == "taxi" else "is_mototaxi"
        try:
            response = (
                self._query()
                .select("*")
                .eq("ativo", True)
                .eq(coluna, True)
                .execute()
            )
            return [Motorista.from_dict(item) for item in response.data or []]
        except Exception as e:
            logger.error(f"Erro ao listar motoristas de {tipo_veiculo}: {e}")
            return []
