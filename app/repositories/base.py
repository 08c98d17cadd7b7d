"""
Base Repository - Interface comum para todos os repositories.

Define a interface base que todos os repositories implementam,
garantindo consistencia e facilitando testes com um cliente fake.
"""
from abc import ABC, abstractmethod
from typing import TypeVar, Generic, Optional, List, Any
import logging

from app.core.exceptions import DatabaseError

logger = logging.getLogger(__name__)

# Type variable para entidades
T = TypeVar('T')


class BaseRepository(ABC, Generic[T]):
    """
    Interface base para repositories.

    Subclasses definem `table_name` e `_from_dict`; leituras, insercao e
    atualizacao por id ja vem prontas.

    Leituras que falham logam e devolvem None/[]; escritas que falham
    logam e levantam DatabaseError.

    Example:
        class CorridaRepository(BaseRepository[Corrida]):
            @property
            def table_name(self) -> str:
                return "corridas"

            def _from_dict(self, data: dict) -> Corrida:
                return Corrida.from_dict(data)
    """

    def __init__(self, db_client: Any):
        """
        Inicializa o repository.

        Args:
            db_client: Cliente de banco de dados (Supabase ou fake de teste)
        """
        self.db = db_client

    @property
    @abstractmethod
    def table_name(self) -> str:
        """Nome da tabela no banco."""
        pass

    @abstractmethod
    def _from_dict(self, data: dict) -> T:
        """Converte linha do banco em entidade."""
        pass

    def _query(self):
        return self.db.table(self.table_name)

    async def buscar_por_id(self, id: Any) -> Optional[T]:
        """Busca entidade por ID."""
        try:
            response = self._query().select("*").eq("id", id).execute()
            if response.data:
                return self._from_dict(response.data[0])
            return None
        except Exception as e:
            logger.error(f"Erro ao buscar {self.table_name} {id}: {e}")
            return None

    async def buscar_por_campo(self, campo: str, valor: Any) -> Optional[T]:
        """Busca primeira entidade com campo == valor."""
        if valor is None or valor == "":
            return None
        try:
            response = self._query().select("*").eq(campo, valor).limit(1).execute()
            if response.data:
                return self._from_dict(response.data[0])
            return None
        except Exception as e:
            logger.error(f"Erro ao buscar {self.table_name} por {campo}: {e}")
            return None

    async def listar(self, limit: int = 100, offset: int = 0, **filters) -> List[T]:
        """
        Lista entidades com filtros de igualdade.

        Args:
            limit: Maximo de resultados
            offset: Pular N primeiros resultados
            **filters: Filtros (ex: status="pending")
        """
        try:
            query = self._query().select("*")
            for campo, valor in filters.items():
                query = query.eq(campo, valor)
            response = query.range(offset, offset + limit - 1).execute()
            return [self._from_dict(item) for item in response.data or []]
        except Exception as e:
            logger.error(f"Erro ao listar {self.table_name}: {e}")
            return []

    async def criar(self, data: dict) -> T:
        """Cria nova entidade."""
        try:
            response = self._query().insert(data).execute()
        except Exception as e:
            logger.error(f"Erro ao criar {self.table_name}: {e}")
            raise DatabaseError(
                f"Erro ao criar {self.table_name}", original_error=e
            ) from e
        if not response.data:
            raise DatabaseError(f"Insert em {self.table_name} nao retornou dados")
        return self._from_dict(response.data[0])

    async def atualizar(self, id: Any, data: dict) -> Optional[T]:
        """
        Atualiza entidade existente.

        Returns:
            Entidade atualizada ou None se nao encontrada
        """
        try:
            response = self._query().update(data).eq("id", id).execute()
        except Exception as e:
            logger.error(f"Erro ao atualizar {self.table_name} {id}: {e}")
            raise DatabaseError(
                f"Erro ao atualizar {self.table_name}",
                details={"id": id},
                original_error=e,
            ) from e
        if response.data:
            return self._from_dict(response.data[0])
        return None

    async def existe(self, id: Any) -> bool:
        """Verifica se entidade existe."""
        return await self.buscar_por_id(id) is not None
