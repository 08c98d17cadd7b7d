"""
Dependency Injection para Repositories.

Uso em producao:
    from app.repositories.deps import get_corrida_repo
    repo = get_corrida_repo()

Uso em testes:
    db = SupabaseFake()
    repo = create_corrida_repo(db)
"""
from functools import lru_cache

from app.services.supabase import get_supabase_client
from .avaliacoes import AvaliacaoRepository
from .conversas import EstadoConversaRepository
from .corridas import AtribuicaoRepository, CorridaRepository
from .pessoas import MotoristaRepository, UsuarioRepository


@lru_cache()
def get_usuario_repo() -> UsuarioRepository:
    return UsuarioRepository(get_supabase_client())


@lru_cache()
def get_motorista_repo() -> MotoristaRepository:
    return MotoristaRepository(get_supabase_client())


@lru_cache()
def get_corrida_repo() -> CorridaRepository:
    return CorridaRepository(get_supabase_client())


@lru_cache()
def get_atribuicao_repo() -> AtribuicaoRepository:
    return AtribuicaoRepository(get_supabase_client())


@lru_cache()
def get_avaliacao_repo() -> AvaliacaoRepository:
    return AvaliacaoRepository(get_supabase_client())


@lru_cache()
def get_estado_conversa_repo() -> EstadoConversaRepository:
    return EstadoConversaRepository(get_supabase_client())


# Factory functions para testes
def create_usuario_repo(db_client) -> UsuarioRepository:
    return UsuarioRepository(db_client)


def create_motorista_repo(db_client) -> MotoristaRepository:
    return MotoristaRepository(db_client)


def create_corrida_repo(db_client) -> CorridaRepository:
    return CorridaRepository(db_client)


def create_atribuicao_repo(db_client) -> AtribuicaoRepository:
    return AtribuicaoRepository(db_client)


def create_avaliacao_repo(db_client) -> AvaliacaoRepository:
    return AvaliacaoRepository(db_client)


def create_estado_conversa_repo(db_client) -> EstadoConversaRepository:
    return EstadoConversaRepository(db_client)
