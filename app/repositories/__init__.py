"""
Repositories - Camada de acesso a dados.

Implementa o padrao Repository para desacoplar a logica de negocio do
Supabase.

Uso em testes:
    from app.repositories import CorridaRepository

    def test_listar_pendentes():
        db = SupabaseFake()
        repo = CorridaRepository(db)
        # Testar sem patches!

Entidades disponiveis:
- Usuario / Motorista: passageiros e motoristas
- Corrida / Atribuicao: pedidos e aceites
- Avaliacao: notas trocadas apos a corrida
- estados_conversa: sessoes persistidas (dicts)
"""

from .base import BaseRepository
from .avaliacoes import Avaliacao, AvaliacaoRepository
from .conversas import EstadoConversaRepository
from .corridas import Atribuicao, AtribuicaoRepository, Corrida, CorridaRepository
from .pessoas import Motorista, MotoristaRepository, Usuario, UsuarioRepository

__all__ = [
    # Base
    "BaseRepository",
    # Entidades
    "Usuario",
    "Motorista",
    "Corrida",
    "Atribuicao",
    "Avaliacao",
    # Repositories
    "UsuarioRepository",
    "MotoristaRepository",
    "CorridaRepository",
    "AtribuicaoRepository",
    "AvaliacaoRepository",
    "EstadoConversaRepository",
]
