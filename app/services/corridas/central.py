"""
Central de corridas: liga repositorios, sessoes, timers e servicos.

Um unico objeto e dono de todo o estado em memoria (sessoes, mapa
corrida -> passageiro e handles de timer). Os servicos recebem a central
e acessam os colaboradores por ela.
"""
import logging
from functools import lru_cache
from typing import Optional

from app.core.config import Settings, get_settings
from app.core.logging import mascarar
from app.core.timezone import iso_utc
from app.repositories.avaliacoes import AvaliacaoRepository
from app.repositories.conversas import EstadoConversaRepository
from app.repositories.corridas import AtribuicaoRepository, CorridaRepository
from app.repositories.pessoas import MotoristaRepository, UsuarioRepository
from app.services.whatsapp import Mensageiro
from .avaliacoes import ServicoAvaliacoes
from .cadastro_motorista import CadastroMotorista
from .ciclo_corrida import CicloCorrida
from .conversa import FluxoConversa
from .historico import ServicoHistorico
from .identidade import ResolvedorIdentidade
from .sessoes import RepositorioSessoes
from .temporizadores import Agendador, Relogio, Temporizadores

logger = logging.getLogger(__name__)


class CentralCorridas:
    """
    Uso:
        central = CentralCorridas(usuarios, motoristas, corridas, atribuicoes,
                                  avaliacoes_repo, conversas_repo, Mensageiro())
        await central.restaurar()
    """

    def __init__(
        self,
        usuarios: UsuarioRepository,
        motoristas: MotoristaRepository,
        corridas: CorridaRepository,
        atribuicoes: AtribuicaoRepository,
        avaliacoes_repo: AvaliacaoRepository,
        conversas_repo: EstadoConversaRepository,
        mensageiro: Mensageiro,
        relogio: Optional[Relogio] = None,
        agendador: Optional[Agendador] = None,
        settings: Optional[Settings] = None,
    ):
        self.usuarios = usuarios
        self.motoristas = motoristas
        self.corridas = corridas
        self.atribuicoes = atribuicoes
        self.avaliacoes_repo = avaliacoes_repo
        self.mensageiro = mensageiro
        self.relogio = relogio or Relogio()
        self.agendador = agendador or Agendador()
        self.settings = settings or get_settings()

        self.identidade = ResolvedorIdentidade(usuarios, motoristas)
        self.sessoes = RepositorioSessoes(conversas_repo, self.relogio)
        self.temporizadores = Temporizadores(self)
        self.conversa = FluxoConversa(self)
        self.ciclo = CicloCorrida(self)
        self.avaliacoes = ServicoAvaliacoes(self)
        self.historico = ServicoHistorico(self)
        self.cadastro = CadastroMotorista(self)

    def agora_iso(self) -> str:
        return iso_utc(self.relogio.agora())

    async def encerrar_sessao(self, identificador: str, motivo: str):
        """Limpa os timers de conversa e marca a sessao como inativa."""
        self.temporizadores.limpar_timeout_conversa(identificador)
        await self.sessoes.encerrar(identificador, motivo)

    async def restaurar(self) -> dict:
        """Reconstroi sessoes e timers a partir do banco (startup)."""
        return await self.temporizadores.restaurar_tudo()

    async def desligar(self):
        """Cancela todos os timers (shutdown)."""
        await self.agendador.encerrar()
        logger.info(f"Central desligada com {len(self.sessoes.ativas())} sessao(oes) em memoria")

    def resumo(self) -> dict:
        """Estado em memoria para o /health."""
        return {
            "sessoes_ativas": len(self.sessoes.ativas()),
            "temporizadores": self.agendador.total(),
        }

    def __repr__(self) -> str:
        ativas = [mascarar(s.identificador) for s in self.sessoes.ativas()]
        return f"<CentralCorridas sessoes={ativas}>"


@lru_cache()
def get_central() -> CentralCorridas:
    """Central de producao, ligada ao Supabase e a Evolution API."""
    from app.repositories.deps import (
        get_atribuicao_repo,
        get_avaliacao_repo,
        get_corrida_repo,
        get_estado_conversa_repo,
        get_motorista_repo,
        get_usuario_repo,
    )

    return CentralCorridas(
        usuarios=get_usuario_repo(),
        motoristas=get_motorista_repo(),
        corridas=get_corrida_repo(),
        atribuicoes=get_atribuicao_repo(),
        avaliacoes_repo=get_avaliacao_repo(),
        conversas_repo=get_estado_conversa_repo(),
        mensageiro=Mensageiro(),
    )
