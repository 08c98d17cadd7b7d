"""
Sessoes de conversa em andamento.

A sessao vive em memoria enquanto o passageiro responde e e gravada em
estados_conversa a cada transicao, para ser reconstruida apos restart.
"""
import logging
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Optional

from app.core.logging import mascarar
from app.core.timezone import de_iso, iso_utc
from app.repositories.conversas import EstadoConversaRepository
from app.schemas.mensagem import Localizacao
from .constantes import Estado

logger = logging.getLogger(__name__)


@dataclass
class SessaoConversa:
    """Estado da conversa de um remetente."""

    identificador: str
    estado: Estado
    idioma: Optional[str] = None
    tipo_veiculo: Optional[str] = None
    pular_dados_usuario: bool = False
    nome: Optional[str] = None
    telefone: Optional[str] = None
    local_texto: Optional[str] = None
    local_lat: Optional[float] = None
    local_lng: Optional[float] = None
    destino: Optional[str] = None
    identificacao: Optional[str] = None
    tempo_espera: Optional[int] = None
    corrida_id: Optional[int] = None
    modo_teste: bool = False
    tentativas_cpf: int = 0
    iniciada_em: Optional[datetime] = None
    ultima_atividade_em: Optional[datetime] = None

    @property
    def localizacao(self) -> Optional[Localizacao]:
        if self.local_lat is None or self.local_lng is None:
            return None
        return Localizacao(latitude=self.local_lat, longitude=self.local_lng)

    @property
    def is_confirmacao_cpf(self) -> bool:
        return self.estado == Estado.AWAITING_DRIVER_CPF_CONFIRMATION

    def to_registro(self) -> dict:
        """Linha de estados_conversa (ativa)."""
        registro = {}
        for campo in fields(self):
            valor = getattr(self, campo.name)
            if isinstance(valor, Estado):
                valor = valor.value
            elif isinstance(valor, datetime):
                valor = iso_utc(valor)
            registro[campo.name] = valor
        registro["ativa"] = True
        registro["motivo_encerramento"] = None
        registro["encerrada_em"] = None
        return registro

    @classmethod
    def from_registro(cls, registro: dict) -> "SessaoConversa":
        """
        Reconstroi a sessao a partir da linha do banco.

        Raises:
            ValueError: estado desconhecido
        """
        return cls(
            identificador=registro["identificador"],
            estado=Estado(registro["estado"]),
            idioma=registro.get("idioma"),
            tipo_veiculo=registro.get("tipo_veiculo"),
            pular_dados_usuario=bool(registro.get("pular_dados_usuario")),
            nome=registro.get("nome"),
            telefone=registro.get("telefone"),
            local_texto=registro.get("local_texto"),
            local_lat=registro.get("local_lat"),
            local_lng=registro.get("local_lng"),
            destino=registro.get("destino"),
            identificacao=registro.get("identificacao"),
            tempo_espera=registro.get("tempo_espera"),
            corrida_id=registro.get("corrida_id"),
            modo_teste=bool(registro.get("modo_teste")),
            tentativas_cpf=registro.get("tentativas_cpf") or 0,
            iniciada_em=de_iso(registro.get("iniciada_em")),
            ultima_atividade_em=de_iso(registro.get("ultima_atividade_em")),
        )


class RepositorioSessoes:
    """
    Dono das sessoes em memoria e do mapa corrida -> passageiro.

    Toda gravacao passa por aqui, entao memoria e banco andam juntos.
    """

    def __init__(self, repo: EstadoConversaRepository, relogio):
        self._repo = repo
        self._relogio = relogio
        self._sessoes: dict[str, SessaoConversa] = {}
        self._corridas: dict[str, int] = {}

    def obter(self, identificador: str) -> Optional[SessaoConversa]:
        return self._sessoes.get(identificador)

    def __contains__(self, identificador: str) -> bool:
        return identificador in self._sessoes

    def ativas(self) -> list[SessaoConversa]:
        return list(self._sessoes.values())

    async def iniciar(self, identificador: str, estado: Estado, **campos) -> SessaoConversa:
        """Cria (ou substitui) a sessao do remetente e grava."""
        agora = self._relogio.agora()
        sessao = SessaoConversa(
            identificador=identificador,
            estado=estado,
            iniciada_em=agora,
            ultima_atividade_em=agora,
            **campos,
        )
        await self.salvar(sessao)
        logger.debug(f"Sessao {estado.value} iniciada para {mascarar(identificador)}")
        return sessao

    async def salvar(self, sessao: SessaoConversa) -> SessaoConversa:
        """Atualiza ultima atividade, guarda em memoria e faz upsert."""
        sessao.ultima_atividade_em = self._relogio.agora()
        self._sessoes[sessao.identificador] = sessao
        await self._repo.salvar(sessao.to_registro())
        return sessao

    async def encerrar(self, identificador: str, motivo: str) -> Optional[SessaoConversa]:
        """Remove da memoria e marca a linha como inativa."""
        sessao = self._sessoes.pop(identificador, None)
        await self._repo.desativar(identificador, motivo, self._relogio.agora())
        logger.debug(f"Sessao de {mascarar(identificador)} encerrada: {motivo}")
        return sessao

    def restaurar(self, sessao: SessaoConversa):
        """Recoloca em memoria uma sessao lida do banco (sem regravar)."""
        self._sessoes[sessao.identificador] = sessao

    async def carregar_ativas(self) -> list[SessaoConversa]:
        """Le as linhas ativas; linhas invalidas sao logadas e puladas."""
        sessoes = []
        for registro in await self._repo.listar_ativos():
            try:
                sessoes.append(SessaoConversa.from_registro(registro))
            except (KeyError, ValueError) as e:
                logger.error(
                    f"Estado de conversa invalido para "
                    f"{mascarar(registro.get('identificador'))}: {e}"
                )
        return sessoes

    def registrar_corrida(self, identificador: str, corrida_id: int):
        self._corridas[identificador] = corrida_id

    def corrida_de(self, identificador: str) -> Optional[int]:
        return self._corridas.get(identificador)

    def esquecer_corrida(self, identificador: str):
        self._corridas.pop(identificador, None)
