"""
Cadastro de motorista pelo WhatsApp.

Fluxo curto e so em memoria: nome -> telefone -> CPF -> tipo de veiculo
-> CONFIRMAR/CANCELAR. Um restart descarta cadastros em andamento.
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from app.core.config import CorridasConfig
from app.core.exceptions import DatabaseError
from app.core.logging import mascarar
from .identidade import normalizar_cpf, preparar_campos_identificador, validar_cpf
from .temporizadores import GRUPO_AVISO_CADASTRO, GRUPO_TIMEOUT_CADASTRO

if TYPE_CHECKING:
    from .central import CentralCorridas

logger = logging.getLogger(__name__)


class EtapaCadastro(str, Enum):
    NOME = "awaiting_name"
    TELEFONE = "awaiting_phone"
    CPF = "awaiting_cpf"
    TIPO_VEICULO = "awaiting_vehicle_type"
    CONFIRMACAO = "awaiting_confirmation"


MENSAGENS = {
    "saudacao": "🚖 *Cadastro de Motorista*\n\nOlá! Vou te ajudar a se cadastrar como motorista na nossa plataforma.\n\nPor favor, responda algumas perguntas para completar seu cadastro.",
    "nome": "👤 Qual é o seu nome completo?",
    "nome_invalido": "❌ Por favor insira um nome válido.",
    "telefone": "📱 Qual é o seu número de telefone com DDI?\n\n_Exemplo: +55 84 9 1234-5678_",
    "telefone_invalido": "❌ Formato de telefone inválido. Por favor inclua o código do país começando com + (ex: +55 84 9 1234-5678)",
    "cpf": "🆔 Qual é o seu CPF?\n\n_Formato: 123.456.789-10 ou 12345678910_",
    "cpf_invalido": "❌ CPF inválido. Por favor insira um CPF válido no formato 123.456.789-10 ou apenas os 11 números.",
    "cpf_em_uso": "❌ Este CPF já está cadastrado para outro motorista. Entre em contato com o suporte.",
    "tipo_veiculo": "🚗 Qual tipo de motorista você é?\n\n1️⃣ - Mototaxi 🏍️\n2️⃣ - Táxi 🚗",
    "tipo_veiculo_invalido": "❌ Por favor selecione 1 para Mototaxi ou 2 para Táxi",
    "confirmacao": """📋 *Confirme suas informações:*

*Nome:* {nome}
*Telefone:* {telefone}
*CPF:* {cpf}
*Tipo:* {tipo}

As informações estão corretas?

Responda:
*CONFIRMAR* - para completar o cadastro
*CANCELAR* - para cancelar""",
    "confirmacao_invalida": "❌ Por favor responda com *CONFIRMAR* para completar ou *CANCELAR* para cancelar.",
    "cancelado": '❌ Cadastro cancelado. Envie "cadastrar motorista" para começar novamente.',
    "sucesso": "✅ *Cadastro completado com sucesso!*\n\nVocê agora está registrado na nossa plataforma e começará a receber solicitações de corrida.\n\nBoa sorte! 🚖",
    "ja_cadastrado": "✅ Você já está cadastrado como motorista!\n\nSe precisar atualizar suas informações, entre em contato com o suporte.",
    "aviso_timeout": "⚠️ Aviso: Você tem 2 minutos e 30 segundos restantes para responder, ou sua sessão de cadastro expirará.",
    "erro": "❌ Ocorreu um erro durante o cadastro. Por favor tente novamente mais tarde ou entre em contato com o suporte.",
    "timeout": '⏰ Sua sessão de cadastro expirou por inatividade. Por favor envie "cadastrar motorista" novamente para começar um novo cadastro.',
}

_TELEFONE_CADASTRO = re.compile(r"^\+[\d\s\-]+$")


def validar_telefone_cadastro(texto: str) -> bool:
    """Comeca com + e tem pelo menos 10 digitos."""
    if not _TELEFONE_CADASTRO.match(texto or ""):
        return False
    return len(re.sub(r"\D", "", texto)) >= 10


@dataclass
class CadastroEmAndamento:
    identificador: str
    etapa: EtapaCadastro = EtapaCadastro.NOME
    nome: Optional[str] = None
    telefone: Optional[str] = None
    cpf: Optional[str] = None
    is_taxi: bool = False
    is_mototaxi: bool = False


class CadastroMotorista:
    """Conduz o cadastro de novos motoristas."""

    def __init__(self, central: "CentralCorridas"):
        self.central = central
        self._cadastros: dict[str, CadastroEmAndamento] = {}

    def em_andamento(self, identificador: str) -> bool:
        return identificador in self._cadastros

    async def _enviar(self, identificador: str, chave: str, **kwargs):
        texto = MENSAGENS[chave].format(**kwargs) if kwargs else MENSAGENS[chave]
        await self.central.mensageiro.enviar(identificador, texto)

    def _reiniciar_timeout(self, identificador: str):
        agendador = self.central.agendador
        agendador.agendar(
            GRUPO_AVISO_CADASTRO,
            identificador,
            CorridasConfig.AVISO_CADASTRO,
            lambda: self._avisar(identificador),
        )
        agendador.agendar(
            GRUPO_TIMEOUT_CADASTRO,
            identificador,
            CorridasConfig.TIMEOUT_CADASTRO,
            lambda: self._expirar(identificador),
        )

    def _encerrar(self, identificador: str):
        self._cadastros.pop(identificador, None)
        self.central.agendador.cancelar(GRUPO_AVISO_CADASTRO, identificador)
        self.central.agendador.cancelar(GRUPO_TIMEOUT_CADASTRO, identificador)

    async def _avisar(self, identificador: str):
        if identificador in self._cadastros:
            await self._enviar(identificador, "aviso_timeout")

    async def _expirar(self, identificador: str):
        if identificador not in self._cadastros:
            return
        self._encerrar(identificador)
        await self._enviar(identificador, "timeout")
        logger.info(f"Cadastro de {mascarar(identificador)} expirado")

    async def iniciar(self, identificador: str):
        """Comeca o cadastro; motorista ja cadastrado so recebe aviso."""
        if await self.central.identidade.is_motorista_registrado(identificador):
            await self._enviar(identificador, "ja_cadastrado")
            logger.info(f"{mascarar(identificador)} tentou se cadastrar mas ja e motorista")
            return

        self._cadastros[identificador] = CadastroEmAndamento(identificador=identificador)
        self._reiniciar_timeout(identificador)
        await self._enviar(identificador, "saudacao")
        await self._enviar(identificador, "nome")
        logger.info(f"Cadastro de motorista iniciado por {mascarar(identificador)}")

    async def processar(self, identificador: str, texto: Optional[str]) -> bool:
        """
        Processa um turno do cadastro.

        Returns:
            False se o remetente nao esta em cadastro
        """
        cadastro = self._cadastros.get(identificador)
        if cadastro is None:
            return False

        self._reiniciar_timeout(identificador)
        texto = (texto or "").strip()

        if cadastro.etapa == EtapaCadastro.NOME:
            if len(texto) < 3:
                await self._enviar(identificador, "nome_invalido")
                return True
            cadastro.nome = texto
            cadastro.etapa = EtapaCadastro.TELEFONE
            await self._enviar(identificador, "telefone")

        elif cadastro.etapa == EtapaCadastro.TELEFONE:
            if not validar_telefone_cadastro(texto):
                await self._enviar(identificador, "telefone_invalido")
                return True
            cadastro.telefone = texto
            cadastro.etapa = EtapaCadastro.CPF
            await self._enviar(identificador, "cpf")

        elif cadastro.etapa == EtapaCadastro.CPF:
            cpf = normalizar_cpf(re.sub(r"\D", "", texto))
            if cpf is None or not validar_cpf(cpf):
                await self._enviar(identificador, "cpf_invalido")
                return True
            if await self.central.motoristas.buscar_por_cpf(cpf) is not None:
                self._encerrar(identificador)
                await self._enviar(identificador, "cpf_em_uso")
                return True
            cadastro.cpf = cpf
            cadastro.etapa = EtapaCadastro.TIPO_VEICULO
            await self._enviar(identificador, "tipo_veiculo")

        elif cadastro.etapa == EtapaCadastro.TIPO_VEICULO:
            if texto not in ("1", "2"):
                await self._enviar(identificador, "tipo_veiculo_invalido")
                return True
            cadastro.is_mototaxi = texto == "1"
            cadastro.is_taxi = texto == "2"
            cadastro.etapa = EtapaCadastro.CONFIRMACAO
            await self._enviar(
                identificador,
                "confirmacao",
                nome=cadastro.nome,
                telefone=cadastro.telefone,
                cpf=cadastro.cpf,
                tipo="Mototaxi 🏍️" if cadastro.is_mototaxi else "Táxi 🚗",
            )

        elif cadastro.etapa == EtapaCadastro.CONFIRMACAO:
            resposta = texto.upper()
            if resposta in ("CONFIRMAR", "CONFIRM"):
                await self._concluir(cadastro)
            elif resposta in ("CANCELAR", "CANCEL"):
                self._encerrar(identificador)
                await self._enviar(identificador, "cancelado")
                logger.info(f"Cadastro cancelado por {mascarar(identificador)}")
            else:
                await self._enviar(identificador, "confirmacao_invalida")

        return True

    async def _concluir(self, cadastro: CadastroEmAndamento):
        identificador = cadastro.identificador
        self._encerrar(identificador)
        try:
            motorista = await self.central.motoristas.criar({
                **preparar_campos_identificador(identificador),
                "nome": cadastro.nome,
                "telefone": cadastro.telefone,
                "cpf": cadastro.cpf,
                "is_taxi": cadastro.is_taxi,
                "is_mototaxi": cadastro.is_mototaxi,
                "ativo": True,
            })
        except DatabaseError as e:
            logger.error(f"Erro ao gravar cadastro de {mascarar(identificador)}: {e}")
            await self._enviar(identificador, "erro")
            return
        await self._enviar(identificador, "sucesso")
        logger.info(f"Motorista {motorista.id} cadastrado por {mascarar(identificador)}")
