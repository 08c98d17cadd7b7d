"""
Resolucao de identidade por JID/LID (e CPF para motoristas).

O WhatsApp pode identificar a mesma pessoa por JID
(5584...@s.whatsapp.net) ou LID (...@lid), e uma pessoa pode migrar de
um para o outro. Registros guardam os dois campos; a busca tenta o
campo do tipo detectado e depois o oposto.
"""
import logging
import re
from typing import Any, Optional, Union

from app.core.logging import mascarar
from app.repositories.pessoas import Motorista, MotoristaRepository, Usuario, UsuarioRepository

logger = logging.getLogger(__name__)

TIPO_JID = "jid"
TIPO_LID = "lid"

SUFIXO_LID = "@lid"
SUFIXO_JID = "@s.whatsapp.net"

_NAO_DIGITOS_CPF = re.compile(r"[.\-\s]")


def tipo_identificador(identificador: str) -> str:
    """Detecta o namespace do identificador."""
    if identificador and identificador.endswith(SUFIXO_LID):
        return TIPO_LID
    return TIPO_JID


def tipo_oposto(tipo: str) -> str:
    return TIPO_JID if tipo == TIPO_LID else TIPO_LID


def preparar_campos_identificador(identificador: str) -> dict:
    """
    Campos para gravar o identificador no registro.

    Retorna so o campo do tipo detectado, para que um update nunca apague
    o identificador alternativo ja conhecido.
    """
    return {tipo_identificador(identificador): identificador}


def _campo(registro: Union[Usuario, dict, Any], nome: str) -> Optional[str]:
    if registro is None:
        return None
    if isinstance(registro, dict):
        return registro.get(nome)
    return getattr(registro, nome, None)


def is_mesma_pessoa(remetente: str, registro) -> bool:
    """Compara o remetente com os dois identificadores do registro."""
    if not remetente or registro is None:
        return False
    return remetente in (_campo(registro, TIPO_JID), _campo(registro, TIPO_LID))


def identificador_principal(registro) -> Optional[str]:
    """Identificador de enderecamento: LID se houver, senao JID."""
    return _campo(registro, TIPO_LID) or _campo(registro, TIPO_JID)


def identificador_envio(registro) -> Optional[str]:
    """Identificador para envio: JID se houver, senao LID."""
    return _campo(registro, TIPO_JID) or _campo(registro, TIPO_LID)


def normalizar_cpf(texto: Optional[str]) -> Optional[str]:
    """
    Remove pontos, tracos e espacos.

    Returns:
        CPF com 11 digitos, ou None se o texto nao tiver esse formato
    """
    if not texto:
        return None
    cpf = _NAO_DIGITOS_CPF.sub("", texto.strip())
    if len(cpf) == 11 and cpf.isdigit():
        return cpf
    return None


def validar_cpf(cpf: str) -> bool:
    """Valida os digitos verificadores de um CPF normalizado."""
    if not cpf or len(cpf) != 11 or not cpf.isdigit():
        return False
    if cpf == cpf[0] * 11:
        return False

    for posicao in (9, 10):
        soma = sum(int(cpf[i]) * (posicao + 1 - i) for i in range(posicao))
        digito = (soma * 10) % 11
        if digito == 10:
            digito = 0
        if digito != int(cpf[posicao]):
            return False
    return True


class ResolvedorIdentidade:
    """
    Busca passageiros e motoristas pelo identificador do remetente.

    Uso:
        resolvedor = ResolvedorIdentidade(usuarios_repo, motoristas_repo)
        motorista = await resolvedor.buscar_motorista("12345@lid")
    """

    def __init__(self, usuarios: UsuarioRepository, motoristas: MotoristaRepository):
        self.usuarios = usuarios
        self.motoristas = motoristas

    async def _buscar(self, repo, identificador: str):
        tipo = tipo_identificador(identificador)
        pessoa = await repo.buscar_por_campo(tipo, identificador)
        if pessoa is not None:
            return pessoa
        return await repo.buscar_por_campo(tipo_oposto(tipo), identificador)

    async def buscar_usuario(self, identificador: str) -> Optional[Usuario]:
        """Busca passageiro: mesmo tipo, depois tipo oposto."""
        if not identificador:
            return None
        return await self._buscar(self.usuarios, identificador)

    async def buscar_motorista(self, identificador: str) -> Optional[Motorista]:
        """
        Busca motorista: mesmo tipo, tipo oposto e, quando o texto
        informado normaliza para 11 digitos, CPF.
        """
        if not identificador:
            return None
        motorista = await self._buscar(self.motoristas, identificador)
        if motorista is not None:
            return motorista
        cpf = normalizar_cpf(identificador)
        if cpf:
            return await self.motoristas.buscar_por_cpf(cpf)
        return None

    async def is_motorista_registrado(self, identificador: str) -> bool:
        if not identificador:
            return False
        return await self._buscar(self.motoristas, identificador) is not None

    async def buscar_ou_criar_usuario(
        self,
        identificador: str,
        nome: Optional[str] = None,
        telefone: Optional[str] = None,
    ) -> Usuario:
        """
        Retorna o passageiro do remetente, criando no primeiro contato.

        Nome e telefone informados sobrescrevem os armazenados.
        """
        dados = {k: v for k, v in {"nome": nome, "telefone": telefone}.items() if v}
        usuario = await self.buscar_usuario(identificador)

        if usuario is None:
            usuario = await self.usuarios.criar({
                **preparar_campos_identificador(identificador),
                **dados,
            })
            logger.info(f"Passageiro {usuario.id} criado para {mascarar(identificador)}")
            return usuario

        if dados:
            atualizado = await self.usuarios.atualizar(usuario.id, dados)
            usuario = atualizado or usuario
        return usuario

    async def vincular_motorista(self, motorista: Motorista, identificador: str) -> Motorista:
        """Grava o identificador atual do remetente no campo do seu tipo."""
        campos = preparar_campos_identificador(identificador)
        atualizado = await self.motoristas.atualizar(motorista.id, campos)
        logger.info(
            f"Motorista {motorista.id} vinculado ao {tipo_identificador(identificador)} "
            f"{mascarar(identificador)}"
        )
        return atualizado or motorista
