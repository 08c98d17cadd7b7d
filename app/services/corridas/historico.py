"""
Relatorio "my rides" / "minhas corridas".

Bilingue, porque o pedido pode chegar de quem nunca escolheu idioma.
"""
import logging
from typing import TYPE_CHECKING

from app.core.config import CorridasConfig
from app.core.logging import mascarar
from app.core.timezone import formatar_data_brasilia
from app.repositories.corridas import (
    STATUS_CANCELADA,
    STATUS_CONCLUIDA,
    STATUS_EXPIRADA,
    STATUS_PENDENTE,
    Corrida,
)
from app.services.whatsapp import numero_de
from .constantes import IDIOMA_PORTUGUES, TIPO_MOTOTAXI
from .identidade import identificador_principal

if TYPE_CHECKING:
    from .central import CentralCorridas

logger = logging.getLogger(__name__)

SEPARADOR = "━━━━━━━━━━━━━━━━━━━━━━━━"

SEM_HISTORICO = """📋 *Ride History / Histórico de Corridas*

You don't have any ride history yet.
Você ainda não tem histórico de corridas.

To request a ride, send "taxi" or "mototaxi".
Para solicitar uma corrida, envie "taxi" ou "mototaxi"."""

RODAPE = """To request a new ride, send "taxi" or "mototaxi".
Para solicitar uma nova corrida, envie "taxi" ou "mototaxi"."""

# status -> (icone, en, pt)
STATUS_EXIBICAO = {
    STATUS_CONCLUIDA: ("✅", "Completed", "Concluída"),
    STATUS_EXPIRADA: ("⏰", "Expired", "Expirada"),
    STATUS_CANCELADA: ("❌", "Cancelled", "Cancelada"),
    STATUS_PENDENTE: ("⏳", "Pending", "Pendente"),
}


class ServicoHistorico:
    """Monta e envia as ultimas corridas do passageiro."""

    def __init__(self, central: "CentralCorridas"):
        self.central = central

    async def enviar_historico(self, remetente: str) -> bool:
        usuario = await self.central.identidade.buscar_usuario(remetente)
        corridas = []
        if usuario is not None:
            corridas = await self.central.corridas.listar_por_usuario(
                usuario.id, CorridasConfig.LIMITE_HISTORICO
            )

        if not corridas:
            await self.central.mensageiro.enviar(remetente, SEM_HISTORICO)
            logger.info(f"Historico vazio para {mascarar(remetente)}")
            return True

        texto, mentions = await self.montar_relatorio(corridas)
        await self.central.mensageiro.enviar(remetente, texto, mentions=mentions or None)
        logger.info(f"Historico de {len(corridas)} corrida(s) enviado para {mascarar(remetente)}")
        return True

    async def montar_relatorio(self, corridas: list[Corrida]) -> tuple[str, list[str]]:
        """
        Returns:
            (texto, identificadores mencionados)
        """
        total = len(corridas)
        linhas = [
            f"📋 *Your Last {total} Ride(s) / Suas Últimas {total} Corrida(s)*",
            "",
            SEPARADOR,
            "",
        ]
        mentions = []

        for posicao, corrida in enumerate(corridas, start=1):
            pt = corrida.idioma == IDIOMA_PORTUGUES
            icone, status_en, status_pt = STATUS_EXIBICAO.get(corrida.status, ("", corrida.status, corrida.status))
            mototaxi = corrida.tipo_veiculo == TIPO_MOTOTAXI

            linhas.append(f"*{posicao}. Ride #{corrida.id}* {icone} {status_pt if pt else status_en}")
            linhas.append(f"{'🏍️ Mototaxi' if mototaxi else '🚗 Táxi'}")
            if corrida.created_at:
                data = formatar_data_brasilia(corrida.created_at, "%d/%m/%Y às %H:%M")
                linhas.append(f"📅 {data}")
            linhas.append(f"📍 *From / De:* {corrida.local_texto or 'N/A'}")
            linhas.append(f"🎯 *To / Para:* {corrida.destino or 'N/A'}")

            motorista = await self._motorista_da_corrida(corrida)
            identificador = identificador_principal(motorista) if motorista else None
            if identificador:
                linhas.append(f"👤 *Driver / Motorista:* @{numero_de(identificador)}")
                mentions.append(identificador)
            else:
                sem_motorista = "Nenhum motorista aceitou" if pt else "No driver accepted"
                linhas.append(f"👤 *Driver / Motorista:* {sem_motorista}")

            if corrida.tentativas > 0:
                linhas.append(f"🔄 *Retry attempts / Tentativas:* {corrida.tentativas}")
            linhas.append("")

        linhas.extend([SEPARADOR, "", RODAPE])
        return "\n".join(linhas), mentions

    async def _motorista_da_corrida(self, corrida: Corrida):
        atribuicao = await self.central.atribuicoes.buscar_por_corrida(corrida.id)
        if atribuicao is None:
            return None
        return await self.central.motoristas.buscar_por_id(atribuicao.motorista_id)
