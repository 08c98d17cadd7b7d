"""
Processador de aceite de corrida pelo motorista.
"""
import logging

from ..base import CentralPreProcessor, ProcessorContext, ProcessorResult
from app.core.logging import mascarar
from app.services.corridas.comandos import CMD_ACEITAR, CMD_ACEITAR_SEM_NUMERO, CMD_NUMERO
from app.services.corridas.identidade import is_mesma_pessoa
from app.services.corridas.traducoes import m

logger = logging.getLogger(__name__)


class AceiteMotoristaProcessor(CentralPreProcessor):
    """
    "aceitar [corrida] <id>" ou, de motorista cadastrado, so "<id>".

    Remetente nao reconhecido que manda "aceitar <id>", ou so "<id>" de
    uma corrida transmitida que nao e dele, entra na confirmacao por CPF.

    Prioridade: 60
    """
    name = "aceite_motorista"
    priority = 60

    def should_run(self, context: ProcessorContext) -> bool:
        return context.comando is not None and context.comando.nome in (
            CMD_ACEITAR, CMD_ACEITAR_SEM_NUMERO, CMD_NUMERO
        )

    async def _corrida_aguardando_motorista(self, remetente: str, corrida_id: int) -> bool:
        corrida = await self.central.corridas.buscar_por_id(corrida_id)
        if corrida is None or not corrida.pendente or corrida.transmitida_em is None:
            return False
        usuario = await self.central.usuarios.buscar_por_id(corrida.usuario_id)
        return not is_mesma_pessoa(remetente, usuario)

    async def process(self, context: ProcessorContext) -> ProcessorResult:
        comando = context.comando

        if comando.nome == CMD_ACEITAR_SEM_NUMERO:
            return ProcessorResult(
                success=True,
                should_continue=False,
                response=m("aceitar_sem_numero"),
            )

        if context.motorista is not None:
            await self.central.ciclo.aceitar_corrida(
                context.motorista, context.remetente, comando.corrida_id
            )
            return ProcessorResult(success=True, should_continue=False)

        if comando.nome == CMD_NUMERO and not await self._corrida_aguardando_motorista(
            context.remetente, comando.corrida_id
        ):
            # Numero solto sem corrida transmitida de outra pessoa
            return ProcessorResult(success=True)

        logger.info(f"Aceite de remetente nao reconhecido {mascarar(context.remetente)}")
        await self.central.ciclo.solicitar_confirmacao_cpf(context.remetente, comando.corrida_id)
        return ProcessorResult(success=True, should_continue=False)
