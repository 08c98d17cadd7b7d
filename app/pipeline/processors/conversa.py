"""
Processadores de sessoes em andamento (conversa do passageiro e CPF).
"""
import logging

from ..base import CentralPreProcessor, ProcessorContext, ProcessorResult

logger = logging.getLogger(__name__)


class ConversaAtivaProcessor(CentralPreProcessor):
    """
    Remetente com conversa de pedido em andamento: a mensagem e a
    resposta da pergunta atual.

    Prioridade: 30
    """
    name = "conversa_ativa"
    priority = 30

    async def process(self, context: ProcessorContext) -> ProcessorResult:
        sessao = self.central.sessoes.obter(context.remetente)
        if sessao is None or sessao.is_confirmacao_cpf:
            return ProcessorResult(success=True)

        await self.central.conversa.processar(
            sessao, context.mensagem_texto, context.localizacao
        )
        return ProcessorResult(
            success=True,
            should_continue=False,
            metadata={"estado": sessao.estado.value},
        )


class ConfirmacaoCpfProcessor(CentralPreProcessor):
    """
    Motorista nao reconhecido respondendo o pedido de CPF.

    Prioridade: 35
    """
    name = "confirmacao_cpf"
    priority = 35

    async def process(self, context: ProcessorContext) -> ProcessorResult:
        sessao = self.central.sessoes.obter(context.remetente)
        if sessao is None or not sessao.is_confirmacao_cpf:
            return ProcessorResult(success=True)

        await self.central.ciclo.processar_cpf(sessao, context.mensagem_texto)
        return ProcessorResult(success=True, should_continue=False)
