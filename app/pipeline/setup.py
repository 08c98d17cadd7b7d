"""
Configuracao do pipeline de mensagens.
"""
from typing import Optional

from app.services.corridas.central import CentralCorridas
from .processor import MessageProcessor
from .core import MensagemIgnoradaProcessor
from .processors import (
    ParseMessageProcessor,
    LoadIdentidadeProcessor,
    CadastroAtivoProcessor,
    ConversaAtivaProcessor,
    ConfirmacaoCpfProcessor,
    CancelamentoPassageiroProcessor,
    CancelamentoMotoristaProcessor,
    AvaliacaoProcessor,
    AvaliacaoInvalidaProcessor,
    AceiteMotoristaProcessor,
    CadastroMotoristaProcessor,
    HistoricoProcessor,
    NovoPedidoProcessor,
)
from .post_processors import SendMessageProcessor, TimingProcessor


def criar_pipeline(central: CentralCorridas) -> MessageProcessor:
    """
    Cria e configura o pipeline de mensagens.

    A ordem dos handlers e a ordem de roteamento: o primeiro que
    consome a mensagem encerra o pipeline.

    Returns:
        MessageProcessor configurado
    """
    pipeline = MessageProcessor()

    # Pre-processadores (ordem por prioridade)
    pipeline.add_pre_processor(ParseMessageProcessor())                   # 10
    pipeline.add_pre_processor(LoadIdentidadeProcessor(central))          # 20
    pipeline.add_pre_processor(CadastroAtivoProcessor(central))           # 27
    pipeline.add_pre_processor(ConversaAtivaProcessor(central))           # 30
    pipeline.add_pre_processor(ConfirmacaoCpfProcessor(central))          # 35
    pipeline.add_pre_processor(CancelamentoPassageiroProcessor(central))  # 40
    pipeline.add_pre_processor(CancelamentoMotoristaProcessor(central))   # 45
    pipeline.add_pre_processor(AvaliacaoProcessor(central))               # 50
    pipeline.add_pre_processor(AvaliacaoInvalidaProcessor(central))       # 55
    pipeline.add_pre_processor(AceiteMotoristaProcessor(central))         # 60
    pipeline.add_pre_processor(CadastroMotoristaProcessor(central))       # 65
    pipeline.add_pre_processor(HistoricoProcessor(central))               # 70
    pipeline.add_pre_processor(NovoPedidoProcessor(central))              # 80

    # Nenhum handler consumiu
    pipeline.set_core_processor(MensagemIgnoradaProcessor())

    # Pos-processadores (respostas simples dos handlers)
    pipeline.add_post_processor(SendMessageProcessor(central.mensageiro))  # 20
    pipeline.add_post_processor(TimingProcessor())                         # 40

    return pipeline


_pipeline: Optional[MessageProcessor] = None


def get_pipeline() -> MessageProcessor:
    """Pipeline de producao (criado na primeira mensagem)."""
    global _pipeline
    if _pipeline is None:
        from app.services.corridas.central import get_central
        _pipeline = criar_pipeline(get_central())
    return _pipeline
