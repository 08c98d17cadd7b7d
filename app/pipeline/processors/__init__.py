"""
Pre-processadores do pipeline - um modulo por handler de roteamento.
"""

from .parse import ParseMessageProcessor
from .entities import LoadIdentidadeProcessor
from .cadastro import CadastroAtivoProcessor, CadastroMotoristaProcessor
from .conversa import ConversaAtivaProcessor, ConfirmacaoCpfProcessor
from .cancelamento import CancelamentoPassageiroProcessor, CancelamentoMotoristaProcessor
from .avaliacao import AvaliacaoProcessor, AvaliacaoInvalidaProcessor
from .aceite import AceiteMotoristaProcessor
from .pedido import HistoricoProcessor, NovoPedidoProcessor

__all__ = [
    # Ordem por prioridade
    "ParseMessageProcessor",            # 10
    "LoadIdentidadeProcessor",          # 20
    "CadastroAtivoProcessor",           # 27
    "ConversaAtivaProcessor",           # 30
    "ConfirmacaoCpfProcessor",          # 35
    "CancelamentoPassageiroProcessor",  # 40
    "CancelamentoMotoristaProcessor",   # 45
    "AvaliacaoProcessor",               # 50
    "AvaliacaoInvalidaProcessor",       # 55
    "AceiteMotoristaProcessor",         # 60
    "CadastroMotoristaProcessor",       # 65
    "HistoricoProcessor",               # 70
    "NovoPedidoProcessor",              # 80
]
