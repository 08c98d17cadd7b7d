"""
Central de corridas (taxi / mototaxi) via WhatsApp.

Conversa do passageiro, transmissao para motoristas, aceite, timers
duraveis e avaliacoes.
"""
from .central import CentralCorridas, get_central
from .comandos import Comando, interpretar
from .constantes import Estado

__all__ = [
    "CentralCorridas",
    "get_central",
    "Comando",
    "interpretar",
    "Estado",
]
