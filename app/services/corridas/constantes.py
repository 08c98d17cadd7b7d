"""
Estados, tipos e motivos usados pelo fluxo de corridas.
"""
from enum import Enum


class Estado(str, Enum):
    """Estados da conversa do passageiro (e do sub-fluxo de CPF do motorista)."""

    AWAITING_LANGUAGE = "awaiting_language"
    AWAITING_VEHICLE_TYPE = "awaiting_vehicle_type"
    AWAITING_NAME = "awaiting_name"
    AWAITING_PHONE = "awaiting_phone"
    AWAITING_LOCATION_TEXT = "awaiting_location_text"
    AWAITING_LOCATION_PIN = "awaiting_location_pin"
    AWAITING_DESTINATION = "awaiting_destination"
    AWAITING_IDENTIFIER = "awaiting_identifier"
    AWAITING_WAIT_TIME = "awaiting_wait_time"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    AWAITING_DRIVER_ACCEPTANCE = "awaiting_driver_acceptance"
    AWAITING_RETRY_DECISION = "awaiting_retry_decision"
    AWAITING_RETRY_WAIT_TIME = "awaiting_retry_wait_time"
    AWAITING_DRIVER_CANCEL_DECISION = "awaiting_driver_cancel_decision"
    AWAITING_DRIVER_CPF_CONFIRMATION = "awaiting_driver_cpf_confirmation"


TIPO_TAXI = "taxi"
TIPO_MOTOTAXI = "mototaxi"

IDIOMA_INGLES = "en"
IDIOMA_PORTUGUES = "pt"
IDIOMAS = (IDIOMA_INGLES, IDIOMA_PORTUGUES)

# Motivos de encerramento gravados em estados_conversa.motivo_encerramento
MOTIVO_TIMEOUT = "timeout"
MOTIVO_TRANSMITIDA = "ride_broadcast"
MOTIVO_SEM_MOTORISTAS = "no_drivers"
MOTIVO_CANCELADA = "user_cancelled"
MOTIVO_CANCELADA_APOS_EXPIRAR = "user_cancelled_after_retry"
MOTIVO_CANCELADA_APOS_MOTORISTA = "user_cancelled_after_driver_cancel"
MOTIVO_CORRIDA_NAO_ENCONTRADA = "ride_not_found"
MOTIVO_MOTORISTA_ACEITOU = "driver_accepted"
MOTIVO_CPF_VALIDADO = "cpf_validated"
MOTIVO_CPF_FALHOU = "cpf_validation_failed"
MOTIVO_SUBSTITUIDA = "replaced"
