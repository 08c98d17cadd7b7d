"""
Testes para o módulo de timezone.
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from app.core.timezone import (
    TZ_BRASILIA,
    TZ_UTC,
    agora_utc,
    de_iso,
    formatar_data_brasilia,
    iso_utc,
    para_brasilia,
    para_utc,
)


class TestTimezoneConstants:
    """Testes para constantes de timezone."""

    def test_tz_brasilia_is_sao_paulo(self):
        assert TZ_BRASILIA == ZoneInfo("America/Sao_Paulo")

    def test_tz_utc_is_utc(self):
        assert TZ_UTC == timezone.utc


class TestAgoraUtc:
    """Testes para agora_utc()."""

    def test_retorna_datetime_em_utc(self):
        dt = agora_utc()
        assert dt.tzinfo == TZ_UTC

    def test_retorna_horario_proximo_do_agora(self):
        diff = abs((agora_utc() - datetime.now(timezone.utc)).total_seconds())
        assert diff < 1


class TestConversoes:
    """Testes para para_brasilia() e para_utc()."""

    def test_converte_utc_para_brasilia(self):
        """15:00 UTC = 12:00 BRT (sem horário de verão desde 2019)."""
        dt_brt = para_brasilia(datetime(2025, 1, 15, 15, 0, tzinfo=TZ_UTC))
        assert dt_brt.tzinfo == TZ_BRASILIA
        assert dt_brt.hour == 12

    def test_naive_e_tratado_como_utc(self):
        assert para_utc(datetime(2025, 1, 15, 15, 0)).tzinfo == TZ_UTC
        assert para_brasilia(datetime(2025, 1, 15, 15, 0)).hour == 12


class TestDeIso:
    """Testes para de_iso()."""

    def test_aceita_sufixo_z(self):
        dt = de_iso("2025-03-10T15:00:00Z")
        assert dt == datetime(2025, 3, 10, 15, 0, tzinfo=TZ_UTC)

    def test_converte_offset_para_utc(self):
        dt = de_iso("2025-03-10T12:00:00-03:00")
        assert dt == datetime(2025, 3, 10, 15, 0, tzinfo=TZ_UTC)
        assert dt.tzinfo == TZ_UTC

    def test_vazio_retorna_none(self):
        assert de_iso(None) is None
        assert de_iso("") is None

    def test_round_trip_com_iso_utc(self):
        original = datetime(2025, 3, 10, 15, 30, 45, tzinfo=TZ_UTC)
        assert de_iso(iso_utc(original)) == original


class TestFormatarDataBrasilia:

    def test_formato_padrao(self):
        dt = datetime(2025, 3, 10, 15, 0, tzinfo=TZ_UTC)
        assert formatar_data_brasilia(dt) == "10/03/2025 12:00"

    def test_formato_customizado(self):
        dt = datetime(2025, 3, 10, 15, 0, tzinfo=TZ_UTC)
        assert formatar_data_brasilia(dt, "%d/%m/%Y às %H:%M") == "10/03/2025 às 12:00"
