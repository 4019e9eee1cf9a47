"""
Tests for settings parsing.
"""

import pytest
from pydantic import ValidationError

from kronos.core.config import Settings
from kronos.scoring.analog_selector import AnalogSelector, normalize_analog_id
from kronos.scoring.schemas import AnalogId


class TestSettings:
    """Tests for Settings validation."""

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.fetch_batch_size == 5
        assert settings.fetch_batch_delay == pytest.approx(0.5)
        assert settings.ticker_cache_ttl_days == 30
        assert settings.benchmark_ticker == "^SP500TR"

    def test_synonyms_from_json_env(self, monkeypatch):
        """Synonyms can be given as a JSON object in the environment."""
        monkeypatch.setenv("ANALOG_ID_SYNONYMS", '{"gfc": "covid_crash", "Lehman": "Rate_Shock"}')

        settings = Settings(_env_file=None)

        assert settings.analog_id_synonyms == {"GFC": "COVID_CRASH", "LEHMAN": "RATE_SHOCK"}

    def test_configured_synonyms_reach_selector(self):
        settings = Settings(_env_file=None, analog_id_synonyms={"GFC": "COVID_CRASH"})
        selector = AnalogSelector(settings=settings)

        assert normalize_analog_id("gfc 2008", selector._synonyms) == AnalogId.COVID_CRASH

    def test_log_level_normalized(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="chatty")

    def test_invalid_log_format(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_format="xml")

    def test_cache_version_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, asset_returns_cache_version=0)
