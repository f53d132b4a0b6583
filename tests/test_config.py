"""
Tests for environment-driven settings
Run with: pytest tests/test_config.py -v
"""

import pytest

from edgerunner.config import Settings
from edgerunner.core.allocation import DEFAULT_CONFIG

ENV_VARS = (
    "DEFAULT_BANKROLL",
    "STAKE_CAP",
    "MARKET_SUM_TOLERANCE_PCT",
    "ALLOCATOR_MAX_ITER",
    "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettings:

    def test_defaults(self, clean_env):
        settings = Settings.from_env()
        assert settings == Settings()
        assert settings.default_bankroll == 1000.0
        assert settings.stake_cap == 1.0
        assert settings.market_sum_tolerance_pct == 0.5
        assert settings.allocator_max_iter == 300
        assert settings.log_level == "INFO"

    def test_overrides(self, clean_env):
        clean_env.setenv("DEFAULT_BANKROLL", "2500")
        clean_env.setenv("STAKE_CAP", "0.5")
        clean_env.setenv("ALLOCATOR_MAX_ITER", "50")
        clean_env.setenv("LOG_LEVEL", "debug")

        settings = Settings.from_env()
        assert settings.default_bankroll == 2500.0
        assert settings.stake_cap == 0.5
        assert settings.allocator_max_iter == 50
        assert settings.log_level == "DEBUG"

    @pytest.mark.parametrize(
        "name,value",
        [
            ("STAKE_CAP", "0"),
            ("STAKE_CAP", "1.5"),
            ("STAKE_CAP", "half"),
            ("MARKET_SUM_TOLERANCE_PCT", "-1"),
            ("ALLOCATOR_MAX_ITER", "0"),
            ("ALLOCATOR_MAX_ITER", "12.5"),
            ("DEFAULT_BANKROLL", "lots"),
        ],
    )
    def test_bad_values_name_the_variable(self, clean_env, name, value):
        clean_env.setenv(name, value)
        with pytest.raises(ValueError, match=name):
            Settings.from_env()

    def test_allocator_config(self):
        config = Settings(allocator_max_iter=42).allocator_config
        assert config.max_iter == 42
        assert config.initial_step == DEFAULT_CONFIG.initial_step
        assert config.min_step == DEFAULT_CONFIG.min_step
