"""Runtime settings for the calculator, read from the environment.

Values come from process environment variables, optionally seeded from a
``.env`` file in the working directory.  Every setting has a default, so an
empty environment yields a working calculator.

==============================  =======  ======================================
Variable                        Default  Meaning
==============================  =======  ======================================
``DEFAULT_BANKROLL``            1000     Bankroll pre-filled in the form
``STAKE_CAP``                   1.0      Max total fraction across all legs
``MARKET_SUM_TOLERANCE_PCT``    0.5      Allowed |Σ market% − 100| before warning
``ALLOCATOR_MAX_ITER``          300      Iteration budget of the exact allocator
``LOG_LEVEL``                   INFO     Root logging level of the dashboard
==============================  =======  ======================================
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from functools import lru_cache

from dotenv import load_dotenv

from edgerunner.core.allocation import DEFAULT_CONFIG, AllocatorConfig

load_dotenv()


def _env_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    """Immutable settings bundle.  Override via :func:`dataclasses.replace`."""

    default_bankroll: float = 1000.0
    stake_cap: float = 1.0
    market_sum_tolerance_pct: float = 0.5
    allocator_max_iter: int = 300
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        settings = cls(
            default_bankroll=_env_float("DEFAULT_BANKROLL", "1000"),
            stake_cap=_env_float("STAKE_CAP", "1.0"),
            market_sum_tolerance_pct=_env_float("MARKET_SUM_TOLERANCE_PCT", "0.5"),
            allocator_max_iter=_env_int("ALLOCATOR_MAX_ITER", "300"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
        if not (0.0 < settings.stake_cap <= 1.0):
            raise ValueError(f"STAKE_CAP must be in (0, 1], got {settings.stake_cap!r}")
        if settings.market_sum_tolerance_pct < 0.0:
            raise ValueError(
                f"MARKET_SUM_TOLERANCE_PCT must be >= 0, got {settings.market_sum_tolerance_pct!r}"
            )
        if settings.allocator_max_iter < 1:
            raise ValueError(
                f"ALLOCATOR_MAX_ITER must be >= 1, got {settings.allocator_max_iter!r}"
            )
        return settings

    @property
    def allocator_config(self) -> AllocatorConfig:
        return replace(DEFAULT_CONFIG, max_iter=self.allocator_max_iter)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
