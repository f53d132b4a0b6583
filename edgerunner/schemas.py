"""
Pydantic input models for the calculator boundary.

The dashboard hands over whatever the user typed.  These models turn that
raw text into the clamped numbers the core expects, so the core itself
never has to validate: percentages are coerced into [0, 100], unparseable
text becomes 0, and non-finite stake caps are rejected outright.
"""

from __future__ import annotations

import math
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from edgerunner.core.allocation import DEFAULT_STAKE_CAP, Outcome
from edgerunner.core.kelly import BetSide
from edgerunner.core.odds_math import OddsFormat


def parse_bankroll(text: str) -> float:
    """Parse a bankroll like ``"1,250.50"``; anything unparseable is 0.0."""
    cleaned = str(text).strip().replace(",", "")
    try:
        value = float(cleaned)
    except ValueError:
        return 0.0
    return value if math.isfinite(value) else 0.0


def _coerce_pct(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        pct = float(str(value).strip())
    except ValueError:
        return 0.0
    if math.isnan(pct):
        return 0.0
    return min(max(pct, 0.0), 100.0)


# ---------------------------------------------------------------------------
# Single bet
# ---------------------------------------------------------------------------

class SingleBetForm(BaseModel):
    """
    Raw state of the single-bet panel.

    ``your_pct`` is always the probability of the side being backed, so
    toggling ``side`` must also mirror it (see
    :func:`edgerunner.services.calculator.toggle_bet_side`).
    """

    model_config = ConfigDict(frozen=True)

    market_pct: float = Field(60.0, description="% the market gives the event")
    your_pct: float = Field(55.0, description="% you give the backed side")
    side: BetSide = BetSide.ON_EVENT
    odds_format: OddsFormat = OddsFormat.DECIMAL
    odds_text: str = Field("", description="Explicit odds; blank = use market %")
    bankroll_text: str = "1000"

    @field_validator("market_pct", "your_pct", mode="before")
    @classmethod
    def clamp_pct(cls, v: Any) -> float:
        return _coerce_pct(v)

    @property
    def bankroll(self) -> float:
        return parse_bankroll(self.bankroll_text)

    @property
    def bankroll_valid(self) -> bool:
        return self.bankroll > 0.0


# ---------------------------------------------------------------------------
# Multi-outcome
# ---------------------------------------------------------------------------

class OutcomeRow(BaseModel):
    """One editable row of the multi-outcome table."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., max_length=60)
    market_pct: float = 0.0
    your_pct: float = 0.0

    @field_validator("market_pct", "your_pct", mode="before")
    @classmethod
    def clamp_pct(cls, v: Any) -> float:
        return _coerce_pct(v)

    def to_outcome(self) -> Outcome:
        return Outcome(name=self.name, market_pct=self.market_pct, your_pct=self.your_pct)


def default_outcomes() -> List[OutcomeRow]:
    return [
        OutcomeRow(name="A", market_pct=50.0, your_pct=60.0),
        OutcomeRow(name="B", market_pct=50.0, your_pct=40.0),
    ]


class MultiOutcomeForm(BaseModel):
    """Mutually exclusive outcomes plus the stake cap and bankroll."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    outcomes: List[OutcomeRow] = Field(default_factory=default_outcomes)
    cap: float = Field(DEFAULT_STAKE_CAP, gt=0.0, le=1.0)
    bankroll_text: str = "1000"

    @property
    def bankroll(self) -> float:
        return parse_bankroll(self.bankroll_text)
