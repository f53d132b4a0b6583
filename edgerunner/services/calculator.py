"""
Calculator service: glue between the raw input forms and the pure core.

Turns a :class:`~edgerunner.schemas.SingleBetForm` or
:class:`~edgerunner.schemas.MultiOutcomeForm` into display-ready view
objects, and implements the form transitions that must keep the inputs
consistent with each other:

    1. Switching the backed side mirrors "your %" and flips explicit odds
       to the complementary price.
    2. Switching the odds notation rewrites the typed odds in the new one.
    3. Adding or removing outcome rows.

Every call is a pure function of its inputs and is cheap enough to run on
every keystroke; nothing is cached between calls.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from edgerunner.config import Settings, get_settings
from edgerunner.core.allocation import (
    allocation_log_growth,
    exact_allocate,
    independent_allocate,
    market_sum_pct,
)
from edgerunner.core.kelly import (
    BASIS_POINTS,
    SingleBetResult,
    flip_side,
    resolve_decimal_odds,
    single_bet_kelly,
)
from edgerunner.core.odds_math import (
    OddsFormat,
    complement,
    format_odds,
    parse_any,
    parse_odds,
)
from edgerunner.schemas import MultiOutcomeForm, OutcomeRow, SingleBetForm

logger = logging.getLogger(__name__)

# Kelly fractions above this are flagged as aggressive
AGGRESSIVE_KELLY_FRACTION = 0.25


# ---------------------------------------------------------------------------
# Status labels
# ---------------------------------------------------------------------------

def kelly_status(fraction: float) -> str:
    """``danger`` for no bet, ``warning`` above quarter bankroll, else ``success``."""
    if fraction == 0.0:
        return "danger"
    if fraction > AGGRESSIVE_KELLY_FRACTION:
        return "warning"
    return "success"


def sign_status(value: float) -> str:
    """``muted`` when undefined, ``danger`` when ≤ 0, else ``success``."""
    if math.isnan(value):
        return "muted"
    if value <= 0.0:
        return "danger"
    return "success"


def _all_formats(decimal_odds: float) -> Dict[OddsFormat, str]:
    return {fmt: format_odds(decimal_odds, fmt) for fmt in OddsFormat}


# ---------------------------------------------------------------------------
# Single bet
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SingleBetView:
    """Evaluated single-bet panel."""

    form: SingleBetForm
    result: SingleBetResult
    explicit_odds: bool
    odds_text: Dict[OddsFormat, str]
    fair_odds_text: Dict[OddsFormat, str]
    complement_odds: float
    complement_odds_text: Dict[OddsFormat, str]
    kelly_status: str
    edge_status: str
    ev_status: str

    @property
    def odds_valid(self) -> bool:
        return self.result.has_price

    @property
    def inputs_valid(self) -> bool:
        return self.form.bankroll_valid and self.odds_valid

    @property
    def stake_pct_of_bankroll(self) -> float:
        return self.result.fraction * 100.0


def evaluate_single_bet(form: SingleBetForm) -> SingleBetView:
    """Resolve the price, size the bet and format everything for display.

    Explicit odds win when they parse in the selected notation; otherwise
    the price is the no-vig odds of the backed side implied by the market %.
    """
    explicit = parse_odds(form.odds_text, form.odds_format)
    decimal_odds = resolve_decimal_odds(
        form.odds_text, form.odds_format, form.market_pct, form.side
    )
    if not form.bankroll_valid:
        logger.warning("Invalid bankroll %r; stakes will be zero", form.bankroll_text)

    result = single_bet_kelly(form.your_pct, decimal_odds, max(form.bankroll, 0.0))
    other_side = complement(result.decimal_odds)

    logger.debug(
        "Single bet: side=%s p=%.4f d=%.4f f=%.4f edge=%.4f",
        form.side.value, result.probability, result.decimal_odds,
        result.fraction, result.edge,
    )
    return SingleBetView(
        form=form,
        result=result,
        explicit_odds=explicit is not None,
        odds_text=_all_formats(result.decimal_odds),
        fair_odds_text=_all_formats(result.fair_odds),
        complement_odds=other_side,
        complement_odds_text=_all_formats(other_side),
        kelly_status=kelly_status(result.fraction),
        edge_status=sign_status(result.edge),
        ev_status=sign_status(result.ev),
    )


def toggle_bet_side(form: SingleBetForm) -> SingleBetForm:
    """Back the other side: mirror "your %" and flip explicit odds."""
    your_pct, odds_text = flip_side(form.your_pct, form.odds_text, form.odds_format)
    return form.model_copy(
        update={"side": form.side.other, "your_pct": your_pct, "odds_text": odds_text}
    )


def change_odds_format(form: SingleBetForm, new_format: OddsFormat) -> SingleBetForm:
    """Switch notation, rewriting the typed odds when they parse."""
    new_format = OddsFormat(new_format)
    current = parse_odds(form.odds_text, form.odds_format)
    if current is None:
        current = parse_any(form.odds_text)
    odds_text = format_odds(current, new_format) if current is not None else form.odds_text
    return form.model_copy(update={"odds_format": new_format, "odds_text": odds_text})


# ---------------------------------------------------------------------------
# Multi-outcome
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LegView:
    """One outcome row with both allocators' recommendations."""

    name: str
    market_pct: float
    your_pct: float
    decimal_odds: float
    kelly_fraction: float
    independent_fraction: float
    exact_fraction: float
    independent_stake: float
    exact_stake: float


@dataclass(frozen=True)
class MultiOutcomeView:
    """Evaluated multi-outcome panel."""

    legs: List[LegView] = field(default_factory=list)
    market_sum_pct: float = 0.0
    market_sum_warning: bool = False
    raw_kelly_sum: float = 0.0
    scale: float = 1.0
    independent_growth_bp: float = 0.0
    exact_growth_bp: float = 0.0

    @property
    def independent_total(self) -> float:
        return sum(leg.independent_fraction for leg in self.legs)

    @property
    def exact_total(self) -> float:
        return sum(leg.exact_fraction for leg in self.legs)


def evaluate_outcomes(
    form: MultiOutcomeForm,
    settings: Optional[Settings] = None,
) -> MultiOutcomeView:
    """Run both allocators over the outcome table.

    The independent allocation is the documented approximation; the exact
    allocation is the joint log-growth optimum.  Both price every leg at
    ``1 / market_prob``.
    """
    settings = settings or get_settings()
    outcomes = [row.to_outcome() for row in form.outcomes]
    if not outcomes:
        return MultiOutcomeView()

    total_mkt = market_sum_pct(outcomes)
    warn = abs(total_mkt - 100.0) > settings.market_sum_tolerance_pct
    if warn:
        logger.warning("Market probabilities sum to %.2f%%, not 100%%", total_mkt)

    independent = independent_allocate(outcomes, form.cap)
    probs = [o.your_prob for o in outcomes]
    odds = [leg.decimal_odds for leg in independent]
    exact = exact_allocate(probs, odds, form.cap, settings.allocator_config)

    raw_sum = sum(leg.fraction for leg in independent)
    scale = form.cap / raw_sum if raw_sum > form.cap else 1.0
    bankroll = max(form.bankroll, 0.0)

    legs = [
        LegView(
            name=o.name,
            market_pct=o.market_pct,
            your_pct=o.your_pct,
            decimal_odds=leg.decimal_odds,
            kelly_fraction=leg.fraction,
            independent_fraction=leg.recommended_fraction,
            exact_fraction=f,
            independent_stake=bankroll * leg.recommended_fraction,
            exact_stake=bankroll * f,
        )
        for o, leg, f in zip(outcomes, independent, exact)
    ]
    view = MultiOutcomeView(
        legs=legs,
        market_sum_pct=total_mkt,
        market_sum_warning=warn,
        raw_kelly_sum=raw_sum,
        scale=scale,
        independent_growth_bp=allocation_log_growth(
            [leg.recommended_fraction for leg in independent], probs, odds
        ) * BASIS_POINTS,
        exact_growth_bp=allocation_log_growth(exact, probs, odds) * BASIS_POINTS,
    )
    logger.debug(
        "Outcomes: n=%d market_sum=%.2f raw_kelly=%.4f scale=%.4f exact_total=%.4f",
        len(legs), total_mkt, raw_sum, scale, view.exact_total,
    )
    return view


def add_outcome(rows: List[OutcomeRow]) -> List[OutcomeRow]:
    """Append a blank outcome named ``O{n+1}``."""
    return [*rows, OutcomeRow(name=f"O{len(rows) + 1}", market_pct=0.0, your_pct=0.0)]


def remove_outcome(rows: List[OutcomeRow], index: int) -> List[OutcomeRow]:
    """Drop the row at ``index``; out-of-range indexes leave the list as is."""
    if not 0 <= index < len(rows):
        return list(rows)
    return [row for i, row in enumerate(rows) if i != index]
