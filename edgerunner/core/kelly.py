"""Kelly criterion sizing for a single wager.

All functions here are **pure**: no I/O, no logging.
Import from this module; never reimplement Kelly locally in services.

The Kelly criterion maximises the expected logarithm of wealth (equivalently,
long-run geometric growth) by solving::

    max_f  p · log(1 + f · b)  +  q · log(1 − f)

where ``b`` is the *profit* per unit staked (decimal odds minus one), ``p``
the probability of winning and ``q = 1 − p``.  The closed-form solution
(Kelly 1956) is::

    f*  =  (p · b − q) / b                                       (1)

clamped to ``[0, 1]``: a negative ``f*`` means the bet has no edge and the
recommendation is to stay out; values above one would require leverage.

Undefined quantities (EV, implied probability and edge when there is no
valid price) are reported as NaN rather than raised, so a half-filled input
form always evaluates to *something* displayable.

Run tests with::

    pytest tests/test_kelly.py -v
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Final, Optional

from edgerunner.core.odds_math import OddsFormat, complement, format_odds, parse_any, parse_odds

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Probabilities are clamped into ``[ε, 1 − ε]`` before being inverted into
#: a no-vig decimal price, so a 0% or 100% market never divides by zero.
PROB_CLAMP_EPS: Final[float] = 1e-9

#: Minimum margin above 1.0 for a price to be flipped to the other side.
_FLIP_MIN_MARGIN: Final[float] = 1e-9

#: Log growth is reported in basis points of bankroll per bet.
BASIS_POINTS: Final[float] = 10_000.0


class BetSide(str, enum.Enum):
    """Which side of a binary market is being backed."""

    ON_EVENT = "yes"
    ON_OPPOSITE = "no"

    @property
    def other(self) -> "BetSide":
        return BetSide.ON_OPPOSITE if self is BetSide.ON_EVENT else BetSide.ON_EVENT


# ---------------------------------------------------------------------------
# Standard Kelly
# ---------------------------------------------------------------------------


def kelly_fraction(win_prob: float, decimal_odds: float) -> float:
    """Full Kelly fraction for a simple win/loss bet, clamped to ``[0, 1]``.

    Args:
        win_prob: Probability of winning, already oriented to the side the
            odds price.  Clamped to ``[0, 1]``.
        decimal_odds: Decimal odds for the bet.

    Returns:
        Equation (1) clamped to ``[0, 1]``.  Returns 0.0 when the price is
        not a valid wager (``decimal_odds ≤ 1``).

    Examples::

        kelly_fraction(0.60, 2.000)  →  0.200
        kelly_fraction(0.55, 1.909)  →  0.055
        kelly_fraction(0.45, 1.909)  →  0.000  (negative EV → 0)
    """
    if not decimal_odds > 1.0:
        return 0.0
    p = min(max(win_prob, 0.0), 1.0)
    b = decimal_odds - 1.0
    full_kelly = (b * p - (1.0 - p)) / b
    return min(max(full_kelly, 0.0), 1.0)


def log_growth(win_prob: float, decimal_odds: float, fraction: float) -> float:
    """Expected log growth per bet when staking ``fraction`` of bankroll::

        g  =  p · ln(1 + f · b)  +  (1 − p) · ln(1 − f)

    Defined as 0.0 when nothing is staked.  Staking the whole bankroll on a
    bet that can lose is −∞.
    """
    if fraction <= 0.0 or not decimal_odds > 1.0:
        return 0.0
    b = decimal_odds - 1.0
    win_term = win_prob * math.log1p(fraction * b)
    if win_prob >= 1.0:
        return win_term
    if fraction >= 1.0:
        return -math.inf
    return win_term + (1.0 - win_prob) * math.log1p(-fraction)


# ---------------------------------------------------------------------------
# Single-bet evaluation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SingleBetResult:
    """Everything the single-bet panel reports for one probability/price pair.

    Attributes:
        probability: Your probability for the backed side, in ``[0, 1]``.
        decimal_odds: The price evaluated (NaN when no valid price).
        fraction: Full Kelly fraction in ``[0, 1]``.
        full_stake: ``bankroll · fraction``.
        half_stake: Half-Kelly stake.
        quarter_stake: Quarter-Kelly stake.
        ev: Expected profit per unit staked, ``p · b − q``.
        implied_prob: Market-implied probability ``1/d``.
        edge: ``probability − implied_prob``.
        fair_odds: Your fair decimal price ``1/p`` (∞ when ``p = 0``).
        log_growth_bp: Log growth at full Kelly, in basis points.
        win_per_unit: Profit per 1 staked if the bet wins (``b``).
        loss_per_unit: Loss per 1 staked if the bet loses.
    """

    probability: float
    decimal_odds: float
    fraction: float
    full_stake: float
    half_stake: float
    quarter_stake: float
    ev: float
    implied_prob: float
    edge: float
    fair_odds: float
    log_growth_bp: float
    win_per_unit: float
    loss_per_unit: float

    @property
    def has_price(self) -> bool:
        return self.decimal_odds > 1.0

    @property
    def has_edge(self) -> bool:
        # NaN compares False
        return self.edge > 0.0

    def fair_odds_text(self, fmt: OddsFormat) -> str:
        return format_odds(self.fair_odds, fmt)


def single_bet_kelly(
    your_probability_pct: float,
    decimal_odds: Optional[float],
    bankroll: float,
) -> SingleBetResult:
    """Size a single bet with the Kelly criterion.

    Args:
        your_probability_pct: Your probability for the backed side, in
            percent.  Clamped to ``[0, 100]``.
        decimal_odds: Price of the backed side.  ``None`` or ``≤ 1`` means
            no valid price: every stake is 0 and EV/implied/edge are NaN.
        bankroll: Bankroll the stakes are expressed in.

    Returns:
        A :class:`SingleBetResult`.

    Examples::

        single_bet_kelly(60.0, 2.0, 1000.0).full_stake  →  200.0
        single_bet_kelly(55.0, 1/0.6, 1000.0).fraction  →  0.0
    """
    p = min(max(your_probability_pct, 0.0), 100.0) / 100.0
    fair = 1.0 / p if p > 0.0 else math.inf

    if decimal_odds is None or not decimal_odds > 1.0:
        return SingleBetResult(
            probability=p,
            decimal_odds=math.nan,
            fraction=0.0,
            full_stake=0.0,
            half_stake=0.0,
            quarter_stake=0.0,
            ev=math.nan,
            implied_prob=math.nan,
            edge=math.nan,
            fair_odds=fair,
            log_growth_bp=0.0,
            win_per_unit=math.nan,
            loss_per_unit=math.nan,
        )

    b = decimal_odds - 1.0
    q = 1.0 - p
    f = kelly_fraction(p, decimal_odds)
    implied = 1.0 / decimal_odds

    return SingleBetResult(
        probability=p,
        decimal_odds=decimal_odds,
        fraction=f,
        full_stake=bankroll * f,
        half_stake=bankroll * (f * 0.5),
        quarter_stake=bankroll * (f * 0.25),
        ev=p * b - q,
        implied_prob=implied,
        edge=p - implied,
        fair_odds=fair,
        log_growth_bp=log_growth(p, decimal_odds, f) * BASIS_POINTS,
        win_per_unit=b,
        loss_per_unit=1.0,
    )


# ---------------------------------------------------------------------------
# Price resolution and side flipping
# ---------------------------------------------------------------------------


def market_decimal_odds(market_pct: float, side: BetSide = BetSide.ON_EVENT) -> float:
    """No-vig decimal price of ``side`` derived from the market percentage.

    The market probability is for the *event*; backing the opposite side
    prices ``1 − pm``.  The probability is clamped into
    ``[1e-9, 1 − 1e-9]`` before inversion.
    """
    pm = min(max(market_pct / 100.0, PROB_CLAMP_EPS), 1.0 - PROB_CLAMP_EPS)
    priced = pm if BetSide(side) is BetSide.ON_EVENT else 1.0 - pm
    return 1.0 / priced


def resolve_decimal_odds(
    odds_text: str,
    fmt: OddsFormat,
    market_pct: float,
    side: BetSide = BetSide.ON_EVENT,
) -> float:
    """Price to evaluate: explicit odds when they parse, else the market's.

    Malformed or blank odds text is not an error; it falls back to
    :func:`market_decimal_odds` for the backed side.
    """
    explicit = parse_odds(odds_text, fmt)
    if explicit is not None:
        return explicit
    return market_decimal_odds(market_pct, side)


def flip_side(
    your_probability_pct: float,
    odds_text: str,
    fmt: OddsFormat,
) -> tuple[float, str]:
    """Re-express a bet from the other side of the market.

    "Your probability" always refers to the backed side, so it becomes
    ``100 − p``.  Explicit odds text is replaced by the complementary
    no-vig price in the same notation; text that does not parse to a valid
    price is left as typed.

    Returns:
        ``(new_probability_pct, new_odds_text)``.
    """
    new_pct = 100.0 - min(max(your_probability_pct, 0.0), 100.0)
    current = parse_odds(odds_text, fmt)
    if current is None:
        current = parse_any(odds_text)
    if current is None or current <= 1.0 + _FLIP_MIN_MARGIN:
        return new_pct, odds_text
    return new_pct, format_odds(complement(current), fmt)
