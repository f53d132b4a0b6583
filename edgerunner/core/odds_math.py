"""Odds notation conversion — the single source of truth for odds parsing.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement conversions locally in services.

The three pillars exposed are:

1. **Parsing** — decimal, American and fractional text → decimal odds.
2. **Formatting** — decimal odds → text in any of the three notations.
3. **Complement** — no-vig decimal price of the opposite side.

Design decisions
----------------
* Decimal odds are the internal currency.  A decimal price ``d`` is the
  total payout per unit staked, so the profit factor is ``b = d − 1``.
  Anything with ``d ≤ 1`` is "no valid price" and never a wager.
* Parse failures return ``None`` instead of raising.  The calculator is
  re-evaluated on every keystroke, and half-typed input (``"+"``,
  ``"5/"``) is the normal case, not an error.
* Fractional display uses a continued-fraction expansion bounded at a
  denominator of 1000, which recovers the familiar bookmaker fractions
  (``11/10``, ``4/6``, ``100/30``) from a float without accumulating
  rounding noise.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

import enum
import math
import re
from typing import Final, Optional

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

#: Placeholder rendered for an undefined price (``d ≤ 1`` or non-finite).
PLACEHOLDER: Final[str] = "—"

#: Largest denominator the fractional formatter may emit.
MAX_FRACTION_DENOMINATOR: Final[int] = 1000

#: Iteration budget for the continued-fraction expansion.
MAX_FRACTION_ITERATIONS: Final[int] = 100

#: Remainder below which the continued fraction is considered exact.
_FRACTION_CONVERGENCE_TOL: Final[float] = 1e-9

_NUMBER_RE: Final = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_INTEGER_RE: Final = re.compile(r"^[+-]?\d+$")


class OddsFormat(str, enum.Enum):
    """Odds notation understood by the parser and formatter."""

    DECIMAL = "decimal"
    AMERICAN = "american"
    FRACTIONAL = "fractional"

    @property
    def label(self) -> str:
        return self.value.capitalize()


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _parse_number(text: str) -> Optional[float]:
    """Strict float parse: plain numerals only (no ``inf``, ``nan``, ``1_0``)."""
    s = text.strip()
    if not _NUMBER_RE.match(s):
        return None
    value = float(s)
    return value if math.isfinite(value) else None


def decimal_from_text(text: str) -> Optional[float]:
    """Parse decimal odds; valid only when the price exceeds 1.0."""
    value = _parse_number(text)
    if value is None or value <= 1.0:
        return None
    return value


def american_to_decimal(american: int) -> Optional[float]:
    """Convert American odds to decimal (European) format.

    Examples::

        american_to_decimal(-110) → 1.9091   (risk 110 to win 100)
        american_to_decimal(+150) → 2.5000   (risk 100 to win 150)

    Returns:
        Decimal odds, or ``None`` for ``0`` which has no meaning in
        American notation.
    """
    if american > 0:
        return 1.0 + american / 100.0
    if american < 0:
        # Negative: risk |american| to win 100
        return 1.0 + 100.0 / abs(american)
    return None


def american_from_text(text: str) -> Optional[float]:
    """Parse American odds text (``"+150"``, ``"-110"``, ``"1,200"``)."""
    s = text.strip().replace(",", "")
    if not _INTEGER_RE.match(s):
        return None
    return american_to_decimal(int(s))


def fractional_to_decimal(numerator: float, denominator: float) -> Optional[float]:
    """Convert ``numerator/denominator`` fractional odds to decimal."""
    if denominator <= 0.0:
        return None
    return 1.0 + numerator / denominator


def fractional_from_text(text: str) -> Optional[float]:
    """Parse fractional odds text of exactly the shape ``"num/den"``."""
    parts = text.strip().split("/")
    if len(parts) != 2:
        return None
    num = _parse_number(parts[0])
    den = _parse_number(parts[1])
    if num is None or den is None:
        return None
    return fractional_to_decimal(num, den)


def parse_odds(text: str, fmt: OddsFormat) -> Optional[float]:
    """Parse ``text`` as odds in notation ``fmt`` and return decimal odds.

    Args:
        text: Raw user input.  Surrounding whitespace is ignored.
        fmt: The notation the text is expected to be in.

    Returns:
        Decimal odds, or ``None`` when the text does not parse in ``fmt``.

    Raises:
        ValueError: If ``fmt`` is not an :class:`OddsFormat`.
    """
    fmt = OddsFormat(fmt)
    if fmt is OddsFormat.DECIMAL:
        return decimal_from_text(text)
    if fmt is OddsFormat.AMERICAN:
        return american_from_text(text)
    return fractional_from_text(text)


def parse_any(text: str) -> Optional[float]:
    """Parse odds in whichever notation matches first.

    Order is decimal (only prices > 1), then American, then fractional.
    ``"150"`` is therefore read as decimal 150.0, not American +150; callers
    that know the notation should use :func:`parse_odds`.
    """
    for fmt in (OddsFormat.DECIMAL, OddsFormat.AMERICAN, OddsFormat.FRACTIONAL):
        decimal_odds = parse_odds(text, fmt)
        if decimal_odds is not None:
            return decimal_odds
    return None


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def _round_half_away(x: float) -> int:
    return int(math.floor(abs(x) + 0.5)) * (1 if x >= 0 else -1)


def decimal_to_american(decimal_odds: float) -> int:
    """Convert decimal odds to the nearest American integer.

    Values ≥ 2.0 are returned as positive (underdog); values below 2.0 as
    negative (favourite).  Caller guarantees ``decimal_odds > 1``.
    """
    profit = decimal_odds - 1.0
    if decimal_odds >= 2.0:
        return _round_half_away(profit * 100.0)
    return -_round_half_away(100.0 / profit)


def approx_fraction(
    x: float,
    max_denominator: int = MAX_FRACTION_DENOMINATOR,
    max_iter: int = MAX_FRACTION_ITERATIONS,
) -> tuple[int, int]:
    """Best rational approximation of ``x`` by continued-fraction expansion.

    Convergents ``h/k`` are generated by the usual recurrence::

        h_n = a_n · h_{n−1} + h_{n−2}
        k_n = a_n · k_{n−1} + k_{n−2}

    The expansion stops when the remainder is below 1e-9 (``x`` is exactly
    represented), when the next denominator would exceed
    ``max_denominator``, or after ``max_iter`` terms.

    Examples::

        approx_fraction(0.5)    → (1, 2)
        approx_fraction(1.1)    → (11, 10)
        approx_fraction(2/3)    → (2, 3)
    """
    a = math.floor(x)
    h_prev, k_prev = 1, 0
    h, k = int(a), 1
    for _ in range(max_iter):
        remainder = x - a
        if abs(remainder) < _FRACTION_CONVERGENCE_TOL:
            break
        x = 1.0 / remainder
        a = math.floor(x)
        h_next = h_prev + int(a) * h
        k_next = k_prev + int(a) * k
        if k_next > max_denominator:
            break
        h_prev, k_prev, h, k = h, k, h_next, k_next
    return h, k


def format_odds(decimal_odds: float, fmt: OddsFormat) -> str:
    """Render decimal odds in notation ``fmt``.

    * Decimal → three decimal places (``"1.909"``).
    * American → ``"+150"`` when ``d ≥ 2``, else ``"-110"``.
    * Fractional → ``"num/den"`` with denominator ≤ 1000.

    Undefined prices (``d ≤ 1``, NaN, ∞) render as :data:`PLACEHOLDER`.

    Raises:
        ValueError: If ``fmt`` is not an :class:`OddsFormat`.
    """
    fmt = OddsFormat(fmt)
    if not math.isfinite(decimal_odds) or decimal_odds <= 1.0:
        return PLACEHOLDER
    if fmt is OddsFormat.DECIMAL:
        return f"{decimal_odds:.3f}"
    if fmt is OddsFormat.AMERICAN:
        american = decimal_to_american(decimal_odds)
        return f"+{american}" if american > 0 else str(american)
    num, den = approx_fraction(decimal_odds - 1.0)
    return f"{num}/{den}"


# ---------------------------------------------------------------------------
# Derived prices
# ---------------------------------------------------------------------------


def complement(decimal_odds: float) -> float:
    """No-vig decimal price of the opposite side: ``d / (d − 1)``.

    The two sides of a fair binary market satisfy ``1/d + 1/d' = 1``,
    which rearranges to the expression above.  The map is an involution
    on ``(1, ∞)``: ``complement(complement(d)) == d``.

    Returns:
        The complementary price, or NaN when ``d ≤ 1``.
    """
    if not decimal_odds > 1.0:
        return math.nan
    return decimal_odds / (decimal_odds - 1.0)


def implied_prob(decimal_odds: float) -> float:
    """Implied probability ``1/d`` of a decimal price (NaN when ``d ≤ 1``)."""
    if not decimal_odds > 1.0:
        return math.nan
    return 1.0 / decimal_odds
