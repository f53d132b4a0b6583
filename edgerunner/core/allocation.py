"""Multi-outcome Kelly allocation over a set of mutually exclusive outcomes.

All functions here are **pure**: no I/O, no logging, no retained state.
Two alternative allocators share the same outcome data:

1. :func:`independent_allocate` — per-outcome Kelly, then a uniform rescale
   when the fractions add up to more than the stake cap.  This is an
   **approximation**: each leg is sized as though it were the only bet, so
   the coupling between mutually exclusive legs (when one wins, every
   other leg loses) is ignored.  The two allocators can disagree
   materially; that divergence is expected.
2. :func:`exact_allocate` — maximises expected log growth of the bankroll
   jointly over all legs::

       max_f  Σ_i p_i · ln W_i(f),     W_i(f) = 1 − Σ_j f_j + d_i · f_i

   subject to ``f_i ≥ 0`` and ``Σ f_i ≤ cap``.  ``W_i`` is the bankroll
   multiplier if outcome ``i`` occurs: every stake is lost, and the winning
   leg returns ``d_i · f_i``.  The objective is concave wherever all
   ``W_i > 0`` and the feasible set (the capped simplex) is a convex
   polytope, so projected gradient ascent converges to the global optimum.

Residual probability
--------------------
When the supplied probabilities sum to less than one, the missing mass
``p_0 = 1 − Σ p_i`` is an implicit "none of the listed outcomes" state in
which every stake is lost (``W_0 = 1 − Σ f_j``).  For a single outcome this
turns the objective into ``p · ln(1 + b·f) + (1 − p) · ln(1 − f)``, whose
maximiser is the closed-form Kelly fraction of :mod:`edgerunner.core.kelly`.

Algorithm
---------
The solver is written as a pure state machine so each iteration can be
inspected in isolation: :func:`initial_state` builds an
:class:`OptimizerState` from the independent-Kelly starting point and
:func:`ascent_step` maps one state to the next.  :func:`solve_exact` loops
until the state reports ``done``.

Run tests with::

    pytest tests/test_allocation.py -v
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Final, List, Optional, Sequence

import numpy as np

from edgerunner.core.kelly import PROB_CLAMP_EPS, kelly_fraction

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Default cap on the total fraction of bankroll committed across all legs.
DEFAULT_STAKE_CAP: Final[float] = 1.0

#: Residual probability mass below this is treated as exactly zero.
_RESIDUAL_EPS: Final[float] = 1e-12


@dataclass(frozen=True)
class AllocatorConfig:
    """Tuning constants for the projected gradient ascent.

    Attributes:
        initial_step: Step size of the first gradient step.
        max_step: Ceiling on the step size after growth.
        step_growth: Multiplier applied after an accepted step.
        step_shrink: Multiplier applied after a rejected step.
        max_iter: Iteration budget (accepted and rejected steps both count).
        min_step: The search stops once the step size falls below this.
        improvement_tol: A candidate must beat the best objective by more
            than this to be accepted.
        wealth_floor: Any bankroll multiplier at or below this makes the
            objective −∞ (ruin is never an acceptable candidate).
    """

    initial_step: float = 0.25
    max_step: float = 1.0
    step_growth: float = 1.05
    step_shrink: float = 0.5
    max_iter: int = 300
    min_step: float = 1e-6
    improvement_tol: float = 1e-9
    wealth_floor: float = 1e-12


DEFAULT_CONFIG: Final[AllocatorConfig] = AllocatorConfig()


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Outcome:
    """One leg of a mutually exclusive set, with percentages as entered.

    When no explicit price is attached, the leg is priced at the no-vig
    decimal odds ``1 / market_prob``.
    """

    name: str
    market_pct: float
    your_pct: float

    @property
    def market_prob(self) -> float:
        return min(max(self.market_pct / 100.0, PROB_CLAMP_EPS), 1.0 - PROB_CLAMP_EPS)

    @property
    def your_prob(self) -> float:
        return min(max(self.your_pct / 100.0, 0.0), 1.0)

    @property
    def decimal_odds(self) -> float:
        return 1.0 / self.market_prob


@dataclass(frozen=True)
class LegAllocation:
    """Independent-Kelly sizing of one leg.

    ``fraction`` is the leg's own Kelly fraction; ``recommended_fraction``
    is the same after the uniform rescale to the stake cap.
    """

    name: str
    decimal_odds: float
    fraction: float
    recommended_fraction: float


@dataclass(frozen=True)
class OptimizerState:
    """Snapshot of the projected gradient ascent between two iterations."""

    point: np.ndarray
    best_point: np.ndarray
    best_objective: float
    step_size: float
    iteration: int = 0
    done: bool = False

    def allocation(self) -> List[float]:
        return [float(x) for x in self.best_point]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _clamp_cap(cap: float) -> float:
    if math.isnan(cap):
        return 0.0
    return min(max(cap, 0.0), 1.0)


def scale_to_cap(fractions: np.ndarray, cap: float) -> np.ndarray:
    """Uniformly rescale ``fractions`` so they sum to at most ``cap``.

    A no-op whenever the sum already fits under the cap.
    """
    total = float(fractions.sum())
    if total > cap and total > 0.0:
        return fractions * (cap / total)
    return fractions


def _prepare_inputs(
    probabilities: Sequence[float],
    decimal_odds: Sequence[float],
) -> tuple[np.ndarray, np.ndarray, float]:
    """Sanitise raw vectors into ``(p, d, residual)``.

    Non-finite probabilities become 0 and non-finite prices become 1.0
    (non-viable).  Probabilities are clamped to ``[0, 1]`` and rescaled to
    sum to one when they overshoot.
    """
    p = np.asarray(probabilities, dtype=float)
    d = np.asarray(decimal_odds, dtype=float)
    p = np.clip(np.where(np.isfinite(p), p, 0.0), 0.0, 1.0)
    d = np.where(np.isfinite(d), d, 1.0)

    total = float(p.sum())
    if total > 1.0:
        p = p / total
        total = 1.0
    residual = 1.0 - total
    return p, d, (residual if residual > _RESIDUAL_EPS else 0.0)


# ---------------------------------------------------------------------------
# Independent Kelly (approximation)
# ---------------------------------------------------------------------------

def independent_fractions(probabilities: np.ndarray, decimal_odds: np.ndarray) -> np.ndarray:
    """Per-leg closed-form Kelly fractions, each computed in isolation."""
    return np.array(
        [kelly_fraction(float(p), float(d)) for p, d in zip(probabilities, decimal_odds)],
        dtype=float,
    )


def independent_allocate(
    outcomes: Sequence[Outcome],
    cap: float = DEFAULT_STAKE_CAP,
) -> List[LegAllocation]:
    """Size each outcome independently, then rescale to the stake cap.

    Each leg is priced at ``1 / market_prob`` and sized with the standard
    Kelly formula on ``your_prob``.  If the fractions sum to more than
    ``cap`` they are all multiplied by ``cap / sum``.

    The caller should check that the market percentages add up to roughly
    100% (see :func:`market_sum_pct`); an off-book market is a warning, not
    an error, and is sized as given.

    Returns:
        One :class:`LegAllocation` per outcome, in input order.
    """
    if not outcomes:
        return []
    odds = np.array([o.decimal_odds for o in outcomes], dtype=float)
    probs = np.array([o.your_prob for o in outcomes], dtype=float)
    raw = independent_fractions(probs, odds)
    recommended = scale_to_cap(raw, _clamp_cap(cap))
    return [
        LegAllocation(
            name=o.name,
            decimal_odds=float(d),
            fraction=float(f),
            recommended_fraction=float(r),
        )
        for o, d, f, r in zip(outcomes, odds, raw, recommended)
    ]


def market_sum_pct(outcomes: Sequence[Outcome]) -> float:
    """Sum of the market percentages of a set of outcomes."""
    return float(sum(o.market_pct for o in outcomes))


# ---------------------------------------------------------------------------
# Objective, gradient and projection
# ---------------------------------------------------------------------------

def wealth_multipliers(fractions: np.ndarray, decimal_odds: np.ndarray) -> np.ndarray:
    """``W_i = 1 − Σ f + d_i · f_i`` for every outcome ``i``."""
    return 1.0 - fractions.sum() + decimal_odds * fractions


def expected_log_growth(
    fractions: np.ndarray,
    probabilities: np.ndarray,
    decimal_odds: np.ndarray,
    residual: float = 0.0,
    wealth_floor: float = DEFAULT_CONFIG.wealth_floor,
) -> float:
    """Expected log growth ``Σ p_i ln W_i + p_0 ln W_0`` of an allocation.

    Returns −∞ when any multiplier is at or below ``wealth_floor``.
    """
    wealth = wealth_multipliers(fractions, decimal_odds)
    if np.any(wealth <= wealth_floor):
        return -math.inf
    value = float(np.dot(probabilities, np.log(wealth)))
    if residual > 0.0:
        cash = 1.0 - float(fractions.sum())
        if cash <= wealth_floor:
            return -math.inf
        value += residual * math.log(cash)
    return value


def log_growth_gradient(
    fractions: np.ndarray,
    probabilities: np.ndarray,
    decimal_odds: np.ndarray,
    residual: float = 0.0,
) -> np.ndarray:
    """Gradient of :func:`expected_log_growth`::

        ∂/∂f_i  =  −Σ_j p_j / W_j  −  p_0 / W_0  +  p_i · d_i / W_i

    Only meaningful at points where the objective is finite.
    """
    wealth = wealth_multipliers(fractions, decimal_odds)
    shared = float(np.sum(probabilities / wealth))
    if residual > 0.0:
        shared += residual / (1.0 - float(fractions.sum()))
    return probabilities * decimal_odds / wealth - shared


def project_capped_simplex(x: np.ndarray, cap: float) -> np.ndarray:
    """Euclidean projection onto ``{y : y ≥ 0, Σ y ≤ cap}``.

    Negative components are clamped first.  If the result still exceeds
    the cap, the point is projected onto the face ``Σ y = cap`` by the
    sort-and-threshold method: with ``u`` sorted descending, ``ρ`` is the
    largest index for which ``u_ρ > (Σ_{k≤ρ} u_k − cap) / ρ`` (1-based),
    ``θ`` is that threshold, and the projection is ``max(x − θ, 0)``.
    """
    y = np.maximum(x, 0.0)
    if y.sum() <= cap:
        return y
    if cap <= 0.0:
        return np.zeros_like(y)
    u = np.sort(y)[::-1]
    prefix = np.cumsum(u)
    ranks = np.arange(1, len(u) + 1)
    thresholds = (prefix - cap) / ranks
    rho = int(np.nonzero(u > thresholds)[0][-1])
    theta = thresholds[rho]
    return np.maximum(y - theta, 0.0)


# ---------------------------------------------------------------------------
# Projected gradient ascent
# ---------------------------------------------------------------------------

def initial_state(
    probabilities: np.ndarray,
    decimal_odds: np.ndarray,
    cap: float,
    residual: float = 0.0,
    config: AllocatorConfig = DEFAULT_CONFIG,
) -> OptimizerState:
    """Start from independent Kelly fractions scaled into the cap.

    If that point touches ruin in some outcome (possible when the scaled
    fractions commit the entire bankroll), the search starts from no bet
    instead, where every multiplier is exactly one.
    """
    start = scale_to_cap(independent_fractions(probabilities, decimal_odds), cap)
    value = expected_log_growth(start, probabilities, decimal_odds, residual, config.wealth_floor)
    if value == -math.inf:
        start = np.zeros_like(start)
        value = expected_log_growth(start, probabilities, decimal_odds, residual, config.wealth_floor)
    return OptimizerState(
        point=start,
        best_point=start,
        best_objective=value,
        step_size=config.initial_step,
    )


def ascent_step(
    state: OptimizerState,
    probabilities: np.ndarray,
    decimal_odds: np.ndarray,
    cap: float,
    residual: float = 0.0,
    config: AllocatorConfig = DEFAULT_CONFIG,
) -> OptimizerState:
    """One iteration: gradient step, projection, accept or shrink.

    An accepted step moves the current point, records it as the best
    solution and grows the step size by ``step_growth`` (up to
    ``max_step``).  A rejected step keeps the point and halves the step.
    """
    grad = log_growth_gradient(state.point, probabilities, decimal_odds, residual)
    candidate = project_capped_simplex(state.point + state.step_size * grad, cap)
    value = expected_log_growth(candidate, probabilities, decimal_odds, residual, config.wealth_floor)
    iteration = state.iteration + 1

    if value > state.best_objective + config.improvement_tol:
        nxt = replace(
            state,
            point=candidate,
            best_point=candidate,
            best_objective=value,
            step_size=min(state.step_size * config.step_growth, config.max_step),
            iteration=iteration,
        )
    else:
        nxt = replace(
            state,
            step_size=state.step_size * config.step_shrink,
            iteration=iteration,
        )

    done = nxt.iteration >= config.max_iter or nxt.step_size < config.min_step
    return replace(nxt, done=done)


def solve_exact(
    probabilities: Sequence[float],
    decimal_odds: Sequence[float],
    cap: float = DEFAULT_STAKE_CAP,
    config: Optional[AllocatorConfig] = None,
) -> Optional[OptimizerState]:
    """Run the ascent to completion and return the final state.

    Returns ``None`` for empty or mismatched inputs.
    """
    config = config or DEFAULT_CONFIG
    if len(probabilities) == 0 or len(probabilities) != len(decimal_odds):
        return None

    p, d, residual = _prepare_inputs(probabilities, decimal_odds)
    cap = _clamp_cap(cap)
    state = initial_state(p, d, cap, residual, config)
    if cap <= 0.0:
        return replace(state, done=True)

    while not state.done:
        state = ascent_step(state, p, d, cap, residual, config)
    return state


def exact_allocate(
    probabilities: Sequence[float],
    decimal_odds: Sequence[float],
    cap: float = DEFAULT_STAKE_CAP,
    config: Optional[AllocatorConfig] = None,
) -> List[float]:
    """Stake fractions maximising expected log growth, one per outcome.

    Args:
        probabilities: Probability of each outcome, in ``[0, 1]``.
        decimal_odds: Decimal price of each outcome.  Legs priced at
            ``≤ 1`` are non-viable and stay at 0.
        cap: Upper bound on the total fraction staked, in ``(0, 1]``.
        config: Optional solver tuning.

    Returns:
        Fractions ``f_i ≥ 0`` with ``Σ f_i ≤ cap``; empty for empty or
        mismatched inputs.  The result is the best point found, which need
        not be the last step attempted.

    Examples::

        exact_allocate([0.6], [2.0])              →  [0.2]
        exact_allocate([0.5, 0.5], [2.0, 2.0])    →  [0.0, 0.0]
    """
    state = solve_exact(probabilities, decimal_odds, cap, config)
    if state is None:
        return []
    return state.allocation()


def allocation_log_growth(
    fractions: Sequence[float],
    probabilities: Sequence[float],
    decimal_odds: Sequence[float],
) -> float:
    """Expected log growth of any allocation over the same outcome set.

    Used to compare the independent approximation against the exact
    optimum.  NaN for mismatched inputs; −∞ when the allocation risks ruin.
    """
    n = len(probabilities)
    if n == 0 or len(decimal_odds) != n or len(fractions) != n:
        return math.nan
    p, d, residual = _prepare_inputs(probabilities, decimal_odds)
    return expected_log_growth(np.asarray(fractions, dtype=float), p, d, residual)
