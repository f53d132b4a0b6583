"""
Tests for the calculator service
Run with: pytest tests/test_calculator.py -v
"""

import logging
import math

import pytest

from edgerunner.config import Settings
from edgerunner.core.kelly import BetSide
from edgerunner.core.odds_math import OddsFormat, PLACEHOLDER
from edgerunner.schemas import (
    MultiOutcomeForm,
    OutcomeRow,
    SingleBetForm,
    default_outcomes,
)
from edgerunner.services.calculator import (
    add_outcome,
    change_odds_format,
    evaluate_outcomes,
    evaluate_single_bet,
    kelly_status,
    remove_outcome,
    sign_status,
    toggle_bet_side,
)


class TestStatus:
    """Presentation status labels"""

    def test_kelly_status(self):
        assert kelly_status(0.0) == "danger"
        assert kelly_status(0.1) == "success"
        assert kelly_status(0.25) == "success"
        assert kelly_status(0.3) == "warning"

    def test_sign_status(self):
        assert sign_status(math.nan) == "muted"
        assert sign_status(-0.01) == "danger"
        assert sign_status(0.0) == "danger"
        assert sign_status(0.05) == "success"


class TestEvaluateSingleBet:
    """End-to-end single-bet evaluation"""

    def test_default_form_has_no_edge(self):
        # Market 60%, you 55%, no odds typed → d = 1/0.6, implied 60% > 55%
        view = evaluate_single_bet(SingleBetForm())

        assert not view.explicit_odds
        assert view.result.decimal_odds == pytest.approx(1 / 0.6)
        assert view.result.fraction == 0.0
        assert view.result.full_stake == 0.0
        assert view.kelly_status == "danger"
        assert view.edge_status == "danger"
        assert view.odds_text[OddsFormat.DECIMAL] == "1.667"
        assert view.odds_text[OddsFormat.AMERICAN] == "-150"
        assert view.odds_text[OddsFormat.FRACTIONAL] == "2/3"

    def test_explicit_even_money(self):
        form = SingleBetForm(your_pct=60.0, odds_text="2.0", bankroll_text="1000")
        view = evaluate_single_bet(form)

        assert view.explicit_odds
        assert view.result.fraction == pytest.approx(0.2)
        assert view.result.full_stake == pytest.approx(200.0)
        assert view.result.ev == pytest.approx(0.2)
        assert view.stake_pct_of_bankroll == pytest.approx(20.0)
        assert view.ev_status == "success"
        assert view.inputs_valid
        assert view.complement_odds == pytest.approx(2.0)

    def test_opposite_side_uses_other_market_price(self):
        form = SingleBetForm(market_pct=60.0, your_pct=50.0, side=BetSide.ON_OPPOSITE)
        view = evaluate_single_bet(form)

        # Backing "No" at 40% market → d = 2.5, your 50% > 40% implied
        assert view.result.decimal_odds == pytest.approx(2.5)
        assert view.result.fraction == pytest.approx((1.5 * 0.5 - 0.5) / 1.5)
        assert view.complement_odds == pytest.approx(1 / 0.6)

    def test_fair_odds_text(self):
        view = evaluate_single_bet(SingleBetForm(your_pct=40.0))
        assert view.fair_odds_text[OddsFormat.DECIMAL] == "2.500"
        assert view.fair_odds_text[OddsFormat.AMERICAN] == "+150"
        assert view.fair_odds_text[OddsFormat.FRACTIONAL] == "3/2"

    def test_zero_probability_fair_odds_placeholder(self):
        view = evaluate_single_bet(SingleBetForm(your_pct=0.0))
        assert set(view.fair_odds_text.values()) == {PLACEHOLDER}

    def test_invalid_bankroll_logs_warning(self, caplog):
        form = SingleBetForm(your_pct=60.0, odds_text="2.0", bankroll_text="lots")
        with caplog.at_level(logging.WARNING, logger="edgerunner.services.calculator"):
            view = evaluate_single_bet(form)

        assert "Invalid bankroll" in caplog.text
        assert view.result.fraction == pytest.approx(0.2)
        assert view.result.full_stake == 0.0
        assert not view.inputs_valid


class TestFormTransitions:
    """Side toggle and notation switch keep inputs consistent"""

    def test_toggle_side_mirrors_probability(self):
        form = toggle_bet_side(SingleBetForm(your_pct=55.0))
        assert form.side is BetSide.ON_OPPOSITE
        assert form.your_pct == pytest.approx(45.0)
        assert form.odds_text == ""

    def test_toggle_side_flips_explicit_odds(self):
        form = SingleBetForm(odds_format=OddsFormat.AMERICAN, odds_text="+150", your_pct=45.0)
        flipped = toggle_bet_side(form)
        assert flipped.odds_text == "-150"
        assert flipped.your_pct == pytest.approx(55.0)

    def test_toggle_preserves_edge_sign(self):
        form = SingleBetForm(your_pct=60.0, odds_text="2.2")
        before = evaluate_single_bet(form).result
        after = evaluate_single_bet(toggle_bet_side(form)).result
        # Flipped odds are re-typed to 3 decimals, so allow a small drift
        assert before.edge > 0 > after.edge
        assert before.edge == pytest.approx(-after.edge, abs=1e-3)

    def test_toggle_twice_restores(self):
        form = SingleBetForm(your_pct=62.0, odds_text="1.800")
        assert toggle_bet_side(toggle_bet_side(form)) == form

    def test_change_format_rewrites_odds(self):
        form = SingleBetForm(odds_text="2.5")
        american = change_odds_format(form, OddsFormat.AMERICAN)
        assert american.odds_format is OddsFormat.AMERICAN
        assert american.odds_text == "+150"

        fractional = change_odds_format(american, OddsFormat.FRACTIONAL)
        assert fractional.odds_text == "3/2"

        back = change_odds_format(fractional, OddsFormat.DECIMAL)
        assert back.odds_text == "2.500"

    def test_change_format_reads_current_notation(self):
        # "+150" is American here, not decimal 150
        form = SingleBetForm(odds_format=OddsFormat.AMERICAN, odds_text="+150")
        assert change_odds_format(form, OddsFormat.DECIMAL).odds_text == "2.500"

    def test_change_format_keeps_unparseable_text(self):
        form = SingleBetForm(odds_text="abc")
        assert change_odds_format(form, OddsFormat.AMERICAN).odds_text == "abc"

    def test_add_and_remove_outcome(self):
        rows = add_outcome(default_outcomes())
        assert [r.name for r in rows] == ["A", "B", "O3"]
        assert rows[-1].market_pct == 0.0

        rows = remove_outcome(rows, 0)
        assert [r.name for r in rows] == ["B", "O3"]
        assert remove_outcome(rows, 9) == rows


class TestEvaluateOutcomes:
    """Both allocators over the outcome table"""

    def test_default_table(self):
        view = evaluate_outcomes(MultiOutcomeForm(), Settings())

        assert not view.market_sum_warning
        assert view.market_sum_pct == pytest.approx(100.0)
        assert view.raw_kelly_sum == pytest.approx(0.2)
        assert view.scale == 1.0
        a, b = view.legs
        assert a.kelly_fraction == pytest.approx(0.2)
        assert a.independent_fraction == pytest.approx(0.2)
        assert a.independent_stake == pytest.approx(200.0)
        assert b.independent_fraction == 0.0
        # Even-money two-way: the joint optimum has the same growth
        assert view.exact_growth_bp == pytest.approx(view.independent_growth_bp, abs=0.01)
        assert view.exact_total <= 1.0

    def test_market_sum_warning(self, caplog):
        rows = [OutcomeRow(name="A", market_pct=55, your_pct=60), OutcomeRow(name="B", market_pct=50, your_pct=40)]
        with caplog.at_level(logging.WARNING, logger="edgerunner.services.calculator"):
            view = evaluate_outcomes(MultiOutcomeForm(outcomes=rows), Settings())

        assert view.market_sum_warning
        assert view.market_sum_pct == pytest.approx(105.0)
        assert "105.00%" in caplog.text

    def test_tolerance_from_settings(self):
        rows = [OutcomeRow(name="A", market_pct=50.4, your_pct=60), OutcomeRow(name="B", market_pct=50, your_pct=40)]
        form = MultiOutcomeForm(outcomes=rows)
        assert not evaluate_outcomes(form, Settings()).market_sum_warning
        assert evaluate_outcomes(form, Settings(market_sum_tolerance_pct=0.1)).market_sum_warning

    def test_cap_respected_by_both(self):
        rows = [
            OutcomeRow(name="A", market_pct=20, your_pct=45),
            OutcomeRow(name="B", market_pct=20, your_pct=45),
            OutcomeRow(name="C", market_pct=60, your_pct=10),
        ]
        view = evaluate_outcomes(MultiOutcomeForm(outcomes=rows, cap=0.3), Settings())

        assert view.raw_kelly_sum > 0.3
        assert view.scale == pytest.approx(0.3 / view.raw_kelly_sum)
        assert view.independent_total == pytest.approx(0.3)
        assert view.exact_total <= 0.3 + 1e-9
        assert view.exact_growth_bp >= view.independent_growth_bp - 1e-6

    def test_empty_table(self):
        view = evaluate_outcomes(MultiOutcomeForm(outcomes=[]), Settings())
        assert view.legs == []
        assert view.exact_total == 0.0
