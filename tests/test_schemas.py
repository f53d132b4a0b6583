"""
Tests for the pydantic input models
Run with: pytest tests/test_schemas.py -v
"""

import pytest
from pydantic import ValidationError

from edgerunner.core.allocation import Outcome
from edgerunner.core.kelly import BetSide
from edgerunner.core.odds_math import OddsFormat
from edgerunner.schemas import (
    MultiOutcomeForm,
    OutcomeRow,
    SingleBetForm,
    default_outcomes,
    parse_bankroll,
)


class TestSchemas:
    """Raw input coercion at the boundary"""

    def test_defaults(self):
        form = SingleBetForm()
        assert form.market_pct == 60.0
        assert form.your_pct == 55.0
        assert form.side is BetSide.ON_EVENT
        assert form.odds_format is OddsFormat.DECIMAL
        assert form.odds_text == ""
        assert form.bankroll == 1000.0

    @pytest.mark.parametrize(
        "raw,expected",
        [("42.5", 42.5), ("", 0.0), ("abc", 0.0), (-3, 0.0), (250, 100.0), (None, 0.0), ("nan", 0.0)],
    )
    def test_pct_coercion(self, raw, expected):
        assert SingleBetForm(your_pct=raw).your_pct == expected

    @pytest.mark.parametrize(
        "text,expected",
        [("1000", 1000.0), (" 1,250.50 ", 1250.5), ("", 0.0), ("ten", 0.0), ("inf", 0.0)],
    )
    def test_parse_bankroll(self, text, expected):
        assert parse_bankroll(text) == expected

    def test_bankroll_valid(self):
        assert SingleBetForm(bankroll_text="500").bankroll_valid
        assert not SingleBetForm(bankroll_text="0").bankroll_valid
        assert not SingleBetForm(bankroll_text="-20").bankroll_valid

    def test_forms_are_immutable(self):
        form = SingleBetForm()
        with pytest.raises(ValidationError):
            form.your_pct = 70.0

    @pytest.mark.parametrize("cap", [0.0, -0.5, 1.5, float("nan"), float("inf")])
    def test_invalid_cap_rejected(self, cap):
        with pytest.raises(ValidationError):
            MultiOutcomeForm(cap=cap)

    def test_default_outcomes(self):
        rows = default_outcomes()
        assert [(r.name, r.market_pct, r.your_pct) for r in rows] == [
            ("A", 50.0, 60.0),
            ("B", 50.0, 40.0),
        ]

    def test_outcome_row_to_outcome(self):
        row = OutcomeRow(name="Draw", market_pct="27.5", your_pct=130)
        assert row.to_outcome() == Outcome(name="Draw", market_pct=27.5, your_pct=100.0)

    def test_outcome_name_length_limited(self):
        with pytest.raises(ValidationError):
            OutcomeRow(name="x" * 61)

    def test_multi_form_defaults(self):
        form = MultiOutcomeForm()
        assert form.cap == 1.0
        assert form.outcomes == default_outcomes()
        assert form.bankroll == 1000.0
