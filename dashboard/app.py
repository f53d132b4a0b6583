"""
Streamlit Dashboard for EdgeRunner
Kelly criterion calculator: single bet and multi-outcome allocation
"""

import logging
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from edgerunner.config import get_settings
from edgerunner.core.kelly import BetSide
from edgerunner.core.odds_math import PLACEHOLDER, OddsFormat
from edgerunner.schemas import MultiOutcomeForm, OutcomeRow, SingleBetForm, default_outcomes
from edgerunner.services.calculator import (
    add_outcome,
    change_odds_format,
    evaluate_outcomes,
    evaluate_single_bet,
    remove_outcome,
    toggle_bet_side,
)

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

st.set_page_config(
    page_title="EdgeRunner",
    page_icon="📈",
    layout="wide",
)

st.markdown("""
    <style>
    .success { color: green; }
    .danger { color: red; }
    .warning { color: orange; }
    .muted { color: gray; }
    </style>
""", unsafe_allow_html=True)


def _fmt_signed_pct(value: float) -> str:
    return PLACEHOLDER if value != value else f"{100.0 * value:+.1f}%"


def _fmt_signed(value: float) -> str:
    return PLACEHOLDER if value != value else f"{value:+.3f}"


def _colored(text: str, status: str) -> str:
    return f'<span class="{status}">{text}</span>'


# ==============================================================================
# SESSION STATE
# ==============================================================================

if "single_form" not in st.session_state:
    st.session_state["single_form"] = SingleBetForm(
        bankroll_text=f"{settings.default_bankroll:g}"
    )
if "outcomes" not in st.session_state:
    st.session_state["outcomes"] = default_outcomes()


def _on_side_change():
    st.session_state["single_form"] = toggle_bet_side(st.session_state["single_form"])


def _on_format_change():
    new_format = OddsFormat(st.session_state["odds_format_select"])
    st.session_state["single_form"] = change_odds_format(
        st.session_state["single_form"], new_format
    )


# ==============================================================================
# SINGLE BET
# ==============================================================================

st.title("EdgeRunner: Kelly Calculator")
tab_single, tab_multi = st.tabs(["🎯 Single Bet", "📊 Multi-Outcome"])

with tab_single:
    form: SingleBetForm = st.session_state["single_form"]

    c1, c2 = st.columns(2)
    with c1:
        st.subheader("Inputs")
        market_pct = st.slider("Market probability of event (%)", 0.0, 100.0, form.market_pct, 0.1)
        side_labels = {BetSide.ON_EVENT: "Yes (event happens)", BetSide.ON_OPPOSITE: "No (event fails)"}
        st.radio(
            "Backing",
            list(side_labels),
            index=list(side_labels).index(form.side),
            format_func=side_labels.get,
            key=f"side_{form.side.value}",
            on_change=_on_side_change,
            horizontal=True,
        )
        your_pct = st.number_input(
            f"Your probability for {side_labels[form.side]} (%)",
            0.0, 100.0, form.your_pct, 0.5,
        )
        st.selectbox(
            "Odds format",
            [fmt.value for fmt in OddsFormat],
            index=list(OddsFormat).index(form.odds_format),
            format_func=lambda v: OddsFormat(v).label,
            key="odds_format_select",
            on_change=_on_format_change,
        )
        odds_text = st.text_input("Odds (blank = use market %)", form.odds_text)
        bankroll_text = st.text_input("Bankroll ($)", form.bankroll_text)

    form = form.model_copy(update={
        "market_pct": market_pct,
        "your_pct": your_pct,
        "odds_text": odds_text,
        "bankroll_text": bankroll_text,
    })
    st.session_state["single_form"] = form
    view = evaluate_single_bet(form)
    result = view.result

    with c2:
        st.subheader("Recommendation")
        if view.inputs_valid:
            st.success("Inputs valid")
        else:
            st.warning("Check inputs")
            if not form.bankroll_valid:
                st.error("Bankroll must be a positive number")

        source = "explicit odds" if view.explicit_odds else "market %"
        st.caption(f"Price from {source}: " + " · ".join(view.odds_text.values()))

        m1, m2, m3, m4 = st.columns(4)
        m1.metric("Kelly fraction", f"{view.stake_pct_of_bankroll:.1f}%")
        m2.metric("Full Kelly", f"${result.full_stake:,.2f}")
        m3.metric("Half Kelly", f"${result.half_stake:,.2f}")
        m4.metric("Quarter Kelly", f"${result.quarter_stake:,.2f}")

        if result.fraction == 0.0:
            st.error("No betting edge detected. Kelly suggests no bet.")
        elif view.kelly_status == "warning":
            st.warning("Full Kelly above 25% of bankroll. Consider a fractional stake.")

        st.markdown(
            f"**EV per $1:** {_colored(_fmt_signed(result.ev), view.ev_status)} &nbsp; "
            f"**Edge:** {_colored(_fmt_signed_pct(result.edge), view.edge_status)} &nbsp; "
            f"**Implied:** {PLACEHOLDER if result.implied_prob != result.implied_prob else f'{result.implied_prob:.1%}'}",
            unsafe_allow_html=True,
        )
        st.markdown(
            f"**Win per $1:** {_fmt_signed(result.win_per_unit)} &nbsp; "
            f"**Loss per $1:** {_fmt_signed(-result.loss_per_unit)} &nbsp; "
            f"**Log growth:** {result.log_growth_bp:.1f} bp"
        )
        st.markdown("**Fair odds:** " + " · ".join(view.fair_odds_text.values()))
        other = "No" if form.side is BetSide.ON_EVENT else "Yes"
        st.markdown(f"**{other} side (no-vig):** " + " · ".join(view.complement_odds_text.values()))


# ==============================================================================
# MULTI-OUTCOME
# ==============================================================================

with tab_multi:
    st.subheader("Mutually exclusive outcomes")
    st.caption(
        "Independent Kelly sizes each outcome on its own and rescales to the cap, "
        "an approximation. Exact Kelly optimises all outcomes jointly."
    )

    rows = st.session_state["outcomes"]
    edited = st.data_editor(
        pd.DataFrame([row.model_dump() for row in rows], columns=["name", "market_pct", "your_pct"]),
        column_config={
            "name": "Outcome",
            "market_pct": st.column_config.NumberColumn("Market %", min_value=0.0, max_value=100.0),
            "your_pct": st.column_config.NumberColumn("Your %", min_value=0.0, max_value=100.0),
        },
        num_rows="dynamic",
        use_container_width=True,
        key="outcome_editor",
    )
    rows = [
        OutcomeRow(
            name=(r["name"] if isinstance(r["name"], str) and r["name"] else f"O{i + 1}")[:60],
            market_pct=r["market_pct"],
            your_pct=r["your_pct"],
        )
        for i, r in enumerate(edited.to_dict("records"))
    ]
    st.session_state["outcomes"] = rows

    b1, b2, b3 = st.columns(3)
    if b1.button("Add outcome"):
        st.session_state["outcomes"] = add_outcome(rows)
        st.rerun()
    if rows and b1.button("Remove last outcome"):
        st.session_state["outcomes"] = remove_outcome(rows, len(rows) - 1)
        st.rerun()
    cap = b2.slider("Stake cap (fraction of bankroll)", 0.05, 1.0, settings.stake_cap, 0.05)
    multi_bankroll = b3.text_input("Bankroll ($)", st.session_state["single_form"].bankroll_text, key="multi_bankroll")

    multi = evaluate_outcomes(
        MultiOutcomeForm(outcomes=rows, cap=cap, bankroll_text=multi_bankroll),
        settings,
    )

    if multi.market_sum_warning:
        st.warning(f"Market probabilities sum to {multi.market_sum_pct:.1f}%, not 100%.")

    if multi.legs:
        df = pd.DataFrame([
            {
                "Outcome": leg.name,
                "Decimal odds": f"{leg.decimal_odds:.3f}",
                "Kelly (alone)": f"{leg.kelly_fraction:.2%}",
                "Independent": f"{leg.independent_fraction:.2%}",
                "Exact": f"{leg.exact_fraction:.2%}",
                "Independent $": f"${leg.independent_stake:,.2f}",
                "Exact $": f"${leg.exact_stake:,.2f}",
            }
            for leg in multi.legs
        ])
        st.dataframe(df, use_container_width=True, hide_index=True)

        k1, k2, k3, k4 = st.columns(4)
        k1.metric("Unscaled Kelly sum", f"{multi.raw_kelly_sum:.2%}")
        k2.metric("Scale factor", f"{multi.scale:.3f}")
        k3.metric("Independent growth", f"{multi.independent_growth_bp:.1f} bp")
        k4.metric("Exact growth", f"{multi.exact_growth_bp:.1f} bp")

        fig = go.Figure()
        names = [leg.name for leg in multi.legs]
        fig.add_trace(go.Bar(name="Independent", x=names, y=[leg.independent_fraction for leg in multi.legs]))
        fig.add_trace(go.Bar(name="Exact", x=names, y=[leg.exact_fraction for leg in multi.legs]))
        fig.update_layout(barmode="group", yaxis_tickformat=".0%", height=350)
        st.plotly_chart(fig, use_container_width=True)
    else:
        st.info("Add at least one outcome.")
