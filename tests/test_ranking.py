"""Tests for cycle_screening.analysis.ranking."""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd
import pytest

from cycle_screening.analysis.ranking import (
    calculate_cyclical_fit,
    find_cyclical_opportunities,
)
from cycle_screening.data.models import CyclePhase, CyclicalityCategory
from cycle_screening.strategies import DEFAULT_STRATEGY, get_strategy_profile

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_stocks(rows: list[dict[str, Any]]) -> pd.DataFrame:
    return pd.DataFrame(rows).set_index("symbol")


def _row(
    symbol: str,
    category: object = "Highly Cyclical",
    phase: object = "Early Expansion",
    **scores: float | None,
) -> dict[str, Any]:
    return {
        "symbol": symbol,
        "cyclicality_category": category,
        "current_phase": phase,
        **scores,
    }


EARLY_EXPANSION = get_strategy_profile(CyclePhase.EARLY_EXPANSION)


# ---------------------------------------------------------------------------
# calculate_cyclical_fit
# ---------------------------------------------------------------------------


class TestCyclicalFit:

    def test_target_with_preferred_phase_capped(self) -> None:
        fit = calculate_cyclical_fit("Highly Cyclical", "Early Expansion", EARLY_EXPANSION)
        assert fit == 100

    def test_secondary_with_preferred_phase(self) -> None:
        fit = calculate_cyclical_fit("Cyclical", "Early Recovery", EARLY_EXPANSION)
        assert fit == 90

    def test_secondary_without_preferred_phase(self) -> None:
        fit = calculate_cyclical_fit("Cyclical", "Late Contraction", EARLY_EXPANSION)
        assert fit == 70

    def test_avoid(self) -> None:
        fit = calculate_cyclical_fit("Defensive", "Late Contraction", EARLY_EXPANSION)
        assert fit == 20

    def test_neutral(self) -> None:
        fit = calculate_cyclical_fit("Moderate Cyclicality", "Mixed Signals", EARLY_EXPANSION)
        assert fit == 50

    def test_unrecognised_category_is_neutral(self) -> None:
        fit = calculate_cyclical_fit("Very Wobbly", "Mixed Signals", EARLY_EXPANSION)
        assert fit == 50

    def test_enum_members_accepted(self) -> None:
        fit = calculate_cyclical_fit(
            CyclicalityCategory.HIGHLY_CYCLICAL, CyclePhase.EARLY_RECOVERY, EARLY_EXPANSION,
        )
        assert fit == 100

    @pytest.mark.parametrize(
        "category, phase",
        [(None, "Early Expansion"), ("Cyclical", None), (np.nan, "Early Expansion"),
         ("", "Early Expansion")],
    )
    def test_missing_data_is_zero(self, category: object, phase: object) -> None:
        assert calculate_cyclical_fit(category, phase, EARLY_EXPANSION) == 0


# ---------------------------------------------------------------------------
# find_cyclical_opportunities
# ---------------------------------------------------------------------------


class TestFindCyclicalOpportunities:

    def test_combined_score(self) -> None:
        stocks = _make_stocks([_row("AAA", value_score=80.0, quality_score=60.0)])
        result = find_cyclical_opportunities("Early Expansion", stocks)
        assert result.loc["AAA", "cyclical_fit"] == 100
        # 80 * 0.3 + 60 * 0.3 + 100 * 0.4
        assert result.loc["AAA", "combined_score"] == pytest.approx(82.0)

    def test_missing_scores_default_to_fifty(self) -> None:
        stocks = _make_stocks([_row("AAA")])
        result = find_cyclical_opportunities("Early Expansion", stocks)
        assert result.loc["AAA", "combined_score"] == pytest.approx(15.0 + 15.0 + 40.0)

    def test_nan_scores_default_to_fifty(self) -> None:
        stocks = _make_stocks([
            _row("AAA", value_score=70.0, quality_score=70.0),
            _row("BBB", value_score=None, quality_score=70.0),
        ])
        result = find_cyclical_opportunities("Early Expansion", stocks)
        assert result.loc["BBB", "combined_score"] == pytest.approx(15.0 + 21.0 + 40.0)

    def test_zero_score_kept(self) -> None:
        stocks = _make_stocks([_row("AAA", value_score=0.0, quality_score=0.0)])
        result = find_cyclical_opportunities("Early Expansion", stocks)
        assert result.loc["AAA", "combined_score"] == pytest.approx(40.0)

    def test_missing_category_kept_with_zero_fit(self) -> None:
        stocks = _make_stocks([
            _row("AAA", category=None, value_score=50.0, quality_score=50.0),
        ])
        result = find_cyclical_opportunities("Early Expansion", stocks)
        assert "AAA" in result.index
        assert result.loc["AAA", "cyclical_fit"] == 0
        assert result.loc["AAA", "combined_score"] == pytest.approx(30.0)

    def test_sorted_descending(self) -> None:
        stocks = _make_stocks([
            _row("DEF", category="Defensive"),
            _row("HIC", category="Highly Cyclical"),
            _row("CYC", category="Cyclical"),
        ])
        result = find_cyclical_opportunities("Early Expansion", stocks)
        assert list(result.index) == ["HIC", "CYC", "DEF"]

    def test_ties_keep_input_order(self) -> None:
        stocks = _make_stocks([
            _row("B", category="Cyclical"),
            _row("A", category="Cyclical"),
            _row("C", category="Highly Cyclical"),
            _row("D", category="Cyclical"),
        ])
        result = find_cyclical_opportunities("Early Expansion", stocks)
        assert list(result.index) == ["C", "B", "A", "D"]

    def test_unrecognised_phase_uses_default_profile(self) -> None:
        stocks = _make_stocks([
            _row("MOD", category="Moderate Cyclicality", phase="Mixed Signals"),
        ])
        result = find_cyclical_opportunities("Stable", stocks)
        assert get_strategy_profile("Stable") is DEFAULT_STRATEGY
        # target 100 + preferred phase 20, capped
        assert result.loc["MOD", "cyclical_fit"] == 100

    def test_late_contraction_weights(self) -> None:
        stocks = _make_stocks([
            _row("DEF", category="Defensive", phase="Late Contraction",
                 value_score=60.0, quality_score=40.0),
        ])
        result = find_cyclical_opportunities(CyclePhase.LATE_CONTRACTION, stocks)
        # 60 * 0.6 + 40 * 0.3 + 100 * 0.1
        assert result.loc["DEF", "combined_score"] == pytest.approx(58.0)

    @pytest.mark.parametrize("market_cycle", [None, ""])
    def test_missing_market_cycle_is_empty(self, market_cycle: str | None) -> None:
        stocks = _make_stocks([_row("AAA")])
        result = find_cyclical_opportunities(market_cycle, stocks)
        assert result.empty
        assert {"cyclical_fit", "combined_score"} <= set(result.columns)

    def test_missing_columns_raise(self) -> None:
        stocks = pd.DataFrame({"symbol": ["AAA"], "value_score": [50.0]})
        with pytest.raises(ValueError, match="Missing required columns"):
            find_cyclical_opportunities("Early Expansion", stocks)

    def test_input_not_modified(self) -> None:
        stocks = _make_stocks([_row("AAA")])
        find_cyclical_opportunities("Early Expansion", stocks)
        assert "combined_score" not in stocks.columns
