"""Tests for cycle_screening.metrics.sensitivity."""

from __future__ import annotations

import pytest

from cycle_screening.config import SensitivityConfig
from cycle_screening.data.models import (
    EconomicIndicatorPoint,
    FinancialPeriod,
    SensitivityCategory,
)
from cycle_screening.metrics import statistics
from cycle_screening.metrics.sensitivity import (
    INSUFFICIENT_INPUT,
    INSUFFICIENT_MATCHES,
    calculate_economic_sensitivity,
    calculate_optimal_lag,
    categorize_sensitivity,
)

# Indicator period-over-period changes used to build paired series.
_CHANGES = [0.1, -0.1, 0.2, -0.05, 0.1, -0.1, 0.05]

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _dates(n: int) -> list[str]:
    return [f"{2024 - i}-12-31" for i in range(n)]


def _make_series(multiplier: float) -> tuple[list[FinancialPeriod], list[EconomicIndicatorPoint]]:
    """Earnings whose percentage changes are ``multiplier`` x the indicator's."""
    indicator = [100.0]
    earnings = [100.0]
    for change in _CHANGES:
        indicator.append(indicator[-1] * (1 + change))
        earnings.append(earnings[-1] * (1 + multiplier * change))

    dates = _dates(len(indicator))
    history = [FinancialPeriod(date=d, earnings=e) for d, e in zip(dates, earnings)]
    series = [EconomicIndicatorPoint(date=d, value=v) for d, v in zip(dates, indicator)]
    return history, series


# ---------------------------------------------------------------------------
# calculate_economic_sensitivity
# ---------------------------------------------------------------------------


class TestEconomicSensitivity:

    def test_missing_input(self) -> None:
        result = calculate_economic_sensitivity(None, [])
        assert result.sensitivity_score is None
        assert result.error == INSUFFICIENT_INPUT
        assert result.optimal_lag == 0
        assert result.sensitivity_category == SensitivityCategory.UNKNOWN

    def test_too_few_matched_dates(self) -> None:
        history, series = _make_series(2.0)
        result = calculate_economic_sensitivity(history[:7], series)
        assert result.sensitivity_score is None
        assert result.error == INSUFFICIENT_MATCHES
        assert result.correlation is None
        assert result.beta is None

    def test_unmatched_dates(self) -> None:
        history, series = _make_series(2.0)
        shifted = [EconomicIndicatorPoint(date=f"x{p.date}", value=p.value) for p in series]
        result = calculate_economic_sensitivity(history, shifted)
        assert result.error == INSUFFICIENT_MATCHES

    def test_periods_without_financials_dropped(self) -> None:
        history, series = _make_series(2.0)
        history[3] = FinancialPeriod(date=history[3].date)
        result = calculate_economic_sensitivity(history, series)
        assert result.error == INSUFFICIENT_MATCHES

    def test_revenue_used_when_earnings_missing(self) -> None:
        history, series = _make_series(2.0)
        revenue_only = [FinancialPeriod(date=p.date, revenue=p.earnings) for p in history]
        result = calculate_economic_sensitivity(revenue_only, series)
        assert result.error is None
        assert result.beta == pytest.approx(2.0)

    def test_beta_and_score(self) -> None:
        history, series = _make_series(2.0)
        result = calculate_economic_sensitivity(history, series)
        assert result.error is None
        assert result.beta == pytest.approx(2.0)
        assert result.sensitivity_score == 40
        assert result.sensitivity_category == SensitivityCategory.AVERAGE
        assert result.correlation is not None
        assert 0 <= result.optimal_lag <= 4

    def test_score_capped_at_100(self) -> None:
        history, series = _make_series(6.0)
        result = calculate_economic_sensitivity(history, series)
        assert result.beta == pytest.approx(6.0)
        assert result.sensitivity_score == 100
        assert result.sensitivity_category == SensitivityCategory.EXTREME

    def test_undefined_beta_gives_no_score(self) -> None:
        dates = _dates(8)
        indicator = [100.0 * 1.5 ** i for i in range(8)]
        history = [
            FinancialPeriod(date=d, earnings=float(10 + i % 3))
            for i, d in enumerate(dates)
        ]
        series = [EconomicIndicatorPoint(date=d, value=v) for d, v in zip(dates, indicator)]
        result = calculate_economic_sensitivity(history, series)
        assert result.error is None
        assert result.beta is None
        assert result.sensitivity_score is None
        assert result.sensitivity_category == SensitivityCategory.UNKNOWN

    def test_duplicate_indicator_dates_first_wins(self) -> None:
        history, series = _make_series(2.0)
        noisy = list(series) + [EconomicIndicatorPoint(date=series[0].date, value=1e9)]
        result = calculate_economic_sensitivity(history, noisy)
        assert result.beta == pytest.approx(2.0)

    def test_custom_min_matched_points(self) -> None:
        history, series = _make_series(2.0)
        config = SensitivityConfig(min_matched_points=4)
        result = calculate_economic_sensitivity(history[:5], series, config)
        assert result.error is None


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


class TestCategorizeSensitivity:

    @pytest.mark.parametrize(
        "score, expected",
        [
            (None, SensitivityCategory.UNKNOWN),
            (0, SensitivityCategory.DEFENSIVE),
            (19, SensitivityCategory.DEFENSIVE),
            (20, SensitivityCategory.MODERATE),
            (40, SensitivityCategory.AVERAGE),
            (60, SensitivityCategory.HIGHLY_CYCLICAL),
            (79, SensitivityCategory.HIGHLY_CYCLICAL),
            (80, SensitivityCategory.EXTREME),
        ],
    )
    def test_thresholds(self, score: int | None, expected: SensitivityCategory) -> None:
        assert categorize_sensitivity(score) == expected


# ---------------------------------------------------------------------------
# Optimal lag
# ---------------------------------------------------------------------------


class TestOptimalLag:

    INDICATOR = [1.0, 5.0, 2.0, 8.0, 3.0, 9.0, 4.0, 7.0, 6.0, 10.0]

    def test_detects_two_period_lag(self) -> None:
        # financial[i] == indicator[i + 2]
        financial = self.INDICATOR[2:] + [0.5, 11.0]
        assert calculate_optimal_lag(financial, self.INDICATOR) == 2

    def test_ties_keep_smallest_lag(self) -> None:
        series = [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]
        assert calculate_optimal_lag(series, series) == 0

    def test_short_series_returns_zero(self) -> None:
        assert calculate_optimal_lag([1.0, 2.0, 3.0, 4.0], self.INDICATOR) == 0
        assert calculate_optimal_lag(self.INDICATOR, [1.0, 2.0, 3.0, 4.0]) == 0

    def test_chosen_lag_has_highest_correlation(self) -> None:
        financial = [3.0, 1.0, 4.0, 1.0, 5.0, 9.0, 2.0, 6.0]
        lag = calculate_optimal_lag(financial, self.INDICATOR, max_lag=3)
        assert 0 <= lag <= 3

        correlations: dict[int, float | None] = {}
        for candidate in range(4):
            lagged_financial = financial[: len(financial) - candidate]
            lagged_indicator = self.INDICATOR[candidate:]
            n = min(len(lagged_financial), len(lagged_indicator))
            correlations[candidate] = statistics.correlation(
                lagged_financial[:n], lagged_indicator[:n],
            )
        defined = {k: r for k, r in correlations.items() if r is not None}
        assert correlations[lag] == max(defined.values())
        # Ties resolve to the smallest lag.
        assert lag == min(k for k, r in defined.items() if r == correlations[lag])

    def test_constant_series_returns_zero(self) -> None:
        assert calculate_optimal_lag([5.0] * 8, self.INDICATOR) == 0
