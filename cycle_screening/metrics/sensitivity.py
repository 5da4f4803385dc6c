"""Economic sensitivity: correlation, beta and lead/lag against an indicator series."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from cycle_screening.config import SensitivityConfig
from cycle_screening.data.models import (
    EconomicIndicatorPoint,
    FinancialPeriod,
    SensitivityCategory,
    SensitivityResult,
)
from cycle_screening.metrics import statistics

logger = logging.getLogger(__name__)

INSUFFICIENT_INPUT = "Insufficient data for economic sensitivity analysis"
INSUFFICIENT_MATCHES = (
    "Insufficient matched data points for economic sensitivity analysis"
)


def _financial_value(period: FinancialPeriod) -> float:
    """Earnings, falling back to revenue; 0 when neither is reported."""
    return period.earnings or period.revenue or 0.0


def calculate_economic_sensitivity(
    history: Sequence[FinancialPeriod] | None,
    indicator_series: Sequence[EconomicIndicatorPoint] | None,
    config: SensitivityConfig | None = None,
) -> SensitivityResult:
    """Estimate how strongly a company's results move with an economic indicator.

    Periods are joined to indicator points by exact date equality. Periods
    with neither earnings nor revenue are dropped before the join.

    Args:
        history: Company periods, most recent first.
        indicator_series: Indicator observations in the same date format.
        config: Sensitivity configuration.

    Returns:
        SensitivityResult. ``sensitivity_score`` is None and ``error`` is
        set when fewer than ``config.min_matched_points`` dates match.
    """
    config = config or SensitivityConfig()

    if not history or indicator_series is None:
        logger.warning("Sensitivity: missing history or indicator series")
        return _error_result(INSUFFICIENT_INPUT)

    financial = [
        (p.date, _financial_value(p))
        for p in history
        if _financial_value(p) != 0
    ]

    by_date: dict[str, float] = {}
    for point in indicator_series:
        # First observation wins for duplicated dates.
        by_date.setdefault(point.date, point.value)

    matched_financial: list[float] = []
    matched_indicator: list[float] = []
    for date, value in financial:
        if date in by_date:
            matched_financial.append(value)
            matched_indicator.append(by_date[date])

    if len(matched_financial) < config.min_matched_points:
        logger.warning(
            "Sensitivity: %d matched dates, need %d",
            len(matched_financial), config.min_matched_points,
        )
        return _error_result(INSUFFICIENT_MATCHES)

    correlation = statistics.correlation(matched_financial, matched_indicator)
    beta = statistics.beta(matched_financial, matched_indicator)

    lag = calculate_optimal_lag(
        [value for _, value in financial],
        [point.value for point in indicator_series],
        config.max_lag,
    )

    if beta is None:
        logger.debug("Sensitivity: beta undefined, score set to None")
        score = None
    else:
        score = min(statistics.round_half_up(abs(beta) * config.beta_multiplier), 100)

    return SensitivityResult(
        sensitivity_score=score,
        correlation=correlation,
        beta=beta,
        optimal_lag=lag,
        sensitivity_category=categorize_sensitivity(score),
    )


def _error_result(message: str) -> SensitivityResult:
    return SensitivityResult(
        sensitivity_score=None,
        correlation=None,
        beta=None,
        optimal_lag=0,
        sensitivity_category=SensitivityCategory.UNKNOWN,
        error=message,
    )


def categorize_sensitivity(score: float | None) -> SensitivityCategory:
    """Bucket a 0-100 sensitivity score."""
    if score is None:
        return SensitivityCategory.UNKNOWN
    if score < 20:
        return SensitivityCategory.DEFENSIVE
    if score < 40:
        return SensitivityCategory.MODERATE
    if score < 60:
        return SensitivityCategory.AVERAGE
    if score < 80:
        return SensitivityCategory.HIGHLY_CYCLICAL
    return SensitivityCategory.EXTREME


def calculate_optimal_lag(
    financial: Sequence[float], indicator: Sequence[float], max_lag: int = 4
) -> int:
    """Lag (in periods) at which the two series correlate best.

    For each lag the financial series drops its last ``lag`` values and the
    indicator its first ``lag`` values; both are then cut to equal length.
    Only a strictly higher correlation replaces the incumbent, so ties keep
    the smallest lag.

    Returns:
        Lag in [0, max_lag]; 0 when either series has max_lag or fewer
        values, or no lag yields a defined correlation.
    """
    if len(financial) < max_lag + 1 or len(indicator) < max_lag + 1:
        return 0

    best_correlation = -2.0
    best_lag = 0

    for lag in range(max_lag + 1):
        lagged_financial = list(financial[: len(financial) - lag])
        lagged_indicator = list(indicator[lag:])
        n = min(len(lagged_financial), len(lagged_indicator))

        r = statistics.correlation(lagged_financial[:n], lagged_indicator[:n])
        if r is not None and r > best_correlation:
            best_correlation = r
            best_lag = lag

    return best_lag
