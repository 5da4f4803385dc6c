"""Cyclicality metrics: dispersion score, category, cycle phase and earnings volatility."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import pandas as pd

from cycle_screening.config import DEFAULT_CYCLICALITY_INDICATORS, CyclicalityConfig
from cycle_screening.data import history_to_frame
from cycle_screening.data.models import (
    CyclePhase,
    CyclicalityCategory,
    CyclicalityResult,
    FinancialPeriod,
    IndicatorMetrics,
)
from cycle_screening.metrics import statistics

logger = logging.getLogger(__name__)

INSUFFICIENT_HISTORY = "Insufficient historical data for cyclicality analysis"
NO_VALID_INDICATORS = "No valid indicators for cyclicality analysis"


def analyze_cyclicality(
    history: Sequence[FinancialPeriod],
    indicators: Sequence[str] = DEFAULT_CYCLICALITY_INDICATORS,
    config: CyclicalityConfig | None = None,
) -> CyclicalityResult:
    """Score how cyclical a company's fundamentals are and where it sits in its cycle.

    The score averages the coefficient of variation of each indicator,
    stretches it by ``config.score_multiplier`` and caps it to 0-100.
    Indicators with fewer than ``config.min_periods`` reported values, or
    with a zero mean, are skipped.

    Args:
        history: Periods ordered most recent first.
        indicators: FinancialPeriod field names to analyse.
        config: Cyclicality configuration.

    Returns:
        CyclicalityResult. Score fields are None and ``error`` is set when
        the history is too short or no indicator qualifies.
    """
    config = config or CyclicalityConfig()

    if len(history) < config.min_periods:
        logger.warning(
            "Cyclicality: %d periods, need at least %d",
            len(history), config.min_periods,
        )
        return _error_result(INSUFFICIENT_HISTORY)

    frame = history_to_frame(history)
    metrics = _compute_indicator_metrics(frame, indicators, config.min_periods)

    if not metrics:
        logger.warning("Cyclicality: none of %s usable", list(indicators))
        return _error_result(NO_VALID_INDICATORS)

    average_cv = sum(m.coefficient_of_variation for m in metrics.values()) / len(metrics)
    # A negative mean gives a negative coefficient; the score stays in 0-100.
    score = min(statistics.round_half_up(average_cv * config.score_multiplier), 100)
    score = max(score, 0)

    return CyclicalityResult(
        cyclicality_score=score,
        cyclicality_category=categorize_cyclicality(score),
        current_phase=determine_current_phase(history, config),
        volatility=calculate_earnings_volatility(frame["earnings"]),
        metrics=metrics,
    )


def _error_result(message: str) -> CyclicalityResult:
    return CyclicalityResult(
        cyclicality_score=None,
        cyclicality_category=CyclicalityCategory.UNKNOWN,
        current_phase=None,
        volatility=None,
        metrics={},
        error=message,
    )


def _compute_indicator_metrics(
    frame: pd.DataFrame, indicators: Sequence[str], min_periods: int
) -> dict[str, IndicatorMetrics]:
    """Mean, std dev and coefficient of variation per usable indicator."""
    metrics: dict[str, IndicatorMetrics] = {}

    for indicator in indicators:
        if indicator == "date" or indicator not in frame.columns:
            logger.debug("Cyclicality: unknown indicator %r skipped", indicator)
            continue

        values = frame[indicator].dropna().astype(float).tolist()
        if len(values) < min_periods:
            logger.debug(
                "Cyclicality: %s has %d values, need %d",
                indicator, len(values), min_periods,
            )
            continue

        cv = statistics.coefficient_of_variation(values)
        if cv is None:
            logger.debug("Cyclicality: %s has a zero mean, skipped", indicator)
            continue

        metrics[indicator] = IndicatorMetrics(
            mean=float(sum(values) / len(values)),
            std_dev=statistics.std_dev(values) or 0.0,
            coefficient_of_variation=cv,
        )

    return metrics


def categorize_cyclicality(score: float | None) -> CyclicalityCategory:
    """Bucket a 0-100 cyclicality score."""
    if score is None:
        return CyclicalityCategory.UNKNOWN
    if score < 15:
        return CyclicalityCategory.DEFENSIVE
    if score < 30:
        return CyclicalityCategory.MODERATE_CYCLICALITY
    if score < 50:
        return CyclicalityCategory.CYCLICAL
    return CyclicalityCategory.HIGHLY_CYCLICAL


def calculate_earnings_volatility(earnings: Sequence[float | None] | pd.Series) -> float | None:
    """Std dev of period-over-period earnings growth rates, in percent.

    Missing values are dropped first. A pair is skipped when the earlier
    value in list order is zero or negative.

    Returns:
        Population std dev, or None if no valid growth rate exists.
    """
    values = [float(v) for v in pd.Series(earnings, dtype="float64").dropna()]

    growth_rates: list[float] = []
    for i in range(1, len(values)):
        prev = values[i - 1]
        if prev > 0:
            growth_rates.append((values[i] - prev) / prev * 100)

    return statistics.std_dev(growth_rates)


def _average_growth(values: Sequence[float | None]) -> float:
    """Mean growth in percent over consecutive pairs, 0 if no pair qualifies.

    Pairs with a missing or zero value on either side are skipped.
    """
    rates: list[float] = []
    for i in range(1, len(values)):
        curr = values[i]
        prev = values[i - 1]
        if not curr or not prev:
            continue
        rates.append((curr - prev) / abs(prev) * 100)
    return statistics.mean(rates) or 0.0


def _average_missing_as_zero(values: Sequence[float | None]) -> float:
    """Mean over the whole window, unreported values counting as 0."""
    return statistics.mean([v or 0.0 for v in values]) or 0.0


def percent_of_peak(history: Sequence[FinancialPeriod]) -> float | None:
    """Most recent earnings as a percentage of the highest reported earnings.

    Returns:
        Percentage, or None when the latest earnings are missing or the
        peak is zero.
    """
    reported = [p.earnings for p in history if p.earnings is not None]
    if not reported or history[0].earnings is None:
        return None
    peak = max(reported)
    if peak == 0:
        return None
    return history[0].earnings / peak * 100


def determine_current_phase(
    history: Sequence[FinancialPeriod], config: CyclicalityConfig | None = None
) -> CyclePhase:
    """Classify the company's current business-cycle phase.

    The most recent ``phase_window`` periods are split into a recent and a
    previous half. Margin, earnings-growth and revenue-growth trends of the
    halves, together with current earnings relative to their peak, select
    the phase. Rules are evaluated in a fixed order and the first match wins.
    """
    config = config or CyclicalityConfig()
    window = config.phase_window
    if len(history) < window:
        return CyclePhase.INDETERMINATE

    half = window // 2
    recent = history[:half]
    previous = history[half:window]

    margins_expanding = _average_missing_as_zero(
        [p.margins for p in recent]
    ) > _average_missing_as_zero([p.margins for p in previous])
    earnings_accelerating = _average_growth(
        [p.earnings for p in recent]
    ) > _average_growth([p.earnings for p in previous])
    revenue_accelerating = _average_growth(
        [p.revenue for p in recent]
    ) > _average_growth([p.revenue for p in previous])

    peak_pct = percent_of_peak(history)

    if margins_expanding and earnings_accelerating and revenue_accelerating:
        if peak_pct is not None and peak_pct < config.early_expansion_peak_pct:
            return CyclePhase.EARLY_EXPANSION
        return CyclePhase.LATE_EXPANSION
    if not margins_expanding and (not earnings_accelerating or not revenue_accelerating):
        if peak_pct is not None and peak_pct > config.early_contraction_peak_pct:
            return CyclePhase.EARLY_CONTRACTION
        return CyclePhase.LATE_CONTRACTION
    if not margins_expanding and earnings_accelerating:
        return CyclePhase.EARLY_RECOVERY
    if margins_expanding and not earnings_accelerating:
        return CyclePhase.LATE_CYCLE_PEAK
    return CyclePhase.MIXED_SIGNALS
