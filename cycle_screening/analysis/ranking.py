"""Cyclical opportunity ranking.

Scores how well each stock's cyclicality suits the current market phase and
blends that fit with value and quality scores into a single ranking.
"""

from __future__ import annotations

import logging

import pandas as pd

from cycle_screening.data.models import CyclePhase, CyclicalityCategory
from cycle_screening.strategies import StrategyProfile, get_strategy_profile

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"cyclicality_category", "current_phase"}

# Score used for value or quality when a stock does not report one.
NEUTRAL_SCORE = 50.0

TARGET_FIT = 100
SECONDARY_FIT = 70
AVOID_FIT = 20
NEUTRAL_FIT = 50
PREFERRED_PHASE_BONUS = 20


def _is_missing(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    return bool(pd.isna(value))  # type: ignore[arg-type]


def calculate_cyclical_fit(
    category: object, phase: object, strategy: StrategyProfile
) -> int:
    """Fit of one stock to a strategy profile, 0-100.

    Returns 0 when either the category or the phase is missing. Category
    strings that do not name a known category fall into the neutral bucket.
    """
    if _is_missing(category) or _is_missing(phase):
        return 0

    resolved = CyclicalityCategory.parse(category)
    if resolved is None:
        fit = NEUTRAL_FIT
    elif resolved == strategy.target:
        fit = TARGET_FIT
    elif resolved == strategy.secondary:
        fit = SECONDARY_FIT
    elif resolved == strategy.avoid:
        fit = AVOID_FIT
    else:
        fit = NEUTRAL_FIT

    if CyclePhase.parse(phase) in strategy.preferred_phases:
        fit += PREFERRED_PHASE_BONUS

    return min(fit, 100)


def _score_or_neutral(row: pd.Series, column: str) -> float:
    if column not in row.index or _is_missing(row[column]):
        return NEUTRAL_SCORE
    return float(row[column])


def find_cyclical_opportunities(
    market_cycle: CyclePhase | str | None,
    stocks: pd.DataFrame,
) -> pd.DataFrame:
    """Rank stocks for a market phase.

    combined_score = value * value_weight + quality * quality_weight
    + cyclical_fit * cyclicality_weight, with missing value or quality
    scores counted as 50. Rows without a category or phase are kept with
    a fit of 0.

    Args:
        market_cycle: Current market phase. Unrecognised phases use the
            default profile.
        stocks: One row per stock. Requires: cyclicality_category,
            current_phase. Optional: value_score, quality_score.

    Returns:
        Copy of ``stocks`` with cyclical_fit and combined_score columns,
        sorted by combined_score descending. Ties keep input order. Empty
        when ``market_cycle`` is missing.

    Raises:
        ValueError: If required columns are missing.
    """
    if _is_missing(market_cycle):
        logger.warning("No market cycle given, no opportunities ranked")
        empty = stocks.iloc[0:0].copy()
        empty["cyclical_fit"] = pd.Series(dtype="int64")
        empty["combined_score"] = pd.Series(dtype="float64")
        return empty

    missing = REQUIRED_COLUMNS - set(stocks.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}")

    strategy = get_strategy_profile(market_cycle)

    fits: list[int] = []
    combined: list[float] = []
    for _, row in stocks.iterrows():
        fit = calculate_cyclical_fit(
            row["cyclicality_category"], row["current_phase"], strategy,
        )
        fits.append(fit)
        combined.append(
            _score_or_neutral(row, "value_score") * strategy.value_weight
            + _score_or_neutral(row, "quality_score") * strategy.quality_weight
            + fit * strategy.cyclicality_weight
        )

    ranked = stocks.copy()
    ranked["cyclical_fit"] = fits
    ranked["combined_score"] = combined

    logger.info(
        "Ranked %d stocks for market phase %s", len(ranked), market_cycle,
    )
    return ranked.sort_values("combined_score", ascending=False, kind="stable")
