"""Quality score: returns on capital, leverage and interest coverage."""

from __future__ import annotations

import logging

import numpy as np

from cycle_screening.data.models import StockSnapshot
from cycle_screening.metrics.factors import FactorAccumulator

logger = logging.getLogger(__name__)

# (breakpoints, scores) for piecewise-linear mapping onto 0-100.
# Values outside the outermost breakpoints are clamped to the end scores.
ROE_SCALE = ((0.0, 5.0, 15.0, 25.0), (0.0, 25.0, 75.0, 100.0))
ROIC_SCALE = ((0.0, 4.0, 12.0, 20.0), (0.0, 25.0, 75.0, 100.0))
DEBT_TO_EQUITY_SCALE = ((0.0, 0.5, 2.0, 4.0), (100.0, 75.0, 25.0, 0.0))
INTEREST_COVERAGE_SCALE = ((0.0, 2.0, 5.0, 10.0), (0.0, 25.0, 75.0, 100.0))


def piecewise_score(
    value: float, scale: tuple[tuple[float, ...], tuple[float, ...]]
) -> float:
    """Map a value onto 0-100 by linear interpolation between breakpoints."""
    breakpoints, scores = scale
    return float(np.interp(value, breakpoints, scores))


def roe_score(roe: float) -> float:
    return piecewise_score(roe, ROE_SCALE)


def roic_score(roic: float) -> float:
    return piecewise_score(roic, ROIC_SCALE)


def debt_to_equity_score(debt_to_equity: float) -> float:
    """Lower leverage scores higher; negative equity readings clamp to 100."""
    return piecewise_score(debt_to_equity, DEBT_TO_EQUITY_SCALE)


def interest_coverage_score(coverage: float) -> float:
    return piecewise_score(coverage, INTEREST_COVERAGE_SCALE)


def calculate_quality_score(
    stock: StockSnapshot, empty: float | None = 0.0
) -> float | None:
    """Average of the per-factor quality scores that apply to a stock.

    ROE, ROIC and interest coverage contribute only when positive.
    Debt/equity contributes whenever it is reported.

    Args:
        stock: Current figures for the stock.
        empty: Value returned when no factor applies.

    Returns:
        Score in [0, 100]; ``empty`` when no factor applies.
    """
    acc = FactorAccumulator()

    if stock.roe is not None and stock.roe > 0:
        acc.add(roe_score(stock.roe))
    if stock.roic is not None and stock.roic > 0:
        acc.add(roic_score(stock.roic))
    if stock.debt_to_equity is not None:
        acc.add(debt_to_equity_score(stock.debt_to_equity))
    if stock.interest_coverage is not None and stock.interest_coverage > 0:
        acc.add(interest_coverage_score(stock.interest_coverage))

    if acc.count == 0:
        logger.debug("%s: no quality factors reported", stock.symbol)
    return acc.average(empty=empty)
