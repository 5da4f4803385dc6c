"""Relative valuation: historical percentiles, peer and market comparisons, peer-relative score."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from cycle_screening.config import (
    DEFAULT_HISTORICAL_METRICS,
    DEFAULT_MARKET_METRICS,
    DEFAULT_PEER_METRICS,
    ValuationConfig,
)
from cycle_screening.data.models import (
    FinancialPeriod,
    MarketComparison,
    MarketData,
    PeerComparison,
    StockSnapshot,
)
from cycle_screening.metrics import statistics
from cycle_screening.metrics.factors import FactorAccumulator

logger = logging.getLogger(__name__)

# (metric, weight, lower_is_better) for the peer-relative valuation score.
RELATIVE_VALUATION_FACTORS: tuple[tuple[str, float, bool], ...] = (
    ("pe", 30.0, True),
    ("pb", 20.0, True),
    ("dividend_yield", 25.0, False),
    ("free_cash_flow_yield", 25.0, False),
)


def _positive_values(records: Sequence[FinancialPeriod | StockSnapshot], metric: str) -> list[float]:
    """Values of ``metric`` that are reported and strictly positive, in input order."""
    values: list[float] = []
    for record in records:
        value = record.get(metric)
        if value is not None and value > 0:
            values.append(value)
    return values


def calculate_historical_percentiles(
    stock: StockSnapshot,
    history: Sequence[FinancialPeriod],
    metrics: Sequence[str] = DEFAULT_HISTORICAL_METRICS,
) -> dict[str, float]:
    """Rank the stock's current multiples against its own positive history.

    Args:
        stock: Current figures.
        history: Past periods (order irrelevant).
        metrics: Metric names present on both records.

    Returns:
        {metric: percentile 0-100}. Metrics the stock does not report, or
        with no positive history, are omitted.
    """
    percentiles: dict[str, float] = {}

    for metric in metrics:
        current = stock.get(metric)
        if not current:
            continue

        historical = sorted(_positive_values(history, metric))
        if not historical:
            logger.debug("%s: no positive history for %s", stock.symbol, metric)
            continue

        percentile = statistics.percentile_in_array(current, historical)
        if percentile is not None:
            percentiles[metric] = percentile

    return percentiles


def compare_to_industry_peers(
    stock: StockSnapshot,
    peers: Sequence[StockSnapshot],
    metrics: Sequence[str] = DEFAULT_PEER_METRICS,
    config: ValuationConfig | None = None,
) -> dict[str, PeerComparison]:
    """Compare each metric with the trimmed peer average.

    Peer values that are missing or non-positive are ignored. The average
    drops floor(n * trim_proportion) values from each end; the percentile
    is taken over the full sorted peer array.

    Returns:
        {metric: PeerComparison}. Metrics the stock does not report, or
        with no positive peer values, are omitted.
    """
    config = config or ValuationConfig()
    comparison: dict[str, PeerComparison] = {}

    for metric in metrics:
        value = stock.get(metric)
        if not value:
            continue

        peer_values = sorted(_positive_values(peers, metric))
        if not peer_values:
            continue

        peer_average = statistics.trimmed_mean(
            peer_values, proportion=config.trim_proportion, min_trim=0
        )
        percentile = statistics.percentile_in_array(value, peer_values)
        if peer_average is None or percentile is None:
            continue

        comparison[metric] = PeerComparison(
            value=value,
            peer_average=peer_average,
            relative_to_peers=value / peer_average * 100,
            percentile_to_peers=percentile,
        )

    return comparison


def compare_to_market(
    stock: StockSnapshot,
    market: MarketData,
    metrics: Sequence[str] = DEFAULT_MARKET_METRICS,
) -> dict[str, MarketComparison]:
    """Ratio of each stock metric to the market reference, in percent.

    Metrics missing (or zero) on either side are omitted.
    """
    comparison: dict[str, MarketComparison] = {}

    for metric in metrics:
        value = stock.get(metric)
        market_value = market.get(metric)
        if not value or not market_value:
            continue
        comparison[metric] = MarketComparison(
            value=value,
            market_average=market_value,
            relative_to_market=value / market_value * 100,
        )

    return comparison


def calculate_relative_valuation_score(
    stock: StockSnapshot,
    sector_peers: Sequence[StockSnapshot],
    empty: float | None = 0.0,
) -> float | None:
    """Score a stock's multiples against the median of its sector peers.

    Each factor contributes ``weight / ratio`` (lower is better) or
    ``weight * ratio`` (higher is better) where ratio = stock / peer median.
    A factor applies only when the stock's value and at least one peer
    value are positive.

    Returns:
        Mean contribution capped at 100; ``empty`` when no factor applies.
    """
    acc = FactorAccumulator()

    for metric, weight, lower_is_better in RELATIVE_VALUATION_FACTORS:
        value = stock.get(metric)
        if value is None or value <= 0:
            continue

        peer_median = statistics.median(_positive_values(sector_peers, metric))
        if peer_median is None:
            continue

        acc.add_ratio(value / peer_median, weight, lower_is_better)

    return acc.average(empty=empty, cap=100.0)
