"""Sector valuation and relative value discovery.

Stocks are grouped by sector, each sector is scored against the market,
and within sectors that clear the attractiveness threshold the stocks are
ranked by a blend of peer-relative valuation and quality.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import asdict

import pandas as pd

from cycle_screening.config import SECTOR_METRICS, ValuationConfig
from cycle_screening.data.models import (
    MarketData,
    SectorMetric,
    SectorValuation,
    StockSnapshot,
)
from cycle_screening.metrics import statistics
from cycle_screening.metrics.factors import FactorAccumulator
from cycle_screening.metrics.quality import calculate_quality_score
from cycle_screening.metrics.valuation import calculate_relative_valuation_score

logger = logging.getLogger(__name__)

# Label for stocks that report no sector.
UNKNOWN_SECTOR = "Unknown"

# (metric, weight, lower_is_better) for sector attractiveness.
ATTRACTIVENESS_FACTORS: tuple[tuple[str, float, bool], ...] = (
    ("pe", 25.0, True),
    ("pb", 25.0, True),
    ("dividend_yield", 25.0, False),
    ("free_cash_flow_yield", 25.0, False),
)

OPPORTUNITY_COLUMNS = [
    "symbol", "sector",
    "relative_valuation_score", "quality_score", "combined_score",
    "pe", "pb", "ev_to_ebitda", "dividend_yield", "free_cash_flow_yield",
    "roe", "roic", "debt_to_equity", "interest_coverage",
]


def analyze_sector_valuation(
    sector: str,
    sector_stocks: Sequence[StockSnapshot],
    market: MarketData | None = None,
    config: ValuationConfig | None = None,
) -> SectorValuation:
    """Aggregate a sector's multiples and score it against the market.

    For each sector metric, positive values are sorted and summarised:
    the average drops ``max(sector_min_trim, floor(n * trim_proportion))``
    values from each end, the median is the element at index n // 2.
    When the trim leaves nothing the average is None, so a sector with
    too few stocks never counts as attractive on that metric. Metrics with
    no positive value are omitted.
    """
    config = config or ValuationConfig()
    market = market or MarketData()
    metrics: dict[str, SectorMetric] = {}

    for metric in SECTOR_METRICS:
        values = sorted(
            v for v in (s.get(metric) for s in sector_stocks)
            if v is not None and v > 0
        )
        if not values:
            continue

        average = statistics.trimmed_mean(
            values,
            proportion=config.trim_proportion,
            min_trim=config.sector_min_trim,
        )
        market_value = market.get(metric)
        metrics[metric] = SectorMetric(
            average=average,
            median=values[len(values) // 2],
            min=values[0],
            max=values[-1],
            relative_to_market=(
                average / market_value * 100
                if average is not None and market_value
                else None
            ),
        )

    return SectorValuation(
        sector=sector,
        metrics=metrics,
        stock_count=len(sector_stocks),
        relative_attractiveness=calculate_sector_attractiveness(metrics, market),
    )


def calculate_sector_attractiveness(
    metrics: Mapping[str, SectorMetric], market: MarketData
) -> float:
    """Average of weighted sector-to-market ratios; 0.0 when none apply.

    PE and PB ratios are inverted so that cheaper sectors score higher.
    """
    acc = FactorAccumulator()
    for metric, weight, lower_is_better in ATTRACTIVENESS_FACTORS:
        sector_metric = metrics.get(metric)
        market_value = market.get(metric)
        if sector_metric is None or not market_value or not sector_metric.average:
            # Missing, untrimmable or zero averages leave the ratio undefined.
            continue
        acc.add_ratio(sector_metric.average / market_value, weight, lower_is_better)
    return acc.average(empty=0.0)  # type: ignore[return-value]


def sector_key(stock: StockSnapshot) -> str:
    return stock.sector or UNKNOWN_SECTOR


def group_by_sector(stocks: Sequence[StockSnapshot]) -> dict[str, list[StockSnapshot]]:
    """Sector -> stocks, in first-appearance order."""
    groups: dict[str, list[StockSnapshot]] = {}
    for stock in stocks:
        groups.setdefault(sector_key(stock), []).append(stock)
    return groups


def find_relative_value_opportunities(
    stocks: Sequence[StockSnapshot],
    market: MarketData,
    threshold: float | None = None,
    config: ValuationConfig | None = None,
) -> pd.DataFrame:
    """Best relative-value stocks within the most attractive sectors.

    Sectors whose attractiveness is at least ``threshold`` are kept. Each
    stock in a kept sector is scored against its sector peers:
    combined = valuation_weight * relative valuation + quality_weight * quality.
    The top ``top_per_sector`` stocks per sector are merged and sorted by
    combined score, descending. Ties keep sector then input order.

    Args:
        stocks: Universe of stock snapshots.
        market: Market reference values.
        threshold: Minimum sector attractiveness; defaults to
            ``config.attractiveness_threshold``.
        config: Valuation configuration.

    Returns:
        DataFrame indexed by symbol with sector, relative_valuation_score,
        quality_score, combined_score and the snapshot metrics.
    """
    config = config or ValuationConfig()
    if threshold is None:
        threshold = config.attractiveness_threshold

    groups = group_by_sector(stocks)
    sectors = [
        analyze_sector_valuation(name, members, market, config)
        for name, members in groups.items()
    ]
    sectors.sort(key=lambda s: s.relative_attractiveness, reverse=True)
    attractive = [s.sector for s in sectors if s.relative_attractiveness >= threshold]

    logger.info(
        "Relative value: %d of %d sectors at or above attractiveness %.1f",
        len(attractive), len(sectors), threshold,
    )

    rows: list[dict[str, object]] = []
    for sector in attractive:
        members = groups[sector]
        scored: list[dict[str, object]] = []
        for stock in members:
            rv_score: float = calculate_relative_valuation_score(stock, members)  # type: ignore[assignment]
            quality: float = calculate_quality_score(stock)  # type: ignore[assignment]
            row = asdict(stock)
            row["sector"] = sector
            row["relative_valuation_score"] = rv_score
            row["quality_score"] = quality
            row["combined_score"] = (
                rv_score * config.valuation_weight + quality * config.quality_weight
            )
            scored.append(row)

        # sorted() is stable, so equal scores keep input order.
        scored.sort(key=lambda r: r["combined_score"], reverse=True)  # type: ignore[arg-type, return-value]
        rows.extend(scored[: config.top_per_sector])

    if not rows:
        return pd.DataFrame(columns=OPPORTUNITY_COLUMNS).set_index("symbol")

    result = pd.DataFrame(rows, columns=OPPORTUNITY_COLUMNS).set_index("symbol")
    return result.sort_values("combined_score", ascending=False, kind="stable")
