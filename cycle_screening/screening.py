"""Screening: per-stock analysis, universe scoring and cyclical ranking."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

import pandas as pd

from cycle_screening.analysis.outliers import OutlierReport, detect_batch_outliers
from cycle_screening.analysis.ranking import find_cyclical_opportunities
from cycle_screening.analysis.sector import group_by_sector, sector_key
from cycle_screening.config import (
    CyclicalityConfig,
    OutlierConfig,
    SensitivityConfig,
    ValuationConfig,
)
from cycle_screening.data.models import (
    CyclePhase,
    CyclicalityResult,
    EconomicIndicatorPoint,
    FinancialPeriod,
    MarketComparison,
    MarketData,
    PeerComparison,
    SensitivityResult,
    StockSnapshot,
)
from cycle_screening.metrics.cyclicality import analyze_cyclicality
from cycle_screening.metrics.quality import calculate_quality_score
from cycle_screening.metrics.sensitivity import calculate_economic_sensitivity
from cycle_screening.metrics.valuation import (
    calculate_historical_percentiles,
    calculate_relative_valuation_score,
    compare_to_industry_peers,
    compare_to_market,
)
from cycle_screening.strategies import StrategyRecommendation, get_strategy_recommendations

logger = logging.getLogger(__name__)


@dataclass
class StockAnalysis:
    """All computed analysis for a single stock.

    Attributes:
        stock: Current figures.
        cyclicality: Cyclicality score, category and company phase.
        sensitivity: Indicator sensitivity. None if no indicator was given.
        historical_percentiles: {metric: percentile vs own history}.
        peer_comparison: {metric: comparison vs sector peers}.
        market_comparison: {metric: comparison vs market}.
        relative_valuation_score: Peer-relative valuation, 0-100. None when
            no valuation factor applies.
        quality_score: Quality, 0-100. None when no quality factor applies.
    """

    stock: StockSnapshot
    cyclicality: CyclicalityResult
    sensitivity: SensitivityResult | None
    historical_percentiles: dict[str, float] = field(default_factory=dict)
    peer_comparison: dict[str, PeerComparison] = field(default_factory=dict)
    market_comparison: dict[str, MarketComparison] = field(default_factory=dict)
    relative_valuation_score: float | None = None
    quality_score: float | None = None


@dataclass
class ScreeningResult:
    """Outcome of screening a universe for one market phase.

    Attributes:
        ranking: Stocks ranked by combined score, indexed by symbol.
        recommendation: Portfolio guidance for the market phase.
        analyses: Per-stock analysis keyed by symbol.
        outliers: Combined-score outliers within the ranking.
    """

    ranking: pd.DataFrame
    recommendation: StrategyRecommendation
    analyses: dict[str, StockAnalysis]
    outliers: OutlierReport


def analyze_stock(
    stock: StockSnapshot,
    history: Sequence[FinancialPeriod],
    indicator_series: Sequence[EconomicIndicatorPoint] | None = None,
    peers: Sequence[StockSnapshot] = (),
    market: MarketData | None = None,
    cyclicality_config: CyclicalityConfig | None = None,
    sensitivity_config: SensitivityConfig | None = None,
    valuation_config: ValuationConfig | None = None,
) -> StockAnalysis:
    """Run every per-stock stage.

    Args:
        stock: Current figures.
        history: Past periods, most recent first.
        indicator_series: Economic indicator; sensitivity is skipped when None.
        peers: Sector peers, usually including the stock itself.
        market: Market reference values; market comparison is skipped when None.
    """
    sensitivity = None
    if indicator_series is not None:
        sensitivity = calculate_economic_sensitivity(
            history, indicator_series, sensitivity_config,
        )

    return StockAnalysis(
        stock=stock,
        cyclicality=analyze_cyclicality(history, config=cyclicality_config),
        sensitivity=sensitivity,
        historical_percentiles=calculate_historical_percentiles(stock, history),
        peer_comparison=compare_to_industry_peers(
            stock, peers, config=valuation_config,
        ),
        market_comparison=(
            compare_to_market(stock, market) if market is not None else {}
        ),
        relative_valuation_score=calculate_relative_valuation_score(
            stock, peers, empty=None,
        ),
        quality_score=calculate_quality_score(stock, empty=None),
    )


def _analysis_row(analysis: StockAnalysis) -> dict[str, object]:
    cyc = analysis.cyclicality
    sens = analysis.sensitivity
    return {
        "symbol": analysis.stock.symbol,
        "sector": analysis.stock.sector,
        "cyclicality_score": cyc.cyclicality_score,
        "cyclicality_category": str(cyc.cyclicality_category),
        "current_phase": str(cyc.current_phase) if cyc.current_phase else None,
        "sensitivity_score": sens.sensitivity_score if sens else None,
        "beta": sens.beta if sens else None,
        "optimal_lag": sens.optimal_lag if sens else None,
        "value_score": analysis.relative_valuation_score,
        "quality_score": analysis.quality_score,
    }


def screen_universe(
    stocks: Sequence[StockSnapshot],
    histories: Mapping[str, Sequence[FinancialPeriod]],
    market_cycle: CyclePhase | str,
    indicator_series: Sequence[EconomicIndicatorPoint] | None = None,
    market: MarketData | None = None,
    is_overvalued: bool = True,
    cyclicality_config: CyclicalityConfig | None = None,
    sensitivity_config: SensitivityConfig | None = None,
    valuation_config: ValuationConfig | None = None,
    outlier_config: OutlierConfig | None = None,
) -> ScreeningResult:
    """Analyse every stock, rank the universe for a market phase and recommend an allocation.

    The value score fed into the ranking is each stock's relative valuation
    score against its sector peers; the quality score is its quality score.
    A stock with no applicable factor for either score is left blank there,
    so the ranking counts it as neutral.
    Stocks without history are kept and rank with a cyclical fit of 0.

    Args:
        stocks: Universe of stock snapshots.
        histories: {symbol: periods, most recent first}.
        market_cycle: Current market phase.
        indicator_series: Economic indicator for sensitivity analysis.
        market: Market reference values.
        is_overvalued: Whether the market is considered overvalued.

    Returns:
        ScreeningResult with the ranking, recommendation, per-stock analyses
        and combined-score outliers.
    """
    groups = group_by_sector(stocks)

    analyses: dict[str, StockAnalysis] = {}
    rows: list[dict[str, object]] = []
    for stock in stocks:
        history = histories.get(stock.symbol, [])
        if not history:
            logger.warning("No history for %s", stock.symbol)
        peers = groups[sector_key(stock)]
        analysis = analyze_stock(
            stock,
            history,
            indicator_series=indicator_series,
            peers=peers,
            market=market,
            cyclicality_config=cyclicality_config,
            sensitivity_config=sensitivity_config,
            valuation_config=valuation_config,
        )
        analyses[stock.symbol] = analysis
        rows.append(_analysis_row(analysis))

    logger.info("Analysed %d stocks across %d sectors", len(analyses), len(groups))

    frame = pd.DataFrame(
        rows,
        columns=[
            "symbol", "sector", "cyclicality_score", "cyclicality_category",
            "current_phase", "sensitivity_score", "beta", "optimal_lag",
            "value_score", "quality_score",
        ],
    ).set_index("symbol")

    ranking = find_cyclical_opportunities(market_cycle, frame)
    outliers = detect_batch_outliers(ranking, "combined_score", outlier_config)

    return ScreeningResult(
        ranking=ranking,
        recommendation=get_strategy_recommendations(market_cycle, is_overvalued),
        analyses=analyses,
        outliers=outliers,
    )
