"""Data models for the engine."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum


class _ParsableEnum(str, Enum):
    """String-valued enum with a lenient lookup for external keys."""

    @classmethod
    def parse(cls, value: object):
        """Resolve a member from a member or its string value.

        Returns:
            The matching member, or None for missing or unrecognised keys.
        """
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None

    def __str__(self) -> str:
        return self.value


class CyclicalityCategory(_ParsableEnum):
    """How strongly a company's fundamentals swing with the cycle."""

    UNKNOWN = "Unknown"
    DEFENSIVE = "Defensive"
    MODERATE_CYCLICALITY = "Moderate Cyclicality"
    CYCLICAL = "Cyclical"
    HIGHLY_CYCLICAL = "Highly Cyclical"


class CyclePhase(_ParsableEnum):
    """Position in the business cycle, for a company or for the market."""

    INDETERMINATE = "Indeterminate"
    EARLY_EXPANSION = "Early Expansion"
    LATE_EXPANSION = "Late Expansion"
    EARLY_CONTRACTION = "Early Contraction"
    LATE_CONTRACTION = "Late Contraction"
    EARLY_RECOVERY = "Early Recovery"
    LATE_CYCLE_PEAK = "Late Cycle Peak"
    MIXED_SIGNALS = "Mixed Signals"


class SensitivityCategory(_ParsableEnum):
    """How strongly a company's results track an economic indicator."""

    UNKNOWN = "Unknown"
    DEFENSIVE = "Defensive / Counter-Cyclical"
    MODERATE = "Moderate Sensitivity"
    AVERAGE = "Average Cyclicality"
    HIGHLY_CYCLICAL = "Highly Cyclical"
    EXTREME = "Extreme Cyclicality"


@dataclass(frozen=True)
class FinancialPeriod:
    """One reported period of fundamentals and valuation multiples.

    Histories are sequences of these ordered most recent first. Every
    numeric field is optional; None means the value was not reported.

    Attributes:
        date: Period key used for exact-match joins (ISO date string).
        earnings: Net earnings (or EPS) for the period.
        revenue: Revenue for the period.
        margins: Operating or net margin, in percent.
        pe: Price / earnings.
        pb: Price / book.
        ev_to_ebitda: Enterprise value / EBITDA.
        dividend_yield: Dividend yield, in percent.
        free_cash_flow_yield: Free cash flow yield, in percent.
        roe: Return on equity, in percent.
        roic: Return on invested capital, in percent.
        debt_to_equity: Total debt / equity, raw multiple.
        interest_coverage: EBIT / interest expense, raw multiple.
    """

    date: str
    earnings: float | None = None
    revenue: float | None = None
    margins: float | None = None
    pe: float | None = None
    pb: float | None = None
    ev_to_ebitda: float | None = None
    dividend_yield: float | None = None
    free_cash_flow_yield: float | None = None
    roe: float | None = None
    roic: float | None = None
    debt_to_equity: float | None = None
    interest_coverage: float | None = None

    def get(self, name: str) -> float | None:
        """Return a numeric field by name.

        Raises:
            ValueError: If ``name`` is not a numeric field.
        """
        if name not in PERIOD_FIELDS:
            raise ValueError(f"Unknown financial period field: {name!r}")
        return getattr(self, name)


@dataclass(frozen=True)
class EconomicIndicatorPoint:
    """One observation of an external economic series."""

    date: str
    value: float


@dataclass(frozen=True)
class StockSnapshot:
    """Current valuation and quality figures for one stock.

    Attributes:
        symbol: Stock ticker symbol.
        sector: Business sector used for peer grouping.
        pe, pb, ev_to_ebitda: Valuation multiples (lower is cheaper).
        dividend_yield, free_cash_flow_yield: Yields in percent
            (higher is cheaper).
        roe, roic: Returns in percent.
        debt_to_equity: Leverage as a raw multiple.
        interest_coverage: EBIT / interest expense.
    """

    symbol: str
    sector: str | None = None
    pe: float | None = None
    pb: float | None = None
    ev_to_ebitda: float | None = None
    dividend_yield: float | None = None
    free_cash_flow_yield: float | None = None
    roe: float | None = None
    roic: float | None = None
    debt_to_equity: float | None = None
    interest_coverage: float | None = None

    def get(self, name: str) -> float | None:
        """Return a numeric field by name.

        Raises:
            ValueError: If ``name`` is not a numeric field.
        """
        if name not in SNAPSHOT_FIELDS:
            raise ValueError(f"Unknown stock metric: {name!r}")
        return getattr(self, name)


@dataclass(frozen=True)
class MarketData:
    """Market-wide reference values for valuation comparisons."""

    pe: float | None = None
    pb: float | None = None
    ev_to_ebitda: float | None = None
    dividend_yield: float | None = None
    free_cash_flow_yield: float | None = None

    def get(self, name: str) -> float | None:
        """Return a reference value by name, None if the market lacks it."""
        return getattr(self, name, None)


@dataclass(frozen=True)
class IndicatorMetrics:
    """Dispersion statistics for one fundamental indicator."""

    mean: float
    std_dev: float
    coefficient_of_variation: float


@dataclass(frozen=True)
class CyclicalityResult:
    """Cyclicality analysis output.

    Attributes:
        cyclicality_score: 0-100, higher is more cyclical. None when the
            history is insufficient.
        cyclicality_category: Bucketed score.
        current_phase: Business-cycle phase of the company. None when the
            analysis did not run.
        volatility: Std dev of period-over-period earnings growth (percent).
        metrics: Per-indicator dispersion statistics.
        error: Reason the score is missing, else None.
    """

    cyclicality_score: int | None
    cyclicality_category: CyclicalityCategory
    current_phase: CyclePhase | None
    volatility: float | None
    metrics: dict[str, IndicatorMetrics] = field(default_factory=dict)
    error: str | None = None


@dataclass(frozen=True)
class SensitivityResult:
    """Economic sensitivity output.

    Attributes:
        sensitivity_score: 0-100 from |beta|. None if beta is undefined.
        correlation: Pearson correlation of matched levels.
        beta: Sensitivity of percentage changes.
        optimal_lag: Periods by which the financial series best trails the
            indicator.
        sensitivity_category: Bucketed score.
        error: Reason the score is missing, else None.
    """

    sensitivity_score: int | None
    correlation: float | None
    beta: float | None
    optimal_lag: int
    sensitivity_category: SensitivityCategory
    error: str | None = None


@dataclass(frozen=True)
class PeerComparison:
    """One metric of a stock compared to its peer group."""

    value: float
    peer_average: float
    relative_to_peers: float
    percentile_to_peers: float


@dataclass(frozen=True)
class MarketComparison:
    """One metric of a stock compared to the market reference."""

    value: float
    market_average: float
    relative_to_market: float


@dataclass(frozen=True)
class SectorMetric:
    """Sector aggregate for one metric.

    Attributes:
        average: Trimmed mean of positive values. None when the trim
            leaves no value.
        median: Middle element of the sorted values.
        min: Smallest positive value.
        max: Largest positive value.
        relative_to_market: average / market * 100, None without market data
            or without an average.
    """

    average: float | None
    median: float
    min: float
    max: float
    relative_to_market: float | None = None


@dataclass(frozen=True)
class SectorValuation:
    """Sector-level valuation summary."""

    sector: str
    metrics: dict[str, SectorMetric]
    stock_count: int
    relative_attractiveness: float


PERIOD_FIELDS: frozenset[str] = frozenset(
    f.name for f in fields(FinancialPeriod) if f.name != "date"
)
SNAPSHOT_FIELDS: frozenset[str] = frozenset(
    f.name for f in fields(StockSnapshot) if f.name not in ("symbol", "sector")
)
