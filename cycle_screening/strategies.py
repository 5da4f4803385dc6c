"""Static strategy tables keyed by market cycle phase.

Two tables live here: the stock-selection profile used to rank cyclical
opportunities, and the portfolio-level recommendation (allocation, sector
focus, factor tilts) with its adjustment for an overvalued market.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType

from cycle_screening.data.models import CyclePhase, CyclicalityCategory

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Stock-selection profiles
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StrategyProfile:
    """How to weigh cyclicality when picking stocks in a market phase.

    Attributes:
        target: Category earning the full cyclical fit.
        secondary: Category earning a partial fit.
        avoid: Category earning the lowest fit.
        preferred_phases: Company phases earning a fit bonus.
        value_weight, quality_weight, cyclicality_weight: Blend weights for
            the combined score; they sum to 1.
    """

    target: CyclicalityCategory
    secondary: CyclicalityCategory
    avoid: CyclicalityCategory
    preferred_phases: frozenset[CyclePhase]
    value_weight: float
    quality_weight: float
    cyclicality_weight: float


STRATEGY_PROFILES: MappingProxyType[CyclePhase, StrategyProfile] = MappingProxyType({
    CyclePhase.EARLY_EXPANSION: StrategyProfile(
        target=CyclicalityCategory.HIGHLY_CYCLICAL,
        secondary=CyclicalityCategory.CYCLICAL,
        avoid=CyclicalityCategory.DEFENSIVE,
        preferred_phases=frozenset({CyclePhase.EARLY_EXPANSION, CyclePhase.EARLY_RECOVERY}),
        value_weight=0.3,
        quality_weight=0.3,
        cyclicality_weight=0.4,
    ),
    CyclePhase.LATE_EXPANSION: StrategyProfile(
        target=CyclicalityCategory.MODERATE_CYCLICALITY,
        secondary=CyclicalityCategory.CYCLICAL,
        avoid=CyclicalityCategory.HIGHLY_CYCLICAL,
        preferred_phases=frozenset({CyclePhase.EARLY_EXPANSION}),
        value_weight=0.4,
        quality_weight=0.4,
        cyclicality_weight=0.2,
    ),
    CyclePhase.EARLY_CONTRACTION: StrategyProfile(
        target=CyclicalityCategory.DEFENSIVE,
        secondary=CyclicalityCategory.MODERATE_CYCLICALITY,
        avoid=CyclicalityCategory.HIGHLY_CYCLICAL,
        preferred_phases=frozenset({CyclePhase.MIXED_SIGNALS}),
        value_weight=0.5,
        quality_weight=0.4,
        cyclicality_weight=0.1,
    ),
    CyclePhase.LATE_CONTRACTION: StrategyProfile(
        target=CyclicalityCategory.DEFENSIVE,
        secondary=CyclicalityCategory.DEFENSIVE,
        avoid=CyclicalityCategory.CYCLICAL,
        preferred_phases=frozenset({CyclePhase.LATE_CONTRACTION}),
        value_weight=0.6,
        quality_weight=0.3,
        cyclicality_weight=0.1,
    ),
    CyclePhase.EARLY_RECOVERY: StrategyProfile(
        target=CyclicalityCategory.CYCLICAL,
        secondary=CyclicalityCategory.HIGHLY_CYCLICAL,
        avoid=CyclicalityCategory.DEFENSIVE,
        preferred_phases=frozenset({CyclePhase.EARLY_RECOVERY, CyclePhase.LATE_CONTRACTION}),
        value_weight=0.5,
        quality_weight=0.2,
        cyclicality_weight=0.3,
    ),
})

DEFAULT_STRATEGY = StrategyProfile(
    target=CyclicalityCategory.MODERATE_CYCLICALITY,
    secondary=CyclicalityCategory.DEFENSIVE,
    avoid=CyclicalityCategory.HIGHLY_CYCLICAL,
    preferred_phases=frozenset({CyclePhase.MIXED_SIGNALS}),
    value_weight=0.4,
    quality_weight=0.4,
    cyclicality_weight=0.2,
)


def get_strategy_profile(phase: CyclePhase | str | None) -> StrategyProfile:
    """Selection profile for a market phase; DEFAULT_STRATEGY if unrecognised."""
    profile = STRATEGY_PROFILES.get(CyclePhase.parse(phase))
    if profile is None:
        logger.debug("No strategy profile for phase %r, using default", phase)
        return DEFAULT_STRATEGY
    return profile


# ---------------------------------------------------------------------------
# Portfolio recommendations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AssetAllocation:
    """Portfolio split in percentage points."""

    stocks: float
    bonds: float
    cash: float

    def __add__(self, other: AssetAllocation) -> AssetAllocation:
        return AssetAllocation(
            stocks=self.stocks + other.stocks,
            bonds=self.bonds + other.bonds,
            cash=self.cash + other.cash,
        )


@dataclass(frozen=True)
class BaseStrategy:
    allocation: AssetAllocation
    sector_focus: tuple[str, ...]
    factor_tilts: tuple[str, ...]
    risk_level: str
    description: str


@dataclass(frozen=True)
class OvervaluedAdjustment:
    allocation_delta: AssetAllocation
    emphasis: str
    additional_tactics: str


@dataclass(frozen=True)
class StrategyRecommendation:
    """Portfolio guidance for a market phase.

    ``overvalued_emphasis`` and ``additional_tactics`` are set only when the
    market is flagged overvalued, in which case ``allocation`` already
    includes the adjustment.
    """

    market_cycle: str | None
    is_overvalued: bool
    allocation: AssetAllocation
    sector_focus: tuple[str, ...]
    factor_tilts: tuple[str, ...]
    risk_level: str
    description: str
    overvalued_emphasis: str | None = None
    additional_tactics: str | None = None


BASE_STRATEGIES: MappingProxyType[CyclePhase, BaseStrategy] = MappingProxyType({
    CyclePhase.EARLY_EXPANSION: BaseStrategy(
        allocation=AssetAllocation(stocks=70, bonds=25, cash=5),
        sector_focus=("Energy", "Materials", "Industrials", "Consumer Discretionary"),
        factor_tilts=("Value", "Size", "Momentum"),
        risk_level="Above Average",
        description=(
            "Focus on economically sensitive sectors that benefit early in the "
            "economic cycle."
        ),
    ),
    CyclePhase.LATE_EXPANSION: BaseStrategy(
        allocation=AssetAllocation(stocks=60, bonds=30, cash=10),
        sector_focus=("Technology", "Financials", "Communication Services"),
        factor_tilts=("Momentum", "Quality", "Growth"),
        risk_level="Average",
        description=(
            "Begin to emphasize quality companies that can sustain growth as the "
            "cycle matures."
        ),
    ),
    CyclePhase.EARLY_CONTRACTION: BaseStrategy(
        allocation=AssetAllocation(stocks=50, bonds=40, cash=10),
        sector_focus=("Healthcare", "Consumer Staples", "Utilities"),
        factor_tilts=("Quality", "Minimum Volatility", "Dividend"),
        risk_level="Below Average",
        description=(
            "Shift toward defensive sectors that can maintain earnings during "
            "economic slowdowns."
        ),
    ),
    CyclePhase.LATE_CONTRACTION: BaseStrategy(
        allocation=AssetAllocation(stocks=40, bonds=45, cash=15),
        sector_focus=("Utilities", "Healthcare", "Consumer Staples"),
        factor_tilts=("Dividend", "Minimum Volatility", "Quality"),
        risk_level="Low",
        description=(
            "Emphasize capital preservation with stable dividend payers and "
            "reduced cyclical exposure."
        ),
    ),
    CyclePhase.EARLY_RECOVERY: BaseStrategy(
        allocation=AssetAllocation(stocks=55, bonds=35, cash=10),
        sector_focus=("Financials", "Consumer Discretionary", "Industrials"),
        factor_tilts=("Value", "Size", "Quality"),
        risk_level="Average",
        description=(
            "Begin adding quality cyclicals that have been overly punished and "
            "show signs of recovery."
        ),
    ),
})

OVERVALUED_ADJUSTMENTS: MappingProxyType[CyclePhase, OvervaluedAdjustment] = MappingProxyType({
    CyclePhase.EARLY_EXPANSION: OvervaluedAdjustment(
        allocation_delta=AssetAllocation(stocks=-5, bonds=0, cash=5),
        emphasis=(
            "Focus on relative value within cyclical sectors; avoid the most "
            "expensive stocks."
        ),
        additional_tactics=(
            "Consider value-oriented cyclicals rather than high-multiple growth "
            "stocks in sensitive sectors."
        ),
    ),
    CyclePhase.LATE_EXPANSION: OvervaluedAdjustment(
        allocation_delta=AssetAllocation(stocks=-10, bonds=5, cash=5),
        emphasis=(
            "Be especially selective on quality and valuation; reduce exposure "
            "to high-multiple growth stocks."
        ),
        additional_tactics=(
            "Prioritize companies with strong free cash flow and reasonable "
            "valuations relative to sector."
        ),
    ),
    CyclePhase.EARLY_CONTRACTION: OvervaluedAdjustment(
        allocation_delta=AssetAllocation(stocks=-10, bonds=5, cash=5),
        emphasis=(
            "Emphasize highest quality defensive names and consider cash as a "
            "strategic position."
        ),
        additional_tactics=(
            "Focus on companies with strong balance sheets and stable cash flows "
            "trading at reasonable valuations."
        ),
    ),
    CyclePhase.LATE_CONTRACTION: OvervaluedAdjustment(
        allocation_delta=AssetAllocation(stocks=-5, bonds=0, cash=5),
        emphasis=(
            "Build a watch list of quality cyclicals to purchase when they reach "
            "attractive valuations."
        ),
        additional_tactics=(
            "Maintain dry powder to deploy when opportunities arise in oversold "
            "quality cyclicals."
        ),
    ),
    CyclePhase.EARLY_RECOVERY: OvervaluedAdjustment(
        allocation_delta=AssetAllocation(stocks=-5, bonds=0, cash=5),
        emphasis=(
            "Focus on companies with strong balance sheets that can survive if "
            "recovery is slow."
        ),
        additional_tactics=(
            "Look for companies trading at discounts to tangible book value or "
            "with strong free cash flow yields."
        ),
    ),
})

# Phase used when the requested one has no recommendation.
FALLBACK_PHASE = CyclePhase.LATE_EXPANSION


def get_strategy_recommendations(
    market_cycle: CyclePhase | str | None, is_overvalued: bool = True
) -> StrategyRecommendation:
    """Portfolio recommendation for a market phase.

    Unrecognised phases use the Late Expansion entry of both tables. When
    ``is_overvalued`` is set, the phase's allocation delta is added field by
    field to the base allocation.

    Args:
        market_cycle: Market phase, as a CyclePhase or its string value.
        is_overvalued: Whether the market is considered overvalued.

    Returns:
        StrategyRecommendation echoing the requested phase.
    """
    phase = CyclePhase.parse(market_cycle)
    if phase not in BASE_STRATEGIES:
        logger.debug("No recommendation for %r, using %s", market_cycle, FALLBACK_PHASE)
        phase = FALLBACK_PHASE

    base = BASE_STRATEGIES[phase]
    requested = None if market_cycle is None else str(market_cycle)

    if not is_overvalued:
        return StrategyRecommendation(
            market_cycle=requested,
            is_overvalued=False,
            allocation=base.allocation,
            sector_focus=base.sector_focus,
            factor_tilts=base.factor_tilts,
            risk_level=base.risk_level,
            description=base.description,
        )

    adjustment = OVERVALUED_ADJUSTMENTS[phase]
    return StrategyRecommendation(
        market_cycle=requested,
        is_overvalued=True,
        allocation=base.allocation + adjustment.allocation_delta,
        sector_focus=base.sector_focus,
        factor_tilts=base.factor_tilts,
        risk_level=base.risk_level,
        description=base.description,
        overvalued_emphasis=adjustment.emphasis,
        additional_tactics=adjustment.additional_tactics,
    )
