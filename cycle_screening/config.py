"""Engine configuration dataclasses."""

from __future__ import annotations

from dataclasses import dataclass

# Fundamentals analysed for cyclicality when the caller does not choose.
DEFAULT_CYCLICALITY_INDICATORS: tuple[str, ...] = ("earnings", "revenue", "margins")

# Multiples ranked against the stock's own history.
DEFAULT_HISTORICAL_METRICS: tuple[str, ...] = ("pe", "pb", "ev_to_ebitda")

DEFAULT_PEER_METRICS: tuple[str, ...] = (
    "pe",
    "pb",
    "ev_to_ebitda",
    "dividend_yield",
    "free_cash_flow_yield",
)

DEFAULT_MARKET_METRICS: tuple[str, ...] = ("pe", "pb", "dividend_yield")

# Metrics aggregated per sector and compared to the market.
SECTOR_METRICS: tuple[str, ...] = ("pe", "pb", "dividend_yield", "free_cash_flow_yield")


@dataclass
class CyclicalityConfig:
    """Cyclicality analysis parameters."""

    min_periods: int = 8
    phase_window: int = 8
    score_multiplier: float = 2.0
    early_expansion_peak_pct: float = 90.0
    early_contraction_peak_pct: float = 75.0

    def __post_init__(self) -> None:
        if self.min_periods < 2:
            raise ValueError(f"min_periods must be >= 2, got {self.min_periods}")
        if self.phase_window < 2 or self.phase_window % 2:
            raise ValueError(
                f"phase_window must be an even number >= 2, got {self.phase_window}"
            )


@dataclass
class SensitivityConfig:
    """Economic sensitivity parameters."""

    min_matched_points: int = 8
    max_lag: int = 4
    beta_multiplier: float = 20.0

    def __post_init__(self) -> None:
        if self.max_lag < 0:
            raise ValueError(f"max_lag must be >= 0, got {self.max_lag}")
        if self.min_matched_points < 2:
            raise ValueError(
                f"min_matched_points must be >= 2, got {self.min_matched_points}"
            )


@dataclass
class ValuationConfig:
    """Peer, sector and opportunity scoring parameters."""

    trim_proportion: float = 0.1
    sector_min_trim: int = 1
    attractiveness_threshold: float = 70.0
    top_per_sector: int = 3
    valuation_weight: float = 0.6
    quality_weight: float = 0.4

    def __post_init__(self) -> None:
        if not 0.0 <= self.trim_proportion < 0.5:
            raise ValueError(
                f"trim_proportion must be in [0, 0.5), got {self.trim_proportion}"
            )
        if self.sector_min_trim < 0:
            raise ValueError(
                f"sector_min_trim must be >= 0, got {self.sector_min_trim}"
            )
        if self.top_per_sector < 1:
            raise ValueError(
                f"top_per_sector must be >= 1, got {self.top_per_sector}"
            )


@dataclass
class OutlierConfig:
    """Batch outlier detection thresholds."""

    z_threshold: float = 2.0
    min_sample: int = 3

    def __post_init__(self) -> None:
        if self.z_threshold <= 0:
            raise ValueError(f"z_threshold must be > 0, got {self.z_threshold}")
        if self.min_sample < 2:
            raise ValueError(f"min_sample must be >= 2, got {self.min_sample}")
