"""Record adapters between engine dataclasses and pandas frames.

Column names match the dataclass field names. All adapters are pure; file
and network access belong to the caller.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import asdict, fields

import pandas as pd

from cycle_screening.data.models import (
    EconomicIndicatorPoint,
    FinancialPeriod,
    MarketData,
    StockSnapshot,
)

logger = logging.getLogger(__name__)

__all__ = [
    "EconomicIndicatorPoint",
    "FinancialPeriod",
    "MarketData",
    "StockSnapshot",
    "history_from_frame",
    "history_to_frame",
    "indicator_series_from_frame",
    "market_from_mapping",
    "snapshots_from_frame",
    "snapshots_to_frame",
]

_PERIOD_COLUMNS = [f.name for f in fields(FinancialPeriod)]
_SNAPSHOT_COLUMNS = [f.name for f in fields(StockSnapshot)]


def _optional_float(value: object) -> float | None:
    """Convert a cell to float, mapping NaN, None and blanks to None."""
    if value is None:
        return None
    try:
        f = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if math.isnan(f):
        return None
    return f


def _optional_str(value: object) -> str | None:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    return str(value)


def history_to_frame(history: Sequence[FinancialPeriod]) -> pd.DataFrame:
    """One row per period, in the order given (most recent first)."""
    if not history:
        return pd.DataFrame(columns=_PERIOD_COLUMNS)
    return pd.DataFrame([asdict(p) for p in history], columns=_PERIOD_COLUMNS)


def history_from_frame(frame: pd.DataFrame) -> list[FinancialPeriod]:
    """Build a period history from a frame with a ``date`` column.

    Numeric columns that are absent are treated as not reported. Row order
    is preserved.

    Raises:
        ValueError: If the ``date`` column is missing.
    """
    if "date" not in frame.columns:
        raise ValueError("Missing required columns: ['date']")

    numeric = [c for c in _PERIOD_COLUMNS if c != "date"]
    periods: list[FinancialPeriod] = []
    for row in frame.to_dict(orient="records"):
        periods.append(
            FinancialPeriod(
                date=str(row["date"]),
                **{c: _optional_float(row.get(c)) for c in numeric},
            )
        )
    return periods


def indicator_series_from_frame(frame: pd.DataFrame) -> list[EconomicIndicatorPoint]:
    """Build an indicator series from ``date`` and ``value`` columns.

    Rows without a numeric value are dropped.

    Raises:
        ValueError: If either column is missing.
    """
    missing = {"date", "value"} - set(frame.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}")

    points: list[EconomicIndicatorPoint] = []
    for date, value in zip(frame["date"], frame["value"]):
        v = _optional_float(value)
        if v is None:
            continue
        points.append(EconomicIndicatorPoint(date=str(date), value=v))

    dropped = len(frame) - len(points)
    if dropped:
        logger.debug("Dropped %d indicator rows without a value", dropped)
    return points


def snapshots_from_frame(frame: pd.DataFrame) -> list[StockSnapshot]:
    """Build stock snapshots from a frame with a ``symbol`` column.

    Raises:
        ValueError: If the ``symbol`` column is missing.
    """
    if "symbol" not in frame.columns:
        raise ValueError("Missing required columns: ['symbol']")

    numeric = [c for c in _SNAPSHOT_COLUMNS if c not in ("symbol", "sector")]
    stocks: list[StockSnapshot] = []
    for row in frame.to_dict(orient="records"):
        stocks.append(
            StockSnapshot(
                symbol=str(row["symbol"]),
                sector=_optional_str(row.get("sector")),
                **{c: _optional_float(row.get(c)) for c in numeric},
            )
        )
    return stocks


def snapshots_to_frame(stocks: Iterable[StockSnapshot]) -> pd.DataFrame:
    """One row per stock, indexed by symbol."""
    rows = [asdict(s) for s in stocks]
    if not rows:
        return pd.DataFrame(columns=_SNAPSHOT_COLUMNS).set_index("symbol")
    return pd.DataFrame(rows, columns=_SNAPSHOT_COLUMNS).set_index("symbol")


def market_from_mapping(values: dict[str, object]) -> MarketData:
    """Build market reference data, ignoring unknown keys."""
    known = {f.name for f in fields(MarketData)}
    return MarketData(
        **{k: _optional_float(v) for k, v in values.items() if k in known}
    )
