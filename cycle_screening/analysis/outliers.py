"""Cross-sectional outlier detection on a score column."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from scipy.stats import zscore  # type: ignore[import-untyped]

from cycle_screening.config import OutlierConfig

logger = logging.getLogger(__name__)


@dataclass
class OutlierReport:
    """Rows flagged as outliers plus the batch statistics used.

    Attributes:
        outliers: Flagged rows of the input with a signed ``z_score`` column.
        mean: Batch mean of the column, None if too few values.
        std_dev: Population std dev of the column, None if too few values.
        sample_size: Number of non-missing values examined.
    """

    outliers: pd.DataFrame = field(default_factory=pd.DataFrame)
    mean: float | None = None
    std_dev: float | None = None
    sample_size: int = 0


def detect_batch_outliers(
    frame: pd.DataFrame,
    column: str,
    config: OutlierConfig | None = None,
) -> OutlierReport:
    """Flag rows whose ``column`` lies more than ``z_threshold`` std devs from the mean.

    Missing values are ignored. Fewer than ``config.min_sample`` values, or
    a batch with zero dispersion, flags nothing.

    Raises:
        ValueError: If ``column`` is missing.
    """
    config = config or OutlierConfig()
    if column not in frame.columns:
        raise ValueError(f"Missing required columns: {[column]}")

    numeric = pd.to_numeric(frame[column], errors="coerce")
    present = numeric.notna().to_numpy()
    values = numeric[present]
    empty = frame.iloc[0:0].assign(z_score=pd.Series(dtype="float64"))

    if len(values) < config.min_sample:
        logger.debug(
            "Outliers: %d values in %s, need %d", len(values), column, config.min_sample,
        )
        return OutlierReport(outliers=empty, sample_size=len(values))

    mean = float(values.mean())
    std_dev = float(values.std(ddof=0))
    if std_dev == 0:
        return OutlierReport(
            outliers=empty, mean=mean, std_dev=std_dev, sample_size=len(values),
        )

    # Positional so duplicate index labels stay aligned.
    z_scores = np.full(len(frame), np.nan)
    z_scores[present] = zscore(values.to_numpy(dtype=float), ddof=0)
    flagged = present & (np.abs(np.nan_to_num(z_scores)) > config.z_threshold)

    outliers = frame.iloc[flagged].copy()
    outliers["z_score"] = z_scores[flagged]

    if not outliers.empty:
        logger.info(
            "Outliers: %d of %d rows beyond %.1f std devs in %s",
            len(outliers), len(values), config.z_threshold, column,
        )

    return OutlierReport(
        outliers=outliers, mean=mean, std_dev=std_dev, sample_size=len(values),
    )
