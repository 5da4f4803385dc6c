"""Statistical primitives shared by the cyclicality, sensitivity and valuation stages.

Every function is total: degenerate input (empty series, unequal lengths,
constant series, zero denominators) yields None instead of raising.
Variances are population variances (divide by n).
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def _is_constant(arr: np.ndarray) -> bool:
    # Compared exactly; a centred constant series can carry rounding residue.
    return bool(arr.max() == arr.min())


def mean(values: Sequence[float]) -> float | None:
    """Arithmetic mean, or None for an empty series."""
    if len(values) == 0:
        return None
    return float(np.mean(_as_array(values)))


def variance(values: Sequence[float]) -> float | None:
    """Population variance, or None for an empty series."""
    if len(values) == 0:
        return None
    return float(np.var(_as_array(values), ddof=0))


def std_dev(values: Sequence[float]) -> float | None:
    """Population standard deviation, or None for an empty series."""
    var = variance(values)
    if var is None:
        return None
    return math.sqrt(var)


def coefficient_of_variation(values: Sequence[float]) -> float | None:
    """Standard deviation as a percentage of the mean.

    Returns:
        std_dev / mean * 100, or None for an empty series or a zero mean.
    """
    if len(values) == 0:
        return None
    arr = _as_array(values)
    avg = float(arr.mean())
    if avg == 0:
        return None
    return float(arr.std(ddof=0)) / avg * 100


def correlation(
    series_a: Sequence[float], series_b: Sequence[float]
) -> float | None:
    """Pearson correlation of two paired series.

    Returns:
        Correlation in [-1, 1], or None if the lengths differ, the series
        are empty, or either series is constant.
    """
    if len(series_a) != len(series_b) or len(series_a) == 0:
        return None

    a = _as_array(series_a)
    b = _as_array(series_b)
    if _is_constant(a) or _is_constant(b):
        return None

    da = a - a.mean()
    db = b - b.mean()
    denominator = math.sqrt(float(np.dot(da, da)) * float(np.dot(db, db)))
    if denominator == 0:
        return None

    r = float(np.dot(da, db)) / denominator
    return max(-1.0, min(1.0, r))


def percentage_changes(
    dependent: Sequence[float], reference: Sequence[float]
) -> tuple[list[float], list[float]]:
    """Paired period-over-period changes of two aligned series.

    A pair is skipped when the previous value of either series is zero.

    Returns:
        (dependent_changes, reference_changes), equal length, as fractions.
    """
    dep_changes: list[float] = []
    ref_changes: list[float] = []
    for i in range(1, min(len(dependent), len(reference))):
        dep_prev = dependent[i - 1]
        ref_prev = reference[i - 1]
        if dep_prev == 0 or ref_prev == 0:
            continue
        dep_changes.append((dependent[i] - dep_prev) / dep_prev)
        ref_changes.append((reference[i] - ref_prev) / ref_prev)
    return dep_changes, ref_changes


def beta(dependent: Sequence[float], reference: Sequence[float]) -> float | None:
    """Sensitivity of the dependent series' percentage changes to the reference's.

    beta = cov(d_dependent, d_reference) / var(d_reference), population
    moments over paired percentage changes.

    Returns:
        Beta, or None if the lengths differ, fewer than two valid change
        pairs exist, or the reference changes are constant.
    """
    if len(dependent) != len(reference) or len(dependent) < 2:
        return None

    dep_changes, ref_changes = percentage_changes(dependent, reference)
    if len(ref_changes) < 2:
        return None

    dep = _as_array(dep_changes)
    ref = _as_array(ref_changes)
    if _is_constant(ref):
        return None

    ref_var = float(np.var(ref, ddof=0))
    if ref_var == 0:
        return None
    covariance = float(np.mean((dep - dep.mean()) * (ref - ref.mean())))
    return covariance / ref_var


def median(values: Sequence[float]) -> float | None:
    """Median of a sorted copy (mean of the middle pair for even lengths)."""
    if len(values) == 0:
        return None
    return float(np.median(np.sort(_as_array(values))))


def percentile_in_array(value: float, sorted_values: Sequence[float]) -> float | None:
    """Percentile rank of ``value`` within an ascending array.

    The rank is the index of the first element >= value, as a percentage of
    the array length; 100 when every element is smaller.

    Returns:
        Percentile in [0, 100], or None for an empty array.
    """
    n = len(sorted_values)
    if n == 0:
        return None
    position = int(np.searchsorted(_as_array(sorted_values), value, side="left"))
    if position >= n:
        return 100.0
    return position / n * 100


def trimmed_mean(
    values: Sequence[float], proportion: float = 0.1, min_trim: int = 0
) -> float | None:
    """Mean after dropping the extreme values at both ends.

    ``max(min_trim, floor(n * proportion))`` values are removed from each
    end of the sorted series.

    Returns:
        Trimmed mean, or None for an empty series or when the trim would
        remove every value.
    """
    n = len(values)
    if n == 0:
        return None
    ordered = np.sort(_as_array(values))
    trim = max(min_trim, math.floor(n * proportion))
    kept = ordered[trim : n - trim]
    if kept.size == 0:
        return None
    return float(kept.mean())


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves upward."""
    return math.floor(value + 0.5)
