"""Accumulator for composite scores built from optional factors."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class FactorAccumulator:
    """Running (weighted score, factor count) pair.

    Factors whose inputs are missing are simply never added, so the
    average is taken over contributing factors only.
    """

    total: float = 0.0
    count: int = 0

    def add(self, score: float) -> None:
        self.total += score
        self.count += 1

    def add_ratio(self, ratio: float, weight: float, lower_is_better: bool) -> None:
        """Add ``weight`` scaled by a ratio to a reference, inverted if lower is better."""
        if lower_is_better:
            self.add(1 / ratio * weight)
        else:
            self.add(ratio * weight)

    def average(self, empty: float | None = 0.0, cap: float | None = None) -> float | None:
        """Mean over contributing factors.

        Args:
            empty: Value returned when no factor contributed.
            cap: Optional upper bound applied to the mean.
        """
        if self.count == 0:
            return empty
        result = self.total / self.count
        if cap is not None:
            result = min(cap, result)
        return result
