"""Estimator value type shared by certification and grouping."""

from __future__ import annotations

from dataclasses import dataclass
from functools import total_ordering
from typing import Any

from .errors import OutOfRangeError


@total_ordering
@dataclass(frozen=True, eq=True)
class Estimator:
    """
    Probability-like value in [0, 1] with an uncertainty half-width.

    Immutable. Produced by the reputation system and only read here.

    Usage:
        Estimator(0.3)                    # confident point value
        Estimator(0.31, 0.2)              # 0.31 give or take 0.2
        Estimator.from_interval(0.0, 1.0) # nothing is known
    """

    estimate: float
    """Point value of the estimated probability."""

    error: float = 0.0
    """Half-width of the uncertainty interval. 0.0 = fully confident."""

    def __post_init__(self) -> None:
        """Validate estimate and error are within [0, 1]."""
        if not 0.0 <= self.estimate <= 1.0:
            raise OutOfRangeError(self.estimate, 0.0, 1.0)
        if not 0.0 <= self.error <= 1.0:
            raise OutOfRangeError(self.error, 0.0, 1.0)

    @classmethod
    def from_interval(cls, low: float, high: float) -> Estimator:
        """
        Build an estimator from a [low, high] interval.

        The estimate is the midpoint and the error the half-width, so a
        narrower interval gives a more confident estimator.
        """
        if not 0.0 <= low <= 1.0:
            raise OutOfRangeError(low, 0.0, 1.0)
        if not low <= high <= 1.0:
            raise OutOfRangeError(high, low, 1.0)
        return cls(estimate=(low + high) / 2.0, error=(high - low) / 2.0)

    @property
    def low(self) -> float:
        """Lower bound of the uncertainty interval (clipped to 0)."""
        return max(0.0, self.estimate - self.error)

    @property
    def high(self) -> float:
        """Upper bound of the uncertainty interval (clipped to 1)."""
        return min(1.0, self.estimate + self.error)

    @property
    def width(self) -> float:
        """Width of the clipped uncertainty interval."""
        return self.high - self.low

    @property
    def confidence(self) -> float:
        """1.0 for a point value, decreasing as the interval widens."""
        return 1.0 - self.error

    def is_confident(self, max_error: float) -> bool:
        """Check whether the estimate is precise enough to act upon."""
        return self.error <= max_error

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Estimator):
            return NotImplemented
        return (self.estimate, self.error) < (other.estimate, other.error)

    def __str__(self) -> str:
        return f"{self.estimate:.4f}±{self.error:.4f}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "estimate": round(self.estimate, 6),
            "error": round(self.error, 6),
            "low": round(self.low, 6),
            "high": round(self.high, 6),
        }
