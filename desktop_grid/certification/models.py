"""Data models for result certification."""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass
from typing import Any

from ..estimation import Estimator


@dataclass(frozen=True)
class CertificationConfig:
    """Configuration for collusion aware certification."""

    max_error: float = 0.5
    """
    Maximal error of a joint collusion likelihood estimate.
    Less precise estimates make the certification fail.
    """

    collusion_threshold: float = 0.01
    """
    Maximal collusion likelihood of the certified group.
    A best-ranked group above this is still too suspicious to certify.
    """

    tie_tolerance: float = 1e-12
    """Ranks closer than this are considered equal."""

    def __post_init__(self) -> None:
        """Validate thresholds are probabilities."""
        if not 0.0 <= self.max_error <= 1.0:
            raise ValueError(f"max_error must be in [0, 1], got {self.max_error}")
        if not 0.0 <= self.collusion_threshold <= 1.0:
            raise ValueError(
                f"collusion_threshold must be in [0, 1], got {self.collusion_threshold}"
            )
        if self.tie_tolerance < 0.0:
            raise ValueError(
                f"tie_tolerance must be non-negative, got {self.tie_tolerance}"
            )


@dataclass(frozen=True)
class ResultClass:
    """
    Workers that submitted the same result.

    Immutable. Workers keep their submission order.
    """

    result: Any
    """Result as first submitted within the class."""

    workers: tuple[Hashable, ...]
    """Workers that submitted this result."""

    first_index: int
    """Position of the first submission of this result."""

    @property
    def size(self) -> int:
        """Number of workers agreeing on this result."""
        return len(self.workers)

    @property
    def worker_set(self) -> frozenset[Hashable]:
        """Workers as a set, as queried against the reputation system."""
        return frozenset(self.workers)

    def contains(self, worker: Hashable) -> bool:
        """Check if a worker is in this class."""
        return worker in self.workers


@dataclass(frozen=True)
class RankedClass:
    """A competing result class with its collusion likelihood and rank."""

    result_class: ResultClass
    likelihood: Estimator
    """Joint collusion likelihood of the class's workers."""

    rank: float
    """Likelihood that this class is honest while every other one colludes."""

    rank_low: float
    """Rank computed from the pessimistic end of every estimator."""

    rank_high: float
    """Rank computed from the optimistic end of every estimator."""

    def overlaps(self, other: RankedClass) -> bool:
        """Check if both rank intervals intersect."""
        return self.rank_low <= other.rank_high and other.rank_low <= self.rank_high

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "result": repr(self.result_class.result),
            "size": self.result_class.size,
            "likelihood": self.likelihood.to_dict(),
            "rank": round(self.rank, 6),
            "rank_low": round(self.rank_low, 6),
            "rank_high": round(self.rank_high, 6),
        }


@dataclass(frozen=True)
class CertificationOutcome:
    """Result of a successful certification."""

    result: Any
    """Certified result."""

    selected: RankedClass
    """Class of the certified result."""

    ranked: tuple[RankedClass, ...]
    """All competing classes, best first."""

    submissions: int
    """Total number of submitted results."""

    @property
    def supporters(self) -> tuple[Hashable, ...]:
        """Workers that submitted the certified result."""
        return self.selected.result_class.workers

    @property
    def was_minority(self) -> bool:
        """True if the certified result did not have the most supporters."""
        return any(
            r.result_class.size > self.selected.result_class.size for r in self.ranked
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "result": repr(self.result),
            "supporters": len(self.supporters),
            "submissions": self.submissions,
            "was_minority": self.was_minority,
            "ranked": [r.to_dict() for r in self.ranked],
        }
