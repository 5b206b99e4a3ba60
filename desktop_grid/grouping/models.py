"""Data models for resource grouping."""

from __future__ import annotations

import enum
import threading
from collections.abc import Hashable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any


class GroupState(enum.Enum):
    """Growth state of a worker's group."""

    UNASSIGNED = "unassigned"
    """No group was requested for the worker yet."""

    GROWING = "growing"
    """Group is below its target size."""

    STABLE = "stable"
    """Group reached its target size or ran out of candidates."""


@dataclass(frozen=True)
class GrouperConfig:
    """Configuration for greedy/graceful grouping."""

    min_greedy_size: int = 5
    """Smallest group size once collusion is not negligible."""

    max_error: float = 1.0 / 3.0
    """
    Maximal error of an estimate before it is treated as unknown.
    Applies to the colluders fraction and to pairwise likelihoods.
    """

    low_risk_threshold: float = 0.01
    """Colluders fraction upper bound under which groups stay singletons."""

    max_collusion_likelihood: float = 0.5
    """Candidates more likely than this to collude are never added."""

    def __post_init__(self) -> None:
        """Validate sizes and probabilities."""
        if self.min_greedy_size < 1:
            raise ValueError(
                f"min_greedy_size must be >= 1, got {self.min_greedy_size}"
            )
        for name in ("max_error", "low_risk_threshold", "max_collusion_likelihood"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}")


class Group:
    """
    Workers executing the same jobs redundantly.

    Owned by a grouper and keyed by its owner, the worker it was created
    for. Members keep their insertion order. Only grows, through the
    grouper's extension; readers get snapshots.
    """

    def __init__(self, owner: Hashable, members: Iterable[Hashable] = ()):
        """
        Initialize group.

        Args:
            owner: Worker the group was created for (always a member)
            members: Additional initial members
        """
        self._owner = owner
        self._members: dict[Hashable, None] = {owner: None}
        for member in members:
            self._members.setdefault(member, None)
        # Held by the grouper for a whole extension step
        self._lock = threading.RLock()

    @property
    def owner(self) -> Hashable:
        """Worker the group was created for."""
        return self._owner

    @property
    def members(self) -> tuple[Hashable, ...]:
        """Members in insertion order, owner first."""
        with self._lock:
            return tuple(self._members)

    @property
    def member_set(self) -> frozenset[Hashable]:
        """Members as a set."""
        with self._lock:
            return frozenset(self._members)

    @property
    def size(self) -> int:
        """Number of members."""
        return len(self._members)

    def contains(self, worker: Hashable) -> bool:
        """Check if a worker is in this group."""
        return worker in self._members

    def _add(self, worker: Hashable) -> None:
        with self._lock:
            self._members.setdefault(worker, None)

    def __len__(self) -> int:
        return self.size

    def __contains__(self, worker: object) -> bool:
        return worker in self._members

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self.members)

    def __repr__(self) -> str:
        return f"Group(owner={self._owner!r}, size={self.size})"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "owner": repr(self._owner),
            "members": [repr(m) for m in self.members],
            "size": self.size,
        }
