"""Factory functions for creating resource groupers."""

from __future__ import annotations

from collections.abc import Hashable, Iterable
from typing import TYPE_CHECKING

from ..reputation import OptimisticReputationSystem, RetryingReputationSystem
from .greedy_graceful import GreedyGracefulResourcesGrouper
from .models import GrouperConfig

if TYPE_CHECKING:
    from ..reputation import ReputationSystem


def create_resources_grouper(
    reputation_system: ReputationSystem | None = None,
    workers: Iterable[Hashable] = (),
    *,
    min_greedy_size: int = 5,
    max_error: float = 1.0 / 3.0,
    low_risk_threshold: float = 0.01,
    max_collusion_likelihood: float = 0.5,
    retry_attempts: int = 1,
) -> GreedyGracefulResourcesGrouper:
    """
    Create a greedy/graceful grouper with custom configuration.

    This is the main entry point for the grouping module.

    Args:
        reputation_system: Source of trust statistics. Optimistic if None.
        workers: Workers to register right away.
        min_greedy_size: Smallest group size once collusion is not negligible.
        max_error: Maximal error of an estimate before it counts as unknown.
        low_risk_threshold: Colluders fraction under which groups stay singletons.
        max_collusion_likelihood: Candidates above this are never added.
        retry_attempts: Attempts per reputation query. Values above 1 wrap the
            reputation system to retry transient failures.

    Returns:
        Configured GreedyGracefulResourcesGrouper ready to use

    Example:
        grouper = create_resources_grouper(reputation, workers=pool)
        group = grouper.stabilize_group(worker)
    """
    if reputation_system is None:
        reputation_system = OptimisticReputationSystem()
    if retry_attempts > 1:
        reputation_system = RetryingReputationSystem(
            reputation_system, attempts=retry_attempts
        )

    config = GrouperConfig(
        min_greedy_size=min_greedy_size,
        max_error=max_error,
        low_risk_threshold=low_risk_threshold,
        max_collusion_likelihood=max_collusion_likelihood,
    )
    grouper = GreedyGracefulResourcesGrouper(reputation_system, config=config)
    grouper.add_all_workers(workers)

    return grouper
