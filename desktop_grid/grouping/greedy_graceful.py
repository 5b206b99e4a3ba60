"""Greedy/graceful grouping driven by the estimated fraction of colluders."""

from __future__ import annotations

import logging
from collections.abc import Hashable
from typing import TYPE_CHECKING

from ..reputation import ReputationError
from .base import ResourcesGrouper
from .errors import UnknownWorkerError
from .models import Group, GrouperConfig, GroupState
from .sizing import min_size

if TYPE_CHECKING:
    from ..reputation import ReputationSystem

logger = logging.getLogger(__name__)


class GreedyGracefulResourcesGrouper(ResourcesGrouper):
    """
    Sizes groups after the estimated fraction of colluders.

    Two policies:
    1. Graceful: collusion is negligible, every worker works alone
    2. Greedy: groups are sized so that colluders stay a minority
       (at least min_greedy_size, see min_size)

    Groups grow one worker per call toward the target size and never
    shrink. New members are the registered workers least likely to
    collude with the group's owner, as long as that likelihood is known
    with enough confidence.

    Usage:
        grouper = GreedyGracefulResourcesGrouper(reputation_system)
        grouper.add_all_workers(workers)
        group = grouper.get_group(worker)  # one growth step
        group = grouper.stabilize_group(worker)  # up to the target size
    """

    def __init__(
        self,
        reputation_system: ReputationSystem | None = None,
        config: GrouperConfig | None = None,
    ):
        """
        Initialize grouper.

        Args:
            reputation_system: Source of trust statistics. Optimistic if None.
            config: Grouping thresholds. Uses defaults if None.
        """
        super().__init__(reputation_system)
        self._config = config or GrouperConfig()
        self._groups: dict[Hashable, Group] = {}

    @property
    def config(self) -> GrouperConfig:
        """Grouping thresholds."""
        return self._config

    def get_group(self, worker: Hashable) -> Group:
        """
        Return the worker's group after at most one growth step.

        The group is created as a singleton on the first request. Call
        repeatedly (or use stabilize_group) to reach the target size.

        Raises:
            UnknownWorkerError: If the worker is not registered
        """
        group = self._group_for(worker)
        with group._lock:
            target = self.target_size(group)
            if target is not None and group.size < target:
                self._extend(group)
        return group

    def get_group_extension(self, group: Group) -> Group:
        """
        Add the registered worker least likely to collude with the group.

        Only candidates whose likelihood is confident and below
        max_collusion_likelihood qualify. Without any, the group is
        returned unchanged.
        """
        with group._lock:
            return self._extend(group)

    def stabilize_group(self, worker: Hashable, max_steps: int | None = None) -> Group:
        """
        Grow the worker's group until its size stops changing.

        Args:
            worker: Registered worker
            max_steps: Maximum number of growth steps. Unbounded if None.

        Raises:
            UnknownWorkerError: If the worker is not registered
        """
        group = self._group_for(worker)
        previous = None
        steps = 0
        while max_steps is None or steps < max_steps:
            group = self.get_group(worker)
            steps += 1
            if group.size == previous:
                break
            previous = group.size
        logger.debug(f"Group of {worker!r} settled at {group.size} after {steps} steps")
        return group

    def group_state(self, worker: Hashable) -> GroupState:
        """
        Return the growth state of the worker's group.

        Raises:
            UnknownWorkerError: If the worker is not registered
        """
        self._require_registered(worker)
        with self._registry_lock:
            group = self._groups.get(worker)
        if group is None:
            return GroupState.UNASSIGNED

        with group._lock:
            target = self.target_size(group)
            if target is not None and group.size >= target:
                return GroupState.STABLE
            if not any(w not in group for w in self._pool()):
                return GroupState.STABLE
        return GroupState.GROWING

    def target_size(self, group: Group | None = None) -> int | None:
        """
        Compute the size groups should reach under the current reputation.

        Args:
            group: Group being grown. Its members count as available
                workers even if they left the pool.

        Returns:
            Target size capped at the available workers, or None when the
            colluders fraction cannot be queried.
        """
        try:
            fraction = self._reputation_system.colluders_fraction()
        except ReputationError as e:
            logger.warning(f"Colluders fraction unavailable, groups kept as is: {e}")
            return None
        if fraction is None:
            logger.warning("No colluders fraction estimate, groups kept as is")
            return None

        available = set(self._pool())
        if group is not None:
            available |= group.member_set

        if fraction.high <= self._config.low_risk_threshold:
            logger.debug(f"Graceful policy is chosen (colluders fraction {fraction})")
            target = 1
        elif not fraction.is_confident(self._config.max_error):
            logger.debug(
                f"Colluders fraction {fraction} too uncertain, "
                f"grouping all {len(available)} workers"
            )
            target = len(available)
        else:
            target = max(self._config.min_greedy_size, min_size(fraction.estimate))
            logger.debug(
                f"Greedy policy is chosen (colluders fraction {fraction}, "
                f"target {target})"
            )

        return max(1, min(target, len(available)))

    def _group_for(self, worker: Hashable) -> Group:
        """Return the worker's group, creating the singleton if needed."""
        with self._registry_lock:
            if worker not in self._workers:
                raise UnknownWorkerError(worker)
            group = self._groups.get(worker)
            if group is None:
                group = Group(worker)
                self._groups[worker] = group
                logger.debug(f"Created singleton group for {worker!r}")
        return group

    def _extend(self, group: Group) -> Group:
        """Add the best qualifying candidate. Caller holds the group lock."""
        candidates = tuple(w for w in self._pool() if w not in group)
        if not candidates:
            logger.debug(f"No candidate left to extend {group!r}")
            return group

        try:
            likelihoods = self._reputation_system.pairwise_collusion_likelihood(
                group.owner, frozenset(candidates)
            )
        except ReputationError as e:
            logger.warning(f"Pairwise collusion unavailable, {group!r} unchanged: {e}")
            return group
        likelihoods = likelihoods or {}

        selected = None
        best_key = None
        for index, candidate in enumerate(candidates):
            estimator = likelihoods.get(candidate)
            if estimator is None:
                continue
            if not estimator.is_confident(self._config.max_error):
                continue
            if estimator.estimate > self._config.max_collusion_likelihood:
                continue
            key = (estimator.estimate, estimator.error, index)
            if best_key is None or key < best_key:
                selected, best_key = candidate, key

        if selected is None:
            logger.debug(
                f"No trustworthy candidate among {len(candidates)} to extend {group!r}"
            )
            return group

        group._add(selected)
        logger.debug(
            f"Worker {selected!r} is selected in extension of {group!r} "
            f"with collusion {likelihoods[selected]}"
        )
        return group
