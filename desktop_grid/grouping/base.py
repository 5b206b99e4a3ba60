"""Common contract of resource groupers."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Hashable, Iterable

from ..reputation import OptimisticReputationSystem, ReputationSystem
from .errors import UnknownWorkerError
from .models import Group

logger = logging.getLogger(__name__)


class ResourcesGrouper(ABC):
    """
    Builds groups of workers executing the same jobs redundantly.

    Keeps the pool of registered workers in registration order. The
    registry lock only guards lookups and inserts; growing a group is
    synchronized on that group alone.
    """

    def __init__(self, reputation_system: ReputationSystem | None = None):
        """
        Initialize grouper.

        Args:
            reputation_system: Source of trust statistics. Optimistic if None.
        """
        if reputation_system is None:
            reputation_system = OptimisticReputationSystem()
        self._reputation_system = reputation_system
        self._registry_lock = threading.Lock()
        self._workers: dict[Hashable, None] = {}

    @property
    def reputation_system(self) -> ReputationSystem:
        """Reputation system backing the decisions."""
        return self._reputation_system

    def set_reputation_system(self, reputation_system: ReputationSystem) -> None:
        """Replace the reputation system used for later decisions."""
        self._reputation_system = reputation_system

    @property
    def registered_workers(self) -> frozenset[Hashable]:
        """Snapshot of the registered workers."""
        with self._registry_lock:
            return frozenset(self._workers)

    def is_registered(self, worker: Hashable) -> bool:
        """Check if a worker can be grouped."""
        with self._registry_lock:
            return worker in self._workers

    def add_all_workers(self, workers: Iterable[Hashable]) -> None:
        """
        Register workers as eligible for grouping.

        Idempotent: already registered workers keep their position.
        """
        with self._registry_lock:
            before = len(self._workers)
            for worker in workers:
                self._workers.setdefault(worker, None)
            added = len(self._workers) - before
        if added:
            logger.debug(f"Registered {added} workers ({before + added} in pool)")

    def remove_all_workers(self, workers: Iterable[Hashable]) -> None:
        """
        Stop grouping these workers.

        They are no longer candidates for extensions. Existing groups keep
        them as members since groups never shrink.
        """
        with self._registry_lock:
            removed = 0
            for worker in workers:
                if worker in self._workers:
                    del self._workers[worker]
                    removed += 1
        if removed:
            logger.debug(f"Removed {removed} workers from pool")

    def _pool(self) -> tuple[Hashable, ...]:
        """Registered workers in registration order."""
        with self._registry_lock:
            return tuple(self._workers)

    def _require_registered(self, worker: Hashable) -> None:
        if not self.is_registered(worker):
            raise UnknownWorkerError(worker)

    @abstractmethod
    def get_group(self, worker: Hashable) -> Group:
        """
        Return the group of the given worker.

        Raises:
            UnknownWorkerError: If the worker is not registered
        """

    @abstractmethod
    def get_group_extension(self, group: Group) -> Group:
        """Try to add one worker to the group and return it."""
