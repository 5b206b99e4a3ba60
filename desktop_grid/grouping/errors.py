"""Custom exceptions for resource grouping."""

from __future__ import annotations

from collections.abc import Hashable


class GroupingError(Exception):
    """Base exception for resource grouping misuse."""

    pass


class UnknownWorkerError(GroupingError):
    """
    Raised when a grouper is asked about a worker it does not know.

    This indicates an integration bug:
    - The worker was never passed to add_all_workers
    - The worker was removed with remove_all_workers
    """

    def __init__(self, worker: Hashable):
        super().__init__(f"Worker {worker!r} is not registered in this grouper")
        self.worker = worker
