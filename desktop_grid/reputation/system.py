"""Reputation system query contract and its default implementations."""

from __future__ import annotations

import logging
from collections.abc import Hashable, Mapping
from typing import Protocol, runtime_checkable

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from ..estimation import Estimator
from .errors import ReputationUnavailableError

logger = logging.getLogger(__name__)


@runtime_checkable
class ReputationSystem(Protocol):
    """
    Read-only view on the trust statistics of the worker population.

    Implementations must be safe for concurrent reads. Queries that cannot
    be answered raise ReputationError or a subclass: certificators turn it
    into ReputationDataError and groupers keep groups unchanged. Any other
    exception propagates to the caller.
    """

    def joint_collusion_likelihood(self, workers: frozenset[Hashable]) -> Estimator:
        """
        Likelihood that this exact set of workers returns the same wrong result.

        Raises:
            ReputationError: If no estimate can be given
        """
        ...

    def pairwise_collusion_likelihood(
        self,
        reference: Hashable,
        candidates: frozenset[Hashable],
    ) -> Mapping[Hashable, Estimator]:
        """
        Likelihood that each candidate returns the same wrong result as reference.

        Candidates without estimate may be left out of the mapping.

        Raises:
            ReputationError: If the query cannot be answered
        """
        ...

    def colluders_fraction(self) -> Estimator:
        """
        Estimated fraction of colluding workers in the whole population.

        Raises:
            ReputationError: If the query cannot be answered
        """
        ...


class OptimisticReputationSystem:
    """
    Reputation system assuming no collusion at all.

    Every query returns a confident zero. Used as the default collaborator
    and as the base class for test doubles overriding single queries.
    """

    def joint_collusion_likelihood(self, workers: frozenset[Hashable]) -> Estimator:
        return Estimator(0.0)

    def pairwise_collusion_likelihood(
        self,
        reference: Hashable,
        candidates: frozenset[Hashable],
    ) -> dict[Hashable, Estimator]:
        return {candidate: Estimator(0.0) for candidate in candidates}

    def colluders_fraction(self) -> Estimator:
        return Estimator(0.0)


class RetryingReputationSystem:
    """
    Wraps a reputation system and retries transient query failures.

    Only ReputationUnavailableError is retried, with exponential backoff
    and jitter. The last error is re-raised once attempts are exhausted.

    Usage:
        reputation = RetryingReputationSystem(remote_reputation, attempts=3)
        fraction = reputation.colluders_fraction()
    """

    def __init__(
        self,
        inner: ReputationSystem,
        attempts: int = 3,
        initial_wait: float = 0.1,
        jitter: float = 0.2,
    ):
        """
        Initialize wrapper.

        Args:
            inner: Reputation system answering the queries
            attempts: Maximum number of attempts per query (>= 1)
            initial_wait: First backoff delay in seconds
            jitter: Maximum random jitter added to each delay in seconds
        """
        if attempts < 1:
            raise ValueError(f"attempts must be >= 1, got {attempts}")
        self._inner = inner
        self._attempts = attempts
        self._initial_wait = initial_wait
        self._jitter = jitter

    @property
    def inner(self) -> ReputationSystem:
        """Wrapped reputation system."""
        return self._inner

    def _retrying(self) -> Retrying:
        return Retrying(
            wait=wait_exponential_jitter(
                initial=self._initial_wait, jitter=self._jitter
            ),
            stop=stop_after_attempt(self._attempts),
            retry=retry_if_exception_type(ReputationUnavailableError),
            reraise=True,
        )

    def _call(self, query: str, *args):
        for attempt in self._retrying():
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        f"Retrying reputation query {query} "
                        f"(attempt {attempt.retry_state.attempt_number}/{self._attempts})"
                    )
                return getattr(self._inner, query)(*args)

    def joint_collusion_likelihood(self, workers: frozenset[Hashable]) -> Estimator:
        return self._call("joint_collusion_likelihood", workers)

    def pairwise_collusion_likelihood(
        self,
        reference: Hashable,
        candidates: frozenset[Hashable],
    ) -> Mapping[Hashable, Estimator]:
        return self._call("pairwise_collusion_likelihood", reference, candidates)

    def colluders_fraction(self) -> Estimator:
        return self._call("colluders_fraction")
