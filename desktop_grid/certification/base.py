"""Common contract of result certificators."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Hashable, Sequence
from typing import Any

from ..reputation import OptimisticReputationSystem, ReputationSystem
from .errors import CertificationError, InsufficientRedundancyError
from .models import ResultClass
from .partition import ResultKey, group_by_result

logger = logging.getLogger(__name__)


class ResultCertificator(ABC):
    """
    Selects one result among the results submitted for the same job.

    Subclasses implement a certification policy in select_best_result.
    select_less_worse_result never fails on a non-empty submission set:
    it falls back to a more permissive certificator instead.
    """

    def __init__(
        self,
        reputation_system: ReputationSystem | None = None,
        fallback: ResultCertificator | None = None,
        result_key: ResultKey | None = None,
    ):
        """
        Initialize certificator.

        Args:
            reputation_system: Source of trust statistics. Optimistic if None.
            fallback: Certificator used by select_less_worse_result when this
                one cannot certify. Uses the policy's default chain if None.
            result_key: Maps results to hashable keys for equality. Results
                are compared directly if None.
        """
        if reputation_system is None:
            reputation_system = OptimisticReputationSystem()
        self._reputation_system = reputation_system
        self._fallback = fallback
        self._result_key = result_key

    @property
    def reputation_system(self) -> ReputationSystem:
        """Reputation system backing the decisions."""
        return self._reputation_system

    def set_reputation_system(self, reputation_system: ReputationSystem) -> None:
        """Replace the reputation system used for later decisions."""
        self._reputation_system = reputation_system
        if self._fallback is not None:
            self._fallback.set_reputation_system(reputation_system)

    @property
    def fallback(self) -> ResultCertificator | None:
        """Next certificator of the fallback chain (None for the last one)."""
        if self._fallback is None:
            self._fallback = self._default_fallback()
        return self._fallback

    @abstractmethod
    def select_best_result(
        self,
        workers: Sequence[Hashable],
        results: Sequence[Any],
    ) -> Any:
        """
        Return the result certified by this policy.

        Raises:
            CertificationError: If no result can be certified
            ValueError: If workers and results have different lengths
        """

    def select_less_worse_result(
        self,
        workers: Sequence[Hashable],
        results: Sequence[Any],
    ) -> Any:
        """
        Return a result in every case, the less worse one.

        Tries this policy first, then each certificator of the fallback chain.

        Raises:
            InsufficientRedundancyError: If no result was submitted at all
        """
        try:
            return self.select_best_result(workers, results)
        except CertificationError as e:
            fallback = self.fallback
            if fallback is None:
                raise
            logger.info(
                f"{type(self).__name__} could not certify ({e}), "
                f"falling back to {type(fallback).__name__}"
            )
        return fallback.select_less_worse_result(workers, results)

    def _default_fallback(self) -> ResultCertificator | None:
        """Certificator to fall back to when none was given."""
        return None

    def _partition(
        self,
        workers: Sequence[Hashable],
        results: Sequence[Any],
    ) -> list[ResultClass]:
        """Validate submissions and group workers by result."""
        if len(workers) != len(results):
            raise ValueError(
                f"Submission length mismatch: workers={len(workers)}, "
                f"results={len(results)}"
            )
        if len(results) < 2:
            raise InsufficientRedundancyError(
                f"Need at least 2 submissions to cross-check, got {len(results)}",
                submissions=len(results),
            )

        classes = group_by_result(workers, results, key=self._result_key)
        logger.debug(
            f"{len(classes)} distinct results among {len(results)} submissions: "
            f"sizes={[c.size for c in classes]}"
        )
        return classes
