"""Majority based certificators used as fallbacks."""

from __future__ import annotations

import logging
import random
from collections.abc import Hashable, Sequence
from typing import TYPE_CHECKING, Any

from .base import ResultCertificator
from .errors import InsufficientRedundancyError, UntrustworthyResultError

if TYPE_CHECKING:
    from ..reputation import ReputationSystem
    from .partition import ResultKey

logger = logging.getLogger(__name__)


class AbsoluteMajorityResultCertificator(ResultCertificator):
    """
    Certifies the result submitted by more than half of the workers.

    Falls back to RelativeMajorityResultCertificator.
    """

    def select_best_result(
        self,
        workers: Sequence[Hashable],
        results: Sequence[Any],
    ) -> Any:
        classes = self._partition(workers, results)
        largest = max(classes, key=lambda c: (c.size, -c.first_index))

        if 2 * largest.size <= len(results):
            raise UntrustworthyResultError(
                f"No absolute majority: largest group has {largest.size} "
                f"of {len(results)} workers"
            )

        logger.debug(
            f"Result {largest.result!r} is selected with an absolute majority "
            f"of {largest.size} workers"
        )
        return largest.result

    def _default_fallback(self) -> ResultCertificator:
        return RelativeMajorityResultCertificator(
            self._reputation_system, result_key=self._result_key
        )


class RelativeMajorityResultCertificator(ResultCertificator):
    """
    Certifies the result submitted by the largest group (at least two workers).

    Among equally large groups the earliest submitted result wins.
    Falls back to RandomResultCertificator.
    """

    def select_best_result(
        self,
        workers: Sequence[Hashable],
        results: Sequence[Any],
    ) -> Any:
        classes = self._partition(workers, results)
        largest = max(classes, key=lambda c: (c.size, -c.first_index))

        if largest.size < 2:
            raise UntrustworthyResultError(
                f"No two workers agree among {len(results)} submissions"
            )

        logger.debug(
            f"Result {largest.result!r} is selected with a relative majority "
            f"of {largest.size} workers"
        )
        return largest.result

    def _default_fallback(self) -> ResultCertificator:
        return RandomResultCertificator(
            self._reputation_system, result_key=self._result_key
        )


class RandomResultCertificator(ResultCertificator):
    """
    Selects one of the submitted results uniformly at random.

    Baseline policy and last resort of every fallback chain. Accepts a
    single submission since nothing is cross-checked anyway.
    """

    def __init__(
        self,
        reputation_system: ReputationSystem | None = None,
        rng: random.Random | None = None,
        result_key: ResultKey | None = None,
    ):
        """
        Initialize certificator.

        Args:
            reputation_system: Unused by this policy, kept for substitution.
            rng: Random generator. Pass a seeded one for reproducible picks.
            result_key: Unused by this policy, kept for substitution.
        """
        super().__init__(reputation_system, result_key=result_key)
        self._rng = rng or random.Random()

    def select_best_result(
        self,
        workers: Sequence[Hashable],
        results: Sequence[Any],
    ) -> Any:
        if len(workers) != len(results):
            raise ValueError(
                f"Submission length mismatch: workers={len(workers)}, "
                f"results={len(results)}"
            )
        if not results:
            raise InsufficientRedundancyError("No result was submitted", submissions=0)

        index = self._rng.randrange(len(results))
        logger.debug(f"Result {results[index]!r} of worker {workers[index]!r} is drawn")
        return results[index]
