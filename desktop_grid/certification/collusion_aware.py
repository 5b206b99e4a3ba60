"""Collusion aware result certification."""

from __future__ import annotations

import logging
from collections.abc import Hashable, Sequence
from typing import TYPE_CHECKING, Any

import numpy as np

from ..estimation import Estimator
from ..reputation import ReputationError
from .base import ResultCertificator
from .errors import ReputationDataError, UntrustworthyResultError
from .majority import AbsoluteMajorityResultCertificator
from .models import CertificationConfig, CertificationOutcome, RankedClass, ResultClass

if TYPE_CHECKING:
    from ..reputation import ReputationSystem
    from .partition import ResultKey

logger = logging.getLogger(__name__)


class CollusionAwareResultCertificator(ResultCertificator):
    """
    Certifies the result whose supporters are the least likely to collude.

    Instead of "largest group wins", each group of agreeing workers is
    ranked by the likelihood that it is honest while every other group
    colludes:

        rank(c) = (1 - L(c)) * prod(L(d) for every other group d)

    where L is the joint collusion likelihood from the reputation system.
    A large group of suspected colluders thus loses to a small group of
    workers that are unlikely to collude. Lone submissions have nothing to
    agree with and never compete.

    Ties within config.tie_tolerance go to the group whose estimate is the
    most confident, then the largest group, then the earliest submission.

    Usage:
        certificator = CollusionAwareResultCertificator(reputation_system)
        result = certificator.select_best_result(workers, results)
    """

    def __init__(
        self,
        reputation_system: ReputationSystem | None = None,
        config: CertificationConfig | None = None,
        fallback: ResultCertificator | None = None,
        result_key: ResultKey | None = None,
    ):
        """
        Initialize certificator.

        Args:
            reputation_system: Source of collusion likelihoods. Optimistic if None.
            config: Certification thresholds. Uses defaults if None.
            fallback: Certificator for select_less_worse_result. Absolute
                majority if None.
            result_key: Maps results to hashable keys for equality.
        """
        super().__init__(reputation_system, fallback=fallback, result_key=result_key)
        self._config = config or CertificationConfig()

    @property
    def config(self) -> CertificationConfig:
        """Certification thresholds."""
        return self._config

    def select_best_result(
        self,
        workers: Sequence[Hashable],
        results: Sequence[Any],
    ) -> Any:
        """
        Return the result whose supporters are the least likely to collude.

        Raises:
            InsufficientRedundancyError: If fewer than 2 results were submitted
            ReputationDataError: If a collusion likelihood is missing or too uncertain
            UntrustworthyResultError: If no group can be trusted with confidence
        """
        return self.certify(workers, results).result

    def certify(
        self,
        workers: Sequence[Hashable],
        results: Sequence[Any],
    ) -> CertificationOutcome:
        """
        Rank every group of agreeing workers and certify the best one.

        Args:
            workers: Workers, one per submission (unique)
            results: Submitted results, parallel to workers

        Returns:
            CertificationOutcome with the certified result and all ranks

        Raises:
            Same as select_best_result.
        """
        classes = self._partition(workers, results)

        competing = [c for c in classes if c.size >= 2]
        if not competing:
            raise UntrustworthyResultError(
                f"No two workers agree among {len(results)} submissions"
            )

        likelihoods = [self._collusion_likelihood(c) for c in competing]
        ranked = self._rank(competing, likelihoods)
        for entry in ranked:
            logger.debug(
                f"Rank for result {entry.result_class.result!r} "
                f"({entry.result_class.size} workers, collusion {entry.likelihood}) "
                f"is {entry.rank:.6f} in [{entry.rank_low:.6f}, {entry.rank_high:.6f}]"
            )

        selected = self._select(ranked)
        others = tuple(r for r in ranked if r is not selected)
        self._check_trustworthy(selected, others)

        logger.info(
            f"Certified result {selected.result_class.result!r} with rank "
            f"{selected.rank:.6f}: group of {selected.result_class.size} workers "
            f"out of {len(results)} submissions"
        )

        return CertificationOutcome(
            result=selected.result_class.result,
            selected=selected,
            ranked=(selected,) + others,
            submissions=len(results),
        )

    def _default_fallback(self) -> ResultCertificator:
        return AbsoluteMajorityResultCertificator(
            self._reputation_system, result_key=self._result_key
        )

    def _collusion_likelihood(self, result_class: ResultClass) -> Estimator:
        """Query and validate the joint collusion likelihood of a group."""
        try:
            estimator = self._reputation_system.joint_collusion_likelihood(
                result_class.worker_set
            )
        except ReputationError as e:
            raise ReputationDataError(
                f"Collusion likelihood unavailable for group of "
                f"{result_class.size} workers: {e}"
            ) from e

        if estimator is None:
            raise ReputationDataError(
                f"No collusion likelihood for group of {result_class.size} workers"
            )
        if not estimator.is_confident(self._config.max_error):
            raise ReputationDataError(
                f"Collusion likelihood {estimator} for group of {result_class.size} "
                f"workers exceeds max error {self._config.max_error}"
            )
        return estimator

    def _rank(
        self,
        competing: list[ResultClass],
        likelihoods: list[Estimator],
    ) -> list[RankedClass]:
        """Compute each group's rank and rank interval, best first."""
        estimates = np.array([e.estimate for e in likelihoods], dtype=np.float64)
        lows = np.array([e.low for e in likelihoods], dtype=np.float64)
        highs = np.array([e.high for e in likelihoods], dtype=np.float64)

        ranked = []
        for i, (result_class, likelihood) in enumerate(zip(competing, likelihoods)):
            ranked.append(
                RankedClass(
                    result_class=result_class,
                    likelihood=likelihood,
                    rank=float((1.0 - estimates[i]) * np.prod(np.delete(estimates, i))),
                    rank_low=float((1.0 - highs[i]) * np.prod(np.delete(lows, i))),
                    rank_high=float((1.0 - lows[i]) * np.prod(np.delete(highs, i))),
                )
            )

        return sorted(ranked, key=self._tie_break_key)

    def _select(self, ranked: list[RankedClass]) -> RankedClass:
        """Pick the best rank, breaking ties deterministically."""
        best_rank = max(r.rank for r in ranked)
        tied = [r for r in ranked if best_rank - r.rank <= self._config.tie_tolerance]
        if len(tied) > 1:
            logger.debug(f"{len(tied)} groups tied at rank {best_rank:.6f}")
        return min(tied, key=lambda r: self._tie_break_key(r)[1:])

    def _check_trustworthy(
        self,
        selected: RankedClass,
        others: tuple[RankedClass, ...],
    ) -> None:
        """Refuse to certify a group that cannot be trusted with confidence."""
        if selected.rank <= 0.0:
            raise UntrustworthyResultError(
                "No group is likely to be honest while the others collude"
            )

        if others and all(selected.overlaps(other) for other in others):
            raise UntrustworthyResultError(
                f"Best rank {selected.rank:.6f} cannot be told apart from the "
                f"other {len(others)} groups within reputation uncertainty"
            )

        if selected.likelihood.estimate > self._config.collusion_threshold:
            raise UntrustworthyResultError(
                f"Best group of {selected.result_class.size} workers has collusion "
                f"likelihood {selected.likelihood} above threshold "
                f"{self._config.collusion_threshold}"
            )

    @staticmethod
    def _tie_break_key(ranked: RankedClass) -> tuple[float, float, int, int]:
        return (
            -ranked.rank,
            ranked.likelihood.error,
            -ranked.result_class.size,
            ranked.result_class.first_index,
        )
