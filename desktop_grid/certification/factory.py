"""Factory functions for creating result certificators."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..reputation import OptimisticReputationSystem, RetryingReputationSystem
from .collusion_aware import CollusionAwareResultCertificator
from .models import CertificationConfig
from .partition import prediction_key

if TYPE_CHECKING:
    from ..reputation import ReputationSystem


def create_result_certificator(
    reputation_system: ReputationSystem | None = None,
    *,
    max_error: float = 0.5,
    collusion_threshold: float = 0.01,
    retry_attempts: int = 1,
    similarity_threshold: float | None = None,
) -> CollusionAwareResultCertificator:
    """
    Create a collusion aware certificator with custom configuration.

    This is the main entry point for the certification module.

    Args:
        reputation_system: Source of collusion likelihoods. Optimistic if None.
        max_error: Maximal error of a collusion likelihood estimate.
        collusion_threshold: Maximal collusion likelihood of the certified group.
        retry_attempts: Attempts per reputation query. Values above 1 wrap the
            reputation system to retry transient failures.
        similarity_threshold: Compare numeric array results at this precision.
            None compares results by equality.

    Returns:
        Configured CollusionAwareResultCertificator ready to use

    Example:
        certificator = create_result_certificator(reputation, retry_attempts=3)
        result = certificator.select_best_result(workers, results)

        # Or for numpy predictions:
        certificator = create_result_certificator(similarity_threshold=1e-6)
    """
    if reputation_system is None:
        reputation_system = OptimisticReputationSystem()
    if retry_attempts > 1:
        reputation_system = RetryingReputationSystem(
            reputation_system, attempts=retry_attempts
        )

    config = CertificationConfig(
        max_error=max_error,
        collusion_threshold=collusion_threshold,
    )
    result_key = (
        prediction_key(similarity_threshold)
        if similarity_threshold is not None
        else None
    )

    return CollusionAwareResultCertificator(
        reputation_system, config=config, result_key=result_key
    )
