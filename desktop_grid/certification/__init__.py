"""
Certification module for selecting the correct result of a redundant job.

This module provides:
- Partition of submissions into groups of identical results
- Collusion aware ranking of those groups
- Majority and random certificators as fallbacks

Usage:
    from desktop_grid.certification import (
        CertificationError,
        create_result_certificator,
    )

    certificator = create_result_certificator(reputation_system)
    try:
        result = certificator.select_best_result(workers, results)
    except CertificationError:
        # Schedule more replicas, or accept a less trusted answer
        result = certificator.select_less_worse_result(workers, results)
"""

from .base import ResultCertificator
from .collusion_aware import CollusionAwareResultCertificator
from .errors import (
    CertificationError,
    InsufficientRedundancyError,
    ReputationDataError,
    UntrustworthyResultError,
)
from .factory import create_result_certificator
from .majority import (
    AbsoluteMajorityResultCertificator,
    RandomResultCertificator,
    RelativeMajorityResultCertificator,
)
from .models import CertificationConfig, CertificationOutcome, RankedClass, ResultClass
from .partition import group_by_result, prediction_key

__all__ = [
    # Factory (main entry point)
    "create_result_certificator",
    # Certificators
    "ResultCertificator",
    "CollusionAwareResultCertificator",
    "AbsoluteMajorityResultCertificator",
    "RelativeMajorityResultCertificator",
    "RandomResultCertificator",
    # Config
    "CertificationConfig",
    # Models
    "ResultClass",
    "RankedClass",
    "CertificationOutcome",
    # Partition
    "group_by_result",
    "prediction_key",
    # Errors
    "CertificationError",
    "InsufficientRedundancyError",
    "ReputationDataError",
    "UntrustworthyResultError",
]
