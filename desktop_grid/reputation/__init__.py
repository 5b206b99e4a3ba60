"""
Reputation module: the query contract this package consumes.

The estimation of trust statistics lives outside this package. This module
only defines what is asked of it:
- Joint collusion likelihood of a worker set
- Pairwise collusion likelihood between a worker and candidates
- Population-wide colluders fraction

Usage:
    from desktop_grid.reputation import (
        OptimisticReputationSystem,
        RetryingReputationSystem,
    )

    reputation = RetryingReputationSystem(OptimisticReputationSystem())
    fraction = reputation.colluders_fraction()
"""

from .errors import (
    EstimateUnavailableError,
    ReputationError,
    ReputationUnavailableError,
)
from .system import (
    OptimisticReputationSystem,
    ReputationSystem,
    RetryingReputationSystem,
)

__all__ = [
    # Contract
    "ReputationSystem",
    # Implementations
    "OptimisticReputationSystem",
    "RetryingReputationSystem",
    # Errors
    "ReputationError",
    "ReputationUnavailableError",
    "EstimateUnavailableError",
]
