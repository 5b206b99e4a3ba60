"""
Grouping module for building redundant groups of workers.

This module provides:
- Group sizing from the estimated fraction of colluders
- Greedy/graceful grouper growing groups one worker at a time
- Extension with the workers least likely to collude

Usage:
    from desktop_grid.grouping import create_resources_grouper

    grouper = create_resources_grouper(reputation_system, workers=pool)
    group = grouper.get_group(worker)

    # Or drive it until the group stops growing
    group = grouper.stabilize_group(worker)
"""

from .base import ResourcesGrouper
from .errors import GroupingError, UnknownWorkerError
from .factory import create_resources_grouper
from .greedy_graceful import GreedyGracefulResourcesGrouper
from .models import Group, GrouperConfig, GroupState
from .sizing import (
    MAX_FRACTION,
    MIN_MAJORITY,
    UNBOUNDED_GROUP_SIZE,
    min_size,
    non_colluders_majority,
)

__all__ = [
    # Factory (main entry point)
    "create_resources_grouper",
    # Groupers
    "ResourcesGrouper",
    "GreedyGracefulResourcesGrouper",
    # Models
    "Group",
    "GroupState",
    # Config
    "GrouperConfig",
    # Sizing
    "min_size",
    "non_colluders_majority",
    "MIN_MAJORITY",
    "MAX_FRACTION",
    "UNBOUNDED_GROUP_SIZE",
    # Errors
    "GroupingError",
    "UnknownWorkerError",
]
