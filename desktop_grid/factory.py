"""Factory wiring both collusion components from one configuration."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Hashable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .certification import CollusionAwareResultCertificator
from .config import certification_config_from, config_to_dict, grouper_config_from
from .grouping import GreedyGracefulResourcesGrouper
from .reputation import OptimisticReputationSystem, RetryingReputationSystem

if TYPE_CHECKING:
    from .reputation import ReputationSystem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CollusionComponents:
    """Certificator and grouper sharing one reputation system."""

    certificator: CollusionAwareResultCertificator
    grouper: GreedyGracefulResourcesGrouper
    reputation_system: ReputationSystem


def create_components(
    config: argparse.Namespace,
    reputation_system: ReputationSystem | None = None,
    workers: Iterable[Hashable] = (),
) -> CollusionComponents:
    """
    Create the certificator and the grouper from parsed configuration.

    Args:
        config: Namespace returned by config.get_config()
        reputation_system: Source of trust statistics. Optimistic if None.
        workers: Workers to register in the grouper right away.

    Returns:
        CollusionComponents sharing the (possibly retrying) reputation system
    """
    if reputation_system is None:
        reputation_system = OptimisticReputationSystem()
    if config.reputation_retry_attempts > 1:
        reputation_system = RetryingReputationSystem(
            reputation_system, attempts=config.reputation_retry_attempts
        )

    certificator = CollusionAwareResultCertificator(
        reputation_system, config=certification_config_from(config)
    )
    grouper = GreedyGracefulResourcesGrouper(
        reputation_system, config=grouper_config_from(config)
    )
    grouper.add_all_workers(workers)

    logger.info(f"Collusion components created with {config_to_dict(config)}")

    return CollusionComponents(
        certificator=certificator,
        grouper=grouper,
        reputation_system=reputation_system,
    )
