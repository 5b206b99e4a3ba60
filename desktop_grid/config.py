"""
Collusion policy configuration management.

Precedence, highest first: command line, environment variables (a .env
file is loaded), policy YAML file.
"""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .certification import CertificationConfig
from .grouping import GrouperConfig

DEFAULT_POLICY_PATH = Path(__file__).parent / "policy.yaml"

_REQUIRED_KEYS = {
    "certification": {"max_error", "collusion_threshold"},
    "grouping": {
        "min_greedy_size",
        "max_error",
        "low_risk_threshold",
        "max_collusion_likelihood",
    },
    "reputation": {"retry_attempts"},
}


class ConfigError(Exception):
    """
    Raised when the collusion policy cannot be loaded.

    This can happen when:
    - The policy file does not exist
    - The policy file is not valid YAML
    - A section or key is missing
    - A value is out of its range
    """

    pass


def load_policy(path: Path | None = None) -> dict[str, dict[str, Any]]:
    """
    Load the collusion policy from YAML.

    Args:
        path: Policy file. Uses the packaged default if None.

    Returns:
        Policy sections keyed by name.

    Raises:
        ConfigError: If the file is missing, invalid, or incomplete
    """
    path = path or DEFAULT_POLICY_PATH
    try:
        with open(path) as f:
            policy = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Policy file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in policy file: {e}") from e

    if not isinstance(policy, dict):
        raise ConfigError(f"Policy file {path} must contain a mapping")

    for section, keys in _REQUIRED_KEYS.items():
        values = policy.get(section)
        if not isinstance(values, dict):
            raise ConfigError(f"Policy missing section: {section}")
        missing = keys - values.keys()
        if missing:
            raise ConfigError(f"Policy section {section} missing keys: {sorted(missing)}")

    return policy


def add_args(
    parser: argparse.ArgumentParser,
    policy: dict[str, dict[str, Any]] | None = None,
) -> None:
    """
    Add collusion policy arguments to the parser.

    Defaults come from environment variables, then from the policy.
    """
    policy = policy or load_policy()
    certification = policy["certification"]
    grouping = policy["grouping"]
    reputation = policy["reputation"]

    parser.add_argument(
        "--certification.max_error",
        dest="certification_max_error",
        type=float,
        help="Maximal error of a joint collusion likelihood estimate.",
        default=float(
            os.environ.get("CERTIFICATION_MAX_ERROR", certification["max_error"])
        ),
    )

    parser.add_argument(
        "--certification.collusion_threshold",
        dest="certification_collusion_threshold",
        type=float,
        help="Maximal collusion likelihood of the certified group.",
        default=float(
            os.environ.get(
                "CERTIFICATION_COLLUSION_THRESHOLD",
                certification["collusion_threshold"],
            )
        ),
    )

    parser.add_argument(
        "--grouping.min_greedy_size",
        dest="grouping_min_greedy_size",
        type=int,
        help="Smallest group size once collusion is not negligible.",
        default=int(
            os.environ.get("GROUPING_MIN_GREEDY_SIZE", grouping["min_greedy_size"])
        ),
    )

    parser.add_argument(
        "--grouping.max_error",
        dest="grouping_max_error",
        type=float,
        help="Maximal error of an estimate before it is treated as unknown.",
        default=float(os.environ.get("GROUPING_MAX_ERROR", grouping["max_error"])),
    )

    parser.add_argument(
        "--grouping.low_risk_threshold",
        dest="grouping_low_risk_threshold",
        type=float,
        help="Colluders fraction upper bound under which workers work alone.",
        default=float(
            os.environ.get(
                "GROUPING_LOW_RISK_THRESHOLD", grouping["low_risk_threshold"]
            )
        ),
    )

    parser.add_argument(
        "--grouping.max_collusion_likelihood",
        dest="grouping_max_collusion_likelihood",
        type=float,
        help="Candidates more likely than this to collude are never added.",
        default=float(
            os.environ.get(
                "GROUPING_MAX_COLLUSION_LIKELIHOOD",
                grouping["max_collusion_likelihood"],
            )
        ),
    )

    parser.add_argument(
        "--reputation.retry_attempts",
        dest="reputation_retry_attempts",
        type=int,
        help="Attempts per reputation query (1 = no retry).",
        default=int(
            os.environ.get("REPUTATION_RETRY_ATTEMPTS", reputation["retry_attempts"])
        ),
    )

    parser.add_argument(
        "--log_level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level.",
        default=os.environ.get("LOG_LEVEL", "INFO"),
    )


def get_config(
    argv: list[str] | None = None,
    policy_path: Path | None = None,
) -> argparse.Namespace:
    """Parse arguments and return configuration."""
    load_dotenv()
    parser = argparse.ArgumentParser(
        description="Collusion resistant certification and grouping",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    add_args(parser, load_policy(policy_path))
    config = parser.parse_args(argv)
    check_config(config)

    return config


def check_config(config: argparse.Namespace) -> None:
    """
    Validate configuration.

    Raises:
        ConfigError: If configuration is invalid.
    """
    for name in (
        "certification_max_error",
        "certification_collusion_threshold",
        "grouping_max_error",
        "grouping_low_risk_threshold",
        "grouping_max_collusion_likelihood",
    ):
        value = getattr(config, name)
        if not 0.0 <= value <= 1.0:
            raise ConfigError(f"{name} must be in [0, 1], got {value}")

    if config.grouping_min_greedy_size < 1:
        raise ConfigError(
            f"grouping_min_greedy_size must be >= 1, got {config.grouping_min_greedy_size}"
        )

    if config.reputation_retry_attempts < 1:
        raise ConfigError(
            f"reputation_retry_attempts must be >= 1, got {config.reputation_retry_attempts}"
        )


def certification_config_from(config: argparse.Namespace) -> CertificationConfig:
    """Build certification thresholds from parsed configuration."""
    return CertificationConfig(
        max_error=config.certification_max_error,
        collusion_threshold=config.certification_collusion_threshold,
    )


def grouper_config_from(config: argparse.Namespace) -> GrouperConfig:
    """Build grouping thresholds from parsed configuration."""
    return GrouperConfig(
        min_greedy_size=config.grouping_min_greedy_size,
        max_error=config.grouping_max_error,
        low_risk_threshold=config.grouping_low_risk_threshold,
        max_collusion_likelihood=config.grouping_max_collusion_likelihood,
    )


def config_to_dict(config: argparse.Namespace) -> dict[str, Any]:
    """Convert config to dictionary for logging."""
    return {
        "certification_max_error": config.certification_max_error,
        "certification_collusion_threshold": config.certification_collusion_threshold,
        "grouping_min_greedy_size": config.grouping_min_greedy_size,
        "grouping_max_error": config.grouping_max_error,
        "grouping_low_risk_threshold": config.grouping_low_risk_threshold,
        "grouping_max_collusion_likelihood": config.grouping_max_collusion_likelihood,
        "reputation_retry_attempts": config.reputation_retry_attempts,
        "log_level": config.log_level,
    }


def setup_logging(level: str) -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
