"""Pytest configuration and shared fixtures."""

import pytest

POLICY_ENV_VARS = (
    "CERTIFICATION_MAX_ERROR",
    "CERTIFICATION_COLLUSION_THRESHOLD",
    "GROUPING_MIN_GREEDY_SIZE",
    "GROUPING_MAX_ERROR",
    "GROUPING_LOW_RISK_THRESHOLD",
    "GROUPING_MAX_COLLUSION_LIKELIHOOD",
    "REPUTATION_RETRY_ATTEMPTS",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolate_policy_env(monkeypatch):
    """
    Run each test without policy overrides from the environment.

    Usage in tests:
        def test_env_override(monkeypatch):
            monkeypatch.setenv("GROUPING_MIN_GREEDY_SIZE", "7")
            config = get_config([])
    """
    for name in POLICY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
