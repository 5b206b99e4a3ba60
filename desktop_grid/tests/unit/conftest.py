"""Shared fixtures for unit tests."""

import pytest


@pytest.fixture
def workers() -> list[str]:
    """A pool of 100 workers, in registration order."""
    return [f"worker_{i:03d}" for i in range(100)]


@pytest.fixture
def worker(workers: list[str]) -> str:
    """First worker of the pool."""
    return workers[0]
