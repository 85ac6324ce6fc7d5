"""Pytest configuration for the agentrelay test suite."""

import pytest

from agentrelay.core.schema import RetryConfig


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def no_wait_retry() -> RetryConfig:
    """A retry config that never sleeps, for engine tests."""
    return RetryConfig(max_retries=1, initial_delay=0, max_delay=0)
