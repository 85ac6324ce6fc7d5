"""Tests for the exponential-backoff retry helper."""

import logging
from typing import List

import pytest

from agentrelay.agent.cancellation import CancellationToken
from agentrelay.agent.retry import retry
from agentrelay.core.errors import RunCancelledError
from agentrelay.core.schema import RetryConfig


class _Recorder:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _failing(errors: List[Exception], then=None):
    calls = {"count": 0}

    async def operation():
        calls["count"] += 1
        if errors:
            raise errors.pop(0)
        return then

    return operation, calls


@pytest.mark.anyio
async def test_delays_double_and_are_capped() -> None:
    sleep = _Recorder()
    errors = [RuntimeError(f"boom {i}") for i in range(7)]
    operation, calls = _failing(errors)
    config = RetryConfig(max_retries=7, initial_delay=1000, max_delay=10000)

    with pytest.raises(RuntimeError, match="boom 6"):
        await retry(operation, config, sleep=sleep)

    assert sleep.delays == [1000, 2000, 4000, 8000, 10000, 10000]
    assert calls["count"] == 7


@pytest.mark.anyio
async def test_returns_value_after_transient_failures() -> None:
    sleep = _Recorder()
    operation, calls = _failing([RuntimeError("a"), RuntimeError("b")], then="done")
    config = RetryConfig(max_retries=3, initial_delay=1, max_delay=10)

    assert await retry(operation, config, sleep=sleep) == "done"
    assert sleep.delays == [1, 2]
    assert calls["count"] == 3


@pytest.mark.anyio
async def test_single_attempt_never_sleeps() -> None:
    sleep = _Recorder()
    operation, _ = _failing([ValueError("only")])

    with pytest.raises(ValueError):
        await retry(operation, RetryConfig(max_retries=1), sleep=sleep)
    assert sleep.delays == []


@pytest.mark.anyio
async def test_logs_a_warning_per_failed_attempt(caplog) -> None:
    operation, _ = _failing([RuntimeError("flaky")], then=42)
    log = logging.getLogger("tests.retry")

    with caplog.at_level(logging.WARNING, logger="tests.retry"):
        await retry(operation, RetryConfig(max_retries=2, initial_delay=0), log, sleep=_Recorder())

    assert [r.getMessage() for r in caplog.records] == ["Operation failed (attempt 1/2): flaky"]


@pytest.mark.anyio
async def test_cancelled_token_stops_before_next_attempt() -> None:
    token = CancellationToken()
    sleep = _Recorder()
    calls = {"count": 0}

    async def operation():
        calls["count"] += 1
        token.cancel("user pressed stop")
        raise RuntimeError("boom")

    with pytest.raises(RunCancelledError, match="user pressed stop"):
        await retry(operation, RetryConfig(max_retries=5), sleep=sleep, cancel_token=token)

    assert calls["count"] == 1
    assert sleep.delays == []
