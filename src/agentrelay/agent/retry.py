"""Exponential-backoff retry for asynchronous operations."""

import asyncio
import logging
from typing import (
    Awaitable,
    Callable,
    Optional,
    TypeVar,
)

from agentrelay.agent.cancellation import CancellationToken
from agentrelay.core.schema import RetryConfig

T = TypeVar("T")

logger = logging.getLogger(__name__)


async def retry(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig,
    log: Optional[logging.Logger] = None,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    cancel_token: Optional[CancellationToken] = None,
) -> T:
    """
    Await *operation* up to ``config.max_retries`` times.

    After each failure a warning naming the attempt is logged and, if attempts remain, the
    coroutine sleeps for the current delay before the next try.  Delays start at
    ``config.initial_delay`` and double after every sleep, capped at ``config.max_delay``.

    Parameters
    ----------
    operation:
        Zero-argument coroutine factory; called once per attempt.
    config:
        Attempt count and delay bounds.
    log:
        Logger for the retry warnings (defaults to this module's logger).
    sleep:
        Awaitable used for the backoff pause.  Tests substitute a recorder.
    cancel_token:
        Checked before every attempt and every pause.

    Raises
    ------
    Exception
        The failure of the final attempt, unchanged.
    RunCancelledError
        If *cancel_token* is tripped while retrying.
    """
    log = log or logger
    delay = config.initial_delay

    for attempt in range(1, config.max_retries + 1):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        try:
            return await operation()
        except Exception as exc:  # pylint: disable=broad-except
            log.warning(
                "Operation failed (attempt %d/%d): %s", attempt, config.max_retries, exc
            )
            if attempt >= config.max_retries:
                raise
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            await sleep(delay)
            delay = min(delay * 2, config.max_delay)

    # max_retries >= 1 is enforced by RetryConfig, so the loop always returns or raises
    raise AssertionError("unreachable")
