"""Cooperative cancellation for in-flight runs."""

from agentrelay.core.errors import RunCancelledError


class CancellationToken:
    """
    Flag checked by the engine at each suspension point.

    Tripping the token does not interrupt an awaited network call; the run stops at the next check
    and resolves to a ``cancelled-error`` result.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self.reason = "Run was cancelled"

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str | None = None) -> None:
        self._cancelled = True
        if reason:
            self.reason = reason

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RunCancelledError(self.reason)
