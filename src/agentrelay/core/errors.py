"""
Error taxonomy for agentrelay.

Each error carries a stable ``code`` tag.  Components raise these internally and convert them to a
:class:`~agentrelay.core.schema.Result` at their public boundary, so callers of the engine always
receive a result value rather than an exception.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Stable error tags surfaced in failed results."""

    VALIDATION = "validation-error"
    API = "api-error"
    TOOL_EXECUTION = "tool-execution-error"
    TIMEOUT = "timeout-error"
    CANCELLED = "cancelled-error"
    UNKNOWN = "unknown-error"


class RelayError(Exception):
    """Base class for every error the engine reports."""

    code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        if cause is not None:
            self.__cause__ = cause

    @property
    def cause(self) -> BaseException | None:
        """The underlying exception, if any."""
        return self.__cause__

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value!r}, message={self.message!r})"


class ValidationError(RelayError):
    """Raised when a tool call's argument payload is not a valid JSON object."""

    code = ErrorCode.VALIDATION

    def __init__(
        self, message: str, cause: BaseException | None = None, raw_text: str | None = None
    ) -> None:
        super().__init__(message, cause)
        self.raw_text = raw_text


class APIError(RelayError):
    """Raised when the completion provider call fails."""

    code = ErrorCode.API


class ToolExecutionError(RelayError):
    """Raised when a registered tool cannot run or its body raises."""

    code = ErrorCode.TOOL_EXECUTION


class OperationTimeoutError(RelayError):
    """Reserved for operations exceeding a time limit; the engine never raises it itself."""

    code = ErrorCode.TIMEOUT


class RunCancelledError(RelayError):
    """Raised when a run is cancelled or its event stream is abandoned before finishing."""

    code = ErrorCode.CANCELLED


class UnknownError(RelayError):
    """Wraps any exception that does not belong to the taxonomy above."""

    code = ErrorCode.UNKNOWN


def to_relay_error(exc: BaseException) -> RelayError:
    """Return *exc* unchanged if it is already a :class:`RelayError`, else wrap it."""
    if isinstance(exc, RelayError):
        return exc
    return UnknownError(f"{type(exc).__name__}: {exc}", cause=exc)
