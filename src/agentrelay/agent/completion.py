"""
Completion client interface for agentrelay.

This module is the only place that *directly* calls an LLM.  Everything else (engine, tools,
streaming) stays provider-agnostic and talks to a :class:`CompletionClient`.

Out of the box we ship an OpenAI-compatible client (any base URL that speaks the chat-completions
API).  Additional providers can be added by subclassing :class:`CompletionClient` and registering
via :func:`register_client`.
"""

import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    Callable,
    Dict,
    Mapping,
    Type,
)

import httpx

from agentrelay.config import settings
from agentrelay.core.errors import APIError
from agentrelay.core.schema import Result

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_CLIENT_REGISTRY: Dict[str, Type["CompletionClient"]] = {}


def register_client(name: str) -> Callable:
    """Decorator to register a completion client class under *name*."""

    def wrapper(cls: Type["CompletionClient"]) -> Type["CompletionClient"]:
        _CLIENT_REGISTRY[name.lower()] = cls
        return cls

    return wrapper


def load_client(name: str | None = None, **kwargs: Any) -> "CompletionClient":
    """
    Factory that returns an instantiated completion client.

    Fallback order:
    1. *name* arg
    2. ``settings.COMPLETION_CLIENT`` env/.env option
    """

    target = name or settings.COMPLETION_CLIENT
    cls = _CLIENT_REGISTRY.get(target.lower())
    if cls is None:
        raise ValueError(f"Completion client '{target}' is not registered.")
    return cls(**kwargs)


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class CompletionClient(ABC):
    """Abstract network boundary to a chat-completion provider."""

    @abstractmethod
    async def create_chat_completion(self, params: Mapping[str, Any]) -> Result:
        """
        Send one completion request.

        Returns a successful :class:`Result` wrapping the raw provider response (or, when
        ``params["stream"]`` is true, an async iterable of chunks).  A thrown provider failure is
        returned as a failed result tagged ``api-error`` with the original exception as cause.
        Implementations must not retry.
        """

    async def aclose(self) -> None:
        """Release network resources held by the client.  The default holds none."""


# ---------------------------------------------------------------------------
# Concrete clients
# ---------------------------------------------------------------------------
@register_client("openai")
class OpenAIClient(CompletionClient):
    """Client for the OpenAI chat-completions API (or any compatible endpoint)."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        client: Any = None,
    ) -> None:
        if client is None:
            import openai  # pylint: disable=import-outside-toplevel

            client = openai.AsyncOpenAI(
                api_key=api_key or settings.OPENAI_API_KEY,
                base_url=base_url or settings.OPENAI_BASE_URL,
                http_client=httpx.AsyncClient(timeout=timeout or settings.REQUEST_TIMEOUT),
                max_retries=0,
            )
        self._client = client

    async def create_chat_completion(self, params: Mapping[str, Any]) -> Result:
        try:
            response = await self._client.chat.completions.create(**params)
            return Result.ok(response)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("OpenAI API error: %s", exc)
            return Result.failure(APIError("OpenAI API call failed", cause=exc))

    async def aclose(self) -> None:
        await self._client.close()
