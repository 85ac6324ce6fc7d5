"""Main orchestration loop for agentrelay."""

from __future__ import annotations

import inspect
import logging
from typing import (
    Any,
    AsyncIterator,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Union,
)

from agentrelay.agent.cancellation import CancellationToken
from agentrelay.agent.completion import (
    CompletionClient,
    load_client,
)
from agentrelay.agent.merge import DeltaMerger
from agentrelay.agent.retry import retry
from agentrelay.agent.tool_executor import handle_tool_calls
from agentrelay.config import settings
from agentrelay.core.errors import (
    APIError,
    RelayError,
    RunCancelledError,
)
from agentrelay.core.schema import (
    Agent,
    Delta,
    Final,
    Message,
    ResponseData,
    Result,
    RetryConfig,
    StreamEvent,
    TurnEnd,
    TurnStart,
)

logger = logging.getLogger(__name__)

MessageLike = Union[Message, Mapping[str, Any]]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _field(obj: Any, name: str) -> Any:
    """Read *name* from a mapping or an attribute-style provider object."""
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _as_dict(obj: Any) -> Dict[str, Any]:
    if obj is None:
        return {}
    if isinstance(obj, Mapping):
        return dict(obj)
    if hasattr(obj, "model_dump"):
        return obj.model_dump(exclude_none=True)
    return dict(vars(obj))


def _chunk_delta(chunk: Any) -> Optional[Dict[str, Any]]:
    """Return the first choice's delta of a streamed chunk, or None for choice-less chunks."""
    choices = _field(chunk, "choices")
    if not choices:
        return None
    return _as_dict(_field(choices[0], "delta"))


async def _close_stream(stream: Any) -> None:
    closer = getattr(stream, "aclose", None) or getattr(stream, "close", None)
    if closer is None:
        return
    outcome = closer()
    if inspect.isawaitable(outcome):
        await outcome


class _RunState:
    """Private, per-run copies of the history and context mapping."""

    def __init__(
        self,
        agent: Agent,
        messages: Iterable[MessageLike],
        context_variables: Optional[Mapping[str, Any]],
    ) -> None:
        self.active_agent = agent
        self.history: List[Message] = [Message.model_validate(m) for m in messages]
        self.context: Dict[str, Any] = dict(context_variables or {})
        self.init_len = len(self.history)
        self.turns = 0
        self.finished = False

    def response(self) -> Result:
        return Result.ok(
            ResponseData(
                messages=self.history[self.init_len :],
                agent=self.active_agent,
                context_variables=self.context,
            )
        )


# ---------------------------------------------------------------------------
# Event stream
# ---------------------------------------------------------------------------
class EventStream:
    """
    Single-consumer, non-restartable sequence of events for a streaming run.

    Iterate it with ``async for``; the last event is a :class:`Final` carrying the terminal result,
    which is then also available as :attr:`result`.  A stream abandoned before its ``Final`` event
    reports a ``cancelled-error`` result.

    Use it as an async context manager (or call :meth:`aclose`) so the provider stream is released
    even when the consumer stops early::

        async with engine.run_stream(agent, messages) as stream:
            async for event in stream:
                ...
    """

    def __init__(self, events: AsyncIterator[StreamEvent], token: CancellationToken) -> None:
        self._events = events
        self._token = token
        self._result: Optional[Result] = None
        self._iterator: Optional[AsyncIterator[StreamEvent]] = None

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        if self._iterator is not None:
            raise RuntimeError("EventStream can only be iterated once")
        self._iterator = self._iterate()
        return self._iterator

    async def __aenter__(self) -> "EventStream":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _iterate(self) -> AsyncIterator[StreamEvent]:
        try:
            async for event in self._events:
                if isinstance(event, Final):
                    self._result = event.result
                yield event
        finally:
            await self._events.aclose()  # type: ignore[attr-defined]

    @property
    def done(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> Result:
        if self._result is None:
            return Result.failure(
                RunCancelledError("Event stream was abandoned before the run finished")
            )
        return self._result

    def cancel(self, reason: str | None = None) -> None:
        """Ask the run to stop at its next suspension point."""
        self._token.cancel(reason)

    async def collect(self) -> Result:
        """
        Drain the remaining events and return the terminal result.

        Resumes where an earlier ``async for`` over this stream stopped; after :meth:`aclose` it
        returns the ``cancelled-error`` result immediately.
        """
        iterator = self._iterator if self._iterator is not None else self.__aiter__()
        async for _ in iterator:
            pass
        return self.result

    async def aclose(self) -> None:
        """Stop the run and release the provider stream; the result stays as it is."""
        if self._iterator is not None:
            await self._iterator.aclose()  # type: ignore[attr-defined]
        await self._events.aclose()  # type: ignore[attr-defined]


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
class ConversationEngine:
    """
    Drives conversations between a caller, a completion provider and registered tools.

    The engine keeps only configuration and a logger; every run works on private copies of its
    history and context variables, so one instance can host many concurrent runs.

    Typical usage::

        engine = ConversationEngine()
        result = await engine.run(agent, [{"role": "user", "content": "Hi"}])
        if result.success:
            print(result.data.messages[-1].content)
    """

    def __init__(
        self,
        client: CompletionClient | None = None,
        retry_config: RetryConfig | None = None,
        logger: logging.Logger | None = None,  # pylint: disable=redefined-outer-name
        max_turns: int | None = None,
    ) -> None:
        self.client = client or load_client()
        self.retry_config = retry_config or RetryConfig(
            max_retries=settings.RETRY_MAX_RETRIES,
            initial_delay=settings.RETRY_INITIAL_DELAY,
            max_delay=settings.RETRY_MAX_DELAY,
        )
        self.logger = logger or logging.getLogger(__name__)
        self.max_turns = settings.MAX_TURNS if max_turns is None else max_turns

    async def aclose(self) -> None:
        """Release the completion client's connections."""
        await self.client.aclose()

    # ------------------------------------------------------------------ #
    # Completion
    # ------------------------------------------------------------------ #
    def build_request(
        self,
        agent: Agent,
        history: List[Message],
        model_override: str | None = None,
        stream: bool = False,
    ) -> Dict[str, Any]:
        """Build the completion request for *agent* over the full *history*."""
        messages = [{"role": "system", "content": agent.resolve_instructions()}]
        messages.extend(m.to_wire() for m in history)

        params: Dict[str, Any] = {
            "model": model_override or agent.model,
            "messages": messages,
            "stream": stream,
        }
        if agent.tools:
            params["tools"] = [t.to_manifest() for t in agent.tools]
            if agent.tool_choice is not None:
                params["tool_choice"] = agent.tool_choice
            params["parallel_tool_calls"] = agent.parallel_tool_calls
        return params

    async def _get_chat_completion(
        self,
        agent: Agent,
        history: List[Message],
        model_override: str | None,
        stream: bool,
        cancel_token: CancellationToken | None,
    ) -> Result:
        params = self.build_request(agent, history, model_override, stream)
        self.logger.debug("Completion request params: %s", params)

        async def attempt() -> Any:
            result = await self.client.create_chat_completion(params)
            if not result.success:
                raise result.error or APIError("Completion request failed")
            return result.data

        try:
            data = await retry(attempt, self.retry_config, self.logger, cancel_token=cancel_token)
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.error("Completion request for agent '%s' failed: %s", agent.name, exc)
            return Result.from_exception(exc)
        return Result.ok(data)

    @staticmethod
    def _message_from_response(response: Any, agent: Agent) -> Message:
        choices = _field(response, "choices")
        if not choices:
            raise APIError("Completion response contained no choices")
        payload = _as_dict(_field(choices[0], "message"))
        payload["sender"] = agent.name
        return Message.model_validate(payload)

    # ------------------------------------------------------------------ #
    # Turn handling
    # ------------------------------------------------------------------ #
    async def _commit_turn(
        self, state: _RunState, message: Message, execute_tools: bool
    ) -> Optional[Result]:
        """
        Append the assistant *message* and dispatch its tool calls.

        Returns a failed result if dispatch failed fatally, else None.  Marks *state* finished when
        the message carries no tool calls or tool execution is disabled.
        """
        self.logger.debug("Received completion: %s", message)
        state.history.append(message)
        state.turns += 1

        if not message.tool_calls or not execute_tools:
            self.logger.debug("Ending turn.")
            state.finished = True
            return None

        self.logger.info(
            "Agent '%s' requested %d tool calls: %s",
            state.active_agent.name,
            len(message.tool_calls),
            [call.function.name for call in message.tool_calls],
        )
        tool_result = await handle_tool_calls(
            message.tool_calls, state.active_agent, state.context, self.logger
        )
        if not tool_result.success:
            return tool_result

        dispatched: ResponseData = tool_result.data
        state.history.extend(dispatched.messages)
        state.context.update(dispatched.context_variables)
        if dispatched.agent is not None:
            self.logger.info(
                "Handing off from '%s' to '%s'", state.active_agent.name, dispatched.agent.name
            )
            state.active_agent = dispatched.agent
        return None

    def _turn_limit(self, max_turns: int | None) -> int:
        return self.max_turns if max_turns is None else max_turns

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    async def run(
        self,
        agent: Agent,
        messages: Iterable[MessageLike],
        context_variables: Mapping[str, Any] | None = None,
        *,
        model_override: str | None = None,
        max_turns: int | None = None,
        execute_tools: bool = True,
        cancel_token: CancellationToken | None = None,
    ) -> Result:
        """
        Run the conversation until a terminal outcome.

        Parameters
        ----------
        agent:
            The initially active agent.
        messages:
            History so far (``Message`` objects or mappings); copied, never mutated.
        context_variables:
            Mapping threaded through tools; copied, never mutated.
        model_override:
            Model used instead of each agent's own.
        max_turns:
            Model turns allowed (defaults to the engine's limit).
        execute_tools:
            If *False*, stop after the first assistant message even if it requests tools.
        cancel_token:
            Checked before each completion request and each backoff pause.

        Returns
        -------
        Result
            On success, :class:`ResponseData` with the messages produced since entry, the active
            agent and the merged context variables.  On failure, the tagged error.
        """
        try:
            state = _RunState(agent, messages, context_variables)
            limit = self._turn_limit(max_turns)

            while state.turns < limit and not state.finished:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                completion = await self._get_chat_completion(
                    state.active_agent, state.history, model_override, False, cancel_token
                )
                if not completion.success:
                    return completion

                message = self._message_from_response(completion.data, state.active_agent)
                failure = await self._commit_turn(state, message, execute_tools)
                if failure is not None:
                    return failure

            self.logger.info("Run finished after %d turn(s)", state.turns)
            return state.response()
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.error("Run failed: %s", exc)
            return Result.from_exception(exc)

    def run_stream(
        self,
        agent: Agent,
        messages: Iterable[MessageLike],
        context_variables: Mapping[str, Any] | None = None,
        *,
        model_override: str | None = None,
        max_turns: int | None = None,
        execute_tools: bool = True,
        cancel_token: CancellationToken | None = None,
    ) -> EventStream:
        """
        Streaming counterpart of :meth:`run`.

        Nothing happens until the returned :class:`EventStream` is iterated.  Each model turn
        yields ``TurnStart``, one ``Delta`` per provider fragment and ``TurnEnd``; the stream ends
        with ``Final`` carrying the same terminal result :meth:`run` would return.
        """
        token = cancel_token or CancellationToken()
        events = self._stream_events(
            agent, messages, context_variables, model_override, max_turns, execute_tools, token
        )
        return EventStream(events, token)

    async def _stream_events(
        self,
        agent: Agent,
        messages: Iterable[MessageLike],
        context_variables: Mapping[str, Any] | None,
        model_override: str | None,
        max_turns: int | None,
        execute_tools: bool,
        token: CancellationToken,
    ) -> AsyncIterator[StreamEvent]:
        try:
            state = _RunState(agent, messages, context_variables)
            limit = self._turn_limit(max_turns)

            while state.turns < limit and not state.finished:
                token.raise_if_cancelled()
                completion = await self._get_chat_completion(
                    state.active_agent, state.history, model_override, True, token
                )
                if not completion.success:
                    yield Final(result=completion)
                    return

                sender = state.active_agent.name
                merger = DeltaMerger(sender)
                yield TurnStart(sender=sender)

                stream = completion.data
                try:
                    async for chunk in stream:
                        token.raise_if_cancelled()
                        delta = _chunk_delta(chunk)
                        if delta is None:
                            continue
                        merger.add(delta)
                        yield Delta(sender=sender, delta=delta)
                except RelayError:
                    raise
                except Exception as exc:
                    raise APIError("Completion stream failed", cause=exc) from exc
                finally:
                    await _close_stream(stream)

                yield TurnEnd(sender=sender)

                failure = await self._commit_turn(state, merger.build(), execute_tools)
                if failure is not None:
                    yield Final(result=failure)
                    return

            self.logger.info("Streaming run finished after %d turn(s)", state.turns)
            result = state.response()
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.error("Streaming run failed: %s", exc)
            result = Result.from_exception(exc)

        yield Final(result=result)
