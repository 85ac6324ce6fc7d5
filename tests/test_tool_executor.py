"""
Sanity tests for the tool executor and tool-call dispatch.

Run with:
$ pytest -q
"""

import json

import pytest

from agentrelay.agent.tool_executor import (
    coerce_result,
    execute_tool,
    handle_tool_calls,
)
from agentrelay.core.errors import (
    ErrorCode,
    ToolExecutionError,
)
from agentrelay.core.schema import (
    Agent,
    Tool,
    ToolCall,
    ToolResult,
)
from agentrelay.tools import tool
from tests.fakes import tool_call


# Stub tools for testing purposes.
@tool("add")
def _add(a: int, b: int) -> int:
    """Return the sum of two integers (used only for tests)."""

    return a + b


@tool("explode")
def _explode() -> str:
    raise RuntimeError("kaboom")


@tool("whoami", takes_context_variables=True)
def _whoami(context_variables: dict) -> str:
    user = context_variables.get("user", "stranger")
    context_variables["user"] = "tampered"
    return f"You are {user}"


@tool("login", takes_context_variables=True)
def _login(name: str, context_variables: dict) -> ToolResult:
    return ToolResult(value="logged in", context_variables={"user": name})


@tool("slow_add")
async def _slow_add(a: int, b: int) -> int:
    return a + b


def _calls(*raw) -> list:
    return [ToolCall.model_validate(call) for call in raw]


@pytest.mark.anyio
async def test_execute_tool_success() -> None:
    """Executor should return the correct value when the tool is valid."""

    assert await execute_tool(_add, {"a": 2, "b": 3}) == 5


@pytest.mark.anyio
async def test_execute_tool_awaits_async_tools() -> None:
    """Executor should await coroutine results."""

    assert await execute_tool(_slow_add, {"a": 1, "b": 1}) == 2


@pytest.mark.anyio
async def test_execute_tool_bad_args() -> None:
    """Executor should raise *ToolExecutionError* for wrong arguments."""

    with pytest.raises(ToolExecutionError) as info:
        await execute_tool(_add, {"a": 2})  # missing 'b'
    assert "Invalid arguments" in str(info.value)
    assert isinstance(info.value.cause, TypeError)


@pytest.mark.anyio
async def test_execute_tool_wraps_failures() -> None:
    with pytest.raises(ToolExecutionError, match="Failed to execute tool explode: kaboom"):
        await execute_tool(_explode)


# ---------------------------------------------------------------------------
# coerce_result
# ---------------------------------------------------------------------------
def test_coerce_result_text_is_kept() -> None:
    assert coerce_result("plain").value == "plain"


def test_coerce_result_encodes_json() -> None:
    assert json.loads(coerce_result({"temp": 21}).value) == {"temp": 21}
    assert coerce_result(None).value == "null"


def test_coerce_result_agent_means_handoff() -> None:
    target = Agent(name="Billing")
    outcome = coerce_result(target)

    assert outcome.agent is target
    assert json.loads(outcome.value) == {"assistant": "Billing"}


# ---------------------------------------------------------------------------
# handle_tool_calls
# ---------------------------------------------------------------------------
@pytest.mark.anyio
async def test_handle_tool_calls_runs_in_order() -> None:
    agent = Agent(tools=[_add])
    result = await handle_tool_calls(
        _calls(
            tool_call("c1", "add", '{"a": 1, "b": 2}'),
            tool_call("c2", "add", '{"a": 3, "b": 4}'),
        ),
        agent,
        {},
    )

    assert result.success
    assert [(m.role, m.tool_call_id, m.content) for m in result.data.messages] == [
        ("tool", "c1", "3"),
        ("tool", "c2", "7"),
    ]
    assert result.data.agent is None


@pytest.mark.anyio
async def test_unknown_tool_is_recoverable() -> None:
    """An unknown tool should produce an error message, not a failed batch."""

    agent = Agent(tools=[_add])
    result = await handle_tool_calls(
        _calls(tool_call("c1", "nope"), tool_call("c2", "add", '{"a": 1, "b": 1}')), agent, {}
    )

    assert result.success
    first, second = result.data.messages
    assert first.content == "Error: Tool nope not found."
    assert first.tool_call_id == "c1"
    assert second.content == "2"


@pytest.mark.anyio
async def test_malformed_arguments_fail_the_batch() -> None:
    calls = _calls(tool_call("c1", "add", "{oops"))
    result = await handle_tool_calls(calls, Agent(tools=[_add]), {})

    assert not result.success
    assert result.error.code is ErrorCode.VALIDATION


@pytest.mark.anyio
async def test_raising_tool_fails_the_batch() -> None:
    agent = Agent(tools=[_explode, _add])
    result = await handle_tool_calls(
        _calls(tool_call("c1", "explode"), tool_call("c2", "add", '{"a": 1, "b": 1}')), agent, {}
    )

    assert not result.success
    assert result.error.code is ErrorCode.TOOL_EXECUTION


@pytest.mark.anyio
async def test_context_is_passed_as_a_snapshot() -> None:
    """Tools see the context but mutating it must not leak into the run."""

    context = {"user": "Ada"}
    calls = _calls(tool_call("c1", "whoami"))
    result = await handle_tool_calls(calls, Agent(tools=[_whoami]), context)

    assert result.data.messages[0].content == "You are Ada"
    assert result.data.context_variables == {"user": "Ada"}
    assert context == {"user": "Ada"}


@pytest.mark.anyio
async def test_context_is_not_injected_without_the_flag() -> None:
    received = {}

    def spy(**kwargs) -> str:
        received.update(kwargs)
        return "ok"

    agent = Agent(tools=[Tool(name="spy", function=spy)])
    await handle_tool_calls(_calls(tool_call("c1", "spy", '{"x": 1}')), agent, {"secret": 1})

    assert received == {"x": 1}


@pytest.mark.anyio
async def test_tool_result_delta_is_merged_for_later_calls() -> None:
    agent = Agent(tools=[_login, _whoami])
    result = await handle_tool_calls(
        _calls(tool_call("c1", "login", '{"name": "Grace"}'), tool_call("c2", "whoami")),
        agent,
        {"user": "Ada", "lang": "en"},
    )

    assert result.data.context_variables == {"user": "Grace", "lang": "en"}
    assert result.data.messages[1].content == "You are Grace"


@pytest.mark.anyio
async def test_returning_an_agent_hands_off() -> None:
    billing = Agent(name="Billing")
    transfer = Tool(name="transfer", function=lambda: billing)

    calls = _calls(tool_call("c1", "transfer"))
    result = await handle_tool_calls(calls, Agent(tools=[transfer]), {})

    assert result.data.agent is billing
    assert json.loads(result.data.messages[0].content) == {"assistant": "Billing"}
