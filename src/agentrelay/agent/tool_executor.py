"""Dispatches tool calls against an agent's registered tools and wraps errors."""

import inspect
import json
import logging
from typing import (
    Any,
    Dict,
    Mapping,
    Sequence,
)

from pydantic import BaseModel

from agentrelay.core.errors import ToolExecutionError
from agentrelay.core.schema import (
    CONTEXT_VARIABLES_ARG,
    Agent,
    Message,
    ResponseData,
    Result,
    Tool,
    ToolCall,
    ToolResult,
)
from agentrelay.tools.argument_parser import parse_arguments

logger = logging.getLogger(__name__)


async def execute_tool(
    tool: Tool, args: Dict[str, Any] | None = None, log: logging.Logger | None = None
) -> Any:
    """
    Invoke *tool* with *args*, awaiting the result if the tool is asynchronous.

    Parameters
    ----------
    tool:
        The registered tool descriptor.
    args:
        Keyword arguments to pass verbatim to the tool function.  If *None*,
        an empty dict is assumed.

    Returns
    -------
    Any
        Whatever the tool function returns.

    Raises
    ------
    ToolExecutionError
        If the arguments do not match the function or its invocation raises an exception.
    """
    log = log or logger
    if args is None:
        args = {}

    try:
        log.debug("Executing tool '%s' with args=%s", tool.name, args)
        result = tool.function(**args)
        if inspect.isawaitable(result):
            result = await result
        return result
    except TypeError as exc:
        # Argument mismatch
        log.exception("Argument error while executing tool '%s'", tool.name)
        raise ToolExecutionError(f"Invalid arguments for tool '{tool.name}': {exc}") from exc
    except Exception as exc:  # noqa: BLE001
        log.exception("Unhandled error in tool '%s'", tool.name)
        raise ToolExecutionError(f"Failed to execute tool {tool.name}: {exc}") from exc


def coerce_result(raw: Any) -> ToolResult:
    """Normalise whatever a tool returned into a :class:`ToolResult`."""
    if isinstance(raw, ToolResult):
        return raw
    if isinstance(raw, Agent):
        return ToolResult(value=json.dumps({"assistant": raw.name}), agent=raw)
    if isinstance(raw, str):
        return ToolResult(value=raw)
    if isinstance(raw, BaseModel):
        return ToolResult(value=raw.model_dump_json())
    try:
        return ToolResult(value=json.dumps(raw, default=str))
    except (TypeError, ValueError) as exc:
        raise ToolExecutionError(f"Tool returned a value that cannot be encoded: {exc}") from exc


async def handle_tool_calls(
    tool_calls: Sequence[ToolCall],
    agent: Agent,
    context_variables: Mapping[str, Any],
    log: logging.Logger | None = None,
) -> Result:
    """
    Execute *tool_calls* in order against *agent*'s tools.

    An unknown tool name is recoverable: a tool-role error message is appended and dispatch moves
    on.  Malformed arguments (``validation-error``) and a raising tool body
    (``tool-execution-error``) are fatal and end the batch with a failed result.

    The returned :class:`ResponseData` holds the tool-role messages, the handoff target (if a tool
    named one) and a copy of *context_variables* with every tool's delta merged in.
    """
    log = log or logger
    response = ResponseData(context_variables=dict(context_variables))

    try:
        for call in tool_calls:
            name = call.function.name
            tool = agent.find_tool(name)
            if tool is None:
                log.warning("Tool '%s' not found on agent '%s'", name, agent.name)
                response.messages.append(
                    Message(
                        role="tool", content=f"Error: Tool {name} not found.", tool_call_id=call.id
                    )
                )
                continue

            args = parse_arguments(call.function.arguments)
            if tool.takes_context_variables:
                args[CONTEXT_VARIABLES_ARG] = dict(response.context_variables)

            outcome = coerce_result(await execute_tool(tool, args, log))
            log.info("Tool '%s' returned: %s", name, outcome.value)
            response.messages.append(
                Message(role="tool", content=outcome.value, tool_call_id=call.id)
            )
            response.context_variables.update(outcome.context_variables)
            if outcome.agent is not None:
                log.info("Tool '%s' handed off to agent '%s'", name, outcome.agent.name)
                response.agent = outcome.agent
    except Exception as exc:  # pylint: disable=broad-except
        return Result.from_exception(exc)

    return Result.ok(response)
