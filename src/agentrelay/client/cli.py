"""Interactive terminal client that drives the conversation engine directly."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import (
    Any,
    Dict,
    List,
    Tuple,
)

from agentrelay.agent.engine import (
    ConversationEngine,
    EventStream,
)
from agentrelay.agents import (
    AGENTS,
    DEFAULT_AGENT,
)
from agentrelay.common import (
    AnsiColors,
    colored,
    colored_print,
)
from agentrelay.core.schema import (
    Agent,
    Delta,
    Message,
    Result,
    TurnEnd,
    TurnStart,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Terminal helpers
# ---------------------------------------------------------------------------
def get_user_message() -> Tuple[str, bool]:
    """
    Get a message from the user via standard input.

    Returns:
        Tuple of (user_input, success_flag)
        The success_flag is False if input couldn't be read (e.g., Ctrl+C)
    """
    try:
        user_input = input(colored("User", AnsiColors.GREY) + ": ").strip()
        return user_input, True
    except (EOFError, KeyboardInterrupt):
        return "", False


def _format_arguments(raw: str) -> str:
    try:
        return json.dumps(json.loads(raw or "{}"))
    except json.JSONDecodeError:
        return raw


def pretty_print_messages(messages: List[Message]) -> None:
    """Print assistant messages with their sender label and requested tool calls."""
    for message in messages:
        if message.role != "assistant":
            continue

        print(colored(message.sender or "assistant", AnsiColors.BLUE) + ": ", end="")
        if message.content:
            print(message.content)

        tool_calls = message.tool_calls or []
        if len(tool_calls) > 1:
            print()
        for call in tool_calls:
            args = _format_arguments(call.function.arguments)
            print(colored(call.function.name, AnsiColors.MAGENTA) + f"({args})")


async def process_stream(stream: EventStream) -> Result:
    """Print streamed text and tool-call names as they arrive; return the terminal result."""
    printed_text = False
    async with stream:
        async for event in stream:
            if isinstance(event, TurnStart):
                printed_text = False
            elif isinstance(event, Delta):
                delta: Dict[str, Any] = event.delta
                content = delta.get("content")
                if content:
                    if not printed_text:
                        print(colored(event.sender, AnsiColors.BLUE) + ": ", end="")
                        printed_text = True
                    print(content, end="", flush=True)
                for fragment in delta.get("tool_calls") or []:
                    name = (fragment.get("function") or {}).get("name")
                    if name:
                        print(colored(event.sender, AnsiColors.BLUE) + ": ", end="")
                        print(colored(name, AnsiColors.MAGENTA) + "()")
            elif isinstance(event, TurnEnd) and printed_text:
                print()
    return stream.result


# ---------------------------------------------------------------------------
# REPL
# ---------------------------------------------------------------------------
async def _repl(
    engine: ConversationEngine,
    agent_name: str,
    stream: bool,
    max_turns: int | None,
) -> None:
    active_agent = AGENTS[agent_name]

    colored_print(
        f"agentrelay shell [{active_agent.name}] - type 'exit' or 'quit' (or Ctrl+C) to exit",
        AnsiColors.YELLOW,
    )
    try:
        await _converse(engine, active_agent, stream, max_turns)
    finally:
        await engine.aclose()


async def _converse(
    engine: ConversationEngine, active_agent: Agent, stream: bool, max_turns: int | None
) -> None:
    history: List[Message] = []
    context_variables: Dict[str, Any] = {}
    while True:
        user_msg, ok = await asyncio.to_thread(get_user_message)
        if not ok:
            break  # Exit if user input couldn't be retrieved (e.g., Ctrl+C)
        if user_msg.lower() in {"exit", "quit"}:
            break
        if not user_msg:
            continue

        history.append(Message(role="user", content=user_msg, sender="user"))

        if stream:
            result = await process_stream(
                engine.run_stream(active_agent, history, context_variables, max_turns=max_turns)
            )
        else:
            result = await engine.run(active_agent, history, context_variables, max_turns=max_turns)

        if not result.success:
            colored_print(f"⚠️ [{result.error.code.value}] {result.error}", AnsiColors.RED)
            history.pop()
            continue

        if not stream:
            pretty_print_messages(result.data.messages)
        history.extend(result.data.messages)
        context_variables = result.data.context_variables
        active_agent = result.data.agent or active_agent


def run_cli(
    agent_name: str = DEFAULT_AGENT,
    stream: bool = False,
    max_turns: int | None = None,
    engine: ConversationEngine | None = None,
) -> None:
    """Run the interactive shell against one of the bundled agents."""
    if agent_name not in AGENTS:
        raise ValueError(f"Unknown agent '{agent_name}'. Choose from: {', '.join(AGENTS)}")
    asyncio.run(_repl(engine or ConversationEngine(), agent_name, stream, max_turns))


if __name__ == "__main__":
    run_cli()
