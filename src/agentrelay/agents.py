"""
Bundled demo agents.

``TriageAgent`` answers general questions with the utility tools and hands weather questions to
``WeatherAgent``, which hands back once it is done.  Both are registered in :data:`AGENTS` for the
CLI and the HTTP front end.
"""

from datetime import datetime
from typing import Dict

from agentrelay.config import settings
from agentrelay.core.schema import Agent
from agentrelay.tools import tool
from agentrelay.tools.builtin import (
    calculate,
    convert_length,
    echo,
    get_weather,
    recall,
    remember,
)


@tool()
def transfer_to_weather_agent() -> Agent:
    """Hand the conversation to the weather specialist."""
    return weather_agent


@tool()
def transfer_back_to_triage() -> Agent:
    """Hand the conversation back to the general assistant."""
    return triage_agent


def _triage_instructions() -> str:
    return (
        "You are a helpful assistant. Use calculate for arithmetic, convert_length for unit "
        "conversions, remember/recall to keep facts about the user and echo to repeat text. "
        "Transfer weather questions to the weather agent. "
        f"Today is {datetime.now():%A, %d %B %Y}."
    )


triage_agent = Agent(
    name="TriageAgent",
    model=settings.DEFAULT_MODEL,
    instructions=_triage_instructions,
    tools=[calculate, convert_length, remember, recall, echo, transfer_to_weather_agent],
)

weather_agent = Agent(
    name="WeatherAgent",
    model=settings.DEFAULT_MODEL,
    instructions=(
        "You report current weather. Call get_weather for each city asked about, summarise the "
        "result briefly, then transfer back to triage for anything else."
    ),
    tools=[get_weather, transfer_back_to_triage],
)

AGENTS: Dict[str, Agent] = {agent.name: agent for agent in (triage_agent, weather_agent)}
"""Demo agents by name."""

DEFAULT_AGENT = triage_agent.name
