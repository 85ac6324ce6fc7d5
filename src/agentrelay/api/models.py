"""
Pydantic models for agentrelay API requests and responses.
This module defines the request and response schemas used by the agentrelay API.
"""

from typing import (
    Any,
    Dict,
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
)

from agentrelay.agents import DEFAULT_AGENT
from agentrelay.core.schema import Message


# ---------------------------------------------------------------------------
# Pydantic request / response schema
# ---------------------------------------------------------------------------
class RunRequest(BaseModel):
    """Conversation to continue, with the agent that should answer."""

    agent: str = Field(DEFAULT_AGENT, description="Name of the registered agent to start with")
    messages: List[Message] = Field(..., min_length=1, description="Conversation history so far")
    context_variables: Dict[str, Any] = Field(default_factory=dict)
    max_turns: Optional[int] = Field(None, ge=0, description="Model turns allowed for this run")
    execute_tools: bool = True
    model_override: Optional[str] = None


class RunResponse(BaseModel):
    """Messages produced by the run and the state to send back next time."""

    messages: List[Message]
    agent: Optional[str] = Field(None, description="Agent active when the run ended")
    context_variables: Dict[str, Any] = Field(default_factory=dict)


class AgentInfo(BaseModel):
    """Public description of a registered agent."""

    name: str
    model: str
    tools: List[str]


class ErrorDetail(BaseModel):
    """Tagged error returned when a run fails."""

    code: str
    message: str
