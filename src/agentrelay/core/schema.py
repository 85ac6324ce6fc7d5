"""
Schema definitions for engine <-> provider <-> tool messages.

These data models serve as the contract between the completion provider, the conversation engine,
and individual tools.  We keep them separate from runtime logic so they can be imported anywhere
without side-effects.
"""

from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    List,
    Literal,
    Optional,
    TypeVar,
    Union,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from agentrelay.core.errors import (
    RelayError,
    to_relay_error,
)

T = TypeVar("T")

Role = Literal["system", "user", "assistant", "tool"]

CONTEXT_VARIABLES_ARG = "context_variables"
"""Reserved keyword argument through which context variables reach a tool."""

_EMPTY_PARAMETERS: Dict[str, Any] = {"type": "object", "properties": {}, "required": []}


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------
class FunctionCall(BaseModel):
    """Function name and JSON-encoded arguments requested by the model."""

    name: str
    arguments: str = ""


class ToolCall(BaseModel):
    """A call that the model wants the engine to execute."""

    id: str = Field(..., description="Opaque token, unique within one assistant turn")
    type: str = "function"
    function: FunctionCall


class Message(BaseModel):
    """One entry of the conversation history."""

    model_config = ConfigDict(extra="ignore")

    role: Role
    content: Optional[str] = None
    sender: Optional[str] = Field(None, description="Name of the agent that produced the message")
    tool_call_id: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None

    @field_validator("tool_calls")
    @classmethod
    def _empty_tool_calls_to_none(cls, value: Optional[List[ToolCall]]) -> Optional[List[ToolCall]]:
        return value or None

    def to_wire(self) -> Dict[str, Any]:
        """Return the provider-facing mapping (no sender label, no unset fields)."""
        return self.model_dump(exclude={"sender"}, exclude_none=True)


# ---------------------------------------------------------------------------
# Tools and agents
# ---------------------------------------------------------------------------
class Tool(BaseModel):
    """
    Descriptor for a callable the model may invoke.

    ``takes_context_variables`` declares that the engine must pass the current context mapping as
    the ``context_variables`` keyword argument.  ``parameters`` is an optional JSON schema sent in
    the tool manifest; without it the manifest carries an empty object schema.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    function: Callable[..., Any]
    description: str = ""
    takes_context_variables: bool = False
    parameters: Optional[Dict[str, Any]] = None

    def to_manifest(self) -> Dict[str, Any]:
        """Return the ``tools`` entry for a completion request."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters or dict(_EMPTY_PARAMETERS),
            },
        }


class Agent(BaseModel):
    """Immutable agent configuration: model, instructions and registered tools."""

    model_config = ConfigDict(frozen=True)

    name: str = "Agent"
    model: str = "gpt-4o"
    instructions: Union[str, Callable[[], str]] = "You are a helpful agent."
    tools: List[Tool] = Field(default_factory=list)
    tool_choice: Union[str, Dict[str, Any], None] = None
    parallel_tool_calls: bool = True

    def resolve_instructions(self) -> str:
        """Return the instructions, invoking the producer if they are dynamic."""
        if callable(self.instructions):
            return self.instructions()
        return self.instructions

    def find_tool(self, name: str) -> Optional[Tool]:
        """Look up a registered tool by exact name."""
        return next((t for t in self.tools if t.name == name), None)


class ToolResult(BaseModel):
    """Structured return value a tool may use to update context or hand off."""

    value: str = ""
    agent: Optional[Agent] = None
    context_variables: Dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
class ResponseData(BaseModel):
    """Outcome of a run or of one tool-dispatch batch."""

    messages: List[Message] = Field(default_factory=list)
    agent: Optional[Agent] = None
    context_variables: Dict[str, Any] = Field(default_factory=dict)


class Result(BaseModel, Generic[T]):
    """Uniform envelope for every fallible operation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    data: Optional[T] = None
    error: Optional[RelayError] = None

    @classmethod
    def ok(cls, data: Any = None) -> "Result":
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: RelayError) -> "Result":
        return cls(success=False, error=error)

    @classmethod
    def from_exception(cls, exc: BaseException) -> "Result":
        """Convert any exception into a failed result with a tagged error."""
        return cls.failure(to_relay_error(exc))


class RetryConfig(BaseModel):
    """Backoff settings for the completion request (delays in seconds)."""

    max_retries: int = Field(3, ge=1)
    initial_delay: float = Field(1.0, ge=0)
    max_delay: float = Field(10.0, ge=0)


# ---------------------------------------------------------------------------
# Stream events
# ---------------------------------------------------------------------------
class TurnStart(BaseModel):
    """Emitted before the first delta of a model turn."""

    type: Literal["turn_start"] = "turn_start"
    sender: str


class Delta(BaseModel):
    """One raw fragment of a streamed completion."""

    type: Literal["delta"] = "delta"
    sender: str
    delta: Dict[str, Any]


class TurnEnd(BaseModel):
    """Emitted once a model turn's deltas are exhausted."""

    type: Literal["turn_end"] = "turn_end"
    sender: str


class Final(BaseModel):
    """Last event of a stream, carrying the terminal result."""

    type: Literal["final"] = "final"
    result: Result


StreamEvent = Union[TurnStart, Delta, TurnEnd, Final]
