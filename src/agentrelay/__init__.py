"""
agentrelay: multi-turn LLM conversations with tool calls and agent handoff.

The public surface is re-exported here so callers can write ``from agentrelay import Agent``.
"""

from agentrelay.agent.cancellation import CancellationToken
from agentrelay.agent.completion import (
    CompletionClient,
    OpenAIClient,
    load_client,
    register_client,
)
from agentrelay.agent.engine import (
    ConversationEngine,
    EventStream,
)
from agentrelay.agent.merge import (
    DeltaMerger,
    merge_chunk,
    merge_fields,
)
from agentrelay.agent.retry import retry
from agentrelay.agent.tool_executor import handle_tool_calls
from agentrelay.core.errors import (
    APIError,
    ErrorCode,
    OperationTimeoutError,
    RelayError,
    RunCancelledError,
    ToolExecutionError,
    UnknownError,
    ValidationError,
)
from agentrelay.core.schema import (
    Agent,
    Delta,
    Final,
    FunctionCall,
    Message,
    ResponseData,
    Result,
    RetryConfig,
    StreamEvent,
    Tool,
    ToolCall,
    ToolResult,
    TurnEnd,
    TurnStart,
)
from agentrelay.tools import tool
from agentrelay.tools.argument_parser import parse_arguments

__all__ = [
    "APIError",
    "Agent",
    "CancellationToken",
    "CompletionClient",
    "ConversationEngine",
    "Delta",
    "DeltaMerger",
    "ErrorCode",
    "EventStream",
    "Final",
    "FunctionCall",
    "Message",
    "OpenAIClient",
    "OperationTimeoutError",
    "RelayError",
    "ResponseData",
    "Result",
    "RetryConfig",
    "RunCancelledError",
    "StreamEvent",
    "Tool",
    "ToolCall",
    "ToolExecutionError",
    "ToolResult",
    "TurnEnd",
    "TurnStart",
    "UnknownError",
    "ValidationError",
    "handle_tool_calls",
    "load_client",
    "merge_chunk",
    "merge_fields",
    "parse_arguments",
    "register_client",
    "retry",
    "tool",
]
