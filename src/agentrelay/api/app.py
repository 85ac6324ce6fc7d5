"""
HTTP front end for agentrelay.

The API is stateless: callers send the whole history and context variables with every request and
get back the new messages plus the state to use next time.  It exposes the following endpoints:
- **GET /health**  - liveness probe for health checks.
- **GET /agents**  - list the registered agents.
- **POST /runs**   - run the engine: {"agent": "...", "messages": [...], "context_variables": {...}}
"""

import logging
from contextlib import asynccontextmanager
from typing import (
    AsyncIterator,
    Dict,
    List,
)

from fastapi import (
    Depends,
    FastAPI,
    HTTPException,
)
from fastapi.middleware.cors import CORSMiddleware

from agentrelay.agent.engine import ConversationEngine
from agentrelay.agents import AGENTS
from agentrelay.api.models import (
    AgentInfo,
    ErrorDetail,
    RunRequest,
    RunResponse,
)
from agentrelay.config import settings
from agentrelay.core.errors import ErrorCode

logger = logging.getLogger(__name__)

_engine: ConversationEngine | None = None


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    """Close the shared engine's provider connections on shutdown."""
    global _engine  # pylint: disable=global-statement
    yield
    if _engine is not None:
        logger.info("Closing completion client")
        await _engine.aclose()
        _engine = None


app = FastAPI(
    title="agentrelay API",
    version="0.1.0",
    description="Multi-agent conversation API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

_ERROR_STATUS: Dict[ErrorCode, int] = {
    ErrorCode.VALIDATION: 422,
    ErrorCode.API: 502,
    ErrorCode.TOOL_EXECUTION: 500,
    ErrorCode.TIMEOUT: 504,
    ErrorCode.CANCELLED: 499,
    ErrorCode.UNKNOWN: 500,
}


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------
def get_engine() -> ConversationEngine:
    """Return the shared engine, creating it on first use."""
    global _engine  # pylint: disable=global-statement
    if _engine is None:
        _engine = ConversationEngine()
    return _engine


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health", summary="Health check")
async def health() -> dict[str, str]:
    """Return a simple liveness payload."""
    return {"status": "ok"}


@app.get("/agents", response_model=List[AgentInfo], summary="List registered agents")
async def list_agents() -> List[AgentInfo]:
    """List the agents a run can start with."""
    return [
        AgentInfo(name=agent.name, model=agent.model, tools=[t.name for t in agent.tools])
        for agent in AGENTS.values()
    ]


@app.post("/runs", response_model=RunResponse, summary="Run a conversation")
async def create_run(
    req: RunRequest, engine: ConversationEngine = Depends(get_engine)
) -> RunResponse:
    """Continue the conversation in *req* until the engine reaches a terminal outcome."""
    agent = AGENTS.get(req.agent)
    if agent is None:
        raise HTTPException(status_code=404, detail=f"Agent '{req.agent}' is not registered.")

    result = await engine.run(
        agent,
        req.messages,
        req.context_variables,
        model_override=req.model_override,
        max_turns=req.max_turns,
        execute_tools=req.execute_tools,
    )

    if not result.success:
        error = result.error
        logger.warning("Run for agent '%s' failed: [%s] %s", req.agent, error.code.value, error)
        detail = ErrorDetail(code=error.code.value, message=str(error))
        raise HTTPException(status_code=_ERROR_STATUS[error.code], detail=detail.model_dump())

    data = result.data
    return RunResponse(
        messages=data.messages,
        agent=data.agent.name if data.agent else None,
        context_variables=data.context_variables,
    )


# ---------------------------------------------------------------------------
# Public helper to launch the API (imported by main.py)
# ---------------------------------------------------------------------------
def run_api(
    host: str = "0.0.0.0", port: int = 8000, reload: bool = False, log_level: str | None = None
) -> None:
    """Start a uvicorn server hosting *app*.

    Parameters
    ----------
    host, port:
        Bind address for the HTTP server.
    reload:
        If *True*, enable auto-reload (useful in development).
    log_level:
        Logging level to use (default from settings if not provided).
    """

    # Lazy import - keeps uvicorn an optional dependency at pkg‑import time
    import uvicorn  # pylint: disable=import-outside-toplevel

    if log_level is None:  # Use the default from settings if not provided
        log_level = settings.LOG_LEVEL

    logger.info(
        "Starting agentrelay API at %s:%d (reload=%s, log_level=%s)", host, port, reload, log_level
    )
    uvicorn.run(
        "agentrelay.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


# ---------------------------------------------------------------------------
# `python -m agentrelay.api.app` helper
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    run_api(reload=True)
