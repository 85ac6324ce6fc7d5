"""
agentrelay entry point.

This file handles startup concerns (arg-parsing, logging) and launches the appropriate interface
(API or CLI).
"""

import argparse
import logging
import sys

from agentrelay.agents import (
    AGENTS,
    DEFAULT_AGENT,
)
from agentrelay.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _init_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stdout,
    )
    # The provider SDK logs every HTTP request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the agentrelay application.

    This function sets up the command-line interface, initializes logging, and starts the
    application in either CLI or API mode.
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(description="Run agentrelay multi-agent conversations")
    parser.add_argument(
        "--mode",
        choices=["api", "cli"],
        type=str.lower,
        default="cli",
        help="Launch the REST API or the interactive CLI (default: cli)",
    )
    parser.add_argument(
        "--agent",
        choices=sorted(AGENTS),
        default=DEFAULT_AGENT,
        help="Agent to start the CLI conversation with (default: %(default)s)",
    )
    parser.add_argument(
        "--stream", action="store_true", help="Stream responses in the CLI as they are generated"
    )
    parser.add_argument(
        "--max-turns",
        type=int,
        default=None,
        help="Model turns allowed per user message (default from env: MAX_TURNS)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str.lower,
        default=settings.LOG_LEVEL,
        help="Logging level (default from env: %(default)s)",
    )
    args = parser.parse_args(argv)

    # Override log level setting with command-line argument
    settings.LOG_LEVEL = args.log_level

    _init_logging(settings.LOG_LEVEL)

    logger.info("Starting agentrelay [%s mode]", args.mode)
    logger.debug("Settings: %s", settings.model_dump(exclude={"OPENAI_API_KEY"}))

    if args.mode == "api":
        # Lazy import to avoid web dependencies if not needed
        from agentrelay.api.app import run_api  # pylint: disable=import-outside-toplevel

        run_api(host="0.0.0.0", port=settings.API_PORT, reload=settings.DEBUG)
    else:
        from agentrelay.client.cli import run_cli  # pylint: disable=import-outside-toplevel

        run_cli(agent_name=args.agent, stream=args.stream, max_turns=args.max_turns)


if __name__ == "__main__":
    main()
