"""
Parser for the raw argument payload of a tool call.

The model delivers arguments as a JSON-encoded string such as ``{"location": "Paris"}``.  This
module turns that string into a keyword-argument mapping or raises a
:class:`~agentrelay.core.errors.ValidationError` that keeps the offending text.
"""

import json
from typing import (
    Any,
    Dict,
)

from agentrelay.core.errors import ValidationError


def parse_arguments(text: str | None) -> Dict[str, Any]:
    """
    Parse *text* as a JSON object.

    A missing or blank payload is treated as ``{}`` (models send that for zero-argument tools).

    Raises
    ------
    ValidationError
        If *text* is not valid JSON or does not decode to an object.  ``raw_text`` holds the input
        and ``__cause__`` the underlying decode error.
    """
    if text is None or not text.strip():
        return {}

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationError(
            f"Failed to parse function arguments: {text}", raw_text=text
        ) from exc

    if not isinstance(parsed, dict):
        raise ValidationError(
            f"Function arguments must be a JSON object, got {type(parsed).__name__}: {text}",
            raw_text=text,
        )
    return parsed
