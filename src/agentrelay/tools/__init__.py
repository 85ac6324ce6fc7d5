"""
Tool descriptors for agentrelay.

This module provides a decorator that turns a plain function into a :class:`Tool` an agent can
register.  Whether the tool receives context variables is declared explicitly; it is never
guessed from the function.
"""

import inspect
import logging
from typing import (
    Any,
    Callable,
    Dict,
    Mapping,
    get_origin,
    get_type_hints,
)

from agentrelay.core.schema import (
    CONTEXT_VARIABLES_ARG,
    Tool,
)

logger = logging.getLogger(__name__)

_JSON_TYPES: Mapping[Any, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    list: "array",
    dict: "object",
}


def infer_parameters(fn: Callable) -> Dict[str, Any]:
    """
    Build a JSON schema for *fn*'s keyword parameters from its signature and type hints.

    Parameters without a hint (or with a hint outside the basic JSON types) are typed as
    ``string``.  The reserved ``context_variables`` parameter is left out.
    """
    sig = inspect.signature(fn)
    type_hints = get_type_hints(fn)
    properties: Dict[str, Any] = {}
    required = []
    for param_name, param in sig.parameters.items():
        if param_name == CONTEXT_VARIABLES_ARG or param.kind in (
            inspect.Parameter.VAR_POSITIONAL,
            inspect.Parameter.VAR_KEYWORD,
        ):
            continue
        hint = type_hints.get(param_name)
        json_type = _JSON_TYPES.get(get_origin(hint) or hint, "string")
        properties[param_name] = {"type": json_type}
        if param.default is inspect.Parameter.empty:
            required.append(param_name)
    return {"type": "object", "properties": properties, "required": required}


def tool(
    name: str | None = None,
    *,
    description: str | None = None,
    takes_context_variables: bool = False,
    infer_schema: bool = False,
) -> Callable[[Callable], Tool]:
    """
    Wrap a function into a :class:`Tool`.

    The decorated name is bound to the descriptor, not the function, so it can go straight into
    ``Agent(tools=[...])``:

        @tool(takes_context_variables=True)
        def greet(context_variables: dict) -> str:
            return f"Hello {context_variables.get('user', 'there')}"

    Parameters
    ----------
    name:
        Tool name exposed to the model (defaults to the function name).
    description:
        Description for the tool manifest (defaults to the docstring).
    takes_context_variables:
        Inject the current context mapping as the ``context_variables`` keyword argument.
    infer_schema:
        Send a parameter schema built by :func:`infer_parameters` instead of an empty one.
    """

    def wrapper(fn: Callable) -> Tool:
        tool_name = name or fn.__name__
        logger.debug("Creating tool '%s'", tool_name)
        return Tool(
            name=tool_name,
            function=fn,
            description=description if description is not None else inspect.getdoc(fn) or "",
            takes_context_variables=takes_context_variables,
            parameters=infer_parameters(fn) if infer_schema else None,
        )

    return wrapper
