"""Demo tools used by the bundled agents."""

import ast
import operator
from typing import (
    Any,
    Callable,
    Dict,
)

from agentrelay.core.schema import ToolResult
from agentrelay.tools import tool

_WEATHER: Dict[str, Dict[str, Any]] = {
    "london": {"temp_c": 12, "condition": "Light rain", "humidity": 81},
    "paris": {"temp_c": 17, "condition": "Partly cloudy", "humidity": 64},
    "new york": {"temp_c": 22, "condition": "Sunny", "humidity": 48},
    "tokyo": {"temp_c": 25, "condition": "Humid", "humidity": 77},
}

_OPERATORS: Dict[type, Callable[..., Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: operator.pow,
    ast.Mod: operator.mod,
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}

_LENGTH_UNITS = {"mm": 0.001, "cm": 0.01, "m": 1.0, "km": 1000.0, "in": 0.0254, "ft": 0.3048}

_MAX_EXPONENT = 100


def _evaluate(node: ast.AST) -> float:
    if isinstance(node, ast.Expression):
        return _evaluate(node.body)
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _OPERATORS:
        left, right = _evaluate(node.left), _evaluate(node.right)
        if isinstance(node.op, ast.Pow) and abs(right) > _MAX_EXPONENT:
            raise ValueError(f"Exponent {right} exceeds the limit of {_MAX_EXPONENT}")
        return _OPERATORS[type(node.op)](left, right)
    if isinstance(node, ast.UnaryOp) and type(node.op) in _OPERATORS:
        return _OPERATORS[type(node.op)](_evaluate(node.operand))
    raise ValueError(f"Unsupported expression element: {ast.dump(node)}")


@tool(infer_schema=True)
def echo(text: str) -> str:
    """Echo the input text back to the caller."""
    return text


@tool(infer_schema=True)
def calculate(expression: str) -> float:
    """Evaluate an arithmetic expression such as '(2 + 3) * 4'."""
    return _evaluate(ast.parse(expression, mode="eval"))


@tool(infer_schema=True)
def get_weather(location: str) -> Dict[str, Any]:
    """Return current weather conditions for a city."""
    report = _WEATHER.get(location.strip().lower())
    if report is None:
        return {"location": location, "error": "No weather data for this location"}
    return {"location": location, **report}


@tool(infer_schema=True)
def convert_length(value: float, from_unit: str, to_unit: str) -> float:
    """Convert a length between mm, cm, m, km, in and ft."""
    try:
        return value * _LENGTH_UNITS[from_unit] / _LENGTH_UNITS[to_unit]
    except KeyError as exc:
        raise ValueError(f"Unknown unit: {exc.args[0]}") from exc


@tool(takes_context_variables=True, infer_schema=True)
def remember(key: str, value: str, context_variables: Dict[str, Any]) -> ToolResult:
    """Store a fact about the user for later turns."""
    known = len(context_variables)
    return ToolResult(
        value=f"Remembered {key}. {known} fact(s) were known before.",
        context_variables={key: value},
    )


@tool(takes_context_variables=True)
def recall(context_variables: Dict[str, Any]) -> Dict[str, Any]:
    """Return every fact remembered so far."""
    return context_variables
