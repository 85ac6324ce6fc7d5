"""Tests for parsing a tool call's raw argument payload."""

import json

import pytest

from agentrelay.core.errors import (
    ErrorCode,
    ValidationError,
)
from agentrelay.tools.argument_parser import parse_arguments


def test_empty_object() -> None:
    assert parse_arguments("{}") == {}


def test_object_with_values() -> None:
    assert parse_arguments('{"location": "Paris", "days": 3}') == {"location": "Paris", "days": 3}


@pytest.mark.parametrize("text", ["", "   ", None])
def test_blank_payload_is_empty_mapping(text) -> None:
    assert parse_arguments(text) == {}


def test_malformed_payload_keeps_text_and_cause() -> None:
    with pytest.raises(ValidationError) as info:
        parse_arguments("not json")

    exc = info.value
    assert exc.code is ErrorCode.VALIDATION
    assert exc.raw_text == "not json"
    assert "not json" in str(exc)
    assert isinstance(exc.cause, json.JSONDecodeError)


def test_non_object_payload_is_rejected() -> None:
    with pytest.raises(ValidationError) as info:
        parse_arguments("[1, 2]")

    assert info.value.raw_text == "[1, 2]"
    assert "list" in str(info.value)
