"""
Reassembly of streamed completion fragments.

Streaming providers deliver an assistant message as a sequence of deltas: text arrives in pieces,
and tool calls arrive as indexed fragments whose ``name`` and ``arguments`` are streamed text while
``id`` is an opaque token sent once.  The helpers here fold those deltas into one message.
"""

from typing import (
    Any,
    Dict,
    Mapping,
    MutableMapping,
)

from agentrelay.core.schema import Message


def merge_fields(target: MutableMapping[str, Any], source: Mapping[str, Any]) -> None:
    """
    Recursively merge *source* into *target*.

    Text values are concatenated onto the existing text (default ``""``); nested mappings are merged
    recursively, creating an empty mapping in *target* if needed.  Any other value kind is ignored.
    """
    for key, value in source.items():
        if isinstance(value, str):
            target[key] = (target.get(key) or "") + value
        elif isinstance(value, Mapping):
            if not isinstance(target.get(key), MutableMapping):
                target[key] = {}
            merge_fields(target[key], value)


def merge_chunk(final_response: MutableMapping[str, Any], delta: Mapping[str, Any]) -> None:
    """
    Fold one streamed *delta* into *final_response*.

    ``final_response["tool_calls"]`` is kept as a mapping from fragment index to the in-progress
    tool-call record.  *delta* itself is left untouched.
    """
    remainder = {k: v for k, v in delta.items() if k != "role"}
    merge_fields(final_response, remainder)

    fragments = delta.get("tool_calls") or []
    if not fragments:
        return

    records = final_response.get("tool_calls")
    if not isinstance(records, dict):
        records = final_response["tool_calls"] = {}

    for fragment in fragments:
        index = fragment.get("index", 0)
        fragment_id = fragment.get("id")
        record = records.get(index)
        if record is None:
            record = records[index] = {
                "id": fragment_id or "",
                "type": fragment.get("type") or "function",
                "function": {"name": "", "arguments": ""},
            }
        else:
            # id and type are opaque tokens: replaced wholesale, never concatenated
            if fragment_id:
                record["id"] = fragment_id
            if fragment.get("type"):
                record["type"] = fragment["type"]
        merge_fields(
            record, {k: v for k, v in fragment.items() if k not in ("id", "type", "index")}
        )


class DeltaMerger:
    """Accumulates the deltas of one model turn into an assistant :class:`Message`."""

    def __init__(self, sender: str) -> None:
        self.sender = sender
        self._response: Dict[str, Any] = {"content": "", "tool_calls": {}}

    def add(self, delta: Mapping[str, Any]) -> None:
        """Merge one delta; ``role`` and ``sender`` never reach the accumulator."""
        merge_chunk(self._response, {k: v for k, v in delta.items() if k != "sender"})

    def build(self) -> Message:
        """Return the assembled message, tool calls ordered by fragment index."""
        records = self._response.get("tool_calls") or {}
        tool_calls = [dict(records[index]) for index in sorted(records)]

        return Message.model_validate(
            {
                "role": "assistant",
                "content": self._response.get("content"),
                "sender": self.sender,
                "tool_calls": tool_calls or None,
            }
        )
