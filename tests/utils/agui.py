"""Reference decoder: AG-UI events back into the content they describe.

Used to check that encoding loses nothing: text per message, tool calls
with their parsed arguments, and tool results, all in stream order.
"""

import json
from typing import Any

from ag_ui.core import BaseEvent, EventType


def decode_events(events: list[BaseEvent]) -> list[tuple[str, Any]]:
    """
    Rebuild the content sequence from an event stream.

    Returns:
        Items in order:
        - ("text", (message_id, full_text))
        - ("call", (tool_call_id, name, arguments or None))
        - ("result", (tool_call_id, parsed content))
    """
    decoded: list[tuple[str, Any]] = []
    open_text: dict[str, list[str]] = {}
    open_calls: dict[str, dict[str, Any]] = {}

    for event in events:
        match event.type:
            case EventType.TEXT_MESSAGE_START:
                open_text[event.message_id] = []
            case EventType.TEXT_MESSAGE_CONTENT:
                open_text[event.message_id].append(event.delta)
            case EventType.TEXT_MESSAGE_END:
                decoded.append(("text", (event.message_id, "".join(open_text.pop(event.message_id)))))
            case EventType.TOOL_CALL_START:
                open_calls[event.tool_call_id] = {"name": event.tool_call_name, "args": []}
            case EventType.TOOL_CALL_ARGS:
                open_calls[event.tool_call_id]["args"].append(event.delta)
            case EventType.TOOL_CALL_END:
                call = open_calls.pop(event.tool_call_id)
                arguments = json.loads("".join(call["args"])) if call["args"] else None
                decoded.append(("call", (event.tool_call_id, call["name"], arguments)))
            case EventType.TOOL_CALL_RESULT:
                decoded.append(("result", (event.tool_call_id, json.loads(event.content))))

    return decoded


def types_of(events: list[BaseEvent]) -> list[EventType]:
    return [event.type for event in events]
