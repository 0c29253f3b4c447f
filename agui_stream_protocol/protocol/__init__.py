"""AG-UI protocol mapping: request normalization, tool filtering and event encoding."""

from .chat_types import (
    AIContent,
    ChatMessage,
    ChatResponseUpdate,
    ChatRole,
    FinishReason,
    FunctionCallContent,
    FunctionResultContent,
    TextContent,
)
from .event_encoder import AGUIEventEncoder, encode_agui_events
from .request import (
    AG_UI_CONTEXT,
    AG_UI_FORWARDED_PROPERTIES,
    AG_UI_RUN_ID,
    AG_UI_STATE,
    AG_UI_THREAD_ID,
    ClientTool,
    NormalizedRun,
    PropertyBag,
    RunOptions,
    normalize_run_input,
    to_chat_message,
    to_chat_messages,
)
from .tool_filter import filter_server_executed_client_tools


__all__ = [
    "AG_UI_CONTEXT",
    "AG_UI_FORWARDED_PROPERTIES",
    "AG_UI_RUN_ID",
    "AG_UI_STATE",
    "AG_UI_THREAD_ID",
    "AGUIEventEncoder",
    "AIContent",
    "ChatMessage",
    "ChatResponseUpdate",
    "ChatRole",
    "ClientTool",
    "FinishReason",
    "FunctionCallContent",
    "FunctionResultContent",
    "NormalizedRun",
    "PropertyBag",
    "RunOptions",
    "TextContent",
    "encode_agui_events",
    "filter_server_executed_client_tools",
    "normalize_run_input",
    "to_chat_message",
    "to_chat_messages",
]
