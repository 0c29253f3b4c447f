"""
AG-UI Stream Protocol

Exposes streaming agents to AG-UI clients over HTTP Server-Sent Events.

Layers:
    - endpoint: FastAPI route (map_agui) and session store registration
    - bridge: run pipeline (driver → tool filter → completion callback → encoder)
    - protocol: AG-UI request normalization, tool-call filtering, event encoding
    - transport: SSE response
    - adk: Google ADK agent implementation (import agui_stream_protocol.adk)
"""

from .activity_processor import Activity, CardAction, SuggestedActions, process_activities
from .agent import AgentSession, AIAgent
from .bridge import drive_agent, run_agui_stream
from .cancellation import CancellationToken, RunCancelledError
from .chunk_logger import ChunkLogger, chunk_logger
from .config import BridgeSettings
from .endpoint import get_session_store, map_agui, read_normalized_run, register_session_store
from .errors import (
    AdkRunError,
    AGUIBridgeError,
    ClientDisconnectedError,
    MalformedRequestError,
    SessionLookupError,
    SessionPersistenceError,
)
from .logging_config import configure_logging
from .protocol import (
    AGUIEventEncoder,
    ChatMessage,
    ChatResponseUpdate,
    ChatRole,
    ClientTool,
    FinishReason,
    FunctionCallContent,
    FunctionResultContent,
    NormalizedRun,
    PropertyBag,
    RunOptions,
    TextContent,
    encode_agui_events,
    filter_server_executed_client_tools,
    normalize_run_input,
)
from .sessions import AgentSessionStore, InMemoryAgentSessionStore, resolve_session
from .streaming import with_completion_callback
from .transport import AGUIServerSentEventsResponse, pump_event_stream


__all__ = [
    "AGUIBridgeError",
    "AGUIEventEncoder",
    "AGUIServerSentEventsResponse",
    "AIAgent",
    "Activity",
    "AdkRunError",
    "AgentSession",
    "AgentSessionStore",
    "BridgeSettings",
    "CancellationToken",
    "CardAction",
    "ChatMessage",
    "ChatResponseUpdate",
    "ChatRole",
    "ChunkLogger",
    "ClientDisconnectedError",
    "ClientTool",
    "FinishReason",
    "FunctionCallContent",
    "FunctionResultContent",
    "InMemoryAgentSessionStore",
    "MalformedRequestError",
    "NormalizedRun",
    "PropertyBag",
    "RunCancelledError",
    "RunOptions",
    "SessionLookupError",
    "SessionPersistenceError",
    "SuggestedActions",
    "TextContent",
    "chunk_logger",
    "configure_logging",
    "drive_agent",
    "encode_agui_events",
    "filter_server_executed_client_tools",
    "get_session_store",
    "map_agui",
    "normalize_run_input",
    "process_activities",
    "pump_event_stream",
    "read_normalized_run",
    "register_session_store",
    "resolve_session",
    "run_agui_stream",
    "with_completion_callback",
]
