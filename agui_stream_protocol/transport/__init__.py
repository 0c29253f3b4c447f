"""Wire transports for AG-UI event streams."""

from .sse import (
    SSE_HEADERS,
    AGUIServerSentEventsResponse,
    EventSink,
    encode_frames,
    pump_event_stream,
)


__all__ = [
    "SSE_HEADERS",
    "AGUIServerSentEventsResponse",
    "EventSink",
    "encode_frames",
    "pump_event_stream",
]
