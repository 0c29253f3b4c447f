"""Shared test utilities for unit tests."""

from tests.utils.agui import decode_events, types_of
from tests.utils.fakes import (
    FakeAgent,
    RecordingSessionStore,
    async_iter,
    call_update,
    collect,
    finish_update,
    result_update,
    text_update,
)
from tests.utils.sse import event_types, parse_sse_event, parse_sse_stream


__all__ = [
    "FakeAgent",
    "RecordingSessionStore",
    "async_iter",
    "call_update",
    "collect",
    "decode_events",
    "event_types",
    "finish_update",
    "parse_sse_event",
    "parse_sse_stream",
    "result_update",
    "text_update",
    "types_of",
]
