"""
SSE Transport Tests

pump_event_stream(): incremental writes, request-level failures before the
first frame, quiet disconnects, logged failures after commit.
AGUIServerSentEventsResponse: headers and framing over HTTP.
"""

import pytest
from ag_ui.core import EventType, RunFinishedEvent, RunStartedEvent
from ag_ui.encoder import EventEncoder
from fastapi import FastAPI
from fastapi.testclient import TestClient
from loguru import logger

from agui_stream_protocol import (
    AGUIServerSentEventsResponse,
    ClientDisconnectedError,
    normalize_run_input,
    pump_event_stream,
    run_agui_stream,
)
from agui_stream_protocol.transport import encode_frames
from tests.utils import FakeAgent, RecordingSessionStore, async_iter, parse_sse_stream, text_update


class FakeSink:
    """Records sink calls; optionally disconnects on the Nth write."""

    def __init__(self, disconnect_on_write: int | None = None) -> None:
        self.calls: list[str] = []
        self.frames: list[str] = []
        self.disconnect_on_write = disconnect_on_write

    async def start(self) -> None:
        self.calls.append("start")

    async def write(self, chunk: str | bytes) -> None:
        if self.disconnect_on_write is not None and len(self.frames) + 1 == self.disconnect_on_write:
            raise ClientDisconnectedError("connection reset")
        self.calls.append("write")
        self.frames.append(chunk)

    async def close(self) -> None:
        self.calls.append("close")


class TestPumpEventStream:
    """pump_event_stream()"""

    @pytest.mark.asyncio
    async def test_frames_are_written_in_order(self) -> None:
        # given
        sink = FakeSink()

        # when
        sent = await pump_event_stream(async_iter(["one", "two", "three"]), sink)

        # then
        assert sent == 3
        assert sink.frames == ["one", "two", "three"]
        assert sink.calls == ["start", "write", "write", "write", "close"]

    @pytest.mark.asyncio
    async def test_empty_stream_commits_and_closes(self) -> None:
        # given
        sink = FakeSink()

        # when
        sent = await pump_event_stream(async_iter([]), sink)

        # then
        assert sent == 0
        assert sink.calls == ["start", "close"]

    @pytest.mark.asyncio
    async def test_failure_before_first_frame_is_raised_uncommitted(self, cancellation) -> None:
        # given
        sink = FakeSink()

        async def failing():
            raise LookupError("no agent")
            yield  # pragma: no cover

        # when / then
        with pytest.raises(LookupError):
            await pump_event_stream(failing(), sink, cancellation)
        assert sink.calls == []
        assert cancellation.cancelled

    @pytest.mark.asyncio
    async def test_failure_after_commit_terminates_stream(self, cancellation) -> None:
        # given
        sink = FakeSink()

        async def failing():
            yield "one"
            raise RuntimeError("broken pipe in encoder")

        # when
        sent = await pump_event_stream(failing(), sink, cancellation)

        # then
        assert sent == 1
        assert sink.calls == ["start", "write", "close"]
        assert cancellation.cancelled

    @pytest.mark.asyncio
    async def test_disconnect_ends_quietly_and_cancels(self, cancellation) -> None:
        # given
        sink = FakeSink(disconnect_on_write=2)
        source_closed = False

        async def source():
            nonlocal source_closed
            try:
                for frame in ["one", "two", "three"]:
                    yield frame
            finally:
                source_closed = True

        # when
        sent = await pump_event_stream(source(), sink, cancellation)

        # then
        assert sent == 1
        assert sink.frames == ["one"]
        assert "close" not in sink.calls
        assert cancellation.cancelled
        assert source_closed

    @pytest.mark.asyncio
    async def test_completed_stream_does_not_cancel(self, cancellation) -> None:
        # when
        await pump_event_stream(async_iter(["one"]), FakeSink(), cancellation)

        # then
        assert not cancellation.cancelled

    @pytest.mark.asyncio
    async def test_agent_failure_is_logged_once(self, run_input, cancellation) -> None:
        # given
        agent = FakeAgent([text_update("Hel"), text_update("lo")], fail_with=RuntimeError("model crashed"))
        events = await run_agui_stream(agent, normalize_run_input(run_input), RecordingSessionStore(), cancellation)
        sink = FakeSink()
        records = []
        handler_id = logger.add(records.append, level="ERROR", format="{message}")

        # when
        try:
            await pump_event_stream(encode_frames(events, EventEncoder()), sink, cancellation)
        finally:
            logger.remove(handler_id)

        # then
        assert len(records) == 1
        assert "model crashed" in records[0]
        assert records[0].record["level"].name == "ERROR"
        assert records[0].record["exception"] is None
        assert not any("[SSE]" in message for message in records)
        assert '"RUN_ERROR"' in sink.frames[-1]
        assert sink.calls[-1] == "close"


class TestAGUIServerSentEventsResponse:
    """HTTP response"""

    def test_events_are_framed_as_sse(self, app: FastAPI) -> None:
        # given
        @app.get("/events")
        async def events():
            return AGUIServerSentEventsResponse(
                async_iter(
                    [
                        RunStartedEvent(type=EventType.RUN_STARTED, thread_id="t1", run_id="run-1"),
                        RunFinishedEvent(type=EventType.RUN_FINISHED, thread_id="t1", run_id="run-1"),
                    ]
                )
            )

        # when
        response = TestClient(app).get("/events", headers={"Accept": "text/event-stream"})

        # then
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["x-accel-buffering"] == "no"
        events = parse_sse_stream(response.text)
        assert [event["type"] for event in events] == ["RUN_STARTED", "RUN_FINISHED"]
        assert all(event["threadId"] == "t1" and event["runId"] == "run-1" for event in events)
