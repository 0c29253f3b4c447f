"""
SSE transport for AG-UI event streams (HTTP Server-Sent Events).

Responsibilities:
- Encode AG-UI events with ag_ui's EventEncoder (one event → one frame)
- Write frames as soon as they are produced, no buffering
- Pull the first frame before committing the response, so failures that
  happen before anything was sent still become a request-level error
- Treat client disconnects as a normal, quiet end of the stream
- Log failures that happen after the response was committed (the status
  code can no longer change) and terminate the stream
"""

from collections.abc import AsyncIterable, AsyncIterator, Mapping
from typing import Protocol

from ag_ui.core import BaseEvent
from ag_ui.encoder import EventEncoder
from loguru import logger
from starlette.responses import StreamingResponse
from starlette.types import Send

from ..cancellation import CancellationToken
from ..errors import ClientDisconnectedError
from ..streaming import aclose_iterator


DEFAULT_ACCEPT = "text/event-stream"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class EventSink(Protocol):
    """Incrementally flushed output channel."""

    async def start(self) -> None:
        """Commit the response (status and headers)."""

    async def write(self, chunk: str | bytes) -> None:
        """Write and flush one frame. Raises ClientDisconnectedError when the client is gone."""

    async def close(self) -> None:
        """Finish the response."""


async def encode_frames(events: AsyncIterable[BaseEvent], encoder: EventEncoder) -> AsyncIterator[str]:
    """Frame each AG-UI event as it arrives."""
    try:
        async for event in events:
            yield encoder.encode(event)
    finally:
        await aclose_iterator(events)


async def pump_event_stream(
    chunks: AsyncIterable[str | bytes],
    sink: EventSink,
    cancellation: CancellationToken | None = None,
) -> int:
    """
    Copy frames from chunks to sink until the stream ends.

    Raises:
        Exception: anything raised while producing the first frame, before
            the sink was started

    Returns:
        Number of frames written
    """
    iterator = aiter(chunks)
    sent = 0
    finished = False
    try:
        try:
            first = await anext(iterator)
        except StopAsyncIteration:
            first = None

        await sink.start()
        try:
            if first is not None:
                await sink.write(first)
                sent += 1
                async for chunk in iterator:
                    await sink.write(chunk)
                    sent += 1
        except (ClientDisconnectedError, OSError):
            logger.info(f"[SSE] Client disconnected after {sent} events, stopping stream")
            return sent
        except Exception:
            logger.exception(f"[SSE] Stream failed after {sent} events; response already committed")
            await sink.close()
            return sent

        await sink.close()
        finished = True
        logger.info(f"[SSE] Streamed {sent} events to client")
        return sent
    finally:
        if not finished and cancellation is not None:
            cancellation.cancel("stream terminated before completion")
        await aclose_iterator(iterator)


class _AsgiSink:
    def __init__(self, send: Send, status_code: int, raw_headers: list[tuple[bytes, bytes]], charset: str) -> None:
        self._send = send
        self._status_code = status_code
        self._raw_headers = raw_headers
        self._charset = charset

    async def start(self) -> None:
        await self._send(
            {"type": "http.response.start", "status": self._status_code, "headers": self._raw_headers}
        )

    async def write(self, chunk: str | bytes) -> None:
        body = chunk.encode(self._charset) if isinstance(chunk, str) else chunk
        try:
            await self._send({"type": "http.response.body", "body": body, "more_body": True})
        except OSError as e:
            raise ClientDisconnectedError(str(e)) from e

    async def close(self) -> None:
        await self._send({"type": "http.response.body", "body": b"", "more_body": False})


class AGUIServerSentEventsResponse(StreamingResponse):
    """
    StreamingResponse for AG-UI event streams.

    Content type is negotiated from the Accept header through EventEncoder
    (text/event-stream by default).
    """

    def __init__(
        self,
        events: AsyncIterable[BaseEvent],
        accept: str | None = None,
        cancellation: CancellationToken | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.encoder = EventEncoder(accept=accept or DEFAULT_ACCEPT)
        self.cancellation = cancellation
        super().__init__(
            content=encode_frames(events, self.encoder),
            media_type=self.encoder.get_content_type(),
            headers={**SSE_HEADERS, **(headers or {})},
        )

    async def stream_response(self, send: Send) -> None:
        sink = _AsgiSink(send, self.status_code, self.raw_headers, self.charset)
        await pump_event_stream(self.body_iterator, sink, self.cancellation)
