"""
Native update stream → AG-UI event stream.

This module maps ChatResponseUpdate fragments onto AG-UI protocol events
(ag_ui.core). Wire framing (SSE "data:" lines) is left to ag_ui's
EventEncoder in the transport layer.

Event sequence for one run:
    RUN_STARTED
    ( TEXT_MESSAGE_START TEXT_MESSAGE_CONTENT+ TEXT_MESSAGE_END
    | TOOL_CALL_START [TOOL_CALL_ARGS] TOOL_CALL_END
    | TOOL_CALL_RESULT )*
    RUN_FINISHED | RUN_ERROR

RUN_STARTED is yielded before the upstream is pulled, so it always precedes
content even when the upstream fails on its first fragment. Exactly one
terminal event follows, also for runs without any content.
"""

import uuid
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

from ag_ui.core import (
    BaseEvent,
    EventType,
    RunErrorEvent,
    RunFinishedEvent,
    RunStartedEvent,
    TextMessageContentEvent,
    TextMessageEndEvent,
    TextMessageStartEvent,
    ToolCallArgsEvent,
    ToolCallEndEvent,
    ToolCallResultEvent,
    ToolCallStartEvent,
)
from loguru import logger

from ..cancellation import CancellationToken, raise_if_cancelled
from ..chunk_logger import chunk_logger
from ..errors import AGUIBridgeError, AdkRunError
from ..streaming import aclose_iterator
from ..utils import _to_json_text
from .chat_types import (
    ChatResponseUpdate,
    FunctionCallContent,
    FunctionResultContent,
    TextContent,
)


class AGUIEventEncoder:
    """
    Stateful mapping of updates to AG-UI events for a single run.

    Tracks the open text message so consecutive text fragments of one
    message share a single TEXT_MESSAGE_START/END pair.
    """

    def __init__(self, thread_id: str | None, run_id: str | None) -> None:
        # AG-UI lifecycle events require string ids. A run without a thread
        # (no session) is reported with an empty thread id.
        self.thread_id = thread_id or ""
        self.run_id = run_id or str(uuid.uuid4())
        self.finish_reason: str | None = None
        self._open_message_id: str | None = None
        self._fallback_message_id: str | None = None

    def run_started(self) -> RunStartedEvent:
        return RunStartedEvent(type=EventType.RUN_STARTED, thread_id=self.thread_id, run_id=self.run_id)

    def run_finished(self) -> list[BaseEvent]:
        events = self._close_text_message()
        events.append(
            RunFinishedEvent(type=EventType.RUN_FINISHED, thread_id=self.thread_id, run_id=self.run_id)
        )
        return events

    def run_error(self, error: Exception) -> RunErrorEvent:
        # Open text messages are left as they are: RUN_ERROR terminates the run.
        return RunErrorEvent(
            type=EventType.RUN_ERROR,
            message=str(error) or type(error).__name__,
            code=_error_code(error),
        )

    def convert_update(self, update: ChatResponseUpdate) -> list[BaseEvent]:
        """Map one update onto zero or more events, preserving content order."""
        events: list[BaseEvent] = []

        if update.finish_reason is not None:
            self.finish_reason = update.finish_reason.value

        for content in update.contents:
            if isinstance(content, TextContent):
                events.extend(self._process_text(content, update.message_id))
            elif isinstance(content, FunctionCallContent):
                events.extend(self._process_function_call(content, update.message_id))
            elif isinstance(content, FunctionResultContent):
                events.extend(self._process_function_result(content))

        return events

    def _process_text(self, content: TextContent, message_id: str | None) -> list[BaseEvent]:
        # AG-UI rejects empty deltas
        if not content.text:
            return []

        events: list[BaseEvent] = []
        message_id = message_id or self._current_fallback_message_id()
        if self._open_message_id != message_id:
            events.extend(self._close_text_message())
            events.append(
                TextMessageStartEvent(
                    type=EventType.TEXT_MESSAGE_START,
                    message_id=message_id,
                    role="assistant",
                )
            )
            self._open_message_id = message_id

        events.append(
            TextMessageContentEvent(
                type=EventType.TEXT_MESSAGE_CONTENT,
                message_id=message_id,
                delta=content.text,
            )
        )
        return events

    def _process_function_call(
        self, content: FunctionCallContent, parent_message_id: str | None
    ) -> list[BaseEvent]:
        events = self._close_text_message()
        # Text after a tool call belongs to a new message when the agent gave no id
        self._fallback_message_id = None

        logger.debug(f"[AGUI] Tool call {content.name}(id={content.call_id})")
        events.append(
            ToolCallStartEvent(
                type=EventType.TOOL_CALL_START,
                tool_call_id=content.call_id,
                tool_call_name=content.name,
                parent_message_id=parent_message_id,
            )
        )
        if content.arguments:
            events.append(
                ToolCallArgsEvent(
                    type=EventType.TOOL_CALL_ARGS,
                    tool_call_id=content.call_id,
                    delta=_to_json_text(content.arguments),
                )
            )
        events.append(ToolCallEndEvent(type=EventType.TOOL_CALL_END, tool_call_id=content.call_id))
        return events

    def _process_function_result(self, content: FunctionResultContent) -> list[BaseEvent]:
        events = self._close_text_message()
        self._fallback_message_id = None

        payload: Any = content.result
        if content.error is not None:
            payload = {"error": content.error, "result": content.result}

        events.append(
            ToolCallResultEvent(
                type=EventType.TOOL_CALL_RESULT,
                message_id=str(uuid.uuid4()),
                tool_call_id=content.call_id,
                content=_to_json_text(payload) if payload is not None else "",
                role="tool",
            )
        )
        return events

    def _close_text_message(self) -> list[BaseEvent]:
        if self._open_message_id is None:
            return []
        message_id, self._open_message_id = self._open_message_id, None
        return [TextMessageEndEvent(type=EventType.TEXT_MESSAGE_END, message_id=message_id)]

    def _current_fallback_message_id(self) -> str:
        if self._fallback_message_id is None:
            self._fallback_message_id = str(uuid.uuid4())
        return self._fallback_message_id


def _error_code(error: Exception) -> str:
    if isinstance(error, AdkRunError):
        return error.code
    if isinstance(error, AGUIBridgeError):
        return type(error).__name__
    return "run_failed"


def _log_event(event: BaseEvent, run_id: str) -> None:
    if chunk_logger.is_enabled():
        chunk_logger.log_chunk(
            location="agui-event",
            direction="out",
            chunk=event.model_dump(mode="json", by_alias=True, exclude_none=True),
            run_id=run_id,
        )


async def encode_agui_events(
    updates: AsyncIterable[ChatResponseUpdate],
    thread_id: str | None,
    run_id: str | None,
    cancellation: CancellationToken | None = None,
) -> AsyncIterator[BaseEvent]:
    """
    Encode an update stream as an AG-UI event stream.

    Upstream exceptions become a single RUN_ERROR event (logged once).
    Cancellation is not an error: it propagates without a terminal event.

    Args:
        updates: Filtered agent updates for one run
        thread_id: AG-UI thread id (None or empty when the run has no thread)
        run_id: AG-UI run id
        cancellation: Token checked between fragments

    Yields:
        AG-UI events, RUN_STARTED first and RUN_FINISHED/RUN_ERROR last
    """
    encoder = AGUIEventEncoder(thread_id, run_id)
    update_count = 0

    try:
        started = encoder.run_started()
        _log_event(started, encoder.run_id)
        yield started

        try:
            async for update in updates:
                raise_if_cancelled(cancellation)
                update_count += 1

                if chunk_logger.is_enabled():
                    chunk_logger.log_chunk(
                        location="agent-update",
                        direction="in",
                        chunk=update.model_dump(mode="json"),
                        run_id=encoder.run_id,
                    )

                for event in encoder.convert_update(update):
                    _log_event(event, encoder.run_id)
                    yield event
        except Exception as e:
            logger.error(
                f"[AGUI] Run {encoder.run_id} failed after {update_count} updates: "
                f"{type(e).__name__}: {e!s}"
            )
            error_event = encoder.run_error(e)
            _log_event(error_event, encoder.run_id)
            yield error_event
            return

        raise_if_cancelled(cancellation)
        logger.info(
            f"[AGUI] Run {encoder.run_id} finished: updates={update_count}, "
            f"finish_reason={encoder.finish_reason}"
        )
        for event in encoder.run_finished():
            _log_event(event, encoder.run_id)
            yield event
    finally:
        await aclose_iterator(updates)
