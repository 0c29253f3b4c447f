"""
Tool-Call Filter - drop server-side executions of client-declared tools.

When the client declares a tool, it expects to execute that tool itself. If
the agent nevertheless executed a call to it server-side (a call followed by
a result for the same call_id), the client must not see that trace: both the
call and its result are removed.

Pairing window:
    A window opens on an update carrying a call to a client tool. Following
    updates are held while they contain only tool calls/results. The first
    other update (text, finish marker, ...) or the end of the stream closes
    the window and releases the held updates in their original order, minus
    the suppressed call/result pairs. Nothing is buffered outside a window.

    Suppression only covers a call and result that arrive in consecutive
    tool-only updates. Once text (or any other content) arrives between
    them, or in the same update as the result, the window is already
    closed and both the call and the result reach the client.

Matching is by tool name only. A server tool sharing a name with a client
tool is therefore suppressed too when it returns a result in the window.
"""

from collections.abc import AsyncIterable, AsyncIterator, Iterable

from loguru import logger

from ..cancellation import CancellationToken, raise_if_cancelled
from ..streaming import aclose_iterator
from .chat_types import ChatResponseUpdate, FunctionCallContent, FunctionResultContent


def _is_tool_only(update: ChatResponseUpdate) -> bool:
    return bool(update.contents) and all(
        isinstance(content, FunctionCallContent | FunctionResultContent)
        for content in update.contents
    )


class _PairingWindow:
    def __init__(self, client_tool_names: frozenset[str]) -> None:
        self._client_tool_names = client_tool_names
        self._updates: list[ChatResponseUpdate] = []
        self._client_call_ids: set[str] = set()
        self._server_executed: set[str] = set()

    @property
    def is_open(self) -> bool:
        return bool(self._updates)

    def opens_with(self, update: ChatResponseUpdate) -> bool:
        return any(
            isinstance(content, FunctionCallContent) and content.name in self._client_tool_names
            for content in update.contents
        )

    def hold(self, update: ChatResponseUpdate) -> None:
        for content in update.contents:
            if isinstance(content, FunctionCallContent) and content.name in self._client_tool_names:
                self._client_call_ids.add(content.call_id)
            elif (
                isinstance(content, FunctionResultContent)
                and content.call_id in self._client_call_ids
            ):
                self._server_executed.add(content.call_id)
        self._updates.append(update)

    def release(self) -> Iterable[ChatResponseUpdate]:
        updates, suppressed = self._updates, self._server_executed
        self._updates = []
        self._client_call_ids = set()
        self._server_executed = set()

        if suppressed:
            logger.debug(f"[FILTER] Suppressing server-executed client tool calls: {sorted(suppressed)}")

        for update in updates:
            if not suppressed:
                yield update
                continue
            kept = [
                content
                for content in update.contents
                if not (
                    isinstance(content, FunctionCallContent | FunctionResultContent)
                    and content.call_id in suppressed
                )
            ]
            if len(kept) == len(update.contents):
                yield update
            elif kept or update.finish_reason is not None:
                yield update.model_copy(update={"contents": kept})


async def filter_server_executed_client_tools(
    updates: AsyncIterable[ChatResponseUpdate],
    client_tool_names: Iterable[str] | None,
    cancellation: CancellationToken | None = None,
) -> AsyncIterator[ChatResponseUpdate]:
    """
    Remove server-side executions of client-declared tools from an update stream.

    Order is preserved and the output never has more updates than the input.
    With no client tools the stream passes through untouched.
    """
    names = frozenset(client_tool_names or ())
    window = _PairingWindow(names)
    try:
        async for update in updates:
            raise_if_cancelled(cancellation)
            if not names:
                yield update
                continue

            if window.is_open and not _is_tool_only(update):
                for released in window.release():
                    yield released

            if window.is_open or window.opens_with(update):
                window.hold(update)
                continue

            yield update
    finally:
        await aclose_iterator(updates)

    raise_if_cancelled(cancellation)
    for released in window.release():
        yield released
