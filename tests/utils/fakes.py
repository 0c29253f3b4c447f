"""Fake collaborators (agents, session stores) and update factories for tests."""

from collections.abc import AsyncIterable, AsyncIterator, Callable, Sequence
from typing import Any, TypeVar

from agui_stream_protocol import (
    AgentSession,
    AgentSessionStore,
    AIAgent,
    CancellationToken,
    ChatMessage,
    ChatResponseUpdate,
    ChatRole,
    FinishReason,
    FunctionCallContent,
    FunctionResultContent,
    RunOptions,
    TextContent,
)
from agui_stream_protocol.cancellation import raise_if_cancelled


_T = TypeVar("_T")


# ============================================================
# Update factories
# ============================================================


def text_update(text: str, message_id: str | None = "msg-1") -> ChatResponseUpdate:
    return ChatResponseUpdate(contents=[TextContent(text=text)], message_id=message_id)


def call_update(
    call_id: str,
    name: str,
    arguments: dict[str, Any] | None = None,
    message_id: str | None = "msg-1",
) -> ChatResponseUpdate:
    return ChatResponseUpdate(
        contents=[FunctionCallContent(call_id=call_id, name=name, arguments=arguments)],
        message_id=message_id,
    )


def result_update(call_id: str, result: Any, finish_reason: FinishReason | None = None) -> ChatResponseUpdate:
    return ChatResponseUpdate(
        role=ChatRole.TOOL,
        contents=[FunctionResultContent(call_id=call_id, result=result)],
        finish_reason=finish_reason,
    )


def finish_update(reason: FinishReason = FinishReason.STOP) -> ChatResponseUpdate:
    return ChatResponseUpdate(finish_reason=reason)


async def async_iter(items: Sequence[_T]) -> AsyncIterator[_T]:
    for item in items:
        yield item


async def collect(source: AsyncIterable[_T]) -> list[_T]:
    return [item async for item in source]


# ============================================================
# Agent
# ============================================================


class FakeAgent(AIAgent):
    """Scripted agent.

    Yields the given updates in order. When fail_with is set, raises it after
    fail_after updates (after all of them when fail_after is None).
    on_run is called with the session before the first update.
    """

    def __init__(
        self,
        updates: Sequence[ChatResponseUpdate] = (),
        fail_with: Exception | None = None,
        fail_after: int | None = None,
        on_run: Callable[[AgentSession | None], None] | None = None,
        name: str = "fake_agent",
    ) -> None:
        super().__init__(name=name)
        self.updates = list(updates)
        self.fail_with = fail_with
        self.fail_after = fail_after
        self.on_run = on_run
        self.calls: list[dict[str, Any]] = []
        self.yielded = 0
        self.closed = False

    async def run_streaming(
        self,
        messages: Sequence[ChatMessage],
        session: AgentSession | None = None,
        options: RunOptions | None = None,
        cancellation: CancellationToken | None = None,
    ) -> AsyncIterator[ChatResponseUpdate]:
        self.calls.append(
            {"messages": list(messages), "session": session, "options": options, "cancellation": cancellation}
        )
        if self.on_run is not None:
            self.on_run(session)
        try:
            for index, update in enumerate(self.updates):
                if self.fail_with is not None and self.fail_after == index:
                    raise self.fail_with
                raise_if_cancelled(cancellation)
                self.yielded += 1
                yield update
            if self.fail_with is not None and self.fail_after in (None, len(self.updates)):
                raise self.fail_with
        finally:
            self.closed = True


# ============================================================
# Session store
# ============================================================


class RecordingSessionStore(AgentSessionStore):
    """Dict-backed session store that records every call."""

    def __init__(self, get_error: Exception | None = None, save_error: Exception | None = None) -> None:
        self.sessions: dict[str, AgentSession] = {}
        self.get_calls: list[str] = []
        self.save_calls: list[tuple[str, AgentSession]] = []
        self.get_error = get_error
        self.save_error = save_error

    async def get_session(
        self,
        agent: AIAgent,
        thread_id: str,
        cancellation: CancellationToken | None = None,
    ) -> AgentSession | None:
        self.get_calls.append(thread_id)
        if self.get_error is not None:
            raise self.get_error
        if thread_id not in self.sessions:
            return agent.create_session(thread_id)
        return self.sessions[thread_id].model_copy(deep=True)

    async def save_session(
        self,
        agent: AIAgent,
        thread_id: str,
        session: AgentSession,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self.save_calls.append((thread_id, session))
        if self.save_error is not None:
            raise self.save_error
        self.sessions[thread_id] = session.model_copy(deep=True)
