"""
Session Resolver and In-Memory Session Store Tests
"""

import asyncio

import pytest

from agui_stream_protocol import (
    AgentSession,
    InMemoryAgentSessionStore,
    SessionLookupError,
    normalize_run_input,
    resolve_session,
    run_agui_stream,
)
from agui_stream_protocol.sessions import has_thread
from tests.utils import FakeAgent, RecordingSessionStore, collect, text_update


class TestResolveSession:
    """resolve_session()"""

    @pytest.mark.asyncio
    async def test_no_store_means_no_session(self) -> None:
        assert await resolve_session(FakeAgent(), None, "t1") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("thread_id", [None, "", "   "])
    async def test_blank_thread_does_not_touch_store(self, thread_id: str | None) -> None:
        # given
        store = RecordingSessionStore()

        # when
        session = await resolve_session(FakeAgent(), store, thread_id)

        # then
        assert session is None
        assert store.get_calls == []

    @pytest.mark.asyncio
    async def test_store_session_is_returned(self) -> None:
        # given
        store = RecordingSessionStore()
        store.sessions["t1"] = AgentSession(id="t1", state={"turns": 2})

        # when
        session = await resolve_session(FakeAgent(), store, "t1")

        # then
        assert session is not None
        assert session.state == {"turns": 2}
        assert store.get_calls == ["t1"]

    @pytest.mark.asyncio
    async def test_store_failure_is_lookup_error(self) -> None:
        # given
        store = RecordingSessionStore(get_error=ConnectionError("store offline"))

        # when / then
        with pytest.raises(SessionLookupError, match="store offline") as exc_info:
            await resolve_session(FakeAgent(), store, "t1")
        assert exc_info.value.thread_id == "t1"

    def test_has_thread(self) -> None:
        assert has_thread("t1")
        assert not has_thread(None)
        assert not has_thread(" ")


class TestInMemoryAgentSessionStore:
    """InMemoryAgentSessionStore"""

    @pytest.mark.asyncio
    async def test_unknown_thread_gets_fresh_session(self, session_store: InMemoryAgentSessionStore) -> None:
        # when
        session = await session_store.get_session(FakeAgent(), "t1")

        # then
        assert session is not None
        assert session.id == "t1"
        assert session.state == {}
        assert not session_store.has_session(FakeAgent(), "t1")

    @pytest.mark.asyncio
    async def test_saved_session_round_trips(self, session_store: InMemoryAgentSessionStore) -> None:
        # given
        agent = FakeAgent()
        session = AgentSession(id="t1", state={"counter": 1}, synced_message_count=2)

        # when
        await session_store.save_session(agent, "t1", session)
        loaded = await session_store.get_session(agent, "t1")

        # then
        assert loaded == session
        assert loaded is not session

    @pytest.mark.asyncio
    async def test_mutation_after_save_is_not_persisted(self, session_store: InMemoryAgentSessionStore) -> None:
        # given
        agent = FakeAgent()
        session = AgentSession(id="t1", state={"counter": 1})
        await session_store.save_session(agent, "t1", session)

        # when
        session.state["counter"] = 99
        loaded = await session_store.get_session(agent, "t1")

        # then
        assert loaded is not None
        assert loaded.state == {"counter": 1}

    @pytest.mark.asyncio
    async def test_sessions_are_scoped_per_agent(self, session_store: InMemoryAgentSessionStore) -> None:
        # given
        first, second = FakeAgent(name="first"), FakeAgent(name="second")
        await session_store.save_session(first, "t1", AgentSession(id="t1", state={"owner": "first"}))

        # when
        loaded = await session_store.get_session(second, "t1")

        # then
        assert loaded is not None
        assert loaded.state == {}

    @pytest.mark.asyncio
    async def test_clear_all(self, session_store: InMemoryAgentSessionStore) -> None:
        # given
        agent = FakeAgent()
        await session_store.save_session(agent, "t1", AgentSession(id="t1"))

        # when
        session_store.clear_all()

        # then
        assert not session_store.has_session(agent, "t1")

    @pytest.mark.asyncio
    async def test_overlapping_runs_on_one_thread_keep_the_last_save(
        self, session_store: InMemoryAgentSessionStore, run_input
    ) -> None:
        # given
        def count_turn(session: AgentSession | None) -> None:
            assert session is not None
            session.state["turns"] = session.state.get("turns", 0) + 1

        agent = FakeAgent([text_update("Hi")], on_run=count_turn)
        run = normalize_run_input(run_input)
        first = await run_agui_stream(agent, run, session_store)
        second = await run_agui_stream(agent, run, session_store)

        # when
        await asyncio.gather(collect(first), collect(second))

        # then
        stored = await session_store.get_session(agent, "t1")
        assert stored is not None
        assert stored.state == {"turns": 1}
