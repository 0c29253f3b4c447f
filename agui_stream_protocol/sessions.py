"""
Session store contract, in-memory store and session resolution.

Persistence is opt-in: without a registered store no session is resolved
and nothing is saved. With a store, a session is looked up before the
stream opens and saved once after the stream has been fully consumed.

Concurrency: each run works on its own copy of the session, loaded before
the stream opens and saved after it ends. Two concurrent runs on the same
thread therefore both start from the same stored state and the last save
wins; the other run's changes are lost. Callers that need serialized turns
per thread must not start a run before the previous one has finished.
"""

from abc import ABC, abstractmethod
from typing import Any

from loguru import logger

from .agent import AgentSession, AIAgent
from .cancellation import CancellationToken, raise_if_cancelled
from .errors import SessionLookupError


class AgentSessionStore(ABC):
    """Where AgentSessions live between runs."""

    @abstractmethod
    async def get_session(
        self,
        agent: AIAgent,
        thread_id: str,
        cancellation: CancellationToken | None = None,
    ) -> AgentSession | None: ...

    @abstractmethod
    async def save_session(
        self,
        agent: AIAgent,
        thread_id: str,
        session: AgentSession,
        cancellation: CancellationToken | None = None,
    ) -> None: ...


class InMemoryAgentSessionStore(AgentSessionStore):
    """
    Process-local session store.

    Sessions are stored as JSON snapshots, so in-place mutations made by an
    agent only become durable through save_session(). A thread without a
    stored session gets a fresh agent.create_session(). Saves overwrite
    the stored snapshot unconditionally (last save wins).

    Reads and writes never await, so they are atomic within one event loop.
    """

    def __init__(self) -> None:
        self._snapshots: dict[tuple[str, str], dict[str, Any]] = {}

    async def get_session(
        self,
        agent: AIAgent,
        thread_id: str,
        cancellation: CancellationToken | None = None,
    ) -> AgentSession | None:
        raise_if_cancelled(cancellation)
        key = (agent.id, thread_id)
        snapshot = self._snapshots.get(key)
        if snapshot is None:
            logger.info(f"[SESSION] No stored session for thread {thread_id}, creating one")
            return agent.create_session(thread_id)
        return AgentSession.model_validate(snapshot)

    async def save_session(
        self,
        agent: AIAgent,
        thread_id: str,
        session: AgentSession,
        cancellation: CancellationToken | None = None,
    ) -> None:
        raise_if_cancelled(cancellation)
        key = (agent.id, thread_id)
        self._snapshots[key] = session.model_dump(mode="json")
        logger.debug(f"[SESSION] Saved session {session.id} for thread {thread_id}")

    def has_session(self, agent: AIAgent, thread_id: str) -> bool:
        return (agent.id, thread_id) in self._snapshots

    def clear_all(self) -> None:
        self._snapshots.clear()
        logger.info("[SESSION] Cleared all stored sessions")


def has_thread(thread_id: str | None) -> bool:
    """A thread id is usable when it is not None, empty or whitespace."""
    return thread_id is not None and bool(thread_id.strip())


async def resolve_session(
    agent: AIAgent,
    session_store: AgentSessionStore | None,
    thread_id: str | None,
    cancellation: CancellationToken | None = None,
) -> AgentSession | None:
    """
    Look up the session for a thread.

    Returns None without touching the store when no store is registered or
    the thread id is blank.

    Raises:
        SessionLookupError: the store failed
    """
    if session_store is None or not has_thread(thread_id):
        return None

    assert thread_id is not None
    try:
        session = await session_store.get_session(agent, thread_id, cancellation)
    except Exception as e:
        logger.error(f"[SESSION] Lookup failed for thread {thread_id}: {e!s}")
        raise SessionLookupError(thread_id, str(e)) from e

    logger.info(
        f"[SESSION] Resolved thread {thread_id} → "
        f"{session.id if session is not None else 'no session'}"
    )
    return session
