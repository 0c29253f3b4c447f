"""
AG-UI run pipeline.

    RunAgentInput
      → normalize_run_input()                 (protocol/request.py)
      → resolve_session()                     (sessions.py, before the stream opens)
      → drive_agent()                         agent.run_streaming()
      → filter_server_executed_client_tools() (protocol/tool_filter.py)
      → with_completion_callback()            save the session, only with a session
      → encode_agui_events()                  (protocol/event_encoder.py)
      → AGUIServerSentEventsResponse          (transport/sse.py)

Every stage is a lazy async generator pulling from the previous one, so at
most one fragment is in flight per stage and a slow client throttles the
agent. One CancellationToken is shared by all stages.
"""

from collections.abc import AsyncIterator, Awaitable, Callable

from ag_ui.core import BaseEvent
from loguru import logger

from .agent import AgentSession, AIAgent
from .cancellation import CancellationToken, raise_if_cancelled
from .errors import SessionPersistenceError
from .protocol.chat_types import ChatResponseUpdate
from .protocol.event_encoder import encode_agui_events
from .protocol.request import NormalizedRun
from .protocol.tool_filter import filter_server_executed_client_tools
from .sessions import AgentSessionStore, resolve_session
from .streaming import aclose_iterator, with_completion_callback


async def drive_agent(
    agent: AIAgent,
    run: NormalizedRun,
    session: AgentSession | None,
    cancellation: CancellationToken | None = None,
) -> AsyncIterator[ChatResponseUpdate]:
    """Start one agent run and relay its updates until it completes or is cancelled."""
    raise_if_cancelled(cancellation)
    logger.info(
        f"[AGUI] Starting agent '{agent.name}' run {run.run_id} "
        f"(thread={run.thread_id!r}, session={session.id if session else None})"
    )

    update_count = 0
    updates = agent.run_streaming(run.messages, session=session, options=run.options, cancellation=cancellation)
    try:
        async for update in updates:
            raise_if_cancelled(cancellation)
            update_count += 1
            yield update
    finally:
        # Propagate early termination (cancellation, consumer stop) to the agent
        await aclose_iterator(updates)
        logger.debug(f"[AGUI] Agent run {run.run_id} relayed {update_count} updates")


def _session_saver(
    agent: AIAgent,
    session_store: AgentSessionStore,
    thread_id: str,
    session: AgentSession,
    cancellation: CancellationToken | None,
) -> Callable[[], Awaitable[None]]:
    async def save() -> None:
        try:
            await session_store.save_session(agent, thread_id, session, cancellation)
        except Exception as e:
            raise SessionPersistenceError(thread_id, str(e)) from e
        logger.info(f"[SESSION] Persisted session {session.id} for thread {thread_id}")

    return save


async def run_agui_stream(
    agent: AIAgent,
    run: NormalizedRun,
    session_store: AgentSessionStore | None = None,
    cancellation: CancellationToken | None = None,
) -> AsyncIterator[BaseEvent]:
    """
    Resolve the session and assemble the event pipeline for one run.

    Session lookup happens here, before any event exists, so a lookup
    failure surfaces as a request-level error (SessionLookupError).

    Returns:
        Lazy AG-UI event stream. Nothing runs until it is iterated.
    """
    session = await resolve_session(agent, session_store, run.thread_id, cancellation)

    updates: AsyncIterator[ChatResponseUpdate] = drive_agent(agent, run, session, cancellation)
    updates = filter_server_executed_client_tools(updates, run.options.client_tool_names, cancellation)

    if session is not None and session_store is not None and run.thread_id is not None:
        updates = with_completion_callback(
            updates,
            _session_saver(agent, session_store, run.thread_id, session, cancellation),
            cancellation,
        )

    return encode_agui_events(updates, run.thread_id, run.run_id, cancellation)
