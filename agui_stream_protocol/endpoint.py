"""
FastAPI endpoint exposing an AIAgent over AG-UI.

    map_agui(app, "/agui", agent)
    map_agui(app, "/agui", agent_factory)   # agent chosen per request

    POST /agui  (RunAgentInput JSON)  →  text/event-stream of AG-UI events

Session persistence is opt-in: register_session_store(app, store) enables
it for every AG-UI route on the app.

Request-level failures (HTTP status instead of a stream):
- 400: empty body, invalid JSON, or a body that is not a RunAgentInput
- 500: session lookup failed, or the run failed before its first event
"""

import inspect
import json
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

from ag_ui.core import RunAgentInput
from fastapi import APIRouter, FastAPI, HTTPException, Request
from loguru import logger
from pydantic import ValidationError
from starlette.responses import Response

from .agent import AIAgent
from .bridge import run_agui_stream
from .cancellation import CancellationToken
from .errors import MalformedRequestError, SessionLookupError
from .protocol.request import NormalizedRun, RunOptions, detach_thread, normalize_run_input
from .sessions import AgentSessionStore
from .transport.sse import AGUIServerSentEventsResponse


AgentFactory = Callable[[str, Request, RunOptions, CancellationToken], Awaitable[AIAgent]]

_SESSION_STORE_ATTR = "agui_session_store"


def register_session_store(app: FastAPI, store: AgentSessionStore) -> None:
    """Enable session persistence for the AG-UI routes of app."""
    setattr(app.state, _SESSION_STORE_ATTR, store)
    logger.info(f"[AGUI] Session store registered: {type(store).__name__}")


def get_session_store(request: Request) -> AgentSessionStore | None:
    return getattr(request.app.state, _SESSION_STORE_ATTR, None)


def _with_protocol_defaults(body: dict[str, Any]) -> dict[str, Any]:
    # RunAgentInput requires every field. Clients commonly omit the optional
    # ones, and a run without a thread is allowed (it just has no session).
    for key, default in (("threadId", ""), ("messages", []), ("tools", []), ("context", [])):
        if body.get(key) is None:
            body[key] = default
    if not body.get("runId"):
        body["runId"] = str(uuid.uuid4())
    body.setdefault("state", None)
    body.setdefault("forwardedProps", None)
    return body


async def read_json_body(request: Request) -> dict[str, Any]:
    """
    Read the request body as a JSON object.

    Raises:
        MalformedRequestError: body missing, not JSON, or not an object
    """
    raw = await request.body()
    if not raw.strip():
        msg = "Request body is empty"
        raise MalformedRequestError(msg)

    try:  # nosemgrep: forbid-try-except
        body = json.loads(raw)
    except json.JSONDecodeError as e:
        msg = f"Request body is not valid JSON: {e!s}"
        raise MalformedRequestError(msg) from e

    if not isinstance(body, dict):
        msg = f"Request body must be a JSON object, got {type(body).__name__}"
        raise MalformedRequestError(msg)
    return body


def parse_run_input(body: dict[str, Any]) -> RunAgentInput:
    """
    Validate a JSON object as a RunAgentInput, filling in omitted optional fields.

    Raises:
        MalformedRequestError: body is not a RunAgentInput
    """
    try:  # nosemgrep: forbid-try-except
        return RunAgentInput.model_validate(_with_protocol_defaults(dict(body)))
    except ValidationError as e:
        msg = f"Request body is not a valid RunAgentInput: {e.error_count()} validation errors"
        raise MalformedRequestError(msg) from e


async def read_normalized_run(request: Request) -> NormalizedRun:
    """
    Read and normalize the request body.

    A body without threadId normalizes to a run with no thread (thread_id
    None, also in the side channel), not to an empty thread id.
    """
    body = await read_json_body(request)
    run = normalize_run_input(parse_run_input(body))
    if body.get("threadId") is None:
        run = detach_thread(run)
    return run


def map_agui(
    router: FastAPI | APIRouter,
    path: str,
    agent: AIAgent | AgentFactory,
) -> None:
    """
    Register a POST route streaming agent runs as AG-UI events.

    Args:
        router: App or router to register on
        path: Route path
        agent: Agent serving every request, or an async factory
            (path, request, run_options, cancellation) -> AIAgent
    """
    if not isinstance(agent, AIAgent) and not callable(agent):
        msg = f"agent must be an AIAgent or an async factory, got {type(agent).__name__}"
        raise TypeError(msg)

    async def agui_endpoint(request: Request) -> Response:
        cancellation = CancellationToken()

        try:
            run = await read_normalized_run(request)
        except MalformedRequestError as e:
            logger.warning(f"[AGUI] {path}: rejected request: {e!s}")
            raise HTTPException(status_code=400, detail=str(e)) from e

        if isinstance(agent, AIAgent):
            resolved_agent = agent
        else:
            resolved_agent = agent(path, request, run.options, cancellation)
            if inspect.isawaitable(resolved_agent):
                resolved_agent = await resolved_agent

        try:
            events = await run_agui_stream(resolved_agent, run, get_session_store(request), cancellation)
        except SessionLookupError as e:
            raise HTTPException(status_code=500, detail=str(e)) from e

        return AGUIServerSentEventsResponse(
            events,
            accept=request.headers.get("accept"),
            cancellation=cancellation,
        )

    router.add_api_route(path, agui_endpoint, methods=["POST"], name=f"agui:{path}")
    logger.info(f"[AGUI] Mapped AG-UI endpoint POST {path}")
