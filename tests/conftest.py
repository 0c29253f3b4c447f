"""Pytest configuration and shared fixtures for tests."""

from collections.abc import Iterator

import pytest
from ag_ui.core import RunAgentInput, UserMessage
from fastapi import FastAPI

from agui_stream_protocol import CancellationToken, InMemoryAgentSessionStore
from agui_stream_protocol.chunk_logger import chunk_logger


# ============================================================
# Request Fixtures
# ============================================================


@pytest.fixture
def user_message() -> UserMessage:
    return UserMessage(id="user-1", role="user", content="Hello, agent!")


@pytest.fixture
def run_input(user_message: UserMessage) -> RunAgentInput:
    """Minimal well-formed run request on thread t1."""
    return RunAgentInput(
        thread_id="t1",
        run_id="run-1",
        state=None,
        messages=[user_message],
        tools=[],
        context=[],
        forwarded_props=None,
    )


@pytest.fixture
def run_request_body() -> dict[str, object]:
    """Wire-format (camelCase) RunAgentInput body."""
    return {
        "threadId": "t1",
        "runId": "run-1",
        "state": {"counter": 1},
        "messages": [{"id": "user-1", "role": "user", "content": "Hello, agent!"}],
        "tools": [],
        "context": [],
        "forwardedProps": None,
    }


# ============================================================
# Pipeline Fixtures
# ============================================================


@pytest.fixture
def cancellation() -> CancellationToken:
    return CancellationToken()


@pytest.fixture
def session_store() -> InMemoryAgentSessionStore:
    return InMemoryAgentSessionStore()


@pytest.fixture
def app() -> FastAPI:
    return FastAPI()


@pytest.fixture(autouse=True)
def _close_chunk_logger() -> Iterator[None]:
    """Release chunk logger file handles between tests."""
    yield
    chunk_logger.close()
