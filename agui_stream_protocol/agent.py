"""
Agent collaborator contract.

An AIAgent turns a native conversation into a stream of ChatResponseUpdate
fragments. Each run_streaming() call starts a new run; the returned
iterator is single-pass and cannot be restarted.

AgentSession is the opaque per-thread state an agent reads and mutates
during a run. The bridge never looks inside it: it only hands it to the
agent and to the session store.
"""

import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from typing import Any

from pydantic import BaseModel, Field

from .cancellation import CancellationToken
from .protocol.chat_types import ChatMessage, ChatResponseUpdate
from .protocol.request import RunOptions


class AgentSession(BaseModel):
    """Conversation state for one thread, owned by the agent during a run."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    state: dict[str, Any] = Field(default_factory=dict)
    # Number of inbound conversation messages already folded into the session.
    # AG-UI clients resend the full history every run.
    synced_message_count: int = 0


class AIAgent(ABC):
    """Base class for agents exposed over AG-UI."""

    def __init__(self, name: str, agent_id: str | None = None) -> None:
        self.name = name
        self.id = agent_id or name

    def create_session(self, session_id: str | None = None) -> AgentSession:
        if session_id is None:
            return AgentSession()
        return AgentSession(id=session_id)

    @abstractmethod
    def run_streaming(
        self,
        messages: Sequence[ChatMessage],
        session: AgentSession | None = None,
        options: RunOptions | None = None,
        cancellation: CancellationToken | None = None,
    ) -> AsyncIterator[ChatResponseUpdate]:
        """
        Start a run and stream its updates.

        Implementations check cancellation between fragments and stop
        generating promptly once it is signalled.
        """
