"""
Native chat model - the representation agents consume and produce.

AG-UI requests are normalized into ChatMessage lists before an agent sees
them, and agents stream ChatResponseUpdate fragments back. The event
encoder is the only place that knows how these map onto AG-UI events.

Type Hierarchy:
- AIContent (discriminated union on "type")
  - TextContent (type: "text")
  - FunctionCallContent (type: "function_call")
  - FunctionResultContent (type: "function_result")
- ChatMessage: role + contents (one conversation turn)
- ChatResponseUpdate: role + contents + finish_reason (one streamed fragment)
"""

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class FinishReason(str, Enum):
    """Why the agent stopped producing output for a run."""

    STOP = "stop"
    LENGTH = "length"
    TOOL_CALLS = "tool_calls"
    CONTENT_FILTER = "content_filter"
    ERROR = "error"
    OTHER = "other"


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class FunctionCallContent(BaseModel):
    """A tool invocation requested by the model."""

    type: Literal["function_call"] = "function_call"
    call_id: str
    name: str
    arguments: dict[str, Any] | None = None


class FunctionResultContent(BaseModel):
    """The outcome of a tool invocation, matched to its call by call_id."""

    type: Literal["function_result"] = "function_result"
    call_id: str
    result: Any = None
    error: str | None = None


AIContent = Annotated[
    TextContent | FunctionCallContent | FunctionResultContent,
    Field(discriminator="type"),
]


class ChatMessage(BaseModel):
    role: ChatRole
    contents: list[AIContent] = Field(default_factory=list)
    message_id: str | None = None
    author_name: str | None = None
    # Source object (AG-UI message, Copilot Studio activity, ...) kept for callers.
    raw_representation: Any = Field(default=None, exclude=True)

    @property
    def text(self) -> str:
        return "".join(c.text for c in self.contents if isinstance(c, TextContent))


class ChatResponseUpdate(BaseModel):
    """
    One incremental fragment of agent output.

    An update carrying finish_reason is the terminal marker of the run.
    """

    role: ChatRole | None = ChatRole.ASSISTANT
    contents: list[AIContent] = Field(default_factory=list)
    message_id: str | None = None
    response_id: str | None = None
    finish_reason: FinishReason | None = None

    @property
    def text(self) -> str:
        return "".join(c.text for c in self.contents if isinstance(c, TextContent))
