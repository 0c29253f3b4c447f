"""
Request Normalizer - AG-UI RunAgentInput → native agent invocation.

Converts the inbound run request into:
- ChatMessage list (native conversation)
- ClientTool list (tools the client declared and executes itself)
- RunOptions whose additional_properties bag carries the AG-UI side channel
  (state, context, forwarded properties, thread id, run id)

Side-channel keys are namespaced with "ag_ui_" and are set even when their
value is None. Consumers treat a missing or None entry as "no value".
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, fields, replace
from typing import Any, TypeVar

from ag_ui.core import RunAgentInput
from loguru import logger
from pydantic import BaseModel

from ..errors import MalformedRequestError
from ..result import Error, Ok
from ..utils import _parse_json_object, _parse_json_safely
from .chat_types import (
    AIContent,
    ChatMessage,
    ChatRole,
    FunctionCallContent,
    FunctionResultContent,
    TextContent,
)


_T = TypeVar("_T")

PROPERTY_NAMESPACE = "ag_ui_"

AG_UI_STATE = "ag_ui_state"
AG_UI_CONTEXT = "ag_ui_context"
AG_UI_FORWARDED_PROPERTIES = "ag_ui_forwarded_properties"
AG_UI_THREAD_ID = "ag_ui_thread_id"
AG_UI_RUN_ID = "ag_ui_run_id"


class PropertyBag(dict[str, Any]):
    """
    Extensible side-channel map attached to RunOptions.

    Keys must be namespaced (PROPERTY_NAMESPACE prefix) so they can never
    shadow a RunOptions field.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__()
        self.update(*args, **kwargs)

    def __setitem__(self, key: str, value: Any) -> None:
        _check_property_key(key)
        super().__setitem__(key, value)

    def update(self, *args: Any, **kwargs: Any) -> None:  # type: ignore[override]
        for key, value in dict(*args, **kwargs).items():
            self[key] = value

    def setdefault(self, key: str, default: Any = None) -> Any:
        if key not in self:
            self[key] = default
        return self[key]

    def get_value(self, key: str, expected_type: type[_T] | None = None) -> _T | None:
        """
        Typed read. Missing and None entries both read as None.

        Raises:
            TypeError: the stored value is not an instance of expected_type
        """
        value = self.get(key)
        if value is None or expected_type is None:
            return value
        if not isinstance(value, expected_type):
            msg = f"Property '{key}' is {type(value).__name__}, expected {expected_type.__name__}"
            raise TypeError(msg)
        return value


def _check_property_key(key: Any) -> None:
    if not isinstance(key, str) or not key.startswith(PROPERTY_NAMESPACE):
        msg = f"Side-channel key {key!r} must start with '{PROPERTY_NAMESPACE}'"
        raise ValueError(msg)
    if key in {f.name for f in fields(RunOptions)}:
        msg = f"Side-channel key {key!r} collides with a RunOptions field"
        raise ValueError(msg)


class ClientTool(BaseModel):
    """A tool declared by the client. The client executes it, not the agent."""

    name: str
    description: str | None = None
    parameters: dict[str, Any] | None = None  # JSON schema


@dataclass
class RunOptions:
    """Native run options handed to AIAgent.run_streaming()."""

    tools: list[ClientTool] | None = None
    additional_properties: PropertyBag = field(default_factory=PropertyBag)

    def __post_init__(self) -> None:
        if not isinstance(self.additional_properties, PropertyBag):
            self.additional_properties = PropertyBag(self.additional_properties)

    @property
    def client_tool_names(self) -> frozenset[str]:
        return frozenset(tool.name for tool in self.tools or [])


@dataclass(frozen=True)
class NormalizedRun:
    """Everything the bridge needs to drive one run."""

    messages: list[ChatMessage]
    options: RunOptions
    thread_id: str | None
    run_id: str

    @property
    def client_tools(self) -> list[ClientTool]:
        return list(self.options.tools or [])


# ============================================================
# Messages
# ============================================================


def _user_contents(content: Any) -> list[AIContent]:
    if content is None:
        return []
    if isinstance(content, str):
        return [TextContent(text=content)]

    # Multimodal user content: keep the text items
    contents: list[AIContent] = []
    for item in content:
        item_type = getattr(item, "type", None)
        text = getattr(item, "text", None)
        if item_type == "text" and text is not None:
            contents.append(TextContent(text=text))
        else:
            logger.warning(f"[AGUI] Dropping unsupported user content item: type={item_type}")
    return contents


def _tool_call_contents(tool_calls: Iterable[Any] | None) -> list[AIContent]:
    contents: list[AIContent] = []
    for tool_call in tool_calls or []:
        name = tool_call.function.name
        match _parse_json_object(tool_call.function.arguments):
            case Ok(arguments):
                pass
            case Error(message):
                logger.warning(
                    f"[AGUI] Unparseable arguments for tool call {tool_call.id} ({name}): {message}"
                )
                arguments = None
        contents.append(FunctionCallContent(call_id=tool_call.id, name=name, arguments=arguments))
    return contents


def _tool_result_content(message: Any) -> FunctionResultContent:
    raw = message.content
    result: Any = raw
    if isinstance(raw, str):
        match _parse_json_safely(raw):
            case Ok(parsed):
                result = parsed
            case Error(_):
                result = raw
    return FunctionResultContent(
        call_id=message.tool_call_id,
        result=result,
        error=getattr(message, "error", None),
    )


def to_chat_message(message: Any) -> ChatMessage | None:
    """
    Convert one AG-UI message to a ChatMessage.

    Returns None for roles the agent has no use for (logged, not an error).
    """
    role = getattr(message, "role", None)
    message_id = getattr(message, "id", None)

    match role:
        case "user":
            return ChatMessage(
                role=ChatRole.USER,
                contents=_user_contents(message.content),
                message_id=message_id,
                author_name=getattr(message, "name", None),
                raw_representation=message,
            )
        case "system" | "developer":
            return ChatMessage(
                role=ChatRole.SYSTEM,
                contents=_user_contents(message.content),
                message_id=message_id,
                raw_representation=message,
            )
        case "assistant":
            contents: list[AIContent] = []
            if message.content:
                contents.append(TextContent(text=message.content))
            contents.extend(_tool_call_contents(getattr(message, "tool_calls", None)))
            return ChatMessage(
                role=ChatRole.ASSISTANT,
                contents=contents,
                message_id=message_id,
                author_name=getattr(message, "name", None),
                raw_representation=message,
            )
        case "tool":
            return ChatMessage(
                role=ChatRole.TOOL,
                contents=[_tool_result_content(message)],
                message_id=message_id,
                raw_representation=message,
            )
        case _:
            logger.debug(f"[AGUI] Skipping message with role={role} (id={message_id})")
            return None


def to_chat_messages(messages: Sequence[Any]) -> list[ChatMessage]:
    converted = (to_chat_message(message) for message in messages)
    return [message for message in converted if message is not None]


# ============================================================
# Tools and options
# ============================================================


def to_client_tools(tools: Sequence[Any] | None) -> list[ClientTool] | None:
    """None when the client declared no tools (as opposed to an empty list)."""
    if tools is None:
        return None
    return [
        ClientTool(
            name=tool.name,
            description=getattr(tool, "description", None),
            parameters=getattr(tool, "parameters", None),
        )
        for tool in tools
    ]


def build_run_options(run_input: RunAgentInput, client_tools: list[ClientTool] | None) -> RunOptions:
    context = (
        [(entry.description, entry.value) for entry in run_input.context]
        if run_input.context is not None
        else None
    )
    properties = PropertyBag(
        {
            AG_UI_STATE: run_input.state,
            AG_UI_CONTEXT: context,
            AG_UI_FORWARDED_PROPERTIES: run_input.forwarded_props,
            AG_UI_THREAD_ID: run_input.thread_id,
            AG_UI_RUN_ID: run_input.run_id,
        }
    )
    return RunOptions(tools=client_tools, additional_properties=properties)


def normalize_run_input(run_input: RunAgentInput | None) -> NormalizedRun:
    """
    Normalize an AG-UI run request.

    Raises:
        MalformedRequestError: run_input is None (missing body). An input with
            zero messages is well-formed and normalizes to an empty list.
    """
    if run_input is None:
        msg = "Run request body is missing"
        raise MalformedRequestError(msg)

    messages = to_chat_messages(run_input.messages or [])
    client_tools = to_client_tools(run_input.tools)
    options = build_run_options(run_input, client_tools)

    logger.info(
        f"[AGUI] Normalized run: thread_id={run_input.thread_id!r}, run_id={run_input.run_id}, "
        f"messages={len(messages)}, client_tools={[t.name for t in client_tools or []]}"
    )

    return NormalizedRun(
        messages=messages,
        options=options,
        thread_id=run_input.thread_id,
        run_id=run_input.run_id,
    )


def detach_thread(run: NormalizedRun) -> NormalizedRun:
    """The same run without a thread, for requests that carried no threadId."""
    run.options.additional_properties[AG_UI_THREAD_ID] = None
    return replace(run, thread_id=None)
