"""
Conversion between the native chat model and ADK / google.genai types.

Inbound:  ChatMessage  → types.Content      (to_adk_content / to_adk_contents)
Outbound: ADK Event    → ChatResponseUpdate (AdkEventTranslator)

Streaming note (StreamingMode.SSE):
    ADK emits text as partial events (partial=True) and then repeats the
    aggregated text once in a final non-partial event. The translator
    forwards the partial fragments and drops the aggregated repeat, so
    every character reaches the client exactly once.
"""

import uuid
from collections.abc import Sequence
from typing import Any

from google.adk.events import Event
from google.genai import types
from loguru import logger

from ..errors import AdkRunError
from ..protocol.chat_types import (
    AIContent,
    ChatMessage,
    ChatResponseUpdate,
    ChatRole,
    FinishReason,
    FunctionCallContent,
    FunctionResultContent,
    TextContent,
)


# ============================================================
# Finish reasons
# ============================================================


def map_adk_finish_reason(finish_reason: types.FinishReason | None) -> FinishReason:
    """
    Map an ADK (google.genai) finish reason onto FinishReason.

    Mappings:
        - None, STOP, FINISH_REASON_UNSPECIFIED → stop
        - MAX_TOKENS → length
        - SAFETY, RECITATION, BLOCKLIST, PROHIBITED_CONTENT, SPII, LANGUAGE → content_filter
        - IMAGE_SAFETY, IMAGE_RECITATION, IMAGE_PROHIBITED_CONTENT → content_filter
        - MALFORMED_FUNCTION_CALL, UNEXPECTED_TOOL_CALL, NO_IMAGE → error
        - OTHER, IMAGE_OTHER, anything unknown → other
    """
    if not finish_reason:
        return FinishReason.STOP

    reason_map: dict[types.FinishReason, FinishReason] = {
        types.FinishReason.STOP: FinishReason.STOP,
        types.FinishReason.FINISH_REASON_UNSPECIFIED: FinishReason.STOP,
        types.FinishReason.MAX_TOKENS: FinishReason.LENGTH,
        types.FinishReason.OTHER: FinishReason.OTHER,
        types.FinishReason.SAFETY: FinishReason.CONTENT_FILTER,
        types.FinishReason.RECITATION: FinishReason.CONTENT_FILTER,
        types.FinishReason.BLOCKLIST: FinishReason.CONTENT_FILTER,
        types.FinishReason.PROHIBITED_CONTENT: FinishReason.CONTENT_FILTER,
        types.FinishReason.SPII: FinishReason.CONTENT_FILTER,
        types.FinishReason.LANGUAGE: FinishReason.CONTENT_FILTER,
        types.FinishReason.IMAGE_SAFETY: FinishReason.CONTENT_FILTER,
        types.FinishReason.IMAGE_RECITATION: FinishReason.CONTENT_FILTER,
        types.FinishReason.IMAGE_PROHIBITED_CONTENT: FinishReason.CONTENT_FILTER,
        types.FinishReason.IMAGE_OTHER: FinishReason.OTHER,
        types.FinishReason.MALFORMED_FUNCTION_CALL: FinishReason.ERROR,
        types.FinishReason.UNEXPECTED_TOOL_CALL: FinishReason.ERROR,
        types.FinishReason.NO_IMAGE: FinishReason.ERROR,
    }
    return reason_map.get(finish_reason, FinishReason.OTHER)


# ============================================================
# Inbound: ChatMessage → types.Content
# ============================================================


def _function_response_payload(content: FunctionResultContent) -> dict[str, Any]:
    # FunctionResponse.response must be a dict
    payload = content.result if isinstance(content.result, dict) else {"result": content.result}
    if content.error is not None:
        payload = {**payload, "error": content.error}
    return payload


def to_adk_content(message: ChatMessage, call_names: dict[str, str] | None = None) -> types.Content | None:
    """
    Convert one ChatMessage to ADK Content.

    Args:
        message: Native message
        call_names: call_id → tool name for calls seen earlier in the
            conversation. FunctionResponse needs the tool name, which AG-UI
            tool messages do not carry.

    Returns:
        Content, or None for system messages (ADK takes instructions from
        the agent definition) and messages without convertible parts
    """
    if message.role == ChatRole.SYSTEM:
        logger.debug(f"[ADK] Skipping system message {message.message_id} (instructions come from the agent)")
        return None

    call_names = call_names if call_names is not None else {}
    parts: list[types.Part] = []
    for content in message.contents:
        if isinstance(content, TextContent):
            if content.text:
                parts.append(types.Part(text=content.text))
        elif isinstance(content, FunctionCallContent):
            call_names[content.call_id] = content.name
            parts.append(
                types.Part(
                    function_call=types.FunctionCall(
                        id=content.call_id,
                        name=content.name,
                        args=content.arguments or {},
                    )
                )
            )
        elif isinstance(content, FunctionResultContent):
            name = call_names.get(content.call_id)
            if name is None:
                logger.warning(f"[ADK] Tool result {content.call_id} has no preceding call, name unknown")
            parts.append(
                types.Part(
                    function_response=types.FunctionResponse(
                        id=content.call_id,
                        name=name or "unknown",
                        response=_function_response_payload(content),
                    )
                )
            )

    if not parts:
        return None

    # Tool results are sent back to the model as a user turn
    role = "model" if message.role == ChatRole.ASSISTANT else "user"
    return types.Content(role=role, parts=parts)


def to_adk_contents(messages: Sequence[ChatMessage]) -> list[types.Content]:
    call_names: dict[str, str] = {}
    converted = (to_adk_content(message, call_names) for message in messages)
    return [content for content in converted if content is not None]


# ============================================================
# Outbound: ADK Event → ChatResponseUpdate
# ============================================================


class AdkEventTranslator:
    """
    Stateful ADK Event → ChatResponseUpdate translation for one run.

    Text fragments of one model response share a message id; a new id is
    used after each complete (non-partial) response.
    """

    def __init__(self, response_id: str | None = None) -> None:
        self.response_id = response_id
        self.message_id = str(uuid.uuid4())
        self._streamed_text = False

    def translate(self, event: Event) -> ChatResponseUpdate | None:
        """
        Translate one ADK event.

        Raises:
            AdkRunError: the event carries an error_code

        Returns:
            Update, or None when the event carries nothing to forward
        """
        if event.error_code:
            logger.error(f"[ADK] Error event: {event.error_code} - {event.error_message}")
            raise AdkRunError(str(event.error_code), event.error_message)

        is_partial = bool(event.partial)
        contents: list[AIContent] = []
        parts = event.content.parts if event.content and event.content.parts else []

        for part in parts:
            if part.thought:
                logger.debug("[ADK] Skipping thought part")
                continue

            if part.text:
                if is_partial:
                    contents.append(TextContent(text=part.text))
                    self._streamed_text = True
                elif not self._streamed_text:
                    contents.append(TextContent(text=part.text))

            # Function calls and responses are only taken from complete events
            if part.function_call and not is_partial:
                call = part.function_call
                contents.append(
                    FunctionCallContent(
                        call_id=call.id or f"call_{uuid.uuid4().hex[:12]}",
                        name=call.name or "",
                        arguments=dict(call.args) if call.args else None,
                    )
                )

            if part.function_response and not is_partial:
                response = part.function_response
                contents.append(
                    FunctionResultContent(
                        call_id=response.id or "",
                        result=response.response,
                    )
                )

        finish_reason = map_adk_finish_reason(event.finish_reason) if event.finish_reason else None
        if finish_reason == FinishReason.STOP and any(isinstance(c, FunctionCallContent) for c in contents):
            finish_reason = FinishReason.TOOL_CALLS
        update = None
        if contents or finish_reason is not None:
            update = ChatResponseUpdate(
                role=ChatRole.TOOL if _is_tool_output(contents) else ChatRole.ASSISTANT,
                contents=contents,
                message_id=self.message_id,
                response_id=self.response_id,
                finish_reason=finish_reason,
            )

        if not is_partial:
            self.message_id = str(uuid.uuid4())
            self._streamed_text = False

        return update


def _is_tool_output(contents: list[AIContent]) -> bool:
    return bool(contents) and all(isinstance(content, FunctionResultContent) for content in contents)
