"""
Bot Framework activities → ChatMessage stream.

Agents backed by a Bot Framework style service (Copilot Studio) answer with
activities rather than chat messages. process_activities() converts them so
such agents can feed the regular AG-UI pipeline.

Suggested actions (the buttons offered with a message) are surfaced as a
call to the "ui_tools.suggestedActions" client tool, since the message text
usually asks the user to pick one of them.
"""

from collections.abc import AsyncIterable, AsyncIterator, Mapping
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from .protocol.chat_types import AIContent, ChatMessage, ChatRole, FunctionCallContent, TextContent


SUGGESTED_ACTIONS_TOOL = "ui_tools.suggestedActions"


class _ActivityModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class ChannelAccount(_ActivityModel):
    id: str | None = None
    name: str | None = None


class CardAction(_ActivityModel):
    type: str | None = None
    title: str | None = None
    value: Any = None
    text: str | None = None
    image: str | None = None
    image_alt_text: str | None = Field(default=None, alias="imageAltText")
    display_text: str | None = Field(default=None, alias="displayText")
    channel_data: Any = Field(default=None, alias="channelData")


class SuggestedActions(_ActivityModel):
    actions: list[CardAction] = Field(default_factory=list)


class Activity(_ActivityModel):
    type: str
    id: str | None = None
    text: str | None = None
    from_: ChannelAccount | None = Field(default=None, alias="from")
    suggested_actions: SuggestedActions | None = Field(default=None, alias="suggestedActions")


def _message_from_activity(activity: Activity, contents: list[AIContent]) -> ChatMessage:
    return ChatMessage(
        role=ChatRole.ASSISTANT,
        contents=contents,
        author_name=activity.from_.name if activity.from_ else None,
        message_id=activity.id,
        raw_representation=activity,
    )


def _suggested_actions_call(activity: Activity, actions: list[CardAction]) -> FunctionCallContent:
    arguments = {
        "activityId": activity.id,
        "prompt": activity.text,
        "actions": [
            {
                "id": f"{activity.id}:{index}",
                "type": action.type,
                "title": action.title,
                "value": action.value,
                "text": action.text,
                "image": action.image,
                "imageAltText": action.image_alt_text,
                "displayText": action.display_text,
                "channelData": action.channel_data,
            }
            for index, action in enumerate(actions)
        ],
    }
    return FunctionCallContent(
        call_id=f"{activity.id}:suggestedActions",
        name=SUGGESTED_ACTIONS_TOOL,
        arguments=arguments,
    )


async def process_activities(
    activities: AsyncIterable[Activity | Mapping[str, Any]],
    streaming: bool,
) -> AsyncIterator[ChatMessage]:
    """
    Convert activities to assistant messages.

    - Activities with blank text are skipped
    - "message" activities (and "typing" ones while streaming) yield a text
      message, followed by a suggested-actions tool call when actions exist
    - Other activity types are logged and dropped

    Args:
        activities: Activities in arrival order (models or raw dicts)
        streaming: Whether the caller streams; enables "typing" activities
    """
    async for item in activities:
        activity = item if isinstance(item, Activity) else Activity.model_validate(item)
        if not activity.text or not activity.text.strip():
            continue

        if activity.type == "message" or (activity.type == "typing" and streaming):
            yield _message_from_activity(activity, [TextContent(text=activity.text)])

            actions = activity.suggested_actions.actions if activity.suggested_actions else []
            if actions:
                yield _message_from_activity(activity, [_suggested_actions_call(activity, actions)])
        else:
            logger.warning(f"[ACTIVITY] Unsupported activity type '{activity.type}' with text content received")
