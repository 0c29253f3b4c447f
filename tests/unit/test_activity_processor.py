"""
Activity Processor Tests

Bot Framework activities → assistant ChatMessages (+ suggested actions).
"""

import pytest

from agui_stream_protocol import Activity, ChatRole, FunctionCallContent, process_activities
from tests.utils import async_iter, collect


def _activity(**fields: object) -> dict[str, object]:
    activity: dict[str, object] = {"type": "message", "id": "act-1", "text": "Pick a size", "from": {"name": "Bot"}}
    activity.update(fields)
    return activity


@pytest.mark.asyncio
async def test_message_activity_becomes_assistant_message() -> None:
    # when
    messages = await collect(process_activities(async_iter([_activity()]), streaming=False))

    # then
    assert len(messages) == 1
    message = messages[0]
    assert message.role == ChatRole.ASSISTANT
    assert message.text == "Pick a size"
    assert message.author_name == "Bot"
    assert message.message_id == "act-1"
    assert isinstance(message.raw_representation, Activity)


@pytest.mark.asyncio
@pytest.mark.parametrize("text", [None, "", "   "])
async def test_blank_activities_are_skipped(text: str | None) -> None:
    # when
    messages = await collect(process_activities(async_iter([_activity(text=text)]), streaming=True))

    # then
    assert messages == []


@pytest.mark.asyncio
async def test_typing_activity_only_while_streaming() -> None:
    # given
    typing = _activity(type="typing", text="Thinking")

    # when
    streamed = await collect(process_activities(async_iter([typing]), streaming=True))
    buffered = await collect(process_activities(async_iter([typing]), streaming=False))

    # then
    assert [m.text for m in streamed] == ["Thinking"]
    assert buffered == []


@pytest.mark.asyncio
async def test_unsupported_type_is_dropped() -> None:
    # when
    messages = await collect(process_activities(async_iter([_activity(type="event")]), streaming=True))

    # then
    assert messages == []


@pytest.mark.asyncio
async def test_suggested_actions_become_tool_call() -> None:
    # given
    activity = _activity(
        suggestedActions={
            "actions": [
                {"type": "imBack", "title": "Small", "value": "S"},
                {"type": "imBack", "title": "Large", "value": "L", "displayText": "Large please"},
            ]
        }
    )

    # when
    messages = await collect(process_activities(async_iter([activity]), streaming=False))

    # then
    assert len(messages) == 2
    call = messages[1].contents[0]
    assert isinstance(call, FunctionCallContent)
    assert call.call_id == "act-1:suggestedActions"
    assert call.name == "ui_tools.suggestedActions"
    assert call.arguments is not None
    assert call.arguments["activityId"] == "act-1"
    assert call.arguments["prompt"] == "Pick a size"
    actions = call.arguments["actions"]
    assert [a["id"] for a in actions] == ["act-1:0", "act-1:1"]
    assert actions[1]["displayText"] == "Large please"
    assert actions[0]["value"] == "S"


@pytest.mark.asyncio
async def test_empty_suggested_actions_add_nothing() -> None:
    # when
    messages = await collect(
        process_activities(async_iter([_activity(suggestedActions={"actions": []})]), streaming=False)
    )

    # then
    assert len(messages) == 1
