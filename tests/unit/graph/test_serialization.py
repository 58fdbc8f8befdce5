from dataclasses import dataclass

import pytest

from shuttle.core.errors import ConfigurationError, ShuttleError
from shuttle.core.message import AssistantMessage, FunctionCall, ToolCall, ToolMessage, UserMessage
from shuttle.graph import deserialize, is_registered, register_serializable_type, serialize
from shuttle.react.state import STATE_TYPE_TAG, ConversationState, register_state_type


@dataclass
class Point:
    x: int
    y: int


def test_register_is_idempotent_and_tags_are_unique():
    register_serializable_type(Point, "test_point")
    register_serializable_type(Point, "test_point")
    assert is_registered(Point)

    @dataclass
    class Other:
        v: int

    with pytest.raises(ConfigurationError):
        register_serializable_type(Other, "test_point")
    with pytest.raises(ConfigurationError):
        register_serializable_type(Point, "test_point_again")


def test_unregistered_types_are_rejected():
    @dataclass
    class Loose:
        v: int

    with pytest.raises(ShuttleError):
        serialize(Loose(1))
    with pytest.raises(ShuttleError):
        deserialize({"type": "no_such_tag", "data": {}})


def test_conversation_state_round_trip():
    register_state_type()
    register_state_type()
    assert is_registered(ConversationState)

    state = ConversationState(
        history=[
            UserMessage(content="weather?"),
            AssistantMessage(tool_calls=[
                ToolCall(id="c1", function=FunctionCall(name="weather", arguments="{}")),
            ]),
            ToolMessage(tool_call_id="c1", content="sunny"),
        ],
        pending_direct_return_id="c1",
    )

    payload = serialize(state)
    assert payload["type"] == STATE_TYPE_TAG

    restored = deserialize(payload)
    assert isinstance(restored, ConversationState)
    assert restored.pending_direct_return_id == "c1"
    assert [m.role for m in restored.history] == ["user", "assistant", "tool"]
    assert restored.history[1].tool_calls[0].function.name == "weather"
    assert restored.history[2].tool_call_id == "c1"


def test_history_without_tool_messages_round_trips():
    register_state_type()
    state = ConversationState(history=[
        UserMessage(content="hi"),
        AssistantMessage(content="4"),
    ])

    restored = deserialize(serialize(state))

    assert [type(m) for m in restored.history] == [UserMessage, AssistantMessage]
    assert [m.content for m in restored.history] == ["hi", "4"]
    assert restored.history[0].id == state.history[0].id
    assert restored.pending_direct_return_id == ""
