"""
Pytest Configuration and Fixtures
"""

from typing import Callable, List

import pytest

from shuttle.builtin.tools.base import FunctionTool
from shuttle.core.message import AssistantMessage, FunctionCall, ToolCall


@pytest.fixture
def tool_call_message() -> Callable[..., AssistantMessage]:
    """Factory: AssistantMessage requesting `(id, name[, arguments])` calls."""

    def _make(*calls, content=None) -> AssistantMessage:
        tool_calls = []
        for call in calls:
            call_id, name, *rest = call
            arguments = rest[0] if rest else "{}"
            tool_calls.append(
                ToolCall(id=call_id, function=FunctionCall(name=name, arguments=arguments))
            )
        return AssistantMessage(content=content, tool_calls=tool_calls)

    return _make


@pytest.fixture
def search_tool() -> FunctionTool:
    """Tool 'search' that always answers 'result'."""

    def search(q: str = "") -> str:
        """Search the web"""
        return "result"

    return FunctionTool.from_function(search)


@pytest.fixture
def run_end_states():
    """Callback collecting the final state of every run, plus the collected list."""
    states: List = []

    def _callback(event, node, payload):
        if event == "run_end":
            states.append(payload)

    return _callback, states
