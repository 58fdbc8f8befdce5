"""
ReAct stages: the model node, the tools node and the direct-return extractor.

Each stage is a Runnable registered on the graph. The model and tools stages
also own the state pre-handler that records their input into the run's
ConversationState before they execute.
"""

from __future__ import annotations

import inspect
import logging
from typing import AbstractSet, AsyncGenerator, Awaitable, Callable, List, Optional, Union

from shuttle.builtin.llms.base import BaseChatModel
from shuttle.builtin.tools.node import ToolsNode
from shuttle.core.errors import NoValueError
from shuttle.core.message import AssistantMessage, Message, ToolMessage
from shuttle.core.runnable import Runnable, RunnableConfig
from shuttle.react.state import ConversationState

logger = logging.getLogger(__name__)

# modify the messages right before the model is called, e.g. to add a system prompt
MessageModifier = Callable[[List[Message]], Union[List[Message], Awaitable[List[Message]]]]


class ModelStage(Runnable[List[Message], AssistantMessage]):
    """Calls the chat model on the accumulated history."""

    def __init__(self, model: BaseChatModel, message_modifier: Optional[MessageModifier] = None):
        self.model = model
        self.message_modifier = message_modifier

    async def pre_handle(self, input: List[Message], state: ConversationState) -> List[Message]:
        state.history.extend(input)

        if self.message_modifier is None:
            return state.history

        # the modifier works on a copy so it can not corrupt the history
        modified = self.message_modifier(list(state.history))
        if inspect.isawaitable(modified):
            modified = await modified
        return modified

    async def invoke(
        self,
        input: List[Message],
        config: Optional[RunnableConfig] = None,
        **kwargs
    ) -> AssistantMessage:
        return await self.model.invoke(input, config)

    async def stream(
        self,
        input: List[Message],
        config: Optional[RunnableConfig] = None,
        **kwargs
    ) -> AsyncGenerator[AssistantMessage, None]:
        async for chunk in self.model.stream(input, config):
            yield chunk


def get_return_directly_tool_call_id(message: AssistantMessage, return_directly: AbstractSet[str]) -> str:
    """Id of the first tool call whose tool returns directly, or ""."""
    if not return_directly:
        return ""
    for tc in message.tool_calls or []:
        if tc.function.name in return_directly:
            return tc.id
    return ""


class ToolStage(Runnable[AssistantMessage, List[ToolMessage]]):
    """
    Executes the tool calls of the last assistant message.

    When several direct-return tools are called in one turn, only the first
    one is honored.
    """

    def __init__(self, tools_node: ToolsNode, return_directly: AbstractSet[str] = frozenset()):
        self.tools_node = tools_node
        self.return_directly = frozenset(return_directly)

    async def pre_handle(
        self, input: Optional[AssistantMessage], state: ConversationState
    ) -> AssistantMessage:
        # no input: rerun after an interrupt, the message is already recorded
        if input is None:
            return state.history[-1]

        state.history.append(input)
        state.pending_direct_return_id = get_return_directly_tool_call_id(input, self.return_directly)
        if state.pending_direct_return_id:
            logger.debug("Tool call %s will return directly", state.pending_direct_return_id)
        return input

    async def invoke(
        self,
        input: AssistantMessage,
        config: Optional[RunnableConfig] = None,
        **kwargs
    ) -> List[ToolMessage]:
        return await self.tools_node.invoke(input, config)


class DirectReturnExtractor(Runnable[List[ToolMessage], ToolMessage]):
    """Picks the tool result that ends the run."""

    async def invoke(
        self,
        input: List[ToolMessage],
        config: Optional[RunnableConfig] = None,
        state: Optional[ConversationState] = None,
        **kwargs
    ) -> ToolMessage:
        call_id = state.pending_direct_return_id if state is not None else ""
        for msg in input:
            if msg is not None and msg.tool_call_id == call_id:
                return msg
        raise NoValueError(f"no tool result matches direct-return call id '{call_id}'")
