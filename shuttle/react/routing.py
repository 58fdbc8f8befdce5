"""
Branch routers of the ReAct loop.

- ModelOutputRouter: after the model, go to the tools node if the turn calls
  tools, otherwise end the run with the model's message.
- ToolOutputRouter: after the tools, end the run through the direct-return
  extractor if a direct-return call is pending, otherwise call the model again.
"""

from __future__ import annotations

import logging

from shuttle.core.message import AssistantMessage
from shuttle.core.stream import StreamReader
from shuttle.graph.graph import END
from shuttle.react.checkers import StreamToolCallChecker
from shuttle.react.state import ConversationState

logger = logging.getLogger(__name__)

NODE_KEY_MODEL = "chat"
NODE_KEY_TOOLS = "tools"
NODE_KEY_DIRECT_RETURN = "direct_return"


class ModelOutputRouter:
    end_nodes = (NODE_KEY_TOOLS, END)

    def __init__(self, checker: StreamToolCallChecker):
        self.checker = checker

    async def __call__(self, reader: StreamReader[AssistantMessage], state: ConversationState) -> str:
        if await self.checker(reader):
            return NODE_KEY_TOOLS
        logger.debug("Model turn has no tool calls, ending run")
        return END


class ToolOutputRouter:
    end_nodes = (NODE_KEY_MODEL, NODE_KEY_DIRECT_RETURN)

    async def __call__(self, reader: StreamReader, state: ConversationState) -> str:
        # only the state decides; the tool results are not needed here
        await reader.aclose()
        if state.pending_direct_return_id:
            return NODE_KEY_DIRECT_RETURN
        return NODE_KEY_MODEL
