"""
Shuttle ReAct - the Reason/Act loop
===================================

    chat ──(tool calls?)──► tools ──► chat ──► ... ──► END
      │                       │
      └──(no)──► END          └──(direct return)──► direct_return ──► END
"""

from shuttle.react.agent import (
    DEFAULT_EXTRA_STEPS,
    GRAPH_NAME,
    MODEL_NODE_NAME,
    TOOLS_NODE_NAME,
    ReactAgent,
    ReactAgentConfig,
    new_persona_modifier,
)
from shuttle.react.checkers import (
    StreamToolCallChecker,
    first_chunk_tool_call_checker,
    full_stream_tool_call_checker,
)
from shuttle.react.routing import ModelOutputRouter, ToolOutputRouter
from shuttle.react.stages import (
    DirectReturnExtractor,
    MessageModifier,
    ModelStage,
    ToolStage,
)
from shuttle.react.state import STATE_TYPE_TAG, ConversationState

__all__ = [
    "ReactAgent",
    "ReactAgentConfig",
    "new_persona_modifier",
    "DEFAULT_EXTRA_STEPS",
    "GRAPH_NAME",
    "MODEL_NODE_NAME",
    "TOOLS_NODE_NAME",
    "StreamToolCallChecker",
    "first_chunk_tool_call_checker",
    "full_stream_tool_call_checker",
    "ModelOutputRouter",
    "ToolOutputRouter",
    "DirectReturnExtractor",
    "MessageModifier",
    "ModelStage",
    "ToolStage",
    "ConversationState",
    "STATE_TYPE_TAG",
]
