"""
Built-in parts: chat model base + mock, tool base + tools node.
"""

from shuttle.builtin.llms import BaseChatModel, MockChatModel
from shuttle.builtin.tools import (
    BaseTool,
    FunctionTool,
    ToolInfo,
    ToolsNode,
    ToolsNodeConfig,
    tool,
)

__all__ = [
    "BaseChatModel",
    "MockChatModel",
    "BaseTool",
    "FunctionTool",
    "ToolInfo",
    "ToolsNode",
    "ToolsNodeConfig",
    "tool",
]
