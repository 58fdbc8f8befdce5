from shuttle.builtin.tools.base import BaseTool, FunctionTool, ToolInfo, tool
from shuttle.builtin.tools.node import ToolsNode, ToolsNodeConfig, resolve_tool_infos

__all__ = [
    "BaseTool",
    "FunctionTool",
    "ToolInfo",
    "tool",
    "ToolsNode",
    "ToolsNodeConfig",
    "resolve_tool_infos",
]
