"""
Tools Node - 执行一个模型回合请求的全部工具调用

输入：带 tool_calls 的 AssistantMessage
输出：List[ToolMessage]，与 tool_calls 一一对应、顺序一致，
      每条结果的 tool_call_id 等于对应请求的 id

默认并发执行（受 RunnableConfig.max_concurrency 限制），
execute_sequentially=True 时按请求顺序逐个执行。
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from shuttle.builtin.tools.base import BaseTool, ToolInfo
from shuttle.core.errors import ConfigurationError, ToolArgumentsError, ToolNotFoundError
from shuttle.core.message import AssistantMessage, ToolCall, ToolMessage
from shuttle.core.runnable import Runnable, RunnableConfig

logger = logging.getLogger(__name__)


class ToolsNodeConfig(BaseModel):
    """工具节点配置"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    tools: List[BaseTool] = Field(default_factory=list, description="可调用的工具")
    execute_sequentially: bool = Field(False, description="是否按顺序逐个执行工具调用")
    unknown_tools_handler: Optional[Callable[[str, str], Any]] = Field(
        None, description="调用未注册工具时的兜底处理 (name, arguments) -> str"
    )


async def resolve_tool_infos(tools: List[BaseTool]) -> List[ToolInfo]:
    """Collect the catalog entry of every tool; names must be non-empty and unique."""
    infos: List[ToolInfo] = []
    seen = set()
    for t in tools:
        try:
            info = await t.info()
        except Exception as e:
            raise ConfigurationError(f"failed to get info of tool {t!r}: {e}") from e
        if not info.name:
            raise ConfigurationError(f"tool {t!r} has an empty name")
        if info.name in seen:
            raise ConfigurationError(f"duplicate tool name: {info.name}")
        seen.add(info.name)
        infos.append(info)
    return infos


class ToolsNode(Runnable[AssistantMessage, List[ToolMessage]]):
    """
    Executes tool calls requested by the model.

    Build with `await ToolsNode.create(config)` so the tool catalog is
    resolved once up front.
    """

    def __init__(self, config: ToolsNodeConfig, tool_infos: List[ToolInfo]):
        self.config = config
        self.tool_infos = tool_infos
        self._tools: Dict[str, BaseTool] = {
            info.name: t for info, t in zip(tool_infos, config.tools)
        }

    @classmethod
    async def create(cls, config: ToolsNodeConfig) -> "ToolsNode":
        return cls(config, await resolve_tool_infos(config.tools))

    async def invoke(
        self,
        input: AssistantMessage,
        config: Optional[RunnableConfig] = None,
        **kwargs
    ) -> List[ToolMessage]:
        tool_calls = input.tool_calls or []

        if self.config.execute_sequentially:
            return [await self._execute(tc, config) for tc in tool_calls]

        if config and config.max_concurrency:
            semaphore = asyncio.Semaphore(config.max_concurrency)

            async def _execute_with_limit(tc):
                async with semaphore:
                    return await self._execute(tc, config)

            tasks = [_execute_with_limit(tc) for tc in tool_calls]
        else:
            tasks = [self._execute(tc, config) for tc in tool_calls]

        return list(await asyncio.gather(*tasks))

    async def _execute(self, tc: ToolCall, config: Optional[RunnableConfig]) -> ToolMessage:
        name = tc.function.name
        tool = self._tools.get(name)
        logger.debug("Executing tool %s (call %s)", name, tc.id)

        if tool is None:
            handler = self.config.unknown_tools_handler
            if handler is None:
                raise ToolNotFoundError(name)
            result = handler(name, tc.function.arguments)
            if inspect.isawaitable(result):
                result = await result
            return ToolMessage(tool_call_id=tc.id, content=str(result), name=name)

        args = self._parse_arguments(tc)
        result = await tool.invoke(args, config)
        return ToolMessage(tool_call_id=tc.id, content=result, name=name)

    @staticmethod
    def _parse_arguments(tc: ToolCall) -> Dict[str, Any]:
        raw = tc.function.arguments
        if not raw or not raw.strip():
            return {}
        try:
            args = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ToolArgumentsError(
                f"invalid JSON arguments for tool '{tc.function.name}' (call {tc.id}): {e}"
            ) from e
        if not isinstance(args, dict):
            raise ToolArgumentsError(
                f"arguments for tool '{tc.function.name}' must be a JSON object"
            )
        return args
