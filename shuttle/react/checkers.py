"""
Stream tool-call checkers

判断模型一个回合的流式输出是否包含工具调用。

不同模型在流式模式下输出工具调用的方式不同：
- 有些模型（如 OpenAI）先输出工具调用元数据 → first_chunk_tool_call_checker
- 有些模型（如 Claude）先输出文本，再输出工具调用 → full_stream_tool_call_checker

约定：checker 在返回前必须关闭 reader，无论成功、提前返回还是出错。
每个模型回合只调用一次；reader 只能读一遍。
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from shuttle.core.errors import ShuttleError, ToolCallDetectionError
from shuttle.core.message import AssistantMessage
from shuttle.core.stream import StreamReader
from shuttle.utils.stream_accumulator import MessageAccumulator

logger = logging.getLogger(__name__)

StreamToolCallChecker = Callable[[StreamReader[AssistantMessage]], Awaitable[bool]]


async def first_chunk_tool_call_checker(reader: StreamReader[AssistantMessage]) -> bool:
    """
    Early-exit checker (default).

    Returns True at the first fragment carrying tool calls and False at the
    first fragment carrying text without tool calls. Fragments empty in both
    are skipped. An exhausted stream means no tool call.
    """
    async with reader:
        try:
            async for chunk in reader:
                if chunk.tool_calls:
                    return True
                # skip empty chunks at the front
                if not chunk.content:
                    continue
                return False
        except ShuttleError:
            raise
        except Exception as e:
            raise ToolCallDetectionError(f"failed to read model output: {e}") from e
    return False


async def full_stream_tool_call_checker(reader: StreamReader[AssistantMessage]) -> bool:
    """
    Full-consume checker.

    Reads the whole turn, merges the fragments and reports whether the merged
    message carries any tool call. Use it for models that emit text before
    their tool calls.
    """
    acc = MessageAccumulator()
    async with reader:
        try:
            async for chunk in reader:
                acc.add(chunk)
        except ShuttleError:
            raise
        except Exception as e:
            raise ToolCallDetectionError(f"failed to read model output: {e}") from e

    if acc.chunk_count == 0:
        return False
    logger.debug("Merged %d fragments, tool calls: %s", acc.chunk_count, acc.has_tool_calls())
    return acc.has_tool_calls()
