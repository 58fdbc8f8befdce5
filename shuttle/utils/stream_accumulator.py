"""
Stream Accumulator - 流式消息累积器

把一个模型回合的增量片段（AssistantMessage chunks）合并成一条完整消息。

合并规则：
- content 按到达顺序拼接
- tool_calls 按片段携带的 index 归并：
  id / type / name 取第一个非空值，arguments 按到达顺序拼接
- 没有 index 的 tool_call 原样保留，不参与归并
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from shuttle.core.errors import StreamConcatError
from shuttle.core.message import AssistantMessage, BaseMessage, FunctionCall, ToolCall


@dataclass
class _ToolCallBuffer:
    id: str = ""
    type: str = ""
    name: str = ""
    arguments: List[str] = field(default_factory=list)

    def update(self, tc: ToolCall) -> None:
        if not self.id and tc.id:
            self.id = tc.id
        if not self.type and tc.type:
            self.type = tc.type
        if not self.name and tc.function.name:
            self.name = tc.function.name
        if tc.function.arguments:
            self.arguments.append(tc.function.arguments)

    def build(self, index: int) -> ToolCall:
        return ToolCall(
            id=self.id,
            type=self.type or "function",
            function=FunctionCall(name=self.name, arguments="".join(self.arguments)),
            index=index,
        )


@dataclass
class MessageAccumulator:
    """
    消息片段累积器

    用法：
        acc = MessageAccumulator()
        async for chunk in reader:
            acc.add(chunk)
        message = acc.get_message()
    """

    role: Optional[str] = None
    content_parts: List[str] = field(default_factory=list)
    name: Optional[str] = None
    metadata: Dict = field(default_factory=dict)
    chunk_count: int = 0
    _indexed: Dict[int, _ToolCallBuffer] = field(default_factory=dict)
    _order: List[object] = field(default_factory=list)  # int index or raw ToolCall

    def add(self, chunk: BaseMessage) -> None:
        """累积一个片段"""
        if self.role is None:
            self.role = chunk.role
        elif chunk.role != self.role:
            raise StreamConcatError(
                f"cannot concat messages with different roles: {self.role} / {chunk.role}"
            )

        self.chunk_count += 1

        if chunk.content:
            self.content_parts.append(chunk.content)

        if chunk.name and not self.name:
            self.name = chunk.name

        if chunk.metadata:
            self.metadata.update(chunk.metadata)

        for tc in getattr(chunk, "tool_calls", None) or []:
            if tc.index is None:
                self._order.append(tc)
                continue
            buf = self._indexed.get(tc.index)
            if buf is None:
                buf = self._indexed[tc.index] = _ToolCallBuffer()
                self._order.append(tc.index)
            buf.update(tc)

    def get_tool_calls(self) -> List[ToolCall]:
        calls = []
        for entry in self._order:
            if isinstance(entry, ToolCall):
                calls.append(entry)
            else:
                calls.append(self._indexed[entry].build(entry))
        return calls

    def has_tool_calls(self) -> bool:
        return bool(self._order)

    def get_message(self) -> AssistantMessage:
        """获取累积后的完整消息"""
        if self.chunk_count == 0:
            raise StreamConcatError("cannot concat an empty stream")
        if self.role != "assistant":
            raise StreamConcatError(f"only assistant fragments can be merged, got {self.role}")

        return AssistantMessage(
            content="".join(self.content_parts),
            tool_calls=self.get_tool_calls() or None,
            name=self.name,
            metadata=dict(self.metadata),
        )


def concat_messages(chunks: List[BaseMessage]) -> BaseMessage:
    """
    合并同一回合的消息片段。

    只有一个片段时原样返回；否则按上面的规则合并为 AssistantMessage。
    """
    if len(chunks) == 1:
        return chunks[0]

    acc = MessageAccumulator()
    for chunk in chunks:
        acc.add(chunk)
    return acc.get_message()


__all__ = [
    "MessageAccumulator",
    "concat_messages",
]
