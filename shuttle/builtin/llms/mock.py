"""
Mock Chat Model for Testing

返回预设响应，无需 API key：
1. invoke() 依次返回 responses 中的消息
2. stream() 依次返回 fragments 中的片段序列；
   未提供 fragments 时把对应的完整响应作为单个片段
3. 记录每次调用收到的消息，便于断言
"""

from collections.abc import AsyncGenerator
from typing import Any, List, Optional, Sequence

from shuttle.builtin.llms.base import BaseChatModel
from shuttle.core.message import AssistantMessage, Message
from shuttle.core.runnable import RunnableConfig


class MockChatModel(BaseChatModel):
    """
    Mock Chat Model - 返回预设响应

    使用方式：
        model = MockChatModel(responses=[AssistantMessage(content="4")])
        msg = await model.invoke([UserMessage(content="2+2?")])
    """

    model_name = "mock"

    def __init__(
        self,
        responses: Optional[Sequence[AssistantMessage]] = None,
        fragments: Optional[Sequence[Sequence[AssistantMessage]]] = None,
        repeat_last: bool = False,
    ):
        self.responses = list(responses or [])
        self.fragments = [list(f) for f in (fragments or [])]
        self.repeat_last = repeat_last
        self.calls: List[List[Message]] = []
        self.tools = None

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def _pick(self, script: List[Any]) -> Any:
        turn = len(self.calls) - 1
        if turn < len(script):
            return script[turn]
        if self.repeat_last and script:
            return script[-1]
        return None

    async def invoke(
        self,
        input: List[Message],
        config: Optional[RunnableConfig] = None,
        **kwargs: Any,  # noqa: ARG002
    ) -> AssistantMessage:
        """非流式调用 - 返回预设响应"""
        self.calls.append(list(input))
        response = self._pick(self.responses)
        if response is None:
            return AssistantMessage(content="No more mock responses")
        return response

    async def stream(
        self,
        input: List[Message],
        config: Optional[RunnableConfig] = None,
        **kwargs: Any,  # noqa: ARG002
    ) -> AsyncGenerator[AssistantMessage, None]:
        """流式调用 - 返回预设片段"""
        self.calls.append(list(input))
        chunks = self._pick(self.fragments)
        if chunks is None:
            response = self._pick(self.responses)
            chunks = [response or AssistantMessage(content="No more mock responses")]
        for chunk in chunks:
            yield chunk
