from typing import List, Optional, AsyncGenerator, Sequence
from abc import abstractmethod
from shuttle.core.runnable import Runnable, RunnableConfig
from shuttle.core.message import Message, AssistantMessage
from shuttle.builtin.tools.base import ToolInfo


class BaseChatModel(Runnable[List[Message], AssistantMessage]):
    """
    Abstract Base Class for chat models.

    Philosophy:
    - A chat model is also a Runnable (can be composed directly)
    - Input: List[Message]
    - Output: AssistantMessage, or a stream of AssistantMessage fragments

    Tool binding:
    - `with_tools(infos)` returns a new model bound to the tool catalog
      (preferred, leaves this instance untouched).
    - `bind_tools(infos)` binds in place (deprecated).
    """

    model_name: str = "base"
    temperature: float = 0.7
    max_tokens: Optional[int] = None

    tools: Optional[List[ToolInfo]] = None

    @abstractmethod
    async def invoke(
        self,
        input: List[Message],
        config: Optional[RunnableConfig] = None,
        **kwargs
    ) -> AssistantMessage:
        """
        One-shot generation.

        Args:
            input: List of messages.
            config: Runtime configuration.

        Returns:
            AssistantMessage (may carry tool_calls)
        """
        ...

    @abstractmethod
    async def stream(
        self,
        input: List[Message],
        config: Optional[RunnableConfig] = None,
        **kwargs
    ) -> AsyncGenerator[AssistantMessage, None]:
        """
        Streaming generation.

        Yields:
            AssistantMessage fragments of one turn, in delivery order.
        """
        ...

    def with_tools(self, tools: Sequence[ToolInfo]) -> "BaseChatModel":
        """Return a copy of this model bound to `tools`."""
        clone = self.__class__.__new__(self.__class__)
        clone.__dict__.update(self.__dict__)
        clone.tools = list(tools)
        return clone

    def bind_tools(self, tools: Sequence[ToolInfo]) -> None:
        """Bind `tools` to this instance."""
        self.tools = list(tools)

    def tool_schemas(self) -> Optional[List[dict]]:
        """Bound tools in OpenAI function-calling format."""
        if not self.tools:
            return None
        return [info.to_openai_schema() for info in self.tools]
