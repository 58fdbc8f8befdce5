# shuttle/core/message.py

from typing import Annotated, Optional, Union, List, Dict, Any, Literal
from pydantic import BaseModel, Field
from datetime import datetime
from uuid import uuid4


# ============ Tool Call Types ============

class FunctionCall(BaseModel):
    """Function call detail."""
    name: str = ""
    arguments: str = ""  # JSON string, possibly delivered in fragments


class ToolCall(BaseModel):
    """
    Tool call (OpenAI format).

    `index` is only set on streamed fragments; fragments sharing an index
    belong to the same call.
    """
    id: str = ""
    type: str = "function"
    function: FunctionCall = Field(default_factory=FunctionCall)
    index: Optional[int] = None


# ============ Message Types ============

class BaseMessage(BaseModel):
    """
    Base class for all messages.

    Design Philosophy:
    - Mutable, pydantic v2 for validation
    - OpenAI compatible but extensible
    """

    role: str  # system, user, assistant, tool
    content: Optional[str] = None

    # Metadata
    id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = Field(default_factory=datetime.now)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    # OpenAI compatibility
    name: Optional[str] = None

    def get_text_content(self) -> str:
        return self.content or ""

    def to_openai_format(self) -> Dict[str, Any]:
        """Convert to OpenAI API format."""
        msg: Dict[str, Any] = {"role": self.role}

        if self.content is not None:
            msg["content"] = self.content

        if self.name:
            msg["name"] = self.name

        return msg


class SystemMessage(BaseMessage):
    """System message."""
    role: Literal["system"] = "system"

    def __init__(self, content: str, **kwargs):
        super().__init__(content=content, **kwargs)


class UserMessage(BaseMessage):
    """User message."""
    role: Literal["user"] = "user"

    def __init__(self, content: str, **kwargs):
        super().__init__(content=content, **kwargs)


class AssistantMessage(BaseMessage):
    """Assistant message (supports tool calls)."""
    role: Literal["assistant"] = "assistant"
    tool_calls: Optional[List[ToolCall]] = None

    def __init__(self, content: Optional[str] = None, tool_calls: Optional[List[ToolCall]] = None, **kwargs):
        super().__init__(content=content, tool_calls=tool_calls, **kwargs)

    def to_openai_format(self) -> Dict[str, Any]:
        msg = super().to_openai_format()
        if self.tool_calls:
            msg["tool_calls"] = [
                tc.model_dump(exclude={"index"}) for tc in self.tool_calls
            ]
        return msg


class ToolMessage(BaseMessage):
    """Tool execution result message."""
    role: Literal["tool"] = "tool"
    tool_call_id: str

    def __init__(self, tool_call_id: str, content: str, **kwargs):
        super().__init__(content=content, tool_call_id=tool_call_id, **kwargs)

    def to_openai_format(self) -> Dict[str, Any]:
        msg = super().to_openai_format()
        msg["tool_call_id"] = self.tool_call_id
        return msg


# Type Aliases
# discriminated by role so validation only builds the matching class
Message = Annotated[
    Union[SystemMessage, UserMessage, AssistantMessage, ToolMessage],
    Field(discriminator="role"),
]


# ============ Helper Functions ============

def create_message(
    role: str,
    content: Optional[str] = None,
    **kwargs
) -> Message:
    """
    Factory function: create corresponding Message based on role.

    Example:
        msg = create_message("user", "Hello")
        msg = create_message("assistant", tool_calls=[...])
    """
    if role == "system":
        return SystemMessage(content=content or "", **kwargs)
    elif role == "user":
        return UserMessage(content=content or "", **kwargs)
    elif role == "assistant":
        return AssistantMessage(content=content, **kwargs)
    elif role == "tool":
        if "tool_call_id" not in kwargs:
            raise ValueError("tool_call_id is required for ToolMessage")
        return ToolMessage(content=content or "", **kwargs)
    else:
        raise ValueError(f"Unknown role: {role}")


def messages_to_openai_format(messages: List[Message]) -> List[Dict[str, Any]]:
    return [msg.to_openai_format() for msg in messages]
