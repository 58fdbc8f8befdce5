"""
Shuttle Core - "The Atoms"
==========================

This module defines the fundamental interfaces and data structures.

## ⚛️ Atomic Units

### 1. Runnable (`Runnable`)
The universal interface for ANY executable component.
- **Protocol**: `await invoke(input) -> output`
- **Streaming**: `async for chunk in stream(input)`
> Chat models, tools and compiled graphs are all Runnables.

### 2. Message (`Message`)
The universal data packet flowing through the loop.
- **SystemMessage**: Instructions, persona.
- **UserMessage**: Input, Query.
- **AssistantMessage**: Output, Thought, Tool Call.
- **ToolMessage**: Tool Execution Result.

### 3. StreamReader (`StreamReader`)
Single-pass reader over incremental fragments, with `copy(n)` and guaranteed
release through `async with`.
"""

from .runnable import (
    Runnable,
    RunnableConfig,
    Lambda,
)

from .message import (
    Message,
    BaseMessage,
    SystemMessage,
    UserMessage,
    AssistantMessage,
    ToolMessage,
    ToolCall,
    FunctionCall,
    create_message,
    messages_to_openai_format,
)

from .stream import StreamReader, concat_chunks, concat_stream

from .errors import (
    ShuttleError,
    ConfigurationError,
    GraphCompileError,
    ToolCallDetectionError,
    NodeExecutionError,
    ToolNotFoundError,
    ToolArgumentsError,
    NoValueError,
    MaxStepsExceededError,
    StreamConcatError,
)

__all__ = [
    # Runnable
    "Runnable",
    "RunnableConfig",
    "Lambda",

    # Message
    "Message",
    "BaseMessage",
    "SystemMessage",
    "UserMessage",
    "AssistantMessage",
    "ToolMessage",
    "ToolCall",
    "FunctionCall",
    "create_message",
    "messages_to_openai_format",

    # Stream
    "StreamReader",
    "concat_chunks",
    "concat_stream",

    # Errors
    "ShuttleError",
    "ConfigurationError",
    "GraphCompileError",
    "ToolCallDetectionError",
    "NodeExecutionError",
    "ToolNotFoundError",
    "ToolArgumentsError",
    "NoValueError",
    "MaxStepsExceededError",
    "StreamConcatError",
]
