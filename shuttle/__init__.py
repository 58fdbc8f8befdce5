"""
Shuttle - ReAct control loop for tool-calling chat models
=========================================================

Like a weaver's shuttle, the agent passes back and forth between the chat
model and the tools until the answer is woven.

## 🌟 Core Architecture (Mental Model)

- **Atomic Unit**: `Runnable` (see `shuttle.core.runnable`). Chat models,
  tools and compiled graphs share it.
- **Graph**: `shuttle.graph.StateGraph` wires named nodes with fixed and
  conditional edges, keeps one state per run and bounds the number of steps.
- **Loop**: `shuttle.react.ReactAgent` assembles the ReAct graph:
  model → (tool calls?) → tools → model ... with optional direct return.

## 🧭 Developer Map

- `shuttle.core`: messages, stream reader, errors.
- `shuttle.builtin`: chat model base + mock, tool base + tools node.
- `shuttle.react`: state, stream checkers, stages, routers, agent.

## 🚀 Quick Start Pattern

```python
from shuttle import ReactAgent, ReactAgentConfig, UserMessage
from shuttle.builtin import ToolsNodeConfig, tool

@tool
async def search(query: str) -> str: ...

agent = await ReactAgent.create(ReactAgentConfig(
    tool_calling_model=my_model,
    tools_config=ToolsNodeConfig(tools=[search]),
    tool_return_directly={"search"},
))
msg = await agent.generate([UserMessage(content="Hello")])

async for chunk in agent.stream([UserMessage(content="Hello")]):
    print(chunk.content, end="")
```
"""

from shuttle.core import (
    Runnable,
    RunnableConfig,
    Message,
    BaseMessage,
    SystemMessage,
    UserMessage,
    AssistantMessage,
    ToolMessage,
    ToolCall,
    FunctionCall,
    StreamReader,
    ShuttleError,
)
from shuttle.react import (
    ReactAgent,
    ReactAgentConfig,
    ConversationState,
    first_chunk_tool_call_checker,
    full_stream_tool_call_checker,
    new_persona_modifier,
)

__all__ = [
    "Runnable",
    "RunnableConfig",
    "Message",
    "BaseMessage",
    "SystemMessage",
    "UserMessage",
    "AssistantMessage",
    "ToolMessage",
    "ToolCall",
    "FunctionCall",
    "StreamReader",
    "ShuttleError",
    "ReactAgent",
    "ReactAgentConfig",
    "ConversationState",
    "first_chunk_tool_call_checker",
    "full_stream_tool_call_checker",
    "new_persona_modifier",
]
