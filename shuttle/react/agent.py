"""
ReAct Agent

A simple agent that handles user messages with a chat model and tools:
it calls the chat model; if the message contains tool calls, it calls the
tools; if a called tool is configured to return directly, the tool's result
is the answer; otherwise it calls the chat model again, until a model turn
contains no tool calls or the step bound is hit.

Example:

    agent = await ReactAgent.create(ReactAgentConfig(
        tool_calling_model=model,
        tools_config=ToolsNodeConfig(tools=[search]),
    ))
    msg = await agent.generate([UserMessage(content="how to build an agent?")])
    print(msg.content)

IMPORTANT: the default stream checker only looks at the first non-empty
fragment. Models that write text before their tool calls (e.g. Claude) need
`full_stream_tool_call_checker` or a custom checker.
"""

from __future__ import annotations

import logging
import warnings
from typing import AsyncGenerator, List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field

from shuttle.builtin.llms.base import BaseChatModel
from shuttle.builtin.tools.base import ToolInfo
from shuttle.builtin.tools.node import ToolsNode, ToolsNodeConfig
from shuttle.core.errors import ConfigurationError
from shuttle.core.message import Message, SystemMessage
from shuttle.core.runnable import Runnable, RunnableConfig
from shuttle.graph.graph import END, START, CompiledGraph, CompileOptions, GraphBranch, StateGraph
from shuttle.react.checkers import StreamToolCallChecker, first_chunk_tool_call_checker
from shuttle.react.routing import (
    NODE_KEY_DIRECT_RETURN,
    NODE_KEY_MODEL,
    NODE_KEY_TOOLS,
    ModelOutputRouter,
    ToolOutputRouter,
)
from shuttle.react.stages import DirectReturnExtractor, MessageModifier, ModelStage, ToolStage
from shuttle.react.state import ConversationState, register_state_type

logger = logging.getLogger(__name__)

GRAPH_NAME = "ReActAgent"
MODEL_NODE_NAME = "ChatModel"
TOOLS_NODE_NAME = "Tools"

# default step bound: node count + DEFAULT_EXTRA_STEPS
DEFAULT_EXTRA_STEPS = 10


class ReactAgentConfig(BaseModel):
    """ReAct agent 配置"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    tool_calling_model: Optional[BaseChatModel] = Field(
        None, description="带工具调用能力的聊天模型（推荐）"
    )
    model: Optional[BaseChatModel] = Field(
        None, description="Deprecated: use tool_calling_model"
    )
    tools_config: ToolsNodeConfig = Field(default_factory=ToolsNodeConfig, description="工具节点配置")
    message_modifier: Optional[MessageModifier] = Field(
        None, description="调用模型前修改输入消息，例如添加系统提示"
    )
    max_step: int = Field(0, ge=0, description=f"最大执行步数，0 表示节点数 + {DEFAULT_EXTRA_STEPS}")
    tool_return_directly: Set[str] = Field(
        default_factory=set,
        description="调用后直接返回结果的工具名；同一回合多个命中时只取第一个",
    )
    stream_tool_call_checker: Optional[StreamToolCallChecker] = Field(
        None, description="判断流式输出是否包含工具调用；必须在返回前关闭 reader"
    )


def new_persona_modifier(persona: str) -> MessageModifier:
    """
    Deprecated: put the persona message into the input of generate/stream
    instead; this modifier copies the history on every turn.

    Returns a modifier that prepends `persona` as a system message.
    """
    warnings.warn(
        "new_persona_modifier is deprecated, include the system message in the input instead",
        DeprecationWarning,
        stacklevel=2,
    )

    def modifier(messages: List[Message]) -> List[Message]:
        return [SystemMessage(content=persona), *messages]

    return modifier


def chat_model_with_tools(
    model: Optional[BaseChatModel],
    tool_calling_model: Optional[BaseChatModel],
    tool_infos: List[ToolInfo],
) -> BaseChatModel:
    if tool_calling_model is not None:
        return tool_calling_model.with_tools(tool_infos)
    if model is not None:
        logger.warning("ReactAgentConfig.model is deprecated, use tool_calling_model")
        model.bind_tools(tool_infos)
        return model
    raise ConfigurationError("no chat model provided")


def record_final_output(output: Optional[Message], state: ConversationState) -> None:
    """Append the run's final message so the history holds the whole transcript."""
    if output is None:
        return
    if state.history and state.history[-1] is output:
        return
    state.history.append(output)


class ReactAgent(Runnable[List[Message], Message]):
    """
    ReAct agent backed by a compiled state graph.

    Build with `await ReactAgent.create(config)`; the agent is reusable and
    every run gets its own ConversationState.
    """

    def __init__(self, runnable: CompiledGraph, graph: StateGraph, compile_options: CompileOptions):
        self._runnable = runnable
        self._graph = graph
        self._compile_options = compile_options

    @classmethod
    async def create(cls, config: ReactAgentConfig) -> "ReactAgent":
        register_state_type()

        checker = config.stream_tool_call_checker or first_chunk_tool_call_checker

        tools_node = await ToolsNode.create(config.tools_config)
        chat_model = chat_model_with_tools(config.model, config.tool_calling_model, tools_node.tool_infos)

        graph = StateGraph(state_factory=ConversationState, state_finalizer=record_final_output)

        model_stage = ModelStage(chat_model, config.message_modifier)
        graph.add_node(NODE_KEY_MODEL, model_stage, pre_handler=model_stage.pre_handle, name=MODEL_NODE_NAME)
        graph.add_edge(START, NODE_KEY_MODEL)

        tool_stage = ToolStage(tools_node, config.tool_return_directly)
        graph.add_node(NODE_KEY_TOOLS, tool_stage, pre_handler=tool_stage.pre_handle, name=TOOLS_NODE_NAME)

        model_router = ModelOutputRouter(checker)
        graph.add_branch(NODE_KEY_MODEL, GraphBranch(model_router, model_router.end_nodes))

        if config.tool_return_directly:
            cls._build_return_directly(graph)
        else:
            graph.add_edge(NODE_KEY_TOOLS, NODE_KEY_MODEL)

        max_steps = config.max_step or len(graph.nodes) + DEFAULT_EXTRA_STEPS
        compile_options = CompileOptions(max_steps=max_steps, name=GRAPH_NAME)
        runnable = graph.compile(compile_options)

        logger.debug(
            "ReAct agent built: %d tools, max_steps=%d, return_directly=%s",
            len(tools_node.tool_infos), compile_options.max_steps, sorted(config.tool_return_directly),
        )
        return cls(runnable=runnable, graph=graph, compile_options=compile_options)

    @staticmethod
    def _build_return_directly(graph: StateGraph) -> None:
        graph.add_node(NODE_KEY_DIRECT_RETURN, DirectReturnExtractor(), stateful=True)

        # either back to the chat model or out through the direct-return node
        tool_router = ToolOutputRouter()
        graph.add_branch(NODE_KEY_TOOLS, GraphBranch(tool_router, tool_router.end_nodes))
        graph.add_edge(NODE_KEY_DIRECT_RETURN, END)

    async def invoke(
        self,
        input: List[Message],
        config: Optional[RunnableConfig] = None,
        **kwargs
    ) -> Message:
        return await self._runnable.invoke(input, config)

    async def generate(self, input: List[Message], config: Optional[RunnableConfig] = None) -> Message:
        """Run the loop to completion and return the final message."""
        return await self.invoke(input, config)

    async def stream(
        self,
        input: List[Message],
        config: Optional[RunnableConfig] = None,
        **kwargs
    ) -> AsyncGenerator[Message, None]:
        """Run the loop and yield the final message fragment by fragment."""
        async for chunk in self._runnable.stream(input, config):
            yield chunk

    def export_graph(self) -> Tuple[StateGraph, CompileOptions]:
        """The underlying graph and the options it was compiled with."""
        return self._graph, self._compile_options
