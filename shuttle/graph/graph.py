"""
State Graph - 带状态的有向图执行引擎

设计思路：
- 节点是 Runnable，按 key 注册；可附带 state pre-handler
- 边分两种：固定边 (add_edge) 和条件分支 (add_branch)
- 每次运行由 state_factory 创建一份独立的运行状态；最终输出完成后交给
  state_finalizer，并通过 run_end 回调暴露，之后即丢弃
- 同一次运行内节点严格串行执行，state 同一时刻只被一个处理函数访问
- 编译时给定 max_steps，每执行一个节点计一步，超出即失败

两种入口：
- invoke(): 阻塞执行，返回 END 前最后一个节点的输出
- stream(): 流式执行，逐块产出 END 前最后一个节点的输出

流式模式下，带分支的节点输出被 copy 成两份：
一份交给分支条件判断，另一份继续流向下一个节点（或作为最终输出）。
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, Iterable, Optional, Union

from shuttle.core.errors import (
    GraphCompileError,
    MaxStepsExceededError,
    NodeExecutionError,
    ShuttleError,
)
from shuttle.core.runnable import Lambda, Runnable, RunnableConfig
from shuttle.core.stream import StreamReader, concat_chunks, concat_stream

logger = logging.getLogger(__name__)

START = "__start__"
END = "__end__"

StatePreHandler = Callable[[Any, Any], Union[Any, Awaitable[Any]]]
BranchCondition = Callable[[StreamReader, Any], Union[str, Awaitable[str]]]


@dataclass
class GraphNode:
    key: str
    runnable: Runnable
    name: str
    pre_handler: Optional[StatePreHandler] = None
    stateful: bool = False


class GraphBranch:
    """
    Conditional edge.

    `condition(reader, state)` receives the source node's output as a
    StreamReader (a single-chunk reader in blocking mode) and returns the key
    of the next node. It must release the reader before returning.
    """

    def __init__(self, condition: BranchCondition, end_nodes: Iterable[str]):
        self.condition = condition
        self.end_nodes = set(end_nodes)

    async def route(self, reader: StreamReader, state: Any) -> str:
        target = self.condition(reader, state)
        if inspect.isawaitable(target):
            target = await target
        if target not in self.end_nodes:
            raise ShuttleError(
                f"branch returned '{target}', expected one of {sorted(self.end_nodes)}"
            )
        return target


@dataclass(frozen=True)
class CompileOptions:
    max_steps: int
    name: str = "graph"


class StateGraph:
    """
    Graph builder.

    Example:
        graph = StateGraph(state_factory=dict)
        graph.add_node("upper", Lambda(str.upper))
        graph.add_edge(START, "upper")
        graph.add_edge("upper", END)
        runnable = graph.compile(CompileOptions(max_steps=5))
        await runnable.invoke("hi")  # "HI"
    """

    def __init__(
        self,
        state_factory: Optional[Callable[[], Any]] = None,
        state_finalizer: Optional[Callable[[Any, Any], Any]] = None,
    ):
        """
        Args:
            state_factory: creates the state of one run.
            state_finalizer: `(final_output, state)`, runs once the final
                output is complete (in streaming mode: once it is drained).
        """
        self.state_factory = state_factory
        self.state_finalizer = state_finalizer
        self.nodes: Dict[str, GraphNode] = {}
        self.edges: Dict[str, str] = {}
        self.branches: Dict[str, GraphBranch] = {}
        self._compiled = False

    def _check_mutable(self) -> None:
        if self._compiled:
            raise GraphCompileError("graph has been compiled, it can not be modified")

    def add_node(
        self,
        key: str,
        runnable: Runnable,
        *,
        pre_handler: Optional[StatePreHandler] = None,
        name: Optional[str] = None,
        stateful: bool = False,
    ) -> None:
        """
        Register a node.

        Args:
            pre_handler: `(input, state) -> input`, runs before the node.
            stateful: pass the run state to the node as `state=` keyword.
        """
        self._check_mutable()
        if key in (START, END):
            raise GraphCompileError(f"node key '{key}' is reserved")
        if key in self.nodes:
            raise GraphCompileError(f"node '{key}' already exists")
        if pre_handler is not None and self.state_factory is None:
            raise GraphCompileError(f"node '{key}' has a state pre-handler but the graph has no state")
        self.nodes[key] = GraphNode(
            key=key,
            runnable=runnable,
            name=name or key,
            pre_handler=pre_handler,
            stateful=stateful,
        )

    def add_lambda_node(
        self,
        key: str,
        func: Callable[..., Any],
        *,
        name: Optional[str] = None,
        stateful: bool = False,
    ) -> None:
        self.add_node(key, Lambda(func, name=name or key), name=name, stateful=stateful)

    def _check_outgoing(self, start: str) -> None:
        if start == END:
            raise GraphCompileError("END can not have outgoing edges")
        if start != START and start not in self.nodes:
            raise GraphCompileError(f"edge start node '{start}' does not exist")
        if start in self.edges or start in self.branches:
            raise GraphCompileError(f"node '{start}' already has an outgoing edge")

    def add_edge(self, start: str, end: str) -> None:
        self._check_mutable()
        self._check_outgoing(start)
        if end == START:
            raise GraphCompileError("START can not be an edge target")
        if end != END and end not in self.nodes:
            raise GraphCompileError(f"edge end node '{end}' does not exist")
        self.edges[start] = end

    def add_branch(self, start: str, branch: GraphBranch) -> None:
        self._check_mutable()
        self._check_outgoing(start)
        if start == START:
            raise GraphCompileError("START can not branch")
        self.branches[start] = branch

    def compile(self, options: CompileOptions) -> "CompiledGraph":
        if options.max_steps < 1:
            raise GraphCompileError(f"max_steps must be positive, got {options.max_steps}")
        if START not in self.edges:
            raise GraphCompileError("graph has no edge from START")
        for key in self.nodes:
            if key not in self.edges and key not in self.branches:
                raise GraphCompileError(f"node '{key}' has no outgoing edge")
        for key, branch in self.branches.items():
            for target in branch.end_nodes:
                if target != END and target not in self.nodes:
                    raise GraphCompileError(f"branch of '{key}' targets unknown node '{target}'")
        self._compiled = True
        return CompiledGraph(self, options)


class _RunState:
    """Per-run state plus the lock serializing every access to it."""

    def __init__(self, state: Any):
        self.state = state
        self.lock = asyncio.Lock()


_DONE = object()


async def _next_chunk(reader: StreamReader) -> Any:
    """`reader.recv()` returning `_DONE` at the end, so it can run under wait_for."""
    try:
        return await reader.recv()
    except StopAsyncIteration:
        return _DONE


class CompiledGraph(Runnable[Any, Any]):
    """Executable form of a StateGraph."""

    def __init__(self, graph: StateGraph, options: CompileOptions):
        self.graph = graph
        self.options = options

    @property
    def name(self) -> str:
        return self.options.name

    @property
    def max_steps(self) -> int:
        return self.options.max_steps

    async def invoke(self, input: Any, config: Optional[RunnableConfig] = None, **kwargs) -> Any:
        run = self._run(input, config or RunnableConfig(), streaming=False)
        if config and config.timeout:
            return await asyncio.wait_for(run, config.timeout)
        return await run

    async def stream(
        self, input: Any, config: Optional[RunnableConfig] = None, **kwargs
    ) -> AsyncGenerator[Any, None]:
        run = self._run(input, config or RunnableConfig(), streaming=True)
        if not (config and config.timeout):
            reader = await run
            async with reader:
                async for chunk in reader:
                    yield chunk
            return

        # the timeout covers the whole run, draining the final stream included
        loop = asyncio.get_running_loop()
        deadline = loop.time() + config.timeout
        reader = await asyncio.wait_for(run, config.timeout)
        async with reader:
            while True:
                remaining = max(deadline - loop.time(), 0)
                chunk = await asyncio.wait_for(_next_chunk(reader), remaining)
                if chunk is _DONE:
                    break
                yield chunk

    async def _run(self, input: Any, config: RunnableConfig, streaming: bool) -> Any:
        graph = self.graph
        run_state = _RunState(graph.state_factory() if graph.state_factory else None)
        steps = 0
        current = graph.edges[START]
        value = input

        logger.debug("Graph %s started (streaming=%s)", self.name, streaming)

        while current != END:
            if steps >= self.max_steps:
                raise MaxStepsExceededError(self.max_steps)
            steps += 1

            node = graph.nodes[current]
            logger.debug("Graph %s step %d: node %s", self.name, steps, node.key)

            if node.pre_handler is not None:
                async with run_state.lock:
                    value = node.pre_handler(value, run_state.state)
                    if inspect.isawaitable(value):
                        value = await value

            output = await self._execute(node, value, config, run_state, streaming)
            current, output = await self._next(node, output, run_state, streaming)
            logger.debug("Graph %s: %s -> %s", self.name, node.key, current)

            if current == END:
                if streaming:
                    return StreamReader(self._finishing(output, run_state, config))
                await self._finish(output, run_state, config)
                return output

            if streaming:
                value = await concat_stream(output)
            else:
                value = output

        # START wired straight to END
        await self._finish(value, run_state, config)
        return StreamReader.from_value(value) if streaming else value

    async def _finish(self, output: Any, run_state: _RunState, config: RunnableConfig) -> None:
        finalizer = self.graph.state_finalizer
        if finalizer is not None:
            async with run_state.lock:
                result = finalizer(output, run_state.state)
                if inspect.isawaitable(result):
                    await result
        logger.debug("Graph %s finished", self.name)
        await config.emit("run_end", self.name, run_state.state)

    async def _finishing(
        self, reader: StreamReader, run_state: _RunState, config: RunnableConfig
    ) -> AsyncGenerator[Any, None]:
        """Pass the final stream through, then finish the run once it is drained."""
        chunks = []
        async with reader:
            async for chunk in reader:
                chunks.append(chunk)
                yield chunk
        await self._finish(concat_chunks(chunks) if chunks else None, run_state, config)

    async def _execute(
        self,
        node: GraphNode,
        value: Any,
        config: RunnableConfig,
        run_state: _RunState,
        streaming: bool,
    ) -> Any:
        kwargs = {"state": run_state.state} if node.stateful else {}
        await config.emit("node_start", node.key, value)
        try:
            if streaming:
                # node_end / node_error follow once the stream has been read
                source = StreamReader(node.runnable.stream(value, config, **kwargs))
                return StreamReader(self._watch(node, source, config))
            output = await node.runnable.invoke(value, config, **kwargs)
        except ShuttleError:
            await config.emit("node_error", node.key, None)
            raise
        except Exception as e:
            await config.emit("node_error", node.key, e)
            raise NodeExecutionError(node.key, str(e)) from e
        await config.emit("node_end", node.key, output)
        return output

    async def _watch(
        self, node: GraphNode, source: StreamReader, config: RunnableConfig
    ) -> AsyncGenerator[Any, None]:
        """Pass a node's stream through, reporting failures like a blocking call."""
        async with source:
            try:
                async for chunk in source:
                    yield chunk
            except ShuttleError:
                await config.emit("node_error", node.key, None)
                raise
            except Exception as e:
                await config.emit("node_error", node.key, e)
                raise NodeExecutionError(node.key, str(e)) from e
        await config.emit("node_end", node.key, None)

    async def _next(self, node: GraphNode, output: Any, run_state: _RunState, streaming: bool):
        branch = self.graph.branches.get(node.key)
        if branch is None:
            return self.graph.edges[node.key], output

        if not streaming:
            async with run_state.lock:
                target = await branch.route(StreamReader.from_value(output), run_state.state)
            return target, output

        for_branch, passthrough = output.copy(2)
        try:
            async with run_state.lock:
                target = await branch.route(for_branch, run_state.state)
        except BaseException:
            await passthrough.aclose()
            raise
        finally:
            await for_branch.aclose()
        return target, passthrough
