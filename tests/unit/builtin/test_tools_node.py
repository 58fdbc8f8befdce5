"""
Tools Node 测试
"""

import asyncio

import pytest

from shuttle.builtin.llms.mock import MockChatModel
from shuttle.builtin.tools.base import BaseTool, FunctionTool, ToolInfo, tool
from shuttle.builtin.tools.node import ToolsNode, ToolsNodeConfig, resolve_tool_infos
from shuttle.core.errors import ConfigurationError, ToolArgumentsError, ToolNotFoundError
from shuttle.core.message import AssistantMessage
from shuttle.core.runnable import RunnableConfig


@tool
def add(a: int, b: int) -> int:
    """Add two numbers"""
    return a + b


@tool(name="shout", description="Upper-case the text")
async def make_loud(text: str) -> str:
    return text.upper()


class BrokenInfoTool(BaseTool):
    name = "broken"
    description = ""

    async def info(self) -> ToolInfo:
        raise RuntimeError("schema unavailable")

    async def invoke(self, input, config=None, **kwargs) -> str:
        return ""


class TestFunctionTool:

    @pytest.mark.asyncio
    async def test_info_from_signature(self):
        info = await add.info()
        assert info.name == "add"
        assert info.description == "Add two numbers"
        assert set(info.parameters["properties"]) == {"a", "b"}
        assert info.to_openai_schema()["function"]["name"] == "add"

    @pytest.mark.asyncio
    async def test_invoke_sync_and_async(self):
        assert await add.invoke({"a": 2, "b": 3}) == "5"
        assert make_loud.name == "shout"
        assert await make_loud.invoke({"text": "hi"}) == "HI"


class TestResolveToolInfos:

    @pytest.mark.asyncio
    async def test_duplicate_names(self):
        with pytest.raises(ConfigurationError, match="duplicate"):
            await resolve_tool_infos([add, FunctionTool(lambda: "", name="add")])

    @pytest.mark.asyncio
    async def test_info_failure(self):
        with pytest.raises(ConfigurationError) as exc_info:
            await resolve_tool_infos([BrokenInfoTool()])
        assert isinstance(exc_info.value.__cause__, RuntimeError)


class TestToolsNode:

    @pytest.mark.asyncio
    async def test_results_follow_request_order(self, tool_call_message):
        node = await ToolsNode.create(ToolsNodeConfig(tools=[add, make_loud]))
        assert [info.name for info in node.tool_infos] == ["add", "shout"]

        msg = tool_call_message(
            ("c1", "shout", '{"text": "a"}'),
            ("c2", "add", '{"a": 1, "b": 1}'),
        )
        results = await node.invoke(msg)

        assert [r.tool_call_id for r in results] == ["c1", "c2"]
        assert [r.content for r in results] == ["A", "2"]
        assert [r.name for r in results] == ["shout", "add"]

    @pytest.mark.asyncio
    async def test_calls_run_concurrently(self, tool_call_message):
        both_started = asyncio.Event()
        started = []

        async def wait_for_peer(tag: str) -> str:
            started.append(tag)
            if len(started) == 2:
                both_started.set()
            await asyncio.wait_for(both_started.wait(), 1)
            return tag

        node = await ToolsNode.create(ToolsNodeConfig(tools=[FunctionTool(wait_for_peer)]))
        msg = tool_call_message(
            ("c1", "wait_for_peer", '{"tag": "x"}'),
            ("c2", "wait_for_peer", '{"tag": "y"}'),
        )
        results = await node.invoke(msg)
        assert [r.content for r in results] == ["x", "y"]

    @pytest.mark.asyncio
    async def test_sequential_execution(self, tool_call_message):
        order = []

        async def step(tag: str) -> str:
            order.append(("start", tag))
            await asyncio.sleep(0)
            order.append(("end", tag))
            return tag

        node = await ToolsNode.create(
            ToolsNodeConfig(tools=[FunctionTool(step)], execute_sequentially=True)
        )
        msg = tool_call_message(("c1", "step", '{"tag": "1"}'), ("c2", "step", '{"tag": "2"}'))
        await node.invoke(msg, RunnableConfig(max_concurrency=4))
        assert order == [("start", "1"), ("end", "1"), ("start", "2"), ("end", "2")]

    @pytest.mark.asyncio
    async def test_unknown_tool(self, tool_call_message, search_tool):
        node = await ToolsNode.create(ToolsNodeConfig(tools=[search_tool]))
        with pytest.raises(ToolNotFoundError):
            await node.invoke(tool_call_message(("c1", "missing")))

        def fallback(name, arguments):
            return f"unknown tool {name}"

        node = await ToolsNode.create(
            ToolsNodeConfig(tools=[search_tool], unknown_tools_handler=fallback)
        )
        results = await node.invoke(tool_call_message(("c1", "missing")))
        assert results[0].content == "unknown tool missing"
        assert results[0].tool_call_id == "c1"

    @pytest.mark.asyncio
    async def test_arguments(self, tool_call_message, search_tool):
        node = await ToolsNode.create(ToolsNodeConfig(tools=[search_tool]))

        results = await node.invoke(tool_call_message(("c1", "search", "")))
        assert results[0].content == "result"

        with pytest.raises(ToolArgumentsError):
            await node.invoke(tool_call_message(("c1", "search", '{"q": ')))
        with pytest.raises(ToolArgumentsError):
            await node.invoke(tool_call_message(("c1", "search", "[1, 2]")))

    @pytest.mark.asyncio
    async def test_no_tool_calls(self, search_tool):
        node = await ToolsNode.create(ToolsNodeConfig(tools=[search_tool]))
        assert await node.invoke(AssistantMessage(content="done")) == []


class TestToolBinding:

    @pytest.mark.asyncio
    async def test_with_tools_leaves_original_untouched(self, search_tool):
        infos = [await search_tool.info()]
        model = MockChatModel()

        bound = model.with_tools(infos)
        assert bound is not model
        assert model.tools is None
        assert bound.tool_schemas()[0]["function"]["name"] == "search"

        model.bind_tools(infos)
        assert model.tools == infos
