import pytest

from shuttle.builtin.llms.mock import MockChatModel
from shuttle.builtin.tools.node import ToolsNode, ToolsNodeConfig
from shuttle.core.errors import NoValueError
from shuttle.core.message import AssistantMessage, SystemMessage, ToolMessage, UserMessage
from shuttle.core.stream import StreamReader
from shuttle.graph import END
from shuttle.react.routing import (
    NODE_KEY_DIRECT_RETURN,
    NODE_KEY_MODEL,
    NODE_KEY_TOOLS,
    ModelOutputRouter,
    ToolOutputRouter,
)
from shuttle.react.checkers import first_chunk_tool_call_checker
from shuttle.react.stages import (
    DirectReturnExtractor,
    ModelStage,
    ToolStage,
    get_return_directly_tool_call_id,
)
from shuttle.react.state import ConversationState


class TestModelStage:

    @pytest.mark.asyncio
    async def test_pre_handle_appends_input(self):
        state = ConversationState()
        stage = ModelStage(MockChatModel())

        first = [UserMessage(content="hi")]
        out = await stage.pre_handle(first, state)
        assert out == state.history
        assert [m.content for m in state.history] == ["hi"]

        await stage.pre_handle([ToolMessage(tool_call_id="c1", content="r")], state)
        assert [m.role for m in state.history] == ["user", "tool"]
        # the caller's list is left alone
        assert len(first) == 1

    @pytest.mark.asyncio
    async def test_modifier_gets_a_copy(self):
        async def prepend_and_mutate(messages):
            out = [SystemMessage(content="be brief"), *messages]
            messages.clear()
            return out

        state = ConversationState()
        stage = ModelStage(MockChatModel(), prepend_and_mutate)

        out = await stage.pre_handle([UserMessage(content="hi")], state)
        assert [m.role for m in out] == ["system", "user"]
        assert [m.role for m in state.history] == ["user"]

    @pytest.mark.asyncio
    async def test_delegates_to_model(self):
        invoked = MockChatModel(responses=[AssistantMessage(content="4")])
        streamed = MockChatModel(fragments=[[AssistantMessage(content="2"), AssistantMessage(content="2")]])

        assert (await ModelStage(invoked).invoke([UserMessage(content="2+2?")])).content == "4"
        chunks = [c.content async for c in ModelStage(streamed).stream([UserMessage(content="1+1?")])]
        assert chunks == ["2", "2"]
        assert invoked.call_count == 1
        assert streamed.call_count == 1
        assert streamed.calls[0][0].content == "1+1?"


class TestToolStage:

    @pytest.mark.asyncio
    async def test_pre_handle_records_message_and_marker(self, tool_call_message, search_tool):
        node = await ToolsNode.create(ToolsNodeConfig(tools=[search_tool]))
        stage = ToolStage(node, {"search"})
        state = ConversationState(history=[UserMessage(content="q")])

        msg = tool_call_message(("c1", "other"), ("c2", "search"), ("c3", "search"))
        assert await stage.pre_handle(msg, state) is msg
        assert state.history[-1] is msg
        assert state.pending_direct_return_id == "c2"

        # a later turn without direct-return calls clears the marker
        await stage.pre_handle(tool_call_message(("c4", "other")), state)
        assert state.pending_direct_return_id == ""

    @pytest.mark.asyncio
    async def test_resume_without_input(self, tool_call_message, search_tool):
        node = await ToolsNode.create(ToolsNodeConfig(tools=[search_tool]))
        stage = ToolStage(node)
        msg = tool_call_message(("c1", "search"))
        state = ConversationState(history=[UserMessage(content="q"), msg])

        assert await stage.pre_handle(None, state) is msg
        assert len(state.history) == 2

    @pytest.mark.asyncio
    async def test_invoke_runs_tools(self, tool_call_message, search_tool):
        node = await ToolsNode.create(ToolsNodeConfig(tools=[search_tool]))
        results = await ToolStage(node).invoke(tool_call_message(("c1", "search")))
        assert [(r.tool_call_id, r.content) for r in results] == [("c1", "result")]


def test_return_directly_id(tool_call_message):
    msg = tool_call_message(("c1", "a"), ("c2", "b"))
    assert get_return_directly_tool_call_id(msg, {"b"}) == "c2"
    assert get_return_directly_tool_call_id(msg, set()) == ""
    assert get_return_directly_tool_call_id(AssistantMessage(content="x"), {"b"}) == ""


class TestDirectReturnExtractor:

    @pytest.mark.asyncio
    async def test_picks_matching_result(self):
        results = [
            ToolMessage(tool_call_id="c1", content="one"),
            ToolMessage(tool_call_id="c2", content="two"),
        ]
        state = ConversationState(pending_direct_return_id="c2")
        picked = await DirectReturnExtractor().invoke(results, state=state)
        assert picked is results[1]

    @pytest.mark.asyncio
    async def test_no_match(self):
        state = ConversationState(pending_direct_return_id="c9")
        with pytest.raises(NoValueError):
            await DirectReturnExtractor().invoke(
                [ToolMessage(tool_call_id="c1", content="one")], state=state
            )
        with pytest.raises(NoValueError):
            await DirectReturnExtractor().invoke([], state=state)


class TestRouters:

    @pytest.mark.asyncio
    async def test_model_output_router(self, tool_call_message):
        router = ModelOutputRouter(first_chunk_tool_call_checker)
        state = ConversationState()

        reader = StreamReader.from_value(tool_call_message(("c1", "search")))
        assert await router(reader, state) == NODE_KEY_TOOLS
        assert reader.closed

        reader = StreamReader.from_value(AssistantMessage(content="4"))
        assert await router(reader, state) == END

    @pytest.mark.asyncio
    async def test_tool_output_router(self):
        router = ToolOutputRouter()

        reader = StreamReader.from_value([])
        assert await router(reader, ConversationState()) == NODE_KEY_MODEL
        assert reader.closed

        state = ConversationState(pending_direct_return_id="c1")
        assert await router(StreamReader.from_value([]), state) == NODE_KEY_DIRECT_RETURN
