"""
Tests for the agent thread loop and the thread registry.
"""
import asyncio

import pytest

from canvas_agent.config import DESIGN_TOOL_NAME, AgentConfig
from canvas_agent.core.agent import (
    AgentError, AgentThread, AgentThreadRegistry, ProtocolViolationError, ToolRoundLimitExceeded
)
from canvas_agent.core.bridge import BridgeTimeoutError
from canvas_agent.core.conversation import AssistantTurn, ToolResult, UserOutput, UserTurn
from canvas_agent.core.dispatcher import CommandExecutor
from canvas_agent.core.model_client import ModelClient, ScriptedModelClient
from canvas_agent.core.properties import NodeType
from canvas_agent.core.results import BatchStatus

CREATE_RECT = {"type": "create-node", "nodeType": "rectangle"}


def design_tool(*commands, objective="Edit the canvas", batch_id="batch", ids=None):
    ids = ids or [str(i) for i in range(1, len(commands) + 1)]
    return {
        "type": "tool_use",
        "name": DESIGN_TOOL_NAME,
        "content": {"input": {
            "objective": objective,
            "commands": {
                "type": "execute_commands",
                "id": batch_id,
                "cmds": [
                    {"type": "execute_command", "id": cmd_id, "cmd": cmd}
                    for cmd_id, cmd in zip(ids, commands)
                ],
            },
        }},
    }


def output(text):
    return {"type": "user_output", "content": text}


def instruction(text="stop"):
    return {"type": "assistant_workflow_instruction", "content": text}


def reply(*contents):
    return AssistantTurn.from_dict({"role": "assistant", "contents": list(contents)})


def make_thread(dispatcher, *replies, **kwargs):
    model = ScriptedModelClient(replies)
    return AgentThread(0, model, dispatcher, **kwargs), model


class TestIngest:
    """Turns that complete."""

    def test_plain_reply_does_not_recurse(self, dispatcher):
        thread, model = make_thread(dispatcher, reply(output("done"), instruction()))

        outputs = asyncio.run(thread.ingest("hello"))

        assert outputs == [UserOutput("done")]
        assert len(model.received) == 1
        assert len(thread.conversation) == 2

    def test_partial_failure_is_fed_back_to_model(self, dispatcher, store):
        thread, model = make_thread(
            dispatcher,
            reply(output("Creating"), design_tool(CREATE_RECT, {"type": "edit-node", "nodeId": "missing"}),
                  instruction()),
            reply(output("One edit failed"), instruction()),
        )

        outputs = asyncio.run(thread.ingest("Make a box and recolour 'missing'"))

        assert outputs == [UserOutput("Creating"), UserOutput("One edit failed")]
        assert len(model.received) == 2
        tool_turn = model.received[1][-1]
        assert isinstance(tool_turn, UserTurn)
        tool_result = tool_turn.contents[0]
        assert isinstance(tool_result, ToolResult)
        assert tool_result.content.status == BatchStatus.PARTIAL_FAILURES
        assert tool_result.content.id == "batch"
        assert len(store.list_nodes()) == 1
        assert len(thread.conversation) == 4

    def test_outputs_after_tool_use_follow_nested_outputs(self, dispatcher):
        thread, _ = make_thread(
            dispatcher,
            reply(design_tool({"type": "get-current-selected-nodes"}), output("after"), instruction()),
            reply(output("nested"), instruction()),
        )
        outputs = asyncio.run(thread.ingest("go"))
        assert [o.content for o in outputs] == ["nested", "after"]

    def test_model_sees_selection_from_tool_result(self, dispatcher, store):
        rect = store.create(NodeType.RECTANGLE)
        store.select([rect.id])

        def answer(conversation):
            result = conversation[-1].contents[0].content
            names = [n["name"] for n in result.cmds[0].nodes]
            return reply(output(f"Selected: {', '.join(names)}"), instruction())

        thread, _ = make_thread(dispatcher, reply(design_tool({"type": "get-current-selected-nodes"}), instruction()),
                                answer)
        assert asyncio.run(thread.ingest("what is selected?")) == [UserOutput("Selected: Rectangle 1")]

    def test_second_ingest_continues_conversation(self, dispatcher):
        thread, model = make_thread(
            dispatcher,
            reply(output("one"), instruction()),
            reply(output("two"), instruction()),
        )
        asyncio.run(thread.ingest("first"))
        asyncio.run(thread.ingest(UserTurn.from_text("second")))
        assert len(thread.conversation) == 4
        assert len(model.received[1]) == 3
        assert [turn["role"] for turn in thread.history()] == ["user", "assistant", "user", "assistant"]

    def test_on_outputs_callback(self, dispatcher):
        seen = []
        model = ScriptedModelClient([reply(output("hi"), instruction())])
        thread = AgentThread(3, model, dispatcher, on_outputs=seen.append)
        asyncio.run(thread.ingest("hello"))
        assert seen == [[UserOutput("hi")]]


class TestProtocolViolations:
    """Replies that break the turn protocol roll the conversation back."""

    @pytest.mark.parametrize("contents", [
        [output("no stop")],
        [output("two stops"), instruction(), instruction()],
        [output("continue"), instruction("continue")],
        [{"type": "tool_use", "name": "web-search", "content": {"input": {}}}, instruction()],
        [{"type": "tool_use", "name": DESIGN_TOOL_NAME, "content": {"input": {"objective": "x"}}}, instruction()],
        [design_tool(CREATE_RECT, CREATE_RECT, ids=["1", "1"]), instruction()],
    ])
    def test_violation(self, dispatcher, store, contents):
        thread, _ = make_thread(dispatcher, reply(*contents))

        with pytest.raises(ProtocolViolationError):
            asyncio.run(thread.ingest("hello"))

        assert len(thread.conversation) == 0
        assert store.list_nodes() == []
        assert not thread.busy

    def test_commands_do_not_run_when_turn_lacks_stop(self, dispatcher, store):
        thread, _ = make_thread(dispatcher, reply(design_tool(CREATE_RECT)))
        with pytest.raises(ProtocolViolationError):
            asyncio.run(thread.ingest("hello"))
        assert store.list_nodes() == []

    def test_batch_size_limit(self, dispatcher):
        thread, _ = make_thread(dispatcher, reply(design_tool(CREATE_RECT, CREATE_RECT), instruction()),
                                max_batch_size=1)
        with pytest.raises(ProtocolViolationError, match="too large"):
            asyncio.run(thread.ingest("hello"))

    def test_thread_recovers_after_violation(self, dispatcher):
        thread, _ = make_thread(
            dispatcher,
            reply(output("oops")),
            reply(output("fine"), instruction()),
        )
        with pytest.raises(ProtocolViolationError):
            asyncio.run(thread.ingest("hello"))
        assert asyncio.run(thread.ingest("hello again")) == [UserOutput("fine")]


class TestFailures:
    """Other ways an ingest can fail."""

    def test_round_limit(self, dispatcher, store):
        looping = [reply(design_tool(CREATE_RECT), instruction()) for _ in range(5)]
        thread, _ = make_thread(dispatcher, *looping, max_tool_rounds=2)

        with pytest.raises(ToolRoundLimitExceeded):
            asyncio.run(thread.ingest("loop forever"))

        assert len(thread.conversation) == 0
        # Commands that ran are not undone
        assert len(store.list_nodes()) == 2

    def test_executor_failure_rolls_back(self):
        class TimingOutExecutor(CommandExecutor):
            async def execute_commands(self, batch):
                raise BridgeTimeoutError("no answer")

        model = ScriptedModelClient([reply(design_tool(CREATE_RECT), instruction())])
        thread = AgentThread(0, model, TimingOutExecutor())
        with pytest.raises(BridgeTimeoutError):
            asyncio.run(thread.ingest("hello"))
        assert len(thread.conversation) == 0

    def test_concurrent_ingest_rejected(self, dispatcher):
        class GatedModel(ModelClient):
            def __init__(self):
                self.gate = asyncio.Event()

            async def send(self, conversation):
                await self.gate.wait()
                return reply(output("done"), instruction())

        async def scenario():
            model = GatedModel()
            thread = AgentThread(0, model, dispatcher)
            first = asyncio.ensure_future(thread.ingest("one"))
            await asyncio.sleep(0)
            assert thread.busy
            with pytest.raises(AgentError):
                await thread.ingest("two")
            model.gate.set()
            return await first, thread

        outputs, thread = asyncio.run(scenario())
        assert outputs == [UserOutput("done")]
        assert not thread.busy
        assert len(thread.conversation) == 2


class TestRegistry:
    """Thread bookkeeping."""

    def test_create_get_close(self, dispatcher):
        registry = AgentThreadRegistry(lambda: ScriptedModelClient([]), dispatcher)
        first = registry.create()
        second = registry.create()

        assert (first.id, second.id) == (0, 1)
        assert first.model_client is not second.model_client
        assert registry.get(1) is second
        assert len(registry) == 2

        assert registry.close(0)
        assert not registry.close(0)
        with pytest.raises(AgentError):
            registry.get(0)
        assert registry.create().id == 2

    def test_list_threads(self, dispatcher):
        registry = AgentThreadRegistry(
            lambda: ScriptedModelClient([reply(output("x"), instruction())]), dispatcher
        )
        thread = registry.create()
        asyncio.run(thread.ingest("hi"))
        assert registry.list_threads() == [{"thread_id": 0, "turns": 2, "busy": False}]

    def test_agent_config_applies(self, dispatcher):
        registry = AgentThreadRegistry(lambda: ScriptedModelClient([]), dispatcher,
                                       AgentConfig(max_tool_rounds=3, max_batch_size=7))
        thread = registry.create()
        assert (thread.max_tool_rounds, thread.max_batch_size) == (3, 7)
