"""
Tests for workspace wiring, including the bridged execution path.
"""
import asyncio

from canvas_agent.config import AgentConfig, BridgeConfig, DESIGN_TOOL_NAME, ExecutionContextMode
from canvas_agent.core.bridge import CrossContextBridge
from canvas_agent.core.commands import CreateNode, create_batch
from canvas_agent.core.conversation import AssistantTurn, UserOutput
from canvas_agent.core.dispatcher import CommandDispatcher
from canvas_agent.core.model_client import ScriptedModelClient
from canvas_agent.core.properties import LayoutProperties, NodeType
from canvas_agent.core.results import BatchStatus
from canvas_agent.core.workspace import DesignWorkspace, get_workspace, reset_workspace


def test_local_mode_uses_dispatcher():
    workspace = DesignWorkspace(mode=ExecutionContextMode.LOCAL)
    assert isinstance(workspace.executor, CommandDispatcher)
    assert workspace.bridge is None


def test_bridged_mode_runs_through_host():
    workspace = DesignWorkspace(mode=ExecutionContextMode.BRIDGED, bridge_config=BridgeConfig(timeout_ms=1000))
    assert isinstance(workspace.executor, CrossContextBridge)

    result = asyncio.run(workspace.execute(create_batch("b", CreateNode(node_type=NodeType.FRAME))))

    assert result.id == "b"
    assert result.status == BatchStatus.SUCCESS
    assert workspace.store.list_nodes()[0]["type"] == "frame"
    assert workspace.bridge.pending_count == 0


def test_agent_thread_over_bridge():
    def second(conversation):
        status = conversation[-1].contents[0].content.status.value
        return AssistantTurn.from_dict({"role": "assistant", "contents": [
            {"type": "user_output", "content": f"batch {status}"},
            {"type": "assistant_workflow_instruction", "content": "stop"},
        ]})

    first = AssistantTurn.from_dict({"role": "assistant", "contents": [
        {"type": "tool_use", "name": DESIGN_TOOL_NAME, "content": {"input": {
            "objective": "Add a card",
            "commands": {"type": "execute_commands", "id": "card", "cmds": [
                {"type": "execute_command", "id": "1", "cmd": {"type": "create-node", "nodeType": "frame"}},
            ]},
        }}},
        {"type": "assistant_workflow_instruction", "content": "stop"},
    ]})

    workspace = DesignWorkspace(
        mode=ExecutionContextMode.BRIDGED,
        bridge_config=BridgeConfig(timeout_ms=1000),
        agent_config=AgentConfig(max_tool_rounds=4),
        model_client_factory=lambda: ScriptedModelClient([first, second])
    )
    thread = workspace.create_thread()

    outputs = asyncio.run(thread.ingest("Add a card"))

    assert outputs == [UserOutput("batch success")]
    assert len(workspace.store.list_nodes()) == 1


def test_snapshot_with_visual():
    workspace = DesignWorkspace(mode=ExecutionContextMode.LOCAL)
    node = workspace.store.create(NodeType.RECTANGLE, layout=LayoutProperties(size_x=2, size_y=2))
    workspace.store.select([node.id])

    snapshot = workspace.snapshot(include_visual=True)

    assert snapshot["selection"] == [node.summary()]
    assert snapshot["visual"]


def test_global_workspace():
    mine = DesignWorkspace(mode=ExecutionContextMode.LOCAL)
    previous = reset_workspace(mine)
    try:
        assert get_workspace() is mine
    finally:
        reset_workspace(previous)
