"""
Tests for the command dispatcher.
"""
import asyncio
import base64
import json

from canvas_agent.core.commands import (
    CreateNode, EditNode, ExecuteCommand, ExecuteCommandBatch, GetCurrentSelectedNodes,
    GetLayerVisual, GetNodeInfo, MoveLayer, RemoveNode, create_batch, parse_command
)
from canvas_agent.core.properties import LayoutProperties, NodeType, SceneProperties, VisualProperties
from canvas_agent.core.results import BatchStatus, CommandStatus


def run(dispatcher, batch):
    return asyncio.run(dispatcher.execute_commands(batch))


class TestBatchExecution:
    """Ordering, echo and aggregation."""

    def test_two_rectangles(self, dispatcher, store):
        batch = create_batch(
            "b1",
            CreateNode(node_type=NodeType.RECTANGLE),
            CreateNode(node_type=NodeType.RECTANGLE),
        )
        result = run(dispatcher, batch)

        assert result.id == "b1"
        assert result.status == BatchStatus.SUCCESS
        assert [r.status for r in result.cmds] == [CommandStatus.SUCCESS, CommandStatus.SUCCESS]
        assert len(store.list_nodes()) == 2
        assert result.cmds[0].node["type"] == "rectangle"

    def test_missing_node_fails_every_command(self, dispatcher):
        batch = create_batch(
            "b2",
            EditNode(node_id="missing", visual=VisualProperties(fill="#FF0000")),
            GetNodeInfo(node_id="missing"),
        )
        result = run(dispatcher, batch)

        assert result.status == BatchStatus.FAILURE
        assert all(r.status == CommandStatus.FAILURE for r in result.cmds)
        assert all("missing" in r.error for r in result.cmds)

    def test_results_echo_commands_in_order(self, dispatcher):
        commands = [
            CreateNode(node_type=NodeType.FRAME, name="Card"),
            GetCurrentSelectedNodes(),
            RemoveNode(node_id="nope"),
            GetLayerVisual(layer_id="nope"),
        ]
        batch = ExecuteCommandBatch(id=7, cmds=[
            ExecuteCommand(id=f"c{i}", cmd=cmd) for i, cmd in enumerate(commands)
        ])
        result = run(dispatcher, batch)

        assert len(result.cmds) == len(batch.cmds)
        for execute_cmd, cmd_result in zip(batch.cmds, result.cmds):
            assert cmd_result.id == execute_cmd.id
            assert cmd_result.cmd == execute_cmd.cmd
        assert result.status == BatchStatus.PARTIAL_FAILURES

    def test_later_commands_see_earlier_effects(self, dispatcher, store):
        created = run(dispatcher, create_batch("a", CreateNode(node_type=NodeType.RECTANGLE)))
        node_id = created.cmds[0].node["id"]

        result = run(dispatcher, create_batch(
            "b",
            MoveLayer(layer_id=node_id, x=30, y=40),
            EditNode(node_id=node_id, layout=LayoutProperties(size_x=10)),
            GetNodeInfo(node_id=node_id, needed=frozenset({"layout"})),
        ))
        assert result.status == BatchStatus.SUCCESS
        layout = result.cmds[2].info["layout"]
        assert (layout["x"], layout["y"], layout["sizeX"]) == (30, 40, 10)

    def test_failure_does_not_stop_the_batch(self, dispatcher, store):
        result = run(dispatcher, create_batch(
            "b",
            RemoveNode(node_id="missing"),
            CreateNode(node_type=NodeType.TEXT),
        ))
        assert [r.status for r in result.cmds] == [CommandStatus.FAILURE, CommandStatus.SUCCESS]
        assert len(store.list_nodes()) == 1

    def test_empty_batch(self, dispatcher):
        result = run(dispatcher, ExecuteCommandBatch(id="empty"))
        assert result.status == BatchStatus.SUCCESS
        assert result.cmds == []


class TestCommandPayloads:
    """Per-command payloads."""

    def test_selection(self, dispatcher, store):
        node = store.create(NodeType.RECTANGLE)
        store.select([node.id])
        result = run(dispatcher, create_batch("s", GetCurrentSelectedNodes()))
        assert result.cmds[0].nodes == [node.summary()]

    def test_visual_is_base64_png(self, dispatcher, store):
        node = store.create(NodeType.RECTANGLE, layout=LayoutProperties(size_x=3, size_y=3))
        result = run(dispatcher, create_batch("v", GetLayerVisual(layer_id=node.id)))
        assert base64.b64decode(result.cmds[0].visual).startswith(b"\x89PNG")

    def test_hidden_layer_visual_fails(self, dispatcher, store):
        node = store.create(NodeType.RECTANGLE, scene=SceneProperties(visible=False))
        result = run(dispatcher, create_batch("v", GetLayerVisual(layer_id=node.id)))
        assert result.cmds[0].status == CommandStatus.FAILURE

    def test_remove_has_no_payload(self, dispatcher, store):
        node = store.create(NodeType.RECTANGLE)
        data = run(dispatcher, create_batch("r", RemoveNode(node_id=node.id))).cmds[0].to_dict()
        assert set(data) == {"type", "id", "cmd", "status"}

    def test_edit_rejected_for_node_kind(self, dispatcher, store):
        group = store.create(NodeType.GROUP)
        result = run(dispatcher, create_batch("e", EditNode(node_id=group.id, layout=LayoutProperties(size_x=5))))
        assert result.cmds[0].status == CommandStatus.FAILURE
        assert "sizeX" in result.cmds[0].error

    def test_invalid_command_fails(self, dispatcher):
        cmd = parse_command({"type": "explode-node"})
        result = run(dispatcher, create_batch("i", cmd))
        assert result.cmds[0].status == CommandStatus.FAILURE
        assert result.cmds[0].error.startswith("Invalid command:")
        assert result.cmds[0].to_dict()["cmd"] == {"type": "explode-node"}

    def test_unexpected_errors_become_failures(self, dispatcher, store, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("disk on fire")
        monkeypatch.setattr(store, "current_selection", broken)
        result = run(dispatcher, create_batch("x", GetCurrentSelectedNodes()))
        assert result.cmds[0].error == "Unexpected error: disk on fire"

    def test_move_layer_goes_through_store(self, dispatcher, store, monkeypatch):
        node = store.create(NodeType.RECTANGLE)
        moves = []
        original = store.move

        def recording_move(node_id, x, y):
            moves.append((node_id, x, y))
            return original(node_id, x, y)
        monkeypatch.setattr(store, "move", recording_move)

        result = run(dispatcher, create_batch("m", MoveLayer(layer_id=node.id, x=7, y=8)))
        assert moves == [(node.id, 7, 8)]
        assert result.cmds[0].node["id"] == node.id
        assert store.read(node.id, {"layout"})["layout"]["x"] == 7

    def test_non_finite_geometry_is_rejected_before_execution(self, dispatcher, store):
        payload = json.loads(
            '{"type": "create-node", "nodeType": "rectangle", "layout": {"sizeX": NaN, "sizeY": Infinity}}'
        )
        result = run(dispatcher, create_batch("nan", parse_command(payload)))
        assert result.cmds[0].status == CommandStatus.FAILURE
        assert result.cmds[0].error.startswith("Invalid command:")
        assert "finite" in result.cmds[0].error
        assert store.list_nodes() == []


def test_read_only_commands_are_idempotent(dispatcher, store):
    node = store.create(NodeType.FRAME, layout=LayoutProperties(size_x=4, size_y=4))
    store.select([node.id])
    batch = create_batch(
        "ro",
        GetNodeInfo(node_id=node.id),
        GetCurrentSelectedNodes(),
        GetLayerVisual(),
    )
    first = run(dispatcher, batch)
    second = run(dispatcher, batch)
    assert first.to_dict() == second.to_dict()
    assert first.status == BatchStatus.SUCCESS


def test_execute_single_command(dispatcher):
    execute_cmd = ExecuteCommand(id="only", cmd=CreateNode(node_type=NodeType.LINE))
    result = asyncio.run(dispatcher.execute_command(execute_cmd))
    assert result.id == "only"
    assert result.status == CommandStatus.SUCCESS
    assert result.node["type"] == "line"
