"""
Command model for canvas operations.

A command is one of a closed set of frozen dataclasses, tagged on the wire by
its ``type`` string. Commands are grouped into batches whose order is
significant: later commands may refer to nodes created by earlier ones.
"""
import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Dict, FrozenSet, List, Optional, Tuple, Type, Union

from .properties import (
    DocumentError, FrameProperties, INFO_FIELDS, LayoutProperties, NodeType,
    PropertyGroup, PropertyValueError, SceneProperties, TextProperties,
    VisualProperties, check_supported, parse_node_type
)

logger = logging.getLogger(__name__)

CommandId = Union[str, int]


class CommandDecodeError(ValueError):
    """Raised when a command or batch object cannot be decoded."""
    pass


# ====================================================================
# FIELD HELPERS
# ====================================================================

def _require_str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise CommandDecodeError(f"'{key}' is required and must be a non-empty string")
    return value


def _optional_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise CommandDecodeError(f"'{key}' must be a string")
    return value


def _require_number(data: Dict[str, Any], key: str) -> float:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise CommandDecodeError(f"'{key}' is required and must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise CommandDecodeError(f"'{key}' must be a finite number")
    return value


def _optional_group(data: Dict[str, Any], group: Type[PropertyGroup]) -> Optional[PropertyGroup]:
    raw = data.get(group.WIRE_KEY)
    if raw is None:
        return None
    return group.from_dict(raw)


def _decode_command_id(value: Any, what: str) -> CommandId:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise CommandDecodeError(f"{what} id must be a string or an integer")
    return value


# ====================================================================
# COMMANDS
# ====================================================================

@dataclass(frozen=True)
class Command:
    """Base class for all canvas commands."""
    TYPE: ClassVar[str] = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.TYPE}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Command":
        return cls()


@dataclass(frozen=True)
class _PropertyCommand(Command):
    """Shared encoding for commands carrying optional property groups."""
    layout: Optional[LayoutProperties] = None
    visual: Optional[VisualProperties] = None
    scene: Optional[SceneProperties] = None
    frame: Optional[FrameProperties] = None
    text: Optional[TextProperties] = None

    def property_groups(self) -> Dict[str, PropertyGroup]:
        """Groups present on this command, keyed by wire name."""
        groups = {}
        for group in (self.layout, self.visual, self.scene, self.frame, self.text):
            if group is not None:
                groups[group.WIRE_KEY] = group
        return groups

    def _groups_to_dict(self) -> Dict[str, Any]:
        return {key: group.to_dict() for key, group in self.property_groups().items()}

    @staticmethod
    def _groups_from_dict(data: Dict[str, Any]) -> Dict[str, Optional[PropertyGroup]]:
        return {
            "layout": _optional_group(data, LayoutProperties),
            "visual": _optional_group(data, VisualProperties),
            "scene": _optional_group(data, SceneProperties),
            "frame": _optional_group(data, FrameProperties),
            "text": _optional_group(data, TextProperties),
        }


@dataclass(frozen=True)
class CreateNode(_PropertyCommand):
    """Create a node of a given kind, optionally inside a container."""
    TYPE: ClassVar[str] = "create-node"

    node_type: NodeType = NodeType.RECTANGLE
    name: Optional[str] = None
    parent_id: Optional[str] = None

    def __post_init__(self):
        # The kind is known up front, so illegal groups are rejected here
        for group in self.property_groups().values():
            check_supported(self.node_type, group)

    def to_dict(self) -> Dict[str, Any]:
        data = {"type": self.TYPE, "nodeType": self.node_type.value}
        if self.name is not None:
            data["name"] = self.name
        if self.parent_id is not None:
            data["parentId"] = self.parent_id
        data.update(self._groups_to_dict())
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CreateNode":
        return cls(
            node_type=parse_node_type(data.get("nodeType")),
            name=_optional_str(data, "name"),
            parent_id=_optional_str(data, "parentId"),
            **cls._groups_from_dict(data)
        )


@dataclass(frozen=True)
class EditNode(_PropertyCommand):
    """Apply the property groups present to an existing node."""
    TYPE: ClassVar[str] = "edit-node"

    node_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = {"type": self.TYPE, "nodeId": self.node_id}
        data.update(self._groups_to_dict())
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EditNode":
        return cls(node_id=_require_str(data, "nodeId"), **cls._groups_from_dict(data))


@dataclass(frozen=True)
class GetNodeInfo(Command):
    """Read the requested property groups of a node. An empty set reads everything."""
    TYPE: ClassVar[str] = "get-node-info"

    node_id: str = ""
    needed: FrozenSet[str] = frozenset()

    def __post_init__(self):
        unknown = sorted(set(self.needed) - INFO_FIELDS)
        if unknown:
            raise CommandDecodeError(
                f"Unknown info fields: {', '.join(unknown)} (expected any of: {', '.join(sorted(INFO_FIELDS))})"
            )

    def fields_to_read(self) -> FrozenSet[str]:
        return self.needed or INFO_FIELDS

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.TYPE, "nodeId": self.node_id, "needed": sorted(self.needed)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GetNodeInfo":
        needed = data.get("needed") or []
        if not isinstance(needed, list) or not all(isinstance(item, str) for item in needed):
            raise CommandDecodeError("'needed' must be a list of strings")
        return cls(node_id=_require_str(data, "nodeId"), needed=frozenset(needed))


@dataclass(frozen=True)
class RemoveNode(Command):
    """Delete a node and everything inside it."""
    TYPE: ClassVar[str] = "remove-node"

    node_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.TYPE, "nodeId": self.node_id}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RemoveNode":
        return cls(node_id=_require_str(data, "nodeId"))


@dataclass(frozen=True)
class GetCurrentSelectedNodes(Command):
    """List the user's current selection."""
    TYPE: ClassVar[str] = "get-current-selected-nodes"


@dataclass(frozen=True)
class GetLayerVisual(Command):
    """Export a PNG snapshot of a node, or of the primary selected node."""
    TYPE: ClassVar[str] = "get-layer-visual"

    layer_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"type": self.TYPE}
        if self.layer_id is not None:
            data["layerId"] = self.layer_id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GetLayerVisual":
        return cls(layer_id=_optional_str(data, "layerId") or None)


@dataclass(frozen=True)
class MoveLayer(Command):
    """Move a node to an absolute position."""
    TYPE: ClassVar[str] = "move-layer"

    layer_id: str = ""
    x: float = 0
    y: float = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.TYPE, "layerId": self.layer_id, "x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MoveLayer":
        return cls(
            layer_id=_require_str(data, "layerId"),
            x=_require_number(data, "x"),
            y=_require_number(data, "y")
        )


@dataclass(frozen=True)
class InvalidCommand(Command):
    """
    Placeholder for a command object that could not be decoded.

    It keeps the raw payload so results can echo it back, and it always
    executes as a failure.
    """
    TYPE: ClassVar[str] = "invalid-command"

    raw: Any = None
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        if isinstance(self.raw, dict):
            return dict(self.raw)
        return {"type": self.TYPE, "raw": self.raw, "reason": self.reason}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InvalidCommand":
        reason = data.get("reason")
        return cls(raw=data["raw"], reason=reason if isinstance(reason, str) else NOT_AN_OBJECT)


COMMAND_CLASSES: Tuple[Type[Command], ...] = (
    CreateNode, EditNode, GetNodeInfo, RemoveNode,
    GetCurrentSelectedNodes, GetLayerVisual, MoveLayer, InvalidCommand
)

COMMAND_TYPES: Dict[str, Type[Command]] = {
    cls.TYPE: cls for cls in COMMAND_CLASSES if cls is not InvalidCommand
}

NOT_AN_OBJECT = "Command must be an object"


def parse_command(data: Any) -> Command:
    """
    Decode a wire command.

    Never raises: anything undecodable becomes an InvalidCommand carrying the
    reason, so a single bad entry cannot spoil the rest of its batch.
    """
    if not isinstance(data, dict):
        return InvalidCommand(raw=data, reason=NOT_AN_OBJECT)

    command_type = data.get("type")
    if command_type == InvalidCommand.TYPE and "raw" in data and not isinstance(data["raw"], dict):
        # A non-object payload encoded by InvalidCommand.to_dict
        return InvalidCommand.from_dict(data)

    command_class = COMMAND_TYPES.get(command_type)
    if command_class is None:
        return InvalidCommand(raw=data, reason=f"Unknown command type {command_type!r}")

    try:
        return command_class.from_dict(data)
    except (CommandDecodeError, PropertyValueError, DocumentError, TypeError) as e:
        logger.debug(f"Could not decode {command_type} command: {e}")
        return InvalidCommand(raw=data, reason=str(e))


# ====================================================================
# EXECUTE COMMANDS AND BATCHES
# ====================================================================

@dataclass(frozen=True)
class ExecuteCommand:
    """A command plus the caller-assigned id that correlates its result."""
    id: CommandId
    cmd: Command

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "execute_command", "id": self.id, "cmd": self.cmd.to_dict()}

    @classmethod
    def from_dict(cls, data: Any) -> "ExecuteCommand":
        if not isinstance(data, dict):
            raise CommandDecodeError("Each entry of 'cmds' must be an object")
        if "cmd" not in data:
            raise CommandDecodeError("Entry of 'cmds' is missing 'cmd'")
        return cls(id=_decode_command_id(data.get("id"), "Command"), cmd=parse_command(data["cmd"]))


@dataclass(frozen=True)
class ExecuteCommandBatch:
    """Ordered commands submitted and reported on as one unit."""
    id: CommandId
    cmds: Tuple[ExecuteCommand, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not isinstance(self.cmds, tuple):
            object.__setattr__(self, "cmds", tuple(self.cmds))

    def __len__(self) -> int:
        return len(self.cmds)

    def with_id(self, batch_id: CommandId) -> "ExecuteCommandBatch":
        return replace(self, id=batch_id)

    def duplicate_ids(self) -> List[CommandId]:
        seen = set()
        duplicates = []
        for execute_cmd in self.cmds:
            if execute_cmd.id in seen and execute_cmd.id not in duplicates:
                duplicates.append(execute_cmd.id)
            seen.add(execute_cmd.id)
        return duplicates

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "execute_commands",
            "id": self.id,
            "cmds": [execute_cmd.to_dict() for execute_cmd in self.cmds]
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ExecuteCommandBatch":
        if not isinstance(data, dict):
            raise CommandDecodeError("Command batch must be an object")
        cmds = data.get("cmds")
        if not isinstance(cmds, list):
            raise CommandDecodeError("Command batch requires a 'cmds' list")
        return cls(
            id=_decode_command_id(data.get("id"), "Batch"),
            cmds=tuple(ExecuteCommand.from_dict(entry) for entry in cmds)
        )


def create_batch(batch_id: CommandId, *commands: Command) -> ExecuteCommandBatch:
    """Build a batch, numbering commands from 1 in the given order."""
    return ExecuteCommandBatch(
        id=batch_id,
        cmds=tuple(ExecuteCommand(id=str(index), cmd=cmd) for index, cmd in enumerate(commands, start=1))
    )
