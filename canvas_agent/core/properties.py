"""
Node kinds, capability records and property groups for canvas nodes.

Every node kind has a fixed capability record. Every property field declares
the capability it needs, so whether a property may be applied to (or read
from) a node is a table lookup rather than a probe of the node object.
"""
import math
import re
from enum import Enum
from dataclasses import dataclass, fields
from typing import Any, ClassVar, Dict, FrozenSet, Optional, Set, Tuple

from canvas_agent.config import DEFAULT_FILL


class DocumentError(Exception):
    """Base exception for document store failures."""
    pass


class UnsupportedPropertyError(DocumentError):
    """Raised when a property is applied to a node kind that lacks the capability."""
    pass


class PropertyValueError(ValueError):
    """Raised when a property value has the wrong type or is out of range."""
    pass


class NodeType(Enum):
    """Node kinds a canvas may contain."""
    RECTANGLE = "rectangle"
    FRAME = "frame"
    GROUP = "group"
    PAGE = "page"
    TEXT = "text"
    LINE = "line"
    INSTANCE = "instance"


class Capability(Enum):
    """Property families a node kind may expose."""
    SCENE = "scene"                  # position, visibility, lock, opacity
    RESIZABLE = "resizable"
    CORNER_RADIUS = "corner_radius"
    FILLS = "fills"
    CONTAINER = "container"
    FRAME_LAYOUT = "frame_layout"
    TEXT = "text"


@dataclass(frozen=True)
class NodeCapabilities:
    """Capability record for one node kind."""
    node_type: NodeType
    capabilities: FrozenSet[Capability]

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @property
    def is_container(self) -> bool:
        return Capability.CONTAINER in self.capabilities


def _record(node_type: NodeType, *capabilities: Capability) -> NodeCapabilities:
    return NodeCapabilities(node_type=node_type, capabilities=frozenset(capabilities))


NODE_CAPABILITIES: Dict[NodeType, NodeCapabilities] = {
    NodeType.RECTANGLE: _record(NodeType.RECTANGLE, Capability.SCENE, Capability.RESIZABLE,
                                Capability.CORNER_RADIUS, Capability.FILLS),
    NodeType.FRAME: _record(NodeType.FRAME, Capability.SCENE, Capability.RESIZABLE,
                            Capability.CORNER_RADIUS, Capability.FILLS,
                            Capability.CONTAINER, Capability.FRAME_LAYOUT),
    NodeType.GROUP: _record(NodeType.GROUP, Capability.SCENE, Capability.CONTAINER),
    NodeType.PAGE: _record(NodeType.PAGE, Capability.CONTAINER),
    NodeType.TEXT: _record(NodeType.TEXT, Capability.SCENE, Capability.RESIZABLE,
                           Capability.FILLS, Capability.TEXT),
    NodeType.LINE: _record(NodeType.LINE, Capability.SCENE, Capability.RESIZABLE),
    NodeType.INSTANCE: _record(NodeType.INSTANCE, Capability.SCENE, Capability.RESIZABLE,
                               Capability.CORNER_RADIUS, Capability.FILLS),
}


def get_capabilities(node_type: NodeType) -> NodeCapabilities:
    """Capability record for a node kind."""
    return NODE_CAPABILITIES[node_type]


def parse_node_type(value: Any) -> NodeType:
    """Decode a wire node kind, raising PropertyValueError for unknown kinds."""
    try:
        return NodeType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in NodeType)
        raise PropertyValueError(f"Unknown node type {value!r} (expected one of: {allowed})")


# ====================================================================
# VALUE HELPERS
# ====================================================================

HEX_COLOR_PATTERN = re.compile(r"^#?([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})$")

LAYOUT_MODES = ("NONE", "HORIZONTAL", "VERTICAL")


def parse_hex_color(value: str) -> Optional[Tuple[int, int, int]]:
    """Parse '#RRGGBB' (hash optional) into an RGB tuple, or None if malformed."""
    match = HEX_COLOR_PATTERN.match(value) if isinstance(value, str) else None
    if not match:
        return None
    return tuple(int(part, 16) for part in match.groups())


def normalize_hex_color(value: str) -> str:
    rgb = parse_hex_color(value)
    if rgb is None:
        raise PropertyValueError(f"Invalid colour {value!r}, expected '#RRGGBB'")
    return "#{:02X}{:02X}{:02X}".format(*rgb)


def to_wire_name(name: str) -> str:
    """snake_case attribute name to the camelCase key used on the wire."""
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _check_number(name: str, value: Any, minimum: float = None, maximum: float = None):
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PropertyValueError(f"'{to_wire_name(name)}' must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise PropertyValueError(f"'{to_wire_name(name)}' must be a finite number")
    if minimum is not None and value < minimum:
        raise PropertyValueError(f"'{to_wire_name(name)}' must be >= {minimum}")
    if maximum is not None and value > maximum:
        raise PropertyValueError(f"'{to_wire_name(name)}' must be <= {maximum}")


def _check_bool(name: str, value: Any):
    if value is not None and not isinstance(value, bool):
        raise PropertyValueError(f"'{to_wire_name(name)}' must be a boolean")


# ====================================================================
# PROPERTY GROUPS
# ====================================================================

@dataclass(frozen=True)
class PropertyGroup:
    """
    Base class for an orthogonal group of node properties.

    Every field is optional; a field left as None is not touched when the
    group is applied.
    """
    WIRE_KEY: ClassVar[str] = ""
    FIELD_CAPABILITIES: ClassVar[Dict[str, Capability]] = {}

    def set_fields(self) -> Dict[str, Any]:
        """Fields that carry a value, keyed by attribute name."""
        values = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                values[f.name] = value
        return values

    def required_capabilities(self) -> Set[Capability]:
        return {self.FIELD_CAPABILITIES[name] for name in self.set_fields()}

    def to_dict(self) -> Dict[str, Any]:
        return {to_wire_name(name): value for name, value in self.set_fields().items()}

    @classmethod
    def from_dict(cls, data: Any) -> "PropertyGroup":
        if not isinstance(data, dict):
            raise PropertyValueError(f"'{cls.WIRE_KEY}' must be an object")
        known = {to_wire_name(f.name): f.name for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise PropertyValueError(f"Unknown {cls.WIRE_KEY} properties: {', '.join(unknown)}")
        return cls(**{known[key]: value for key, value in data.items()})


@dataclass(frozen=True)
class LayoutProperties(PropertyGroup):
    """Position, size and corner geometry."""
    WIRE_KEY: ClassVar[str] = "layout"
    FIELD_CAPABILITIES: ClassVar[Dict[str, Capability]] = {
        "x": Capability.SCENE,
        "y": Capability.SCENE,
        "size_x": Capability.RESIZABLE,
        "size_y": Capability.RESIZABLE,
        "top_left_radius": Capability.CORNER_RADIUS,
        "top_right_radius": Capability.CORNER_RADIUS,
        "bottom_left_radius": Capability.CORNER_RADIUS,
        "bottom_right_radius": Capability.CORNER_RADIUS,
        "corner_smoothing": Capability.CORNER_RADIUS,
    }

    x: Optional[float] = None
    y: Optional[float] = None
    size_x: Optional[float] = None
    size_y: Optional[float] = None
    top_left_radius: Optional[float] = None
    top_right_radius: Optional[float] = None
    bottom_left_radius: Optional[float] = None
    bottom_right_radius: Optional[float] = None
    corner_smoothing: Optional[float] = None

    def __post_init__(self):
        _check_number("x", self.x)
        _check_number("y", self.y)
        _check_number("size_x", self.size_x, minimum=0.01)
        _check_number("size_y", self.size_y, minimum=0.01)
        for name in ("top_left_radius", "top_right_radius", "bottom_left_radius", "bottom_right_radius"):
            _check_number(name, getattr(self, name), minimum=0)
        _check_number("corner_smoothing", self.corner_smoothing, minimum=0, maximum=1)


@dataclass(frozen=True)
class VisualProperties(PropertyGroup):
    """Solid fill colour and opacity."""
    WIRE_KEY: ClassVar[str] = "visual"
    FIELD_CAPABILITIES: ClassVar[Dict[str, Capability]] = {
        "fill": Capability.FILLS,
        "opacity": Capability.SCENE,
    }

    fill: Optional[str] = None
    opacity: Optional[float] = None

    def __post_init__(self):
        if self.fill is not None:
            # frozen dataclass: normalise through object.__setattr__
            object.__setattr__(self, "fill", normalize_hex_color(self.fill))
        _check_number("opacity", self.opacity, minimum=0, maximum=1)


@dataclass(frozen=True)
class SceneProperties(PropertyGroup):
    """Visibility and lock state."""
    WIRE_KEY: ClassVar[str] = "scene"
    FIELD_CAPABILITIES: ClassVar[Dict[str, Capability]] = {
        "visible": Capability.SCENE,
        "locked": Capability.SCENE,
    }

    visible: Optional[bool] = None
    locked: Optional[bool] = None

    def __post_init__(self):
        _check_bool("visible", self.visible)
        _check_bool("locked", self.locked)


@dataclass(frozen=True)
class FrameProperties(PropertyGroup):
    """Auto-layout and clipping, legal only on frame-like containers."""
    WIRE_KEY: ClassVar[str] = "frame"
    FIELD_CAPABILITIES: ClassVar[Dict[str, Capability]] = {
        "layout_mode": Capability.FRAME_LAYOUT,
        "item_spacing": Capability.FRAME_LAYOUT,
        "padding_left": Capability.FRAME_LAYOUT,
        "padding_right": Capability.FRAME_LAYOUT,
        "padding_top": Capability.FRAME_LAYOUT,
        "padding_bottom": Capability.FRAME_LAYOUT,
        "clips_content": Capability.FRAME_LAYOUT,
    }

    layout_mode: Optional[str] = None
    item_spacing: Optional[float] = None
    padding_left: Optional[float] = None
    padding_right: Optional[float] = None
    padding_top: Optional[float] = None
    padding_bottom: Optional[float] = None
    clips_content: Optional[bool] = None

    def __post_init__(self):
        if self.layout_mode is not None and self.layout_mode not in LAYOUT_MODES:
            raise PropertyValueError(f"'layoutMode' must be one of: {', '.join(LAYOUT_MODES)}")
        _check_number("item_spacing", self.item_spacing, minimum=0)
        for name in ("padding_left", "padding_right", "padding_top", "padding_bottom"):
            _check_number(name, getattr(self, name), minimum=0)
        _check_bool("clips_content", self.clips_content)


@dataclass(frozen=True)
class TextProperties(PropertyGroup):
    """Text content, legal only on text nodes."""
    WIRE_KEY: ClassVar[str] = "text"
    FIELD_CAPABILITIES: ClassVar[Dict[str, Capability]] = {
        "characters": Capability.TEXT,
        "font_size": Capability.TEXT,
    }

    characters: Optional[str] = None
    font_size: Optional[float] = None

    def __post_init__(self):
        if self.characters is not None and not isinstance(self.characters, str):
            raise PropertyValueError("'characters' must be a string")
        _check_number("font_size", self.font_size, minimum=1)


PROPERTY_GROUPS: Tuple[type, ...] = (
    LayoutProperties, VisualProperties, SceneProperties, FrameProperties, TextProperties
)

# Groups that get-node-info may ask for, besides "name"
INFO_FIELDS = frozenset({"name"} | {group.WIRE_KEY for group in PROPERTY_GROUPS})

# Values a freshly created node starts with, per group and attribute
FIELD_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "layout": {
        "x": 0, "y": 0, "size_x": 100, "size_y": 100,
        "top_left_radius": 0, "top_right_radius": 0,
        "bottom_left_radius": 0, "bottom_right_radius": 0,
        "corner_smoothing": 0,
    },
    "visual": {"fill": DEFAULT_FILL, "opacity": 1.0},
    "scene": {"visible": True, "locked": False},
    "frame": {
        "layout_mode": "NONE", "item_spacing": 0,
        "padding_left": 0, "padding_right": 0, "padding_top": 0, "padding_bottom": 0,
        "clips_content": True,
    },
    "text": {"characters": "", "font_size": 12},
}


def group_class(wire_key: str) -> type:
    for group in PROPERTY_GROUPS:
        if group.WIRE_KEY == wire_key:
            return group
    raise KeyError(wire_key)


def supported_fields(node_type: NodeType, wire_key: str) -> Tuple[str, ...]:
    """Attribute names of a group that the node kind exposes, in declaration order."""
    record = get_capabilities(node_type)
    group = group_class(wire_key)
    return tuple(
        name for name, capability in group.FIELD_CAPABILITIES.items()
        if record.supports(capability)
    )


def check_supported(node_type: NodeType, group: Optional[PropertyGroup]):
    """Raise UnsupportedPropertyError if any set field of the group is illegal for the kind."""
    if group is None:
        return
    record = get_capabilities(node_type)
    rejected = [
        to_wire_name(name) for name in group.set_fields()
        if not record.supports(group.FIELD_CAPABILITIES[name])
    ]
    if rejected:
        raise UnsupportedPropertyError(
            f"{node_type.value} nodes do not support {group.WIRE_KEY} properties: {', '.join(rejected)}"
        )
