"""
Document store surface and the in-memory reference store.

The store is the only thing commands touch. It exposes typed accessors and
mutators; every failure surfaces as a DocumentError subclass so the
dispatcher can turn it into a failed command result.
"""
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from .imaging import PaintLayer, render_layers
from .properties import (
    Capability, DocumentError, FIELD_DEFAULTS, FrameProperties, LayoutProperties,
    NodeType, PROPERTY_GROUPS, PropertyGroup, SceneProperties, TextProperties,
    UnsupportedPropertyError, VisualProperties, check_supported, get_capabilities,
    parse_hex_color, supported_fields, to_wire_name
)

logger = logging.getLogger(__name__)

__all__ = [
    "DocumentError", "NodeNotFoundError", "UnsupportedPropertyError",
    "NotExportableError", "DocumentOperationError", "Node", "DocumentStore",
    "InMemoryDocumentStore"
]


class NodeNotFoundError(DocumentError):
    """Raised when an id does not resolve to a node."""
    pass


class NotExportableError(DocumentError):
    """Raised when a node cannot be rendered to an image."""
    pass


class DocumentOperationError(DocumentError):
    """Raised when the store refuses an otherwise well-formed operation."""
    pass


@dataclass
class Node:
    """A canvas node. Properties are kept per group, keyed by attribute name."""
    id: str
    node_type: NodeType
    name: str
    parent_id: Optional[str] = None
    children: List[str] = field(default_factory=list)
    properties: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def get(self, group: str, attribute: str, default: Any = None) -> Any:
        return self.properties.get(group, {}).get(attribute, default)

    @property
    def visible(self) -> bool:
        return self.get("scene", "visible", True)

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.node_type.value,
            "parentId": self.parent_id
        }


class DocumentStore(ABC):
    """Operations the command dispatcher may perform on a document."""

    @abstractmethod
    def create(self, node_type: NodeType, name: Optional[str] = None, parent_id: Optional[str] = None,
               layout: Optional[LayoutProperties] = None, visual: Optional[VisualProperties] = None,
               scene: Optional[SceneProperties] = None, frame: Optional[FrameProperties] = None,
               text: Optional[TextProperties] = None) -> Node:
        pass

    @abstractmethod
    def edit(self, node_id: str, layout: Optional[LayoutProperties] = None,
             visual: Optional[VisualProperties] = None, scene: Optional[SceneProperties] = None,
             frame: Optional[FrameProperties] = None, text: Optional[TextProperties] = None) -> Node:
        pass

    def move(self, node_id: str, x: float, y: float) -> Node:
        """Place a node at page coordinates (x, y)."""
        return self.edit(node_id, layout=LayoutProperties(x=x, y=y))

    @abstractmethod
    def read(self, node_id: str, needed: Iterable[str]) -> Dict[str, Any]:
        pass

    @abstractmethod
    def remove(self, node_id: str) -> None:
        pass

    @abstractmethod
    def current_selection(self) -> List[Node]:
        pass

    @abstractmethod
    def export_visual(self, node_id: Optional[str] = None) -> bytes:
        pass


class InMemoryDocumentStore(DocumentStore):
    """
    Thread-safe in-memory document.

    Coordinates are page coordinates for every node. New nodes without a
    parent land on the current page.
    """

    def __init__(self, page_name: str = "Page 1"):
        self._lock = threading.RLock()
        self._nodes: Dict[str, Node] = {}
        self._pages: List[str] = []
        self._selection: List[str] = []
        self._id_counter = 0
        self._name_counters: Dict[NodeType, int] = {}
        self.current_page_id = self.create(NodeType.PAGE, name=page_name).id

    # ----------------------------------------------------------------
    # Mutators
    # ----------------------------------------------------------------

    def create(self, node_type: NodeType, name: Optional[str] = None, parent_id: Optional[str] = None,
               layout: Optional[LayoutProperties] = None, visual: Optional[VisualProperties] = None,
               scene: Optional[SceneProperties] = None, frame: Optional[FrameProperties] = None,
               text: Optional[TextProperties] = None) -> Node:
        groups = [g for g in (layout, visual, scene, frame, text) if g is not None]
        for group in groups:
            check_supported(node_type, group)

        with self._lock:
            if node_type == NodeType.PAGE:
                if parent_id is not None:
                    raise DocumentOperationError("Pages cannot be placed inside other nodes")
                node = self._new_node(node_type, name, parent_id=None, prefix="0")
                self._pages.append(node.id)
            else:
                parent = self._get(parent_id) if parent_id else self._nodes[self.current_page_id]
                if not get_capabilities(parent.node_type).is_container:
                    raise DocumentOperationError(
                        f"{parent.node_type.value} node {parent.id} cannot contain other nodes"
                    )
                node = self._new_node(node_type, name, parent_id=parent.id, prefix="1")
                parent.children.append(node.id)

            for group in groups:
                self._apply(node, group)

            logger.debug(f"Created {node_type.value} {node.id} under {node.parent_id}")
            return node

    def edit(self, node_id: str, layout: Optional[LayoutProperties] = None,
             visual: Optional[VisualProperties] = None, scene: Optional[SceneProperties] = None,
             frame: Optional[FrameProperties] = None, text: Optional[TextProperties] = None) -> Node:
        groups = [g for g in (layout, visual, scene, frame, text) if g is not None]
        with self._lock:
            node = self._get(node_id)
            # Check every group before touching any so a rejected edit changes nothing
            for group in groups:
                check_supported(node.node_type, group)
            for group in groups:
                self._apply(node, group)
            return node

    def remove(self, node_id: str) -> None:
        with self._lock:
            node = self._get(node_id)
            if node.node_type == NodeType.PAGE:
                if len(self._pages) == 1:
                    raise DocumentOperationError("The last page of a document cannot be removed")
                self._pages.remove(node.id)
                if self.current_page_id == node.id:
                    self.current_page_id = self._pages[0]
            else:
                self._nodes[node.parent_id].children.remove(node.id)

            removed = [n.id for n in self._walk(node)]
            for removed_id in removed:
                del self._nodes[removed_id]
            self._selection = [sid for sid in self._selection if sid in self._nodes]
            logger.debug(f"Removed {node.id} and {len(removed) - 1} descendants")

    def select(self, node_ids: Iterable[str]) -> List[Node]:
        """Replace the current selection. Pages cannot be selected."""
        with self._lock:
            nodes = [self._get(node_id) for node_id in node_ids]
            for node in nodes:
                if node.node_type == NodeType.PAGE:
                    raise DocumentOperationError("Pages cannot be selected")
            self._selection = [node.id for node in nodes]
            return nodes

    # ----------------------------------------------------------------
    # Accessors
    # ----------------------------------------------------------------

    def find(self, node_id: str) -> Optional[Node]:
        with self._lock:
            return self._nodes.get(node_id)

    def read(self, node_id: str, needed: Iterable[str]) -> Dict[str, Any]:
        needed = set(needed)
        with self._lock:
            node = self._get(node_id)
            info: Dict[str, Any] = {
                "id": node.id,
                "type": node.node_type.value,
                "parentId": node.parent_id
            }
            if get_capabilities(node.node_type).is_container:
                info["children"] = list(node.children)
            if "name" in needed:
                info["name"] = node.name
            for group in PROPERTY_GROUPS:
                values = node.properties.get(group.WIRE_KEY)
                if group.WIRE_KEY in needed and values:
                    info[group.WIRE_KEY] = {to_wire_name(attr): value for attr, value in values.items()}
            return info

    def current_selection(self) -> List[Node]:
        with self._lock:
            return [self._nodes[node_id] for node_id in self._selection]

    def list_nodes(self, parent_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Summaries of the direct children of a container (the current page by default)."""
        with self._lock:
            parent = self._get(parent_id or self.current_page_id)
            return [self._nodes[child_id].summary() for child_id in parent.children]

    def export_visual(self, node_id: Optional[str] = None) -> bytes:
        with self._lock:
            if node_id is None:
                if not self._selection:
                    raise NodeNotFoundError("No layer id given and nothing is selected")
                node = self._nodes[self._selection[0]]
            else:
                node = self._get(node_id)

            if node.node_type == NodeType.PAGE:
                raise NotExportableError("Pages cannot be exported")
            if not node.visible:
                raise NotExportableError(f"Node {node.id} is hidden")
            bounds = self._bounds(node)
            if bounds is None:
                raise NotExportableError(f"Node {node.id} has no visible area")
            layers = list(self._paint_layers(node))

        x, y, width, height = bounds
        return render_layers((x, y), (width, height), layers)

    # ----------------------------------------------------------------
    # Internals
    # ----------------------------------------------------------------

    def _get(self, node_id: str) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(f"Node {node_id!r} not found")
        return node

    def _new_node(self, node_type: NodeType, name: Optional[str], parent_id: Optional[str],
                  prefix: str) -> Node:
        self._id_counter += 1
        if not name:
            count = self._name_counters.get(node_type, 0) + 1
            self._name_counters[node_type] = count
            name = f"{node_type.value.title()} {count}"

        node = Node(id=f"{prefix}:{self._id_counter}", node_type=node_type, name=name, parent_id=parent_id)
        for group, defaults in FIELD_DEFAULTS.items():
            attributes = supported_fields(node_type, group)
            if attributes:
                node.properties[group] = {attr: defaults[attr] for attr in attributes}
        if node_type == NodeType.FRAME:
            node.properties["visual"]["fill"] = "#FFFFFF"

        self._nodes[node.id] = node
        return node

    @staticmethod
    def _apply(node: Node, group: PropertyGroup):
        node.properties.setdefault(group.WIRE_KEY, {}).update(group.set_fields())

    def _walk(self, node: Node) -> Iterator[Node]:
        yield node
        for child_id in node.children:
            yield from self._walk(self._nodes[child_id])

    def _bounds(self, node: Node) -> Optional[Tuple[float, float, float, float]]:
        record = get_capabilities(node.node_type)
        if record.supports(Capability.RESIZABLE):
            return (node.get("layout", "x"), node.get("layout", "y"),
                    node.get("layout", "size_x"), node.get("layout", "size_y"))

        child_bounds = [
            self._bounds(self._nodes[child_id]) for child_id in node.children
            if self._nodes[child_id].visible
        ]
        child_bounds = [b for b in child_bounds if b is not None]
        if not child_bounds:
            return None
        left = min(b[0] for b in child_bounds)
        top = min(b[1] for b in child_bounds)
        right = max(b[0] + b[2] for b in child_bounds)
        bottom = max(b[1] + b[3] for b in child_bounds)
        return left, top, right - left, bottom - top

    def _paint_layers(self, node: Node) -> Iterator[PaintLayer]:
        if not node.visible:
            return
        if get_capabilities(node.node_type).supports(Capability.FILLS):
            yield PaintLayer(
                x=node.get("layout", "x"),
                y=node.get("layout", "y"),
                width=node.get("layout", "size_x"),
                height=node.get("layout", "size_y"),
                rgb=parse_hex_color(node.get("visual", "fill")),
                opacity=node.get("visual", "opacity", 1.0)
            )
        for child_id in node.children:
            yield from self._paint_layers(self._nodes[child_id])
