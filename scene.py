"""Scene tree: the in-memory SVG document that strokes are added to and erased from."""

from enum import Enum
from typing import Iterator

from errors import TreeShapeError
from intersect import intersects
from path_codec import LineSegment, PathCommand, Segment, parse_commands, to_geometry


class NodeKind(Enum):
    ROOT = "root"
    GROUP = "group"
    PATH = "path"


DEFAULT_STROKE = (0, 0, 0)
DEFAULT_STROKE_WIDTH = 1.0


class Node:
    """A document element. Text content is stored as plain str children.

    Use the root/group/path constructors; each kind carries its own payload:
    ROOT has width and height, PATH has stroke, stroke_width and commands.
    Everything else the markup carried stays in `attributes` untouched.
    """

    def __init__(self, kind: NodeKind, tag: str, attributes: dict | None = None):
        self.kind = kind
        self.tag = tag
        self.attributes: dict[str, str] = dict(attributes or {})
        self.children: list["Node | str"] = []
        self.width = 0
        self.height = 0
        self.stroke = DEFAULT_STROKE
        self.stroke_width = DEFAULT_STROKE_WIDTH
        self._commands: list[PathCommand] = []
        self._geometry: list[Segment] | None = None

    @classmethod
    def root(cls, width: int, height: int, attributes: dict | None = None) -> "Node":
        node = cls(NodeKind.ROOT, "svg", attributes)
        node.width, node.height = width, height
        return node

    @classmethod
    def group(cls, tag: str, attributes: dict | None = None) -> "Node":
        return cls(NodeKind.GROUP, tag, attributes)

    @classmethod
    def path(cls, d: str, stroke: tuple = DEFAULT_STROKE,
             stroke_width: float = DEFAULT_STROKE_WIDTH,
             attributes: dict | None = None) -> "Node":
        node = cls(NodeKind.PATH, "path", attributes)
        node.stroke = tuple(stroke)
        node.stroke_width = stroke_width
        node.commands = parse_commands(d)
        return node

    @property
    def commands(self) -> list[PathCommand]:
        return self._commands

    @commands.setter
    def commands(self, commands: list[PathCommand]):
        if self.kind is not NodeKind.PATH:
            raise TreeShapeError(f"<{self.tag}> is not a path and has no commands")
        self._commands = list(commands)
        self._geometry = None

    def geometry(self) -> list[Segment]:
        """Decoded path primitives, computed on first use and cached."""
        if self.kind is not NodeKind.PATH:
            return []
        if self._geometry is None:
            self._geometry = to_geometry(self._commands)
        return self._geometry

    def __repr__(self):
        return f"<Node {self.kind.name} {self.tag} children={len(self.children)}>"


class SceneTree:
    """Owns the root node and every mutation applied below it."""

    def __init__(self, root: Node):
        if root.kind is not NodeKind.ROOT:
            raise TreeShapeError("The document apex must be a root <svg> node")
        self.root = root

    # --- Mutation ---

    def insert(self, parent: Node, node: Node):
        if parent.kind is NodeKind.PATH:
            raise TreeShapeError("Path nodes cannot have children")
        if node.kind is NodeKind.ROOT:
            raise TreeShapeError("Only one root node may exist, at the apex")
        parent.children.append(node)

    def resize(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Document size must be positive, got {width}x{height}")
        self.root.width, self.root.height = int(width), int(height)

    def filter_intersecting(self, segment: LineSegment, node: Node | None = None,
                            keep_intersecting: bool = False,
                            recurse: bool = True) -> list[Node]:
        """Collect (and unless keep_intersecting, remove) paths crossing segment.

        Only path leaves are ever removed; a group stays even when everything
        inside it was erased. Results follow pre-order traversal."""
        removed: list[Node] = []
        self._filter(node or self.root, removed, recurse,
                     lambda child: intersects(segment, child.geometry()),
                     keep_intersecting)
        return removed

    def clear_paths(self, node: Node | None = None, recurse: bool = True) -> list[Node]:
        """Remove every path below node regardless of geometry."""
        removed: list[Node] = []
        self._filter(node or self.root, removed, recurse, lambda child: True, False)
        return removed

    def _filter(self, node: Node, removed: list, recurse: bool, predicate, keep: bool):
        kept: list[Node | str] = []
        for child in node.children:
            if isinstance(child, str):
                kept.append(child)
                continue
            if child.kind is NodeKind.PATH:
                if predicate(child):
                    removed.append(child)
                    if keep:
                        kept.append(child)
                else:
                    kept.append(child)
            elif child.kind is NodeKind.GROUP:
                if recurse:
                    self._filter(child, removed, recurse, predicate, keep)
                kept.append(child)
            else:
                raise TreeShapeError(f"Unexpected {child.kind.name} node below <{node.tag}>")
        # Swap in the finished list so readers never see a partial filter
        node.children = kept

    # --- Queries ---

    def iter_nodes(self, node: Node | None = None) -> Iterator[Node]:
        """Pre-order walk over element nodes (text leaves skipped)."""
        node = node or self.root
        yield node
        for child in node.children:
            if not isinstance(child, str):
                yield from self.iter_nodes(child)

    def iter_paths(self, node: Node | None = None) -> Iterator[Node]:
        for n in self.iter_nodes(node):
            if n.kind is NodeKind.PATH:
                yield n
