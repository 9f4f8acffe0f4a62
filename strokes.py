"""Live stroke sessions: one per pointer, turned into paths or erasures."""

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Hashable

from curve_fit import Point
from path_codec import LineSegment, encode_stroke
from scene import Node, SceneTree

log = logging.getLogger(__name__)


@dataclass
class PenTool:
    color: tuple = (0, 0, 0)
    diameter: float = 2.0
    tolerance: float = 2.0  # max fitting error in document units


@dataclass
class EraserTool:
    diameter: float = 10.0


Tool = PenTool | EraserTool


@dataclass
class StrokeSession:
    tool: Tool
    points: list[Point] = field(default_factory=list)


class StrokeSessions:
    """Tracks in-progress strokes per input identifier against one scene tree.

    Identifiers are independent, so several pointers (mouse, fingers, MCP
    callers) can draw and erase at the same time. Events for an identifier
    with no active session are ignored.
    """

    def __init__(self, tree: SceneTree, tool: Tool | None = None):
        self.tree = tree
        self.tool: Tool = tool or PenTool()
        self._active: dict[Hashable, StrokeSession] = {}

    def begin(self, stroke_id: Hashable, point: Point, tool: Tool | None = None):
        if stroke_id in self._active:
            log.debug("Stroke %r restarted before it ended", stroke_id)
        snapshot = dataclasses.replace(tool or self.tool)
        self._active[stroke_id] = StrokeSession(snapshot, [_as_point(point)])

    def extend(self, stroke_id: Hashable, point: Point) -> list[Node]:
        """Append a point; eraser sessions erase along the new segment first.

        Returns the path nodes removed by this step."""
        session = self._active.get(stroke_id)
        if session is None:
            return []
        point = _as_point(point)
        removed: list[Node] = []
        if isinstance(session.tool, EraserTool):
            removed = self.erase_segment(session.points[-1], point)
        session.points.append(point)
        return removed

    def end(self, stroke_id: Hashable, point: Point) -> Node | None:
        """Finish a stroke. Pen strokes of two or more points become one path."""
        if stroke_id not in self._active:
            return None
        self.extend(stroke_id, point)
        session = self._active.pop(stroke_id)

        if isinstance(session.tool, PenTool):
            if len(session.points) >= 2:
                return self.finalize_pen_stroke(session.points, session.tool)
        elif isinstance(session.tool, EraserTool):
            pass  # erasure already applied point by point
        else:
            raise TypeError(f"Unknown tool: {session.tool!r}")
        return None

    def cancel(self, stroke_id: Hashable) -> Node | None:
        """End a stroke whose input source was lost, at its last known point."""
        session = self._active.get(stroke_id)
        if session is None:
            return None
        return self.end(stroke_id, session.points[-1])

    def cancel_all(self) -> list[Node]:
        created = []
        for stroke_id in list(self._active):
            node = self.cancel(stroke_id)
            if node is not None:
                created.append(node)
        return created

    def session(self, stroke_id: Hashable) -> StrokeSession | None:
        return self._active.get(stroke_id)

    @property
    def active_ids(self) -> list[Hashable]:
        return list(self._active)

    # --- Document edits ---

    def finalize_pen_stroke(self, points: list[Point], tool: PenTool) -> Node:
        d = encode_stroke(points, tool.tolerance)
        node = Node.path(d, stroke=tool.color, stroke_width=tool.diameter,
                         attributes={"fill": "none"})
        self.tree.insert(self.tree.root, node)
        log.debug("Added path with %d commands from %d points",
                  len(node.commands), len(points))
        return node

    def erase_segment(self, start: Point, end: Point) -> list[Node]:
        removed = self.tree.filter_intersecting(LineSegment(start, end))
        if removed:
            log.debug("Eraser removed %d path(s)", len(removed))
        return removed


def _as_point(point) -> Point:
    return (float(point[0]), float(point[1]))
