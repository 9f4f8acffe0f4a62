"""Drawing engine: renders the note document to pygame surfaces and applies commands."""

import logging
from dataclasses import dataclass, field

import numpy as np
import pygame

from document import default_document, parse_document, serialize_document
from path_codec import flatten
from scene import SceneTree
from strokes import EraserTool, PenTool, StrokeSessions

log = logging.getLogger(__name__)

VALID_TOOLS = ("pen", "eraser")


@dataclass
class DrawState:
    pen: PenTool = field(default_factory=PenTool)
    eraser: EraserTool = field(default_factory=EraserTool)
    tool: str = "pen"
    background_color: tuple = (255, 255, 255)


class Canvas:
    CURVE_STEPS = 16
    ERASER_OUTLINE = (0, 0, 0)

    def __init__(self, tree: SceneTree | None = None):
        self.tree = tree or default_document()
        self.state = DrawState()
        self.sessions = StrokeSessions(self.tree, self.state.pen)
        self._make_surfaces()

    def _make_surfaces(self):
        size = (self.tree.root.width, self.tree.root.height)
        self.surface = pygame.Surface(size)
        self.display_surface = pygame.Surface(size)
        self._dirty = True

    @property
    def width(self) -> int:
        return self.tree.root.width

    @property
    def height(self) -> int:
        return self.tree.root.height

    def execute(self, cmd: dict):
        action = cmd.get("action")
        method = getattr(self, f"_do_{action}", None)
        if method is None:
            raise ValueError(f"Unknown action: {action}")
        method(cmd)

    # --- Tool state ---

    def select_tool(self, tool: str):
        if tool not in VALID_TOOLS:
            raise ValueError(f"Unknown tool: {tool}")
        self.state.tool = tool
        self.sessions.tool = self.state.pen if tool == "pen" else self.state.eraser

    def _do_set_pen(self, cmd: dict):
        pen = self.state.pen
        if "r" in cmd:
            pen.color = (cmd["r"], cmd["g"], cmd["b"])
        pen.diameter = cmd.get("diameter", pen.diameter)
        pen.tolerance = cmd.get("tolerance", pen.tolerance)
        self.select_tool("pen")

    def _do_set_eraser(self, cmd: dict):
        self.state.eraser.diameter = cmd.get("diameter", self.state.eraser.diameter)
        self.select_tool("eraser")

    def _do_select_tool(self, cmd: dict):
        self.select_tool(cmd["tool"])

    # --- Strokes ---

    def begin_stroke(self, stroke_id, point, tool: str | None = None):
        snapshot = None
        if tool is not None:
            snapshot = self.state.pen if tool == "pen" else self.state.eraser
        self.sessions.begin(stroke_id, point, snapshot)

    def extend_stroke(self, stroke_id, point):
        if self.sessions.extend(stroke_id, point):
            self._dirty = True

    def end_stroke(self, stroke_id, point):
        # The final segment may add a path or erase one; redraw either way
        self.sessions.end(stroke_id, point)
        self._dirty = True

    def cancel_strokes(self):
        self.sessions.cancel_all()
        self._dirty = True

    def _do_begin_stroke(self, cmd: dict):
        self.begin_stroke(cmd["id"], (cmd["x"], cmd["y"]), cmd.get("tool"))

    def _do_extend_stroke(self, cmd: dict):
        self.extend_stroke(cmd["id"], (cmd["x"], cmd["y"]))

    def _do_end_stroke(self, cmd: dict):
        self.end_stroke(cmd["id"], (cmd["x"], cmd["y"]))

    def _run_stroke(self, stroke_id, points: list, tool: str):
        if not points:
            return
        self.begin_stroke(stroke_id, points[0], tool)
        for point in points[1:-1]:
            self.extend_stroke(stroke_id, point)
        self.end_stroke(stroke_id, points[-1])

    def _do_draw_path(self, cmd: dict):
        points = cmd["points"]
        if len(points) < 2:
            return
        self._run_stroke(cmd.get("id", "mcp:path"), points, "pen")

    def _do_erase_path(self, cmd: dict):
        self._run_stroke(cmd.get("id", "mcp:eraser"), cmd["points"], "eraser")

    # --- Document operations ---

    def _do_clear(self, cmd: dict):
        removed = self.tree.clear_paths()
        log.info("Cleared %d path(s)", len(removed))
        self._dirty = True

    def _do_resize(self, cmd: dict):
        self.tree.resize(cmd["width"], cmd["height"])
        self._make_surfaces()

    def load_svg(self, text: str):
        """Replace the document. Raises FormatError and keeps the old one on bad input."""
        tree = parse_document(text)
        self.cancel_strokes()
        self.tree = tree
        self.sessions.tree = tree
        self._make_surfaces()

    def to_svg(self) -> str:
        return serialize_document(self.tree)

    # --- Rendering ---

    def _render_document(self):
        self.surface.fill(self.state.background_color)
        for node in self.tree.iter_paths():
            width = max(1, round(node.stroke_width))
            for run in flatten(node.geometry(), self.CURVE_STEPS):
                self._draw_run(self.surface, node.stroke, run, width)
        self._dirty = False

    @staticmethod
    def _draw_run(surface: pygame.Surface, color: tuple, points: list, width: int):
        if len(points) < 2 or all(p == points[0] for p in points):
            pygame.draw.circle(surface, color, points[0], max(1, width // 2))
        else:
            pygame.draw.lines(surface, color, False, points, width)

    def _render_live(self):
        """Overlay in-progress strokes on top of the committed document."""
        for stroke_id in self.sessions.active_ids:
            session = self.sessions.session(stroke_id)
            tool = session.tool
            if isinstance(tool, PenTool):
                width = max(1, round(tool.diameter))
                self._draw_run(self.display_surface, tool.color, session.points, width)
            elif isinstance(tool, EraserTool):
                radius = max(1, round(tool.diameter / 2))
                pygame.draw.circle(self.display_surface, self.ERASER_OUTLINE,
                                   session.points[-1], radius, 2)

    def get_display_surface(self) -> pygame.Surface:
        if self._dirty:
            self._render_document()
        self.display_surface.blit(self.surface, (0, 0))
        self._render_live()
        return self.display_surface

    # --- Read-only operations ---

    def get_pixels_rgb(self, x: int = 0, y: int = 0,
                       w: int | None = None, h: int | None = None) -> list[list[list[int]]]:
        """Return a 2D list of [r, g, b] values (row-major) for the given region."""
        if w is None:
            w = self.width - x
        if h is None:
            h = self.height - y
        # Clamp to canvas bounds
        x = max(0, min(x, self.width - 1))
        y = max(0, min(y, self.height - 1))
        w = max(0, min(w, self.width - x))
        h = max(0, min(h, self.height - y))

        pixels = pygame.surfarray.array3d(self.get_display_surface())  # (W, H, 3)
        region = np.transpose(pixels, (1, 0, 2))[y:y + h, x:x + w]
        return region.astype(int).tolist()
