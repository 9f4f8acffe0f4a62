"""MCP tool definitions. Pushes document commands onto a thread-safe queue."""

import json
import queue
import threading
from typing import Optional

from mcp.server.fastmcp import FastMCP

MAX_SIZE = 4096


def clamp(value, lo, hi):
    return max(lo, min(hi, value))


def create_mcp_server(command_queue: queue.Queue, width: int = 360, height: int = 360) -> FastMCP:
    mcp = FastMCP("notesvg-mcp")

    # Local state mirror so get_canvas_info can respond without touching pygame
    _size = [width, height]
    _tool = ["pen"]
    _pen = {"color": [0, 0, 0], "diameter": 2.0, "tolerance": 2.0}
    _eraser_diameter = [10.0]

    @mcp.tool()
    def get_canvas_info() -> str:
        """Get document dimensions and current pen/eraser settings."""
        r, g, b = _pen["color"]
        return (
            f"Document: {_size[0]}x{_size[1]}, "
            f"tool: {_tool[0]}, "
            f"pen: rgb({r}, {g}, {b}) diameter {_pen['diameter']} "
            f"tolerance {_pen['tolerance']}, "
            f"eraser diameter: {_eraser_diameter[0]}"
        )

    @mcp.tool()
    def set_pen(r: int, g: int, b: int, diameter: float = 2.0, tolerance: float = 2.0) -> str:
        """Select the pen with an RGB color (0-255), stroke diameter (0.5-50)
        and curve-fitting tolerance (0.1-20; larger gives fewer, looser curves)."""
        r, g, b = clamp(r, 0, 255), clamp(g, 0, 255), clamp(b, 0, 255)
        diameter = clamp(diameter, 0.5, 50.0)
        tolerance = clamp(tolerance, 0.1, 20.0)
        _pen.update(color=[r, g, b], diameter=diameter, tolerance=tolerance)
        _tool[0] = "pen"
        command_queue.put({"action": "set_pen", "r": r, "g": g, "b": b,
                           "diameter": diameter, "tolerance": tolerance})
        return f"Pen selected: rgb({r}, {g}, {b}), diameter {diameter}, tolerance {tolerance}"

    @mcp.tool()
    def set_eraser(diameter: float = 10.0) -> str:
        """Select the eraser. Strokes are erased where the eraser's path crosses them."""
        diameter = clamp(diameter, 1.0, 100.0)
        _eraser_diameter[0] = diameter
        _tool[0] = "eraser"
        command_queue.put({"action": "set_eraser", "diameter": diameter})
        return f"Eraser selected, diameter {diameter}"

    @mcp.tool()
    def draw_path(points: list[list[float]]) -> str:
        """Draw a freehand pen stroke through a list of [x, y] points.
        The stroke is fitted with smooth cubic curves and stored as one SVG path."""
        if len(points) < 2:
            return "Blocked: a stroke needs at least 2 points."
        command_queue.put({"action": "draw_path", "points": points})
        return f"Drew stroke through {len(points)} points"

    @mcp.tool()
    def erase_path(points: list[list[float]]) -> str:
        """Drag the eraser through a list of [x, y] points, removing every
        stroke the motion crosses."""
        if len(points) < 2:
            return "Blocked: an eraser motion needs at least 2 points."
        command_queue.put({"action": "erase_path", "points": points})
        return f"Erased along {len(points)} points"

    @mcp.tool()
    def begin_stroke(stroke_id: str, x: float, y: float) -> str:
        """Start a live stroke with the current tool. Several stroke_ids may be live at once."""
        command_queue.put({"action": "begin_stroke", "id": f"mcp:{stroke_id}", "x": x, "y": y})
        return f"Stroke {stroke_id} started at ({x}, {y})"

    @mcp.tool()
    def extend_stroke(stroke_id: str, x: float, y: float) -> str:
        """Add a point to a live stroke. Ignored if the stroke isn't live."""
        command_queue.put({"action": "extend_stroke", "id": f"mcp:{stroke_id}", "x": x, "y": y})
        return f"Stroke {stroke_id} extended to ({x}, {y})"

    @mcp.tool()
    def end_stroke(stroke_id: str, x: float, y: float) -> str:
        """Finish a live stroke at (x, y)."""
        command_queue.put({"action": "end_stroke", "id": f"mcp:{stroke_id}", "x": x, "y": y})
        return f"Stroke {stroke_id} ended at ({x}, {y})"

    @mcp.tool()
    def clear_canvas() -> str:
        """Erase every stroke in the document."""
        command_queue.put({"action": "clear"})
        return "All strokes erased"

    @mcp.tool()
    def resize_canvas(width: int, height: int) -> str:
        """Change the document size in pixels (1-4096 each)."""
        width, height = clamp(width, 1, MAX_SIZE), clamp(height, 1, MAX_SIZE)
        _size[:] = [width, height]
        command_queue.put({"action": "resize", "width": width, "height": height})
        return f"Document resized to {width}x{height}"

    def _request_response(cmd: dict, timeout: float = 5.0):
        """Send a command to the main thread and wait for a response."""
        event = threading.Event()
        result: dict = {}
        cmd["_event"] = event
        cmd["_result"] = result
        command_queue.put(cmd)
        if not event.wait(timeout):
            raise TimeoutError("Main thread did not respond in time")
        if "error" in result:
            raise RuntimeError(result["error"])
        return result["data"]

    @mcp.tool()
    def get_svg() -> str:
        """Return the document as SVG markup."""
        return _request_response({"action": "get_svg"})

    @mcp.tool()
    def load_svg(svg: str) -> str:
        """Replace the document with SVG markup previously produced by get_svg.
        Only <path> strokes with M/L/C path data are supported."""
        size = _request_response({"action": "load_svg", "svg": svg})
        _size[:] = size
        return f"Document loaded ({size[0]}x{size[1]})"

    @mcp.tool()
    def save_svg(file_path: str) -> str:
        """Save the document as an SVG file at the given path."""
        return _request_response({"action": "save_svg", "path": file_path})

    @mcp.tool()
    def get_canvas_pixels(x: Optional[int] = None, y: Optional[int] = None,
                          width: Optional[int] = None, height: Optional[int] = None) -> str:
        """Return rendered RGB pixels as a 2D array of [r,g,b] values (row-major).

        All parameters are optional; omit them for the whole document. Prefer a
        small region, e.g. x=100, y=100, width=50, height=50."""
        cmd: dict = {"action": "get_pixels"}
        if x is not None:
            cmd["x"] = x
        if y is not None:
            cmd["y"] = y
        if width is not None:
            cmd["w"] = width
        if height is not None:
            cmd["h"] = height
        pixels = _request_response(cmd)
        return json.dumps(pixels)

    @mcp.tool()
    def save_canvas(file_path: str) -> str:
        """Save the rendered document to a PNG file at the given path."""
        return _request_response({"action": "save_file", "path": file_path})

    return mcp
