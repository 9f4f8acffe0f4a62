import pytest

from canvas import Canvas
from document import default_document
from errors import FormatError

WHITE = [255, 255, 255]
STROKE = [[10, 50], [100, 50], [190, 50]]


@pytest.fixture
def canvas():
    return Canvas(default_document(200, 200))


def pixel(canvas, x, y):
    return canvas.get_pixels_rgb(x, y, 1, 1)[0][0]


def test_blank_canvas_is_white(canvas):
    assert pixel(canvas, 100, 50) == WHITE


def test_draw_then_erase(canvas):
    canvas.execute({"action": "set_pen", "r": 0, "g": 0, "b": 0, "diameter": 4})
    canvas.execute({"action": "draw_path", "points": STROKE})
    assert pixel(canvas, 100, 50) == [0, 0, 0]
    assert len(list(canvas.tree.iter_paths())) == 1

    canvas.execute({"action": "erase_path", "points": [[100, 0], [100, 100]]})
    assert pixel(canvas, 100, 50) == WHITE
    assert list(canvas.tree.iter_paths()) == []


def test_pen_color_is_used(canvas):
    canvas.execute({"action": "set_pen", "r": 255, "g": 0, "b": 0, "diameter": 4})
    canvas.execute({"action": "draw_path", "points": STROKE})
    assert pixel(canvas, 100, 50) == [255, 0, 0]
    assert canvas.state.tool == "pen"


def test_single_point_draw_is_ignored(canvas):
    canvas.execute({"action": "draw_path", "points": [[10, 10]]})
    assert list(canvas.tree.iter_paths()) == []


def test_live_stroke_is_committed_on_end(canvas):
    canvas.begin_stroke("mouse", (10, 20))
    canvas.extend_stroke("mouse", (60, 20))
    assert list(canvas.tree.iter_paths()) == []
    canvas.end_stroke("mouse", (120, 20))
    assert len(list(canvas.tree.iter_paths())) == 1


def test_eraser_tool_selection(canvas):
    canvas.execute({"action": "draw_path", "points": STROKE})
    canvas.execute({"action": "set_eraser", "diameter": 20})
    assert canvas.state.tool == "eraser"

    canvas.execute({"action": "begin_stroke", "id": "mcp:e", "x": 50, "y": 0})
    canvas.execute({"action": "end_stroke", "id": "mcp:e", "x": 50, "y": 100})
    assert list(canvas.tree.iter_paths()) == []


def test_clear(canvas):
    canvas.execute({"action": "draw_path", "points": STROKE})
    canvas.execute({"action": "clear"})
    assert list(canvas.tree.iter_paths()) == []
    assert pixel(canvas, 100, 50) == WHITE


def test_resize(canvas):
    canvas.execute({"action": "resize", "width": 100, "height": 80})
    assert canvas.get_display_surface().get_size() == (100, 80)
    pixels = canvas.get_pixels_rgb()
    assert len(pixels) == 80
    assert len(pixels[0]) == 100


def test_unknown_action(canvas):
    with pytest.raises(ValueError):
        canvas.execute({"action": "spray"})
    with pytest.raises(ValueError):
        canvas.select_tool("brush")


def test_invalid_svg_keeps_current_document(canvas):
    canvas.execute({"action": "draw_path", "points": STROKE})
    tree = canvas.tree
    with pytest.raises(FormatError):
        canvas.load_svg("<svg><path d='M 0 0 Q 1 1 2 2'/></svg>")
    assert canvas.tree is tree


def test_load_svg_replaces_document(canvas):
    canvas.load_svg('<svg width="64" height="48"><path d="M 0 10 L 63 10" '
                    'stroke="#0000ff" stroke-width="3"/></svg>')
    assert (canvas.width, canvas.height) == (64, 48)
    assert pixel(canvas, 30, 10) == [0, 0, 255]
    assert "stroke=\"#0000ff\"" in canvas.to_svg()
