import asyncio
import queue

import pytest

from tools import clamp, create_mcp_server


@pytest.fixture
def commands():
    return queue.Queue()


def call(mcp, name, **arguments):
    return asyncio.run(mcp.call_tool(name, arguments))


def drain(commands):
    items = []
    while not commands.empty():
        items.append(commands.get_nowait())
    return items


def test_clamp():
    assert clamp(300, 0, 255) == 255
    assert clamp(-1, 0, 255) == 0
    assert clamp(7, 0, 255) == 7


def test_draw_path_is_queued(commands):
    mcp = create_mcp_server(commands)
    call(mcp, "draw_path", points=[[0, 0], [10, 10]])
    assert drain(commands) == [{"action": "draw_path", "points": [[0, 0], [10, 10]]}]


def test_single_point_stroke_is_blocked(commands):
    mcp = create_mcp_server(commands)
    call(mcp, "draw_path", points=[[0, 0]])
    call(mcp, "erase_path", points=[[0, 0]])
    assert drain(commands) == []


def test_pen_settings_are_clamped(commands):
    mcp = create_mcp_server(commands)
    call(mcp, "set_pen", r=400, g=-3, b=10, diameter=500, tolerance=0)
    (cmd,) = drain(commands)
    assert (cmd["r"], cmd["g"], cmd["b"]) == (255, 0, 10)
    assert cmd["diameter"] == 50.0
    assert cmd["tolerance"] == 0.1


def test_live_stroke_ids_are_namespaced(commands):
    mcp = create_mcp_server(commands)
    call(mcp, "begin_stroke", stroke_id="a", x=1, y=2)
    call(mcp, "end_stroke", stroke_id="a", x=3, y=4)
    assert [c["id"] for c in drain(commands)] == ["mcp:a", "mcp:a"]


def test_resize_is_clamped(commands):
    mcp = create_mcp_server(commands)
    call(mcp, "resize_canvas", width=0, height=10000)
    assert drain(commands) == [{"action": "resize", "width": 1, "height": 4096}]
