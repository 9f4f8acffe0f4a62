import path_codec
from conftest import horizontal_path
from scene import NodeKind
from strokes import EraserTool, PenTool, StrokeSessions


def test_pen_gesture_adds_one_curved_path(tree):
    sessions = StrokeSessions(tree, PenTool(color=(255, 0, 0), diameter=3.0))
    sessions.begin("mouse", (0, 0))
    sessions.extend("mouse", (10, 0))
    node = sessions.end("mouse", (20, 0))

    assert list(tree.iter_paths()) == [node]
    assert node.attributes == {"fill": "none"}
    assert node.stroke == (255, 0, 0)
    assert node.stroke_width == 3.0
    assert [c.op for c in node.commands] == ["M", "C"]
    assert sessions.active_ids == []


def test_tap_records_a_dot(tree):
    sessions = StrokeSessions(tree)
    sessions.begin("mouse", (5, 5))
    node = sessions.end("mouse", (5, 5))

    assert node is not None
    assert [c.op for c in node.commands] == ["M", "L"]


def test_events_for_unknown_ids_are_ignored(tree):
    sessions = StrokeSessions(tree)
    assert sessions.extend("ghost", (1, 1)) == []
    assert sessions.end("ghost", (2, 2)) is None
    assert list(tree.iter_paths()) == []


def test_begin_again_discards_previous_points(tree):
    sessions = StrokeSessions(tree)
    sessions.begin("mouse", (0, 0))
    sessions.extend("mouse", (50, 50))
    sessions.begin("mouse", (100, 100))

    assert sessions.session("mouse").points == [(100.0, 100.0)]


def test_eraser_removes_paths_while_moving(tree):
    tree.insert(tree.root, horizontal_path(0))
    kept = horizontal_path(0, 50, 60)
    tree.insert(tree.root, kept)
    sessions = StrokeSessions(tree, EraserTool())

    sessions.begin("mouse", (5, -5))
    removed = sessions.extend("mouse", (5, 5))

    assert len(removed) == 1
    assert list(tree.iter_paths()) == [kept]
    assert sessions.end("mouse", (5, 10)) is None


def test_eraser_away_from_strokes_changes_nothing(tree):
    path = horizontal_path(0)
    tree.insert(tree.root, path)
    sessions = StrokeSessions(tree, EraserTool())
    sessions.begin("mouse", (100, 100))
    sessions.extend("mouse", (150, 150))
    sessions.end("mouse", (150, 190))

    assert list(tree.iter_paths()) == [path]


def test_drawn_stroke_can_be_erased(tree):
    sessions = StrokeSessions(tree)
    sessions.begin("pen", (0, 0))
    sessions.extend("pen", (10, 0))
    sessions.end("pen", (20, 0))

    sessions.begin("eraser", (5, -5), EraserTool())
    sessions.end("eraser", (5, 5))

    assert list(tree.iter_paths()) == []


def test_interleaved_identifiers_make_separate_paths(tree):
    sessions = StrokeSessions(tree)
    sessions.begin("finger:1", (0, 0))
    sessions.begin("finger:2", (0, 100))
    sessions.extend("finger:1", (10, 5))
    sessions.extend("finger:2", (10, 105))
    first = sessions.end("finger:1", (20, 0))
    second = sessions.end("finger:2", (20, 100))

    assert list(tree.iter_paths()) == [first, second]
    assert first.geometry()[-1].p3 == (20.0, 0.0)
    assert second.geometry()[-1].p3 == (20.0, 100.0)


def test_session_keeps_tool_settings_from_begin(tree):
    pen = PenTool(color=(0, 0, 255))
    sessions = StrokeSessions(tree, pen)
    sessions.begin("mouse", (0, 0))
    pen.color = (0, 255, 0)
    node = sessions.end("mouse", (20, 0))

    assert node.stroke == (0, 0, 255)


def test_cancel_ends_at_last_point(tree):
    sessions = StrokeSessions(tree)
    sessions.begin("mouse", (0, 0))
    sessions.extend("mouse", (30, 0))
    node = sessions.cancel("mouse")

    assert node.geometry()[-1].p3 == (30.0, 0.0)
    assert sessions.cancel("mouse") is None


def test_cancel_all_finishes_every_session(tree):
    sessions = StrokeSessions(tree)
    sessions.begin("a", (0, 0))
    sessions.extend("a", (10, 10))
    sessions.begin("b", (50, 50))

    created = sessions.cancel_all()

    # "b" never moved, so it is kept as a dot
    assert len(created) == 2
    assert sessions.active_ids == []
    assert [n.kind for n in tree.iter_paths()] == [NodeKind.PATH, NodeKind.PATH]


def test_stroke_survives_fitting_failure(tree, monkeypatch):
    def broken(points, max_error):
        raise RecursionError("maximum recursion depth exceeded")

    monkeypatch.setattr(path_codec, "fit_stroke", broken)
    sessions = StrokeSessions(tree)
    sessions.begin("mouse", (0, 0))
    sessions.extend("mouse", (10, 5))
    node = sessions.end("mouse", (20, 0))

    assert list(tree.iter_paths()) == [node]
    assert [c.op for c in node.commands] == ["M", "L", "L"]
