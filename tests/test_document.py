import pytest

from document import (
    FORMAT_VERSION, default_document, format_color, format_version, load_document,
    parse_color, parse_document, parse_size, save_document, serialize_document,
)
from errors import FormatError
from scene import Node, NodeKind
from strokes import PenTool, StrokeSessions


def test_rejects_non_svg_text():
    with pytest.raises(FormatError):
        parse_document("not svg")


def test_default_document_round_trips():
    text = serialize_document(default_document(480, 320))
    tree = parse_document(text)

    assert (tree.root.width, tree.root.height) == (480, 320)
    assert format_version(tree) == FORMAT_VERSION
    assert serialize_document(tree) == text


def test_drawn_strokes_round_trip(tree):
    sessions = StrokeSessions(tree, PenTool(color=(18, 52, 86), diameter=2.5))
    sessions.begin("mouse", (0, 0))
    sessions.extend("mouse", (10, 10))
    sessions.end("mouse", (20, 0))

    loaded = parse_document(serialize_document(tree))
    (original,) = tree.iter_paths()
    (path,) = loaded.iter_paths()

    assert path.stroke == (18, 52, 86)
    assert path.stroke_width == 2.5
    assert path.attributes == {"fill": "none"}
    assert path.commands == original.commands


def test_path_serialization():
    tree = default_document(10, 10)
    tree.insert(tree.root, Node.path("M 1 2 L 3 4", stroke=(255, 0, 0), stroke_width=2.0))
    text = serialize_document(tree)
    assert '<path d="M 1.0 2.0 L 3.0 4.0" stroke="#ff0000" stroke-width="2"></path>' in text


@pytest.mark.parametrize("value, expected", [
    ("#000", (0, 0, 0)),
    ("#fff", (255, 255, 255)),
    ("#1a2B3c", (26, 43, 60)),
])
def test_parse_color(value, expected):
    assert parse_color(value) == expected


@pytest.mark.parametrize("value", ["red", "#12", "#1234567", "rgb(0,0,0)", ""])
def test_parse_color_rejects_other_forms(value):
    with pytest.raises(FormatError):
        parse_color(value)


def test_format_color():
    assert format_color((26, 43, 60)) == "#1a2b3c"


@pytest.mark.parametrize("text", [
    '<svg width="10" height="10"><path d="M 0 0 A 1 1 0 0 1 5 5"/></svg>',
    '<svg width="10" height="10"><path d="M 0 0 L 5 5" stroke="red"/></svg>',
    '<svg width="10" height="10"><path d="M 0 0 L 5 5" stroke-width="-1"/></svg>',
    '<svg width="10" height="10"><path d="M 0 0"><title>x</title></path></svg>',
    '<svg height="10"></svg>',
    '<svg width="0" height="10"></svg>',
    '<svg width="10" height="10"><g></svg>',
])
def test_malformed_documents_are_rejected(text):
    with pytest.raises(FormatError):
        parse_document(text)


def test_unknown_elements_and_text_survive():
    text = ('<svg xmlns="http://www.w3.org/2000/svg" width="50" height="50">'
            '<g id="layer"><text x="1">Hello &amp; bye</text></g></svg>')
    tree = parse_document(text)

    group = tree.root.children[0]
    assert group.kind is NodeKind.GROUP
    assert group.attributes == {"id": "layer"}
    assert group.children[0].children == ["Hello & bye"]
    assert serialize_document(tree) == text


def test_namespaced_attributes_survive():
    text = ('<svg xmlns="http://www.w3.org/2000/svg" '
            'xmlns:xlink="http://www.w3.org/1999/xlink" width="50" height="50">'
            '<a xlink:href="#x"></a></svg>')
    out = serialize_document(parse_document(text))
    assert 'xmlns:xlink="http://www.w3.org/1999/xlink"' in out
    assert '<a xlink:href="#x"></a>' in out


def test_missing_stroke_attributes_use_defaults():
    tree = parse_document('<svg width="10" height="10"><path d="M 0 0 L 5 5"/></svg>')
    (path,) = tree.iter_paths()
    assert path.stroke == (0, 0, 0)
    assert path.stroke_width == 1.0


@pytest.mark.parametrize("text, expected", [
    ("480x480", (480, 480)),
    (" 640 x 360 ", (640, 360)),
    ("480", None),
    ("0x10", None),
    ("axb", None),
])
def test_parse_size(text, expected):
    assert parse_size(text) == expected


def test_save_and_load(tmp_path, tree):
    tree.insert(tree.root, Node.path("M 0 0 C 1 1, 2 2, 3 3", attributes={"fill": "none"}))
    target = tmp_path / "note.svg"

    save_document(tree, target)
    loaded = load_document(target)

    assert serialize_document(loaded) == serialize_document(tree)
