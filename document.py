"""Reading and writing note.svg documents (a closed subset of SVG).

The root <svg> carries width and height, an optional <metadata><notesvg
version=".."/></metadata> block names the format version, and each stroke is
a <path> with stroke, stroke-width and M/L/C path data. Other elements are
kept as opaque groups so they survive a round trip.
"""

import logging
import re
from pathlib import Path
from xml.sax.saxutils import escape, quoteattr

from lxml import etree

from errors import FormatError
from path_codec import format_commands
from scene import DEFAULT_STROKE, DEFAULT_STROKE_WIDTH, Node, NodeKind, SceneTree

log = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
XML_NS = "http://www.w3.org/XML/1998/namespace"
FORMAT_VERSION = "1.0"
DEFAULT_WIDTH, DEFAULT_HEIGHT = 360, 360

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True,
                          remove_comments=True, remove_pis=True)
_COLOR_RE = re.compile(r"#([0-9a-fA-F]{3}|[0-9a-fA-F]{6})")
_SIZE_RE = re.compile(r"\s*(\d+)(?:px)?\s*")


def is_valid_svg(text: str) -> bool:
    text = text.strip()
    return text.startswith("<svg") and text.endswith("</svg>")


def default_document(width: int = DEFAULT_WIDTH, height: int = DEFAULT_HEIGHT) -> SceneTree:
    root = Node.root(width, height, {"xmlns": SVG_NS})
    metadata = Node.group("metadata")
    metadata.children.append(Node.group("notesvg", {"version": FORMAT_VERSION}))
    root.children.append(metadata)
    return SceneTree(root)


def format_version(tree: SceneTree) -> str | None:
    for node in tree.iter_nodes():
        if node.kind is NodeKind.GROUP and node.tag == "notesvg":
            return node.attributes.get("version")
    return None


def parse_size(text: str) -> tuple[int, int] | None:
    """Parse a "480x480" size string; None when it isn't one."""
    dims = text.split("x")
    if len(dims) != 2:
        return None
    try:
        width, height = int(dims[0].strip()), int(dims[1].strip())
    except ValueError:
        return None
    if width <= 0 or height <= 0:
        return None
    return width, height


# --- Colors ---

def parse_color(value: str) -> tuple[int, int, int]:
    match = _COLOR_RE.fullmatch(value.strip())
    if match is None:
        raise FormatError(f"Stroke color must be #rgb or #rrggbb, got {value!r}")
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    return tuple(int(digits[i:i + 2], 16) for i in (0, 2, 4))


def format_color(rgb: tuple) -> str:
    r, g, b = rgb
    return f"#{r:02x}{g:02x}{b:02x}"


# --- Parsing ---

def parse_document(text: str) -> SceneTree:
    if not is_valid_svg(text):
        raise FormatError("Document must start with <svg and end with </svg>")
    try:
        element = etree.fromstring(text.strip().encode("utf-8"), parser=_PARSER)
    except etree.XMLSyntaxError as e:
        raise FormatError(f"Invalid SVG markup: {e}") from e

    if _qualified(element.tag, element.nsmap) != "svg":
        raise FormatError("Document root must be an <svg> element")
    return SceneTree(_to_node(element, {}, apex=True))


def _qualified(name: str, nsmap: dict) -> str:
    """Map lxml's {uri}local names back to prefix:local (or local)."""
    if not name.startswith("{"):
        return name
    uri, local = name[1:].split("}", 1)
    if uri == XML_NS:
        return f"xml:{local}"
    for prefix, ns in nsmap.items():
        if ns == uri:
            return local if prefix is None else f"{prefix}:{local}"
    return local


def _to_node(element, parent_nsmap: dict, apex: bool = False) -> Node:
    tag = _qualified(element.tag, element.nsmap)
    attributes: dict[str, str] = {}
    for prefix, uri in element.nsmap.items():
        if parent_nsmap.get(prefix) != uri:
            attributes["xmlns" if prefix is None else f"xmlns:{prefix}"] = uri
    for key, value in element.attrib.items():
        attributes[_qualified(key, element.nsmap)] = value

    if tag == "svg" and apex:
        width = _parse_dimension(attributes.pop("width", None), "width")
        height = _parse_dimension(attributes.pop("height", None), "height")
        node = Node.root(width, height, attributes)
    elif tag == "path":
        if len(element):
            raise FormatError("<path> elements cannot have child elements")
        return _path_node(attributes)
    else:
        node = Node.group(tag, attributes)

    if element.text:
        node.children.append(element.text)
    for child in element:
        node.children.append(_to_node(child, element.nsmap))
        if child.tail:
            node.children.append(child.tail)
    return node


def _path_node(attributes: dict) -> Node:
    d = attributes.pop("d", "")
    stroke_attr = attributes.pop("stroke", None)
    stroke = DEFAULT_STROKE if stroke_attr is None else parse_color(stroke_attr)
    width_attr = attributes.pop("stroke-width", None)
    stroke_width = DEFAULT_STROKE_WIDTH
    if width_attr is not None:
        try:
            stroke_width = float(width_attr)
        except ValueError:
            raise FormatError(f"Invalid stroke-width {width_attr!r}") from None
        if not stroke_width > 0:
            raise FormatError(f"stroke-width must be positive, got {width_attr!r}")
    return Node.path(d, stroke=stroke, stroke_width=stroke_width, attributes=attributes)


def _parse_dimension(value: str | None, name: str) -> int:
    if value is None:
        raise FormatError(f"Root <svg> is missing its {name}")
    match = _SIZE_RE.fullmatch(value)
    if match is None or int(match.group(1)) <= 0:
        raise FormatError(f"Root <svg> {name} must be a positive integer, got {value!r}")
    return int(match.group(1))


# --- Serializing ---

def serialize_document(tree: SceneTree) -> str:
    return _serialize(tree.root)


def _serialize(node: Node | str) -> str:
    if isinstance(node, str):
        return escape(node)

    if node.kind is NodeKind.ROOT:
        attributes = {"xmlns": SVG_NS} if "xmlns" not in node.attributes else {}
        attributes.update(node.attributes)
        attributes["width"] = str(node.width)
        attributes["height"] = str(node.height)
    elif node.kind is NodeKind.PATH:
        attributes = {"d": format_commands(node.commands)}
        attributes.update(node.attributes)
        attributes["stroke"] = format_color(node.stroke)
        attributes["stroke-width"] = f"{node.stroke_width:g}"
    elif node.kind is NodeKind.GROUP:
        attributes = dict(node.attributes)
    else:
        raise TypeError(f"Unknown node kind: {node.kind!r}")

    attr_string = "".join(f" {key}={quoteattr(str(value))}" for key, value in attributes.items())
    inner = "".join(_serialize(child) for child in node.children)
    return f"<{node.tag}{attr_string}>{inner}</{node.tag}>"


# --- Files ---

def load_document(path: str | Path) -> SceneTree:
    text = Path(path).read_text(encoding="utf-8")
    tree = parse_document(text)
    log.info("Loaded %s (%dx%d, format %s)", path, tree.root.width,
             tree.root.height, format_version(tree) or "unknown")
    return tree


def save_document(tree: SceneTree, path: str | Path):
    Path(path).write_text(serialize_document(tree), encoding="utf-8")
    log.info("Saved document to %s", path)
