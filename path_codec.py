"""Path data codec: Bezier segments <-> SVG path strings <-> hit-test geometry.

Only the move-to, line-to and cubic-curve commands (M/L/C and their relative
forms) are part of the format; anything else is a FormatError.
"""

import logging
import re
from dataclasses import dataclass

import numpy as np

from curve_fit import CubicBezier, Point, fit_stroke
from errors import FormatError

log = logging.getLogger(__name__)

DECIMALS = 1
ARITY = {"M": 2, "L": 2, "C": 6}

_TOKEN_RE = re.compile(r"""
    (?P<cmd>[A-Za-z])
  | (?P<num>[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)
  | (?P<sep>[\s,]+)
  | (?P<bad>.)
""", re.VERBOSE | re.DOTALL)


@dataclass(frozen=True)
class PathCommand:
    """One command with exactly one argument group, e.g. C with six numbers."""
    op: str
    args: tuple[float, ...]

    @property
    def relative(self) -> bool:
        return self.op.islower()


@dataclass(frozen=True)
class LineSegment:
    start: Point
    end: Point


Segment = LineSegment | CubicBezier


def format_number(value: float, decimals: int = DECIMALS) -> str:
    return f"{value:.{decimals}f}"


# --- Encoding ---

def encode_path(segments: list[CubicBezier]) -> str:
    """Move to the first curve's start, then one C command per curve."""
    if not segments:
        return ""
    x, y = segments[0].p0
    parts = [f"M {format_number(x)} {format_number(y)}"]
    for seg in segments:
        parts.append(
            f"C {format_number(seg.p1[0])} {format_number(seg.p1[1])}, "
            f"{format_number(seg.p2[0])} {format_number(seg.p2[1])}, "
            f"{format_number(seg.p3[0])} {format_number(seg.p3[1])}"
        )
    return " ".join(parts)


def encode_polyline(points) -> str:
    """Fallback encoding: M to the first point, L through the rest."""
    if len(points) == 0:
        return ""
    parts = []
    for i, (x, y) in enumerate(points):
        op = "M" if i == 0 else "L"
        parts.append(f"{op} {format_number(x)} {format_number(y)}")
    return " ".join(parts)


def encode_stroke(points, max_error: float) -> str:
    """Fit a captured stroke and encode it, falling back to a polyline."""
    if len(points) < 2:
        return encode_polyline(points)
    try:
        segments = fit_stroke(points, max_error)
    except (ArithmeticError, ValueError, RecursionError, np.linalg.LinAlgError) as e:
        log.warning("Curve fitting failed for %d points, storing polyline: %s",
                    len(points), e)
        segments = []
    if not segments:
        return encode_polyline(points)
    return encode_path(segments)


# --- Parsing ---

def parse_commands(d: str) -> list[PathCommand]:
    """Parse path data into one PathCommand per argument group.

    Implicit repetition is expanded ("M 0 0 10 10" becomes M then L), so the
    result always holds explicit commands."""
    commands: list[PathCommand] = []
    op = None
    args: list[float] = []
    groups = 0

    def finish_command():
        if op is not None and (args or groups == 0):
            raise FormatError(f"Command {op!r} has a wrong number of arguments")

    for match in _TOKEN_RE.finditer(d):
        kind = match.lastgroup
        token = match.group()
        if kind == "sep":
            continue
        if kind == "bad":
            raise FormatError(f"Unexpected character {token!r} in path data")
        if kind == "cmd":
            if token.upper() not in ARITY:
                raise FormatError(f"Unsupported path command {token!r}")
            if op is None and token.upper() != "M":
                raise FormatError("Path data must start with a move-to")
            finish_command()
            op, args, groups = token, [], 0
            continue

        if op is None:
            raise FormatError("Path data must start with a command")
        args.append(float(token))
        if len(args) == ARITY[op.upper()]:
            commands.append(PathCommand(op, tuple(args)))
            args = []
            groups += 1
            # Extra coordinate pairs after a move-to are implicit line-tos
            if op in "Mm":
                op = "L" if op == "M" else "l"
                groups = 1

    finish_command()
    return commands


def format_commands(commands: list[PathCommand]) -> str:
    parts = []
    for cmd in commands:
        nums = [repr(float(a)) for a in cmd.args]
        if cmd.op.upper() == "C":
            parts.append(f"{cmd.op} {nums[0]} {nums[1]}, {nums[2]} {nums[3]}, {nums[4]} {nums[5]}")
        else:
            parts.append(f"{cmd.op} {' '.join(nums)}")
    return " ".join(parts)


# --- Geometry ---

def to_geometry(commands: list[PathCommand]) -> list[Segment]:
    """Resolve commands into absolute line and cubic segments.

    A move-to that is not followed by any drawing command becomes a
    zero-length line so that single dots stay hit-testable."""
    segments: list[Segment] = []
    cx, cy = 0.0, 0.0
    dangling_move = False

    for cmd in commands:
        ox, oy = (cx, cy) if cmd.relative else (0.0, 0.0)
        a = cmd.args
        kind = cmd.op.upper()
        if kind == "M":
            if dangling_move:
                segments.append(LineSegment((cx, cy), (cx, cy)))
            cx, cy = ox + a[0], oy + a[1]
            dangling_move = True
        elif kind == "L":
            end = (ox + a[0], oy + a[1])
            segments.append(LineSegment((cx, cy), end))
            cx, cy = end
            dangling_move = False
        elif kind == "C":
            end = (ox + a[4], oy + a[5])
            segments.append(CubicBezier((cx, cy), (ox + a[0], oy + a[1]),
                                        (ox + a[2], oy + a[3]), end))
            cx, cy = end
            dangling_move = False
        else:
            raise FormatError(f"Unsupported path command {cmd.op!r}")

    if dangling_move:
        segments.append(LineSegment((cx, cy), (cx, cy)))
    return segments


def decode_path(d: str) -> list[Segment]:
    return to_geometry(parse_commands(d))


def flatten(geometry: list[Segment], steps: int = 16) -> list[list[Point]]:
    """Approximate geometry as polylines, one per connected run."""
    runs: list[list[Point]] = []
    for seg in geometry:
        if isinstance(seg, LineSegment):
            pts = [seg.start, seg.end]
        else:
            pts = seg.sample(steps)
        if runs and runs[-1][-1] == pts[0]:
            runs[-1].extend(pts[1:])
        else:
            runs.append(list(pts))
    return runs
