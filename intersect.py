"""Segment intersection tests used by the eraser."""

import math

import numpy as np

from curve_fit import CubicBezier, Point
from path_codec import LineSegment, Segment

EPS = 1e-9


def _cross(ax, ay, bx, by) -> float:
    return ax * by - ay * bx


def segments_intersect(a0: Point, a1: Point, b0: Point, b1: Point) -> bool:
    """Exact 2D segment test via the parametric determinant.

    Parallel segments only count when they are collinear and overlap."""
    rx, ry = a1[0] - a0[0], a1[1] - a0[1]
    sx, sy = b1[0] - b0[0], b1[1] - b0[1]
    qx, qy = b0[0] - a0[0], b0[1] - a0[1]
    r_len = math.hypot(rx, ry)
    s_len = math.hypot(sx, sy)

    denom = _cross(rx, ry, sx, sy)
    if abs(denom) <= EPS * max(r_len * s_len, EPS):
        return _collinear_overlap(a0, a1, b0, b1)

    t = _cross(qx, qy, sx, sy) / denom
    u = _cross(qx, qy, rx, ry) / denom
    return -EPS <= t <= 1 + EPS and -EPS <= u <= 1 + EPS


def _collinear_overlap(a0: Point, a1: Point, b0: Point, b1: Point) -> bool:
    # Project onto the longer of the two segments
    if math.dist(a0, a1) < math.dist(b0, b1):
        a0, a1, b0, b1 = b0, b1, a0, a1
    rx, ry = a1[0] - a0[0], a1[1] - a0[1]
    rr = rx * rx + ry * ry
    if rr < EPS * EPS:
        # Both segments are points
        return math.dist(a0, b0) <= EPS
    r_len = math.sqrt(rr)
    for p in (b0, b1):
        if abs(_cross(rx, ry, p[0] - a0[0], p[1] - a0[1])) / r_len > EPS * max(r_len, 1.0):
            return False
    t0 = ((b0[0] - a0[0]) * rx + (b0[1] - a0[1]) * ry) / rr
    t1 = ((b1[0] - a0[0]) * rx + (b1[1] - a0[1]) * ry) / rr
    return max(t0, t1) >= -EPS and min(t0, t1) <= 1 + EPS


def _boxes_overlap(points_a, points_b) -> bool:
    a = np.asarray(points_a, dtype=float)
    b = np.asarray(points_b, dtype=float)
    return bool(np.all(a.min(axis=0) <= b.max(axis=0) + EPS)
                and np.all(b.min(axis=0) <= a.max(axis=0) + EPS))


def line_intersects_cubic(p0: Point, p1: Point, curve: CubicBezier) -> bool:
    """Substitute the curve into the line's implicit equation and solve.

    Real roots in [0, 1] are curve parameters on the infinite line; the hit
    only counts when it also falls within the segment's extent."""
    ctrl = curve.control_points()
    if not _boxes_overlap([p0, p1], ctrl):
        return False

    dx, dy = p1[0] - p0[0], p1[1] - p0[1]
    length = math.hypot(dx, dy)
    if length < EPS:
        return False
    # Unit normal so the polynomial measures signed distance from the line
    normal = np.array([-dy, dx]) / length
    offset = -float(normal @ np.asarray(p0, dtype=float))

    c0 = ctrl[0]
    c1 = 3 * (ctrl[1] - ctrl[0])
    c2 = 3 * (ctrl[0] - 2 * ctrl[1] + ctrl[2])
    c3 = -ctrl[0] + 3 * ctrl[1] - 3 * ctrl[2] + ctrl[3]
    coeffs = np.array([normal @ c3, normal @ c2, normal @ c1, normal @ c0 + offset])

    if np.all(np.abs(coeffs) < EPS):
        # The curve lies on the line; fall back to chords along it
        pts = curve.sample(32)
        return any(segments_intersect(p0, p1, a, b) for a, b in zip(pts, pts[1:]))
    if np.all(np.abs(coeffs[:3]) < EPS):
        return False
    # Drop vanishing leading terms so a near-quadratic isn't solved as a cubic
    while abs(coeffs[0]) < EPS:
        coeffs = coeffs[1:]

    for root in np.roots(coeffs):
        if abs(root.imag) > 1e-7:
            continue
        t = float(root.real)
        if t < -EPS or t > 1 + EPS:
            continue
        x, y = curve.point_at(min(max(t, 0.0), 1.0))
        s = ((x - p0[0]) * dx + (y - p0[1]) * dy) / (length * length)
        if -1e-7 <= s <= 1 + 1e-7:
            return True
    return False


def intersects(segment: LineSegment, geometry: list[Segment]) -> bool:
    """True as soon as any primitive in geometry crosses segment."""
    start, end = segment.start, segment.end
    if math.dist(start, end) < EPS:
        return False
    for prim in geometry:
        if isinstance(prim, LineSegment):
            if segments_intersect(start, end, prim.start, prim.end):
                return True
        elif isinstance(prim, CubicBezier):
            if line_intersects_cubic(start, end, prim):
                return True
        else:
            raise TypeError(f"Unknown geometry primitive: {type(prim).__name__}")
    return False
