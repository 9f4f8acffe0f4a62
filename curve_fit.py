"""Cubic Bezier fitting for freehand strokes.

Implements Philip J. Schneider's adaptive fitting ("An Algorithm for
Automatically Fitting Digitized Curves", Graphics Gems, 1990): fit one cubic
per point range by least squares, improve it with Newton-Raphson
reparameterization, and split at the worst point when that is not enough.
"""

import math
from dataclasses import dataclass

import numpy as np


MAX_ITERATIONS = 20
EPSILON = 1e-12

Point = tuple[float, float]


@dataclass(frozen=True)
class CubicBezier:
    p0: Point
    p1: Point
    p2: Point
    p3: Point

    def control_points(self) -> np.ndarray:
        return np.array([self.p0, self.p1, self.p2, self.p3], dtype=float)

    def point_at(self, t: float) -> Point:
        x, y = _bezier(self.control_points(), np.array([t]))[0]
        return (float(x), float(y))

    def sample(self, steps: int = 16) -> list[Point]:
        """Return steps + 1 evenly-parameterized points along the curve."""
        u = np.linspace(0.0, 1.0, max(1, steps) + 1)
        return [(float(x), float(y)) for x, y in _bezier(self.control_points(), u)]


def fit_stroke(points, max_error: float) -> list[CubicBezier]:
    """Fit a sequence of [x, y] points with cubic Beziers.

    Every returned curve deviates at most max_error from the points it covers,
    except in the straight-handle fallbacks used for degenerate ranges.
    Consecutive duplicate points are dropped first; fewer than two distinct
    points give an empty list so the caller can fall back to a polyline.
    """
    pts = _dedupe(points)
    if len(pts) < 2:
        return []

    left_tangent = _unit(pts[1] - pts[0])
    right_tangent = _unit(pts[-2] - pts[-1])
    return _fit_cubic(pts, left_tangent, right_tangent, max_error)


def _dedupe(points) -> np.ndarray:
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    if len(pts) < 2:
        return pts
    keep = np.ones(len(pts), dtype=bool)
    keep[1:] = np.any(pts[1:] != pts[:-1], axis=1)
    return pts[keep]


def _unit(v: np.ndarray) -> np.ndarray:
    n = math.hypot(v[0], v[1])
    if n < EPSILON:
        return np.zeros(2)
    return v / n


def _fit_cubic(pts: np.ndarray, left_tangent: np.ndarray,
               right_tangent: np.ndarray, error: float) -> list[CubicBezier]:
    """Fit pts[lo:hi + 1] ranges off an explicit stack, splitting as needed.

    Zigzag strokes split one point at a time, so the split tree can be as
    deep as the stroke is long."""
    curves: list[CubicBezier] = []
    # Right halves are pushed first so curves come out left to right
    stack = [(0, len(pts) - 1, left_tangent, right_tangent)]
    while stack:
        lo, hi, left, right = stack.pop()
        ctrl, split = _fit_range(pts[lo:hi + 1], left, right, error)
        if ctrl is not None:
            curves.append(_to_curve(ctrl))
            continue
        center = _center_tangent(pts[lo:hi + 1], split)
        stack.append((lo + split, hi, -center, right))
        stack.append((lo, lo + split, left, center))
    return curves


def _fit_range(pts: np.ndarray, left_tangent: np.ndarray, right_tangent: np.ndarray,
               error: float) -> tuple[np.ndarray | None, int]:
    """Return (control points, 0) when one cubic fits, else (None, split index)."""
    if len(pts) == 2:
        # Straight segment, handles a third of the way along each tangent
        dist = float(np.linalg.norm(pts[1] - pts[0])) / 3.0
        ctrl = np.array([pts[0], pts[0] + left_tangent * dist,
                         pts[1] + right_tangent * dist, pts[1]])
        return ctrl, 0

    u = _chord_length_parameterize(pts)
    ctrl, max_err, split = _generate_and_report(pts, u, left_tangent, right_tangent)
    if max_err <= error:
        return ctrl, 0

    prev_err, prev_split = max_err, split
    for _ in range(MAX_ITERATIONS):
        u = _reparameterize(ctrl, pts, u)
        ctrl, max_err, split = _generate_and_report(pts, u, left_tangent, right_tangent)
        if max_err <= error:
            return ctrl, 0
        if split == prev_split and prev_err > 0:
            change = max_err / prev_err
            if 0.9999 < change < 1.0001:
                break
        prev_err, prev_split = max_err, split
    return None, split


def _center_tangent(pts: np.ndarray, split: int) -> np.ndarray:
    center = pts[split - 1] - pts[split + 1]
    if math.hypot(center[0], center[1]) < EPSILON:
        # Points fold back on themselves; use the normal of the incoming chord
        d = pts[split - 1] - pts[split]
        center = np.array([-d[1], d[0]])
    return _unit(center)


def _chord_length_parameterize(pts: np.ndarray) -> np.ndarray:
    dists = np.linalg.norm(np.diff(pts, axis=0), axis=1)
    u = np.concatenate(([0.0], np.cumsum(dists)))
    total = u[-1]
    if total < EPSILON:
        return np.linspace(0.0, 1.0, len(pts))
    return u / total


def _generate_and_report(pts, u, left_tangent, right_tangent):
    ctrl = _generate_bezier(pts, u, left_tangent, right_tangent)
    max_err, split = _compute_max_error(pts, ctrl, u)
    return ctrl, max_err, split


def _generate_bezier(pts: np.ndarray, u: np.ndarray,
                     left_tangent: np.ndarray, right_tangent: np.ndarray) -> np.ndarray:
    """Least-squares solve for the handle lengths of a single cubic."""
    first, last = pts[0], pts[-1]
    b0, b1, b2, b3 = _bernstein(u)

    a1 = np.outer(b1, left_tangent)
    a2 = np.outer(b2, right_tangent)
    tmp = pts - np.outer(b0 + b1, first) - np.outer(b2 + b3, last)

    c00 = float(np.sum(a1 * a1))
    c01 = float(np.sum(a1 * a2))
    c11 = float(np.sum(a2 * a2))
    x0 = float(np.sum(a1 * tmp))
    x1 = float(np.sum(a2 * tmp))

    det = c00 * c11 - c01 * c01
    alpha_l = alpha_r = 0.0
    if abs(det) > EPSILON * max(c00 * c11, 1.0):
        alpha_l = (x0 * c11 - x1 * c01) / det
        alpha_r = (c00 * x1 - c01 * x0) / det

    seg_length = float(np.linalg.norm(last - first))
    epsilon = 1.0e-6 * seg_length
    if (not math.isfinite(alpha_l) or not math.isfinite(alpha_r)
            or alpha_l < epsilon or alpha_r < epsilon):
        # Ill-conditioned or handles flipped: Wu/Barsky straight-handle heuristic
        alpha_l = alpha_r = seg_length / 3.0

    return np.array([first, first + left_tangent * alpha_l,
                     last + right_tangent * alpha_r, last])


def _reparameterize(ctrl: np.ndarray, pts: np.ndarray, u: np.ndarray) -> np.ndarray:
    """One Newton-Raphson step per point towards its nearest curve parameter."""
    q = _bezier(ctrl, u)
    d1 = _bezier_derivative(ctrl, u)
    d2 = _bezier_second_derivative(ctrl, u)
    diff = q - pts
    numerator = np.sum(diff * d1, axis=1)
    denominator = np.sum(d1 * d1, axis=1) + np.sum(diff * d2, axis=1)

    with np.errstate(divide="ignore", invalid="ignore"):
        step = np.where(np.abs(denominator) > EPSILON, numerator / denominator, 0.0)
    new_u = np.clip(u - step, 0.0, 1.0)
    new_u[0], new_u[-1] = 0.0, 1.0
    return new_u


def _compute_max_error(pts: np.ndarray, ctrl: np.ndarray, u: np.ndarray) -> tuple[float, int]:
    """Return (max distance, index) over the interior points of the range."""
    dists = np.linalg.norm(_bezier(ctrl, u) - pts, axis=1)
    interior = dists[1:-1]
    idx = int(np.argmax(interior)) + 1
    return float(interior[idx - 1]), idx


def _bernstein(u: np.ndarray):
    v = 1.0 - u
    return v ** 3, 3 * v * v * u, 3 * v * u * u, u ** 3


def _bezier(ctrl: np.ndarray, u: np.ndarray) -> np.ndarray:
    b0, b1, b2, b3 = _bernstein(u)
    return (np.outer(b0, ctrl[0]) + np.outer(b1, ctrl[1])
            + np.outer(b2, ctrl[2]) + np.outer(b3, ctrl[3]))


def _bezier_derivative(ctrl: np.ndarray, u: np.ndarray) -> np.ndarray:
    v = 1.0 - u
    return (np.outer(3 * v * v, ctrl[1] - ctrl[0])
            + np.outer(6 * v * u, ctrl[2] - ctrl[1])
            + np.outer(3 * u * u, ctrl[3] - ctrl[2]))


def _bezier_second_derivative(ctrl: np.ndarray, u: np.ndarray) -> np.ndarray:
    v = 1.0 - u
    return (np.outer(6 * v, ctrl[2] - 2 * ctrl[1] + ctrl[0])
            + np.outer(6 * u, ctrl[3] - 2 * ctrl[2] + ctrl[1]))


def _to_curve(ctrl: np.ndarray) -> CubicBezier:
    p0, p1, p2, p3 = ((float(x), float(y)) for x, y in ctrl)
    return CubicBezier(p0, p1, p2, p3)
