"""Quadrilateral mapping helpers for grid geometry.

AIDEV-NOTE: blend() is the single source of truth for turning a logical
(u, v) grid position into a point inside the user's crop quadrilateral.
The mapping is bilinear, not projective. Quadrilaterals are stored in the
order TL, TR, BR, BL, so callers unpack points[0], points[1], points[3],
points[2] when calling blend().
"""

import math
from typing import TYPE_CHECKING, Sequence

from knitgrid.models import HANDLE_HIT_RADIUS, Point

if TYPE_CHECKING:
    from knitgrid.models import GridSpec


def lerp(a: Point, b: Point, t: float) -> Point:
    """Linear interpolation from a (t=0) to b (t=1); extrapolates outside [0, 1]."""
    if t == 0:
        return a
    if t == 1:
        return b
    return Point(a.x + (b.x - a.x) * t, a.y + (b.y - a.y) * t)


def blend(u: float, v: float, p00: Point, p10: Point, p01: Point, p11: Point) -> Point:
    """Bilinear interpolation inside a quadrilateral.

    Interpolates the top edge (p00 -> p10) and the bottom edge (p01 -> p11)
    at u, then interpolates between those two points at v.

    Args:
        u: Horizontal position, 0 = left edge, 1 = right edge
        v: Vertical position, 0 = top edge, 1 = bottom edge
        p00: Top-left corner
        p10: Top-right corner
        p01: Bottom-left corner
        p11: Bottom-right corner

    Returns:
        Point at (u, v) inside the quadrilateral
    """
    top = lerp(p00, p10, u)
    bottom = lerp(p01, p11, u)
    return lerp(top, bottom, v)


def distance(p1: Point, p2: Point) -> float:
    """Euclidean distance between two points."""
    return math.hypot(p1.x - p2.x, p1.y - p2.y)


def quad_corners(points: "Sequence[Point] | None") -> "tuple[Point, Point, Point, Point] | None":
    """Return (p00, p10, p01, p11) in blend() order, or None unless exactly 4 points."""
    if points is None or len(points) != 4:
        return None
    return points[0], points[1], points[3], points[2]


def cell_center(row: int, col: int, grid: "GridSpec") -> "tuple[float, float]":
    """Normalized (u, v) of a cell center."""
    return (col + 0.5) / grid.cols, (row + 0.5) / grid.rows


def map_cell_center(
    row: int, col: int, grid: "GridSpec", points: "Sequence[Point] | None"
) -> "Point | None":
    """Normalized image position of a cell center inside the quadrilateral."""
    corners = quad_corners(points)
    if corners is None or not grid.is_valid:
        return None
    u, v = cell_center(row, col, grid)
    return blend(u, v, *corners)


def to_pixels(point: Point, width: float, height: float) -> Point:
    """Scale a normalized point to pixel space."""
    return Point(point.x * width, point.y * height)


def grid_lines(
    points: "Sequence[Point] | None", grid: "GridSpec"
) -> "list[tuple[Point, Point]]":
    """Interior grid line segments in normalized space.

    Horizontal lines come first (top to bottom), then vertical lines
    (left to right). Outer edges are the quad outline and are not included.
    """
    if points is None or len(points) != 4 or not grid.is_valid:
        return []

    tl, tr, br, bl = points
    lines = []
    for i in range(1, grid.rows):
        t = i / grid.rows
        lines.append((lerp(tl, bl, t), lerp(tr, br, t)))
    for j in range(1, grid.cols):
        t = j / grid.cols
        lines.append((lerp(tl, tr, t), lerp(bl, br, t)))
    return lines


def cell_polygon(
    row: int, col: int, grid: "GridSpec", points: "Sequence[Point] | None"
) -> "list[Point]":
    """The four normalized corners of a cell (TL, TR, BR, BL)."""
    corners = quad_corners(points)
    if corners is None or not grid.is_valid:
        return []
    u0, u1 = col / grid.cols, (col + 1) / grid.cols
    v0, v1 = row / grid.rows, (row + 1) / grid.rows
    return [
        blend(u0, v0, *corners),
        blend(u1, v0, *corners),
        blend(u1, v1, *corners),
        blend(u0, v1, *corners),
    ]


def row_polygon(
    row: int, grid: "GridSpec", points: "Sequence[Point] | None"
) -> "list[Point]":
    """The four normalized corners spanning a whole grid row."""
    corners = quad_corners(points)
    if corners is None or not grid.is_valid:
        return []
    v0, v1 = row / grid.rows, (row + 1) / grid.rows
    return [
        blend(0.0, v0, *corners),
        blend(1.0, v0, *corners),
        blend(1.0, v1, *corners),
        blend(0.0, v1, *corners),
    ]


def find_handle(
    points: "Sequence[Point] | None",
    pos: Point,
    width: float,
    height: float,
    radius: float = HANDLE_HIT_RADIUS,
) -> "int | None":
    """Index of the crop corner nearest to a pixel position, if within radius.

    Args:
        points: Normalized crop points
        pos: Pointer position in pixels
        width: Canvas width in pixels
        height: Canvas height in pixels
        radius: Pick tolerance in pixels

    Returns:
        Index into points, or None when no handle is close enough
    """
    if not points:
        return None

    best_index = None
    best_dist = radius
    for i, p in enumerate(points):
        d = distance(to_pixels(p, width, height), pos)
        if d <= best_dist:
            best_index = i
            best_dist = d
    return best_index


def cell_at(
    point: Point,
    points: "Sequence[Point] | None",
    grid: "GridSpec",
    iterations: int = 20,
) -> "int | None":
    """Cell index under a normalized point, or None when outside the quad.

    AIDEV-NOTE: Inverts blend() with Newton iteration starting from the quad
    center. Converges in a few steps for any convex quadrilateral.
    """
    corners = quad_corners(points)
    if corners is None or not grid.is_valid:
        return None
    p00, p10, p01, p11 = corners

    u = v = 0.5
    for _ in range(iterations):
        guess = blend(u, v, p00, p10, p01, p11)
        fx, fy = guess.x - point.x, guess.y - point.y
        if abs(fx) < 1e-12 and abs(fy) < 1e-12:
            break

        # Partial derivatives of blend() with respect to u and v
        du_x = (1 - v) * (p10.x - p00.x) + v * (p11.x - p01.x)
        du_y = (1 - v) * (p10.y - p00.y) + v * (p11.y - p01.y)
        dv_x = (1 - u) * (p01.x - p00.x) + u * (p11.x - p10.x)
        dv_y = (1 - u) * (p01.y - p00.y) + u * (p11.y - p10.y)

        det = du_x * dv_y - dv_x * du_y
        if abs(det) < 1e-12:
            return None
        u -= (fx * dv_y - fy * dv_x) / det
        v -= (fy * du_x - fx * du_y) / det

    eps = 1e-9
    if not (-eps <= u <= 1 + eps and -eps <= v <= 1 + eps):
        return None

    col = min(grid.cols - 1, max(0, int(u * grid.cols)))
    row = min(grid.rows - 1, max(0, int(v * grid.rows)))
    return grid.index(row, col)
