"""Tests for quadrilateral geometry."""

from __future__ import annotations

import math

import pytest

from knitgrid.image_processing.geometry import (
    blend,
    cell_at,
    cell_polygon,
    distance,
    find_handle,
    grid_lines,
    lerp,
    map_cell_center,
    quad_corners,
    row_polygon,
    to_pixels,
)
from knitgrid.models import GridSpec, Point


# ---------------------------------------------------------------------------
# lerp / blend / distance
# ---------------------------------------------------------------------------

class TestLerp:
    def test_endpoints(self):
        a, b = Point(1.5, -2.0), Point(7.25, 3.0)
        assert lerp(a, b, 0) == a
        assert lerp(a, b, 1) == b

    def test_midpoint(self):
        assert lerp(Point(0, 0), Point(10, 10), 0.5) == Point(5, 5)

    def test_extrapolates(self):
        assert lerp(Point(0, 0), Point(10, 0), 2) == Point(20, 0)
        assert lerp(Point(0, 0), Point(10, 0), -0.5) == Point(-5, 0)


class TestBlend:
    def test_corners_exact(self, skewed_quad):
        p00, p10, p01, p11 = quad_corners(skewed_quad)
        assert blend(0, 0, p00, p10, p01, p11) == p00
        assert blend(1, 0, p00, p10, p01, p11) == p10
        assert blend(0, 1, p00, p10, p01, p11) == p01
        assert blend(1, 1, p00, p10, p01, p11) == p11

    def test_unit_square_center(self, unit_square):
        assert blend(0.5, 0.5, *quad_corners(unit_square)) == Point(0.5, 0.5)

    def test_edges_are_linear(self, skewed_quad):
        p00, p10, p01, p11 = quad_corners(skewed_quad)
        mid_top = blend(0.5, 0, p00, p10, p01, p11)
        assert mid_top.x == pytest.approx((p00.x + p10.x) / 2)
        assert mid_top.y == pytest.approx((p00.y + p10.y) / 2)


class TestDistance:
    def test_three_four_five(self):
        assert distance(Point(0, 0), Point(3, 4)) == 5

    def test_same_point(self):
        assert distance(Point(10, 20), Point(10, 20)) == 0


# ---------------------------------------------------------------------------
# Grid geometry
# ---------------------------------------------------------------------------

class TestGridGeometry:
    def test_quad_corners_requires_four_points(self, unit_square):
        assert quad_corners(unit_square[:3]) is None
        assert quad_corners(None) is None

    def test_cell_center_mapping(self, unit_square):
        grid = GridSpec(rows=10, cols=10)
        center = map_cell_center(3, 2, grid, unit_square)
        assert center.x == pytest.approx(0.25)
        assert center.y == pytest.approx(0.35)

    def test_cell_center_degenerate(self, unit_square):
        assert map_cell_center(0, 0, GridSpec(2, 2), unit_square[:2]) is None

    def test_to_pixels(self):
        assert to_pixels(Point(0.5, 0.25), 200, 100) == Point(100, 25)

    def test_grid_lines_count_and_order(self, unit_square):
        lines = grid_lines(unit_square, GridSpec(rows=3, cols=4))
        assert len(lines) == 2 + 3
        # first horizontal line at one third of the height
        a, b = lines[0]
        assert a.y == pytest.approx(1 / 3)
        assert b.y == pytest.approx(1 / 3)
        # first vertical line at a quarter of the width
        a, b = lines[2]
        assert a.x == pytest.approx(0.25)
        assert b.x == pytest.approx(0.25)

    def test_grid_lines_degenerate(self, unit_square):
        assert grid_lines(unit_square[:3], GridSpec(3, 3)) == []
        assert grid_lines(unit_square, GridSpec(0, 3)) == []

    def test_single_cell_has_no_interior_lines(self, unit_square):
        assert grid_lines(unit_square, GridSpec(1, 1)) == []

    def test_cell_polygon(self, unit_square):
        polygon = cell_polygon(1, 0, GridSpec(2, 2), unit_square)
        assert polygon == [Point(0, 0.5), Point(0.5, 0.5), Point(0.5, 1), Point(0, 1)]

    def test_row_polygon(self, unit_square):
        polygon = row_polygon(0, GridSpec(2, 5), unit_square)
        assert polygon == [Point(0, 0), Point(1, 0), Point(1, 0.5), Point(0, 0.5)]


# ---------------------------------------------------------------------------
# Hit testing
# ---------------------------------------------------------------------------

class TestHitTesting:
    def test_find_handle_nearest(self, unit_square):
        assert find_handle(unit_square, Point(195, 5), 200, 100) == 1
        assert find_handle(unit_square, Point(3, 97), 200, 100) == 3

    def test_find_handle_out_of_range(self, unit_square):
        assert find_handle(unit_square, Point(100, 50), 200, 100) is None
        assert find_handle([], Point(0, 0), 200, 100) is None

    def test_cell_at_unit_square(self, unit_square):
        grid = GridSpec(rows=4, cols=4)
        assert cell_at(Point(0.6, 0.3), unit_square, grid) == 6

    def test_cell_at_inverts_skewed_mapping(self, skewed_quad):
        grid = GridSpec(rows=5, cols=7)
        for row in range(grid.rows):
            for col in range(grid.cols):
                center = map_cell_center(row, col, grid, skewed_quad)
                assert cell_at(center, skewed_quad, grid) == grid.index(row, col)

    def test_cell_at_outside(self, skewed_quad):
        assert cell_at(Point(0.99, 0.01), skewed_quad, GridSpec(3, 3)) is None

    def test_cell_at_degenerate(self, unit_square):
        assert cell_at(Point(0.5, 0.5), unit_square[:3], GridSpec(3, 3)) is None


def test_corners_exact_for_many_quads():
    quads = [
        (Point(0.1, 0.2), Point(0.7, 0.1), Point(0.3, 0.9), Point(0.8, 0.8)),
        (Point(1 / 3, 2 / 7), Point(math.pi / 4, 0.1), Point(0.0, 1.0), Point(0.999, 0.333)),
    ]
    for p00, p10, p01, p11 in quads:
        assert blend(0, 0, p00, p10, p01, p11) == p00
        assert blend(1, 0, p00, p10, p01, p11) == p10
        assert blend(0, 1, p00, p10, p01, p11) == p01
        assert blend(1, 1, p00, p10, p01, p11) == p11
