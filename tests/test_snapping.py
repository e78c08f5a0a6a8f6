"""Tests for boundary snapping, shape regularization and auto-detection."""

import pytest

from propertyquote.domain.geometry.calculations import (
    calculate_centroid,
    calculate_polygon_area,
    haversine_distance,
)
from propertyquote.domain.geometry.models import (
    AdjustmentReport,
    BoundaryDetectionOptions,
    EdgeMap,
    EdgeType,
    ImageryQuality,
    SmoothingLevel,
    SnapMethod,
)
from propertyquote.domain.geometry.snapping import BoundaryLoop, BoundarySnapper

from geo_helpers import ORIGIN, edge, offset, rectangle_lot


def approx_deg(expected):
    return pytest.approx(expected, abs=1e-9)


def edge_map(edges, quality=ImageryQuality.HIGH):
    return EdgeMap(edges=edges, resolution=0.15, quality=quality)


def perimeter_edges(width_m, depth_m, spacing_m=5, strength=0.9):
    """Edge points every spacing_m meters around a rectangle anchored at ORIGIN."""
    points = []
    points += [offset(ORIGIN, x, 0) for x in range(0, width_m, spacing_m)]
    points += [offset(ORIGIN, width_m, y) for y in range(0, depth_m, spacing_m)]
    points += [offset(ORIGIN, x, depth_m) for x in range(width_m, 0, -spacing_m)]
    points += [offset(ORIGIN, 0, y) for y in range(depth_m, 0, -spacing_m)]
    return [edge(p, strength=strength) for p in points]


@pytest.fixture
def snapper():
    return BoundarySnapper()


class TestSnapToBoundaries:
    """Tests for snapping a drawn polygon onto detected edges."""

    def test_vertices_snap_to_strong_nearby_edges(self, snapper):
        lot = rectangle_lot(ORIGIN, 30, 30)
        corners = [offset(ORIGIN, x, y) for x, y in [(-1, -1), (31, -1), (31, 31), (-1, 31)]]
        options = BoundaryDetectionOptions(smoothing_level=SmoothingLevel.NONE, preserve_angles=False)

        result = snapper.snap_to_boundaries(lot, edge_map([edge(c) for c in corners]), options)

        assert len(result.vertices) == 4
        for snapped, corner in zip(result.vertices, corners):
            assert snapped.lat == approx_deg(corner.lat)
            assert snapped.lng == approx_deg(corner.lng)
        assert all(a.edge_type == EdgeType.PROPERTY_LINE for a in result.adjustments)
        assert all(a.distance == pytest.approx(1.41, abs=0.01) for a in result.adjustments)
        assert result.method == SnapMethod.AI_GUIDED
        assert result.confidence == pytest.approx(0.9 * (1 - 1.411 / 20), abs=0.002)

    def test_weak_edges_are_ignored(self, snapper):
        lot = rectangle_lot(ORIGIN, 30, 30)
        edges = [edge(offset(v, 1, 1), strength=0.5) for v in lot]
        options = BoundaryDetectionOptions(smoothing_level=SmoothingLevel.NONE)

        result = snapper.snap_to_boundaries(lot, edge_map(edges), options)

        assert all(a.distance == 0 and a.confidence == 0 for a in result.adjustments)
        assert all(a.snapped_vertex == a.original_vertex for a in result.adjustments)
        assert result.confidence == 0
        assert result.method == SnapMethod.AUTO_SNAP

    def test_edges_outside_radius_are_ignored(self, snapper):
        lot = rectangle_lot(ORIGIN, 30, 30)
        edges = [edge(offset(v, 8, 0)) for v in lot]
        options = BoundaryDetectionOptions(snap_radius=5.0, smoothing_level=SmoothingLevel.NONE)

        result = snapper.snap_to_boundaries(lot, edge_map(edges), options)

        assert all(a.edge_type is None for a in result.adjustments)

    def test_one_adjustment_per_input_vertex(self, snapper):
        lot = rectangle_lot(ORIGIN, 30, 30)
        lot.insert(1, offset(ORIGIN, 15, 0))

        result = snapper.snap_to_boundaries(lot, edge_map([]))

        assert len(result.adjustments) == 5


class TestEdgeSelection:
    """Tests for choosing and applying the best edge."""

    def test_nearby_edges_sorted_by_distance(self, snapper):
        far = edge(offset(ORIGIN, 10, 0))
        mid = edge(offset(ORIGIN, 3, 0))
        near = edge(offset(ORIGIN, 1, 0))

        assert snapper.find_nearby_edges(ORIGIN, [far, mid, near], 5.0) == [near, mid]

    def test_preferred_type_beats_stronger_edge(self, snapper):
        fence = edge(ORIGIN, strength=0.95, type=EdgeType.FENCE)
        line = edge(ORIGIN, strength=0.8, type=EdgeType.PROPERTY_LINE)

        best = snapper.select_best_edge([fence, line], [EdgeType.PROPERTY_LINE, EdgeType.FENCE])

        assert best is line

    def test_strongest_edge_without_preferred_match(self, snapper):
        weak = edge(ORIGIN, strength=0.6, type=EdgeType.BUILDING)
        strong = edge(ORIGIN, strength=0.9, type=EdgeType.VEGETATION)

        assert snapper.select_best_edge([weak, strong], [EdgeType.FENCE]) is strong

    def test_snap_without_preserving_angles_jumps_to_edge(self, snapper):
        target = edge(offset(ORIGIN, 2, 2))
        assert snapper.snap_to_edge(ORIGIN, target, preserve_angles=False) == target.location

    def test_east_west_edge_keeps_vertex_longitude(self, snapper):
        vertex = offset(ORIGIN, 2, 3)
        snapped = snapper.snap_to_edge(vertex, edge(ORIGIN, direction=0), preserve_angles=True)

        assert snapped.lat == approx_deg(ORIGIN.lat)
        assert snapped.lng == approx_deg(vertex.lng)

    def test_edge_direction_rounds_to_nearest_right_angle(self, snapper):
        vertex = offset(ORIGIN, 2, 3)
        snapped = snapper.snap_to_edge(vertex, edge(ORIGIN, direction=80), preserve_angles=True)

        assert snapped.lat == approx_deg(vertex.lat)
        assert snapped.lng == approx_deg(ORIGIN.lng)


class TestSmoothing:
    """Tests for neighbour smoothing and edge alignment."""

    def test_no_smoothing_returns_input(self, snapper):
        lot = rectangle_lot(ORIGIN, 30, 30)
        assert snapper.smooth_along_boundaries(lot, [], SmoothingLevel.NONE) == lot

    def test_light_smoothing_averages_neighbours(self, snapper):
        lot = rectangle_lot(ORIGIN, 30, 30)
        smoothed = snapper.smooth_along_boundaries(lot, [], SmoothingLevel.LIGHT)

        prev, curr, nxt = lot[3], lot[0], lot[1]
        assert smoothed[0].lat == pytest.approx((prev.lat + 2 * curr.lat + nxt.lat) / 4)
        assert smoothed[0].lng == pytest.approx((prev.lng + 2 * curr.lng + nxt.lng) / 4)

    def test_edges_between_neighbours(self, snapper):
        a = ORIGIN
        b = offset(ORIGIN, 20, 0)
        on_line = edge(offset(ORIGIN, 10, 1))
        off_line = edge(offset(ORIGIN, 10, 15))

        assert snapper.find_edges_between(a, b, [on_line, off_line]) == [on_line]

    def test_align_to_edges_is_strength_weighted(self, snapper):
        west = edge(ORIGIN, strength=1.0)
        east = edge(offset(ORIGIN, 40, 0), strength=3.0)

        aligned = snapper.align_to_edges(offset(ORIGIN, 0, 10), [west, east])

        assert aligned.lng == pytest.approx(ORIGIN.lng + (east.location.lng - ORIGIN.lng) * 0.75)
        assert aligned.lat == pytest.approx(ORIGIN.lat)

    def test_align_with_zero_strength_keeps_vertex(self, snapper):
        vertex = offset(ORIGIN, 5, 5)
        assert snapper.align_to_edges(vertex, [edge(ORIGIN, strength=0.0)]) == vertex


class TestShapeValidation:
    """Tests for rectangle enforcement and collinear cleanup."""

    def test_square_is_rectangular(self, snapper):
        lot = rectangle_lot(ORIGIN, 30, 20)
        assert snapper.check_rectangular(lot)
        assert snapper.calculate_angles(lot) == pytest.approx([90, 90, 90, 90], abs=1e-6)

    def test_rhombus_is_not_rectangular(self, snapper):
        rhombus = [ORIGIN, offset(ORIGIN, 30, 0), offset(ORIGIN, 45, 26), offset(ORIGIN, 15, 26)]
        assert not snapper.check_rectangular(rhombus)

    def test_enforce_right_angles_on_skewed_quad(self, snapper):
        quad = [ORIGIN, offset(ORIGIN, 40, 0), offset(ORIGIN, 41, 30), offset(ORIGIN, -1, 29)]

        rectangle = snapper.enforce_right_angles(quad)

        assert snapper.calculate_angles(rectangle) == pytest.approx([90, 90, 90, 90], abs=1e-6)
        before = calculate_centroid(quad)
        after = calculate_centroid(rectangle)
        assert after.lat == approx_deg(before.lat)
        assert after.lng == approx_deg(before.lng)
        for original, squared in zip(quad, rectangle):
            assert haversine_distance(original, squared) < 1.5

    def test_collinear_vertex_removed(self, snapper):
        lot = rectangle_lot(ORIGIN, 30, 30)
        lot.insert(1, offset(ORIGIN, 15, 0))

        assert snapper.remove_collinear_points(lot) == rectangle_lot(ORIGIN, 30, 30)

    def test_fully_collinear_input_is_kept(self, snapper):
        line = [ORIGIN, offset(ORIGIN, 10, 0), offset(ORIGIN, 20, 0)]
        assert snapper.remove_collinear_points(line) == line

    def test_five_vertex_rectangle_becomes_four(self, snapper):
        lot = rectangle_lot(ORIGIN, 30, 30)
        lot.insert(1, offset(ORIGIN, 15, 0))

        assert len(snapper.validate_property_shape(lot)) == 4

    def test_closing_vertex_is_ignored(self, snapper):
        lot = rectangle_lot(ORIGIN, 30, 30)
        assert len(snapper.validate_property_shape(lot + [lot[0]])) == 4

    def test_too_few_vertices_fall_back_to_default_square(self, snapper):
        fallback = snapper.validate_property_shape([ORIGIN, offset(ORIGIN, 5, 0)])

        assert len(fallback) == 4
        assert calculate_centroid(fallback).lat == approx_deg(ORIGIN.lat)

    def test_empty_input(self, snapper):
        assert snapper.validate_property_shape([]) == []


class TestConfidence:
    """Tests for the overall snap confidence."""

    @staticmethod
    def adjustments(confidence, distance, count=4):
        return [
            AdjustmentReport(
                original_vertex=ORIGIN, snapped_vertex=ORIGIN, distance=distance, confidence=confidence
            )
            for _ in range(count)
        ]

    def test_high_quality_imagery(self, snapper):
        result = snapper.calculate_overall_confidence(self.adjustments(0.9, 0), edge_map([]))
        assert result == pytest.approx(0.9)

    def test_low_quality_imagery(self, snapper):
        result = snapper.calculate_overall_confidence(
            self.adjustments(0.9, 0), edge_map([], ImageryQuality.LOW)
        )
        assert result == pytest.approx(0.63)

    def test_distance_penalty(self, snapper):
        assert snapper.calculate_overall_confidence(
            self.adjustments(0.9, 10), edge_map([])
        ) == pytest.approx(0.45)
        assert snapper.calculate_overall_confidence(self.adjustments(0.9, 25), edge_map([])) == 0

    def test_no_adjustments(self, snapper):
        assert snapper.calculate_overall_confidence([], edge_map([])) == 0


class TestAutoDetect:
    """Tests for detecting a lot from edges alone."""

    def test_no_edges_returns_default_square(self, snapper):
        result = snapper.auto_detect_boundaries(ORIGIN, edge_map([]), search_radius=50)

        assert result.method == SnapMethod.MANUAL
        assert result.confidence == 0.5
        assert len(result.vertices) == 4
        assert calculate_polygon_area(result.vertices) == pytest.approx(
            10000 * 10.7639, rel=1e-3
        )

    def test_detects_rectangular_lot_from_perimeter_edges(self, snapper):
        edges = perimeter_edges(40, 30)
        center = offset(ORIGIN, 20, 15)

        result = snapper.auto_detect_boundaries(center, edge_map(edges))

        assert result.method == SnapMethod.AI_GUIDED
        assert result.confidence == pytest.approx(0.9)
        assert len(result.vertices) == 4
        assert calculate_polygon_area(result.vertices) == pytest.approx(1200 * 10.7639, rel=1e-3)

    def test_groups_split_by_distance(self, snapper):
        near = [edge(offset(ORIGIN, x, 0)) for x in (0, 5, 10)]
        far = [edge(offset(ORIGIN, 200 + x, 0)) for x in (0, 5)]

        groups = snapper.group_edges_by_proximity(near + far, 10.0)

        assert sorted(len(g) for g in groups) == [2, 3]

    def test_small_groups_are_not_loops(self, snapper):
        edges = [edge(offset(ORIGIN, x, 0)) for x in (0, 5, 10)]
        assert snapper.find_boundary_loops(edges) == []

    def test_greedy_ordering_follows_nearest_neighbour(self, snapper):
        a, b, c, d = (edge(offset(ORIGIN, x, 0)) for x in (0, 30, 10, 20))
        assert snapper.order_edges_into_polygon([a, b, c, d]) == [a, c, d, b]

    def test_score_rewards_plausible_rectangles(self, snapper):
        loop = BoundaryLoop(vertices=rectangle_lot(ORIGIN, 40, 30), confidence=0.9)
        center = calculate_centroid(loop.vertices)

        # 10 * confidence + proximity + 2 per right angle + plausible area bonus
        assert snapper.score_boundary(loop, center) == pytest.approx(9 + 10 + 8 + 5, abs=0.01)

    def test_best_boundary_prefers_nearby_loop(self, snapper):
        near = BoundaryLoop(vertices=rectangle_lot(ORIGIN, 40, 30), confidence=0.8)
        far = BoundaryLoop(vertices=rectangle_lot(offset(ORIGIN, 500, 0), 40, 30), confidence=0.8)

        assert snapper.select_best_boundary([far, near], offset(ORIGIN, 20, 15)) is near

    def test_all_zero_scores_keep_first_loop(self, snapper):
        triangle = [offset(ORIGIN, 1000, 0), offset(ORIGIN, 1010, 0), offset(ORIGIN, 1005, 8)]
        first = BoundaryLoop(vertices=triangle, confidence=0.0)
        second = BoundaryLoop(vertices=list(triangle), confidence=0.0)

        assert snapper.select_best_boundary([first, second], ORIGIN) is first
