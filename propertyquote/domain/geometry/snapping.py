"""
Boundary snapping and auto-detection.

Refines a hand-drawn lot polygon against an EdgeMap produced by an imagery
collaborator:
1. snap each vertex to the best nearby edge (haversine radius)
2. smooth the ring, pulling vertices onto edges found between their neighbours
3. regularize the shape (near-rectangles become exact rectangles,
   collinear vertices are dropped)

Auto-detection clusters the edges themselves into candidate loops and picks
the most plausible one. Loop ordering is a greedy nearest-neighbour chain,
not an optimal tour.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .calculations import (
    LocalProjection,
    calculate_centroid,
    calculate_polygon_area_sq_meters,
    create_bounds,
    haversine_distance,
    simplify_polygon,
)
from .models import (
    AdjustmentReport,
    BoundaryDetectionOptions,
    Coordinate,
    EdgeMap,
    EdgePoint,
    EdgeType,
    ImageryQuality,
    Polygon,
    SmoothingLevel,
    SnapMethod,
    SnappedPolygon,
)

logger = logging.getLogger(__name__)

SMOOTHING_PASSES = {
    SmoothingLevel.NONE: 0,
    SmoothingLevel.LIGHT: 1,
    SmoothingLevel.MODERATE: 2,
    SmoothingLevel.HEAVY: 3,
}

QUALITY_MULTIPLIERS = {
    ImageryQuality.HIGH: 1.0,
    ImageryQuality.MEDIUM: 0.9,
    ImageryQuality.LOW: 0.7,
}

RIGHT_ANGLE_TOLERANCE_DEGREES = 15.0
# sin of the turn angle below which a vertex counts as collinear (~1 degree)
COLLINEAR_SIN_TOLERANCE = 0.0175
# An edge lies "between" two vertices when the detour through it is under 20%
BETWEEN_DETOUR_RATIO = 1.2
DISTANCE_PENALTY_METERS = 20.0
AI_GUIDED_CONFIDENCE = 0.8

CLUSTER_DISTANCE_METERS = 10.0
MIN_LOOP_EDGES = 4
LOOP_SIMPLIFY_TOLERANCE_METERS = 2.0
PLAUSIBLE_LOT_AREA_SQ_M = (1000.0, 10000.0)
DEFAULT_FALLBACK_CONFIDENCE = 0.5
# Half side of the placeholder square used when too few vertices survive (~0.0003 degrees)
DEFAULT_HALF_SIZE_METERS = 33.4


@dataclass
class BoundaryLoop:
    vertices: Polygon
    confidence: float


def _default_polygon(center: Coordinate, half_size_meters: float = DEFAULT_HALF_SIZE_METERS) -> Polygon:
    bounds = create_bounds(center, half_size_meters)
    return [
        Coordinate(lat=bounds.south, lng=bounds.west),
        Coordinate(lat=bounds.south, lng=bounds.east),
        Coordinate(lat=bounds.north, lng=bounds.east),
        Coordinate(lat=bounds.north, lng=bounds.west),
    ]


def _open_ring(vertices: Sequence[Coordinate]) -> Polygon:
    """Drop an explicit closing vertex; rings are implicitly closed."""
    ring = list(vertices)
    if len(ring) > 3 and ring[0] == ring[-1]:
        ring.pop()
    return ring


class BoundarySnapper:
    """Snaps, smooths and regularizes lot polygons against detected edges."""

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def snap_to_boundaries(
        self,
        manual_polygon: Sequence[Coordinate],
        edge_map: EdgeMap,
        options: Optional[BoundaryDetectionOptions] = None,
    ) -> SnappedPolygon:
        opts = options or BoundaryDetectionOptions()
        adjustments: List[AdjustmentReport] = []
        snapped: Polygon = []

        for vertex in manual_polygon:
            nearby = self.find_nearby_edges(vertex, edge_map.edges, opts.snap_radius)
            best = self.select_best_edge(nearby, opts.preferred_edge_types) if nearby else None

            if best is not None and best.strength >= opts.confidence_threshold:
                new_vertex = self.snap_to_edge(vertex, best, opts.preserve_angles)
                snapped.append(new_vertex)
                adjustments.append(
                    AdjustmentReport(
                        original_vertex=vertex,
                        snapped_vertex=new_vertex,
                        distance=haversine_distance(vertex, new_vertex),
                        confidence=best.strength,
                        edge_type=best.type,
                    )
                )
            else:
                snapped.append(vertex)
                adjustments.append(
                    AdjustmentReport(
                        original_vertex=vertex, snapped_vertex=vertex, distance=0.0, confidence=0.0
                    )
                )

        smoothed = self.smooth_along_boundaries(snapped, edge_map.edges, opts.smoothing_level)
        validated = self.validate_property_shape(smoothed)
        confidence = self.calculate_overall_confidence(adjustments, edge_map)

        snapped_count = sum(1 for a in adjustments if a.edge_type is not None)
        logger.info(
            f"Snapped {snapped_count}/{len(adjustments)} vertices, confidence={confidence:.2f}"
        )

        return SnappedPolygon(
            vertices=validated,
            confidence=confidence,
            adjustments=adjustments,
            method=SnapMethod.AI_GUIDED if confidence > AI_GUIDED_CONFIDENCE else SnapMethod.AUTO_SNAP,
        )

    def auto_detect_boundaries(
        self, center: Coordinate, edge_map: EdgeMap, search_radius: float = 50.0
    ) -> SnappedPolygon:
        loops = self.find_boundary_loops(edge_map.edges)

        if not loops:
            logger.info("No closed boundary loop found - falling back to default square")
            return SnappedPolygon(
                vertices=_default_polygon(center, search_radius),
                confidence=DEFAULT_FALLBACK_CONFIDENCE,
                adjustments=[],
                method=SnapMethod.MANUAL,
            )

        best = self.select_best_boundary(loops, center)
        simplified = simplify_polygon(best.vertices, LOOP_SIMPLIFY_TOLERANCE_METERS)
        validated = self.validate_property_shape(simplified)

        return SnappedPolygon(
            vertices=validated,
            confidence=best.confidence,
            adjustments=[],
            method=SnapMethod.AI_GUIDED,
        )

    # ------------------------------------------------------------------
    # Vertex snapping
    # ------------------------------------------------------------------

    def find_nearby_edges(
        self, vertex: Coordinate, edges: Sequence[EdgePoint], radius: float
    ) -> List[EdgePoint]:
        """Edges within radius meters, closest first."""
        with_distance = [(haversine_distance(vertex, e.location), e) for e in edges]
        nearby = [(d, e) for d, e in with_distance if d <= radius]
        nearby.sort(key=lambda pair: pair[0])
        return [e for _, e in nearby]

    def select_best_edge(
        self, edges: Sequence[EdgePoint], preferred_types: Sequence[EdgeType]
    ) -> EdgePoint:
        """Strongest edge of the first preferred type present, else strongest overall."""
        for edge_type in preferred_types:
            candidates = [e for e in edges if e.type == edge_type]
            if candidates:
                return max(candidates, key=lambda e: e.strength)
        return max(edges, key=lambda e: e.strength)

    def snap_to_edge(self, vertex: Coordinate, edge: EdgePoint, preserve_angles: bool) -> Coordinate:
        if not preserve_angles:
            return edge.location

        # Slide along the edge's axis (rounded to 90 degrees) so corners stay square
        axis = math.radians(round(edge.direction / 90) * 90)
        ux, uy = math.cos(axis), math.sin(axis)

        projection = LocalProjection(edge.location)
        dx, dy = projection.to_meters(vertex)
        along = dx * ux + dy * uy
        return projection.to_coordinate(along * ux, along * uy)

    # ------------------------------------------------------------------
    # Smoothing
    # ------------------------------------------------------------------

    def smooth_along_boundaries(
        self, vertices: Sequence[Coordinate], edges: Sequence[EdgePoint], level: SmoothingLevel
    ) -> Polygon:
        current = list(vertices)
        n = len(current)
        if n < 3:
            return current

        for _ in range(SMOOTHING_PASSES[SmoothingLevel(level)]):
            smoothed: Polygon = []
            for i in range(n):
                prev = current[(i - 1) % n]
                curr = current[i]
                nxt = current[(i + 1) % n]

                between = self.find_edges_between(prev, nxt, edges)
                if between:
                    smoothed.append(self.align_to_edges(curr, between))
                else:
                    smoothed.append(
                        Coordinate(
                            lat=(prev.lat + curr.lat * 2 + nxt.lat) / 4,
                            lng=(prev.lng + curr.lng * 2 + nxt.lng) / 4,
                        )
                    )
            current = smoothed

        return current

    def find_edges_between(
        self, v1: Coordinate, v2: Coordinate, edges: Sequence[EdgePoint]
    ) -> List[EdgePoint]:
        direct = haversine_distance(v1, v2)
        return [
            e
            for e in edges
            if haversine_distance(v1, e.location) + haversine_distance(v2, e.location)
            < direct * BETWEEN_DETOUR_RATIO
        ]

    def align_to_edges(self, vertex: Coordinate, edges: Sequence[EdgePoint]) -> Coordinate:
        """Strength-weighted centroid of the edges."""
        total_weight = sum(e.strength for e in edges)
        if total_weight <= 0:
            return vertex
        return Coordinate(
            lat=sum(e.location.lat * e.strength for e in edges) / total_weight,
            lng=sum(e.location.lng * e.strength for e in edges) / total_weight,
        )

    # ------------------------------------------------------------------
    # Shape validation
    # ------------------------------------------------------------------

    def validate_property_shape(self, vertices: Sequence[Coordinate]) -> Polygon:
        ring = _open_ring(vertices)

        if len(ring) < 3:
            return _default_polygon(ring[0]) if ring else []

        if self.check_rectangular(ring):
            if len(ring) == 5:
                ring = self.remove_collinear_points(ring)
            if len(ring) == 4:
                return self.enforce_right_angles(ring)
            return ring

        return self.remove_collinear_points(ring)

    def check_rectangular(self, vertices: Sequence[Coordinate]) -> bool:
        if len(vertices) not in (4, 5):
            return False
        angles = self.calculate_angles(vertices)
        right_angles = sum(1 for a in angles if abs(a - 90) < RIGHT_ANGLE_TOLERANCE_DEGREES)
        return right_angles >= 3

    def calculate_angles(self, vertices: Sequence[Coordinate]) -> List[float]:
        """Interior-ish angle at each vertex in degrees (0-180), measured in local meters."""
        n = len(vertices)
        if n < 3:
            return []
        projection = LocalProjection.for_polygon(vertices)
        points = [projection.to_meters(v) for v in vertices]

        angles = []
        for i in range(n):
            px, py = points[(i - 1) % n]
            cx, cy = points[i]
            nx, ny = points[(i + 1) % n]

            angle = math.degrees(math.atan2(ny - cy, nx - cx) - math.atan2(py - cy, px - cx))
            if angle < 0:
                angle += 360
            if angle > 180:
                angle = 360 - angle
            angles.append(angle)
        return angles

    def enforce_right_angles(self, vertices: Sequence[Coordinate]) -> Polygon:
        """
        Replace a 4-vertex ring with an exact rectangle.

        The rectangle keeps the vertex centroid, is aligned to the longest
        side, and uses the mean lengths of opposite sides. Output vertex i
        corresponds to input vertex i.
        """
        if len(vertices) != 4:
            return list(vertices)

        centroid = calculate_centroid(vertices)
        projection = LocalProjection(centroid)
        points = [projection.to_meters(v) for v in vertices]

        sides = [math.dist(points[i], points[(i + 1) % 4]) for i in range(4)]
        k = max(range(4), key=lambda i: sides[i])
        if sides[k] == 0:
            return list(vertices)

        width = (sides[k] + sides[(k + 2) % 4]) / 2
        height = (sides[(k + 1) % 4] + sides[(k + 3) % 4]) / 2

        (ax, ay), (bx, by) = points[k], points[(k + 1) % 4]
        ux, uy = (bx - ax) / sides[k], (by - ay) / sides[k]
        vx, vy = -uy, ux
        # v must point from the dominant side towards the opposite side
        ox, oy = points[(k + 2) % 4]
        if (ox - ax) * vx + (oy - ay) * vy < 0:
            vx, vy = -vx, -vy

        cx = sum(p[0] for p in points) / 4
        cy = sum(p[1] for p in points) / 4
        hw, hh = width / 2, height / 2
        corners: List[Tuple[float, float]] = [
            (cx - hw * ux - hh * vx, cy - hw * uy - hh * vy),
            (cx + hw * ux - hh * vx, cy + hw * uy - hh * vy),
            (cx + hw * ux + hh * vx, cy + hw * uy + hh * vy),
            (cx - hw * ux + hh * vx, cy - hw * uy + hh * vy),
        ]

        result: Polygon = [centroid] * 4
        for j, (x, y) in enumerate(corners):
            result[(k + j) % 4] = projection.to_coordinate(x, y)
        return result

    def remove_collinear_points(self, vertices: Sequence[Coordinate]) -> Polygon:
        """Drop vertices that do not turn; keep the input if fewer than 3 would remain."""
        n = len(vertices)
        if n < 3:
            return list(vertices)
        projection = LocalProjection.for_polygon(vertices)
        points = [projection.to_meters(v) for v in vertices]

        filtered: Polygon = []
        for i in range(n):
            px, py = points[(i - 1) % n]
            cx, cy = points[i]
            nx, ny = points[(i + 1) % n]
            ax, ay = cx - px, cy - py
            bx, by = nx - cx, ny - cy
            norm = math.hypot(ax, ay) * math.hypot(bx, by)
            if norm == 0:
                continue  # duplicate vertex
            if abs(ax * by - ay * bx) / norm > COLLINEAR_SIN_TOLERANCE:
                filtered.append(vertices[i])

        return filtered if len(filtered) >= 3 else list(vertices)

    # ------------------------------------------------------------------
    # Confidence
    # ------------------------------------------------------------------

    def calculate_overall_confidence(
        self, adjustments: Sequence[AdjustmentReport], edge_map: EdgeMap
    ) -> float:
        if not adjustments:
            return 0.0

        mean_confidence = sum(a.confidence for a in adjustments) / len(adjustments)
        quality_multiplier = QUALITY_MULTIPLIERS.get(ImageryQuality(edge_map.quality), 1.0)
        mean_distance = sum(a.distance for a in adjustments) / len(adjustments)
        distance_penalty = max(0.0, 1 - mean_distance / DISTANCE_PENALTY_METERS)

        return min(1.0, max(0.0, mean_confidence * quality_multiplier * distance_penalty))

    # ------------------------------------------------------------------
    # Auto-detection
    # ------------------------------------------------------------------

    def find_boundary_loops(self, edges: Sequence[EdgePoint]) -> List[BoundaryLoop]:
        loops = []
        for group in self.group_edges_by_proximity(edges, CLUSTER_DISTANCE_METERS):
            if len(group) < MIN_LOOP_EDGES:
                continue
            ordered = self.order_edges_into_polygon(group)
            loops.append(
                BoundaryLoop(
                    vertices=[e.location for e in ordered],
                    confidence=sum(e.strength for e in ordered) / len(ordered),
                )
            )
        logger.debug(f"Found {len(loops)} candidate boundary loops from {len(edges)} edges")
        return loops

    def group_edges_by_proximity(
        self, edges: Sequence[EdgePoint], threshold: float
    ) -> List[List[EdgePoint]]:
        """Single-linkage clusters: an edge joins a group if it is near any member."""
        groups: List[List[EdgePoint]] = []
        used = [False] * len(edges)

        for start in range(len(edges)):
            if used[start]:
                continue
            used[start] = True
            group = [edges[start]]
            frontier = [start]

            while frontier:
                current = edges[frontier.pop()]
                for j in range(len(edges)):
                    if not used[j] and haversine_distance(current.location, edges[j].location) <= threshold:
                        used[j] = True
                        group.append(edges[j])
                        frontier.append(j)

            groups.append(group)
        return groups

    def order_edges_into_polygon(self, edges: Sequence[EdgePoint]) -> List[EdgePoint]:
        """Greedy nearest-neighbour chain starting from the first edge."""
        if len(edges) < 3:
            return list(edges)

        remaining = list(edges)
        ordered = [remaining.pop(0)]
        while remaining:
            last = ordered[-1].location
            closest = min(
                range(len(remaining)),
                key=lambda i: haversine_distance(last, remaining[i].location),
            )
            ordered.append(remaining.pop(closest))
        return ordered

    def score_boundary(self, loop: BoundaryLoop, center: Coordinate) -> float:
        score = loop.confidence * 10

        distance = haversine_distance(center, calculate_centroid(loop.vertices))
        score += max(0.0, 10 - distance / 10)

        right_angles = sum(
            1
            for a in self.calculate_angles(loop.vertices)
            if abs(a - 90) < RIGHT_ANGLE_TOLERANCE_DEGREES
        )
        score += right_angles * 2

        low, high = PLAUSIBLE_LOT_AREA_SQ_M
        if low < calculate_polygon_area_sq_meters(loop.vertices) < high:
            score += 5
        return score

    def select_best_boundary(self, loops: Sequence[BoundaryLoop], center: Coordinate) -> BoundaryLoop:
        best = loops[0]
        best_score = 0.0
        for loop in loops:
            score = self.score_boundary(loop, center)
            if score > best_score:
                best_score = score
                best = loop
        return best
