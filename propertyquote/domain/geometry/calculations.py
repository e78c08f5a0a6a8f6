"""
Polygon measurement primitives.

Two distance models are used on purpose and are not interchangeable:
- Areas use a flat-earth projection: longitude scaled by cos(mean latitude),
  111,320 m per degree. Error stays well under 1% for lot-scale polygons
  (< ~100 m across) and grows with polygon size.
- Point-to-point distances (perimeter, snap radius, clustering) use the
  haversine great-circle formula on a 6,371 km sphere.
"""

import math
from typing import List, Optional, Sequence, Tuple

from .models import Coordinate, GeoBounds

METERS_PER_DEGREE_LAT = 111320.0
EARTH_RADIUS_METERS = 6371000.0
# Canonical conversion factor; 10.764 is a rounding of the same value
SQ_FT_PER_SQ_METER = 10.7639
FEET_PER_METER = 3.28084
SQ_FT_PER_ACRE = 43560.0


def round_half_up(value: float) -> int:
    """Nearest integer with .5 going up, so 2.5 -> 3 rather than Python's 2."""
    return math.floor(value + 0.5)


class LocalProjection:
    """Equirectangular projection to meters around a reference point."""

    def __init__(self, origin: Coordinate, reference_lat: Optional[float] = None):
        self.origin = origin
        ref_lat = origin.lat if reference_lat is None else reference_lat
        self.meters_per_degree_lng = METERS_PER_DEGREE_LAT * math.cos(math.radians(ref_lat))

    @classmethod
    def for_polygon(cls, polygon: Sequence[Coordinate]) -> "LocalProjection":
        mean_lat = sum(c.lat for c in polygon) / len(polygon)
        return cls(polygon[0], reference_lat=mean_lat)

    def to_meters(self, coord: Coordinate) -> Tuple[float, float]:
        x = (coord.lng - self.origin.lng) * self.meters_per_degree_lng
        y = (coord.lat - self.origin.lat) * METERS_PER_DEGREE_LAT
        return x, y

    def to_coordinate(self, x: float, y: float) -> Coordinate:
        lng_scale = self.meters_per_degree_lng or METERS_PER_DEGREE_LAT
        return Coordinate(
            lat=self.origin.lat + y / METERS_PER_DEGREE_LAT,
            lng=self.origin.lng + x / lng_scale,
        )


def calculate_polygon_area_sq_meters(polygon: Sequence[Coordinate]) -> float:
    """Shoelace area in square meters; 0 for fewer than 3 points."""
    if not polygon or len(polygon) < 3:
        return 0.0

    projection = LocalProjection.for_polygon(polygon)
    points = [projection.to_meters(c) for c in polygon]

    area = 0.0
    n = len(points)
    for i in range(n):
        x1, y1 = points[i]
        x2, y2 = points[(i + 1) % n]
        area += x1 * y2 - x2 * y1

    return abs(area) / 2.0


def calculate_polygon_area(polygon: Sequence[Coordinate]) -> float:
    """
    Calculate the area of a polygon in square feet.

    Coordinates are shifted to the first vertex before projecting so the
    cross products stay small; the result is identical to projecting the
    absolute coordinates. Winding direction does not affect the result.
    """
    return calculate_polygon_area_sq_meters(polygon) * SQ_FT_PER_SQ_METER


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates in meters."""
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    delta_lat = math.radians(b.lat - a.lat)
    delta_lng = math.radians(b.lng - a.lng)

    h = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(delta_lng / 2) ** 2
    )
    return EARTH_RADIUS_METERS * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def calculate_polygon_perimeter(polygon: Sequence[Coordinate]) -> float:
    """Perimeter of the closed loop in linear feet; 0 for fewer than 3 points."""
    if not polygon or len(polygon) < 3:
        return 0.0

    meters = sum(
        haversine_distance(polygon[i], polygon[(i + 1) % len(polygon)])
        for i in range(len(polygon))
    )
    return meters * FEET_PER_METER


def calculate_centroid(polygon: Sequence[Coordinate]) -> Coordinate:
    """Vertex average (not the area centroid)."""
    if not polygon:
        raise ValueError("Cannot compute the centroid of an empty polygon")
    return Coordinate(
        lat=sum(c.lat for c in polygon) / len(polygon),
        lng=sum(c.lng for c in polygon) / len(polygon),
    )


def get_bounding_box(polygon: Sequence[Coordinate]) -> Optional[GeoBounds]:
    if not polygon:
        return None
    return GeoBounds(
        south=min(c.lat for c in polygon),
        west=min(c.lng for c in polygon),
        north=max(c.lat for c in polygon),
        east=max(c.lng for c in polygon),
    )


def create_bounds(center: Coordinate, radius_meters: float) -> GeoBounds:
    """Square search bounds of +/- radius around a center point."""
    lat_offset = radius_meters / METERS_PER_DEGREE_LAT
    lng_offset = radius_meters / (METERS_PER_DEGREE_LAT * math.cos(math.radians(center.lat)))
    return GeoBounds(
        south=center.lat - lat_offset,
        west=center.lng - lng_offset,
        north=center.lat + lat_offset,
        east=center.lng + lng_offset,
    )


def point_to_line_distance(point: Coordinate, line_start: Coordinate, line_end: Coordinate) -> float:
    """
    Distance from a point to a segment in meters.

    Computed in raw degree space and scaled by 111,320 m/degree, so east-west
    offsets are overstated away from the equator.
    """
    a = point.lat - line_start.lat
    b = point.lng - line_start.lng
    c = line_end.lat - line_start.lat
    d = line_end.lng - line_start.lng

    len_sq = c * c + d * d
    param = (a * c + b * d) / len_sq if len_sq != 0 else -1.0

    if param < 0:
        xx, yy = line_start.lat, line_start.lng
    elif param > 1:
        xx, yy = line_end.lat, line_end.lng
    else:
        xx, yy = line_start.lat + param * c, line_start.lng + param * d

    return math.hypot(point.lat - xx, point.lng - yy) * METERS_PER_DEGREE_LAT


def simplify_polygon(polygon: Sequence[Coordinate], tolerance_meters: float) -> List[Coordinate]:
    """Douglas-Peucker simplification of the vertex chain from first to last vertex."""
    vertices = list(polygon)
    if len(vertices) <= 3:
        return vertices

    first, last = vertices[0], vertices[-1]
    max_distance = 0.0
    max_index = 0
    for i in range(1, len(vertices) - 1):
        distance = point_to_line_distance(vertices[i], first, last)
        if distance > max_distance:
            max_distance = distance
            max_index = i

    if max_distance > tolerance_meters:
        left = simplify_polygon(vertices[: max_index + 1], tolerance_meters)
        right = simplify_polygon(vertices[max_index:], tolerance_meters)
        return left[:-1] + right

    return [first, last]


def is_point_in_polygon(point: Coordinate, polygon: Sequence[Coordinate]) -> bool:
    """Ray casting test; points exactly on an edge may go either way."""
    inside = False
    n = len(polygon)
    j = n - 1
    for i in range(n):
        xi, yi = polygon[i].lng, polygon[i].lat
        xj, yj = polygon[j].lng, polygon[j].lat
        if (yi > point.lat) != (yj > point.lat):
            x_cross = (xj - xi) * (point.lat - yi) / (yj - yi) + xi
            if point.lng < x_cross:
                inside = not inside
        j = i
    return inside


def _ccw(a: Coordinate, b: Coordinate, c: Coordinate) -> bool:
    return (c.lng - a.lng) * (b.lat - a.lat) > (b.lng - a.lng) * (c.lat - a.lat)


def _segments_intersect(p1: Coordinate, p2: Coordinate, p3: Coordinate, p4: Coordinate) -> bool:
    return _ccw(p1, p3, p4) != _ccw(p2, p3, p4) and _ccw(p1, p2, p3) != _ccw(p1, p2, p4)


def is_valid_polygon(polygon: Sequence[Coordinate]) -> bool:
    """At least 3 distinct vertices and no crossing between non-adjacent edges."""
    vertices = list(polygon)
    if len(vertices) > 3 and vertices[0] == vertices[-1]:
        vertices = vertices[:-1]
    n = len(vertices)
    if n < 3:
        return False

    for i in range(n):
        for j in range(i + 2, n):
            if i == 0 and j == n - 1:
                continue  # closing edge shares vertex 0
            if _segments_intersect(
                vertices[i], vertices[(i + 1) % n], vertices[j], vertices[(j + 1) % n]
            ):
                return False
    return True
