"""Measurement service - composes the geometry engine with the imagery collaborator"""

import logging
from typing import Optional, Sequence

from fastapi import HTTPException

from .boundaries import BoundaryDetector, calculate_measurements, create_property_boundaries
from .calculations import (
    calculate_polygon_area,
    calculate_polygon_perimeter,
    create_bounds,
    get_bounding_box,
    is_valid_polygon,
    simplify_polygon,
)
from .edge_detection import EdgeDetectionError, EdgeDetector
from .formatting import format_area
from .models import (
    BoundaryDetectionOptions,
    Coordinate,
    EdgeMap,
    GeoBounds,
    MeasurementResult,
    SnappedPolygon,
)
from .snapping import BoundarySnapper

logger = logging.getLogger(__name__)


class MeasurementService:
    """Service layer for measurement operations"""

    def __init__(
        self,
        edge_detector: EdgeDetector,
        snapper: Optional[BoundarySnapper] = None,
        boundary_detector: Optional[BoundaryDetector] = None,
    ):
        self.edge_detector = edge_detector
        self.snapper = snapper or BoundarySnapper()
        self.boundary_detector = boundary_detector

    def measure_area(self, polygon: Sequence[Coordinate]) -> dict:
        area = calculate_polygon_area(polygon)
        return {
            "area_sq_ft": round(area, 2),
            "perimeter_ft": round(calculate_polygon_perimeter(polygon), 2),
            "formatted_area": format_area(area),
            "is_valid": is_valid_polygon(polygon),
        }

    def measure_property(
        self, polygon: Sequence[Coordinate], center: Optional[Coordinate] = None
    ) -> MeasurementResult:
        boundaries = create_property_boundaries(polygon, center, self.boundary_detector)
        return calculate_measurements(boundaries)

    def simplify(self, polygon: Sequence[Coordinate], tolerance_meters: float) -> list[Coordinate]:
        return simplify_polygon(polygon, tolerance_meters)

    async def _detect_edges(self, bounds: GeoBounds) -> EdgeMap:
        try:
            return await self.edge_detector.detect_edges(bounds)
        except EdgeDetectionError as e:
            logger.error(f"❌ Edge detection failed: {e}")
            raise HTTPException(status_code=502, detail="Imagery provider error") from e

    async def snap_polygon(
        self, polygon: Sequence[Coordinate], options: Optional[BoundaryDetectionOptions] = None
    ) -> SnappedPolygon:
        if len(polygon) < 3:
            raise HTTPException(status_code=400, detail="A polygon needs at least 3 vertices")

        opts = options or BoundaryDetectionOptions()
        bbox = get_bounding_box(polygon)
        # Pad the drawn polygon's box so edges just outside it are still candidates
        north_east = create_bounds(Coordinate(lat=bbox.north, lng=bbox.east), opts.snap_radius)
        south_west = create_bounds(Coordinate(lat=bbox.south, lng=bbox.west), opts.snap_radius)
        padded = GeoBounds(
            south=south_west.south, west=south_west.west, north=north_east.north, east=north_east.east
        )

        edge_map = await self._detect_edges(padded)
        logger.info(f"📐 Snapping {len(polygon)} vertices against {len(edge_map.edges)} edges")
        return self.snapper.snap_to_boundaries(polygon, edge_map, opts)

    async def auto_detect(self, center: Coordinate, search_radius: float) -> SnappedPolygon:
        edge_map = await self._detect_edges(create_bounds(center, search_radius))
        return self.snapper.auto_detect_boundaries(center, edge_map, search_radius)
