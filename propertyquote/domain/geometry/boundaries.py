"""
Property sub-region detection and measurement.

The shipped detector does not look at imagery: it slices the lot's bounding
box into fixed fractional bands. Sub-regions may overlap; the residual
"other" area absorbs any double counting.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence

from .calculations import (
    calculate_polygon_area,
    calculate_polygon_perimeter,
    get_bounding_box,
    round_half_up,
)
from .models import (
    Coordinate,
    LawnBoundaries,
    LawnMeasurements,
    MeasurementResult,
    Polygon,
    PropertyBoundaries,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoundarySplits:
    """Fractions of the bounding box used for each sub-region (south = front)."""

    front_yard_depth: float = 0.4
    back_yard_depth: float = 0.4
    side_yard_width: float = 0.2
    driveway_depth: float = 0.3
    driveway_width: float = 0.15
    building_half_depth: float = 0.15
    building_half_width: float = 0.2
    sidewalk_depth: float = 0.05


DEFAULT_SPLITS = BoundarySplits()


def _rectangle(south: float, west: float, north: float, east: float) -> Polygon:
    return [
        Coordinate(lat=south, lng=west),
        Coordinate(lat=north, lng=west),
        Coordinate(lat=north, lng=east),
        Coordinate(lat=south, lng=east),
    ]


class BoundaryDetector(ABC):
    """Splits a lot polygon into named sub-regions."""

    @abstractmethod
    def detect(
        self, property_polygon: Sequence[Coordinate], center: Optional[Coordinate] = None
    ) -> PropertyBoundaries:
        raise NotImplementedError


class ProportionalBoundaryDetector(BoundaryDetector):
    """Heuristic detector: fixed fractional bands of the lot's bounding box."""

    def __init__(self, splits: BoundarySplits = DEFAULT_SPLITS):
        self.splits = splits

    def detect(
        self, property_polygon: Sequence[Coordinate], center: Optional[Coordinate] = None
    ) -> PropertyBoundaries:
        # center is accepted for interface compatibility; the bands only depend on the bbox
        if not property_polygon or len(property_polygon) < 3:
            return PropertyBoundaries()

        bounds = get_bounding_box(property_polygon)
        s = self.splits
        lat_range = bounds.north - bounds.south
        lng_range = bounds.east - bounds.west
        mid = bounds.center

        front_yard = _rectangle(
            bounds.south, bounds.west, bounds.south + lat_range * s.front_yard_depth, bounds.east
        )
        back_yard = _rectangle(
            bounds.north - lat_range * s.back_yard_depth, bounds.west, bounds.north, bounds.east
        )
        side_yard = _rectangle(
            bounds.south + lat_range * s.front_yard_depth,
            bounds.east - lng_range * s.side_yard_width,
            bounds.north - lat_range * s.back_yard_depth,
            bounds.east,
        )
        driveway = _rectangle(
            bounds.south,
            bounds.west,
            bounds.south + lat_range * s.driveway_depth,
            bounds.west + lng_range * s.driveway_width,
        )
        building = _rectangle(
            mid.lat - lat_range * s.building_half_depth,
            mid.lng - lng_range * s.building_half_width,
            mid.lat + lat_range * s.building_half_depth,
            mid.lng + lng_range * s.building_half_width,
        )
        sidewalk = _rectangle(
            bounds.south,
            bounds.west + lng_range * s.driveway_width,
            bounds.south + lat_range * s.sidewalk_depth,
            bounds.east,
        )

        return PropertyBoundaries(
            property=list(property_polygon),
            lawn=LawnBoundaries(front_yard=front_yard, back_yard=back_yard, side_yard=side_yard),
            driveway=driveway,
            building=building,
            sidewalk=sidewalk,
        )


def create_property_boundaries(
    property_polygon: Sequence[Coordinate],
    center: Optional[Coordinate] = None,
    detector: Optional[BoundaryDetector] = None,
) -> PropertyBoundaries:
    """Split a lot into sub-regions with the given detector (proportional by default)."""
    return (detector or ProportionalBoundaryDetector()).detect(property_polygon, center)


def calculate_measurements(boundaries: PropertyBoundaries) -> MeasurementResult:
    total_area = calculate_polygon_area(boundaries.property)

    front_yard = calculate_polygon_area(boundaries.lawn.front_yard)
    back_yard = calculate_polygon_area(boundaries.lawn.back_yard)
    side_yard = calculate_polygon_area(boundaries.lawn.side_yard)
    lawn_total = front_yard + back_yard + side_yard

    driveway = calculate_polygon_area(boundaries.driveway)
    sidewalk = calculate_polygon_area(boundaries.sidewalk)
    building = calculate_polygon_area(boundaries.building)

    # Overlapping regions can exceed the lot area; clamp instead of going negative
    other = max(0.0, total_area - lawn_total - driveway - sidewalk - building)

    logger.debug(
        f"Measured lot: total={total_area:.1f} lawn={lawn_total:.1f} other={other:.1f} sq ft"
    )

    return MeasurementResult(
        total_area=round_half_up(total_area),
        lawn=LawnMeasurements(
            front_yard=round_half_up(front_yard),
            back_yard=round_half_up(back_yard),
            side_yard=round_half_up(side_yard),
            total=round_half_up(lawn_total),
        ),
        driveway=round_half_up(driveway),
        sidewalk=round_half_up(sidewalk),
        building=round_half_up(building),
        other=round_half_up(other),
        perimeter=round_half_up(calculate_polygon_perimeter(boundaries.property)),
    )
