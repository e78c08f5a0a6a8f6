"""Geometry domain models - plain value objects used by the measurement engine"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional


class EdgeType(str, Enum):
    PROPERTY_LINE = "property_line"
    FENCE = "fence"
    DRIVEWAY = "driveway"
    BUILDING = "building"
    VEGETATION = "vegetation"


class ImageryQuality(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SmoothingLevel(str, Enum):
    NONE = "none"
    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"


class SnapMethod(str, Enum):
    MANUAL = "manual"
    AUTO_SNAP = "auto_snap"
    AI_GUIDED = "ai_guided"


@dataclass(frozen=True)
class Coordinate:
    """A WGS84-like latitude/longitude pair in degrees. No datum conversion is done."""

    lat: float
    lng: float


Polygon = List[Coordinate]


@dataclass(frozen=True)
class GeoBounds:
    south: float
    west: float
    north: float
    east: float

    @property
    def center(self) -> Coordinate:
        return Coordinate(lat=(self.south + self.north) / 2, lng=(self.west + self.east) / 2)

    @property
    def max_span_degrees(self) -> float:
        return max(abs(self.north - self.south), abs(self.east - self.west))


@dataclass
class LawnBoundaries:
    front_yard: Polygon = field(default_factory=list)
    back_yard: Polygon = field(default_factory=list)
    side_yard: Polygon = field(default_factory=list)


@dataclass
class PropertyBoundaries:
    """Named sub-region polygons of a lot. Recomputed per request, never persisted."""

    property: Polygon = field(default_factory=list)
    lawn: LawnBoundaries = field(default_factory=LawnBoundaries)
    driveway: Polygon = field(default_factory=list)
    building: Polygon = field(default_factory=list)
    sidewalk: Polygon = field(default_factory=list)


@dataclass(frozen=True)
class LawnMeasurements:
    front_yard: int = 0
    back_yard: int = 0
    side_yard: int = 0
    total: int = 0


@dataclass(frozen=True)
class MeasurementResult:
    """
    Areas in square feet, perimeter in linear feet.
    All values are rounded to the nearest integer.
    """

    total_area: int = 0
    lawn: LawnMeasurements = field(default_factory=LawnMeasurements)
    driveway: int = 0
    sidewalk: int = 0
    building: int = 0
    other: int = 0
    perimeter: int = 0


@dataclass(frozen=True)
class EdgePoint:
    location: Coordinate
    strength: float  # 0-1 detection confidence
    direction: float  # degrees, 0 = east, counter-clockwise
    type: EdgeType


@dataclass
class EdgeMap:
    edges: List[EdgePoint]
    resolution: float  # meters per pixel
    quality: ImageryQuality
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class AdjustmentReport:
    original_vertex: Coordinate
    snapped_vertex: Coordinate
    distance: float  # meters
    confidence: float  # 0-1
    edge_type: Optional[EdgeType] = None


@dataclass
class SnappedPolygon:
    vertices: Polygon
    confidence: float
    adjustments: List[AdjustmentReport]
    method: SnapMethod


@dataclass
class BoundaryDetectionOptions:
    snap_radius: float = 5.0  # meters
    confidence_threshold: float = 0.75
    preferred_edge_types: List[EdgeType] = field(
        default_factory=lambda: [EdgeType.PROPERTY_LINE, EdgeType.FENCE]
    )
    smoothing_level: SmoothingLevel = SmoothingLevel.MODERATE
    preserve_angles: bool = True
