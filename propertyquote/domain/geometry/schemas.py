"""Measurement domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, Field

from .models import (
    BoundaryDetectionOptions,
    Coordinate,
    EdgeType,
    MeasurementResult,
    SmoothingLevel,
    SnapMethod,
    SnappedPolygon,
)


class CoordinateSchema(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def to_coordinate(self) -> Coordinate:
        return Coordinate(lat=self.lat, lng=self.lng)

    @classmethod
    def from_coordinate(cls, coord: Coordinate) -> "CoordinateSchema":
        return cls(lat=coord.lat, lng=coord.lng)


def to_polygon(points: list[CoordinateSchema]) -> list[Coordinate]:
    return [p.to_coordinate() for p in points]


def from_polygon(polygon: list[Coordinate]) -> list[CoordinateSchema]:
    return [CoordinateSchema.from_coordinate(c) for c in polygon]


class AreaRequest(BaseModel):
    """Schema for measuring a single drawn polygon"""

    coordinates: list[CoordinateSchema]


class AreaResponse(BaseModel):
    areaSqFt: float
    perimeterFt: float
    formattedArea: str
    isValid: bool


class PropertyMeasurementRequest(BaseModel):
    """Schema for measuring a whole lot and its sub-regions"""

    polygon: list[CoordinateSchema]
    center: Optional[CoordinateSchema] = None


class LawnMeasurementSchema(BaseModel):
    frontYard: int
    backYard: int
    sideYard: int
    total: int


class MeasurementResponse(BaseModel):
    totalArea: int
    lawn: LawnMeasurementSchema
    driveway: int
    sidewalk: int
    building: int
    other: int
    perimeter: int
    formattedTotal: str

    @classmethod
    def from_result(cls, result: MeasurementResult, formatted_total: str) -> "MeasurementResponse":
        return cls(
            totalArea=result.total_area,
            lawn=LawnMeasurementSchema(
                frontYard=result.lawn.front_yard,
                backYard=result.lawn.back_yard,
                sideYard=result.lawn.side_yard,
                total=result.lawn.total,
            ),
            driveway=result.driveway,
            sidewalk=result.sidewalk,
            building=result.building,
            other=result.other,
            perimeter=result.perimeter,
            formattedTotal=formatted_total,
        )


class SnapOptionsSchema(BaseModel):
    snapRadius: float = Field(5.0, gt=0, le=100, description="Meters")
    confidenceThreshold: float = Field(0.75, ge=0, le=1)
    preferredEdgeTypes: list[EdgeType] = Field(
        default_factory=lambda: [EdgeType.PROPERTY_LINE, EdgeType.FENCE]
    )
    smoothingLevel: SmoothingLevel = SmoothingLevel.MODERATE
    preserveAngles: bool = True

    def to_options(self) -> BoundaryDetectionOptions:
        return BoundaryDetectionOptions(
            snap_radius=self.snapRadius,
            confidence_threshold=self.confidenceThreshold,
            preferred_edge_types=list(self.preferredEdgeTypes),
            smoothing_level=self.smoothingLevel,
            preserve_angles=self.preserveAngles,
        )


class SnapRequest(BaseModel):
    """Schema for snapping a hand-drawn polygon to detected boundaries"""

    polygon: list[CoordinateSchema]
    options: Optional[SnapOptionsSchema] = None


class AutoDetectRequest(BaseModel):
    center: CoordinateSchema
    searchRadius: float = Field(50.0, gt=0, le=500, description="Meters")


class AdjustmentSchema(BaseModel):
    originalVertex: CoordinateSchema
    snappedVertex: CoordinateSchema
    distance: float
    confidence: float
    edgeType: Optional[EdgeType] = None


class SnappedPolygonResponse(BaseModel):
    vertices: list[CoordinateSchema]
    confidence: float
    method: SnapMethod
    adjustments: list[AdjustmentSchema]
    areaSqFt: float
    formattedArea: str

    @classmethod
    def from_snapped(
        cls, snapped: SnappedPolygon, area_sq_ft: float, formatted_area: str
    ) -> "SnappedPolygonResponse":
        return cls(
            vertices=from_polygon(snapped.vertices),
            confidence=snapped.confidence,
            method=snapped.method,
            adjustments=[
                AdjustmentSchema(
                    originalVertex=CoordinateSchema.from_coordinate(a.original_vertex),
                    snappedVertex=CoordinateSchema.from_coordinate(a.snapped_vertex),
                    distance=a.distance,
                    confidence=a.confidence,
                    edgeType=a.edge_type,
                )
                for a in snapped.adjustments
            ],
            areaSqFt=area_sq_ft,
            formattedArea=formatted_area,
        )


class SimplifyRequest(BaseModel):
    polygon: list[CoordinateSchema]
    tolerance: float = Field(2.0, gt=0, description="Meters")


class SimplifyResponse(BaseModel):
    vertices: list[CoordinateSchema]
    removedCount: int
