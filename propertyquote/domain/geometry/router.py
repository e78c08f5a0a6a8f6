"""Measurement router - FastAPI endpoints for lot measurement and boundary snapping"""

import logging

from fastapi import APIRouter, Depends

from ...auth import get_current_business
from ...models import Business
from .calculations import calculate_polygon_area
from .edge_detection import EdgeDetector, get_edge_detector
from .formatting import format_area
from .schemas import (
    AreaRequest,
    AreaResponse,
    AutoDetectRequest,
    MeasurementResponse,
    PropertyMeasurementRequest,
    SimplifyRequest,
    SimplifyResponse,
    SnappedPolygonResponse,
    SnapRequest,
    from_polygon,
    to_polygon,
)
from .service import MeasurementService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/measurements", tags=["Measurements"])


def get_measurement_service(
    edge_detector: EdgeDetector = Depends(get_edge_detector),
) -> MeasurementService:
    """Dependency injection for MeasurementService"""
    return MeasurementService(edge_detector)


@router.post("/area", response_model=AreaResponse)
async def measure_area(
    data: AreaRequest,
    _: Business = Depends(get_current_business),
    service: MeasurementService = Depends(get_measurement_service),
):
    """Area and perimeter of a single drawn polygon"""
    result = service.measure_area(to_polygon(data.coordinates))
    return AreaResponse(
        areaSqFt=result["area_sq_ft"],
        perimeterFt=result["perimeter_ft"],
        formattedArea=result["formatted_area"],
        isValid=result["is_valid"],
    )


@router.post("/property", response_model=MeasurementResponse)
async def measure_property(
    data: PropertyMeasurementRequest,
    _: Business = Depends(get_current_business),
    service: MeasurementService = Depends(get_measurement_service),
):
    """Lot area broken down into lawn, driveway, sidewalk, building and other"""
    center = data.center.to_coordinate() if data.center else None
    result = service.measure_property(to_polygon(data.polygon), center)
    return MeasurementResponse.from_result(result, format_area(result.total_area))


@router.post("/snap", response_model=SnappedPolygonResponse)
async def snap_polygon(
    data: SnapRequest,
    _: Business = Depends(get_current_business),
    service: MeasurementService = Depends(get_measurement_service),
):
    """Snap a hand-drawn polygon to detected property edges"""
    options = data.options.to_options() if data.options else None
    snapped = await service.snap_polygon(to_polygon(data.polygon), options)
    area = calculate_polygon_area(snapped.vertices)
    return SnappedPolygonResponse.from_snapped(snapped, round(area, 2), format_area(area))


@router.post("/auto-detect", response_model=SnappedPolygonResponse)
async def auto_detect(
    data: AutoDetectRequest,
    _: Business = Depends(get_current_business),
    service: MeasurementService = Depends(get_measurement_service),
):
    """Detect the most likely lot boundary around a point"""
    snapped = await service.auto_detect(data.center.to_coordinate(), data.searchRadius)
    area = calculate_polygon_area(snapped.vertices)
    return SnappedPolygonResponse.from_snapped(snapped, round(area, 2), format_area(area))


@router.post("/simplify", response_model=SimplifyResponse)
async def simplify(
    data: SimplifyRequest,
    _: Business = Depends(get_current_business),
    service: MeasurementService = Depends(get_measurement_service),
):
    """Douglas-Peucker simplification of a vertex chain"""
    vertices = service.simplify(to_polygon(data.polygon), data.tolerance)
    return SimplifyResponse(
        vertices=from_polygon(vertices),
        removedCount=len(data.polygon) - len(vertices),
    )
