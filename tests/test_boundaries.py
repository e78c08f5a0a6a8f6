"""Tests for proportional lot splitting and measurement."""

import pytest

from propertyquote.domain.geometry.boundaries import (
    BoundaryDetector,
    BoundarySplits,
    ProportionalBoundaryDetector,
    calculate_measurements,
    create_property_boundaries,
)
from propertyquote.domain.geometry.calculations import calculate_polygon_area, round_half_up
from propertyquote.domain.geometry.models import Coordinate, PropertyBoundaries

SOUTH, WEST, NORTH, EAST = 40.0, -75.0, 40.001, -74.999

LOT = [
    Coordinate(lat=SOUTH, lng=WEST),
    Coordinate(lat=SOUTH, lng=EAST),
    Coordinate(lat=NORTH, lng=EAST),
    Coordinate(lat=NORTH, lng=WEST),
]


def approx_deg(expected):
    return pytest.approx(expected, abs=1e-9)


def bounds_of(polygon):
    lats = [c.lat for c in polygon]
    lngs = [c.lng for c in polygon]
    return min(lats), min(lngs), max(lats), max(lngs)


class TestProportionalSplits:
    """Tests for the fixed-fraction sub-regions."""

    def test_front_and_back_yards(self):
        boundaries = create_property_boundaries(LOT)
        assert bounds_of(boundaries.lawn.front_yard) == approx_deg((SOUTH, WEST, 40.0004, EAST))
        assert bounds_of(boundaries.lawn.back_yard) == approx_deg((40.0006, WEST, NORTH, EAST))

    def test_side_yard_between_lawn_bands(self):
        boundaries = create_property_boundaries(LOT)
        assert bounds_of(boundaries.lawn.side_yard) == approx_deg(
            (40.0004, -74.9992, 40.0006, EAST)
        )

    def test_driveway_building_and_sidewalk(self):
        boundaries = create_property_boundaries(LOT)
        assert bounds_of(boundaries.driveway) == approx_deg((SOUTH, WEST, 40.0003, -74.99985))
        assert bounds_of(boundaries.building) == approx_deg(
            (40.00035, -74.9997, 40.00065, -74.9993)
        )
        assert bounds_of(boundaries.sidewalk) == approx_deg(
            (SOUTH, -74.99985, 40.00005, EAST)
        )

    def test_property_polygon_is_kept(self):
        boundaries = create_property_boundaries(LOT)
        assert boundaries.property == LOT

    def test_center_does_not_change_result(self):
        with_center = create_property_boundaries(LOT, Coordinate(lat=41.0, lng=-70.0))
        assert with_center == create_property_boundaries(LOT)

    @pytest.mark.parametrize("count", [0, 1, 2])
    def test_degenerate_polygon_yields_empty_regions(self, count):
        boundaries = create_property_boundaries(LOT[:count])
        assert boundaries == PropertyBoundaries()

    def test_custom_splits(self):
        detector = ProportionalBoundaryDetector(BoundarySplits(front_yard_depth=0.5))
        boundaries = create_property_boundaries(LOT, detector=detector)
        assert bounds_of(boundaries.lawn.front_yard)[2] == approx_deg(40.0005)

    def test_custom_detector_is_used(self):
        class EverythingIsDriveway(BoundaryDetector):
            def detect(self, property_polygon, center=None):
                return PropertyBoundaries(property=list(property_polygon), driveway=list(property_polygon))

        boundaries = create_property_boundaries(LOT, detector=EverythingIsDriveway())
        assert boundaries.driveway == LOT
        assert boundaries.lawn.front_yard == []


class TestCalculateMeasurements:
    """Tests for measuring sub-regions."""

    def test_total_matches_lot_area(self):
        result = calculate_measurements(create_property_boundaries(LOT))
        assert result.total_area == round_half_up(calculate_polygon_area(LOT))

    def test_lawn_total_is_sum_of_yards(self):
        result = calculate_measurements(create_property_boundaries(LOT))
        yards = result.lawn.front_yard + result.lawn.back_yard + result.lawn.side_yard
        assert abs(result.lawn.total - yards) <= 1

    def test_overlapping_regions_clamp_other_to_zero(self):
        # lawn + driveway + sidewalk + building cover ~105% of the default split lot
        result = calculate_measurements(create_property_boundaries(LOT))
        assert result.other == 0

    def test_other_absorbs_unclaimed_area(self):
        detector = ProportionalBoundaryDetector(
            BoundarySplits(
                front_yard_depth=0.1,
                back_yard_depth=0.1,
                side_yard_width=0.1,
                driveway_depth=0.1,
                driveway_width=0.1,
                building_half_depth=0.1,
                building_half_width=0.1,
                sidewalk_depth=0.01,
            )
        )
        result = calculate_measurements(create_property_boundaries(LOT, detector=detector))
        claimed = (
            result.lawn.total + result.driveway + result.sidewalk + result.building + result.other
        )
        assert result.other > 0
        assert abs(claimed - result.total_area) <= 3

    def test_values_are_integers(self):
        result = calculate_measurements(create_property_boundaries(LOT))
        assert isinstance(result.total_area, int)
        assert isinstance(result.perimeter, int)
        assert result.perimeter > 0

    def test_empty_boundaries_measure_zero(self):
        result = calculate_measurements(PropertyBoundaries())
        assert result.total_area == 0
        assert result.lawn.total == 0
        assert result.other == 0
        assert result.perimeter == 0
