"""Tests for shape metrics, track statistics and readout formatting."""

import math

import pytest

from fieldmap.geometry import LatLng, destination_point
from fieldmap.metrics import (
    SQ_METERS_PER_ACRE,
    format_area,
    format_distance,
    shape_metrics,
    track_stats,
)
from fieldmap.model import Shape, ShapeKind, TrackPoint


def _square(side_m: float) -> list[LatLng]:
    o = LatLng(45.0, -93.0)
    e = destination_point(o.lat, o.lng, 90, side_m)
    ne = destination_point(e.lat, e.lng, 0, side_m)
    n = destination_point(o.lat, o.lng, 0, side_m)
    return [o, e, ne, n]


@pytest.mark.unit
class TestShapeMetrics:
    def test_polyline_length(self):
        a = LatLng(45.0, -93.0)
        b = destination_point(a.lat, a.lng, 0, 250)
        m = shape_metrics(Shape.polyline("Line", [a, b]))
        assert m.length_m == pytest.approx(250, rel=1e-6)
        assert m.area_m2 == 0.0

    def test_polygon_area_and_perimeter(self):
        m = shape_metrics(Shape.polygon("Field", _square(100)))
        assert m.area_m2 == pytest.approx(10_000, rel=5e-3)
        assert m.perimeter_m == pytest.approx(400, rel=1e-3)

    def test_circle(self):
        m = shape_metrics(Shape.circle("Bait", LatLng(45, -93), 10))
        assert m.area_m2 == pytest.approx(math.pi * 100)
        assert m.perimeter_m == pytest.approx(2 * math.pi * 10)

    def test_multi_part_sums(self):
        sq = _square(100)
        single = shape_metrics(Shape.polygon("A", sq))
        double = shape_metrics(Shape(ShapeKind.POLYGON, "AA", parts=[sq, sq]))
        assert double.area_m2 == pytest.approx(2 * single.area_m2)

    def test_rectangle_measured_as_area(self):
        m = shape_metrics(Shape.rectangle("Plot", _square(100)))
        assert m.kind == "rectangle"
        assert m.area_m2 == pytest.approx(10_000, rel=5e-3)
        assert m.length_m == 0.0
        assert "area_text" in m.to_dict()

    def test_acres(self):
        m = shape_metrics(Shape.circle("C", LatLng(0, 0), 100))
        assert m.acres == pytest.approx(m.area_m2 / SQ_METERS_PER_ACRE)

    def test_polyline_dict_has_length_only(self):
        d = shape_metrics(Shape.polyline("L", [LatLng(0, 0), LatLng(0, 0.001)])).to_dict()
        assert "length_text" in d
        assert "area_m2" not in d


@pytest.mark.unit
class TestTrackStats:
    def test_empty(self):
        s = track_stats([])
        assert (s.points, s.distance_m, s.duration_ms) == (0, 0.0, 0)

    def test_duration_first_to_last(self):
        pts = [TrackPoint(45, -93, 1_000), TrackPoint(45.001, -93, 61_000)]
        s = track_stats(pts)
        assert s.duration_ms == 60_000
        assert s.to_dict()["duration_text"] == "1:00"

    def test_untimed_track_has_no_duration(self):
        s = track_stats([TrackPoint(45, -93), TrackPoint(45.001, -93)])
        assert s.duration_ms == 0
        assert s.distance_m > 0


@pytest.mark.unit
class TestFormatting:
    def test_feet_below_a_mile(self):
        assert format_distance(100) == "328 ft"

    def test_miles(self):
        assert format_distance(1609.344 * 1.25) == "1.25 mi"

    def test_square_meters_below_an_acre(self):
        assert format_area(850) == "850 m²"

    def test_acres(self):
        assert format_area(SQ_METERS_PER_ACRE * 2.5) == "2.50 ac"
