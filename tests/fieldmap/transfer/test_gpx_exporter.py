"""Tests for the GPX exporter — wpt, rte, trk and app metadata."""

import json
import xml.etree.ElementTree as ET

import pytest

from fieldmap.geometry import LatLng
from fieldmap.model import Shape, ShapeKind, Snapshot, TrackPoint, Waypoint
from fieldmap.transfer.exporters.gpx import GPX_NS, export_gpx

NS = {"gpx": GPX_NS}

TRIANGLE = [LatLng(45.0, -93.0), LatLng(45.001, -93.0), LatLng(45.001, -93.001)]


def _root(snapshot: Snapshot) -> ET.Element:
    return ET.fromstring(export_gpx(snapshot))


@pytest.mark.unit
class TestGpxDocument:
    def test_root_attributes(self):
        root = _root(Snapshot())
        assert root.tag == f"{{{GPX_NS}}}gpx"
        assert root.get("version") == "1.1"
        assert root.get("creator") == "FieldMap"

    def test_custom_creator(self):
        root = ET.fromstring(export_gpx(Snapshot(), creator="Test"))
        assert root.get("creator") == "Test"


@pytest.mark.unit
class TestGpxWaypoints:
    def test_wpt(self):
        w = Waypoint(id="w1", name="Stand A", lat=45.5, lng=-93.25, type="blind", notes="n")
        wpt = _root(Snapshot(waypoints=[w])).find("gpx:wpt", NS)
        assert wpt.get("lat") == "45.5"
        assert wpt.get("lon") == "-93.25"
        assert wpt.find("gpx:name", NS).text == "Stand A"
        assert wpt.find("gpx:desc", NS).text == "n"
        meta = json.loads(wpt.find("gpx:extensions/gpx:app_meta", NS).text)
        assert meta["id"] == "w1"
        assert meta["type"] == "blind"

    def test_no_desc_without_notes(self):
        w = Waypoint(id="w1", name="A", lat=45, lng=-93)
        wpt = _root(Snapshot(waypoints=[w])).find("gpx:wpt", NS)
        assert wpt.find("gpx:desc", NS) is None

    def test_non_finite_rejected(self):
        w = Waypoint(id="w1", name="A", lat=45, lng=float("inf"))
        with pytest.raises(ValueError):
            export_gpx(Snapshot(waypoints=[w]))


@pytest.mark.unit
class TestGpxRoutes:
    def test_polyline_route(self):
        rte = _root(Snapshot(shapes=[Shape.polyline("Fence", TRIANGLE)])).find("gpx:rte", NS)
        assert rte.find("gpx:name", NS).text == "Fence"
        assert len(rte.findall("gpx:rtept", NS)) == 3

    def test_polygon_route_closed(self):
        rte = _root(Snapshot(shapes=[Shape.polygon("Field", TRIANGLE)])).find("gpx:rte", NS)
        pts = rte.findall("gpx:rtept", NS)
        assert rte.find("gpx:name", NS).text == "Field (polygon)"
        assert len(pts) == 4
        assert (pts[0].get("lat"), pts[0].get("lon")) == (pts[-1].get("lat"), pts[-1].get("lon"))

    def test_circle_route(self):
        rte = _root(Snapshot(shapes=[Shape.circle("Bait", LatLng(45, -93), 15)])).find("gpx:rte", NS)
        assert rte.find("gpx:name", NS).text == "Bait"
        assert len(rte.findall("gpx:rtept", NS)) == 65

    def test_multi_part_routes(self):
        shape = Shape(ShapeKind.POLYGON, "Parcels", parts=[TRIANGLE, TRIANGLE])
        names = [r.find("gpx:name", NS).text for r in _root(Snapshot(shapes=[shape])).findall("gpx:rte", NS)]
        assert names == ["Parcels (part 1)", "Parcels (part 2)"]


@pytest.mark.unit
class TestGpxTrack:
    def test_track_named_by_date(self):
        track = [TrackPoint(45, -93, 1_730_528_100_000), TrackPoint(45.001, -93, 1_730_528_160_000)]
        trk = _root(Snapshot(track=track)).find("gpx:trk", NS)
        assert trk.find("gpx:name", NS).text == "Track 2024-11-02"
        pts = trk.findall("gpx:trkseg/gpx:trkpt", NS)
        assert len(pts) == 2
        assert pts[0].find("gpx:time", NS).text == "2024-11-02T06:15:00.000Z"

    def test_untimed_points_have_no_time(self):
        trk = _root(Snapshot(track=[TrackPoint(45, -93)])).find("gpx:trk", NS)
        assert trk.find("gpx:trkseg/gpx:trkpt/gpx:time", NS) is None
        assert trk.find("gpx:name", NS).text.startswith("Track ")


@pytest.mark.unit
class TestGpxEscaping:
    def test_markup_characters_well_formed(self):
        w = Waypoint(id="w1", name="Bob's <Stand> & \"Co\"", lat=45, lng=-93, notes="x > y")
        text = export_gpx(Snapshot(waypoints=[w]))
        wpt = ET.fromstring(text).find("gpx:wpt", NS)
        assert wpt.find("gpx:name", NS).text == "Bob's <Stand> & \"Co\""
        assert wpt.find("gpx:desc", NS).text == "x > y"
        assert "&lt;Stand&gt; &amp;" in text
