"""Tests for the KML exporter — folders, placemarks, metadata, track."""

import json
import xml.etree.ElementTree as ET

import pytest

from fieldmap.geometry import LatLng
from fieldmap.model import Shape, ShapeKind, Snapshot, TrackPoint, Waypoint
from fieldmap.transfer.exporters.kml import GX_NS, KML_NS, export_kml

NS = {"kml": KML_NS, "gx": GX_NS}

TRIANGLE = [LatLng(45.0, -93.0), LatLng(45.001, -93.0), LatLng(45.001, -93.001)]


def _root(snapshot: Snapshot) -> ET.Element:
    return ET.fromstring(export_kml(snapshot))


def _folder(root: ET.Element, name: str) -> ET.Element:
    for folder in root.iter(f"{{{KML_NS}}}Folder"):
        if folder.findtext("kml:name", namespaces=NS) == name:
            return folder
    raise AssertionError(f"no folder {name!r}")


@pytest.mark.unit
class TestKmlDocument:
    def test_empty_snapshot_is_valid(self):
        root = _root(Snapshot())
        assert root.tag == f"{{{KML_NS}}}kml"
        assert root.find("kml:Document/kml:name", NS).text == "FieldMap"

    def test_custom_document_name(self):
        root = ET.fromstring(export_kml(Snapshot(), document_name="Farm"))
        assert root.find("kml:Document/kml:name", NS).text == "Farm"

    def test_markers_and_drawings_folders(self):
        root = _root(Snapshot())
        names = [f.findtext("kml:name", namespaces=NS) for f in root.iter(f"{{{KML_NS}}}Folder")]
        assert names == ["Markers", "Drawings"]


@pytest.mark.unit
class TestKmlWaypoints:
    def test_point_coordinates_lng_first(self):
        snap = Snapshot(waypoints=[Waypoint(id="w1", name="A", lat=45.5, lng=-93.25)])
        pm = _folder(_root(snap), "Markers").find("kml:Placemark", NS)
        assert pm.find("kml:Point/kml:coordinates", NS).text == "-93.25,45.5,0"

    def test_metadata_block(self):
        w = Waypoint(id="w1", name="A", lat=45, lng=-93, type="camera", notes="n", photo="data:x")
        pm = _folder(_root(Snapshot(waypoints=[w])), "Markers").find("kml:Placemark", NS)
        data = pm.find("kml:ExtendedData/kml:Data", NS)
        assert data.get("name") == "app_meta"
        meta = json.loads(data.find("kml:value", NS).text)
        assert meta == {"id": "w1", "type": "camera", "notes": "n", "photo": "data:x"}

    def test_description_only_with_notes(self):
        w = Waypoint(id="w1", name="A", lat=45, lng=-93)
        pm = _folder(_root(Snapshot(waypoints=[w])), "Markers").find("kml:Placemark", NS)
        assert pm.find("kml:description", NS) is None

    def test_special_characters_escaped(self):
        """Names with markup characters still produce well-formed XML."""
        w = Waypoint(id="w1", name="Bob's <Stand> & \"Co\"", lat=45, lng=-93, notes="a < b")
        text = export_kml(Snapshot(waypoints=[w]))
        pm = ET.fromstring(text).find(".//kml:Placemark", NS)
        assert pm.find("kml:name", NS).text == "Bob's <Stand> & \"Co\""
        assert pm.find("kml:description", NS).text == "a < b"
        assert "&lt;Stand&gt; &amp;" in text

    def test_non_finite_coordinate_rejected(self):
        w = Waypoint(id="w1", name="A", lat=float("nan"), lng=-93)
        with pytest.raises(ValueError):
            export_kml(Snapshot(waypoints=[w]))


@pytest.mark.unit
class TestKmlShapes:
    def test_polyline(self):
        snap = Snapshot(shapes=[Shape.polyline("Fence", TRIANGLE[:2])])
        pm = _folder(_root(snap), "Drawings").find("kml:Placemark", NS)
        assert pm.find("kml:LineString/kml:tessellate", NS).text == "1"
        coords = pm.find("kml:LineString/kml:coordinates", NS).text.split()
        assert coords == ["-93.0,45.0,0", "-93.0,45.001,0"]

    def test_polygon_ring_closed(self):
        snap = Snapshot(shapes=[Shape.polygon("Field", TRIANGLE)])
        coords = _root(snap).find(".//kml:Polygon//kml:coordinates", NS).text.split()
        assert len(coords) == 4
        assert coords[0] == coords[-1]

    def test_circle_ring_has_65_points(self):
        snap = Snapshot(shapes=[Shape.circle("Bait", LatLng(45, -93), 30)])
        coords = _root(snap).find(".//kml:Polygon//kml:coordinates", NS).text.split()
        assert len(coords) == 65
        assert coords[0] == coords[-1]

    def test_multi_part_polygon_split(self):
        shape = Shape(ShapeKind.POLYGON, "Parcels", parts=[TRIANGLE, TRIANGLE])
        placemarks = _folder(_root(Snapshot(shapes=[shape])), "Drawings").findall("kml:Placemark", NS)
        assert [pm.find("kml:name", NS).text for pm in placemarks] == [
            "Parcels (1)",
            "Parcels (2)",
        ]


@pytest.mark.unit
class TestKmlTrack:
    def test_timed_track_is_gx_track(self):
        track = [TrackPoint(45.0, -93.0, 0), TrackPoint(45.001, -93.0, 60_000)]
        gx_track = _root(Snapshot(track=track)).find(".//gx:Track", NS)
        whens = [w.text for w in gx_track.findall("kml:when", NS)]
        coords = [c.text for c in gx_track.findall("gx:coord", NS)]
        assert whens == ["1970-01-01T00:00:00.000Z", "1970-01-01T00:01:00.000Z"]
        assert coords == ["-93.0 45.0 0", "-93.0 45.001 0"]

    def test_track_in_drawings_folder(self):
        track = [TrackPoint(45.0, -93.0, 0), TrackPoint(45.001, -93.0, 1)]
        pm = _folder(_root(Snapshot(track=track)), "Drawings").find("kml:Placemark", NS)
        assert pm.find("kml:name", NS).text == "Track"

    def test_untimed_track_is_linestring(self):
        track = [TrackPoint(45.0, -93.0), TrackPoint(45.001, -93.0, 5)]
        root = _root(Snapshot(track=track))
        assert root.find(".//gx:Track", NS) is None
        assert root.find(".//kml:LineString", NS) is not None
