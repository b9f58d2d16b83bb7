"""Export a Snapshot to a KML 2.2 XML string.

Uses only xml.etree.ElementTree (stdlib); every name, note and metadata
string is escaped by the serializer, never spliced into markup.
KML coordinates are in "lng,lat,alt" order (longitude first).

Document layout:
    Folder "Markers"   one Point Placemark per waypoint, app metadata in
                       ExtendedData/Data[@name=app_meta]
    Folder "Drawings"  LineString / Polygon Placemarks for shapes
                       (circles tessellated), then the track as a gx:Track
                       when every point is timed, else a LineString
"""

from __future__ import annotations

import math
import xml.etree.ElementTree as ET

from fieldmap.config import settings
from fieldmap.geometry import LatLng, circle_to_ring
from fieldmap.model import (
    Shape,
    ShapeKind,
    Snapshot,
    TrackPoint,
    Waypoint,
    closed_ring,
)
from fieldmap.transfer.meta import pack_meta
from fieldmap.transfer.timefmt import to_iso

KML_NS = "http://www.opengis.net/kml/2.2"
GX_NS = "http://www.google.com/kml/ext/2.2"


def export_kml(
    snapshot: Snapshot,
    *,
    document_name: str = settings.app_name,
    circle_segments: int = settings.circle_segments,
    meta_key: str = settings.meta_key,
) -> str:
    """Export a Snapshot to a KML XML string.

    Args:
        snapshot: The map data to export.
        document_name: Text of Document/name.
        circle_segments: Ring resolution used for circles.
        meta_key: Name attribute of the ExtendedData entry.

    Returns:
        KML XML string.

    Raises:
        ValueError: If a coordinate is not finite.
    """
    kml = ET.Element("kml")
    kml.set("xmlns", KML_NS)
    kml.set("xmlns:gx", GX_NS)

    doc = ET.SubElement(kml, "Document")
    ET.SubElement(doc, "name").text = document_name

    markers = _folder(doc, "Markers")
    for waypoint in snapshot.waypoints:
        _write_waypoint(markers, waypoint, meta_key)

    drawings = _folder(doc, "Drawings")
    for shape in snapshot.shapes:
        _write_shape(drawings, shape, circle_segments)

    if snapshot.track:
        _write_track(drawings, snapshot.track)

    # Text escapes &, < and >; quotes stay literal in text nodes (still well-formed)
    return ET.tostring(kml, encoding="unicode", xml_declaration=True)


def _folder(parent: ET.Element, name: str) -> ET.Element:
    folder = ET.SubElement(parent, "Folder")
    ET.SubElement(folder, "name").text = name
    return folder


def _placemark(parent: ET.Element, name: str) -> ET.Element:
    pm = ET.SubElement(parent, "Placemark")
    ET.SubElement(pm, "name").text = name
    return pm


def _check_finite(lat: float, lng: float) -> None:
    if not (math.isfinite(lat) and math.isfinite(lng)):
        raise ValueError(f"non-finite coordinate: {lat}, {lng}")


def _coord(lat: float, lng: float) -> str:
    """Format one 'lng,lat,0' tuple."""
    _check_finite(lat, lng)
    return f"{lng},{lat},0"


def _coords_to_string(points: list[LatLng]) -> str:
    return " ".join(_coord(p.lat, p.lng) for p in points)


def _write_waypoint(parent: ET.Element, waypoint: Waypoint, meta_key: str) -> None:
    """Write a waypoint as a Point Placemark with app metadata."""
    pm = _placemark(parent, waypoint.name)

    # Generic viewers only show description; app_meta holds the real notes
    if waypoint.notes:
        ET.SubElement(pm, "description").text = waypoint.notes

    point = ET.SubElement(pm, "Point")
    ET.SubElement(point, "coordinates").text = _coord(waypoint.lat, waypoint.lng)

    extended = ET.SubElement(pm, "ExtendedData")
    data = ET.SubElement(extended, "Data")
    data.set("name", meta_key)
    ET.SubElement(data, "value").text = pack_meta(waypoint)


def _write_shape(parent: ET.Element, shape: Shape, circle_segments: int) -> None:
    if shape.kind is ShapeKind.POLYLINE:
        _write_linestring(_placemark(parent, shape.name), shape.vertices)
    elif shape.kind is ShapeKind.CIRCLE:
        ring = circle_to_ring(
            shape.center.lat, shape.center.lng, shape.radius_m, circle_segments,
        )
        _write_polygon(_placemark(parent, shape.name), ring)
    elif len(shape.parts) == 1:
        _write_polygon(_placemark(parent, shape.name), shape.parts[0])
    else:
        # KML Placemarks hold one geometry here; split multi-part polygons
        for idx, part in enumerate(shape.parts, start=1):
            _write_polygon(_placemark(parent, f"{shape.name} ({idx})"), part)


def _write_linestring(pm: ET.Element, points: list[LatLng]) -> None:
    ls = ET.SubElement(pm, "LineString")
    ET.SubElement(ls, "tessellate").text = "1"
    ET.SubElement(ls, "coordinates").text = _coords_to_string(points)


def _write_polygon(pm: ET.Element, ring: list[LatLng]) -> None:
    """Write a Polygon with a single closed outer boundary."""
    polygon = ET.SubElement(pm, "Polygon")
    outer = ET.SubElement(polygon, "outerBoundaryIs")
    linear_ring = ET.SubElement(outer, "LinearRing")
    ET.SubElement(linear_ring, "coordinates").text = _coords_to_string(
        closed_ring(ring)
    )


def _write_track(parent: ET.Element, track: list[TrackPoint]) -> None:
    """gx:Track when every point is timed, else an untimed LineString."""
    pm = _placemark(parent, "Track")

    if not all(p.t is not None for p in track):
        _write_linestring(pm, [p.position for p in track])
        return

    gx_track = ET.SubElement(pm, "gx:Track")
    for p in track:
        ET.SubElement(gx_track, "when").text = to_iso(p.t)
    for p in track:
        _check_finite(p.lat, p.lng)
        ET.SubElement(gx_track, "gx:coord").text = f"{p.lng} {p.lat} 0"
