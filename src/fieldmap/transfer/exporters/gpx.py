"""Export a Snapshot to a GPX 1.1 XML string.

Uses only xml.etree.ElementTree (stdlib).
GPX uses lat/lon attributes on elements (latitude first in attributes).

Waypoints become <wpt> with app metadata in <extensions>; shapes become
routes (<rte>), polygons and circles as closed routes over their ring;
the track becomes one <trk> with a single <trkseg>.
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
from fieldmap.transfer.timefmt import now_ms, to_date, to_iso

GPX_NS = "http://www.topografix.com/GPX/1/1"


def export_gpx(
    snapshot: Snapshot,
    *,
    creator: str = settings.app_name,
    circle_segments: int = settings.circle_segments,
    meta_key: str = settings.meta_key,
) -> str:
    """Export a Snapshot to a GPX 1.1 XML string.

    Args:
        snapshot: The map data to export.
        creator: Value of the gpx/@creator attribute.
        circle_segments: Ring resolution used for circles.
        meta_key: Tag of the <extensions> child holding app metadata.

    Returns:
        GPX XML string.

    Raises:
        ValueError: If a coordinate is not finite.
    """
    gpx = ET.Element("gpx")
    gpx.set("version", "1.1")
    gpx.set("creator", creator)
    gpx.set("xmlns", GPX_NS)

    for waypoint in snapshot.waypoints:
        _write_waypoint(gpx, waypoint, meta_key)

    for shape in snapshot.shapes:
        _write_shape(gpx, shape, circle_segments)

    if snapshot.track:
        _write_track(gpx, snapshot.track)

    # Text escapes &, < and >; quotes stay literal in text nodes (still well-formed)
    return ET.tostring(gpx, encoding="unicode", xml_declaration=True)


def _set_lat_lon(elem: ET.Element, lat: float, lng: float) -> None:
    if not (math.isfinite(lat) and math.isfinite(lng)):
        raise ValueError(f"non-finite coordinate: {lat}, {lng}")
    elem.set("lat", str(lat))
    elem.set("lon", str(lng))


def _write_waypoint(parent: ET.Element, waypoint: Waypoint, meta_key: str) -> None:
    """Write a waypoint as a <wpt> element."""
    wpt = ET.SubElement(parent, "wpt")
    _set_lat_lon(wpt, waypoint.lat, waypoint.lng)

    ET.SubElement(wpt, "name").text = waypoint.name
    if waypoint.notes:
        ET.SubElement(wpt, "desc").text = waypoint.notes

    extensions = ET.SubElement(wpt, "extensions")
    ET.SubElement(extensions, meta_key).text = pack_meta(waypoint)


def _write_route(parent: ET.Element, name: str, points: list[LatLng]) -> None:
    rte = ET.SubElement(parent, "rte")
    ET.SubElement(rte, "name").text = name
    for p in points:
        _set_lat_lon(ET.SubElement(rte, "rtept"), p.lat, p.lng)


def _write_shape(parent: ET.Element, shape: Shape, circle_segments: int) -> None:
    if shape.kind is ShapeKind.POLYLINE:
        _write_route(parent, shape.name, shape.vertices)
    elif shape.kind is ShapeKind.CIRCLE:
        ring = circle_to_ring(
            shape.center.lat, shape.center.lng, shape.radius_m, circle_segments,
        )
        _write_route(parent, shape.name, ring)
    elif len(shape.parts) == 1:
        _write_route(parent, f"{shape.name} (polygon)", closed_ring(shape.parts[0]))
    else:
        for idx, part in enumerate(shape.parts, start=1):
            _write_route(parent, f"{shape.name} (part {idx})", closed_ring(part))


def _write_track(parent: ET.Element, track: list[TrackPoint]) -> None:
    """Write the track as one <trk> with a single <trkseg>."""
    trk = ET.SubElement(parent, "trk")
    first_t = track[0].t if track[0].t is not None else now_ms()
    ET.SubElement(trk, "name").text = f"Track {to_date(first_t)}"

    trkseg = ET.SubElement(trk, "trkseg")
    for p in track:
        trkpt = ET.SubElement(trkseg, "trkpt")
        _set_lat_lon(trkpt, p.lat, p.lng)
        if p.t is not None:
            ET.SubElement(trkpt, "time").text = to_iso(p.t)
