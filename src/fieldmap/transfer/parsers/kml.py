"""Parse KML 2.2 XML into map collaborators using xml.etree.ElementTree.

Every Placemark is examined; the first geometry that matches wins:
    Point      -> waypoint (app metadata from ExtendedData, else description)
    LineString -> polyline shape
    Polygon    -> polygon shape (outer boundary)
    gx:Track   -> replaces the track

KML coordinate format: "lng,lat,alt lng,lat,alt" (longitude first).
Files from other tools sometimes put spaces after the commas; both
separators are tolerated.

Unsupported or malformed Placemarks are skipped.  Only a document that is
not XML at all raises (xml.etree.ElementTree.ParseError).
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from typing import Callable

from loguru import logger

from fieldmap.config import settings
from fieldmap.geometry import LatLng, is_valid_coordinate
from fieldmap.model import Shape, Snapshot, TrackPoint
from fieldmap.stores import MapTarget, memory_target
from fieldmap.transfer.meta import resolve_waypoint
from fieldmap.transfer.summary import ImportSummary
from fieldmap.transfer.timefmt import now_ms, parse_iso

# Google extension namespace (gx:Track, gx:coord)
_GX = "{http://www.google.com/kml/ext/2.2}"

_COMMA = re.compile(r"\s*,\s*")
_SEPARATORS = re.compile(r"[\s,]+")


def import_kml(
    kml_string: str, target: MapTarget, *, meta_key: str = settings.meta_key,
) -> ImportSummary:
    """Parse KML and insert each feature into target as it is read.

    Args:
        kml_string: Raw KML XML content.
        target: Collaborators receiving waypoints, shapes and the track.
        meta_key: Name attribute of the app metadata Data entry.

    Returns:
        ImportSummary with per-kind counts.

    Raises:
        xml.etree.ElementTree.ParseError: If the text is not well-formed XML.
    """
    root = ET.fromstring(kml_string)
    ns = _detect_namespace(root)
    summary = ImportSummary(format="kml")

    for pm in root.iter(f"{ns}Placemark"):
        if not _import_placemark(pm, ns, target, summary, meta_key):
            summary.skipped += 1

    return summary


def parse_kml(kml_string: str, *, meta_key: str = settings.meta_key) -> Snapshot:
    """Parse KML into a standalone Snapshot."""
    target = memory_target()
    import_kml(kml_string, target, meta_key=meta_key)
    return target.snapshot()


def _detect_namespace(root: ET.Element) -> str:
    """Detect KML namespace from root element tag."""
    tag = root.tag
    if "{" in tag:
        return tag.split("}")[0] + "}"
    return ""


def _get_text(parent: ET.Element, tag: str, ns: str) -> str:
    """Get text of a direct child element."""
    elem = parent.find(f"{ns}{tag}")
    if elem is not None and elem.text:
        return elem.text.strip()
    return ""


def _find_meta(pm: ET.Element, ns: str, meta_key: str) -> str | None:
    """Text of ExtendedData/Data[@name=meta_key]/value, if any."""
    for data in pm.iter(f"{ns}Data"):
        if data.get("name") == meta_key:
            value = data.find(f"{ns}value")
            if value is not None and value.text:
                return value.text
    return None


def _parse_coordinate_string(coord_str: str) -> list[LatLng]:
    """Parse 'lng,lat[,alt] lng,lat[,alt] ...' into LatLng points.

    Tuples that do not parse, or fall outside valid ranges, are dropped.
    """
    coords = []
    for token in _COMMA.sub(",", coord_str.strip()).split():
        parts = token.split(",")
        if len(parts) < 2:
            continue
        try:
            lng = float(parts[0])
            lat = float(parts[1])
        except ValueError:
            continue
        if is_valid_coordinate(lat, lng):
            coords.append(LatLng(lat, lng))
    return coords


def _coordinates_text(geom: ET.Element, ns: str) -> str:
    elem = geom.find(f".//{ns}coordinates")
    if elem is None or not elem.text:
        return ""
    return elem.text


def _import_placemark(
    pm: ET.Element,
    ns: str,
    target: MapTarget,
    summary: ImportSummary,
    meta_key: str,
) -> bool:
    """Import one Placemark.  Returns False if it was skipped."""
    name = _get_text(pm, "name", ns)

    point = pm.find(f".//{ns}Point")
    if point is not None:
        return _import_point(pm, point, name, ns, target, summary, meta_key)

    linestring = pm.find(f".//{ns}LineString")
    if linestring is not None:
        return _insert_shape(
            lambda: Shape.polyline(
                name, _parse_coordinate_string(_coordinates_text(linestring, ns))
            ),
            name, target, summary,
        )

    polygon = pm.find(f".//{ns}Polygon")
    if polygon is not None:
        return _insert_shape(
            lambda: Shape.polygon(name, _parse_outer_ring(polygon, ns)),
            name, target, summary,
        )

    track = pm.find(f".//{_GX}Track")
    if track is not None:
        return _import_track(track, ns, target, summary)

    logger.debug(f"Skipping KML placemark without supported geometry: {name!r}")
    return False


def _import_point(
    pm: ET.Element,
    point: ET.Element,
    name: str,
    ns: str,
    target: MapTarget,
    summary: ImportSummary,
    meta_key: str,
) -> bool:
    values = _SEPARATORS.split(_coordinates_text(point, ns).strip())
    try:
        lng = float(values[0])
        lat = float(values[1])
    except (ValueError, IndexError):
        logger.debug(f"Skipping KML point with bad coordinates: {name!r}")
        return False
    if not is_valid_coordinate(lat, lng):
        logger.debug(f"Skipping KML point out of range: {name!r} ({lat}, {lng})")
        return False

    waypoint = resolve_waypoint(
        name,
        lat,
        lng,
        _find_meta(pm, ns, meta_key),
        description=_get_text(pm, "description", ns),
    )
    target.waypoints.insert(waypoint)
    summary.waypoints += 1
    return True


def _parse_outer_ring(polygon: ET.Element, ns: str) -> list[LatLng]:
    """Outer boundary ring; falls back to the first coordinates found."""
    outer = polygon.find(f"{ns}outerBoundaryIs")
    if outer is not None:
        return _parse_coordinate_string(_coordinates_text(outer, ns))
    return _parse_coordinate_string(_coordinates_text(polygon, ns))


def _insert_shape(
    build: Callable[[], Shape],
    name: str,
    target: MapTarget,
    summary: ImportSummary,
) -> bool:
    try:
        shape = build()
    except ValueError as e:
        logger.debug(f"Skipping KML shape {name!r}: {e}")
        return False
    target.shapes.insert(shape)
    summary.shapes += 1
    return True


def _import_track(
    track: ET.Element, ns: str, target: MapTarget, summary: ImportSummary,
) -> bool:
    """Replace the track with the gx:Track's points.

    <when> and <gx:coord> are parallel lists; a coord without a matching
    parseable <when> is stamped with the current time.
    """
    whens = [parse_iso(w.text) for w in track.iter(f"{ns}when")]
    points: list[TrackPoint] = []
    for i, coord in enumerate(track.iter(f"{_GX}coord")):
        values = (coord.text or "").split()
        try:
            lng = float(values[0])
            lat = float(values[1])
        except (ValueError, IndexError):
            continue
        if not is_valid_coordinate(lat, lng):
            continue
        t = whens[i] if i < len(whens) and whens[i] is not None else now_ms()
        points.append(TrackPoint(lat=lat, lng=lng, t=t))

    if not points:
        logger.debug("Skipping gx:Track with no usable points")
        return False

    target.track.replace(points)
    summary.track_points = len(points)
    return True
