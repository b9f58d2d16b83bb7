"""Parse GPX 1.1 XML into map collaborators using xml.etree.ElementTree.

Handles wpt (waypoint), rte/rtept (route -> polyline or polygon) and the
first trk (all trkseg/trkpt -> the track).

GPX uses lat/lon attributes on elements (latitude first).

A route is read back as a polygon when it has more than two points and
its first and last points differ by less than ``closed_epsilon`` degrees
in both latitude and longitude; otherwise it is a polyline.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

from loguru import logger

from fieldmap.config import settings
from fieldmap.geometry import LatLng, is_valid_coordinate
from fieldmap.model import Shape, Snapshot, TrackPoint
from fieldmap.stores import MapTarget, memory_target
from fieldmap.transfer.meta import resolve_waypoint
from fieldmap.transfer.summary import ImportSummary
from fieldmap.transfer.timefmt import now_ms, parse_iso

# Exporter suffix for closed routes; dropped again on import
_POLYGON_SUFFIX = " (polygon)"


def import_gpx(
    gpx_string: str,
    target: MapTarget,
    *,
    closed_epsilon: float = settings.closed_ring_epsilon,
    meta_key: str = settings.meta_key,
) -> ImportSummary:
    """Parse GPX and insert each feature into target as it is read.

    Args:
        gpx_string: Raw GPX XML content.
        target: Collaborators receiving waypoints, shapes and the track.
        closed_epsilon: Endpoint tolerance (degrees) for closed routes.
        meta_key: Tag of the app metadata element inside <extensions>.

    Returns:
        ImportSummary with per-kind counts.

    Raises:
        xml.etree.ElementTree.ParseError: If the text is not well-formed XML.
    """
    root = ET.fromstring(gpx_string)
    ns = _detect_namespace(root)
    summary = ImportSummary(format="gpx")

    for wpt in root.iter(f"{ns}wpt"):
        if not _import_waypoint(wpt, ns, target, summary, meta_key):
            summary.skipped += 1

    for rte in root.iter(f"{ns}rte"):
        if not _import_route(rte, ns, target, summary, closed_epsilon):
            summary.skipped += 1

    trk = root.find(f".//{ns}trk")
    if trk is not None and not _import_track(trk, ns, target, summary):
        summary.skipped += 1

    return summary


def parse_gpx(
    gpx_string: str,
    *,
    closed_epsilon: float = settings.closed_ring_epsilon,
    meta_key: str = settings.meta_key,
) -> Snapshot:
    """Parse GPX into a standalone Snapshot."""
    target = memory_target()
    import_gpx(gpx_string, target, closed_epsilon=closed_epsilon, meta_key=meta_key)
    return target.snapshot()


def is_closed_route(points: list[LatLng], epsilon: float) -> bool:
    """True if the route has > 2 points and its ends coincide within epsilon."""
    if len(points) <= 2:
        return False
    first, last = points[0], points[-1]
    return abs(first.lat - last.lat) < epsilon and abs(first.lng - last.lng) < epsilon


def _detect_namespace(root: ET.Element) -> str:
    """Detect GPX namespace from root tag."""
    tag = root.tag
    if "{" in tag:
        return tag.split("}")[0] + "}"
    return ""


def _get_child_text(parent: ET.Element, tag: str, ns: str) -> str:
    """Get text of a direct child element."""
    elem = parent.find(f"{ns}{tag}")
    if elem is not None and elem.text:
        return elem.text.strip()
    return ""


def _parse_lat_lon(elem: ET.Element) -> LatLng | None:
    """LatLng from lat/lon attributes, None if missing or invalid."""
    try:
        lat = float(elem.get("lat", ""))
        lon = float(elem.get("lon", ""))
    except ValueError:
        return None
    if not is_valid_coordinate(lat, lon):
        return None
    return LatLng(lat, lon)


def _find_meta(wpt: ET.Element, ns: str, meta_key: str) -> str | None:
    """Text of extensions/<meta_key>, in the GPX namespace or none."""
    extensions = wpt.find(f"{ns}extensions")
    if extensions is None:
        return None
    for child in extensions:
        if child.tag.rsplit("}", 1)[-1] == meta_key and child.text:
            return child.text
    return None


def _import_waypoint(
    wpt: ET.Element,
    ns: str,
    target: MapTarget,
    summary: ImportSummary,
    meta_key: str,
) -> bool:
    pos = _parse_lat_lon(wpt)
    if pos is None:
        logger.debug("Skipping GPX wpt with missing or invalid lat/lon")
        return False

    waypoint = resolve_waypoint(
        _get_child_text(wpt, "name", ns),
        pos.lat,
        pos.lng,
        _find_meta(wpt, ns, meta_key),
        description=_get_child_text(wpt, "desc", ns),
    )
    target.waypoints.insert(waypoint)
    summary.waypoints += 1
    return True


def _import_route(
    rte: ET.Element,
    ns: str,
    target: MapTarget,
    summary: ImportSummary,
    closed_epsilon: float,
) -> bool:
    """Import a rte as a polygon (closed) or polyline (open)."""
    name = _get_child_text(rte, "name", ns)
    points = [
        pos
        for pos in (_parse_lat_lon(p) for p in rte.findall(f"{ns}rtept"))
        if pos is not None
    ]

    try:
        if is_closed_route(points, closed_epsilon):
            if name.endswith(_POLYGON_SUFFIX):
                name = name[: -len(_POLYGON_SUFFIX)]
            shape = Shape.polygon(name, points)
        else:
            shape = Shape.polyline(name, points)
    except ValueError as e:
        logger.debug(f"Skipping GPX route {name!r}: {e}")
        return False

    target.shapes.insert(shape)
    summary.shapes += 1
    return True


def _import_track(
    trk: ET.Element, ns: str, target: MapTarget, summary: ImportSummary,
) -> bool:
    """Replace the track with every trkpt of this trk, in document order."""
    points: list[TrackPoint] = []
    for trkpt in trk.iter(f"{ns}trkpt"):
        pos = _parse_lat_lon(trkpt)
        if pos is None:
            continue
        t = parse_iso(_get_child_text(trkpt, "time", ns))
        points.append(
            TrackPoint(lat=pos.lat, lng=pos.lng, t=t if t is not None else now_ms())
        )

    if not points:
        logger.debug("Skipping GPX trk with no usable points")
        return False

    target.track.replace(points)
    summary.track_points = len(points)
    return True
