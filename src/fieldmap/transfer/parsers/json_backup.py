"""Parse the JSON backup, or bare GeoJSON, into map collaborators.

The document is decoded completely into a JsonImportPlan before anything
is written, so a file that fails to parse leaves the map untouched.

Top-level keys are handled independently:
    drawings            full backup: shapes are cleared and replaced
    type=FeatureCollection/Feature
                        bare GeoJSON: features are merged into the shapes
    markers             waypoints are cleared and replaced
    track               the track is replaced

Coordinates in GeoJSON are [lng, lat] (RFC 7946).
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass

from loguru import logger

from fieldmap.geometry import LatLng, is_valid_coordinate
from fieldmap.model import (
    Shape,
    ShapeKind,
    Snapshot,
    TrackPoint,
    Waypoint,
    new_waypoint_id,
    normalize_type,
)
from fieldmap.stores import MapTarget, memory_target
from fieldmap.transfer.summary import ImportSummary


@dataclass
class JsonImportPlan:
    """Decoded content of a JSON document, not yet applied.

    Attributes:
        replace_shapes: Shapes from a full backup (None = no ``drawings``).
        merge_shapes: Shapes from bare GeoJSON, added to existing ones.
        waypoints: Replacement waypoints (None = no ``markers`` key).
        track: Replacement track (None = no ``track`` key).
        skipped: Entries dropped as malformed.
    """

    replace_shapes: list[Shape] | None = None
    merge_shapes: list[Shape] | None = None
    waypoints: list[Waypoint] | None = None
    track: list[TrackPoint] | None = None
    skipped: int = 0


def parse_json_document(json_string: str) -> JsonImportPlan:
    """Decode a backup or GeoJSON document.

    Raises:
        json.JSONDecodeError: If the text is not JSON.
        ValueError: If the top-level value is not a JSON object.
    """
    data = json.loads(json_string)
    if not isinstance(data, dict):
        raise ValueError("top-level JSON value must be an object")

    plan = JsonImportPlan()

    drawings = data.get("drawings")
    if isinstance(drawings, dict):
        shapes: list[Shape] = []
        geojson = drawings.get("geojson")
        if isinstance(geojson, dict):
            shapes.extend(_shapes_from_geojson(geojson, plan))
        circles = drawings.get("circles")
        if isinstance(circles, list):
            for raw in circles:
                circle = _parse_circle(raw)
                if circle is None:
                    plan.skipped += 1
                else:
                    shapes.append(circle)
        plan.replace_shapes = shapes
    elif data.get("type") in ("FeatureCollection", "Feature"):
        plan.merge_shapes = _shapes_from_geojson(data, plan)

    markers = data.get("markers")
    if isinstance(markers, list):
        plan.waypoints = []
        for raw in markers:
            waypoint = _parse_marker(raw)
            if waypoint is None:
                plan.skipped += 1
            else:
                plan.waypoints.append(waypoint)

    track = data.get("track")
    if isinstance(track, list):
        plan.track = []
        for raw in track:
            point = _parse_track_point(raw)
            if point is None:
                plan.skipped += 1
            else:
                plan.track.append(point)

    return plan


def apply_plan(plan: JsonImportPlan, target: MapTarget) -> ImportSummary:
    """Write a decoded plan into the collaborators."""
    summary = ImportSummary(format="json", skipped=plan.skipped)

    if plan.replace_shapes is not None:
        target.shapes.clear()
        for shape in plan.replace_shapes:
            target.shapes.insert(shape)
        summary.shapes = len(plan.replace_shapes)
    elif plan.merge_shapes is not None:
        for shape in plan.merge_shapes:
            target.shapes.insert(shape)
        summary.shapes = len(plan.merge_shapes)

    if plan.waypoints is not None:
        target.waypoints.clear()
        for waypoint in plan.waypoints:
            target.waypoints.insert(waypoint)
        summary.waypoints = len(plan.waypoints)

    if plan.track is not None:
        target.track.replace(plan.track)
        summary.track_points = len(plan.track)

    return summary


def import_json(json_string: str, target: MapTarget) -> ImportSummary:
    """Decode the whole document, then apply it."""
    return apply_plan(parse_json_document(json_string), target)


def parse_json(json_string: str) -> Snapshot:
    """Parse a JSON document into a standalone Snapshot."""
    target = memory_target()
    import_json(json_string, target)
    return target.snapshot()


# ---------------------------------------------------------------------------
# GeoJSON features
# ---------------------------------------------------------------------------

def _shapes_from_geojson(data: dict, plan: JsonImportPlan) -> list[Shape]:
    if data.get("type") == "FeatureCollection":
        raw_features = data.get("features")
        if not isinstance(raw_features, list):
            return []
    elif data.get("type") == "Feature":
        raw_features = [data]
    else:
        return []

    shapes: list[Shape] = []
    for raw in raw_features:
        parsed = _parse_feature(raw)
        if parsed:
            shapes.extend(parsed)
        else:
            plan.skipped += 1
    return shapes


def _to_latlngs(coords: object) -> list[LatLng]:
    """[[lng, lat, ...], ...] -> LatLng list.  Raises ValueError on bad input."""
    if not isinstance(coords, list):
        raise ValueError("coordinates must be a list")
    points = []
    for c in coords:
        if not isinstance(c, list) or len(c) < 2:
            raise ValueError(f"bad position: {c!r}")
        lng, lat = float(c[0]), float(c[1])
        if not is_valid_coordinate(lat, lng):
            raise ValueError(f"position out of range: {c!r}")
        points.append(LatLng(lat, lng))
    return points


def _outer_ring(polygon_coords: object) -> list[LatLng]:
    if not isinstance(polygon_coords, list) or not polygon_coords:
        raise ValueError("polygon has no rings")
    return _to_latlngs(polygon_coords[0])


def _parse_feature(raw: object) -> list[Shape]:
    """Shapes for one GeoJSON Feature; empty list if unusable."""
    if not isinstance(raw, dict):
        return []
    geometry = raw.get("geometry")
    if not isinstance(geometry, dict):
        return []
    properties = raw.get("properties")
    if not isinstance(properties, dict):
        properties = {}

    name = properties.get("name")
    name = name if isinstance(name, str) else ""
    geom_type = geometry.get("type")
    coords = geometry.get("coordinates")

    try:
        if geom_type == "LineString":
            return [Shape.polyline(name, _to_latlngs(coords))]
        if geom_type == "MultiLineString" and isinstance(coords, list):
            return [Shape.polyline(name, _to_latlngs(line)) for line in coords]
        if geom_type == "Polygon":
            kind = (
                ShapeKind.RECTANGLE
                if properties.get("shapeType") == "rectangle"
                else ShapeKind.POLYGON
            )
            return [Shape(kind, name, parts=[_outer_ring(coords)])]
        if geom_type == "MultiPolygon" and isinstance(coords, list):
            parts = [_outer_ring(poly) for poly in coords]
            return [Shape(ShapeKind.POLYGON, name, parts=parts)]
    except (ValueError, TypeError, OverflowError) as e:
        logger.debug(f"Skipping GeoJSON feature {name!r}: {e}")
        return []

    logger.debug(f"Skipping unsupported GeoJSON geometry: {geom_type!r}")
    return []


# ---------------------------------------------------------------------------
# Circles, markers, track
# ---------------------------------------------------------------------------

def _parse_circle(raw: object) -> Shape | None:
    if not isinstance(raw, dict):
        return None
    properties = raw.get("properties")
    name = properties.get("name") if isinstance(properties, dict) else None
    try:
        lat = float(raw["lat"])
        lng = float(raw["lng"])
        if not is_valid_coordinate(lat, lng):
            raise ValueError(f"center out of range: {lat}, {lng}")
        radius = float(raw["radius"])
        if not math.isfinite(radius):
            raise ValueError(f"radius not finite: {radius}")
        return Shape.circle(
            name if isinstance(name, str) else "", LatLng(lat, lng), radius,
        )
    except (KeyError, TypeError, ValueError, OverflowError) as e:
        logger.debug(f"Skipping circle: {e}")
        return None


def _parse_marker(raw: object) -> Waypoint | None:
    if not isinstance(raw, dict):
        return None
    try:
        lat = float(raw["lat"])
        lng = float(raw["lng"])
    except (KeyError, TypeError, ValueError, OverflowError):
        logger.debug("Skipping marker without usable lat/lng")
        return None
    if not is_valid_coordinate(lat, lng):
        logger.debug(f"Skipping marker out of range: {lat}, {lng}")
        return None

    def text(key: str) -> str:
        value = raw.get(key)
        return value if isinstance(value, str) else ""

    return Waypoint(
        id=text("id") or new_waypoint_id(),
        name=text("name"),
        lat=lat,
        lng=lng,
        type=normalize_type(raw.get("type")),
        notes=text("notes"),
        photo=text("photo"),
    )


def _parse_track_point(raw: object) -> TrackPoint | None:
    if not isinstance(raw, dict):
        return None
    try:
        lat = float(raw["lat"])
        lng = float(raw["lng"])
    except (KeyError, TypeError, ValueError, OverflowError):
        return None
    if not is_valid_coordinate(lat, lng):
        return None
    t = raw.get("t")
    if isinstance(t, bool) or not isinstance(t, (int, float)) or not math.isfinite(t):
        t = None
    return TrackPoint(lat=lat, lng=lng, t=int(t) if t is not None else None)
