"""Spherical geometry kernel — distance, bearing, projection, area.

Everything here works on a sphere of radius 6 378 137 m (the WGS84
equatorial radius).  Ellipsoidal corrections are not applied; at field
scale (tens of km) the error is well under a percent.

Convention:
    - Coordinates are decimal degrees, latitude first in function arguments
    - Bearing 0 = North, clockwise in degrees
    - Distances and areas are meters / square meters

Functions do not validate input.  NaN or infinite coordinates propagate
NaN through every result; use is_valid_coordinate() at the boundary.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

EARTH_RADIUS_M = 6_378_137.0


@dataclass(frozen=True)
class LatLng:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float


def is_valid_coordinate(lat: float, lng: float) -> bool:
    """True if lat/lng are finite and inside the valid degree ranges."""
    return (
        math.isfinite(lat)
        and math.isfinite(lng)
        and -90.0 <= lat <= 90.0
        and -180.0 <= lng <= 180.0
    )


def distance(a: LatLng, b: LatLng) -> float:
    """Great-circle (haversine) distance in meters."""
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlat = lat2 - lat1
    dlng = math.radians(b.lng - a.lng)
    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def bearing(a: LatLng, b: LatLng) -> float:
    """Initial great-circle bearing from a to b, in degrees [0, 360)."""
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlng = math.radians(b.lng - a.lng)
    y = math.sin(dlng) * math.cos(lat2)
    x = (
        math.cos(lat1) * math.sin(lat2)
        - math.sin(lat1) * math.cos(lat2) * math.cos(dlng)
    )
    return (math.degrees(math.atan2(y, x)) + 360.0) % 360.0


def destination_point(
    lat: float, lng: float, bearing_deg: float, dist_m: float,
) -> LatLng:
    """Point reached travelling dist_m from (lat, lng) on the given bearing."""
    br = math.radians(bearing_deg)
    lat1 = math.radians(lat)
    lng1 = math.radians(lng)
    dr = dist_m / EARTH_RADIUS_M

    lat2 = math.asin(
        math.sin(lat1) * math.cos(dr)
        + math.cos(lat1) * math.sin(dr) * math.cos(br)
    )
    lng2 = lng1 + math.atan2(
        math.sin(br) * math.sin(dr) * math.cos(lat1),
        math.cos(dr) - math.sin(lat1) * math.sin(lat2),
    )
    return LatLng(math.degrees(lat2), math.degrees(lng2))


def circle_to_ring(
    lat: float, lng: float, radius_m: float, segments: int = 64,
) -> list[LatLng]:
    """Tessellate a circle into a closed ring of segments + 1 points.

    Bearings step from 0 to 360 degrees in 360/segments increments.  The
    final point is the first point itself, so the ring closes exactly
    regardless of floating-point drift at 360 degrees.
    """
    ring = [
        destination_point(lat, lng, i * 360.0 / segments, radius_m)
        for i in range(segments)
    ]
    ring.append(ring[0])
    return ring


def _open_ring(vertices: Sequence[LatLng]) -> Sequence[LatLng]:
    """Drop a repeated closing vertex."""
    if len(vertices) > 1 and vertices[-1] == vertices[0]:
        return vertices[:-1]
    return vertices


def _project(vertices: Sequence[LatLng]) -> list[tuple[float, float]]:
    """Equirectangular projection about the mean latitude, in meters.

    Coordinates are offsets from the first vertex so the shoelace sum
    works on small numbers.
    """
    lat0 = math.radians(sum(v.lat for v in vertices) / len(vertices))
    k = math.cos(lat0)
    origin = vertices[0]
    return [
        (
            EARTH_RADIUS_M * math.radians(v.lng - origin.lng) * k,
            EARTH_RADIUS_M * math.radians(v.lat - origin.lat),
        )
        for v in vertices
    ]


def polygon_area(vertices: Sequence[LatLng]) -> float:
    """Planar shoelace area in square meters.

    A planar approximation: good for parcel-sized rings, increasingly
    optimistic for rings spanning hundreds of km.  A repeated closing
    vertex is ignored.
    """
    vertices = _open_ring(vertices)
    if len(vertices) < 3:
        return 0.0
    pts = _project(vertices)
    area = 0.0
    j = len(pts) - 1
    for i in range(len(pts)):
        area += pts[j][0] * pts[i][1] - pts[i][0] * pts[j][1]
        j = i
    return abs(area) / 2.0


def polygon_perimeter(vertices: Sequence[LatLng]) -> float:
    """Perimeter in meters, including the closing edge.

    Edges are great-circle distances while polygon_area() is planar; the
    two are not mutually consistent for very large rings.
    """
    n = len(vertices)
    if n < 2:
        return 0.0
    return sum(distance(vertices[i], vertices[(i + 1) % n]) for i in range(n))


def polyline_length(vertices: Iterable[LatLng]) -> float:
    """Sum of great-circle distances between consecutive vertices."""
    total = 0.0
    prev = None
    for v in vertices:
        if prev is not None:
            total += distance(prev, v)
        prev = v
    return total
