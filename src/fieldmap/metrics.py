"""Derived shape and track metrics.

Nothing here is stored; metrics are recomputed from geometry whenever a
caller asks.  Text formatting mirrors the map readouts: feet under a mile,
acres from one acre up.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from fieldmap.geometry import (
    polygon_area,
    polygon_perimeter,
    polyline_length,
)
from fieldmap.model import Shape, ShapeKind, TrackPoint

FEET_PER_METER = 3.28084
FEET_PER_MILE = 5280
SQ_METERS_PER_ACRE = 4046.85642


@dataclass
class ShapeMetrics:
    kind: str
    length_m: float = 0.0
    perimeter_m: float = 0.0
    area_m2: float = 0.0

    @property
    def acres(self) -> float:
        return self.area_m2 / SQ_METERS_PER_ACRE

    def to_dict(self) -> dict:
        d = {"kind": self.kind}
        if self.kind == ShapeKind.POLYLINE.value:
            d["length_m"] = self.length_m
            d["length_text"] = format_distance(self.length_m)
        else:
            d["perimeter_m"] = self.perimeter_m
            d["perimeter_text"] = format_distance(self.perimeter_m)
            d["area_m2"] = self.area_m2
            d["acres"] = self.acres
            d["area_text"] = format_area(self.area_m2)
        return d


@dataclass
class TrackStats:
    points: int
    distance_m: float
    duration_ms: int

    def to_dict(self) -> dict:
        seconds = self.duration_ms // 1000
        return {
            "points": self.points,
            "distance_m": self.distance_m,
            "distance_text": format_distance(self.distance_m),
            "duration_ms": self.duration_ms,
            "duration_text": f"{seconds // 60}:{seconds % 60:02d}",
        }


def shape_metrics(shape: Shape) -> ShapeMetrics:
    """Length for polylines; perimeter and area for everything else."""
    if shape.is_area:
        # Multi-part polygons sum over parts
        return ShapeMetrics(
            kind=shape.kind.value,
            perimeter_m=sum(polygon_perimeter(p) for p in shape.parts),
            area_m2=sum(polygon_area(p) for p in shape.parts),
        )
    if shape.kind is ShapeKind.CIRCLE:
        r = shape.radius_m
        return ShapeMetrics(
            kind=shape.kind.value,
            perimeter_m=2 * math.pi * r,
            area_m2=math.pi * r * r,
        )
    return ShapeMetrics(
        kind=shape.kind.value, length_m=polyline_length(shape.vertices),
    )


def track_stats(points: list[TrackPoint]) -> TrackStats:
    """Point count, path length, and elapsed time between first/last fix."""
    distance_m = polyline_length(p.position for p in points)
    duration_ms = 0
    if len(points) > 1 and points[0].t is not None and points[-1].t is not None:
        duration_ms = max(0, points[-1].t - points[0].t)
    return TrackStats(
        points=len(points), distance_m=distance_m, duration_ms=duration_ms,
    )


def format_distance(meters: float) -> str:
    feet = meters * FEET_PER_METER
    if feet >= FEET_PER_MILE:
        return f"{feet / FEET_PER_MILE:.2f} mi"
    return f"{round(feet)} ft"


def format_area(square_meters: float) -> str:
    acres = square_meters / SQ_METERS_PER_ACRE
    if acres >= 1:
        return f"{acres:.2f} ac"
    return f"{round(square_meters)} m²"
