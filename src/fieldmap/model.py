"""Map data model — waypoints, drawn shapes, the GPS track, and Snapshot.

Snapshot is the pivot every exporter consumes and every parser produces.
Shapes are a single dataclass tagged by ShapeKind; code that needs to tell
a circle from a polygon switches on ``shape.kind``.

Coordinates inside the model are LatLng (lat first).  GeoJSON output uses
[lng, lat] order, as RFC 7946 requires.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum

from fieldmap.geometry import LatLng

# All supported waypoint types -> display label
WAYPOINT_TYPES: dict[str, str] = {
    "stand": "Tree Stand",
    "blind": "Ground Blind",
    "buck": "Buck",
    "doe": "Doe",
    "blood": "Blood Trail",
    "scrape": "Scrape",
    "rub": "Rub",
    "trail": "Trail",
    "camera": "Trail Camera",
    "food": "Food Plot",
    "water": "Water Source",
    "camp": "Camp",
    "truck": "Truck / Parking",
    "hazard": "Hazard",
}

DEFAULT_WAYPOINT_TYPE = "stand"


def new_waypoint_id() -> str:
    return uuid.uuid4().hex[:12]


def normalize_type(value: object) -> str:
    """Map an arbitrary type tag to one of WAYPOINT_TYPES."""
    if isinstance(value, str) and value in WAYPOINT_TYPES:
        return value
    return DEFAULT_WAYPOINT_TYPE


@dataclass
class Waypoint:
    """A named point of interest.

    Attributes:
        id: Unique, stable identifier (survives export/import).
        name: Display name.
        lat: Latitude in degrees.
        lng: Longitude in degrees.
        type: One of WAYPOINT_TYPES keys.
        notes: Free text, possibly empty.
        photo: Opaque data-URI string, empty when there is no photo.
    """

    id: str
    name: str
    lat: float
    lng: float
    type: str = DEFAULT_WAYPOINT_TYPE
    notes: str = ""
    photo: str = ""

    @property
    def position(self) -> LatLng:
        return LatLng(self.lat, self.lng)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "lat": self.lat,
            "lng": self.lng,
            "notes": self.notes,
            "photo": self.photo,
        }


class ShapeKind(str, Enum):
    POLYLINE = "polyline"
    POLYGON = "polygon"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"


# Base names used when a shape arrives without one
SHAPE_BASE_NAMES: dict[ShapeKind, str] = {
    ShapeKind.POLYLINE: "Line",
    ShapeKind.POLYGON: "Area",
    ShapeKind.RECTANGLE: "Plot",
    ShapeKind.CIRCLE: "Circle",
}

_MIN_VERTICES = {
    ShapeKind.POLYLINE: 2,
    ShapeKind.POLYGON: 3,
    ShapeKind.RECTANGLE: 3,
}


@dataclass
class Shape:
    """A user-drawn shape.

    Attributes:
        kind: Which variant this is.
        name: Display name.
        parts: Vertex lists.  Polyline: exactly one part.  Polygon and
            rectangle: one outer ring per part (several parts = multi-part
            polygon).  Empty for circles.
        center: Circle center (circles only).
        radius_m: Circle radius in meters (circles only, > 0).

    Raises:
        ValueError: If the geometry does not fit the kind.
    """

    kind: ShapeKind
    name: str
    parts: list[list[LatLng]] = field(default_factory=list)
    center: LatLng | None = None
    radius_m: float = 0.0

    def __post_init__(self) -> None:
        self.kind = ShapeKind(self.kind)
        if self.kind is ShapeKind.CIRCLE:
            if self.center is None:
                raise ValueError("circle requires a center")
            if not self.radius_m > 0:
                raise ValueError(f"circle radius must be > 0, got {self.radius_m}")
            return
        if not self.parts:
            raise ValueError(f"{self.kind.value} requires at least one part")
        if self.kind is ShapeKind.POLYLINE and len(self.parts) != 1:
            raise ValueError("polyline must have exactly one part")
        minimum = _MIN_VERTICES[self.kind]
        for part in self.parts:
            if len(part) < minimum:
                raise ValueError(
                    f"{self.kind.value} part needs >= {minimum} vertices, "
                    f"got {len(part)}"
                )

    @classmethod
    def polyline(cls, name: str, vertices: list[LatLng]) -> Shape:
        return cls(ShapeKind.POLYLINE, name, parts=[list(vertices)])

    @classmethod
    def polygon(cls, name: str, vertices: list[LatLng]) -> Shape:
        return cls(ShapeKind.POLYGON, name, parts=[list(vertices)])

    @classmethod
    def rectangle(cls, name: str, vertices: list[LatLng]) -> Shape:
        return cls(ShapeKind.RECTANGLE, name, parts=[list(vertices)])

    @classmethod
    def circle(cls, name: str, center: LatLng, radius_m: float) -> Shape:
        return cls(ShapeKind.CIRCLE, name, center=center, radius_m=radius_m)

    @property
    def vertices(self) -> list[LatLng]:
        """Vertices of the first part (empty for circles)."""
        return self.parts[0] if self.parts else []

    @property
    def is_area(self) -> bool:
        return self.kind in (ShapeKind.POLYGON, ShapeKind.RECTANGLE)

    def to_feature(self) -> dict:
        """GeoJSON Feature for a non-circle shape."""
        if self.kind is ShapeKind.CIRCLE:
            raise ValueError("circles are not GeoJSON features")
        if self.kind is ShapeKind.POLYLINE:
            geometry = {
                "type": "LineString",
                "coordinates": [[p.lng, p.lat] for p in self.vertices],
            }
        elif len(self.parts) == 1:
            geometry = {
                "type": "Polygon",
                "coordinates": [_ring_coords(self.parts[0])],
            }
        else:
            geometry = {
                "type": "MultiPolygon",
                "coordinates": [[_ring_coords(part)] for part in self.parts],
            }
        return {
            "type": "Feature",
            "properties": {"name": self.name, "shapeType": self.kind.value},
            "geometry": geometry,
        }

    def to_circle_dict(self) -> dict:
        if self.kind is not ShapeKind.CIRCLE:
            raise ValueError(f"{self.kind.value} is not a circle")
        return {
            "lat": self.center.lat,
            "lng": self.center.lng,
            "radius": self.radius_m,
            "properties": {"name": self.name, "shapeType": "circle"},
        }


def closed_ring(vertices: list[LatLng]) -> list[LatLng]:
    """Return vertices with the first point repeated at the end if needed."""
    if vertices and vertices[0] != vertices[-1]:
        return [*vertices, vertices[0]]
    return list(vertices)


def _ring_coords(vertices: list[LatLng]) -> list[list[float]]:
    return [[p.lng, p.lat] for p in closed_ring(vertices)]


@dataclass
class TrackPoint:
    """One recorded GPS fix.  ``t`` is epoch milliseconds, or None if unknown."""

    lat: float
    lng: float
    t: int | None = None

    @property
    def position(self) -> LatLng:
        return LatLng(self.lat, self.lng)

    def to_dict(self) -> dict:
        d: dict = {"lat": self.lat, "lng": self.lng}
        if self.t is not None:
            d["t"] = self.t
        return d


@dataclass
class Snapshot:
    """Everything on the map at one moment, ready to export."""

    shapes: list[Shape] = field(default_factory=list)
    waypoints: list[Waypoint] = field(default_factory=list)
    track: list[TrackPoint] = field(default_factory=list)

    @property
    def circles(self) -> list[Shape]:
        return [s for s in self.shapes if s.kind is ShapeKind.CIRCLE]

    @property
    def features(self) -> list[Shape]:
        return [s for s in self.shapes if s.kind is not ShapeKind.CIRCLE]

    def to_dict(self) -> dict:
        """The persisted backup schema (drawings / markers / track)."""
        return {
            "drawings": {
                "geojson": {
                    "type": "FeatureCollection",
                    "features": [s.to_feature() for s in self.features],
                },
                "circles": [s.to_circle_dict() for s in self.circles],
            },
            "markers": [w.to_dict() for w in self.waypoints],
            "track": [p.to_dict() for p in self.track],
        }
