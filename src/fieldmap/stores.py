"""Collection collaborators — the waypoint, shape and track holders.

The codec never reaches for map state on its own; it is handed objects
satisfying the Protocols below.  WaypointStore, ShapeStore and TrackStore
are the in-memory implementations used by the API and the tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol

from fieldmap.model import (
    SHAPE_BASE_NAMES,
    WAYPOINT_TYPES,
    Shape,
    Snapshot,
    TrackPoint,
    Waypoint,
)


class WaypointCollection(Protocol):
    def insert(self, waypoint: Waypoint) -> None: ...

    def for_each(self, fn: Callable[[Waypoint], None]) -> None: ...

    def clear(self) -> None: ...


class ShapeCollection(Protocol):
    def insert(self, shape: Shape) -> None: ...

    def for_each(self, fn: Callable[[Shape], None]) -> None: ...

    def clear(self) -> None: ...


class TrackBuffer(Protocol):
    def replace(self, points: list[TrackPoint]) -> None: ...

    def read(self) -> list[TrackPoint]: ...


@dataclass
class MapTarget:
    """The three collaborators an import writes into."""

    waypoints: WaypointCollection
    shapes: ShapeCollection
    track: TrackBuffer

    def snapshot(self) -> Snapshot:
        return build_snapshot(self.waypoints, self.shapes, self.track)


def build_snapshot(
    waypoints: WaypointCollection,
    shapes: ShapeCollection,
    track: TrackBuffer,
) -> Snapshot:
    """Aggregate the collaborators into a fresh Snapshot (read-only)."""
    snap = Snapshot()
    waypoints.for_each(snap.waypoints.append)
    shapes.for_each(snap.shapes.append)
    snap.track = list(track.read())
    return snap


class WaypointStore:
    """In-memory waypoint collection keyed by waypoint id.

    Inserting a waypoint whose id already exists replaces it in place, so
    ids stay unique and re-importing the same file is idempotent.
    """

    def __init__(self) -> None:
        self._items: dict[str, Waypoint] = {}

    def insert(self, waypoint: Waypoint) -> None:
        if not waypoint.name:
            waypoint.name = self.default_name(waypoint.type)
        self._items[waypoint.id] = waypoint

    def for_each(self, fn: Callable[[Waypoint], None]) -> None:
        for waypoint in list(self._items.values()):
            fn(waypoint)

    def clear(self) -> None:
        self._items.clear()

    def get(self, waypoint_id: str) -> Waypoint | None:
        return self._items.get(waypoint_id)

    def remove(self, waypoint_id: str) -> bool:
        return self._items.pop(waypoint_id, None) is not None

    def default_name(self, waypoint_type: str) -> str:
        """'<Label> <n>' where n counts existing waypoints of that type."""
        base = WAYPOINT_TYPES.get(waypoint_type, "Marker")
        n = 1 + sum(1 for w in self._items.values() if w.type == waypoint_type)
        return f"{base} {n}"

    def __len__(self) -> int:
        return len(self._items)


class ShapeStore:
    """In-memory shape collection.  Shapes have no id; order is identity."""

    def __init__(self) -> None:
        self._items: list[Shape] = []

    def insert(self, shape: Shape) -> None:
        if not shape.name:
            shape.name = self.default_name(shape)
        self._items.append(shape)

    def for_each(self, fn: Callable[[Shape], None]) -> None:
        for shape in list(self._items):
            fn(shape)

    def clear(self) -> None:
        self._items.clear()

    def remove(self, shape: Shape) -> bool:
        for i, item in enumerate(self._items):
            if item is shape:
                del self._items[i]
                return True
        return False

    def default_name(self, shape: Shape) -> str:
        n = 1 + sum(1 for s in self._items if s.kind is shape.kind)
        return f"{SHAPE_BASE_NAMES[shape.kind]} {n}"

    def __len__(self) -> int:
        return len(self._items)


class TrackStore:
    """In-memory track buffer: append while recording, replace on import."""

    def __init__(self) -> None:
        self._points: list[TrackPoint] = []

    def append(self, point: TrackPoint) -> None:
        self._points.append(point)

    def replace(self, points: list[TrackPoint]) -> None:
        self._points = list(points)

    def read(self) -> list[TrackPoint]:
        return list(self._points)

    def clear(self) -> None:
        self._points = []

    def __len__(self) -> int:
        return len(self._points)


def memory_target() -> MapTarget:
    """A MapTarget backed by fresh in-memory stores."""
    return MapTarget(WaypointStore(), ShapeStore(), TrackStore())
