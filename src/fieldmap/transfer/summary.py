"""ImportSummary — counts reported back after an import."""

from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass
class ImportSummary:
    """What an import added or replaced.

    Attributes:
        format: Decoder that ran ("kml", "gpx", "json").
        waypoints: Waypoints inserted.
        shapes: Shapes inserted.
        track_points: Points in the replacement track (0 = track untouched).
        skipped: Features dropped as malformed or unsupported.
    """

    format: str
    waypoints: int = 0
    shapes: int = 0
    track_points: int = 0
    skipped: int = 0

    def to_dict(self) -> dict:
        return asdict(self)
