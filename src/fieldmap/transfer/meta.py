"""App metadata block carried by KML and GPX waypoints.

Neither KML nor GPX has a place for a waypoint's type, notes, photo or
id, so exporters pack them into one JSON object stored as element text
(KML ExtendedData/Data value, GPX extensions child).  The XML serializer
escapes it; the parser's unescape gives back the identical JSON string.

Reading is two-tier: the JSON block when present and parseable, otherwise
the plain fields any KML/GPX tool writes (description / desc).
"""

from __future__ import annotations

import json

from loguru import logger

from fieldmap.model import Waypoint, new_waypoint_id, normalize_type


def pack_meta(waypoint: Waypoint) -> str:
    """Serialize a waypoint's app metadata to a compact JSON string."""
    return json.dumps(
        {
            "id": waypoint.id,
            "type": waypoint.type,
            "notes": waypoint.notes,
            "photo": waypoint.photo,
        },
        separators=(",", ":"),
    )


def unpack_meta(text: str | None) -> dict | None:
    """Parse a metadata block; None if missing or not a JSON object."""
    if not text:
        return None
    try:
        meta = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        logger.debug(f"Ignoring unparseable app metadata: {e}")
        return None
    if not isinstance(meta, dict):
        logger.debug("Ignoring app metadata that is not a JSON object")
        return None
    return meta


def _str_field(meta: dict, key: str) -> str:
    value = meta.get(key)
    return value if isinstance(value, str) else ""


def resolve_waypoint(
    name: str,
    lat: float,
    lng: float,
    meta_text: str | None,
    description: str = "",
) -> Waypoint:
    """Build a Waypoint from the structured block, else the legacy fields."""
    meta = unpack_meta(meta_text) or {}
    return Waypoint(
        id=_str_field(meta, "id") or new_waypoint_id(),
        name=name or "Marker",
        lat=lat,
        lng=lng,
        type=normalize_type(meta.get("type")),
        notes=_str_field(meta, "notes") or description,
        photo=_str_field(meta, "photo"),
    )
