"""Parsers: KML, GPX and JSON text -> map collaborators."""

from fieldmap.transfer.parsers.gpx import import_gpx, parse_gpx
from fieldmap.transfer.parsers.json_backup import import_json, parse_json
from fieldmap.transfer.parsers.kml import import_kml, parse_kml

__all__ = [
    "import_gpx",
    "import_json",
    "import_kml",
    "parse_gpx",
    "parse_json",
    "parse_kml",
]
