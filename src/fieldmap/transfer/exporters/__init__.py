"""Exporters: Snapshot -> JSON backup, KML, GPX text.

All exporters are pure functions built on the Python stdlib.
"""

from fieldmap.transfer.exporters.gpx import export_gpx
from fieldmap.transfer.exporters.json_backup import export_json
from fieldmap.transfer.exporters.kml import export_kml

__all__ = ["export_gpx", "export_json", "export_kml"]
