"""TransferManager — import and export of the whole map.

Owns no map state: it is constructed with the waypoint, shape and track
collaborators and routes text to the matching parser or exporter.
"""

from __future__ import annotations

import json
import os
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Callable

from loguru import logger

from fieldmap.config import settings
from fieldmap.model import Snapshot
from fieldmap.stores import (
    MapTarget,
    ShapeCollection,
    TrackBuffer,
    WaypointCollection,
    build_snapshot,
)
from fieldmap.transfer.errors import ExportFailed, ImportFailed, UnsupportedFormat
from fieldmap.transfer.exporters import export_gpx, export_json, export_kml
from fieldmap.transfer.parsers import import_gpx, import_json, import_kml
from fieldmap.transfer.summary import ImportSummary


@dataclass(frozen=True)
class FileFormat:
    key: str
    extension: str
    mime_type: str


FORMATS: dict[str, FileFormat] = {
    "json": FileFormat("json", ".json", "application/json"),
    "kml": FileFormat("kml", ".kml", "application/vnd.google-earth.kml+xml"),
    "gpx": FileFormat("gpx", ".gpx", "application/gpx+xml"),
}

_EXTENSIONS = {
    ".kml": "kml",
    ".gpx": "gpx",
    ".geojson": "geojson",
    ".json": "json",
}

# First element name, skipping the XML declaration, comments and doctype
_ROOT_TAG = re.compile(r"<(?![?!])\s*([\w.:-]+)")


@dataclass
class ExportedFile:
    filename: str
    content: str
    mime_type: str


def detect_format(filename: str) -> str:
    """Format key from a file name's extension, or "auto" if unknown."""
    ext = os.path.splitext(filename)[1].lower()
    return _EXTENSIONS.get(ext, "auto")


def sniff_format(text: str) -> str:
    """Guess the format of text content: kml, gpx, or json for anything else."""
    stripped = text.lstrip("\ufeff \t\r\n")
    if not stripped.startswith("<"):
        return "json"
    match = _ROOT_TAG.search(stripped)
    if match is None:
        return "json"
    local = match.group(1).rsplit(":", 1)[-1].lower()
    if local in ("kml", "gpx"):
        return local
    return "json"


def export_filename(fmt: str, basename: str = settings.export_basename) -> str:
    if fmt == "json":
        return f"{basename}-export.json"
    return f"{basename}{FORMATS[fmt].extension}"


class TransferManager:
    """Import and export the map held by three collaborators."""

    def __init__(
        self,
        waypoints: WaypointCollection,
        shapes: ShapeCollection,
        track: TrackBuffer,
    ) -> None:
        self._target = MapTarget(waypoints, shapes, track)

    detect_format = staticmethod(detect_format)
    sniff_format = staticmethod(sniff_format)

    def resolve_format(self, text: str, filename: str = "", format: str = "auto") -> str:
        """Decoder key for an import: explicit format, extension, then content."""
        if format == "auto" and filename:
            format = detect_format(filename)
        if format == "auto":
            format = sniff_format(text)
        if format == "geojson":
            format = "json"
        if format not in FORMATS:
            raise UnsupportedFormat(f"Unsupported import format: {format}")
        return format

    def import_text(
        self, text: str, filename: str = "", format: str = "auto",
    ) -> ImportSummary:
        """Decode text and write it into the collaborators.

        Args:
            text: File content.
            filename: Original file name, used for extension detection.
            format: "kml", "gpx", "json", "geojson" or "auto".

        Returns:
            ImportSummary with per-kind counts.

        Raises:
            UnsupportedFormat: If format is not a known key.
            ImportFailed: If the document cannot be parsed at all.
        """
        fmt = self.resolve_format(text, filename, format)
        try:
            if fmt == "kml":
                summary = import_kml(text, self._target, meta_key=settings.meta_key)
            elif fmt == "gpx":
                summary = import_gpx(
                    text,
                    self._target,
                    closed_epsilon=settings.closed_ring_epsilon,
                    meta_key=settings.meta_key,
                )
            else:
                summary = import_json(text, self._target)
        except (ET.ParseError, json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Import of {filename or 'content'} as {fmt} failed: {e}")
            raise ImportFailed(fmt, str(e)) from e

        logger.info(
            f"Imported {filename or fmt}: {summary.waypoints} waypoints, "
            f"{summary.shapes} shapes, {summary.track_points} track points, "
            f"{summary.skipped} skipped"
        )
        return summary

    def import_file(self, path: str, format: str = "auto") -> ImportSummary:
        """Read a UTF-8 file from disk and import it."""
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
        return self.import_text(content, filename=os.path.basename(path), format=format)

    def build_snapshot(self) -> Snapshot:
        return build_snapshot(
            self._target.waypoints, self._target.shapes, self._target.track,
        )

    def export(self, fmt: str) -> ExportedFile:
        """Encode the current map.

        Raises:
            UnsupportedFormat: If fmt is not json, kml or gpx.
            ExportFailed: If the encoder rejects the map data, including track
                timestamps outside the platform datetime range.
        """
        file_format = FORMATS.get(fmt)
        if file_format is None:
            raise UnsupportedFormat(f"Unsupported export format: {fmt}")

        snapshot = self.build_snapshot()
        try:
            if fmt == "kml":
                content = export_kml(
                    snapshot,
                    document_name=settings.app_name,
                    circle_segments=settings.circle_segments,
                    meta_key=settings.meta_key,
                )
            elif fmt == "gpx":
                content = export_gpx(
                    snapshot,
                    creator=settings.app_name,
                    circle_segments=settings.circle_segments,
                    meta_key=settings.meta_key,
                )
            else:
                content = export_json(snapshot)
        except (ValueError, TypeError, OverflowError, OSError) as e:
            logger.warning(f"Export as {fmt} failed: {e}")
            raise ExportFailed(fmt, str(e)) from e

        exported = ExportedFile(
            filename=export_filename(fmt),
            content=content,
            mime_type=file_format.mime_type,
        )
        logger.info(f"Exported {exported.filename} ({len(content)} chars)")
        return exported

    def export_to(self, fmt: str, deliver: Callable[[str, str, str], None]) -> ExportedFile:
        """Export and hand the file to deliver(filename, content, mime_type).

        deliver is not called when encoding fails.
        """
        exported = self.export(fmt)
        deliver(exported.filename, exported.content, exported.mime_type)
        return exported
