"""Transfer errors surfaced to the user as a single failure."""

from __future__ import annotations


class TransferError(Exception):
    """Base class for import/export failures."""


class ImportFailed(TransferError):
    """The input could not be parsed at the top level (invalid XML/JSON)."""

    def __init__(self, format: str, reason: str) -> None:
        super().__init__(f"Import failed ({format}): {reason}")
        self.format = format
        self.reason = reason


class ExportFailed(TransferError):
    """An encoder hit invalid map data; no file was delivered."""

    def __init__(self, format: str, reason: str) -> None:
        super().__init__(f"Export failed ({format}): {reason}")
        self.format = format
        self.reason = reason


class UnsupportedFormat(TransferError, ValueError):
    """Unknown format key."""
