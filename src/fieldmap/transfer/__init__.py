"""Import/export of map data as KML, GPX and the JSON backup format."""

from fieldmap.transfer.errors import (
    ExportFailed,
    ImportFailed,
    TransferError,
    UnsupportedFormat,
)
from fieldmap.transfer.manager import FORMATS, ExportedFile, TransferManager
from fieldmap.transfer.summary import ImportSummary

__all__ = [
    "FORMATS",
    "ExportFailed",
    "ExportedFile",
    "ImportFailed",
    "ImportSummary",
    "TransferError",
    "TransferManager",
    "UnsupportedFormat",
]
