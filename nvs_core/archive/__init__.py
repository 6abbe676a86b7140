"""Archive extraction for Node.js distribution files."""

from .extractor import extract
from .formats import ArchiveEntry, ArchiveFormat, EntryKind, open_entries
from .security import safe_output_path

__all__ = [
    "ArchiveEntry",
    "ArchiveFormat",
    "EntryKind",
    "extract",
    "open_entries",
    "safe_output_path",
]
