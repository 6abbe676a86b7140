"""Core of the NVS Node.js version manager."""

from .activation import (
    ActivationSwitch,
    FilePointerStorage,
    LinkPointerStorage,
    PointerStorage,
    ShimWriter,
)
from .app import NvsApp
from .archive import ArchiveFormat, extract
from .catalog import CatalogClient, CatalogEntry, resolve_version
from .config import Settings, SettingsResolver
from .download import Downloader
from .errors import (
    ChecksumMismatch,
    ExtractionError,
    FetchError,
    InvalidInstallationError,
    NotFoundError,
    NotInstalledError,
    NvsError,
    NvsIOError,
    ParseError,
    PathTraversalError,
    UnsupportedPlatformError,
)
from .events import Event, EventBus
from .layout import NvsLayout
from .release import ReleaseDescriptor, build_descriptor, make_version_key
from .store import InstalledVersion, VersionStore

__all__ = [
    "ActivationSwitch",
    "ArchiveFormat",
    "CatalogClient",
    "CatalogEntry",
    "ChecksumMismatch",
    "Downloader",
    "Event",
    "EventBus",
    "ExtractionError",
    "FetchError",
    "FilePointerStorage",
    "InstalledVersion",
    "InvalidInstallationError",
    "LinkPointerStorage",
    "NotFoundError",
    "NotInstalledError",
    "NvsApp",
    "NvsError",
    "NvsIOError",
    "NvsLayout",
    "ParseError",
    "PathTraversalError",
    "PointerStorage",
    "ReleaseDescriptor",
    "Settings",
    "SettingsResolver",
    "ShimWriter",
    "UnsupportedPlatformError",
    "VersionStore",
    "build_descriptor",
    "extract",
    "make_version_key",
    "resolve_version",
]
