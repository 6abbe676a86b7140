"""Typed errors raised by the NVS core."""

from __future__ import annotations


class NvsError(RuntimeError):
    """Base NVS error."""


class FetchError(NvsError):
    """Network or HTTP failure reaching the catalog or an archive."""


class ChecksumMismatch(FetchError):
    """Downloaded archive does not match the published SHA-256 digest."""


class ParseError(NvsError):
    """Release catalog payload could not be decoded."""


class NotFoundError(NvsError):
    """Version token does not resolve to any catalog entry."""

    def __init__(self, token: str, detail: str | None = None) -> None:
        self.token = token
        super().__init__(detail or f"version '{token}' not found")


class UnsupportedPlatformError(NvsError):
    """No known artifact naming for the requested OS."""


class PathTraversalError(NvsError):
    """Archive entry would escape the extraction root."""


class NotInstalledError(NvsError):
    """Operation targets a version key with no directory."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"version {key} is not installed")


class InvalidInstallationError(NvsError):
    """Version directory exists but lacks the expected binaries."""


class NvsIOError(NvsError):
    """Generic filesystem failure (permissions, disk full, cross-device rename)."""


class ExtractionError(NvsIOError):
    """Archive is corrupted, truncated or cannot be unpacked."""
