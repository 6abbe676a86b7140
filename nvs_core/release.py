"""Map a version and target platform onto the official artifact name and URL."""

from __future__ import annotations

import platform as _platform
import re
import sys
from dataclasses import dataclass

from .archive.formats import ArchiveFormat
from .config import DEFAULT_MIRROR
from .errors import UnsupportedPlatformError
from .versions import strip_v

__all__ = [
    "ReleaseDescriptor",
    "build_descriptor",
    "host_arch",
    "host_platform",
    "make_version_key",
    "normalize_arch",
    "normalize_platform",
]

# platform alias -> (platformName, extension)
_PLATFORMS: dict[str, tuple[str, str]] = {
    "windows": ("win", "zip"),
    "win": ("win", "zip"),
    "win32": ("win", "zip"),
    "darwin": ("darwin", "tar.gz"),
    "macos": ("darwin", "tar.gz"),
    "linux": ("linux", "tar.xz"),
}

_ARCHES: dict[str, str] = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "x86": "x86",
    "i386": "x86",
    "i686": "x86",
    "ia32": "x86",
    "386": "x86",
}
_ARCH_NAME_RE = re.compile(r"^[A-Za-z0-9_]+$")


def normalize_platform(value: str) -> tuple[str, str]:
    """Return ``(platformName, extension)`` for an OS alias."""
    key = (value or "").strip().lower()
    try:
        return _PLATFORMS[key]
    except KeyError:
        raise UnsupportedPlatformError(
            f"unsupported platform: {value!r} (supported: windows, darwin, linux)"
        ) from None


def normalize_arch(value: str) -> str:
    """Normalize an architecture alias; unknown values pass through unchanged.

    A pass-through name ends up in the version key and the install directory,
    so it must be a single plain word.
    """
    key = (value or "").strip()
    if key and not _ARCH_NAME_RE.match(key):
        raise UnsupportedPlatformError(f"unsupported architecture: {value!r}")
    return _ARCHES.get(key.lower(), key)


def host_platform() -> str:
    if sys.platform.startswith("win"):
        return "win"
    if sys.platform == "darwin":
        return "darwin"
    return "linux"


def host_arch() -> str:
    return normalize_arch(_platform.machine() or "x64")


@dataclass(frozen=True)
class ReleaseDescriptor:
    version: str
    platform_name: str
    arch_name: str
    extension: str
    filename: str
    url: str
    base_url: str = DEFAULT_MIRROR

    @property
    def archive_format(self) -> ArchiveFormat:
        return ArchiveFormat.from_extension(self.extension)

    @property
    def checksum_url(self) -> str:
        return f"{self.base_url}/v{self.version}/SHASUMS256.txt"

    @property
    def is_windows(self) -> bool:
        return self.platform_name == "win"


def build_descriptor(
    version: str,
    target_os: str | None = None,
    target_arch: str | None = None,
    *,
    base_url: str = DEFAULT_MIRROR,
) -> ReleaseDescriptor:
    """Compute the artifact for ``version`` on the requested (or host) target."""
    bare = strip_v(version)
    if not bare:
        raise ValueError("empty version")
    platform_name, extension = normalize_platform(target_os or host_platform())
    arch_name = normalize_arch(target_arch or host_arch())
    base = base_url.rstrip("/")
    filename = f"node-v{bare}-{platform_name}-{arch_name}.{extension}"
    return ReleaseDescriptor(
        version=bare,
        platform_name=platform_name,
        arch_name=arch_name,
        extension=extension,
        filename=filename,
        url=f"{base}/v{bare}/{filename}",
        base_url=base,
    )


def make_version_key(version: str, target_os: str | None = None, target_arch: str | None = None) -> str:
    """Bare version for native installs, ``version-os-arch`` once a target is named."""
    bare = strip_v(version)
    if not target_os and not target_arch:
        return bare
    platform_name, _ = normalize_platform(target_os or host_platform())
    arch_name = normalize_arch(target_arch or host_arch())
    return f"{bare}-{platform_name}-{arch_name}"
