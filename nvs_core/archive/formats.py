"""Archive formats and the uniform entry stream the extractor consumes."""

from __future__ import annotations

import logging
import lzma
import stat
import tarfile
import zipfile
import zlib
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import IO, Callable, Iterator

from ..errors import ExtractionError

logger = logging.getLogger(__name__)


class ArchiveFormat(str, Enum):
    ZIP = "zip"
    TAR_GZIP = "tar.gz"
    TAR_XZ = "tar.xz"

    @classmethod
    def from_extension(cls, extension: str) -> "ArchiveFormat":
        ext = (extension or "").strip().lower().lstrip(".")
        for fmt in cls:
            if fmt.value == ext:
                return fmt
        if ext == "tgz":
            return cls.TAR_GZIP
        raise ValueError(f"unsupported archive extension: {extension!r}")

    @classmethod
    def from_filename(cls, filename: str | Path) -> "ArchiveFormat":
        name = Path(filename).name.lower()
        for fmt in cls:
            if name.endswith(f".{fmt.value}"):
                return fmt
        if name.endswith(".tgz"):
            return cls.TAR_GZIP
        raise ValueError(f"cannot infer archive format from {filename!s}")

    @property
    def tar_mode(self) -> str | None:
        return {ArchiveFormat.TAR_GZIP: "r:gz", ArchiveFormat.TAR_XZ: "r:xz"}.get(self)


class EntryKind(str, Enum):
    DIRECTORY = "directory"
    FILE = "file"
    SYMLINK = "symlink"


@dataclass(frozen=True)
class ArchiveEntry:
    """One archive member, independent of the container format.

    ``opener`` returns a readable binary stream for ``FILE`` entries and is
    ``None`` otherwise; ``link_target`` is only set for ``SYMLINK`` entries.
    """

    name: str
    kind: EntryKind
    mode: int | None = None
    link_target: str | None = None
    opener: Callable[[], IO[bytes]] | None = None


# errors the stdlib readers raise on truncated or corrupted input
_CORRUPTION_ERRORS: tuple[type[BaseException], ...] = (
    tarfile.TarError,
    zipfile.BadZipFile,
    lzma.LZMAError,
    zlib.error,
    EOFError,
    OSError,
)


@contextmanager
def open_entries(archive_path: Path, fmt: ArchiveFormat) -> Iterator[Iterator[ArchiveEntry]]:
    """Open ``archive_path`` and yield an iterator of :class:`ArchiveEntry`."""
    try:
        if fmt is ArchiveFormat.ZIP:
            with zipfile.ZipFile(archive_path) as zf:
                yield _zip_entries(zf)
        else:
            with tarfile.open(archive_path, fmt.tar_mode) as tf:
                yield _tar_entries(tf)
    except _CORRUPTION_ERRORS as exc:
        raise ExtractionError(f"cannot read {fmt.value} archive {archive_path}: {exc}") from exc


def _tar_entries(tf: tarfile.TarFile) -> Iterator[ArchiveEntry]:
    for member in tf:
        if member.isdir():
            yield ArchiveEntry(member.name, EntryKind.DIRECTORY, mode=member.mode)
        elif member.issym():
            yield ArchiveEntry(member.name, EntryKind.SYMLINK, link_target=member.linkname)
        elif member.isfile() or member.islnk():
            # extractfile() follows hard links to the linked member's data
            yield ArchiveEntry(
                member.name,
                EntryKind.FILE,
                mode=member.mode,
                opener=_tar_opener(tf, member),
            )
        else:
            logger.debug("skipping special tar member %s (type=%r)", member.name, member.type)


def _tar_opener(tf: tarfile.TarFile, member: tarfile.TarInfo) -> Callable[[], IO[bytes]]:
    def _open() -> IO[bytes]:
        handle = tf.extractfile(member)
        if handle is None:
            raise ExtractionError(f"tar member has no data: {member.name}")
        return handle

    return _open


def _zip_entries(zf: zipfile.ZipFile) -> Iterator[ArchiveEntry]:
    for info in zf.infolist():
        unix_mode = (info.external_attr >> 16) & 0o7777
        mode = unix_mode or None
        if info.is_dir():
            yield ArchiveEntry(info.filename, EntryKind.DIRECTORY, mode=mode)
            continue
        if stat.S_ISLNK(info.external_attr >> 16):
            logger.debug("zip symlink %s extracted as a regular file", info.filename)
        yield ArchiveEntry(
            info.filename,
            EntryKind.FILE,
            mode=mode,
            opener=lambda info=info: zf.open(info),
        )
