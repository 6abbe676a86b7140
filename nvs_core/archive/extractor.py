"""Unpack Node.js distribution archives with traversal protection."""

from __future__ import annotations

import logging
import os
import shutil
import stat
from pathlib import Path

from ..errors import ExtractionError, NvsIOError, PathTraversalError
from .formats import ArchiveEntry, ArchiveFormat, EntryKind, open_entries
from .security import safe_output_path

logger = logging.getLogger(__name__)

DEFAULT_DIR_MODE = 0o755
_COPY_CHUNK = 1024 * 1024


def extract(
    archive_path: Path | str,
    dest_dir: Path | str,
    fmt: ArchiveFormat | str | None = None,
) -> None:
    """Extract every entry of ``archive_path`` into ``dest_dir``.

    Without ``fmt`` the format is taken from the archive file name.

    The first failing entry aborts extraction; discarding the partially
    written ``dest_dir`` and deleting the archive are left to the caller.
    """
    archive_path = Path(archive_path)
    dest_dir = Path(dest_dir)
    if fmt is None:
        fmt = ArchiveFormat.from_filename(archive_path)
    elif not isinstance(fmt, ArchiveFormat):
        fmt = ArchiveFormat.from_extension(fmt)

    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise NvsIOError(f"cannot create extraction directory {dest_dir}: {exc}") from exc
    root = dest_dir.resolve()

    count = 0
    with open_entries(archive_path, fmt) as entries:
        for entry in entries:
            target = safe_output_path(root, entry.name)
            try:
                _extract_entry(entry, target, root)
            except (PathTraversalError, ExtractionError):
                raise
            except OSError as exc:
                raise NvsIOError(f"failed to extract {entry.name} to {target}: {exc}") from exc
            count += 1
    logger.debug("extracted %d entries from %s into %s", count, archive_path.name, root)


def _extract_entry(entry: ArchiveEntry, target: Path, root: Path) -> None:
    if entry.kind is EntryKind.DIRECTORY:
        if target == root:
            return
        _remove_non_directory(target)
        target.mkdir(parents=True, exist_ok=True)
        os.chmod(target, (entry.mode or DEFAULT_DIR_MODE) | stat.S_IRWXU)
        return

    if target == root:
        raise PathTraversalError(f"archive entry {entry.name!r} would replace the destination root")
    target.parent.mkdir(parents=True, exist_ok=True)

    if entry.kind is EntryKind.SYMLINK:
        _remove_existing(target)
        os.symlink(entry.link_target or "", target)
        return

    if entry.opener is None:
        raise ExtractionError(f"archive entry {entry.name} has no content")
    # never write through a symlink left by an earlier entry
    _remove_existing(target)
    with entry.opener() as src, target.open("wb") as dst:
        shutil.copyfileobj(src, dst, _COPY_CHUNK)
    if entry.mode is not None:
        os.chmod(target, entry.mode)


def _remove_existing(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


def _remove_non_directory(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
