"""Current-version pointer and the node/npm/npx shims exposed on PATH."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import threading
from pathlib import Path
from typing import Callable, Protocol

from .errors import InvalidInstallationError, NotInstalledError, NvsIOError
from .events import EventBus
from .layout import NvsLayout
from .release import host_platform
from .store import InstalledVersion

logger = logging.getLogger(__name__)

BinPathFn = Callable[[Path, str], Path]

SHIM_NAMES = ("node", "npm", "npx")
_WINDOWS_BINARIES = {"node": "node.exe", "npm": "npm.cmd", "npx": "npx.cmd"}


def _is_windows() -> bool:
    return os.name == "nt"


class PointerStorage(Protocol):
    """Persistence port for the single "current version" record."""

    def read(self) -> str | None: ...

    def write(self, key: str, target: Path) -> None: ...

    def clear(self) -> None: ...


def _remove_pointer(path: Path) -> None:
    if os.path.isjunction(path):
        os.rmdir(path)
    elif path.is_symlink() or path.is_file():
        path.unlink(missing_ok=True)
    elif path.is_dir():
        raise NvsIOError(f"{path} is a real directory, refusing to replace it")


class LinkPointerStorage:
    """Symlink on Unix, directory junction on Windows (no elevation needed)."""

    def __init__(self, link: Path, *, windows: bool | None = None) -> None:
        self.link = link
        self.windows = _is_windows() if windows is None else windows

    def read(self) -> str | None:
        if not (self.link.is_symlink() or os.path.isjunction(self.link)):
            return None
        try:
            resolved = self.link.resolve(strict=True)
        except (OSError, RuntimeError):
            return None
        if not resolved.is_dir():
            return None
        return resolved.name

    def write(self, key: str, target: Path) -> None:
        self.clear()
        self.link.parent.mkdir(parents=True, exist_ok=True)
        if self.windows:
            result = subprocess.run(
                ["cmd", "/c", "mklink", "/J", str(self.link), str(target)],
                check=False,
                capture_output=True,
                text=True,
            )
            if result.returncode != 0:
                detail = (result.stderr or result.stdout or "").strip()
                raise NvsIOError(f"junction {self.link} -> {target} failed: {detail}")
            return
        try:
            os.symlink(target, self.link, target_is_directory=True)
        except OSError as exc:
            raise NvsIOError(f"symlink {self.link} -> {target} failed: {exc}") from exc

    def clear(self) -> None:
        try:
            _remove_pointer(self.link)
        except OSError as exc:
            raise NvsIOError(f"cannot remove {self.link}: {exc}") from exc


class FilePointerStorage:
    """Plain text file naming the active key, re-joined with the versions root."""

    def __init__(self, path: Path, versions_dir: Path) -> None:
        self.path = path
        self.versions_dir = versions_dir

    def read(self) -> str | None:
        if self.path.is_symlink() or not self.path.is_file():
            return None
        try:
            key = self.path.read_text(encoding="utf-8").strip()
        except OSError:
            return None
        if not key or not (self.versions_dir / key).is_dir():
            return None
        return key

    def write(self, key: str, target: Path) -> None:
        self.clear()
        tmp = self.path.with_name(f".{self.path.name}.tmp")
        try:
            tmp.write_text(key + "\n", encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            raise NvsIOError(f"cannot write {self.path}: {exc}") from exc

    def clear(self) -> None:
        try:
            _remove_pointer(self.path)
        except OSError as exc:
            raise NvsIOError(f"cannot remove {self.path}: {exc}") from exc


def make_pointer_storage(kind: str, layout: NvsLayout) -> PointerStorage:
    if kind == "file":
        return FilePointerStorage(layout.current, layout.versions_dir)
    if kind == "link":
        return LinkPointerStorage(layout.current)
    raise ValueError(f"unknown pointer storage: {kind!r}")


def default_bin_path(version_dir: Path, key: str) -> Path:
    """Binaries live at the root of Windows builds and under ``bin/`` elsewhere."""
    platform_name = InstalledVersion.from_key(key, version_dir).platform_name or host_platform()
    return version_dir if platform_name == "win" else version_dir / "bin"


class ShimWriter:
    """Rebuild the current-bin directory from scratch on every switch."""

    def __init__(self, shim_dir: Path, *, windows: bool | None = None) -> None:
        self.shim_dir = shim_dir
        self.windows = _is_windows() if windows is None else windows

    def remove(self) -> None:
        if self.shim_dir.is_symlink():
            self.shim_dir.unlink()
        elif self.shim_dir.exists():
            shutil.rmtree(self.shim_dir)

    def regenerate(self, bin_path: Path) -> list[Path]:
        try:
            self.remove()
            self.shim_dir.mkdir(parents=True, exist_ok=True)
            written: list[Path] = []
            for name in SHIM_NAMES:
                source = bin_path / (_WINDOWS_BINARIES[name] if self.windows else name)
                if not (source.exists() or source.is_symlink()):
                    logger.debug("no %s in %s, skipping shim", source.name, bin_path)
                    continue
                written.append(self._write_shim(name, source))
        except OSError as exc:
            raise NvsIOError(f"cannot regenerate shims in {self.shim_dir}: {exc}") from exc
        return written

    def _write_shim(self, name: str, source: Path) -> Path:
        if self.windows:
            shim = self.shim_dir / f"{name}.bat"
            shim.write_text(f'@echo off\r\n"{source}" %*\r\n', encoding="utf-8")
            return shim
        shim = self.shim_dir / name
        try:
            os.symlink(source, shim)
        except OSError:
            shim.write_text(f'#!/bin/sh\nexec "{source}" "$@"\n', encoding="utf-8")
            os.chmod(shim, 0o755)
        return shim


class ActivationSwitch:
    """Owns the Unset -> Active(key) state and keeps the shim set in sync."""

    def __init__(
        self,
        layout: NvsLayout,
        storage: PointerStorage,
        *,
        shims: ShimWriter | None = None,
        events: EventBus | None = None,
    ) -> None:
        self.layout = layout
        self.storage = storage
        self.shims = shims or ShimWriter(layout.current_bin_dir)
        self.events = events
        self._lock = threading.Lock()

    def current(self) -> str | None:
        return self.storage.read()

    def use(self, key: str, bin_path_for: BinPathFn | None = None) -> Path:
        """Activate ``key`` and return the directory holding its binaries.

        Preconditions are checked before anything is touched, so a failed
        call leaves the previous activation in place.
        """
        version_dir = self.layout.version_dir(key)
        if not version_dir.is_dir():
            raise NotInstalledError(key)
        bin_path = (bin_path_for or default_bin_path)(version_dir, key)
        if not bin_path.is_dir():
            raise InvalidInstallationError(f"invalid Node.js installation for {key}: missing {bin_path}")

        with self._lock:
            previous = self.storage.read()
            self.storage.write(key, version_dir)
            shims = self.shims.regenerate(bin_path)
        logger.info("switched Node.js %s -> %s", previous or "<none>", key)
        if self.events is not None:
            self.events.emit(
                "activated",
                key=key,
                previous=previous,
                bin_path=str(bin_path),
                shims=[str(path) for path in shims],
            )
        return bin_path

    def clear(self) -> None:
        with self._lock:
            previous = self.storage.read()
            self.storage.clear()
            try:
                self.shims.remove()
            except OSError as exc:
                raise NvsIOError(f"cannot remove shims in {self.shims.shim_dir}: {exc}") from exc
        logger.info("cleared current Node.js version (was %s)", previous or "<none>")
        if self.events is not None:
            self.events.emit("deactivated", key=previous)
