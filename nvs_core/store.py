"""On-disk store of installed Node.js versions under ~/.nvs/versions."""

from __future__ import annotations

import logging
import os
import shutil
import stat
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from .archive import ArchiveFormat
from .errors import NvsError, NvsIOError
from .events import EventBus
from .layout import NvsLayout
from .release import ReleaseDescriptor, make_version_key
from .versions import is_exact_version, is_partial_version, normalize_token, version_key

if TYPE_CHECKING:
    from .activation import ActivationSwitch

logger = logging.getLogger(__name__)

DownloadFn = Callable[[ReleaseDescriptor, Path], Path]
ExtractFn = Callable[[Path, Path, ArchiveFormat], None]

_WRAPPER_PREFIX = "node-"
_NPM_LAUNCHERS = (("npm", "npm-cli.js"), ("npx", "npx-cli.js"))
_NPM_BIN_PARTS = ("lib", "node_modules", "npm", "bin")


@dataclass(frozen=True)
class InstalledVersion:
    key: str
    path: Path
    version: str
    platform_name: str | None = None
    arch_name: str | None = None

    @property
    def is_cross_platform(self) -> bool:
        return self.platform_name is not None

    @classmethod
    def from_key(cls, key: str, path: Path) -> "InstalledVersion":
        parts = key.split("-")
        if len(parts) == 3:
            version, platform_name, arch_name = parts
            return cls(key=key, path=path, version=version, platform_name=platform_name, arch_name=arch_name)
        return cls(key=key, path=path, version=key)


def list_sort_key(key: str) -> tuple[tuple[int, ...], str]:
    """Numeric order on the version part, full key as the tie breaker."""
    return (version_key(key.split("-", 1)[0]), key)


class VersionStore:
    """Install, list and remove versions; directory presence is the only record."""

    def __init__(
        self,
        layout: NvsLayout,
        *,
        switch: ActivationSwitch | None = None,
        events: EventBus | None = None,
    ) -> None:
        self.layout = layout
        self.switch = switch
        self.events = events

    # ------------------------ queries ------------------------

    def is_installed(self, key: str) -> bool:
        try:
            return self.layout.version_dir(key).is_dir()
        except ValueError:
            return False

    def list(self) -> list[str]:
        root = self.layout.versions_dir
        if not root.is_dir():
            return []
        keys = [p.name for p in root.iterdir() if p.is_dir()]
        return sorted(keys, key=list_sort_key)

    def installed(self) -> list[InstalledVersion]:
        return [InstalledVersion.from_key(key, self.layout.version_dir(key)) for key in self.list()]

    def get(self, key: str) -> InstalledVersion | None:
        path = self.layout.version_dir(key)
        if not path.is_dir():
            return None
        return InstalledVersion.from_key(key, path)

    def find(self, token: str, target_os: str | None = None, target_arch: str | None = None) -> str | None:
        """Match ``token`` against installed keys.

        Exact keys win; otherwise a partial version (``"18"``) picks the
        greatest installed key of that line for the requested target.
        """
        clean = normalize_token(token)
        if not clean:
            return None
        if is_exact_version(clean):
            key = make_version_key(clean, target_os, target_arch)
            return key if self.is_installed(key) else None
        if self.is_installed(clean):
            return clean
        if not is_partial_version(clean):
            return None
        suffix = make_version_key("0.0.0", target_os, target_arch)[len("0.0.0"):]
        candidates: list[str] = []
        for key in self.list():
            version, _, rest = key.partition("-")
            if not is_exact_version(version) or not version.startswith(f"{clean}."):
                continue
            if (f"-{rest}" if rest else "") == suffix:
                candidates.append(key)
        if not candidates:
            return None
        return max(candidates, key=list_sort_key)

    # ------------------------ install ------------------------

    def install(
        self,
        descriptor: ReleaseDescriptor,
        download: DownloadFn,
        extract: ExtractFn,
        *,
        key: str | None = None,
        force: bool = False,
    ) -> InstalledVersion:
        key = key or descriptor.version
        target = self.layout.version_dir(key)
        if target.is_dir() and not force:
            logger.info("Node.js %s is already installed", key)
            return InstalledVersion.from_key(key, target)

        try:
            self.layout.ensure()
            work = Path(tempfile.mkdtemp(prefix=f"install-{key}-", dir=self.layout.tmp_dir))
        except OSError as exc:
            raise NvsIOError(f"cannot prepare install workspace under {self.layout.tmp_dir}: {exc}") from exc

        try:
            archive = download(descriptor, work / descriptor.filename)
            staging = work / "staging"
            extract(archive, staging, descriptor.archive_format)
            archive.unlink(missing_ok=True)
            payload = _flatten_wrapper(staging)
            if not descriptor.is_windows:
                repair_npm_links(payload)
            self._commit(payload, target, replace=force)
        except NvsError:
            logger.error("install of %s failed, discarding partial files", key)
            raise
        except OSError as exc:
            raise NvsIOError(f"install of {key} failed: {exc}") from exc
        finally:
            shutil.rmtree(work, ignore_errors=True)

        logger.info("installed Node.js %s into %s", key, target)
        if self.events is not None:
            self.events.emit("installed", key=key, path=str(target), url=descriptor.url)
        return InstalledVersion.from_key(key, target)

    def _commit(self, payload: Path, target: Path, *, replace: bool) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.exists() or target.is_symlink():
            if not replace:
                raise NvsIOError(f"{target} appeared while installing; refusing to overwrite")
            logger.info("replacing existing installation at %s", target)
            _remove_tree(target)
        os.replace(payload, target)

    # ----------------------- uninstall -----------------------

    def uninstall(self, key: str) -> bool:
        """Remove ``key``; returns ``False`` when there was nothing to remove."""
        target = self.layout.version_dir(key)
        if not target.is_dir():
            logger.info("Node.js %s is not installed, nothing to uninstall", key)
            return False
        if self.switch is not None and self.switch.current() == key:
            self.switch.clear()
        try:
            _remove_tree(target)
        except OSError as exc:
            raise NvsIOError(f"failed to remove {target}: {exc}") from exc
        logger.info("uninstalled Node.js %s", key)
        if self.events is not None:
            self.events.emit("uninstalled", key=key)
        return True


def _flatten_wrapper(staging: Path) -> Path:
    """Return the directory holding ``bin/``, ``lib/``... after extraction.

    A lone ``node-v*`` folder is used as-is; a wrapper next to other entries
    has its contents moved up one level and is then removed.
    """
    entries = list(staging.iterdir())
    wrappers = [
        entry
        for entry in entries
        if entry.name.startswith(_WRAPPER_PREFIX) and entry.is_dir() and not entry.is_symlink()
    ]
    if len(wrappers) != 1:
        return staging
    wrapper = wrappers[0]
    if len(entries) == 1:
        return wrapper
    for child in list(wrapper.iterdir()):
        destination = staging / child.name
        if destination.exists() or destination.is_symlink():
            raise NvsIOError(f"cannot flatten {wrapper.name}: {child.name} already exists")
        os.replace(child, destination)
    wrapper.rmdir()
    return staging


def repair_npm_links(version_dir: Path) -> list[Path]:
    """Recreate ``bin/npm`` and ``bin/npx`` as relative links to npm's launchers.

    Falls back to small shell wrappers where symlinks cannot be created.
    """
    bin_dir = version_dir / "bin"
    if not bin_dir.is_dir():
        return []
    repaired: list[Path] = []
    for name, launcher in _NPM_LAUNCHERS:
        launcher_path = version_dir.joinpath(*_NPM_BIN_PARTS, launcher)
        if not launcher_path.is_file():
            logger.debug("npm launcher %s missing, leaving bin/%s alone", launcher_path, name)
            continue
        _ensure_executable(launcher_path)
        link = bin_dir / name
        if link.is_symlink() or link.exists():
            link.unlink()
        relative = Path("..", *_NPM_BIN_PARTS, launcher)
        try:
            os.symlink(relative, link)
        except OSError:
            logger.debug("symlink unavailable for %s, writing shell wrapper", link)
            link.write_text(
                "#!/bin/sh\n"
                'basedir=$(dirname "$0")\n'
                f'exec "$basedir/node" "$basedir/{relative.as_posix()}" "$@"\n',
                encoding="utf-8",
            )
            os.chmod(link, 0o755)
        repaired.append(link)
    return repaired


def _ensure_executable(path: Path) -> None:
    mode = path.stat().st_mode
    wanted = mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH
    if wanted != mode:
        os.chmod(path, wanted)


def _remove_tree(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    else:
        shutil.rmtree(path)
