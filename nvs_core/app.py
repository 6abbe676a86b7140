"""Application facade that wires the NVS core collaborators together."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping

from .activation import ActivationSwitch, make_pointer_storage
from .archive import extract
from .catalog import CatalogClient, CatalogEntry, is_alias
from .config import Settings, SettingsResolver
from .download import Downloader, ProgressCallback
from .errors import NotInstalledError
from .events import EventBus
from .layout import NvsLayout
from .paths import UserDirs, nvs_root
from .release import ReleaseDescriptor, build_descriptor, make_version_key
from .store import InstalledVersion, VersionStore
from .versions import normalize_token

logger = logging.getLogger(__name__)


class NvsApp:
    """Entry point front-ends call: install, use, uninstall, list, current."""

    def __init__(
        self,
        *,
        root: Path | str | None = None,
        overrides: Mapping[str, str | None] | None = None,
        env: Mapping[str, str] | None = None,
        user_dirs: UserDirs | None = None,
        events: EventBus | None = None,
    ) -> None:
        self.layout = NvsLayout.from_root(root if root is not None else nvs_root(env))
        self.resolver = SettingsResolver(
            nvs_config_file=self.layout.config_file,
            user_dirs=user_dirs,
            cli_overrides=dict(overrides or {}),
            env=env,
        )
        self.settings: Settings = self.resolver.settings()
        self.events = events or EventBus()
        self.catalog = CatalogClient(
            base_url=self.settings.mirror,
            timeout=self.settings.timeout,
            insecure=self.settings.insecure,
        )
        self.downloader = Downloader(
            timeout=self.settings.timeout,
            insecure=self.settings.insecure,
            verify_checksums=self.settings.verify_checksums,
            events=self.events,
        )
        self.switch = ActivationSwitch(
            self.layout,
            make_pointer_storage(self.settings.pointer, self.layout),
            events=self.events,
        )
        self.store = VersionStore(self.layout, switch=self.switch, events=self.events)

    # ------------------------ resolution ------------------------

    def resolve(self, token: str) -> str:
        version = self.catalog.resolve(token)
        self.events.emit("resolved", token=token, version=version)
        return version

    def describe(
        self,
        version: str,
        target_os: str | None = None,
        target_arch: str | None = None,
    ) -> ReleaseDescriptor:
        return build_descriptor(version, target_os, target_arch, base_url=self.settings.mirror)

    def remote(self, *, lts_only: bool = False) -> list[CatalogEntry]:
        return self.catalog.releases(lts_only=lts_only)

    # ------------------------ operations ------------------------

    def install(
        self,
        token: str,
        target_os: str | None = None,
        target_arch: str | None = None,
        *,
        force: bool = False,
        on_progress: ProgressCallback | None = None,
    ) -> InstalledVersion:
        version = self.resolve(token)
        descriptor = self.describe(version, target_os, target_arch)
        key = make_version_key(version, target_os, target_arch)

        def _download(release: ReleaseDescriptor, dest: Path) -> Path:
            return self.downloader.fetch_release(release, dest, on_progress)

        return self.store.install(descriptor, _download, extract, key=key, force=force)

    def use(
        self,
        token: str,
        target_os: str | None = None,
        target_arch: str | None = None,
    ) -> InstalledVersion:
        key = self.store.find(token, target_os, target_arch)
        if key is None and is_alias(token):
            version = self.resolve(token)
            key = self.store.find(version, target_os, target_arch)
        if key is None:
            raise NotInstalledError(make_version_key(normalize_token(token), target_os, target_arch))
        self.switch.use(key)
        return InstalledVersion.from_key(key, self.layout.version_dir(key))

    def uninstall(self, token: str) -> bool:
        key = self.store.find(token) or normalize_token(token)
        if not self.store.is_installed(key):
            logger.info("Node.js %s is not installed", token)
            return False
        return self.store.uninstall(key)

    def list(self) -> list[InstalledVersion]:
        return self.store.installed()

    def current(self) -> str | None:
        return self.switch.current()
