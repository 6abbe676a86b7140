"""Layered settings for NVS: CLI overrides, environment, config files, defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import tomllib

from .layout import CONFIG_FILE_NAME
from .paths import UserDirs

DEFAULT_MIRROR = "https://nodejs.org/dist"
DEFAULT_TIMEOUT = 30.0

_DEFAULTS: dict[str, str] = {
    "mirror": DEFAULT_MIRROR,
    "timeout": str(DEFAULT_TIMEOUT),
    "insecure": "false",
    "verify_checksums": "true",
    "pointer": "link",
}
_ENV_KEY_MAP: dict[str, str] = {
    "mirror": "NVS_MIRROR",
    "timeout": "NVS_TIMEOUT",
    "insecure": "NVS_INSECURE",
    "verify_checksums": "NVS_VERIFY_CHECKSUMS",
    "pointer": "NVS_POINTER",
}
_TRUE = {"1", "true", "yes", "on"}
_POINTER_KINDS = ("link", "file")


def _load_config_from_file(path: Path) -> dict[str, str]:
    if not path.exists():
        return {}
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError):
        return {}
    return {key: _stringify(value) for key, value in data.items()}


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class Settings:
    mirror: str = DEFAULT_MIRROR
    timeout: float = DEFAULT_TIMEOUT
    insecure: bool = False
    verify_checksums: bool = True
    pointer: str = "link"


@dataclass
class SettingsResolver:
    """Resolve settings honoring CLI, env, ~/.nvs, user config, defaults order."""

    nvs_config_file: Path | None = None
    user_dirs: UserDirs | None = None
    cli_overrides: Mapping[str, str] | None = None
    env: Mapping[str, str] | None = None
    defaults: Mapping[str, str] | None = None

    def __post_init__(self) -> None:
        self.user_dirs = self.user_dirs or UserDirs()
        self.cli_overrides = {
            key: value for key, value in (self.cli_overrides or {}).items() if value is not None
        }
        self.env = os.environ if self.env is None else self.env
        base_defaults = dict(_DEFAULTS)
        if self.defaults:
            base_defaults.update(self.defaults)
        self.defaults = base_defaults

    def resolve_setting(self, key: str) -> str | None:
        if value := self.cli_overrides.get(key):
            return str(value)
        if value := self._env_value(key):
            return value
        if self.nvs_config_file is not None:
            if value := _load_config_from_file(self.nvs_config_file).get(key):
                return value
        user_config = self.user_dirs.config_dir() / CONFIG_FILE_NAME
        if value := _load_config_from_file(user_config).get(key):
            return value
        return self.defaults.get(key)

    def settings(self) -> Settings:
        pointer = (self.resolve_setting("pointer") or "link").strip().lower()
        if pointer not in _POINTER_KINDS:
            raise ValueError(f"pointer must be one of {', '.join(_POINTER_KINDS)}, got {pointer!r}")
        raw_timeout = self.resolve_setting("timeout") or str(DEFAULT_TIMEOUT)
        try:
            timeout = float(raw_timeout)
        except ValueError as exc:
            raise ValueError(f"timeout must be a number, got {raw_timeout!r}") from exc
        return Settings(
            mirror=(self.resolve_setting("mirror") or DEFAULT_MIRROR).rstrip("/"),
            timeout=max(timeout, 1.0),
            insecure=self._flag("insecure"),
            verify_checksums=self._flag("verify_checksums"),
            pointer=pointer,
        )

    def _flag(self, key: str) -> bool:
        return (self.resolve_setting(key) or "").strip().lower() in _TRUE

    def _env_value(self, key: str) -> str | None:
        alias = _ENV_KEY_MAP.get(key)
        if alias:
            return self.env.get(alias)
        return None
