"""Platform-independent helpers for NVS paths."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from platformdirs import user_config_dir

_DEFAULT_APP_NAME = "nvs"
NVS_DIR_NAME = ".nvs"


def home_dir(env: Mapping[str, str] | None = None) -> Path:
    """Return the home directory NVS lives under.

    Only ``HOME`` and then ``USERPROFILE`` are consulted so the root can be
    relocated for tests and sandboxes by setting one variable.
    """
    env = os.environ if env is None else env
    for name in ("HOME", "USERPROFILE"):
        value = env.get(name)
        if value:
            return Path(value)
    return Path(".")


def nvs_root(env: Mapping[str, str] | None = None) -> Path:
    return home_dir(env) / NVS_DIR_NAME


@dataclass(frozen=True)
class UserDirs:
    """Expose the platform-configured locations for user configuration."""

    app_name: str = _DEFAULT_APP_NAME
    config_dir_override: Path | None = None

    def config_dir(self) -> Path:
        return (
            self.config_dir_override
            if self.config_dir_override
            else Path(user_config_dir(self.app_name, appauthor=False))
        )

