"""Layout helpers for the ~/.nvs directory tree."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

__all__ = ["NvsLayout", "CONFIG_FILE_NAME"]

VERSIONS_DIR_NAME = "versions"
CURRENT_NAME = "current"
CURRENT_BIN_DIR_NAME = "current-bin"
TMP_DIR_NAME = "tmp"
CONFIG_FILE_NAME = "config.toml"


@dataclass(frozen=True)
class NvsLayout:
    """Defines the directory structure that ~/.nvs should contain."""

    root: Path
    versions_dir: Path
    current: Path
    current_bin_dir: Path
    tmp_dir: Path
    config_file: Path

    @classmethod
    def from_root(cls, root: Path | str) -> "NvsLayout":
        root = Path(root).expanduser().absolute()
        return cls(
            root=root,
            versions_dir=root / VERSIONS_DIR_NAME,
            current=root / CURRENT_NAME,
            current_bin_dir=root / CURRENT_BIN_DIR_NAME,
            tmp_dir=root / TMP_DIR_NAME,
            config_file=root / CONFIG_FILE_NAME,
        )

    def ensure(self) -> None:
        """Create the directories every operation relies on."""
        for directory in (self.root, self.versions_dir, self.tmp_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def version_dir(self, key: str) -> Path:
        if not key or key in (".", "..") or "/" in key or "\\" in key:
            raise ValueError(f"invalid version key: {key!r}")
        return self.versions_dir / key
