"""Release catalog datatypes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from ..errors import ParseError
from ..versions import strip_v


@dataclass(frozen=True)
class CatalogEntry:
    """One row of the upstream ``index.json``.

    ``lts`` keeps the raw upstream marker: ``False`` for current-line
    releases, the codename string (``"Hydrogen"``) for LTS releases.
    """

    version: str
    lts: bool | str = False
    date: str | None = None
    files: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_lts(self) -> bool:
        return self.lts is not False and bool(self.lts)

    @property
    def bare_version(self) -> str:
        return strip_v(self.version)

    @property
    def codename(self) -> str | None:
        return self.lts if isinstance(self.lts, str) and self.lts else None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CatalogEntry":
        version = data.get("version")
        if not isinstance(version, str) or not version.strip():
            raise ParseError(f"catalog entry without a version string: {dict(data)!r}")
        lts = data.get("lts", False)
        if not isinstance(lts, (bool, str)):
            lts = bool(lts)
        raw_files = data.get("files") or []
        files = tuple(str(item) for item in raw_files) if isinstance(raw_files, list) else ()
        date = data.get("date")
        return cls(
            version=version.strip(),
            lts=lts,
            date=str(date) if date else None,
            files=files,
        )
