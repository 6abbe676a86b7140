"""Version parsing and ordering helpers shared by the catalog and the store."""

from __future__ import annotations

import re
from typing import Tuple

__all__ = [
    "compare_versions",
    "is_exact_version",
    "is_partial_version",
    "normalize_token",
    "split_version_parts",
    "strip_v",
    "version_key",
]

_EXACT_RE = re.compile(r"^\d+\.\d+\.\d+$")
_PARTIAL_RE = re.compile(r"^\d+(?:\.\d+)?$")


def strip_v(version: str) -> str:
    v = (version or "").strip()
    if v[:1] in ("v", "V"):
        return v[1:]
    return v


def normalize_token(token: str) -> str:
    """Lower-case a user token and drop a single leading ``v``."""
    return strip_v((token or "").strip().lower())


def is_exact_version(token: str) -> bool:
    return bool(_EXACT_RE.match(token or ""))


def is_partial_version(token: str) -> bool:
    return bool(_PARTIAL_RE.match(token or ""))


def split_version_parts(version: str) -> list[int]:
    """Return the numeric components of ``version``.

    Non-numeric suffixes on a component are ignored (``"20-rc"`` -> ``20``),
    a component without leading digits stops the scan.
    """
    v = strip_v(version)
    if not v:
        raise ValueError("empty version")
    parts: list[int] = []
    for raw in v.split("."):
        match = re.match(r"\d+", raw)
        if not match:
            break
        parts.append(int(match.group(0)))
    if not parts:
        raise ValueError(f"invalid version: {version!r}")
    return parts


def version_key(version: str) -> Tuple[int, ...]:
    """Sort key comparing versions component-wise.

    Shorter sequences rank lower than a longer one sharing the same prefix,
    which is what tuple ordering already does.
    """
    try:
        return tuple(split_version_parts(version))
    except ValueError:
        return ()


def compare_versions(a: str, b: str) -> int:
    ka, kb = version_key(a), version_key(b)
    if ka == kb:
        return 0
    return 1 if ka > kb else -1
