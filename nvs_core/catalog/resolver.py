"""Turn a user version token into a concrete release version."""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from ..errors import NotFoundError
from ..versions import is_exact_version, is_partial_version, normalize_token, version_key
from .types import CatalogEntry

logger = logging.getLogger(__name__)

CatalogFetcher = Callable[[], Sequence[CatalogEntry]]

LATEST_ALIASES = ("latest", "current")
LTS_ALIAS = "lts"


def is_alias(token: str) -> bool:
    return normalize_token(token) in (*LATEST_ALIASES, LTS_ALIAS)


def resolve_version(token: str, fetch: CatalogFetcher) -> str:
    """Resolve ``token`` to a bare version string (no ``v`` prefix).

    Exact ``MAJOR.MINOR.PATCH`` tokens are returned without calling
    ``fetch``. Everything else consults the catalog, which must be ordered
    newest first.
    """
    clean = normalize_token(token)
    if not clean:
        raise NotFoundError(token, "empty version token")
    if is_exact_version(clean):
        logger.info("resolved %s -> %s", token, clean)
        return clean

    entries = fetch()
    entry = _select(clean, entries)
    if entry is None:
        raise NotFoundError(token)
    resolved = entry.bare_version
    suffix = f" (LTS {entry.codename})" if entry.codename else ""
    logger.info("resolved %s -> %s%s", token, resolved, suffix)
    return resolved


def _select(clean: str, entries: Sequence[CatalogEntry]) -> CatalogEntry | None:
    if clean in LATEST_ALIASES:
        return entries[0] if entries else None
    if clean == LTS_ALIAS:
        for entry in entries:
            if entry.is_lts:
                return entry
        return None
    if is_partial_version(clean):
        return _greatest_with_prefix(f"v{clean}.", entries)
    return None


def _greatest_with_prefix(prefix: str, entries: Sequence[CatalogEntry]) -> CatalogEntry | None:
    best: CatalogEntry | None = None
    best_key: tuple[int, ...] = ()
    for entry in entries:
        if not entry.version.startswith(prefix):
            continue
        key = version_key(entry.version)
        # strict comparison keeps the first catalog match on ties
        if best is None or key > best_key:
            best = entry
            best_key = key
    return best
