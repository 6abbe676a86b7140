"""Version catalog client for the Node.js release index."""

from .client import CatalogClient, parse_catalog
from .resolver import CatalogFetcher, is_alias, resolve_version
from .types import CatalogEntry

__all__ = [
    "CatalogClient",
    "CatalogEntry",
    "CatalogFetcher",
    "is_alias",
    "parse_catalog",
    "resolve_version",
]
