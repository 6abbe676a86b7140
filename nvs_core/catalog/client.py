"""HTTP client for the upstream Node.js release index."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import requests
from requests import RequestException, Response

from ..config import DEFAULT_MIRROR, DEFAULT_TIMEOUT
from ..errors import FetchError, ParseError
from .resolver import resolve_version
from .types import CatalogEntry

logger = logging.getLogger(__name__)

INDEX_FILE_NAME = "index.json"


@dataclass
class CatalogClient:
    """Fetch and parse ``{mirror}/index.json``.

    Failures are reported once; retrying is left to the caller.
    """

    base_url: str = DEFAULT_MIRROR
    timeout: float = DEFAULT_TIMEOUT
    insecure: bool = False
    session: requests.Session = field(default_factory=requests.Session, repr=False)

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")
        if self.insecure:
            self.session.verify = False

    @property
    def index_url(self) -> str:
        return f"{self.base_url}/{INDEX_FILE_NAME}"

    def fetch(self) -> list[CatalogEntry]:
        resp = self._get(self.index_url)
        try:
            payload = resp.json()
        except ValueError as exc:
            raise ParseError(f"malformed catalog JSON from {self.index_url}: {exc}") from exc
        return parse_catalog(payload, source=self.index_url)

    def resolve(self, token: str) -> str:
        return resolve_version(token, self.fetch)

    def releases(self, *, lts_only: bool = False) -> list[CatalogEntry]:
        entries = self.fetch()
        if lts_only:
            return [entry for entry in entries if entry.is_lts]
        return entries

    def _get(self, url: str) -> Response:
        logger.debug("GET %s timeout=%s insecure=%s", url, self.timeout, self.insecure)
        try:
            resp = self.session.get(url, timeout=self.timeout)
        except RequestException as exc:
            raise FetchError(f"GET {url} failed: {exc}") from exc
        if not 200 <= resp.status_code < 300:
            raise FetchError(f"GET {url} returned {resp.status_code}")
        return resp


def parse_catalog(payload: Any, *, source: str = "catalog") -> list[CatalogEntry]:
    if not isinstance(payload, list):
        raise ParseError(f"{source}: expected a JSON array, got {type(payload).__name__}")
    entries: list[CatalogEntry] = []
    for item in payload:
        if not isinstance(item, dict):
            raise ParseError(f"{source}: expected objects in catalog array")
        entries.append(CatalogEntry.from_dict(item))
    return entries
