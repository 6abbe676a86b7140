"""Streaming downloads of release archives and their checksum lists."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import requests
from requests import RequestException

from .config import DEFAULT_TIMEOUT
from .errors import ChecksumMismatch, FetchError, NvsIOError
from .events import EventBus
from .release import ReleaseDescriptor

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, "int | None"], None]

_CHUNK_SIZE = 64 * 1024


def sha256_file(path: Path) -> str:
    hash_obj = hashlib.sha256()
    with path.open("rb") as stream:
        for chunk in iter(lambda: stream.read(65536), b""):
            hash_obj.update(chunk)
    return hash_obj.hexdigest()


def parse_shasums(text: str) -> dict[str, str]:
    """Parse ``SHASUMS256.txt`` lines of the form ``<hex>  <filename>``."""
    sums: dict[str, str] = {}
    for raw in text.splitlines():
        parts = raw.strip().split()
        if len(parts) != 2:
            continue
        digest, name = parts
        sums[name.lstrip("*")] = digest.lower()
    return sums


@dataclass
class Downloader:
    """Fetch release archives over HTTP with a bounded timeout."""

    timeout: float = DEFAULT_TIMEOUT
    insecure: bool = False
    verify_checksums: bool = True
    events: EventBus | None = None
    session: requests.Session = field(default_factory=requests.Session, repr=False)

    def __post_init__(self) -> None:
        if self.insecure:
            self.session.verify = False

    def fetch(self, url: str, dest: Path, on_progress: ProgressCallback | None = None) -> Path:
        """Stream ``url`` into ``dest``; a partial ``dest`` is removed on failure."""
        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        logger.info("downloading %s", url)
        try:
            resp = self.session.get(url, stream=True, timeout=self.timeout)
        except RequestException as exc:
            raise FetchError(f"download {url} failed: {exc}") from exc

        completed = False
        try:
            if not 200 <= resp.status_code < 300:
                raise FetchError(f"download {url} returned {resp.status_code}")
            total = _content_length(resp)
            self._emit("download_started", url=url, total=total)
            received = 0
            with dest.open("wb") as handle:
                for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
                    if not chunk:
                        continue
                    handle.write(chunk)
                    received += len(chunk)
                    if on_progress is not None:
                        on_progress(received, total)
                    self._emit("download_progress", url=url, received=received, total=total)
            completed = True
        except RequestException as exc:
            raise FetchError(f"download {url} interrupted: {exc}") from exc
        except OSError as exc:
            raise NvsIOError(f"cannot write {dest}: {exc}") from exc
        finally:
            resp.close()
            if not completed:
                dest.unlink(missing_ok=True)
        logger.debug("downloaded %s (%d bytes)", dest.name, received)
        return dest

    def fetch_release(
        self,
        descriptor: ReleaseDescriptor,
        dest: Path,
        on_progress: ProgressCallback | None = None,
    ) -> Path:
        path = self.fetch(descriptor.url, dest, on_progress)
        if self.verify_checksums:
            try:
                self.verify(descriptor, path)
            except FetchError:
                path.unlink(missing_ok=True)
                raise
        return path

    def verify(self, descriptor: ReleaseDescriptor, path: Path) -> None:
        sums = parse_shasums(self._get_text(descriptor.checksum_url))
        expected = sums.get(descriptor.filename)
        if expected is None:
            raise ChecksumMismatch(
                f"{descriptor.filename} is not listed in {descriptor.checksum_url}"
            )
        actual = sha256_file(path)
        if actual != expected:
            raise ChecksumMismatch(
                f"checksum mismatch for {descriptor.filename}: expected {expected} but got {actual}"
            )
        logger.debug("sha256 verified for %s", descriptor.filename)

    def _get_text(self, url: str) -> str:
        try:
            resp = self.session.get(url, timeout=self.timeout)
        except RequestException as exc:
            raise FetchError(f"GET {url} failed: {exc}") from exc
        if not 200 <= resp.status_code < 300:
            raise FetchError(f"GET {url} returned {resp.status_code}")
        return resp.text

    def _emit(self, name: str, **payload: object) -> None:
        if self.events is not None:
            self.events.emit(name, **payload)


def _content_length(resp: requests.Response) -> int | None:
    raw = resp.headers.get("Content-Length")
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None
