"""The cache store: read-through, write-on-commit HTTP response cache.

:class:`CacheStore` sits in front of any :class:`~fixturecache.client.transport.Transport`.
For each request it derives a storage key, reads and decodes the existing
entry, asks the :class:`~fixturecache.cache.policy.FreshnessPolicy` whether
the entry can be served, and otherwise performs a conditional fetch.

Writes are deferred. :meth:`CacheStore.fetch` returns a :class:`PendingWrite`
holding the already-encoded entry; nothing touches the disk until the caller
invokes :meth:`PendingWrite.commit`. That lets callers skip persisting
responses they are about to discard.

No locking is applied to cache files. Concurrent fetches of one key may
both miss and both fetch; the last commit wins.

Example::

    from fixturecache.cache import CacheStore

    store = CacheStore("/var/cache/crawler", max_error_version=2)
    request = httpx.Request("GET", "https://example.com/feed.xml")
    result = store.fetch(request, cutoff=datetime(2024, 1, 1, tzinfo=timezone.utc))
    if result.response.status_code == 200:
        result.pending_write.commit()
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable, NamedTuple, Optional

import httpx

from fixturecache.cache.codec import compress, decompress, encode_response, read_entry
from fixturecache.cache.keys import key_for_url
from fixturecache.cache.policy import FreshnessPolicy
from fixturecache.exceptions import CacheWriteError, CodecError, EntryNotFoundError
from fixturecache.models import (
    DEFAULT_ERROR_STATUSES,
    DEFAULT_MAX_ERROR_VERSION,
    DEFAULT_TIMESTAMP_HEADER,
    DEFAULT_VERSION_HEADER,
    CacheOutcome,
)

if TYPE_CHECKING:
    from fixturecache.client.transport import Transport

logger = logging.getLogger(__name__)

ETAG_HEADER = "ETag"
IF_NONE_MATCH_HEADER = "If-None-Match"


class PendingWrite:
    """A cache entry that has been encoded but not yet written.

    Args:
        path: Destination file.
        data: Uncompressed wire bytes, or ``None`` for a no-op write.
        error: Set when the response could not be encoded; raised from
            :meth:`commit` so the failure surfaces where writes do.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        data: Optional[bytes] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.path = path
        self.data = data
        self.error = error

    @classmethod
    def noop(cls) -> PendingWrite:
        return cls()

    @property
    def is_noop(self) -> bool:
        return self.data is None and self.error is None

    def commit(self) -> None:
        """Compress and write the entry.

        The file is written to a temporary sibling and renamed into place,
        so readers never observe a half-written entry.

        Raises:
            CacheWriteError: If encoding failed earlier or the directory,
                compression or file write fails.
        """
        if self.error is not None:
            raise CacheWriteError(
                f"Failed to encode response for {self.path}: {self.error}"
            ) from self.error
        if self.data is None or self.path is None:
            return
        try:
            _atomic_write_bytes(self.path, compress(self.data))
        except (OSError, ValueError) as exc:
            raise CacheWriteError(f"Failed to write cache entry {self.path}: {exc}") from exc
        logger.debug("Committed %d bytes to %s", len(self.data), self.path)

    def __repr__(self) -> str:
        if self.is_noop:
            return "PendingWrite(noop)"
        return f"PendingWrite(path={str(self.path)!r}, bytes={len(self.data or b'')})"


class FetchResult(NamedTuple):
    """Value returned by :meth:`CacheStore.fetch`."""

    response: httpx.Response
    outcome: CacheOutcome
    pending_write: PendingWrite

    @property
    def from_cache(self) -> bool:
        return self.outcome.is_hit


class CacheStore:
    """Filesystem-backed response cache with bounded error retry.

    Args:
        root: Directory holding one sub-directory per host.
        transport: Anything with ``send(request) -> httpx.Response``.
            Defaults to a fresh :class:`httpx.Client`.
        max_error_version: Highest version at which a cached error
            response is still refetched.
        timestamp_header: Name of the write-timestamp header.
        version_header: Name of the version header.
        error_statuses: Status codes subject to the bounded retry.
        clock: Returns the current Unix time; injected by tests.
    """

    def __init__(
        self,
        root: str | Path,
        transport: Optional[Transport] = None,
        max_error_version: int = DEFAULT_MAX_ERROR_VERSION,
        timestamp_header: str = DEFAULT_TIMESTAMP_HEADER,
        version_header: str = DEFAULT_VERSION_HEADER,
        error_statuses: Iterable[int] = DEFAULT_ERROR_STATUSES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if transport is None:
            from fixturecache.client.transport import create_default_transport

            transport = create_default_transport()
        self.root = Path(root)
        self.transport = transport
        self.policy = FreshnessPolicy(
            max_error_version=max_error_version,
            timestamp_header=timestamp_header,
            version_header=version_header,
            error_statuses=error_statuses,
        )
        self._clock = clock
        self._seen_dirs: set[Path] = set()
        self._seen_lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> CacheStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the transport if it has a ``close`` method."""
        close = getattr(self.transport, "close", None)
        if close is not None:
            close()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def fetch(self, request: httpx.Request, cutoff: Optional[datetime] = None) -> FetchResult:
        """Serve *request* from cache or fetch it through the transport.

        Args:
            request: The outbound request. It is not modified; the
                conditional header is added to a copy.
            cutoff: Cached entries written at or before this instant are
                revalidated. ``None`` accepts any cached entry.

        Returns:
            A :class:`FetchResult`. On a miss its ``pending_write`` must be
            committed for the response to be cached.

        Raises:
            Exception: Whatever the transport raises, unchanged.
        """
        key = self.key_for(request.url)
        self._ensure_dir(key.parent)

        version = 0
        etag = ""
        stored = self._load(key, request)
        if stored is not None:
            decision = self.policy.evaluate(stored, cutoff)
            if decision.is_hit:
                logger.debug("Cache hit: %s %s", request.method, request.url)
                return FetchResult(stored, CacheOutcome.HIT, PendingWrite.noop())
            etag = stored.headers.get(ETAG_HEADER, "")
            version = decision.version

        logger.debug("Cache miss: %s %s (version %d)", request.method, request.url, version)
        response = self.transport.send(_conditional(request, etag))

        if response.status_code == httpx.codes.NOT_MODIFIED and stored is not None:
            logger.debug("Not modified: %s %s", request.method, request.url)
            return FetchResult(stored, CacheOutcome.HIT, PendingWrite.noop())

        return FetchResult(response, CacheOutcome.MISS, self._prepare_write(key, request, response, version + 1))

    def fetch_and_store(self, request: httpx.Request, cutoff: Optional[datetime] = None) -> FetchResult:
        """Like :meth:`fetch` but commit the pending write immediately.

        Raises:
            CacheWriteError: If the write fails. The fetched result is
                attached to the exception as ``result``.
        """
        result = self.fetch(request, cutoff)
        try:
            result.pending_write.commit()
        except CacheWriteError as exc:
            exc.result = result
            raise
        return result

    def send(self, request: httpx.Request) -> httpx.Response:
        """Transport-compatible entry point: serve from cache whenever possible.

        Uses no cutoff, so an entry once stored is never refreshed (error
        responses still get their bounded retry). Misses are committed
        immediately.
        """
        return self.fetch_and_store(request).response

    def key_for(self, url: httpx.URL | str) -> Path:
        """Return the cache file path for *url*."""
        return key_for_url(self.root, url)

    def raw_entry(self, url: httpx.URL | str) -> bytes:
        """Return the decompressed wire bytes stored for *url*.

        Raises:
            EntryNotFoundError: If nothing is stored for *url*.
            CodecError: If the stored file is not valid gzip.
        """
        key = self.key_for(url)
        try:
            data = key.read_bytes()
        except (FileNotFoundError, ValueError) as exc:
            raise EntryNotFoundError(f"No cache entry for {url} at {key}") from exc
        return decompress(data)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _ensure_dir(self, directory: Path) -> None:
        """Create *directory* once per store; failures are left for commit to report."""
        with self._seen_lock:
            if directory in self._seen_dirs:
                return
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except (OSError, ValueError) as exc:
            logger.debug("Could not create %s: %s", directory, exc)
            return
        with self._seen_lock:
            self._seen_dirs.add(directory)

    def _load(self, key: Path, request: httpx.Request) -> Optional[httpx.Response]:
        try:
            return read_entry(key.read_bytes(), request)
        except FileNotFoundError:
            return None
        except (OSError, ValueError, CodecError) as exc:
            logger.debug("Ignoring unreadable cache entry %s: %s", key, exc)
            return None

    def _prepare_write(
        self,
        key: Path,
        request: httpx.Request,
        response: httpx.Response,
        version: int,
    ) -> PendingWrite:
        response.read()
        response.headers[self.policy.timestamp_header] = str(int(self._clock()))
        response.headers[self.policy.version_header] = str(version)
        try:
            data = encode_response(response, request.method)
        except CodecError as exc:
            logger.warning("Response for %s will not be cached: %s", request.url, exc)
            return PendingWrite(path=key, error=exc)
        return PendingWrite(path=key, data=data)


def _conditional(request: httpx.Request, etag: str) -> httpx.Request:
    """Copy *request* with ``If-None-Match`` set to *etag*."""
    headers = request.headers.copy()
    headers[IF_NONE_MATCH_HEADER] = etag
    return httpx.Request(
        request.method,
        request.url,
        headers=headers,
        stream=request.stream,
        extensions=request.extensions,
    )


def _atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write *data* to *path* via a temp file in the same directory + ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path: Optional[str] = None
    try:
        with tempfile.NamedTemporaryFile(
            dir=path.parent,
            prefix=".entry.",
            suffix=".tmp",
            delete=False,
        ) as fh:
            tmp_path = fh.name
            fh.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise
