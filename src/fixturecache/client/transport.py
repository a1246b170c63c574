"""Transports: what the cache store fetches through, and how to put it in front of httpx.

:class:`Transport` is the single capability the store needs: turn an
:class:`httpx.Request` into an :class:`httpx.Response`. :class:`httpx.Client`
satisfies it as is, so does :class:`~fixturecache.cache.store.CacheStore`
itself, which means stores can be stacked or wrapped by retrying transports
without touching the core.

:class:`CachingTransport` goes the other way and plugs a store into an
ordinary :class:`httpx.Client`::

    store = CacheStore(get_cache_dir())
    with httpx.Client(transport=CachingTransport(store)) as client:
        client.get("https://example.com/feed.xml")
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

import httpx

if TYPE_CHECKING:
    from fixturecache.cache.store import CacheStore

# Hop-by-hop framing that no longer describes the already-decoded body.
_FRAMING_HEADERS = ("content-encoding", "transfer-encoding")


@runtime_checkable
class Transport(Protocol):
    """Anything that can execute a request."""

    def send(self, request: httpx.Request) -> httpx.Response:
        ...


def create_default_transport(timeout: float = 30.0) -> httpx.Client:
    """Return the transport used when a store is created without one.

    Redirects are followed so a cache entry holds the final response for
    the URL that was asked for.
    """
    return httpx.Client(timeout=timeout, follow_redirects=True)


class CachingTransport(httpx.BaseTransport):
    """An :class:`httpx.BaseTransport` answering from a :class:`CacheStore`.

    Every miss is committed immediately.

    Args:
        store: The cache store to serve from.
        cutoff: Freshness cutoff applied to every request; ``None`` serves
            any cached entry regardless of age.
    """

    def __init__(self, store: CacheStore, cutoff: Optional[datetime] = None) -> None:
        self._store = store
        self.cutoff = cutoff

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        result = self._store.fetch_and_store(request, self.cutoff)
        response = result.response
        headers = httpx.Headers(response.headers)
        for name in _FRAMING_HEADERS:
            headers.pop(name, None)
        extensions = {
            key: response.extensions[key]
            for key in ("http_version", "reason_phrase")
            if key in response.extensions
        }
        extensions["fixturecache.outcome"] = result.outcome.value
        return httpx.Response(
            status_code=response.status_code,
            headers=headers,
            content=response.content,
            extensions=extensions,
        )

    def close(self) -> None:
        self._store.close()
