"""fixturecache -- a versioned on-disk cache in front of an HTTP client.

Callers issue requests as normal; the cache decides whether a previously
captured response can answer the request or whether a live fetch is needed,
and hands back a pending write that persists the fresh response when
committed. Built for batch fetchers and crawlers that request the same
resources over and over but occasionally need to force revalidation.

Typical use::

    import httpx
    from fixturecache import CacheStore

    with CacheStore("/var/cache/crawler") as store:
        result = store.fetch(httpx.Request("GET", "https://example.com/feed.xml"))
        result.pending_write.commit()

Modules:
    cache: Key derivation, entry codec, freshness policy, and the store.
    client: The transport protocol and an httpx transport backed by a store.
    app: Typer application and CLI entry point.
    models: Pydantic configuration models and result types.
    config: XDG-aware configuration resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting for the CLI.
"""

__version__ = "0.1.0"

from fixturecache.cache.store import CacheStore, FetchResult, PendingWrite  # noqa: E402
from fixturecache.client.transport import CachingTransport, Transport  # noqa: E402
from fixturecache.models import CacheOutcome  # noqa: E402

__all__ = [
    "CacheOutcome",
    "CacheStore",
    "CachingTransport",
    "FetchResult",
    "PendingWrite",
    "Transport",
    "__version__",
]
