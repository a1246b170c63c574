"""Transport layer for fixturecache.

Classes:
    :class:`Transport` -- the one-method protocol the cache store fetches through.
    :class:`CachingTransport` -- an :class:`httpx.BaseTransport` that answers
    from a :class:`~fixturecache.cache.store.CacheStore`.
"""

from fixturecache.client.transport import CachingTransport, Transport, create_default_transport

__all__ = ["CachingTransport", "Transport", "create_default_transport"]
