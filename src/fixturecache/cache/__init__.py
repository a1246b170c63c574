"""Filesystem response cache for fixturecache.

This package holds the cache core:

* :mod:`~fixturecache.cache.keys` -- maps a URL to its storage path.
* :mod:`~fixturecache.cache.codec` -- gzip + HTTP/1.1 wire encoding of entries.
* :mod:`~fixturecache.cache.policy` -- hit/miss decisions and bounded error retry.
* :mod:`~fixturecache.cache.store` -- :class:`CacheStore`, which ties them
  together around a pluggable transport.
"""

from fixturecache.cache.codec import decode_response, encode_response
from fixturecache.cache.keys import derive_key, key_for_url
from fixturecache.cache.policy import FreshnessPolicy
from fixturecache.cache.store import CacheStore, FetchResult, PendingWrite

__all__ = [
    "CacheStore",
    "FetchResult",
    "FreshnessPolicy",
    "PendingWrite",
    "decode_response",
    "derive_key",
    "encode_response",
    "key_for_url",
]
