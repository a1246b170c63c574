"""Storage key derivation.

Every distinct ``(host, path, query)`` tuple maps to one file::

    <root>/<host>/<path with / replaced by ->?<query with / replaced by ->.gz

The file name is lower-cased so the tree sorts naturally by host, then
path. No canonicalisation is applied to the query string: ``?a=1&b=2`` and
``?b=2&a=1`` are different entries.
"""

from __future__ import annotations

from pathlib import Path

import httpx


def derive_key(root: str | Path, host: str, path: str, query: str) -> Path:
    """Return the cache file path for a request target.

    Args:
        root: Cache root directory.
        host: Host (and port, when present) of the request URL.
        path: URL path; leading slashes are stripped.
        query: Raw query string without the ``?``.

    Returns:
        ``root / host / "<cleaned-path>?<cleaned-query>.gz"``.
    """
    cleaned_query = query.replace("/", "-")
    cleaned_path = path.lstrip("/").replace("/", "-")
    return Path(root) / host / f"{cleaned_path}?{cleaned_query}.gz".lower()


def key_for_url(root: str | Path, url: httpx.URL | str) -> Path:
    """Derive the storage key for a full URL.

    The host component keeps an explicit port (``example.com:8080``) so
    that services on different ports never share entries.
    """
    url = httpx.URL(url)
    return derive_key(
        root,
        url.netloc.decode("ascii"),
        url.path,
        url.query.decode("ascii"),
    )
