"""Freshness policy: may a stored response be served without a fetch?

Freshness is driven by two metadata headers stamped on every entry at
write time (a Unix timestamp and a version counter) and a caller-supplied
cutoff. Standard ``Cache-Control`` directives are ignored.

Error responses get a bounded retry. While an entry with a status in
``error_statuses`` has a version at or below ``max_error_version`` it is
never a hit, so each fetch goes back to the origin and the next write bumps
the version. Once the version passes the cap the error is served from cache
unconditionally, whatever the cutoff, so a permanently failing endpoint
stops being hammered.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import httpx

from fixturecache.models import (
    DEFAULT_ERROR_STATUSES,
    DEFAULT_MAX_ERROR_VERSION,
    DEFAULT_TIMESTAMP_HEADER,
    DEFAULT_VERSION_HEADER,
    FreshnessDecision,
)

logger = logging.getLogger(__name__)

MINIMUM_CONTENT_LENGTH = 10
"""Entries declaring a shorter body are assumed to be truncated captures."""

_UNUSABLE = FreshnessDecision(version=0, is_hit=False)
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class FreshnessPolicy:
    """Decide hit or miss for a stored response.

    Args:
        max_error_version: Highest stored version at which an error
            response is still refetched.
        timestamp_header: Name of the write-timestamp header.
        version_header: Name of the version header.
        error_statuses: Status codes subject to the bounded retry.
    """

    def __init__(
        self,
        max_error_version: int = DEFAULT_MAX_ERROR_VERSION,
        timestamp_header: str = DEFAULT_TIMESTAMP_HEADER,
        version_header: str = DEFAULT_VERSION_HEADER,
        error_statuses: Iterable[int] = DEFAULT_ERROR_STATUSES,
    ) -> None:
        self.max_error_version = max_error_version
        self.timestamp_header = timestamp_header
        self.version_header = version_header
        self.error_statuses = frozenset(error_statuses)

    def evaluate(
        self,
        stored: httpx.Response,
        cutoff: Optional[datetime] = None,
    ) -> FreshnessDecision:
        """Evaluate *stored* against *cutoff*.

        Args:
            stored: A decoded cache entry.
            cutoff: Entries written at or before this instant are stale.
                ``None`` accepts any entry regardless of age.

        Returns:
            The version to continue counting from and whether the entry
            may be served as is.
        """
        content_length = stored.headers.get("content-length")
        if content_length is not None:
            try:
                if int(content_length) < MINIMUM_CONTENT_LENGTH:
                    return _UNUSABLE
            except ValueError:
                return _UNUSABLE

        written_at = self.write_timestamp(stored)
        if written_at is None:
            return _UNUSABLE

        version = self.version(stored)
        if version is None:
            return _UNUSABLE

        if stored.status_code in self.error_statuses:
            if version <= self.max_error_version:
                logger.debug(
                    "Retrying cached %d (version %d of %d)",
                    stored.status_code, version, self.max_error_version,
                )
                return FreshnessDecision(version=version, is_hit=False)
            return FreshnessDecision(version=version, is_hit=True)

        return FreshnessDecision(version=version, is_hit=_is_after(written_at, cutoff))

    def write_timestamp(self, stored: httpx.Response) -> Optional[int]:
        """Return the stored write time in Unix seconds, or ``None`` if absent or malformed."""
        raw = stored.headers.get(self.timestamp_header)
        if not raw or not _is_decimal(raw.removeprefix("-")):
            return None
        return int(raw)

    def version(self, stored: httpx.Response) -> Optional[int]:
        """Return the stored version; entries predating the header count as version 1."""
        raw = stored.headers.get(self.version_header)
        if not raw:
            return 1
        if not _is_decimal(raw):
            return None
        return int(raw)


def _is_after(written_at: int, cutoff: Optional[datetime]) -> bool:
    """Naive cutoffs are UTC. ``datetime.min`` accepts every entry."""
    if cutoff is None:
        return True
    if cutoff.tzinfo is None:
        cutoff = cutoff.replace(tzinfo=timezone.utc)
    try:
        written = _EPOCH + timedelta(seconds=written_at)
    except OverflowError:
        return written_at > 0
    return written > cutoff


def _is_decimal(raw: str) -> bool:
    """ASCII digits only: no sign, whitespace or underscores."""
    return raw.isascii() and raw.isdigit()
