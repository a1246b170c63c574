"""Canonical data shapes shared across fixturecache modules.

The models fall into two groups:

**Configuration models** -- Pydantic models serialised as JSON in the user's
config directory: :class:`HeaderNames`, :class:`StoreConfig`,
:class:`OutputConfig`, and :class:`GlobalConfig`.

**Result types** -- small immutable values returned by the cache core:
:class:`CacheOutcome` and :class:`FreshnessDecision`.
"""

from __future__ import annotations

import enum
from typing import NamedTuple, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_TIMESTAMP_HEADER = "X-Elucidate-Time"
DEFAULT_VERSION_HEADER = "X-Elucidate-Version"
DEFAULT_MAX_ERROR_VERSION = 3

DEFAULT_ERROR_STATUSES: frozenset[int] = frozenset({401, 403, 500, 502, 503, 504})
"""Statuses whose cached copies are retried until the version cap is reached."""


# --- Configuration ---


class HeaderNames(BaseModel):
    """Names of the metadata headers injected into every stored response."""

    timestamp: str = Field(
        default=DEFAULT_TIMESTAMP_HEADER,
        description="Header holding the write time in Unix seconds",
    )
    version: str = Field(
        default=DEFAULT_VERSION_HEADER,
        description="Header holding the per-key write counter",
    )

    @field_validator("timestamp", "version")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("header name must not be empty")
        return value.strip()


class StoreConfig(BaseModel):
    """Settings for a :class:`~fixturecache.cache.store.CacheStore`.

    ``root`` is left unset in the persisted config by default; the CLI then
    falls back to :func:`~fixturecache.config.get_cache_dir`.

    Example::

        StoreConfig(root="/var/cache/crawler", max_error_version=5)
    """

    root: Optional[str] = Field(
        default=None, description="Directory that holds one sub-directory per host"
    )
    max_error_version: int = Field(
        default=DEFAULT_MAX_ERROR_VERSION,
        ge=0,
        description="Highest version at which a cached error response is still refetched",
    )
    error_statuses: list[int] = Field(
        default_factory=lambda: sorted(DEFAULT_ERROR_STATUSES),
        description="Status codes subject to the bounded error retry",
    )
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")
    headers: HeaderNames = Field(default_factory=HeaderNames)

    @field_validator("error_statuses")
    @classmethod
    def _valid_statuses(cls, value: list[int]) -> list[int]:
        for status in value:
            if not 100 <= status <= 599:
                raise ValueError(f"not an HTTP status code: {status}")
        return sorted(set(value))


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )

    @field_validator("format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ("auto", "json", "plain", "rich"):
            raise ValueError(f"unknown output format: {value}")
        return value


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/fixturecache/config.json``.

    Loaded and saved by :func:`~fixturecache.config.load_global_config` and
    :func:`~fixturecache.config.save_global_config`. Values here have the
    lowest precedence; see :func:`~fixturecache.config.resolve_config`.
    """

    store: StoreConfig = Field(default_factory=StoreConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


# --- Results ---


class CacheOutcome(str, enum.Enum):
    """Whether a fetch was answered without contacting the transport.

    A ``304 Not Modified`` revalidation counts as a ``HIT``: the transport was
    contacted but the stored body was served.
    """

    HIT = "hit"
    MISS = "miss"

    @property
    def is_hit(self) -> bool:
        return self is CacheOutcome.HIT


class FreshnessDecision(NamedTuple):
    """Verdict of :meth:`~fixturecache.cache.policy.FreshnessPolicy.evaluate`.

    ``version`` is the stored version counter the next write continues
    from (``0`` when the entry is unusable).
    """

    version: int
    is_hit: bool
