"""Exception hierarchy for fixturecache.

All exceptions inherit from :class:`FixtureCacheError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`fixturecache.exit_codes`. The top-level error handler in
:func:`fixturecache.app.main` catches ``FixtureCacheError`` and exits with
the appropriate code, while unexpected exceptions produce a crash log and
exit with :data:`EXIT_GENERIC_FAILURE`.

Transport failures raised while fetching are *not* wrapped by the library:
:meth:`~fixturecache.cache.store.CacheStore.fetch` lets the transport's own
exception (usually an :class:`httpx.HTTPError`) propagate. Only the CLI
converts them into :class:`ConnectionError_`.

Subclass hierarchy::

    FixtureCacheError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- ConfigError         (exit 1)
    +-- EntryNotFoundError  (exit 4)
    +-- ConnectionError_    (exit 6)
    +-- CodecError          (exit 7)
    +-- CacheWriteError     (exit 8)
"""

from fixturecache.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_CORRUPT_ENTRY,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_WRITE_ERROR,
)


class FixtureCacheError(Exception):
    """Base exception for all fixturecache errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`fixturecache.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(FixtureCacheError):
    """Raised for invalid CLI arguments (bad URL, unparsable ``--since``)."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(FixtureCacheError):
    """Raised for configuration problems (invalid JSON, bad values in the environment)."""

    exit_code = EXIT_GENERIC_FAILURE


class EntryNotFoundError(FixtureCacheError):
    """Raised when no cache file exists for a URL."""

    exit_code = EXIT_NOT_FOUND


class ConnectionError_(FixtureCacheError):
    """Raised by the CLI on network-level failures.

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class CodecError(FixtureCacheError):
    """Raised when stored bytes are not a gzip-compressed HTTP/1.1 response.

    The cache store never lets this escape :meth:`fetch`; a corrupt entry is
    simply treated as a miss.
    """

    exit_code = EXIT_CORRUPT_ENTRY


class CacheWriteError(FixtureCacheError):
    """Raised by :meth:`PendingWrite.commit` when the entry cannot be persisted.

    When raised from :meth:`CacheStore.fetch_and_store`, ``result`` holds
    the :class:`FetchResult` whose write failed so the response is not lost.
    """

    exit_code = EXIT_WRITE_ERROR
    result = None
