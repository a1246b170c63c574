"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~fixturecache.exceptions.FixtureCacheError` subclass.
Shell wrappers around batch fetch jobs can inspect the exit code to tell a
network failure from a broken cache directory without parsing stderr.

Example::

    $ fixturecache fetch https://example.com/feed.xml
    $ echo $?
    6   # EXIT_CONNECTION_ERROR -- the origin could not be reached
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_NOT_FOUND = 4
"""No cache entry exists for the requested URL."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_CORRUPT_ENTRY = 7
"""A stored cache entry could not be decompressed or parsed."""

EXIT_WRITE_ERROR = 8
"""A cache entry could not be written to disk."""
