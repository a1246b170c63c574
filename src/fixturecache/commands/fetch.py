"""Fetch commands -- fetch through the cache and inspect stored entries.

* ``fixturecache fetch URL`` -- serve a URL from cache or the network and
  print the body. ``--since`` forces revalidation of entries written before
  the given time; ``--no-store`` skips persisting a fresh response.
* ``fixturecache show URL`` -- print the stored HTTP/1.1 entry verbatim.
* ``fixturecache key URL`` -- print the file an URL is cached under.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import httpx
import typer

from fixturecache.cache.keys import key_for_url
from fixturecache.cache.store import CacheStore
from fixturecache.config import build_store, resolve_config
from fixturecache.exceptions import ConfigError, ConnectionError_, FixtureCacheError, InvalidUsageError
from fixturecache.exit_codes import EXIT_NOT_FOUND
from fixturecache.models import StoreConfig
from fixturecache.output import OutputFormat, error, format_response, get_output, info, print_data, print_table, suggest


def fetch_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="URL to fetch."),
    since: Optional[str] = typer.Option(
        None,
        "--since",
        "-s",
        help="Revalidate entries written at or before this time (ISO-8601, Unix seconds, or 'now').",
    ),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method."),
    header: list[str] = typer.Option(
        [], "--header", "-H", help="Extra request header as 'Name: value'. Repeatable."
    ),
    no_store: bool = typer.Option(
        False, "--no-store", help="Do not persist a freshly fetched response."
    ),
    include: bool = typer.Option(
        False, "--include", "-i", help="Print response headers before the body."
    ),
) -> None:
    """Fetch URL through the cache and print the response body.

    The status line and cache outcome go to stderr, the body to stdout.

    Example::

        fixturecache fetch https://example.com/feed.xml
        fixturecache fetch https://example.com/feed.xml --since now
        fixturecache --json fetch https://api.example.com/items?page=2
    """
    try:
        target = _parse_url(url)
        cutoff = parse_cutoff(since)
        headers = _parse_headers(header)
        config = _resolve(ctx)
        with _open_store(ctx, config) as store:
            request = httpx.Request(method.upper(), target, headers=headers)
            try:
                result = store.fetch(request, cutoff)
            except httpx.TransportError as exc:
                raise ConnectionError_(f"Request to {target} failed: {exc}") from exc

            response = result.response
            info(f"HTTP {response.status_code} {response.reason_phrase}")
            info(f"cache: {result.outcome.value}")
            _print_response(target, response, result.outcome.value, store.key_for(target), include)

            if no_store:
                if not result.pending_write.is_noop:
                    info("Not stored (--no-store).")
            else:
                result.pending_write.commit()
    except FixtureCacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def show_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="URL whose cache entry to print."),
) -> None:
    """Print the stored HTTP/1.1 response for URL (status line, headers, body).

    Example::

        fixturecache show https://example.com/feed.xml
    """
    try:
        target = _parse_url(url)
        config = _resolve(ctx)
        with _open_store(ctx, config) as store:
            raw = store.raw_entry(target)
        print_data(raw.decode("utf-8", errors="replace"))
    except FixtureCacheError as exc:
        error(str(exc))
        if exc.exit_code == EXIT_NOT_FOUND:
            suggest(f"Run: fixturecache fetch {url}")
        raise typer.Exit(code=exc.exit_code) from None


def key_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="URL to derive the cache path for."),
) -> None:
    """Print the cache file path for URL without touching the network.

    Example::

        fixturecache key 'https://example.com/a/b?page=2'
    """
    try:
        target = _parse_url(url)
        config = _resolve(ctx)
        if config.root is None:
            raise ConfigError("Store root is not set")
    except FixtureCacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    print_data(str(key_for_url(config.root, target)))


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


def parse_cutoff(value: Optional[str]) -> Optional[datetime]:
    """Parse a ``--since`` value.

    Accepts ``now``, an integer number of Unix seconds, or an ISO-8601
    timestamp (naive timestamps are taken as UTC).

    Raises:
        InvalidUsageError: If *value* is none of those.
    """
    if value is None:
        return None
    value = value.strip()
    if value.lower() == "now":
        return datetime.now(timezone.utc)
    if value.isdigit():
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise InvalidUsageError(f"Invalid --since value: {value}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_url(url: str) -> httpx.URL:
    try:
        target = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise InvalidUsageError(f"Invalid URL {url!r}: {exc}") from exc
    if target.scheme not in ("http", "https") or not target.host:
        raise InvalidUsageError(f"Expected an absolute http(s) URL, got: {url}")
    return target


def _parse_headers(values: list[str]) -> list[tuple[str, str]]:
    headers: list[tuple[str, str]] = []
    for item in values:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            raise InvalidUsageError(f"Expected 'Name: value', got: {item}")
        headers.append((name.strip(), value.strip()))
    return headers


def _resolve(ctx: typer.Context) -> StoreConfig:
    obj = ctx.obj or {}
    return resolve_config(
        cli_root=obj.get("root"),
        cli_max_error_version=obj.get("max_error_version"),
    )


def _open_store(ctx: typer.Context, config: StoreConfig) -> CacheStore:
    """Build the store. A transport in ``ctx.obj["transport"]`` replaces the default httpx client."""
    obj = ctx.obj or {}
    return build_store(config, transport=obj.get("transport"))


def _print_response(
    url: httpx.URL,
    response: httpx.Response,
    outcome: str,
    key: Path,
    include: bool,
) -> None:
    content_type = response.headers.get("content-type", "text/plain")
    if get_output().format == OutputFormat.JSON:
        format_response(
            {
                "url": str(url),
                "status": response.status_code,
                "outcome": outcome,
                "key": str(key),
                "headers": dict(response.headers.multi_items()),
                "body": response.text,
            }
        )
        return

    if include:
        print_table(
            ["Header", "Value"],
            [[name, value] for name, value in response.headers.multi_items()],
            title="Response headers",
        )
    if response.content:
        format_response(response.text, content_type)
