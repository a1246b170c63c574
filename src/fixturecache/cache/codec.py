"""On-disk encoding of cached responses.

A cache entry is the full HTTP/1.1 wire form of a response (status line,
headers, body) compressed with gzip. The wire form is produced and parsed
with :mod:`h11`, the same HTTP/1.1 state machine httpx's transport stack is
built on, so stored entries can be inspected with ``zcat`` and look exactly
like what came off the socket.

Framing is normalised on the way in: the stored body is the *decoded* body
httpx handed us, so ``Content-Encoding`` and ``Transfer-Encoding`` are
dropped and ``Content-Length`` is set to the stored body's length.

Decoding needs the originating request because HTTP/1.1 body delimiting
depends on it: a response to ``HEAD`` declares a ``Content-Length`` but
carries no body.
"""

from __future__ import annotations

import gzip
import zlib

import h11
import httpx

from fixturecache.exceptions import CodecError

_STRIPPED_HEADERS = frozenset({b"content-encoding", b"transfer-encoding"})


def compress(data: bytes) -> bytes:
    """Gzip *data*. ``mtime`` is pinned so identical entries are byte-identical."""
    return gzip.compress(data, mtime=0)


def decompress(data: bytes) -> bytes:
    """Reverse :func:`compress`.

    Raises:
        CodecError: If *data* is empty, truncated, or not gzip.
    """
    if not data:
        raise CodecError("empty cache entry")
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as exc:
        raise CodecError(f"invalid gzip data: {exc}") from exc


def encode_response(response: httpx.Response, method: str = "GET") -> bytes:
    """Serialise *response* to its HTTP/1.1 wire form (uncompressed).

    The body must already be read (``response.read()``).

    Args:
        response: The response to serialise.
        method: Method of the request that produced it. Only ``HEAD``
            changes the output: its ``Content-Length`` is kept as declared.

    Raises:
        CodecError: If the headers cannot be expressed on the wire.
    """
    body = response.content
    is_head = method.upper() == "HEAD"

    headers = [
        (name, value)
        for name, value in response.headers.raw
        if name.lower() not in _STRIPPED_HEADERS
        and (is_head or name.lower() != b"content-length")
    ]
    if not is_head:
        headers.append((b"Content-Length", str(len(body)).encode("ascii")))
        payload = body
    else:
        payload = b""

    conn = h11.Connection(our_role=h11.SERVER)
    conn.receive_data(
        method.upper().encode("ascii") + b" / HTTP/1.1\r\nHost: fixturecache\r\n\r\n"
    )
    conn.next_event()

    try:
        out = conn.send(
            h11.Response(
                status_code=response.status_code,
                headers=headers,
                reason=response.reason_phrase.encode("ascii", "replace"),
            )
        )
        if payload:
            out += conn.send(h11.Data(data=payload))
        out += conn.send(h11.EndOfMessage())
    except h11.ProtocolError as exc:
        raise CodecError(f"cannot serialise response: {exc}") from exc
    return out


def decode_response(data: bytes, request: httpx.Request) -> httpx.Response:
    """Parse wire bytes produced by :func:`encode_response`.

    Args:
        data: Uncompressed HTTP/1.1 response bytes.
        request: The request the entry is being read for. Attached to the
            returned response and used to delimit the body.

    Raises:
        CodecError: If *data* is not a complete, well-formed response.
    """
    conn = h11.Connection(our_role=h11.CLIENT)
    conn.send(
        h11.Request(
            method=request.method,
            target=request.url.raw_path,
            headers=[("Host", request.url.netloc or b"fixturecache")],
        )
    )
    conn.send(h11.EndOfMessage())
    conn.receive_data(data)
    conn.receive_data(b"")

    head: h11.Response | None = None
    chunks: list[bytes] = []
    try:
        while True:
            event = conn.next_event()
            if event is h11.NEED_DATA or isinstance(event, h11.ConnectionClosed):
                raise CodecError("truncated cache entry")
            if isinstance(event, h11.InformationalResponse):
                continue
            if isinstance(event, h11.Response):
                head = event
            elif isinstance(event, h11.Data):
                chunks.append(bytes(event.data))
            elif isinstance(event, h11.EndOfMessage):
                break
    except h11.ProtocolError as exc:
        raise CodecError(f"malformed cache entry: {exc}") from exc

    if head is None:
        raise CodecError("cache entry has no status line")

    try:
        return httpx.Response(
            status_code=head.status_code,
            headers=head.headers.raw_items(),
            content=b"".join(chunks),
            request=request,
            extensions={
                "http_version": b"HTTP/" + head.http_version,
                "reason_phrase": bytes(head.reason),
            },
        )
    except httpx.DecodingError as exc:
        raise CodecError(f"undecodable cache entry body: {exc}") from exc


def read_entry(data: bytes, request: httpx.Request) -> httpx.Response:
    """Decompress and decode a stored entry in one step."""
    return decode_response(decompress(data), request)
