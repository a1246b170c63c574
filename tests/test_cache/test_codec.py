"""Tests for the gzip + HTTP/1.1 entry codec."""

from __future__ import annotations

import gzip

import httpx
import pytest

from fixturecache.cache.codec import (
    compress,
    decode_response,
    decompress,
    encode_response,
    read_entry,
)
from fixturecache.exceptions import CodecError


def _response(status: int = 200, body: bytes = b"hello, world", headers=None) -> httpx.Response:
    response = httpx.Response(status, headers=headers or {}, content=body)
    response.read()
    return response


GET = httpx.Request("GET", "http://example.com/feed")
HEAD = httpx.Request("HEAD", "http://example.com/feed")


# ---------------------------------------------------------------------------
# Compression
# ---------------------------------------------------------------------------


class TestCompression:
    def test_output_is_gzip(self) -> None:
        assert gzip.decompress(compress(b"payload")) == b"payload"

    def test_output_is_stable(self) -> None:
        assert compress(b"payload") == compress(b"payload")

    def test_decompress_round_trip(self) -> None:
        assert decompress(compress(b"payload")) == b"payload"

    @pytest.mark.parametrize("data", [b"", b"plain text", compress(b"payload")[:12]])
    def test_decompress_rejects_bad_input(self, data: bytes) -> None:
        with pytest.raises(CodecError):
            decompress(data)


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


class TestEncode:
    def test_wire_form(self) -> None:
        data = encode_response(_response(headers={"Content-Type": "text/plain"}))
        assert data.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Content-Type: text/plain\r\n" in data
        assert b"Content-Length: 12\r\n" in data
        assert data.endswith(b"\r\n\r\nhello, world")

    def test_decoded_body_is_stored_without_content_encoding(self) -> None:
        body = gzip.compress(b"the original text")
        response = _response(
            body=body, headers={"Content-Encoding": "gzip", "Content-Length": str(len(body))}
        )
        data = encode_response(response)
        assert b"content-encoding" not in data.lower()
        assert b"Content-Length: 17\r\n" in data
        assert data.endswith(b"the original text")

    def test_reason_phrase_preserved(self) -> None:
        data = encode_response(_response(status=404, body=b"nothing here!"))
        assert data.startswith(b"HTTP/1.1 404 Not Found\r\n")

    def test_repeated_headers_are_kept(self) -> None:
        response = _response(headers=[("Set-Cookie", "a=1"), ("Set-Cookie", "b=2")])
        data = encode_response(response)
        assert b"Set-Cookie: a=1\r\n" in data
        assert b"Set-Cookie: b=2\r\n" in data

    def test_head_keeps_declared_length(self) -> None:
        response = _response(body=b"", headers={"Content-Length": "512"})
        data = encode_response(response, "HEAD")
        assert b"Content-Length: 512\r\n" in data
        assert data.endswith(b"\r\n\r\n")


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


class TestDecode:
    def test_round_trip(self) -> None:
        original = _response(
            headers=[("Content-Type", "text/xml"), ("ETag", '"abc"'), ("Vary", "a"), ("Vary", "b")]
        )
        decoded = decode_response(encode_response(original), GET)
        assert decoded.status_code == 200
        assert decoded.content == b"hello, world"
        assert decoded.headers["content-type"] == "text/xml"
        assert decoded.headers["etag"] == '"abc"'
        assert decoded.headers.get_list("vary") == ["a", "b"]
        assert decoded.reason_phrase == "OK"
        assert decoded.request is GET

    def test_head_entry_decodes_without_body(self) -> None:
        data = encode_response(_response(body=b"", headers={"Content-Length": "512"}), "HEAD")
        decoded = decode_response(data, HEAD)
        assert decoded.headers["content-length"] == "512"
        assert decoded.content == b""

    def test_head_entry_read_as_get_is_truncated(self) -> None:
        data = encode_response(_response(body=b"", headers={"Content-Length": "512"}), "HEAD")
        with pytest.raises(CodecError):
            decode_response(data, GET)

    def test_truncated_body(self) -> None:
        data = encode_response(_response())
        with pytest.raises(CodecError):
            decode_response(data[:-4], GET)

    @pytest.mark.parametrize("data", [b"", b"garbage, not http", b"HTTP/1.1 abc OK\r\n\r\n"])
    def test_malformed(self, data: bytes) -> None:
        with pytest.raises(CodecError):
            decode_response(data, GET)

    def test_read_entry(self) -> None:
        stored = compress(encode_response(_response(status=503, body=b"unavailable")))
        decoded = read_entry(stored, GET)
        assert decoded.status_code == 503
        assert decoded.text == "unavailable"

    def test_read_entry_rejects_non_gzip(self) -> None:
        with pytest.raises(CodecError):
            read_entry(encode_response(_response()), GET)
