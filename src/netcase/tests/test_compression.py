"""Tests for the deflate container, Adler-32 and CompressionMiddleware."""

from __future__ import annotations

import os
import zlib

import pytest

from netcase import Client, DuplicateHeaderError, RequestBody
from netcase.foundation.errors import CompressionError
from netcase.middleware import CompressionMiddleware, DuplicateHeaderBehavior, adler32, deflate
from netcase.testing import MockTransport

SAMPLES = [
    b"",
    b"a",
    b"hello world " * 100,
    bytes(range(256)) * 40,
    os.urandom(70_000),
]


# ═════════════════════════════════════════════════════════════════════════════
# Adler-32
# ═════════════════════════════════════════════════════════════════════════════


def test_adler32_empty_is_one() -> None:
    assert adler32(b"") == 1


def test_adler32_known_value() -> None:
    # a: 2, 4, 7, 11  b: 2, 6, 13, 24
    assert adler32(bytes([1, 2, 3, 4])) == (24 << 16) | 11


@pytest.mark.parametrize("data", SAMPLES, ids=["empty", "one", "text", "ramp", "random"])
def test_adler32_matches_zlib(data: bytes) -> None:
    assert adler32(data) == zlib.adler32(data)


def test_adler32_large_bytes_wrap_modulus() -> None:
    data = b"\xff" * 100_000
    assert adler32(data) == zlib.adler32(data)


def test_adler32_continues_from_value() -> None:
    head, tail = b"abc" * 3000, b"xyz" * 5000
    assert adler32(tail, adler32(head)) == zlib.adler32(head + tail)


# ═════════════════════════════════════════════════════════════════════════════
# Deflate container
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize("data", SAMPLES, ids=["empty", "one", "text", "ramp", "random"])
def test_deflate_is_readable_by_zlib(data: bytes) -> None:
    assert zlib.decompress(deflate(data)) == data


def test_deflate_framing() -> None:
    data = b"framing check " * 50
    encoded = deflate(data)

    assert encoded[:2] == b"\x78\x5e"
    assert encoded[-4:] == zlib.adler32(data).to_bytes(4, "big")
    assert encoded[-4:] != zlib.adler32(encoded[2:-4]).to_bytes(4, "big")


def test_deflate_failure_raises_compression_error() -> None:
    with pytest.raises(CompressionError) as exc_info:
        deflate(b"data", level=42)
    assert exc_info.value.__cause__ is not None


# ═════════════════════════════════════════════════════════════════════════════
# Middleware
# ═════════════════════════════════════════════════════════════════════════════


def _client(transport: MockTransport, **kwargs: object) -> Client:
    return Client("https://upload.test").transport(transport).method("POST").compress_request(**kwargs)


@pytest.mark.asyncio
async def test_compresses_body_and_sets_header() -> None:
    transport = MockTransport()
    payload = b'{"items": [1, 2, 3]}' * 20

    await _client(transport).body(payload).call()

    sent = transport.last_call
    assert sent is not None
    assert sent.request.headers.get("content-encoding") == "deflate"
    assert zlib.decompress(sent.body_bytes) == payload


@pytest.mark.asyncio
async def test_skip_forwards_request_unchanged() -> None:
    transport = MockTransport()
    payload = b"already gzipped"
    client = _client(transport, duplicate_header_behavior=DuplicateHeaderBehavior.SKIP)

    await client.header("Content-Encoding", "gzip").body(payload).call()

    sent = transport.last_call
    assert sent.request == client.header("Content-Encoding", "gzip").request
    assert sent.request.headers.get_all("Content-Encoding") == ["gzip"]
    assert sent.body_bytes == payload


@pytest.mark.asyncio
async def test_error_behavior_raises_before_transport() -> None:
    transport = MockTransport()
    client = _client(transport, duplicate_header_behavior=DuplicateHeaderBehavior.ERROR)

    with pytest.raises(DuplicateHeaderError) as exc_info:
        await client.header("Content-Encoding", "br").body(b"data").call()

    assert exc_info.value.header == "Content-Encoding"
    transport.assert_not_called()


@pytest.mark.asyncio
async def test_replace_overwrites_existing_header() -> None:
    transport = MockTransport()
    payload = b"replace me" * 10
    client = _client(transport, duplicate_header_behavior=DuplicateHeaderBehavior.REPLACE)

    await client.header("content-encoding", "identity").body(payload).call()

    sent = transport.last_call
    assert sent.request.headers.get_all("Content-Encoding") == ["deflate"]
    assert zlib.decompress(sent.body_bytes) == payload


@pytest.mark.asyncio
async def test_no_body_is_noop() -> None:
    transport = MockTransport()
    await _client(transport, duplicate_header_behavior=DuplicateHeaderBehavior.ERROR).header(
        "Content-Encoding", "gzip"
    ).call()

    sent = transport.last_call
    assert sent.body is None
    assert sent.request.headers.get("Content-Encoding") == "gzip"


@pytest.mark.asyncio
async def test_lazy_body_is_not_compressed() -> None:
    transport = MockTransport()
    body = RequestBody.lazy(lambda: b"streamed")

    await _client(transport).body(body).call()

    sent = transport.last_call
    assert sent.body is body
    assert "Content-Encoding" not in sent.request.headers


@pytest.mark.asyncio
async def test_predicate_can_decline() -> None:
    transport = MockTransport()
    seen: list[bytes] = []

    def only_large(data: bytes) -> bool:
        seen.append(data)
        return len(data) > 1024

    await _client(transport, should_compress=only_large).body(b"small").call()

    assert seen == [b"small"]
    assert transport.last_call.body_bytes == b"small"
    assert "Content-Encoding" not in transport.last_call.request.headers


@pytest.mark.asyncio
async def test_encoded_values_are_compressed() -> None:
    transport = MockTransport()
    await _client(transport).body({"name": "rex", "tags": ["a"] * 30}).call()

    sent = transport.last_call
    assert sent.request.headers.get("Content-Type") == "application/json"
    assert zlib.decompress(sent.body_bytes).startswith(b'{"name":"rex"')


def test_default_behavior_is_skip() -> None:
    assert CompressionMiddleware().duplicate_header_behavior is DuplicateHeaderBehavior.SKIP
