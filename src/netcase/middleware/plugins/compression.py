"""Request body compression using the `deflate` content encoding.

The encoded body is a zlib container built by hand:

    0x78 0x5E | raw DEFLATE payload | Adler-32 of the input, big-endian

Any zlib-speaking peer (``zlib.decompress`` included) reads it back.

Most request bodies are small and would only be slowed down by compression.
Measure before enabling it, and avoid it for already-compressed payloads.
"""

from __future__ import annotations

import logging
import zlib
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from itertools import accumulate
from typing import TYPE_CHECKING

from netcase.foundation.errors import CompressionError, DuplicateHeaderError
from netcase.http import CONTENT_ENCODING, RequestBody

if TYPE_CHECKING:
    from netcase.foundation.config import ConfigStore
    from netcase.http import HTTPRequest
    from ..middleware import Next, Outcome

logger = logging.getLogger("netcase.middleware")

ZLIB_HEADER = b"\x78\x5e"
ADLER_MOD = 65521
# Largest run of bytes whose sums stay comfortably small before reducing
_ADLER_BLOCK = 5552


def adler32(data: bytes, value: int = 1) -> int:
    """Adler-32 checksum of ``data``, optionally continuing from ``value``.

    a starts at 1 and b at 0; for each byte x: a = (a + x) % 65521,
    b = (b + a) % 65521; the checksum is (b << 16) | a.

    Example:
        >>> adler32(b"")
        1
        >>> adler32(bytes([1, 2, 3, 4]))
        1572875
    """
    a = value & 0xFFFF
    b = (value >> 16) & 0xFFFF
    view = memoryview(data)
    for start in range(0, len(view), _ADLER_BLOCK):
        # Running values of a after each byte; b accumulates every one of them
        running = list(accumulate(view[start:start + _ADLER_BLOCK], initial=a))
        b = (b + sum(running) - a) % ADLER_MOD
        a = running[-1] % ADLER_MOD
    return (b << 16) | a


def deflate(data: bytes, level: int = zlib.Z_DEFAULT_COMPRESSION) -> bytes:
    """Encode ``data`` in the zlib container expected by `deflate` peers.

    Raises:
        CompressionError: If the DEFLATE primitive fails
    """
    try:
        compressor = zlib.compressobj(level, zlib.DEFLATED, -zlib.MAX_WBITS)
        payload = compressor.compress(data) + compressor.flush()
    except (zlib.error, ValueError) as e:
        raise CompressionError(f"deflate failed: {e}") from e
    return ZLIB_HEADER + payload + adler32(data).to_bytes(4, "big")


class DuplicateHeaderBehavior(StrEnum):
    """Action taken when the request already has a `Content-Encoding` header."""
    ERROR = "error"
    """Raise DuplicateHeaderError."""
    REPLACE = "replace"
    """Compress and overwrite the existing header with `deflate`."""
    SKIP = "skip"
    """Leave the request untouched."""


def _always(_: bytes) -> bool:
    return True


@dataclass(slots=True, frozen=True)
class CompressionMiddleware:
    """Compress outgoing request bodies and mark them `Content-Encoding: deflate`.

    Only materialized bodies are compressed; requests without a body or with a
    lazily produced body pass through unchanged.

    Args:
        duplicate_header_behavior: What to do when an encoding header already exists
        should_compress: Predicate over the raw body deciding whether to compress
        level: zlib compression level

    Example:
        >>> client.use(CompressionMiddleware(DuplicateHeaderBehavior.REPLACE))
        >>> client.use(CompressionMiddleware(should_compress=lambda data: len(data) > 1024))
    """

    duplicate_header_behavior: DuplicateHeaderBehavior = DuplicateHeaderBehavior.SKIP
    should_compress: Callable[[bytes], bool] = field(default=_always)
    level: int = zlib.Z_DEFAULT_COMPRESSION

    async def __call__(
        self,
        request: HTTPRequest,
        body: RequestBody | None,
        configs: ConfigStore,
        next: Next,
    ) -> Outcome:
        if body is None:
            return await next(request, None, configs)

        data = body.data
        if data is None or not self.should_compress(data):
            return await next(request, body, configs)

        if CONTENT_ENCODING in request.headers:
            match self.duplicate_header_behavior:
                case DuplicateHeaderBehavior.ERROR:
                    raise DuplicateHeaderError(CONTENT_ENCODING)
                case DuplicateHeaderBehavior.SKIP:
                    logger.debug(f"Skipping compression, {CONTENT_ENCODING} already set")
                    return await next(request, body, configs)
                case DuplicateHeaderBehavior.REPLACE:
                    pass

        encoded = deflate(data, self.level)
        logger.debug(f"Compressed request body {len(data)} -> {len(encoded)} bytes")
        return await next(
            request.with_header(CONTENT_ENCODING, "deflate"),
            RequestBody.of(encoded),
            configs,
        )
