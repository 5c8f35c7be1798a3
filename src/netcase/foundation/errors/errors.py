"""Error taxonomy for request execution.

Every failure a call can surface is one of the exceptions below. Conversions
from third-party errors always chain the original exception as ``__cause__``.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    """Machine-readable error codes.

    Using StrEnum allows these to serialize cleanly and be pattern-matched.
    """
    DUPLICATE_HEADER = "DUPLICATE_HEADER"
    COMPRESSION_FAILED = "COMPRESSION_FAILED"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    DECODE_ERROR = "DECODE_ERROR"
    ENCODE_ERROR = "ENCODE_ERROR"


class NetcaseError(Exception):
    """Base class for all errors raised by netcase."""

    code: ErrorCode

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value}, message={self.message!r})"


class DuplicateHeaderError(NetcaseError):
    """Raised when compression would overwrite an existing encoding header."""

    code = ErrorCode.DUPLICATE_HEADER

    def __init__(self, header: str) -> None:
        self.header = header
        super().__init__(f"Request already has a '{header}' header")


class CompressionError(NetcaseError):
    """The deflate primitive failed for a request body."""

    code = ErrorCode.COMPRESSION_FAILED


class TransportError(NetcaseError):
    """The transport could not complete the exchange (network, TLS, protocol)."""

    code = ErrorCode.TRANSPORT_ERROR


class DecodeError(NetcaseError):
    """Response body did not match the expected shape."""

    code = ErrorCode.DECODE_ERROR

    def __init__(self, message: str, *, shape: object = None) -> None:
        self.shape = shape
        super().__init__(message)


class EncodeError(NetcaseError):
    """Request body could not be serialized."""

    code = ErrorCode.ENCODE_ERROR
