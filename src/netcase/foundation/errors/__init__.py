"""Error handling for netcase.

- ErrorCode: Machine-readable codes carried by every error
- NetcaseError: Base exception
- DuplicateHeaderError, CompressionError, TransportError, DecodeError, EncodeError
"""

from .errors import (
    CompressionError,
    DecodeError,
    DuplicateHeaderError,
    EncodeError,
    ErrorCode,
    NetcaseError,
    TransportError,
)

__all__ = [
    "ErrorCode",
    "NetcaseError",
    "DuplicateHeaderError",
    "CompressionError",
    "TransportError",
    "DecodeError",
    "EncodeError",
]
