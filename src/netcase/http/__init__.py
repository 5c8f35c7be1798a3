"""HTTP value types shared by the client, middleware and transports."""

from .types import (
    AUTHORIZATION,
    CONTENT_ENCODING,
    CONTENT_TYPE,
    VALID_STATUS,
    Headers,
    HTTPRequest,
    HTTPResponse,
    RequestBody,
)

__all__ = [
    "Headers",
    "HTTPRequest",
    "HTTPResponse",
    "RequestBody",
    "VALID_STATUS",
    "AUTHORIZATION",
    "CONTENT_ENCODING",
    "CONTENT_TYPE",
]
