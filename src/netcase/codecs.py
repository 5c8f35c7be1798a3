"""Request body encoders and response body decoders.

Encoders turn call-site values into bytes; decoders turn response bytes into
a caller-requested shape. Byte-level serialization is orjson / msgpack, and
shape validation goes through pydantic TypeAdapters, so any type pydantic
understands (models, dataclasses, TypedDicts, ``list[int]``...) is a valid
shape.

Usage:
    >>> JSONBodyEncoder().encode({"id": 1})
    b'{"id":1}'
    >>> JSONBodyDecoder().decode(b'[1, 2]', list[int])
    [1, 2]
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Protocol, runtime_checkable

import msgpack
import orjson
from pydantic import BaseModel, TypeAdapter, ValidationError

from netcase.foundation.config import ConfigKey
from netcase.foundation.errors import DecodeError, EncodeError


@runtime_checkable
class BodyEncoder(Protocol):
    """Serializes request bodies."""

    content_type: str

    def encode(self, value: object) -> bytes: ...


@runtime_checkable
class BodyDecoder(Protocol):
    """Deserializes response bodies into an expected shape."""

    def decode(self, data: bytes, shape: Any) -> Any: ...


@lru_cache(maxsize=256)
def _adapter(shape: Any) -> TypeAdapter[Any]:
    return TypeAdapter(shape)


def _default(value: object) -> object:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    raise TypeError(f"Type is not serializable: {type(value).__name__}")


def _shape_name(shape: Any) -> str:
    return getattr(shape, "__name__", None) or repr(shape)


# ═══════════════════════════════════════════════════════════════════════════════
# Codec Implementations
# ═══════════════════════════════════════════════════════════════════════════════

class JSONBodyEncoder:
    """orjson encoder; pydantic models are dumped in JSON mode.

    Features: native datetime/uuid/dataclass support.
    """

    __slots__ = ("option",)
    content_type = "application/json"

    def __init__(self, option: int = orjson.OPT_UTC_Z) -> None:
        self.option = option

    def encode(self, value: object) -> bytes:
        try:
            return orjson.dumps(value, default=_default, option=self.option)
        except orjson.JSONEncodeError as e:
            raise EncodeError(f"Cannot encode {type(value).__name__} as JSON: {e}") from e


class JSONBodyDecoder:
    """Validates JSON response bodies against a shape with pydantic.

    Args:
        strict: Disable pydantic's lax coercion (e.g. "1" -> 1)
    """

    __slots__ = ("strict",)

    def __init__(self, *, strict: bool | None = None) -> None:
        self.strict = strict

    def decode(self, data: bytes, shape: Any) -> Any:
        try:
            return _adapter(shape).validate_json(data, strict=self.strict)
        except ValidationError as e:
            raise DecodeError(
                f"Response does not match {_shape_name(shape)}: {e.error_count()} error(s)\n{e}",
                shape=shape,
            ) from e


class MsgpackBodyEncoder:
    """msgpack encoder - compact binary format."""

    __slots__ = ()
    content_type = "application/msgpack"

    def encode(self, value: object) -> bytes:
        try:
            return msgpack.packb(value, default=_default, use_bin_type=True)
        except (TypeError, ValueError, OverflowError) as e:
            raise EncodeError(f"Cannot encode {type(value).__name__} as msgpack: {e}") from e


class MsgpackBodyDecoder:
    """Unpacks msgpack bodies and validates them against a shape."""

    __slots__ = ()

    def decode(self, data: bytes, shape: Any) -> Any:
        try:
            raw = msgpack.unpackb(data, raw=False)
        except (msgpack.UnpackException, ValueError) as e:
            raise DecodeError(f"Invalid msgpack body: {e}", shape=shape) from e
        try:
            return _adapter(shape).validate_python(raw)
        except ValidationError as e:
            raise DecodeError(
                f"Response does not match {_shape_name(shape)}: {e.error_count()} error(s)\n{e}",
                shape=shape,
            ) from e


BODY_ENCODER: ConfigKey[BodyEncoder] = ConfigKey("body_encoder", default_factory=JSONBodyEncoder)
BODY_DECODER: ConfigKey[BodyDecoder] = ConfigKey("body_decoder", default_factory=JSONBodyDecoder)


def decode_response(decoder: BodyDecoder, data: bytes, shape: Any) -> Any:
    """Decode ``data`` into ``shape``.

    ``None`` skips decoding, ``bytes`` returns the body as-is and ``str``
    returns it as UTF-8 text; every other shape goes through ``decoder``.
    """
    if shape is None:
        return None
    if shape is bytes:
        return data
    if shape is str:
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Response is not valid UTF-8: {e}", shape=shape) from e
    return decoder.decode(data, shape)
