"""Authentication strategies and the middleware that applies them.

Strategies are frozen pydantic models. Secrets are stored as SecretStr so they
never leak through reprs, logs or JSON dumps.

A strategy is applied only while ``AUTH_ENABLED`` resolves to True in the
effective configuration, so a derived client can switch authentication off
for its own calls without affecting its parent:

    >>> api = Client("https://petstore.example").auth(BearerAuth(token="t0ken"))
    >>> public = api.scoped("store").auth(enabled=False)
"""

from __future__ import annotations

import base64
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Annotated, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field, SecretStr, Tag, TypeAdapter, field_serializer

from netcase.foundation.config import ConfigKey
from netcase.http import AUTHORIZATION

if TYPE_CHECKING:
    from netcase.foundation.config import ConfigStore
    from netcase.http import HTTPRequest, RequestBody
    from ..middleware import Next, Outcome

AUTH_ENABLED: ConfigKey[bool] = ConfigKey("auth_enabled", default_factory=lambda: True)


class NoAuth(BaseModel):
    """No authentication."""

    model_config = ConfigDict(frozen=True, extra="forbid", revalidate_instances="never")
    auth_type: Literal["none"] = "none"

    def apply(self, request: HTTPRequest) -> HTTPRequest:
        return request


class BearerAuth(BaseModel):
    """Bearer token authentication (OAuth2, JWT)."""

    model_config = ConfigDict(frozen=True, extra="forbid", revalidate_instances="never")
    auth_type: Literal["bearer"] = "bearer"
    token: SecretStr = Field(..., description="Bearer token value (OAuth2/JWT)")

    def apply(self, request: HTTPRequest) -> HTTPRequest:
        return request.with_header(AUTHORIZATION, f"Bearer {self.token.get_secret_value()}")

    @field_serializer("token", when_used="json")
    def _mask_token(self, v: SecretStr) -> str:
        """Mask token in JSON serialization for security."""
        secret = v.get_secret_value()
        return f"{secret[:4]}...{secret[-4:]}" if len(secret) > 8 else "***"


class BasicAuth(BaseModel):
    """HTTP Basic authentication."""

    model_config = ConfigDict(frozen=True, extra="forbid", revalidate_instances="never")
    auth_type: Literal["basic"] = "basic"
    username: Annotated[str, Field(min_length=1)]
    password: SecretStr

    def apply(self, request: HTTPRequest) -> HTTPRequest:
        credentials = base64.b64encode(
            f"{self.username}:{self.password.get_secret_value()}".encode()
        ).decode()
        return request.with_header(AUTHORIZATION, f"Basic {credentials}")

    @field_serializer("password", when_used="json")
    def _mask_password(self, v: SecretStr) -> str:
        return "***"


class ApiKeyAuth(BaseModel):
    """API key sent in a header or as a query parameter."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
        revalidate_instances="never",
    )
    auth_type: Literal["api_key"] = "api_key"
    key: SecretStr = Field(..., description="API key value")
    name: Annotated[str, Field(
        default="X-API-Key",
        pattern=r"^[A-Za-z][A-Za-z0-9_-]*$",
        description="Header or query parameter name",
    )]
    location: Literal["header", "query"] = "header"

    def apply(self, request: HTTPRequest) -> HTTPRequest:
        if self.location == "query":
            return request.with_query(self.name, self.key.get_secret_value())
        return request.with_header(self.name, self.key.get_secret_value())

    @field_serializer("key", when_used="json")
    def _mask_key(self, v: SecretStr) -> str:
        secret = v.get_secret_value()
        return f"{secret[:4]}..." if len(secret) > 4 else "***"


def _auth_discriminator(v: dict[str, object] | BaseModel) -> str:
    if isinstance(v, dict):
        return str(v.get("auth_type", "none"))
    return getattr(v, "auth_type", "none")


# Discriminated on ``auth_type``; a missing tag means NoAuth
AuthStrategy = Annotated[
    Annotated[NoAuth, Tag("none")]
    | Annotated[BearerAuth, Tag("bearer")]
    | Annotated[BasicAuth, Tag("basic")]
    | Annotated[ApiKeyAuth, Tag("api_key")],
    Discriminator(_auth_discriminator),
]


@lru_cache(maxsize=1)
def _strategy_adapter() -> TypeAdapter[AuthStrategy]:
    return TypeAdapter(AuthStrategy)


def parse_auth(data: Mapping[str, object] | str | bytes) -> NoAuth | BearerAuth | BasicAuth | ApiKeyAuth:
    """Build a strategy from a mapping or JSON document keyed by ``auth_type``.

    Example:
        >>> parse_auth({"auth_type": "bearer", "token": "t0ken"})
        BearerAuth(auth_type='bearer', token=SecretStr('**********'))
    """
    adapter = _strategy_adapter()
    if isinstance(data, (str, bytes)):
        return adapter.validate_json(data)
    return adapter.validate_python(dict(data))


@dataclass(slots=True, frozen=True)
class AuthMiddleware:
    """Apply ``strategy`` to every request while authentication is enabled."""

    strategy: NoAuth | BearerAuth | BasicAuth | ApiKeyAuth

    async def __call__(
        self,
        request: HTTPRequest,
        body: RequestBody | None,
        configs: ConfigStore,
        next: Next,
    ) -> Outcome:
        if configs.resolve(AUTH_ENABLED):
            request = self.strategy.apply(request)
        return await next(request, body, configs)
