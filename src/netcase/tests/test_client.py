"""Tests for Client derivation, execution and the built-in plugins."""

from __future__ import annotations

import logging
from datetime import datetime

import httpx
import msgpack
import pytest
from pydantic import BaseModel, ValidationError

from netcase import (
    BODY_DECODER,
    BasicAuth,
    BearerAuth,
    Client,
    ConfigKey,
    ConstantBackoff,
    DecodeError,
    EncodeError,
    ExponentialBackoff,
    HttpxTransport,
    HTTPResponse,
    JSONBodyDecoder,
    LoggingComponents,
    MsgpackBodyDecoder,
    MsgpackBodyEncoder,
    RequestBody,
    TransportError,
)
from netcase.foundation.config import RetrySettings
from netcase.middleware import ApiKeyAuth, parse_auth
from netcase.testing import MockTransport, failing_transport, json_response

TEST_VALUE: ConfigKey[bool] = ConfigKey("test_value", default_factory=lambda: False)


class Pet(BaseModel):
    id: int
    name: str
    tag: str | None = None


@pytest.fixture
def transport() -> MockTransport:
    return MockTransport(return_value=json_response('{"id": 1, "name": "rex"}'))


@pytest.fixture
def client(transport: MockTransport) -> Client:
    return Client("https://petstore.test/v2/").transport(transport)


# ═════════════════════════════════════════════════════════════════════════════
# Derivation
# ═════════════════════════════════════════════════════════════════════════════


def test_configs_round_trip(client: Client) -> None:
    assert client.configs(TEST_VALUE, True).config(TEST_VALUE) is True
    assert client.configs(TEST_VALUE, False).config(TEST_VALUE) is False
    assert client.config(TEST_VALUE) is False


def test_derivation_never_mutates_parent(client: Client) -> None:
    child = client["pet"].method("post").header("X-A", "1").query("q", 1).configs(TEST_VALUE, True)

    assert client.url == "https://petstore.test/v2"
    assert client.request.method == "GET"
    assert "X-A" not in client.request.headers
    assert client.request.query == ()
    assert client.config(TEST_VALUE) is False
    assert child.url == "https://petstore.test/v2/pet"
    assert child.request.method == "POST"


def test_unchanged_parts_are_shared(client: Client) -> None:
    child = client.path("pet")
    assert child.store is client.store
    assert child.middleware is client.middleware


def test_with_base_config(client: Client) -> None:
    child = client.with_base_config(lambda store: store.set(TEST_VALUE, True))
    assert child.config(TEST_VALUE) is True
    assert client.config(TEST_VALUE) is False


def test_path_segments_are_quoted(client: Client) -> None:
    assert client.path("user", "john doe").url == "https://petstore.test/v2/user/john%20doe"
    assert client.path("a/b")["c"].url == "https://petstore.test/v2/a/b/c"
    assert client.scoped(42).url == "https://petstore.test/v2/42"


def test_query_items(client: Client) -> None:
    request = client.query({"status": "sold", "missing": None}).query("tags", ["a", "b"]).query("flag", True).request
    assert request.query == (("status", "sold"), ("tags", "a"), ("tags", "b"), ("flag", "true"))


def test_use_appends(client: Client) -> None:
    first, second = object(), object()
    derived = client.use(first).use(second)  # type: ignore[arg-type]
    assert derived.middleware == (first, second)
    assert client.middleware == ()


def test_auth_requires_argument(client: Client) -> None:
    with pytest.raises(ValueError):
        client.auth()


# ═════════════════════════════════════════════════════════════════════════════
# Execution
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_call_decodes_model(client: Client, transport: MockTransport) -> None:
    pet = await client["pet"]["1"].call(Pet)

    assert pet == Pet(id=1, name="rex")
    assert transport.last_call.request.url == "https://petstore.test/v2/pet/1"


@pytest.mark.asyncio
async def test_call_shapes(client: Client) -> None:
    assert await client.call() is None
    assert await client.call(bytes) == b'{"id": 1, "name": "rex"}'
    assert await client.call(str) == '{"id": 1, "name": "rex"}'
    assert await client.call(dict[str, object]) == {"id": 1, "name": "rex"}


@pytest.mark.asyncio
async def test_call_with_response(client: Client) -> None:
    value, response = await client.call_with_response(Pet)
    assert value.name == "rex"
    assert response.status == 200
    assert response.headers.get("content-type") == "application/json"


@pytest.mark.asyncio
async def test_decode_error() -> None:
    client = Client("https://t").transport(MockTransport(return_value=json_response('{"id": "x"}')))
    with pytest.raises(DecodeError) as exc_info:
        await client.call(Pet)
    assert exc_info.value.shape is Pet
    assert exc_info.value.__cause__ is not None


@pytest.mark.asyncio
async def test_invalid_json_is_decode_error() -> None:
    client = Client("https://t").transport(MockTransport(return_value=json_response("not json")))
    with pytest.raises(DecodeError):
        await client.call(Pet)


@pytest.mark.asyncio
async def test_body_encoding_sets_content_type(client: Client, transport: MockTransport) -> None:
    await client.method("POST").body(Pet(id=2, name="tom")).call()

    sent = transport.last_call
    assert sent.request.headers.get("Content-Type") == "application/json"
    assert sent.body_bytes == b'{"id":2,"name":"tom","tag":null}'


@pytest.mark.asyncio
async def test_explicit_content_type_is_kept(client: Client, transport: MockTransport) -> None:
    await client.header("Content-Type", "application/vnd.pet+json").body({"when": datetime(2024, 1, 2)}).call()
    sent = transport.last_call
    assert sent.request.headers.get("Content-Type") == "application/vnd.pet+json"
    assert sent.body_bytes == b'{"when":"2024-01-02T00:00:00"}'


@pytest.mark.asyncio
async def test_raw_and_lazy_bodies_are_passed_through(client: Client, transport: MockTransport) -> None:
    await client.body(b"\x00\x01").call()
    assert transport.last_call.body_bytes == b"\x00\x01"
    assert "Content-Type" not in transport.last_call.request.headers

    lazy = RequestBody.lazy(lambda: b"produced")
    await client.body(lazy).call()
    assert transport.last_call.body is lazy
    assert transport.last_call.body_bytes == b"produced"


@pytest.mark.asyncio
async def test_encode_error(client: Client, transport: MockTransport) -> None:
    with pytest.raises(EncodeError):
        await client.body({"bad": object()}).call()
    transport.assert_not_called()


@pytest.mark.asyncio
async def test_msgpack_codecs() -> None:
    payload = msgpack.packb({"id": 3, "name": "max"})
    transport = MockTransport(return_value=HTTPResponse(200, body=payload))
    client = (
        Client("https://t")
        .transport(transport)
        .body_encoder(MsgpackBodyEncoder())
        .body_decoder(MsgpackBodyDecoder())
    )

    pet = await client.body({"id": 3}).call(Pet)

    assert pet.name == "max"
    assert transport.last_call.request.headers.get("Content-Type") == "application/msgpack"
    assert msgpack.unpackb(transport.last_call.body_bytes) == {"id": 3}


@pytest.mark.asyncio
async def test_msgpack_decode_error() -> None:
    transport = MockTransport(return_value=HTTPResponse(200, body=b"\xc1"))
    client = Client("https://t").transport(transport).body_decoder(MsgpackBodyDecoder())
    with pytest.raises(DecodeError):
        await client.call(Pet)


@pytest.mark.asyncio
async def test_map_decoder() -> None:
    client = Client("https://t").transport(MockTransport(return_value=json_response('{"id": "7", "name": "a"}')))

    assert (await client.call(Pet)).id == 7
    strict = client.map_decoder(lambda _: JSONBodyDecoder(strict=True))
    assert isinstance(strict.config(BODY_DECODER), JSONBodyDecoder)
    with pytest.raises(DecodeError):
        await strict.call(Pet)


@pytest.mark.asyncio
async def test_transport_error_propagates() -> None:
    client = Client("https://t").transport(failing_transport())
    with pytest.raises(TransportError):
        await client.call()


# ═════════════════════════════════════════════════════════════════════════════
# Auth
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_scoped_child_can_disable_parent_auth(client: Client, transport: MockTransport) -> None:
    api = client.auth(BearerAuth(token="secret-token"))
    store = api["store"].auth(enabled=False)

    await store["inventory"].call()
    assert "Authorization" not in transport.last_call.request.headers

    await api["pet"].call()
    assert transport.last_call.request.headers.get("Authorization") == "Bearer secret-token"

    await store["inventory"].auth(enabled=True).call()
    assert transport.last_call.request.headers.get("Authorization") == "Bearer secret-token"


@pytest.mark.asyncio
async def test_basic_and_api_key_auth(client: Client, transport: MockTransport) -> None:
    await client.auth(BasicAuth(username="user", password="pass")).call()
    assert transport.last_call.request.headers.get("Authorization") == "Basic dXNlcjpwYXNz"

    await client.auth(ApiKeyAuth(key="k-123", name="api_key", location="query")).call()
    assert ("api_key", "k-123") in transport.last_call.request.query


def test_secrets_are_masked() -> None:
    auth = BearerAuth(token="abcdefghijkl")
    assert "abcdefghijkl" not in repr(auth)
    assert auth.model_dump_json() == '{"auth_type":"bearer","token":"abcd...ijkl"}'


@pytest.mark.asyncio
async def test_auth_from_mapping(client: Client, transport: MockTransport) -> None:
    await client.auth({"auth_type": "basic", "username": "user", "password": "pass"}).call()
    assert transport.last_call.request.headers.get("Authorization") == "Basic dXNlcjpwYXNz"

    await client.auth({"auth_type": "api_key", "key": "k-9"}).call()
    assert transport.last_call.request.headers.get("X-API-Key") == "k-9"


def test_parse_auth_from_json() -> None:
    strategy = parse_auth(b'{"auth_type": "bearer", "token": "t0ken-value"}')
    assert isinstance(strategy, BearerAuth)
    assert strategy.token.get_secret_value() == "t0ken-value"


def test_auth_mapping_is_validated(client: Client) -> None:
    with pytest.raises(ValidationError):
        client.auth({"auth_type": "basic", "username": ""})
    with pytest.raises(ValidationError):
        client.auth({"auth_type": "digest"})


# ═════════════════════════════════════════════════════════════════════════════
# Retry & logging
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_retry_recovers_from_transport_error() -> None:
    transport = MockTransport.sequence([TransportError("reset"), TransportError("reset"), HTTPResponse(200, body=b"ok")])
    client = Client("https://t").transport(transport).retry(max_attempts=3, backoff=ConstantBackoff(0))

    assert await client.call(bytes) == b"ok"
    assert transport.call_count == 3


@pytest.mark.asyncio
async def test_retry_gives_up_and_reraises() -> None:
    transport = failing_transport("down")
    client = Client("https://t").transport(transport).retry(max_attempts=2, backoff=ConstantBackoff(0))

    with pytest.raises(TransportError, match="down"):
        await client.call()
    assert transport.call_count == 2


@pytest.mark.asyncio
async def test_retry_ignores_decode_errors() -> None:
    transport = MockTransport(return_value=json_response("{}"))
    client = Client("https://t").transport(transport).retry(max_attempts=3, backoff=ConstantBackoff(0))

    with pytest.raises(DecodeError):
        await client.call(Pet)
    assert transport.call_count == 1


def test_retry_rejects_zero_attempts() -> None:
    with pytest.raises(ValueError, match="at least 1"):
        Client("https://t").retry(max_attempts=0)


def test_exponential_backoff_from_settings() -> None:
    backoff = ExponentialBackoff.from_settings(RetrySettings(base_delay=0.25, max_delay=1.0))
    assert backoff.base == 0.25
    assert [ExponentialBackoff(base=0.25, max_delay=1.0, jitter=False).delay(n) for n in range(4)] == [0.25, 0.5, 1.0, 1.0]


@pytest.mark.asyncio
async def test_logging_middleware(client: Client, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="netcase")
    logged = client.log_level(logging.INFO).log_requests().auth(BearerAuth(token="hidden-token"))
    logged = logged.logging_components(LoggingComponents.ALL)

    await logged["pet"].call(Pet)

    messages = [r.getMessage() for r in caplog.records if r.name == "netcase"]
    assert messages[0].startswith("--> GET https://petstore.test/v2/pet")
    assert messages[1].startswith("<-- GET https://petstore.test/v2/pet 200")
    assert all("hidden-token" not in m for m in messages)
    assert all(r.levelno == logging.INFO for r in caplog.records if r.name == "netcase")


@pytest.mark.asyncio
async def test_logging_invalid_status_warns(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="netcase")
    transport = MockTransport(return_value=HTTPResponse(500))
    client = Client("https://t").transport(transport).log_level(logging.DEBUG).log_requests()

    await client.call()

    levels = [r.levelno for r in caplog.records if r.name == "netcase"]
    assert levels == [logging.DEBUG, logging.WARNING]


@pytest.mark.asyncio
async def test_logging_exception(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="netcase")
    client = Client("https://t").transport(failing_transport()).log_requests()

    with pytest.raises(TransportError):
        await client.call()
    assert any("FAILED" in r.getMessage() and r.levelno == logging.ERROR for r in caplog.records)


# ═════════════════════════════════════════════════════════════════════════════
# httpx transport
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_httpx_transport_round_trip() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"id": 5, "name": "kit"}, headers={"X-Trace": "t1"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        client = Client("https://api.test").transport(HttpxTransport(client=http))
        pet, response = await client["pet"].method("PUT").query("v", 2).body({"name": "kit"}).call_with_response(Pet)

    assert pet == Pet(id=5, name="kit")
    assert response.status == 201
    assert response.headers.get("x-trace") == "t1"
    assert seen[0].method == "PUT"
    assert str(seen[0].url) == "https://api.test/pet?v=2"
    assert seen[0].content == b'{"name":"kit"}'
    assert seen[0].headers["content-type"] == "application/json"


@pytest.mark.asyncio
async def test_httpx_errors_become_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        client = Client("https://api.test").transport(HttpxTransport(client=http))
        with pytest.raises(TransportError) as exc_info:
            await client.call()

    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_malformed_url_becomes_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        client = Client("https://api.test:notaport").transport(HttpxTransport(client=http))
        with pytest.raises(TransportError) as exc_info:
            await client.call()

    assert isinstance(exc_info.value.__cause__, httpx.InvalidURL)
