from __future__ import annotations

import asyncio
import socket

import httpx
import pytest

from tokenfetch_client import (
    DeadlineExceeded,
    MalformedResponse,
    RequestCancelled,
    RequestContext,
    RequestFormationFailed,
    TokenClient,
    TransportFailed,
    UnexpectedStatus,
    build_client,
)
from tokenfetch_client.client import decode_token
from tokenfetch_client.transport import Transport


def _client(handler) -> TokenClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return build_client(base_url="http://provider.test", username="user", password="pass", transport=http)


def _respond(status: int, body: bytes = b""):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, content=body)

    return handler


@pytest.mark.asyncio
async def test_success_returns_token() -> None:
    client = _client(_respond(200, b'{"token":"abc123"}'))
    assert await client.request_token(RequestContext()) == "abc123"


@pytest.mark.asyncio
async def test_sends_basic_auth_get_without_body() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = request.content
        seen["host"] = request.url.host
        return httpx.Response(200, json={"token": "t"})

    await _client(handler).request_token(RequestContext())

    assert seen["method"] == "GET"
    assert seen["auth"] == "Basic dXNlcjpwYXNz"
    assert seen["body"] == b""
    assert seen["host"] == "provider.test"


@pytest.mark.asyncio
async def test_token_is_returned_verbatim() -> None:
    client = _client(_respond(200, b'{"token": "  not.a.jwt  "}'))
    assert await client.request_token(RequestContext()) == "  not.a.jwt  "


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [403, 500, 201, 204])
async def test_non_200_is_unexpected_status(status: int) -> None:
    client = _client(_respond(status, b'{"token":"abc123"}'))
    with pytest.raises(UnexpectedStatus) as exc_info:
        await client.request_token(RequestContext())
    assert exc_info.value.status_code == status
    assert exc_info.value.status() == status
    assert str(exc_info.value) == f"request returned an unexpected status code of {status}"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        b'{"bad_token',
        b'{"token": 1234}',
        b'{"token": null}',
        b"{}",
        b'["token"]',
        b"",
        b"\xff\xfe",
        b"\xc2\xa0{\"token\":\"abc\"}",
        "\u2028{\"token\":\"abc\"}".encode(),
        "\u3000{\"token\":\"abc\"}".encode(),
    ],
)
async def test_bad_body_is_malformed(body: bytes) -> None:
    client = _client(_respond(200, body))
    with pytest.raises(MalformedResponse) as exc_info:
        await client.request_token(RequestContext())
    assert exc_info.value.cause is not None


def test_decode_token_ignores_trailing_data() -> None:
    assert decode_token(b' {"token": "abc", "exp": 1}\n{"more": true}') == "abc"


@pytest.mark.asyncio
async def test_missing_context_fails_before_io() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"token": "abc"})

    with pytest.raises(RequestFormationFailed) as exc_info:
        await _client(handler).request_token(None)
    assert isinstance(exc_info.value.cause, ValueError)
    assert calls == []


@pytest.mark.asyncio
async def test_cancelled_context_fails_before_io() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"token": "abc"})

    ctx = RequestContext()
    ctx.cancel()
    with pytest.raises(RequestFormationFailed) as exc_info:
        await _client(handler).request_token(ctx)
    assert isinstance(exc_info.value.cause, RequestCancelled)

    with pytest.raises(RequestFormationFailed) as exc_info:
        await _client(handler).request_token(RequestContext.with_timeout(0))
    assert isinstance(exc_info.value.cause, DeadlineExceeded)
    assert calls == []


@pytest.mark.asyncio
async def test_connection_error_is_transport_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportFailed) as exc_info:
        await _client(handler).request_token(RequestContext())
    assert isinstance(exc_info.value.cause, httpx.ConnectError)


def _closed_port_url() -> str:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        port = s.getsockname()[1]
    return f"http://127.0.0.1:{port}"


@pytest.mark.asyncio
async def test_closed_endpoint_is_transport_failure() -> None:
    async with build_client(base_url=_closed_port_url(), username="user", password="pass") as client:
        with pytest.raises(TransportFailed):
            await client.request_token(RequestContext.with_timeout(5))


@pytest.mark.asyncio
async def test_cancel_aborts_in_flight_request() -> None:
    started = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        started.set()
        await asyncio.sleep(30)
        return httpx.Response(200, json={"token": "late"})

    ctx = RequestContext()
    task = asyncio.create_task(_client(handler).request_token(ctx))
    await asyncio.wait_for(started.wait(), timeout=5)
    ctx.cancel()

    with pytest.raises(TransportFailed) as exc_info:
        await asyncio.wait_for(task, timeout=5)
    assert isinstance(exc_info.value.cause, RequestCancelled)


@pytest.mark.asyncio
async def test_deadline_aborts_in_flight_request() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(30)
        return httpx.Response(200, json={"token": "late"})

    with pytest.raises(TransportFailed) as exc_info:
        await asyncio.wait_for(_client(handler).request_token(RequestContext.with_timeout(0.05)), timeout=5)
    assert isinstance(exc_info.value.cause, DeadlineExceeded)


class _TrackedStream(httpx.AsyncByteStream):
    def __init__(self, body: bytes):
        self._body = body
        self.read = False
        self.closed = False

    async def __aiter__(self):
        self.read = True
        yield self._body

    async def aclose(self) -> None:
        self.closed = True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status,body,expected",
    [
        (200, b'{"token":"abc123"}', None),
        (403, b"forbidden", UnexpectedStatus),
        (200, b'{"bad_token', MalformedResponse),
    ],
)
async def test_body_is_read_and_closed_on_every_outcome(status: int, body: bytes, expected) -> None:
    stream = _TrackedStream(body)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, stream=stream)

    client = _client(handler)
    if expected is None:
        assert await client.request_token(RequestContext()) == "abc123"
    else:
        with pytest.raises(expected):
            await client.request_token(RequestContext())
    assert stream.read
    assert stream.closed


@pytest.mark.parametrize("url", ["http://\x7f/", 1234])
def test_unbuildable_request_is_formation_failure(url) -> None:
    transport = Transport(httpx.AsyncClient(), username="user", password="pass")
    with pytest.raises(RequestFormationFailed) as exc_info:
        transport.build_request(url)
    assert isinstance(exc_info.value.cause, (httpx.InvalidURL, TypeError))
