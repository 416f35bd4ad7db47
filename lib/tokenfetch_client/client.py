from __future__ import annotations

import json
import logging
from types import TracebackType

import httpx

from .config_types import DEFAULT_TIMEOUT_S, ClientConfig
from .context import RequestContext
from .errors import (
    InvalidURL,
    MalformedResponse,
    MissingCredential,
    RequestFormationFailed,
    UnexpectedStatus,
)
from .transport import Transport

logger = logging.getLogger(__name__)

_DECODER = json.JSONDecoder()
_JSON_WHITESPACE = " \t\n\r"


def sanitize_url(raw: str) -> str:
    """Reduce every character of ``raw`` to its low byte.

    Some upstream configurators inject non-ASCII noise into otherwise valid
    URLs, so this runs before parsing. Characters outside Latin-1 are not
    rejected; they collapse to ``ord(ch) & 0xFF``.
    """
    return "".join(chr(ord(ch) & 0xFF) for ch in raw)


def parse_base_url(raw: str) -> str:
    if not raw:
        raise InvalidURL("not provided")
    try:
        url = httpx.URL(sanitize_url(raw))
    except httpx.InvalidURL as e:
        raise InvalidURL(str(e)) from e
    if not url.is_absolute_url:
        raise InvalidURL(f"{str(url)!r} is not an absolute url")
    return str(url)


class TokenClient:
    def __init__(self, cfg: ClientConfig):
        self._cfg = cfg
        self._t = Transport(cfg.transport, username=cfg.username, password=cfg.password)

    def __repr__(self) -> str:
        return f"TokenClient(base_url={self._cfg.base_url!r}, username={self._cfg.username!r})"

    @property
    def config(self) -> ClientConfig:
        return self._cfg

    @property
    def base_url(self) -> str:
        return self._cfg.base_url

    @property
    def username(self) -> str:
        return self._cfg.username

    @property
    def transport(self) -> httpx.AsyncClient:
        return self._cfg.transport

    async def aclose(self) -> None:
        # Injected transports belong to the caller.
        if self._cfg.owns_transport:
            await self._cfg.transport.aclose()

    async def __aenter__(self) -> TokenClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def request_token(self, ctx: RequestContext | None) -> str:
        """Exchange the configured basic-auth credentials for a token.

        Raises ``RequestFormationFailed`` before any I/O when ``ctx`` is missing
        or already done, ``TransportFailed`` for network errors and
        cancellation mid-flight, ``UnexpectedStatus`` for anything but 200 and
        ``MalformedResponse`` when the body carries no string ``token``.
        """
        if ctx is None:
            cause = ValueError("request context is None")
            raise RequestFormationFailed("no request context provided") from cause
        reason = ctx.error()
        if reason is not None:
            raise RequestFormationFailed(str(reason)) from reason

        logger.debug("requesting token from %s", self._cfg.base_url)
        request = self._t.build_request(self._cfg.base_url)
        status_code, body = await self._t.exchange(request, ctx)
        logger.debug("token endpoint answered %s", status_code)

        if status_code != httpx.codes.OK:
            raise UnexpectedStatus(status_code)
        return decode_token(body)


def decode_token(body: bytes) -> str:
    # Only the first JSON value counts; trailing bytes are ignored.
    try:
        payload, _ = _DECODER.raw_decode(body.decode("utf-8").lstrip(_JSON_WHITESPACE))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedResponse(str(e)) from e

    if not isinstance(payload, dict):
        cause = TypeError(f"expected a JSON object, got {type(payload).__name__}")
        raise MalformedResponse(str(cause)) from cause
    token = payload.get("token")
    if not isinstance(token, str):
        cause = TypeError(f"token field is {type(token).__name__}, expected str")
        raise MalformedResponse(str(cause)) from cause
    return token


class ClientBuilder:
    """Collects client options; the last call for a field wins."""

    def __init__(self) -> None:
        self._base_url = ""
        self._username = ""
        self._password = ""
        self._transport: httpx.AsyncClient | None = None

    def service_url(self, url: str) -> ClientBuilder:
        self._base_url = url
        return self

    def basic_auth(self, username: str, password: str) -> ClientBuilder:
        self._username = username
        self._password = password
        return self

    def with_transport(self, transport: httpx.AsyncClient) -> ClientBuilder:
        self._transport = transport
        return self

    def build(self) -> TokenClient:
        if not self._username:
            raise MissingCredential("username")
        if not self._password:
            raise MissingCredential("password")
        base_url = parse_base_url(self._base_url)

        transport = self._transport
        owns_transport = transport is None
        if transport is None:
            transport = httpx.AsyncClient(timeout=DEFAULT_TIMEOUT_S)

        return TokenClient(
            ClientConfig(
                base_url=base_url,
                username=self._username,
                password=self._password,
                transport=transport,
                owns_transport=owns_transport,
            )
        )


def build_client(
    *,
    base_url: str,
    username: str,
    password: str,
    transport: httpx.AsyncClient | None = None,
) -> TokenClient:
    builder = ClientBuilder().service_url(base_url).basic_auth(username, password)
    if transport is not None:
        builder.with_transport(transport)
    return builder.build()
