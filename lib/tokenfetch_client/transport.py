from __future__ import annotations

import asyncio
import logging

import httpx

from .context import RequestContext
from .errors import RequestFormationFailed, TransportFailed

logger = logging.getLogger(__name__)


class Transport:
    def __init__(self, http: httpx.AsyncClient, *, username: str, password: str):
        self._http = http
        self._auth = httpx.BasicAuth(username, password)

    def build_request(self, url: str) -> httpx.Request:
        try:
            return self._http.build_request("GET", url)
        except (httpx.InvalidURL, TypeError) as e:
            raise RequestFormationFailed(str(e)) from e

    async def exchange(self, request: httpx.Request, ctx: RequestContext) -> tuple[int, bytes]:
        """Send ``request`` and read the whole body, racing ``ctx``.

        Whichever of the transfer and the context finishes first wins; the
        other is cancelled and awaited before returning.
        """
        send = asyncio.ensure_future(self._send(request))
        stop = asyncio.ensure_future(ctx.wait())
        try:
            done, _ = await asyncio.wait({send, stop}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            pending = [fut for fut in (send, stop) if not fut.done()]
            for fut in pending:
                fut.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        if send in done:
            try:
                return send.result()
            except httpx.HTTPError as e:
                raise TransportFailed(str(e) or type(e).__name__) from e

        reason = stop.result()
        logger.debug("request to %s aborted: %s", request.url, reason)
        raise TransportFailed(str(reason)) from reason

    async def _send(self, request: httpx.Request) -> tuple[int, bytes]:
        response = await self._http.send(request, auth=self._auth, stream=True)
        try:
            body = await response.aread()
        finally:
            await response.aclose()
        return response.status_code, body
