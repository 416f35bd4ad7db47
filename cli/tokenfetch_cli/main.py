from __future__ import annotations

import asyncio
import logging
import signal

import httpx
import typer

from tokenfetch_client import RequestContext, TokenClientError, build_client

from . import console
from .config import DEFAULT_BASE_URL, ConfigError, apply_profile, load_config
from .logging_ import setup_logging

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="tokenfetch",
    help="Exchange basic-auth credentials for a bearer token.",
    add_completion=False,
)


async def run(
    ctx: RequestContext,
    username: str,
    password: str,
    override_url: str,
    *,
    transport: httpx.AsyncClient | None = None,
) -> str:
    base_url = override_url or DEFAULT_BASE_URL
    client = build_client(base_url=base_url, username=username, password=password, transport=transport)
    async with client:
        return await client.request_token(ctx)


async def _fetch(username: str, password: str, override_url: str, timeout_s: float | None) -> str:
    ctx = RequestContext.with_timeout(timeout_s) if timeout_s else RequestContext()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, ctx.cancel)
        installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        logger.debug("SIGINT handler unavailable; Ctrl-C will not cancel the request cleanly")
        installed = False
    try:
        return await run(ctx, username, password, override_url)
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


@app.command()
def fetch(
    username: str = typer.Option("", "--username", envvar="TOKENFETCH_USERNAME", help="Username to log in with."),
    password: str = typer.Option("", "--password", envvar="TOKENFETCH_PASSWORD", help="Password to log in with."),
    override_url: str = typer.Option(
        "",
        "--override-url",
        envvar="TOKENFETCH_URL",
        help=f"Overrides the provider server (default {DEFAULT_BASE_URL}).",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        envvar="TOKENFETCH_TIMEOUT",
        min=0.001,
        help="Give up after this many seconds.",
    ),
    profile: str | None = typer.Option(None, "--profile", help="Config profile to apply."),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logs."),
):
    setup_logging(verbose)
    try:
        cfg = apply_profile(load_config(), profile)
    except ConfigError as e:
        console.err(str(e))
        raise typer.Exit(code=1)

    try:
        token = asyncio.run(
            _fetch(
                username or cfg.username,
                password,
                override_url or cfg.base_url,
                timeout if timeout is not None else cfg.timeout_s,
            )
        )
    except TokenClientError as e:
        console.err(str(e))
        raise typer.Exit(code=1)

    console.out(token)
