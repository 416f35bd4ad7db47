from __future__ import annotations

from dataclasses import dataclass, field

import httpx

DEFAULT_TIMEOUT_S = 60.0


@dataclass(frozen=True)
class ClientConfig:
    base_url: str
    username: str
    password: str = field(repr=False)
    transport: httpx.AsyncClient = field(repr=False, compare=False)
    owns_transport: bool = field(default=False, repr=False, compare=False)
