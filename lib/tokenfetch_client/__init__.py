from .client import ClientBuilder, TokenClient, build_client
from .context import DeadlineExceeded, RequestCancelled, RequestContext
from .errors import (
    InvalidConfiguration,
    InvalidURL,
    MalformedResponse,
    MissingCredential,
    RequestFormationFailed,
    TokenClientError,
    TransportFailed,
    UnexpectedStatus,
)

__all__ = [
    "ClientBuilder",
    "TokenClient",
    "build_client",
    "RequestContext",
    "RequestCancelled",
    "DeadlineExceeded",
    "TokenClientError",
    "InvalidConfiguration",
    "MissingCredential",
    "InvalidURL",
    "RequestFormationFailed",
    "TransportFailed",
    "UnexpectedStatus",
    "MalformedResponse",
]
