from __future__ import annotations


class TokenClientError(Exception):
    """Base client error."""

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__


class InvalidConfiguration(TokenClientError):
    """Client options failed validation."""


class MissingCredential(InvalidConfiguration):
    def __init__(self, field: str):
        super().__init__(f"invalid client options: no {field} provided")
        self.field = field


class InvalidURL(InvalidConfiguration):
    def __init__(self, detail: str):
        super().__init__(f"invalid url: {detail}")
        self.detail = detail


class RequestFormationFailed(TokenClientError):
    def __init__(self, detail: str):
        super().__init__(f"unable to form request: {detail}")


class TransportFailed(TokenClientError):
    """Transport/network layer error, cancellation included."""

    def __init__(self, detail: str):
        super().__init__(f"failed to perform request: {detail}")


class UnexpectedStatus(TokenClientError):
    def __init__(self, status_code: int):
        super().__init__(f"request returned an unexpected status code of {status_code}")
        self.status_code = status_code

    def status(self) -> int:
        return self.status_code


class MalformedResponse(TokenClientError):
    def __init__(self, detail: str):
        super().__init__(f"malformed server data: {detail}")
