"""
Exception taxonomy for authenticated exchange requests.
"""
from typing import Any, Optional


class ExchangeClientError(Exception):
    """Base exception for all exchange client errors."""

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class CredentialError(ExchangeClientError):
    """Credential input is malformed or incomplete."""


class AuthError(ExchangeClientError):
    """Credential cannot be used for an authenticated call."""


class SigningError(ExchangeClientError):
    """Key material was rejected by the signing primitive."""


class TransportError(ExchangeClientError):
    """Network failure or an HTTP error without a parseable envelope."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Optional[bytes] = None,
        cause: Optional[BaseException] = None
    ):
        super().__init__(message, cause=cause)
        self.status_code = status_code
        self.body = body


class RemoteApiError(ExchangeClientError):
    """
    The exchange answered with a failure envelope.

    Attributes:
        code: Exchange-native error code (int or string, as sent)
        message: Exchange-native error text, verbatim
    """

    def __init__(self, code: Any, message: str):
        super().__init__(message)
        self.code = code

    def __str__(self) -> str:
        return self.message
