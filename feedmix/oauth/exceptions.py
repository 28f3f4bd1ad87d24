"""
OAuth exception classes for feedmix.

This module defines the exception hierarchy for all OAuth-related errors.
Messages never contain the client secret, authorization codes, or tokens,
and they tell the user what to do next where there is something to do.
"""

from typing import Optional


class FeedmixOAuthError(Exception):
    """Base exception for all feedmix OAuth errors."""

    pass


class ConfigurationError(FeedmixOAuthError):
    """OAuth configuration error (missing or invalid configuration)."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class AuthorizationError(FeedmixOAuthError):
    """OAuth authorization flow error (the browser redirect did not yield a code)."""

    pass


class InvalidStateError(AuthorizationError):
    """The redirect's state parameter did not match the one we issued."""

    pass


class MissingCodeError(AuthorizationError):
    """The redirect carried a valid state but no authorization code."""

    def __init__(
        self,
        message: str,
        error: Optional[str] = None,
        error_description: Optional[str] = None,
    ):
        super().__init__(message)
        self.error = error
        self.error_description = error_description


class AuthorizationTimeoutError(AuthorizationError):
    """No redirect arrived before the deadline, or the wait was cancelled."""

    pass


class CallbackServerError(AuthorizationError):
    """The local callback server could not be started."""

    def __init__(self, message: str, port: int):
        super().__init__(message)
        self.port = port


class TokenRequestError(FeedmixOAuthError):
    """A request to the token endpoint failed."""

    def __init__(
        self,
        message: str,
        grant_type: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.grant_type = grant_type
        self.status_code = status_code


class TokenTransportError(TokenRequestError):
    """The token endpoint could not be reached (network error, timeout)."""

    pass


class TokenStatusError(TokenRequestError):
    """The token endpoint answered with a non-200 status."""

    pass


class TokenParseError(TokenRequestError):
    """The token endpoint answered 200 with a body we could not parse."""

    pass


class TokenNotAvailableError(FeedmixOAuthError):
    """No stored tokens available (need to authorize first)."""

    pass


class TokenStorageError(FeedmixOAuthError):
    """Token storage operation failed (file I/O or parse error)."""

    pass


class TokenNotFoundError(TokenStorageError):
    """No token file is stored for the requested provider."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider
