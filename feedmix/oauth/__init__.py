"""
OAuth 2.0 module for feedmix.

This module provides the OAuth 2.0 Authorization Code flow used to
authenticate with the content providers feedmix reads (YouTube).

The flow has two shapes:
- First run: authorization URL -> browser -> local callback server ->
  code exchange -> token saved to disk
- Later runs: stored refresh token -> new access token

Public API:
    OAuthConfig: OAuth configuration and provider presets
    OAuthFlow: Authorization URL generation and token exchanges
    OAuthCallbackServer: Single-shot local redirect listener
    Token: Token data structure
    TokenStorage: File-based per-provider token persistence
    OAuthCoordinator: High-level OAuth interface

Exceptions:
    FeedmixOAuthError: Base exception
    ConfigurationError: Configuration error
    AuthorizationError: Authorization flow error
    InvalidStateError: Callback state mismatch
    MissingCodeError: Callback without authorization code
    AuthorizationTimeoutError: No callback before the deadline
    CallbackServerError: Callback server could not start
    TokenRequestError: Token endpoint request failed
    TokenTransportError: Token endpoint unreachable
    TokenStatusError: Token endpoint returned non-200
    TokenParseError: Token endpoint returned an invalid body
    TokenNotAvailableError: No valid tokens
    TokenStorageError: Storage operation failed
    TokenNotFoundError: No stored token for a provider
"""

from .browser import open_browser
from .callback_server import CallbackOutcome, OAuthCallbackServer
from .config import OAuthConfig, default_token_dir
from .coordinator import OAuthCoordinator
from .exceptions import (
    AuthorizationError,
    AuthorizationTimeoutError,
    CallbackServerError,
    ConfigurationError,
    FeedmixOAuthError,
    InvalidStateError,
    MissingCodeError,
    TokenNotAvailableError,
    TokenNotFoundError,
    TokenParseError,
    TokenRequestError,
    TokenStatusError,
    TokenStorageError,
    TokenTransportError,
)
from .flow import HTTPTransport, OAuthFlow
from .token_storage import Token, TokenStorage

__all__ = [
    # Configuration
    "OAuthConfig",
    "default_token_dir",
    # Flow
    "OAuthFlow",
    "HTTPTransport",
    # Token Storage
    "Token",
    "TokenStorage",
    # Callback Server
    "OAuthCallbackServer",
    "CallbackOutcome",
    # Browser
    "open_browser",
    # Coordinator
    "OAuthCoordinator",
    # Exceptions
    "FeedmixOAuthError",
    "ConfigurationError",
    "AuthorizationError",
    "InvalidStateError",
    "MissingCodeError",
    "AuthorizationTimeoutError",
    "CallbackServerError",
    "TokenRequestError",
    "TokenTransportError",
    "TokenStatusError",
    "TokenParseError",
    "TokenNotAvailableError",
    "TokenStorageError",
    "TokenNotFoundError",
]
