"""
OAuth 2.0 authorization-code flow for feedmix.

This module covers the parts of the flow that talk to the provider:
- Authorization URL generation (with a CSRF state token)
- Token exchange (authorization code -> access/refresh tokens)
- Token refresh (refresh token -> new access token)

The HTTP transport is injected so tests can substitute a stub without
touching the production code path. Nothing here logs the client secret,
authorization codes, or tokens.

An empty code or refresh token is a caller bug and raises ValueError,
which is outside the FeedmixOAuthError hierarchy.
"""

import logging
import secrets
from typing import Any, Dict, Mapping, Optional, Protocol, Tuple
from urllib.parse import urlencode

import requests

from .config import OAuthConfig
from .exceptions import (
    TokenParseError,
    TokenStatusError,
    TokenTransportError,
)
from .token_storage import Token

logger = logging.getLogger(__name__)

STATE_TOKEN_BYTES = 16
GRANT_AUTHORIZATION_CODE = "authorization_code"
GRANT_REFRESH_TOKEN = "refresh_token"


class HTTPTransport(Protocol):
    """Anything that can POST a form to a URL (``requests.Session`` qualifies)."""

    def post(
        self,
        url: str,
        data: Optional[Mapping[str, str]] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        ...


class OAuthFlow:
    """
    Authorization-code and refresh-token exchanges for one provider.

    Example:
        flow = OAuthFlow(OAuthConfig.youtube(client_id, client_secret))
        auth_url, state = flow.generate_auth_url()
        # ... user authorizes, callback server returns `code` ...
        token = flow.exchange_code(code)
    """

    def __init__(
        self,
        config: OAuthConfig,
        transport: Optional[HTTPTransport] = None,
        timeout: float = 30,
    ):
        """
        Initialize the flow.

        Args:
            config: OAuth configuration
            transport: HTTP transport (creates a requests.Session if not provided)
            timeout: Seconds to wait for the token endpoint
        """
        self.config = config
        self.transport = transport if transport is not None else requests.Session()
        self.timeout = timeout

    def generate_auth_url(self) -> Tuple[str, str]:
        """
        Generate the provider authorization URL.

        Each call draws a fresh state token; the caller must hand the same
        token to the callback server so it can reject forged redirects.

        Returns:
            Tuple of (authorization URL, state token)

        Raises:
            ConfigurationError: If the configuration is incomplete
        """
        self.config.validate()

        state = secrets.token_hex(STATE_TOKEN_BYTES)
        params = {
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_url,
            "scope": " ".join(self.config.scopes),
            "state": state,
            "response_type": "code",
            "access_type": "offline",
        }
        url = f"{self.config.authorization_url}?{urlencode(params)}"
        logger.debug(f"Generated authorization URL for {self.config.authorization_url}")
        return url, state

    def exchange_code(self, code: str) -> Token:
        """
        Exchange authorization code for access and refresh tokens.

        This is called once after the user authorizes the application.
        The authorization code is obtained from the OAuth callback.

        Args:
            code: Code received from OAuth callback

        Returns:
            Token with access and refresh tokens

        Raises:
            ConfigurationError: If the configuration is incomplete
            TokenTransportError: If the token endpoint cannot be reached
            TokenStatusError: If the token endpoint does not answer 200
            TokenParseError: If the response body is not a valid token
            ValueError: If code is empty
        """
        self.config.validate()
        if not code:
            raise ValueError("authorization code must not be empty")

        logger.info("Exchanging authorization code for tokens")
        return self._request_token(
            {
                "code": code,
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "redirect_uri": self.config.redirect_url,
                "grant_type": GRANT_AUTHORIZATION_CODE,
            }
        )

    def refresh_access_token(self, refresh_token: str) -> Token:
        """
        Obtain a new access token using a refresh token.

        Providers usually do not reissue the refresh token, so the returned
        Token's refresh_token is often empty. That is not an error: the
        original refresh token stays valid.

        Args:
            refresh_token: Long-lived refresh token

        Returns:
            New Token

        Raises:
            ConfigurationError: If the configuration is incomplete
            TokenTransportError: If the token endpoint cannot be reached
            TokenStatusError: If the token endpoint does not answer 200
            TokenParseError: If the response body is not a valid token
            ValueError: If refresh_token is empty
        """
        self.config.validate()
        if not refresh_token:
            raise ValueError("refresh token must not be empty")

        logger.info("Refreshing access token")
        return self._request_token(
            {
                "refresh_token": refresh_token,
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "grant_type": GRANT_REFRESH_TOKEN,
            }
        )

    def _request_token(self, data: Dict[str, str]) -> Token:
        """POST a grant to the token endpoint and parse the token response."""
        grant_type = data["grant_type"]

        try:
            response = self.transport.post(
                self.config.token_url,
                data=data,
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": "application/json",
                },
                timeout=self.timeout,
            )
        except (requests.RequestException, OSError) as e:
            # OSError covers injected transports that raise ConnectionError
            # or TimeoutError. The exception text may echo the request; keep
            # only its type.
            logger.error(f"Network error during {grant_type} grant: {type(e).__name__}")
            raise TokenTransportError(
                f"Could not reach the token endpoint ({type(e).__name__}). "
                f"Check your network connection and try again.",
                grant_type=grant_type,
            ) from e

        if response.status_code != 200:
            logger.error(f"Token endpoint rejected {grant_type} grant: {response.status_code}")
            raise TokenStatusError(
                f"Token request ({grant_type}) failed with status {response.status_code}. "
                f"Run the authorization flow again if the problem persists.",
                grant_type=grant_type,
                status_code=response.status_code,
            )

        try:
            token = Token.from_dict(response.json())
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Invalid response from token endpoint for {grant_type} grant")
            raise TokenParseError(
                f"Invalid response from token endpoint: {type(e).__name__}",
                grant_type=grant_type,
                status_code=response.status_code,
            ) from e

        logger.info(f"Token endpoint accepted {grant_type} grant")
        return token
