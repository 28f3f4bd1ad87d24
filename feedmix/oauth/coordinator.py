"""
OAuth coordinator for high-level OAuth operations.

This module provides the main interface for OAuth operations in feedmix.
It ties the flow, the callback server and token storage together:

First run:  authorization URL -> browser -> callback -> code exchange -> save
Later runs: load -> refresh -> save -> use access token
"""

import logging
from dataclasses import replace
from typing import Dict, Optional

from .browser import open_browser as launch_browser
from .callback_server import OAuthCallbackServer
from .config import OAuthConfig, default_token_dir
from .exceptions import TokenNotAvailableError, TokenNotFoundError
from .flow import HTTPTransport, OAuthFlow
from .token_storage import Token, TokenStorage

logger = logging.getLogger(__name__)


class OAuthCoordinator:
    """
    High-level coordinator for one provider's OAuth credential.

    Example:
        coordinator = OAuthCoordinator(provider="youtube")
        coordinator.ensure_authorized()
        headers = coordinator.get_authorization_header()
        # Use headers for API calls
    """

    def __init__(
        self,
        config: Optional[OAuthConfig] = None,
        storage: Optional[TokenStorage] = None,
        provider: str = "youtube",
        transport: Optional[HTTPTransport] = None,
        callback_server: Optional[OAuthCallbackServer] = None,
    ):
        """
        Initialize OAuth coordinator.

        Args:
            config: OAuth configuration (loads from environment if not provided)
            storage: Token storage (uses the feedmix config directory if not provided)
            provider: Provider name, used for env lookup and the token file name
            transport: HTTP transport for the token endpoint
            callback_server: Callback server (derived from the redirect URL if not provided)
        """
        self.provider = provider
        self.config = config or OAuthConfig.from_env(provider)
        self.storage = storage or TokenStorage(default_token_dir())
        self.flow = OAuthFlow(self.config, transport=transport)
        self.callback_server = callback_server or OAuthCallbackServer.from_config(self.config)

    def run_authorization_flow(self, open_browser: bool = True, timeout: float = 300) -> Token:
        """
        Run the complete OAuth authorization flow.

        This orchestrates the full authorization process:
        1. Generates the authorization URL and state token
        2. Starts the callback server, then shows the URL (and opens a browser)
        3. Receives the authorization code from the callback
        4. Exchanges the code for access and refresh tokens
        5. Saves the tokens to storage

        Args:
            open_browser: Whether to automatically open browser
            timeout: Seconds to wait for the callback

        Returns:
            Newly issued Token

        Raises:
            AuthorizationError: If the callback fails, times out, or the port is busy
            TokenRequestError: If the code exchange fails
            TokenStorageError: If the tokens cannot be saved
        """
        auth_url, state = self.flow.generate_auth_url()

        def show_url() -> None:
            print("\n" + "=" * 70)
            print(f"FEEDMIX {self.provider.upper()} AUTHORIZATION")
            print("=" * 70)
            print("\nPlease authorize feedmix by visiting:")
            print(f"\n  {auth_url}\n")

            if open_browser and launch_browser(auth_url):
                print("Opening browser automatically...")
            else:
                print("Copy the URL above and paste it in your browser.")

            print(f"\nWaiting for authorization (timeout: {int(timeout)}s)...")
            print("=" * 70 + "\n")

        code = self.callback_server.wait_for_callback(state, timeout=timeout, on_ready=show_url)

        token = self.flow.exchange_code(code)
        self.storage.save(self.provider, token)
        logger.info(f"Authorization complete for {self.provider}, tokens saved")
        return token

    def ensure_authorized(self, open_browser: bool = True, timeout: float = 300) -> Token:
        """
        Return the stored token, running the authorization flow if there is none.

        Args:
            open_browser: Whether to auto-open browser for auth
            timeout: Seconds to wait for the callback

        Returns:
            Stored or newly issued Token
        """
        try:
            return self.storage.load(self.provider)
        except TokenNotFoundError:
            logger.info("No stored tokens found, starting authorization flow")
            return self.run_authorization_flow(open_browser=open_browser, timeout=timeout)

    def get_token(self) -> Token:
        """
        Get a fresh token for API calls.

        Loads the stored token and, if it has a refresh token, exchanges it
        for a new access token. The refreshed token supersedes the stored
        one; when the provider does not reissue a refresh token, the stored
        refresh token is carried over.

        Returns:
            Token with a current access token

        Raises:
            TokenNotAvailableError: If not authorized (need to run authorization flow)
            TokenRequestError: If the refresh fails
        """
        try:
            stored = self.storage.load(self.provider)
        except TokenNotFoundError as e:
            raise TokenNotAvailableError(
                f"No tokens available for {self.provider}. Run the authorization flow first."
            ) from e

        if not stored.refresh_token:
            logger.warning(f"Stored {self.provider} token has no refresh token, using as is")
            return stored

        fresh = self.flow.refresh_access_token(stored.refresh_token)
        if not fresh.refresh_token:
            fresh = replace(fresh, refresh_token=stored.refresh_token)

        self.storage.save(self.provider, fresh)
        return fresh

    def get_access_token(self) -> str:
        """Get a valid access token string (see get_token)."""
        return self.get_token().access_token

    def get_authorization_header(self) -> Dict[str, str]:
        """
        Get Authorization header dict for API requests.

        Returns:
            Dict with Authorization header: {"Authorization": "Bearer <token>"}

        Raises:
            TokenNotAvailableError: If not authorized
        """
        return self.get_token().authorization_header

    def is_authorized(self) -> bool:
        """Check whether tokens are stored for this provider."""
        return self.storage.exists(self.provider)

    def get_status(self) -> dict:
        """
        Get current authorization status for diagnostics.

        Returns:
            Dictionary with status information (never token values)
        """
        token_file = str(self.storage.token_path(self.provider))
        try:
            token = self.storage.load(self.provider)
        except TokenNotFoundError:
            return {"authorized": False, "token_file": token_file, "message": "No tokens stored"}

        return {
            "authorized": True,
            "token_file": token_file,
            "token_type": token.token_type,
            "expires_in": token.expires_in,
            "has_refresh_token": bool(token.refresh_token),
        }

    def revoke(self) -> None:
        """
        Delete stored tokens (local revocation).

        This does NOT revoke the tokens on the provider's servers. After
        revocation, the authorization flow must be run again.
        """
        self.storage.delete(self.provider)
        logger.info(f"Authorization revoked locally for {self.provider}")
