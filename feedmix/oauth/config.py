"""
OAuth configuration for feedmix.

This module provides configuration management for OAuth 2.0 authentication
with the content providers feedmix reads from. Configuration can be built
from a provider preset, loaded from environment variables, or provided
programmatically.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Tuple
from urllib.parse import urlparse

from .exceptions import ConfigurationError

DEFAULT_REDIRECT_URL = "http://localhost:8080/callback"
DEFAULT_CALLBACK_PATH = "/callback"

YOUTUBE_AUTHORIZATION_URL = "https://accounts.google.com/o/oauth2/v2/auth"
YOUTUBE_TOKEN_URL = "https://oauth2.googleapis.com/token"
YOUTUBE_SCOPES = ("https://www.googleapis.com/auth/youtube.readonly",)


def _unique(scopes: Iterable[str]) -> Tuple[str, ...]:
    """Drop duplicate scopes, keeping the first occurrence."""
    return tuple(dict.fromkeys(scopes))


@dataclass
class OAuthConfig:
    """
    Configuration for one provider's OAuth 2.0 authorization-code flow.

    Attributes:
        client_id: OAuth client ID issued by the provider
        client_secret: OAuth client secret issued by the provider
        authorization_url: Provider authorization endpoint (browser-facing)
        token_url: Provider token endpoint (code and refresh exchanges)
        redirect_url: Where the provider redirects after authorization;
                      must point at the local callback server
        scopes: Requested scopes, in order, without duplicates
    """

    client_id: str
    client_secret: str
    authorization_url: str = ""
    token_url: str = ""
    redirect_url: str = DEFAULT_REDIRECT_URL
    scopes: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        self.scopes = _unique(self.scopes)

    def missing_fields(self) -> List[str]:
        """
        List every required field that is missing.

        Returns:
            Field names in validation order (empty when the config is valid)
        """
        missing = []
        if not self.client_id:
            missing.append("client_id")
        if not self.client_secret:
            missing.append("client_secret")
        if not self.redirect_url:
            missing.append("redirect_url")
        if not self.scopes:
            missing.append("scopes")
        return missing

    def validate(self) -> None:
        """
        Check that the required fields are present.

        Raises:
            ConfigurationError: Naming the first missing field
                                (``error.field`` holds its name)
        """
        if not self.client_id:
            raise ConfigurationError("client ID is required", field="client_id")
        if not self.client_secret:
            raise ConfigurationError("client secret is required", field="client_secret")
        if not self.redirect_url:
            raise ConfigurationError("redirect URL is required", field="redirect_url")
        if not self.scopes:
            raise ConfigurationError("at least one scope is required", field="scopes")

    @property
    def callback_port(self) -> int:
        """Port the local callback server must listen on, taken from redirect_url."""
        parsed = urlparse(self.redirect_url)
        try:
            port = parsed.port
        except ValueError as e:
            raise ConfigurationError(
                f"redirect URL has an invalid port: {self.redirect_url}",
                field="redirect_url",
            ) from e
        if port is None:
            return 443 if parsed.scheme == "https" else 80
        return port

    @property
    def callback_path(self) -> str:
        """URL path of the local callback route, taken from redirect_url."""
        return urlparse(self.redirect_url).path or DEFAULT_CALLBACK_PATH

    @classmethod
    def youtube(
        cls, client_id: str, client_secret: str, redirect_url: str = DEFAULT_REDIRECT_URL
    ) -> "OAuthConfig":
        """Config for the YouTube Data API (Google OAuth, read-only scope)."""
        return cls(
            client_id=client_id,
            client_secret=client_secret,
            authorization_url=YOUTUBE_AUTHORIZATION_URL,
            token_url=YOUTUBE_TOKEN_URL,
            redirect_url=redirect_url,
            scopes=YOUTUBE_SCOPES,
        )

    @classmethod
    def from_env(cls, provider: str = "youtube") -> "OAuthConfig":
        """
        Load configuration from environment variables.

        Required environment variables (PROVIDER is the upper-cased name):
            FEEDMIX_<PROVIDER>_CLIENT_ID: OAuth client ID
            FEEDMIX_<PROVIDER>_CLIENT_SECRET: OAuth client secret

        Optional environment variables:
            FEEDMIX_OAUTH_REDIRECT_URL: Redirect URL (default: http://localhost:8080/callback)
            FEEDMIX_OAUTH_TOKEN_URL: Override the provider token endpoint

        Args:
            provider: Provider preset name ("youtube")

        Returns:
            Validated OAuthConfig instance

        Raises:
            ConfigurationError: If the provider is unknown or credentials are missing
        """
        presets = {"youtube": cls.youtube}
        name = provider.lower()
        if name not in presets:
            raise ConfigurationError(
                f"Unknown OAuth provider '{provider}'. "
                f"Supported providers: {', '.join(sorted(presets))}",
                field="provider",
            )

        prefix = f"FEEDMIX_{name.upper()}"
        client_id = os.environ.get(f"{prefix}_CLIENT_ID", "")
        client_secret = os.environ.get(f"{prefix}_CLIENT_SECRET", "")

        if not client_id or not client_secret:
            raise ConfigurationError(
                f"Missing {name} OAuth credentials. Set environment variables:\n"
                f"  {prefix}_CLIENT_ID=your_client_id\n"
                f"  {prefix}_CLIENT_SECRET=your_client_secret",
                field="client_id" if not client_id else "client_secret",
            )

        config = presets[name](
            client_id,
            client_secret,
            os.environ.get("FEEDMIX_OAUTH_REDIRECT_URL", DEFAULT_REDIRECT_URL),
        )
        token_url = os.environ.get("FEEDMIX_OAUTH_TOKEN_URL")
        if token_url:
            config.token_url = token_url

        config.validate()
        return config


def default_token_dir() -> Path:
    """
    Directory holding stored credentials.

    Returns:
        $FEEDMIX_CONFIG_DIR if set, otherwise ~/.config/feedmix
    """
    configured = os.environ.get("FEEDMIX_CONFIG_DIR")
    if configured:
        return Path(configured)
    return Path.home() / ".config" / "feedmix"
