"""
Token storage for feedmix OAuth integration.

This module provides file-based token persistence, one JSON file per
provider, under a single storage root. The root is owner-only (700) and
every token file is owner read/write only (600).

Provider names are reduced to a bare file name before use, so a name like
``../../etc/passwd`` can never place a file outside the storage root.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, Union

from .exceptions import TokenNotFoundError, TokenStorageError

logger = logging.getLogger(__name__)

TOKEN_FILE_SUFFIX = "_token.json"
DIR_MODE = 0o700
FILE_MODE = 0o600


def _or_default(value, default):
    return default if value is None else value


def _seconds(value) -> int:
    """Validate a token lifetime decoded from JSON (whole seconds)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expires_in must be a number, got {type(value).__name__}")
    if isinstance(value, float):
        # json decodes 1e999 as inf
        if not value.is_integer():
            raise ValueError(f"expires_in must be a whole number of seconds, got {value}")
        value = int(value)
    return value


@dataclass(frozen=True)
class Token:
    """
    OAuth token returned by a successful token endpoint exchange.

    Tokens are immutable; a refresh produces a new Token that supersedes
    the old one.

    Attributes:
        access_token: Short-lived access token for API calls
        refresh_token: Long-lived token for obtaining new access tokens
                       (empty when the provider did not reissue one)
        token_type: Token type (typically "Bearer")
        expires_in: Token lifetime in seconds from issue
    """

    access_token: str = field(repr=False)
    refresh_token: str = field(default="", repr=False)
    token_type: str = "Bearer"
    expires_in: int = 0

    @property
    def authorization_header(self) -> Dict[str, str]:
        """Header dict ready to merge into API request headers."""
        return {"Authorization": f"{self.token_type or 'Bearer'} {self.access_token}"}

    def to_dict(self) -> dict:
        """
        Convert to dictionary for JSON serialization.

        Returns:
            Dictionary with exactly the four persisted token fields
        """
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Token":
        """
        Create Token from a decoded JSON object.

        Unknown keys (scope, id_token, ...) are ignored.

        Args:
            data: Dictionary with token fields

        Returns:
            Token instance

        Raises:
            TypeError: If data is not a JSON object or a field has the wrong type
            KeyError: If access_token is missing
            ValueError: If expires_in is not a finite whole number
        """
        if not isinstance(data, dict):
            raise TypeError(f"expected a JSON object, got {type(data).__name__}")

        access_token = data["access_token"]
        if not isinstance(access_token, str) or not access_token:
            raise TypeError("access_token must be a non-empty string")

        # Defaults apply to absent or null keys only, so "" loads unchanged
        refresh_token = _or_default(data.get("refresh_token"), "")
        token_type = _or_default(data.get("token_type"), "Bearer")
        if not isinstance(refresh_token, str) or not isinstance(token_type, str):
            raise TypeError("refresh_token and token_type must be strings")

        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type=token_type,
            expires_in=_seconds(_or_default(data.get("expires_in"), 0)),
        )


class TokenStorage:
    """
    File-based token storage (plaintext JSON, owner-only permissions).

    Each provider's token lives at ``<root>/<provider>_token.json``.
    There is no locking: with concurrent writers the last write wins.
    """

    def __init__(self, root: Union[str, Path]):
        """
        Initialize token storage.

        Args:
            root: Directory holding token files (created on first save)
        """
        self.root = Path(root)

    def token_path(self, provider: str) -> Path:
        """
        Path of the token file for a provider.

        The provider name is reduced to its base name (both / and \\ count
        as separators) so the file always lands directly inside the root.

        Args:
            provider: Provider name (e.g., "youtube")

        Returns:
            Path inside the storage root

        Raises:
            TokenStorageError: If nothing usable remains of the provider name
        """
        name = os.path.basename(provider.replace("\\", "/"))
        if name in ("", ".", ".."):
            raise TokenStorageError(f"Invalid provider name: {provider!r}")

        path = self.root / f"{name}{TOKEN_FILE_SUFFIX}"
        root = self.root.resolve()
        if path.resolve().parent != root:
            raise TokenStorageError(f"Invalid provider name: {provider!r}")
        return path

    def _ensure_directory(self) -> None:
        """Create the storage root with owner-only permissions (700)."""
        self.root.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        try:
            self.root.chmod(DIR_MODE)
        except OSError as e:
            logger.warning(f"Could not set secure permissions on {self.root}: {e}")

    def save(self, provider: str, token: Token) -> None:
        """
        Save a provider's token, replacing any previous one.

        Writes tokens as JSON with secure permissions (chmod 600).

        Args:
            provider: Provider name
            token: Token to save

        Raises:
            TokenStorageError: If the provider name is invalid or the write fails
        """
        path = self.token_path(provider)
        try:
            self._ensure_directory()
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(token.to_dict(), f, indent=2)

            # An existing file keeps its old mode through O_TRUNC
            os.chmod(path, FILE_MODE)

            logger.info(f"Tokens saved to {path}")
        except OSError as e:
            logger.error(f"Failed to save tokens for {path.name}: {e}")
            raise TokenStorageError(f"Failed to save tokens to {path}: {e}") from e

    def load(self, provider: str) -> Token:
        """
        Load a provider's token.

        Args:
            provider: Provider name

        Returns:
            Stored Token

        Raises:
            TokenNotFoundError: If no token has been saved for this provider
            TokenStorageError: If the file cannot be read or is corrupted
        """
        path = self.token_path(provider)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            logger.debug(f"No token file found at {path}")
            raise TokenNotFoundError(
                f"No stored token for '{provider}'. Run the authorization flow first.",
                provider=provider,
            ) from e
        except ValueError as e:
            # JSONDecodeError or UnicodeDecodeError
            raise TokenStorageError(
                f"Token file {path} is corrupted, run the authorization flow again: {e}"
            ) from e
        except OSError as e:
            raise TokenStorageError(f"Could not read token file {path}: {e}") from e

        try:
            token = Token.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise TokenStorageError(
                f"Token file {path} is invalid, run the authorization flow again: {e}"
            ) from e

        logger.debug(f"Tokens loaded from {path}")
        return token

    def delete(self, provider: str) -> bool:
        """
        Delete a provider's token file.

        Returns:
            True if file was deleted, False if file didn't exist

        Raises:
            TokenStorageError: If the file exists but cannot be removed
        """
        path = self.token_path(provider)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug(f"Token file does not exist: {path}")
            return False
        except OSError as e:
            logger.error(f"Failed to delete token file: {e}")
            raise TokenStorageError(f"Failed to delete token file {path}: {e}") from e

        logger.info(f"Token file deleted: {path}")
        return True

    def exists(self, provider: str) -> bool:
        """Check whether a token file is stored for the provider."""
        return self.token_path(provider).is_file()
