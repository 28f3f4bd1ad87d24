"""Open authorization URLs in the user's browser."""

import logging
import webbrowser
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")


def open_browser(url: str) -> bool:
    """
    Open a URL in the default browser.

    Only http and https URLs are handed to the browser.

    Args:
        url: URL to open

    Returns:
        True if a browser was launched, False otherwise

    Raises:
        ValueError: If the URL is not an http(s) URL
    """
    parsed = urlparse(url)
    if parsed.scheme not in ALLOWED_SCHEMES or not parsed.netloc:
        raise ValueError(
            f"Unsupported URL scheme: {parsed.scheme or '(none)'} "
            f"(only http and https allowed)"
        )

    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as e:
        logger.warning(f"Could not open browser automatically: {e}")
        return False

    if not opened:
        logger.warning("No browser available to open the authorization URL")
    return opened
