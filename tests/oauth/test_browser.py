"""Tests for browser helper."""

import webbrowser
from unittest import mock

import pytest

from feedmix.oauth.browser import open_browser


class TestOpenBrowser:
    """Tests for open_browser."""

    @mock.patch("feedmix.oauth.browser.webbrowser.open", return_value=True)
    def test_opens_https_url(self, mock_open):
        """https URLs are handed to the browser."""
        assert open_browser("https://accounts.google.com/o/oauth2/v2/auth?x=1") is True
        mock_open.assert_called_once_with("https://accounts.google.com/o/oauth2/v2/auth?x=1")

    @mock.patch("feedmix.oauth.browser.webbrowser.open", return_value=True)
    def test_opens_http_url(self, mock_open):
        """http URLs are allowed too."""
        assert open_browser("http://localhost:8080/") is True

    @pytest.mark.parametrize(
        "url",
        ["file:///etc/passwd", "javascript:alert(1)", "ftp://example.com", "not a url"],
    )
    @mock.patch("feedmix.oauth.browser.webbrowser.open")
    def test_rejects_other_schemes(self, mock_open, url):
        """Non-http(s) URLs never reach the browser."""
        with pytest.raises(ValueError, match="only http and https allowed"):
            open_browser(url)
        mock_open.assert_not_called()

    @mock.patch("feedmix.oauth.browser.webbrowser.open", return_value=False)
    def test_no_browser_available(self, mock_open):
        """Returns False when no browser could be launched."""
        assert open_browser("https://example.com") is False

    @mock.patch(
        "feedmix.oauth.browser.webbrowser.open",
        side_effect=webbrowser.Error("no runnable browser"),
    )
    def test_browser_error(self, mock_open):
        """Browser errors are reported as False, not raised."""
        assert open_browser("https://example.com") is False
