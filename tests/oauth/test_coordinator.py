"""Tests for OAuth coordinator module."""

import os
from unittest import mock

import pytest

from feedmix.oauth.callback_server import OAuthCallbackServer
from feedmix.oauth.coordinator import OAuthCoordinator
from feedmix.oauth.exceptions import (
    InvalidStateError,
    TokenNotAvailableError,
    TokenStatusError,
)
from feedmix.oauth.token_storage import Token


@pytest.fixture
def callback_server():
    """Callback server stub that calls on_ready and returns a code."""
    server = mock.Mock(spec=OAuthCallbackServer)

    def wait_for_callback(expected_state, timeout=300, cancel_event=None, on_ready=None):
        if on_ready is not None:
            on_ready()
        return "auth_code_123"

    server.wait_for_callback.side_effect = wait_for_callback
    return server


@pytest.fixture
def coordinator(config, storage, transport, callback_server):
    """Create a coordinator wired to stubs."""
    return OAuthCoordinator(
        config,
        storage=storage,
        provider="youtube",
        transport=transport,
        callback_server=callback_server,
    )


class TestOAuthCoordinator:
    """Tests for OAuthCoordinator class."""

    def test_coordinator_initialization(self, config, storage):
        """OAuthCoordinator derives its callback server from the config."""
        coordinator = OAuthCoordinator(config, storage=storage)

        assert coordinator.config == config
        assert coordinator.storage is storage
        assert coordinator.flow.config == config
        assert coordinator.callback_server.port == 8080
        assert coordinator.callback_server.callback_path == "/callback"

    @mock.patch.dict(
        os.environ,
        {
            "FEEDMIX_YOUTUBE_CLIENT_ID": "env_id",
            "FEEDMIX_YOUTUBE_CLIENT_SECRET": "env_secret",
        },
    )
    def test_coordinator_loads_config_from_env(self, storage):
        """OAuthCoordinator loads config from environment if not provided."""
        coordinator = OAuthCoordinator(storage=storage)

        assert coordinator.config.client_id == "env_id"
        assert coordinator.config.client_secret == "env_secret"

    @mock.patch("feedmix.oauth.coordinator.launch_browser", return_value=True)
    def test_run_authorization_flow(
        self, mock_browser, coordinator, storage, transport, callback_server, capsys
    ):
        """The full flow exchanges the code and saves the token."""
        token = coordinator.run_authorization_flow(open_browser=True, timeout=60)

        assert token.access_token == "new_access_token"
        assert storage.load("youtube") == token

        state = callback_server.wait_for_callback.call_args[0][0]
        assert callback_server.wait_for_callback.call_args[1]["timeout"] == 60
        auth_url = mock_browser.call_args[0][0]
        assert f"state={state}" in auth_url
        assert auth_url in capsys.readouterr().out
        assert transport.post.call_args[1]["data"]["code"] == "auth_code_123"

    @mock.patch("feedmix.oauth.coordinator.launch_browser")
    def test_run_authorization_flow_no_browser(
        self, mock_browser, coordinator, capsys
    ):
        """With open_browser=False the URL is only printed."""
        coordinator.run_authorization_flow(open_browser=False)

        mock_browser.assert_not_called()
        assert "paste it in your browser" in capsys.readouterr().out

    @mock.patch("feedmix.oauth.coordinator.launch_browser", return_value=True)
    def test_run_authorization_flow_propagates_callback_errors(
        self, mock_browser, coordinator, storage, transport, callback_server
    ):
        """Callback failures propagate and nothing is exchanged or saved."""
        callback_server.wait_for_callback.side_effect = InvalidStateError("bad state")

        with pytest.raises(InvalidStateError):
            coordinator.run_authorization_flow()

        transport.post.assert_not_called()
        assert not storage.exists("youtube")

    @mock.patch("feedmix.oauth.coordinator.launch_browser", return_value=True)
    def test_run_authorization_flow_propagates_exchange_errors(
        self, mock_browser, coordinator, storage, transport, make_response
    ):
        """A rejected code exchange propagates and nothing is saved."""
        transport.post.return_value = make_response(400, {"error": "invalid_grant"})

        with pytest.raises(TokenStatusError):
            coordinator.run_authorization_flow()

        assert not storage.exists("youtube")

    def test_ensure_authorized_uses_stored_token(self, coordinator, storage, callback_server):
        """ensure_authorized returns the stored token without a new flow."""
        stored = Token(access_token="stored", refresh_token="refresh")
        storage.save("youtube", stored)

        assert coordinator.ensure_authorized() == stored
        callback_server.wait_for_callback.assert_not_called()

    @mock.patch("feedmix.oauth.coordinator.launch_browser", return_value=True)
    def test_ensure_authorized_runs_flow_when_not_authorized(
        self, mock_browser, coordinator, callback_server
    ):
        """ensure_authorized runs the flow when nothing is stored."""
        token = coordinator.ensure_authorized()

        assert token.access_token == "new_access_token"
        callback_server.wait_for_callback.assert_called_once()

    def test_get_token_refreshes_stored_token(self, coordinator, storage, transport):
        """get_token refreshes with the stored refresh token and saves the result."""
        storage.save("youtube", Token(access_token="old", refresh_token="refresh-abc"))

        token = coordinator.get_token()

        assert transport.post.call_args[1]["data"]["refresh_token"] == "refresh-abc"
        assert token.access_token == "new_access_token"
        assert storage.load("youtube") == token

    def test_get_token_keeps_refresh_token_when_not_reissued(
        self, coordinator, storage, transport, make_response
    ):
        """An empty refresh token in the response keeps the stored one."""
        storage.save("youtube", Token(access_token="old", refresh_token="refresh-abc"))
        transport.post.return_value = make_response(
            200, {"access_token": "tok1", "token_type": "Bearer", "expires_in": 3600}
        )

        token = coordinator.get_token()

        assert token.access_token == "tok1"
        assert token.refresh_token == "refresh-abc"
        assert storage.load("youtube").refresh_token == "refresh-abc"

    def test_get_token_without_refresh_token(self, coordinator, storage, transport):
        """A stored token without refresh token is returned as is."""
        stored = Token(access_token="only-access")
        storage.save("youtube", stored)

        assert coordinator.get_token() == stored
        transport.post.assert_not_called()

    def test_get_token_when_not_authorized(self, coordinator):
        """get_token raises TokenNotAvailableError before authorization."""
        with pytest.raises(TokenNotAvailableError, match="authorization flow"):
            coordinator.get_token()

    def test_get_access_token_and_header(self, coordinator, storage):
        """Access token helpers return the refreshed token."""
        storage.save("youtube", Token(access_token="old", refresh_token="refresh-abc"))

        assert coordinator.get_access_token() == "new_access_token"
        assert coordinator.get_authorization_header() == {
            "Authorization": "Bearer new_access_token"
        }

    def test_is_authorized(self, coordinator, storage):
        """is_authorized reflects whether a token is stored."""
        assert coordinator.is_authorized() is False
        storage.save("youtube", Token(access_token="tok"))
        assert coordinator.is_authorized() is True

    def test_get_status(self, coordinator, storage):
        """get_status reports state without token values."""
        status = coordinator.get_status()
        assert status["authorized"] is False

        storage.save(
            "youtube", Token(access_token="tok", refresh_token="ref", expires_in=3600)
        )
        status = coordinator.get_status()

        assert status["authorized"] is True
        assert status["expires_in"] == 3600
        assert status["has_refresh_token"] is True
        assert "tok" not in status.values()

    def test_revoke(self, coordinator, storage):
        """revoke deletes the stored token."""
        storage.save("youtube", Token(access_token="tok"))

        coordinator.revoke()

        assert not storage.exists("youtube")
