"""Pytest fixtures for OAuth tests."""

import socket
from unittest import mock

import pytest

from feedmix.oauth.config import OAuthConfig
from feedmix.oauth.token_storage import TokenStorage


@pytest.fixture
def config():
    """Create a complete test OAuth config."""
    return OAuthConfig(
        client_id="test-client-id",
        client_secret="test-client-secret",
        authorization_url="https://example.com/oauth/authorize",
        token_url="https://example.com/oauth/token",
        redirect_url="http://localhost:8080/callback",
        scopes=("read", "write"),
    )


@pytest.fixture
def storage(tmp_path):
    """Create token storage rooted in a fresh temporary directory."""
    return TokenStorage(tmp_path / "feedmix")


@pytest.fixture
def free_port():
    """Find a loopback port that nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def _make_response(status_code=200, json_data=None, json_error=None):
    response = mock.Mock()
    response.status_code = status_code
    response.text = "" if json_data is None else str(json_data)
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def transport():
    """Stub HTTP transport answering with a valid token response."""
    stub = mock.Mock()
    stub.post.return_value = _make_response(
        200,
        {
            "access_token": "new_access_token",
            "refresh_token": "new_refresh_token",
            "token_type": "Bearer",
            "expires_in": 3600,
        },
    )
    return stub


@pytest.fixture
def make_response():
    """Factory for requests.Response stand-ins used by stub transports."""
    return _make_response
