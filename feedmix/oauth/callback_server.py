"""
OAuth callback server for feedmix.

This module provides a local HTTP server that receives the provider's
redirect during the authorization flow. It runs only for the duration of
one ``wait_for_callback`` call:

1. Binds the configured port (failing fast if it is taken)
2. Serves requests on a background thread
3. Accepts exactly one redirect, checking the state token before the code
4. Shuts down and releases the port, whatever the outcome

IMPORTANT: This server is designed for single-user, personal use. One
wait per port may be in flight at a time.

Waiting without a state token is a caller bug and raises ValueError,
which is outside the FeedmixOAuthError hierarchy.
"""

import html
import logging
import queue
import secrets
import socket
import threading
import time
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Tuple
from urllib.parse import urlsplit

from flask import Flask, Response, request
from werkzeug.serving import (
    BaseWSGIServer,
    WSGIRequestHandler,
    make_server,
    select_address_family,
)

from .config import DEFAULT_CALLBACK_PATH, OAuthConfig
from .exceptions import (
    AuthorizationError,
    AuthorizationTimeoutError,
    CallbackServerError,
    InvalidStateError,
    MissingCodeError,
)

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1


@dataclass
class CallbackOutcome:
    """
    Result of the one redirect a callback server accepts.

    Exactly one of ``code`` and ``error`` is set.
    """

    code: Optional[str] = None
    error: Optional[AuthorizationError] = None

    @property
    def success(self) -> bool:
        return self.code is not None

    def unwrap(self) -> str:
        """Return the authorization code or raise the recorded failure."""
        if self.error is not None:
            raise self.error
        return self.code


def _page(title: str, message: str, status: int) -> Response:
    color = "#4caf50" if status == 200 else "#d32f2f"
    body = f"""<html>
<head><title>{html.escape(title)}</title></head>
<body style="font-family: Arial, sans-serif; max-width: 600px; margin: 50px auto; padding: 20px;">
    <h1 style="color: {color};">{html.escape(title)}</h1>
    <p>{html.escape(message)}</p>
    <p style="margin-top: 30px; color: #666;">You can close this window and return to the terminal.</p>
</body>
</html>"""
    return Response(body, status=status, content_type="text/html")


def handle_callback_request(
    args: Mapping[str, str], expected_state: str
) -> Tuple[CallbackOutcome, Response]:
    """
    Evaluate one redirect's query parameters.

    The state is checked first; a redirect with the wrong state is rejected
    without looking at its code.

    Args:
        args: Query parameters of the redirect
        expected_state: State token issued with the authorization URL

    Returns:
        Tuple of (outcome to publish, HTTP response for the browser)
    """
    state = args.get("state") or ""
    if not secrets.compare_digest(state.encode(), expected_state.encode()):
        logger.error("OAuth callback rejected: state parameter does not match")
        return (
            CallbackOutcome(
                error=InvalidStateError(
                    "Invalid state parameter in OAuth callback. The redirect did not "
                    "come from the authorization request we issued; run the "
                    "authorization flow again."
                )
            ),
            _page(
                "Authorization Failed",
                "Invalid state parameter. Please restart authorization from the terminal.",
                400,
            ),
        )

    code = args.get("code")
    if not code:
        error = args.get("error")
        error_description = args.get("error_description")
        if error:
            logger.error(f"OAuth provider returned error: {error}")
            detail = f" (provider error: {error}"
            detail += f" - {error_description})" if error_description else ")"
        else:
            logger.error("No authorization code in callback")
            detail = ""
        return (
            CallbackOutcome(
                error=MissingCodeError(
                    f"Missing authorization code in OAuth callback{detail}. "
                    f"Run the authorization flow again.",
                    error=error,
                    error_description=error_description,
                )
            ),
            _page(
                "Authorization Failed",
                f"No authorization code received{detail}.",
                400,
            ),
        )

    logger.info("Authorization code received successfully")
    return (
        CallbackOutcome(code=code),
        _page(
            "Authorization Successful",
            "Feedmix has been authorized to access your account.",
            200,
        ),
    )


class _QuietRequestHandler(WSGIRequestHandler):
    """Request handler that logs the path only; the query carries the code."""

    def log_request(self, code="-", size="-") -> None:
        logger.debug(f"Callback server: {self.command} {urlsplit(self.path).path} {code}")


class OAuthCallbackServer:
    """
    Single-shot local HTTP server for the OAuth redirect.

    The server:
    1. Binds host:port when wait_for_callback is called
    2. Registers one route for the callback path
    3. Serves on a daemon thread while the caller waits
    4. Publishes the first redirect's outcome to a one-slot queue
    5. Shuts down and closes its socket before returning

    Security:
    - Binds to 127.0.0.1 by default (the browser runs on the same machine)
    - State token checked in constant time before the code is read
    - Single-use (later requests are answered 409 and ignored)
    """

    def __init__(
        self,
        port: int,
        callback_path: str = DEFAULT_CALLBACK_PATH,
        host: str = "127.0.0.1",
    ):
        """
        Initialize callback server.

        Args:
            port: Port to listen on (must match the redirect URL)
            callback_path: URL path of the redirect (default: /callback)
            host: Interface to bind (default: 127.0.0.1)
        """
        if not 0 < port < 65536:
            raise CallbackServerError(
                f"Callback port must be between 1 and 65535, got {port}", port=port
            )
        self.port = port
        self.callback_path = callback_path
        self.host = host

    @classmethod
    def from_config(cls, config: OAuthConfig, host: str = "127.0.0.1") -> "OAuthCallbackServer":
        """Build a server listening where the config's redirect URL points."""
        return cls(config.callback_port, config.callback_path, host=host)

    @property
    def callback_url(self) -> str:
        """URL the provider should redirect to."""
        return f"http://{self.host}:{self.port}{self.callback_path}"

    def _create_app(self, expected_state: str, inbox: "queue.Queue[CallbackOutcome]") -> Flask:
        app = Flask(__name__)
        first_request = threading.Lock()

        def oauth_callback() -> Response:
            if not first_request.acquire(blocking=False):
                logger.warning("Ignoring extra request to OAuth callback")
                return _page(
                    "Already Handled",
                    "This authorization request has already been completed.",
                    409,
                )

            outcome, response = handle_callback_request(request.args, expected_state)
            inbox.put_nowait(outcome)
            return response

        app.add_url_rule(self.callback_path, "oauth_callback", oauth_callback, methods=["GET"])
        return app

    def _bind(self) -> socket.socket:
        # werkzeug exits the process when it cannot bind, so the socket is
        # bound here and handed over as a file descriptor.
        sock = socket.socket(select_address_family(self.host, self.port), socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            sock.listen(5)
        except OSError as e:
            sock.close()
            logger.error(f"Could not bind OAuth callback server to port {self.port}: {e}")
            raise CallbackServerError(
                f"Failed to start callback server on port {self.port}: "
                f"{e.strerror or e}. Is another program using port {self.port}?",
                port=self.port,
            ) from e
        return sock

    def _start(self, app: Flask) -> Tuple[BaseWSGIServer, threading.Thread]:
        sock = self._bind()
        try:
            server = make_server(
                self.host,
                self.port,
                app,
                request_handler=_QuietRequestHandler,
                fd=sock.fileno(),
            )
        finally:
            # make_server duplicates the descriptor
            sock.close()

        thread = threading.Thread(
            target=server.serve_forever,
            kwargs={"poll_interval": POLL_INTERVAL},
            name=f"oauth-callback-{self.port}",
            daemon=True,
        )
        thread.start()
        return server, thread

    def wait_for_callback(
        self,
        expected_state: str,
        timeout: float = 300,
        cancel_event: Optional[threading.Event] = None,
        on_ready: Optional[Callable[[], None]] = None,
    ) -> str:
        """
        Serve the callback route until one redirect arrives or time runs out.

        Args:
            expected_state: State token returned by OAuthFlow.generate_auth_url
            timeout: Maximum seconds to wait (default: 300 = 5 minutes)
            cancel_event: Set by another thread to abandon the wait early
            on_ready: Called once the server is listening (e.g. to show the URL)

        Returns:
            Authorization code from the redirect

        Raises:
            CallbackServerError: If the port cannot be bound (raised before waiting)
            InvalidStateError: If the redirect's state does not match
            MissingCodeError: If the redirect carries no code
            AuthorizationTimeoutError: If the deadline passes or the wait is cancelled
            ValueError: If expected_state is empty
        """
        if not expected_state:
            raise ValueError("expected_state must not be empty")

        inbox: "queue.Queue[CallbackOutcome]" = queue.Queue(maxsize=1)
        server, thread = self._start(self._create_app(expected_state, inbox))
        logger.info(f"Waiting for OAuth callback on port {self.port} (timeout: {timeout}s)")

        try:
            if on_ready is not None:
                on_ready()

            deadline = time.monotonic() + timeout
            while True:
                if cancel_event is not None and cancel_event.is_set():
                    logger.warning("Wait for OAuth callback cancelled")
                    raise AuthorizationTimeoutError(
                        "Authorization was cancelled before a callback was received."
                    )

                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.warning(f"Timeout waiting for callback after {timeout}s")
                    raise AuthorizationTimeoutError(
                        f"No callback received within {timeout} seconds. "
                        f"Please ensure you completed the authorization in your browser."
                    )

                try:
                    outcome = inbox.get(timeout=min(remaining, POLL_INTERVAL))
                except queue.Empty:
                    continue
                return outcome.unwrap()
        finally:
            server.shutdown()
            server.server_close()
            thread.join(timeout=5)
            logger.info("OAuth callback server shut down")
