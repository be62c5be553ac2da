"""Local OAuth callback server."""

from __future__ import annotations

import logging
import socket
import threading
import urllib.parse
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Callable

from calauth.auth.google.constants import (
    DUPLICATE_CODE_TEXT,
    MISSING_CODE_TEXT,
    STATE_MISMATCH_TEXT,
    SUCCESS_TEXT,
)
from calauth.auth.google.errors import AuthorizationTimeoutError, CallbackServerError
from calauth.auth.google.models import split_redirect_uri

logger = logging.getLogger(__name__)


class _OAuthHandler(BaseHTTPRequestHandler):
    """Local callback HTTP handler."""

    server: "CallbackServer"
    server_version = "CalauthOAuth/1.0"
    protocol_version = "HTTP/1.1"

    def do_GET(self) -> None:  # noqa: N802
        try:
            url = urllib.parse.urlparse(self.path)
            if url.path != self.server.callback_path:
                self._reply(404, "Not found")
                return

            qs = urllib.parse.parse_qs(url.query)
            code = qs.get("code", [None])[0]
            state = qs.get("state", [None])[0]

            if state is not None and self.server.expected_state and state != self.server.expected_state:
                self._reply(400, STATE_MISMATCH_TEXT)
                return

            if not code:
                self._reply(400, MISSING_CODE_TEXT)
                return

            if not self.server.accept(code):
                self._reply(409, DUPLICATE_CODE_TEXT)
                return

            self._reply(200, SUCCESS_TEXT)
        except Exception:
            logger.exception("OAuth callback handler failed")
            self._reply(500, "Internal error")

    def _reply(self, status: int, text: str) -> None:
        body = (text + "\n").encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Connection", "close")
        self.end_headers()
        self.wfile.write(body)
        self.wfile.flush()
        self.close_connection = True

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A003
        logger.debug("callback %s - %s", self.address_string(), format % args)


class CallbackServer(HTTPServer):
    """One-shot OAuth callback server owning its single route."""

    def __init__(
        self,
        server_address: tuple[Any, ...],
        callback_path: str,
        expected_state: str | None = None,
        on_code: Callable[[str], None] | None = None,
    ):
        super().__init__(server_address, _OAuthHandler)
        self.callback_path = callback_path
        self.expected_state = expected_state
        self.on_code = on_code
        self.code: str | None = None
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._closed = False

    @property
    def port(self) -> int:
        return self.server_address[1]

    def accept(self, code: str) -> bool:
        """Record ``code`` if none was accepted yet; return whether it was."""
        with self._lock:
            if self.code is not None:
                return False
            self.code = code
        logger.info("Authorization code received on %s", self.callback_path)
        if self.on_code:
            self.on_code(code)
        return True

    def start(self) -> None:
        self._thread = threading.Thread(target=self.serve_forever, name="calauth-callback", daemon=True)
        self._thread.start()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._thread is not None:
            self.shutdown()
            self._thread.join()
        self.server_close()


def start_callback_server(
    redirect_uri: str,
    expected_state: str | None = None,
    on_code: Callable[[str], None] | None = None,
) -> CallbackServer:
    """Start a callback server for ``redirect_uri`` on its host and port.

    Raises:
        CallbackServerError: If the host cannot be resolved or no address
            family could bind the port.
    """
    try:
        host, port, path = split_redirect_uri(redirect_uri)
    except ValueError as exc:
        raise CallbackServerError(f"Invalid redirect URI {redirect_uri!r}: {exc}") from exc

    try:
        addrinfos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except OSError as exc:
        raise CallbackServerError(f"Failed to resolve {host}: {exc}") from exc

    last_error: OSError | None = None
    for family, _socktype, _proto, _canonname, sockaddr in addrinfos:
        try:
            # localhost may resolve to ::1 first; the browser follows the same order.
            class _AddrCallbackServer(CallbackServer):
                address_family = family

            server = _AddrCallbackServer(sockaddr, path, expected_state=expected_state, on_code=on_code)
        except OSError as exc:
            last_error = exc
            continue
        server.start()
        logger.debug("Callback server listening on %s:%s%s", host, server.port, path)
        return server

    raise CallbackServerError(f"Local callback server failed to start on {host}:{port}: {last_error}")


def receive_code(
    redirect_uri: str,
    expected_state: str | None = None,
    timeout: float | None = None,
    on_listening: Callable[[CallbackServer], None] | None = None,
) -> str:
    """Block until one authorization code arrives at ``redirect_uri``."""
    received = threading.Event()
    server = start_callback_server(redirect_uri, expected_state, on_code=lambda _code: received.set())
    try:
        if on_listening:
            on_listening(server)
        if not received.wait(timeout):
            raise AuthorizationTimeoutError(f"No authorization code received within {timeout} seconds")
        return str(server.code)
    finally:
        server.close()
