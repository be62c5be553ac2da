"""Google OAuth login and token management."""

from __future__ import annotations

import asyncio
import logging
import threading
import webbrowser
from pathlib import Path
from typing import Callable

import httpx

from calauth.auth.google.config import get_token_path, load_client_config
from calauth.auth.google.constants import CALLBACK_TIMEOUT_SEC
from calauth.auth.google.errors import AuthorizationTimeoutError, BrowserLaunchError, CalauthError
from calauth.auth.google.exchange import (
    build_authorization_url,
    client_from,
    exchange_code_for_token_async,
    token_from_file,
)
from calauth.auth.google.models import ClientConfig, GoogleToken
from calauth.auth.google.server import start_callback_server
from calauth.auth.google.storage import save_token

logger = logging.getLogger(__name__)


def _open_browser(url: str) -> None:
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as exc:
        raise BrowserLaunchError(f"Could not open a browser: {exc}") from exc
    if not opened:
        raise BrowserLaunchError("Could not open a browser; rerun with --no-browser and visit the URL manually.")


def token_from_web(
    config: ClientConfig,
    on_auth: Callable[[str], None] | None = None,
    on_progress: Callable[[str], None] | None = None,
    timeout: float | None = CALLBACK_TIMEOUT_SEC,
) -> GoogleToken:
    """Run the browser consent flow and exchange the returned code.

    ``on_auth`` receives the authorization URL instead of it being opened in
    the default browser. ``timeout`` of ``None`` waits for the callback
    indefinitely.
    """

    async def _login_async() -> GoogleToken:
        url = build_authorization_url(config)

        loop = asyncio.get_running_loop()
        code_future: asyncio.Future[str] = loop.create_future()

        def _notify(code_value: str) -> None:
            def _resolve() -> None:
                if not code_future.done():
                    code_future.set_result(code_value)

            loop.call_soon_threadsafe(_resolve)

        server = start_callback_server(config.redirect_uri, expected_state=config.state, on_code=_notify)
        try:
            logger.info("Authorization URL: %s", url)
            if on_auth:
                on_auth(url)
            else:
                _open_browser(url)

            if on_progress:
                on_progress("Waiting for browser callback...")
            try:
                code = await asyncio.wait_for(code_future, timeout=timeout)
            except asyncio.TimeoutError as exc:
                raise AuthorizationTimeoutError(
                    f"Authorization timed out after {timeout} seconds without a callback"
                ) from exc
        finally:
            server.close()

        if on_progress:
            on_progress("Exchanging authorization code for tokens...")
        return await exchange_code_for_token_async(config, code)

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(_login_async())

    result: list[GoogleToken] = []
    error: list[BaseException] = []

    def _runner() -> None:
        try:
            result.append(asyncio.run(_login_async()))
        except Exception as exc:
            error.append(exc)

    thread = threading.Thread(target=_runner, name="calauth-login")
    thread.start()
    thread.join()
    if error:
        raise error[0]
    return result[0]


def get_token(
    config: ClientConfig | None = None,
    token_path: Path | None = None,
    on_auth: Callable[[str], None] | None = None,
    on_progress: Callable[[str], None] | None = None,
    timeout: float | None = CALLBACK_TIMEOUT_SEC,
    force: bool = False,
) -> GoogleToken:
    """Return the cached token, or obtain and store a new one."""
    config = config or load_client_config()
    path = token_path or get_token_path()

    if not force:
        token = token_from_file(path)
        if token:
            logger.debug("Using cached token from %s", path)
            return token

    logger.info("Starting browser authorization; token will be saved to %s", path)
    token = token_from_web(config, on_auth=on_auth, on_progress=on_progress, timeout=timeout)
    save_token(path, token)
    return token


def get_client(
    config: ClientConfig | None = None,
    token_path: Path | None = None,
    on_auth: Callable[[str], None] | None = None,
    on_progress: Callable[[str], None] | None = None,
    timeout: float | None = CALLBACK_TIMEOUT_SEC,
) -> httpx.Client:
    """Get an HTTP client authorized for the Calendar API."""
    config = config or load_client_config()
    token = get_token(config, token_path, on_auth=on_auth, on_progress=on_progress, timeout=timeout)
    return client_from(config, token)


def ensure_token_available(token_path: Path | None = None) -> None:
    """Ensure a cached token is available; raise if not.

    Never starts the browser flow.
    """
    path = token_path or get_token_path()
    if token_from_file(path) is None:
        raise CalauthError(f"No cached Google OAuth token at {path}. Please run the login command.")
