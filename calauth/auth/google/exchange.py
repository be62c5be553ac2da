"""Authorization URL, code exchange and authenticated client construction."""

from __future__ import annotations

import logging
import urllib.parse
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Generator

import httpx

from calauth.auth.google.constants import CALENDAR_API_BASE, EXCHANGE_TIMEOUT_SEC
from calauth.auth.google.errors import TokenExchangeError
from calauth.auth.google.models import ClientConfig, GoogleToken
from calauth.auth.google.storage import load_token

logger = logging.getLogger(__name__)


def build_authorization_url(config: ClientConfig) -> str:
    params = {
        "response_type": "code",
        "client_id": config.client_id,
        "redirect_uri": config.redirect_uri,
        "scope": config.scope,
        "state": config.state,
        "access_type": "offline",
    }
    return f"{config.auth_uri}?{urllib.parse.urlencode(params)}"


def _exchange_request(config: ClientConfig, code: str) -> dict[str, str]:
    return {
        "grant_type": "authorization_code",
        "code": code,
        "client_id": config.client_id,
        "client_secret": config.client_secret,
        "redirect_uri": config.redirect_uri,
    }


def _parse_token_response(response: httpx.Response) -> GoogleToken:
    if response.status_code != 200:
        raise TokenExchangeError(f"Token exchange failed: {response.status_code} {response.text}")

    try:
        payload: dict[str, Any] = response.json()
    except ValueError as exc:
        raise TokenExchangeError("Token response is not valid JSON") from exc

    access = payload.get("access_token") if isinstance(payload, dict) else None
    if not access:
        raise TokenExchangeError("Token response missing access_token")

    expires_in = payload.get("expires_in")
    expiry = None
    if isinstance(expires_in, int):
        expiry = datetime.now(timezone.utc) + timedelta(seconds=expires_in)

    token = GoogleToken(
        access_token=access,
        token_type=payload.get("token_type") or "Bearer",
        refresh_token=payload.get("refresh_token") or None,
        expiry=expiry,
    )
    logger.info("Exchanged authorization code for a %s token", token.token_type)
    return token


def exchange_code_for_token(
    config: ClientConfig,
    code: str,
    transport: httpx.BaseTransport | None = None,
) -> GoogleToken:
    """Trade an authorization code for a token at ``config.token_uri``."""
    try:
        with httpx.Client(timeout=EXCHANGE_TIMEOUT_SEC, transport=transport) as client:
            response = client.post(config.token_uri, data=_exchange_request(config, code))
    except httpx.HTTPError as exc:
        raise TokenExchangeError(f"Token exchange request failed: {exc}") from exc
    return _parse_token_response(response)


async def exchange_code_for_token_async(
    config: ClientConfig,
    code: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> GoogleToken:
    try:
        async with httpx.AsyncClient(timeout=EXCHANGE_TIMEOUT_SEC, transport=transport) as client:
            response = await client.post(config.token_uri, data=_exchange_request(config, code))
    except httpx.HTTPError as exc:
        raise TokenExchangeError(f"Token exchange request failed: {exc}") from exc
    return _parse_token_response(response)


def token_from_file(path: Path) -> GoogleToken | None:
    return load_token(path)


class BearerAuth(httpx.Auth):
    """Attach the stored access token to every request."""

    def __init__(self, token: GoogleToken):
        self.token = token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = self.token.authorization_header
        yield request


def client_from(
    config: ClientConfig,
    token: GoogleToken,
    base_url: str = CALENDAR_API_BASE,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Return an HTTP client authenticated with ``token``.

    ``config`` is accepted so callers can pass the same pair they used for the
    flow; the token is never refreshed here.
    """
    logger.debug("Building authenticated client for %s (client_id=%s)", base_url, config.client_id)
    return httpx.Client(
        base_url=base_url,
        auth=BearerAuth(token),
        timeout=EXCHANGE_TIMEOUT_SEC,
        transport=transport,
    )
