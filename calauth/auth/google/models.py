"""Google OAuth data models."""

from __future__ import annotations

import urllib.parse
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from calauth.auth.google.constants import (
    AUTHORIZE_URL,
    REDIRECT_URI,
    SCOPE,
    STATE,
    TOKEN_URL,
)


def split_redirect_uri(redirect_uri: str) -> tuple[str, int, str]:
    """Host, port and path a callback listener for ``redirect_uri`` serves.

    Raises ``ValueError`` for a missing host or an invalid port.
    """
    url = urllib.parse.urlparse(redirect_uri)
    host = url.hostname
    if not host:
        raise ValueError(f"redirect URI has no host: {redirect_uri!r}")
    port = url.port or 80
    return host, port, url.path or "/"


@dataclass(frozen=True)
class ClientConfig:
    """Installed-application OAuth client settings."""

    client_id: str
    client_secret: str
    auth_uri: str = AUTHORIZE_URL
    token_uri: str = TOKEN_URL
    redirect_uri: str = REDIRECT_URI
    scope: str = SCOPE
    state: str = STATE


@dataclass
class GoogleToken:
    """Google OAuth token data structure."""

    access_token: str
    token_type: str = "Bearer"
    refresh_token: str | None = None
    expiry: datetime | None = None

    def __post_init__(self) -> None:
        # Empty values are stored as absent; keep memory and disk identical.
        self.token_type = self.token_type or "Bearer"
        self.refresh_token = self.refresh_token or None

    @property
    def authorization_header(self) -> str:
        return f"{self.token_type} {self.access_token}"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "access_token": self.access_token,
            "token_type": self.token_type,
        }
        if self.refresh_token:
            data["refresh_token"] = self.refresh_token
        if self.expiry is not None:
            data["expiry"] = self.expiry.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GoogleToken":
        """Build a token from its stored form.

        Raises ``KeyError``/``ValueError``/``TypeError`` for content that is
        not a token record.
        """
        access = data["access_token"]
        if not isinstance(access, str) or not access:
            raise ValueError("access_token must be a non-empty string")

        expiry = data.get("expiry")
        parsed_expiry: datetime | None = None
        if expiry:
            parsed_expiry = datetime.fromisoformat(str(expiry).replace("Z", "+00:00"))
            if parsed_expiry.tzinfo is None:
                parsed_expiry = parsed_expiry.replace(tzinfo=timezone.utc)

        return cls(
            access_token=access,
            token_type=str(data.get("token_type") or "Bearer"),
            refresh_token=data.get("refresh_token") or None,
            expiry=parsed_expiry,
        )
