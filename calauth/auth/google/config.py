"""Client configuration loading from the environment."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from calauth.auth.google.constants import (
    ENV_CLIENT_ID,
    ENV_CLIENT_SECRET,
    ENV_REDIRECT_URI,
    ENV_SCOPE,
    REDIRECT_URI,
    SCOPE,
    TOKEN_FILENAME,
)
from calauth.auth.google.errors import ConfigError
from calauth.auth.google.models import ClientConfig, split_redirect_uri

logger = logging.getLogger(__name__)

_LOOPBACK_HOSTS = ("localhost", "127.0.0.1", "::1")


def _require(environ: Mapping[str, str], name: str) -> str:
    value = (environ.get(name) or "").strip()
    if not value:
        raise ConfigError(f"{name} is not set")
    return value


def _check_redirect_uri(redirect_uri: str) -> None:
    message = f"{ENV_REDIRECT_URI} must be a loopback http:// URI, got {redirect_uri!r}"
    if not redirect_uri.startswith("http://"):
        raise ConfigError(message)
    try:
        host, _port, _path = split_redirect_uri(redirect_uri)
    except ValueError as exc:
        raise ConfigError(f"{message}: {exc}") from exc
    if host not in _LOOPBACK_HOSTS:
        raise ConfigError(message)


def load_client_config(environ: Mapping[str, str] | None = None) -> ClientConfig:
    """Build the OAuth client configuration.

    Environment variables:
        GOOGLE_CLIENT_ID: OAuth client identifier (required)
        GOOGLE_CLIENT_SECRET: OAuth client secret (required)
        GOOGLE_OAUTH_REDIRECT_URI: loopback redirect URI override
        GOOGLE_OAUTH_SCOPE: requested scope override

    Raises:
        ConfigError: If a required variable is unset or blank, or the
            redirect URI is not a valid loopback address.
    """
    env = os.environ if environ is None else environ
    client_id = _require(env, ENV_CLIENT_ID)
    client_secret = _require(env, ENV_CLIENT_SECRET)

    redirect_uri = (env.get(ENV_REDIRECT_URI) or "").strip() or REDIRECT_URI
    _check_redirect_uri(redirect_uri)

    config = ClientConfig(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=redirect_uri,
        scope=(env.get(ENV_SCOPE) or "").strip() or SCOPE,
    )
    logger.debug("Loaded OAuth client config (redirect_uri=%s, scope=%s)", config.redirect_uri, config.scope)
    return config


def get_token_path(home: Path | None = None) -> Path:
    """Location of the cached token file."""
    return (home or Path.home()) / TOKEN_FILENAME
