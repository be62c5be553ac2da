"""Google Calendar OAuth module."""

from calauth.auth.google.config import get_token_path, load_client_config
from calauth.auth.google.errors import (
    AuthorizationTimeoutError,
    BrowserLaunchError,
    CalauthError,
    CallbackServerError,
    ConfigError,
    TokenExchangeError,
    TokenStoreError,
)
from calauth.auth.google.exchange import BearerAuth, build_authorization_url, client_from
from calauth.auth.google.flow import (
    ensure_token_available,
    get_client,
    get_token,
    token_from_web,
)
from calauth.auth.google.models import ClientConfig, GoogleToken
from calauth.auth.google.server import CallbackServer, receive_code, start_callback_server
from calauth.auth.google.storage import load_token, save_token

__all__ = [
    "AuthorizationTimeoutError",
    "BearerAuth",
    "BrowserLaunchError",
    "CalauthError",
    "CallbackServer",
    "CallbackServerError",
    "ClientConfig",
    "ConfigError",
    "GoogleToken",
    "TokenExchangeError",
    "TokenStoreError",
    "build_authorization_url",
    "client_from",
    "ensure_token_available",
    "get_client",
    "get_token",
    "get_token_path",
    "load_client_config",
    "load_token",
    "receive_code",
    "save_token",
    "start_callback_server",
    "token_from_web",
]
