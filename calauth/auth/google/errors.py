"""Errors raised by the Google OAuth flow."""


class CalauthError(RuntimeError):
    """Base class for calauth failures."""


class ConfigError(CalauthError):
    """Required client configuration is missing or invalid."""


class TokenStoreError(CalauthError):
    """The token file could not be written."""


class CallbackServerError(CalauthError):
    """The local callback listener could not be started."""


class BrowserLaunchError(CalauthError):
    """The authorization URL could not be opened in a browser."""


class AuthorizationTimeoutError(CalauthError):
    """No authorization code arrived before the deadline."""


class TokenExchangeError(CalauthError):
    """The token endpoint rejected or failed the code exchange."""
