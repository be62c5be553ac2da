"""Authentication modules."""

from calauth.auth.google import (
    ensure_token_available,
    get_client,
    get_token,
)

__all__ = [
    "ensure_token_available",
    "get_client",
    "get_token",
]
