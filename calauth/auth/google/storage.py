"""Token storage helpers."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from calauth.auth.google.errors import TokenStoreError
from calauth.auth.google.models import GoogleToken

logger = logging.getLogger(__name__)

_TOKEN_FILE_MODE = 0o600


def load_token(path: Path) -> GoogleToken | None:
    """Read the cached token, or ``None`` if there is no usable one.

    A missing file and a corrupt file are treated the same way: both mean the
    interactive flow has to run.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("token file does not hold a JSON object")
        return GoogleToken.from_dict(data)
    except FileNotFoundError:
        logger.debug("No cached token at %s", path)
    except (OSError, ValueError, KeyError, TypeError) as exc:
        logger.debug("Ignoring unreadable token file %s: %s", path, exc)
    return None


def save_token(path: Path, token: GoogleToken) -> None:
    """Write ``token`` to ``path``, replacing whatever was there."""
    payload = json.dumps(token.to_dict(), ensure_ascii=True, indent=2)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, _TOKEN_FILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as fp:
            fp.write(payload)
            fp.write("\n")
        # O_CREAT's mode does not apply to a file that already existed.
        os.chmod(path, _TOKEN_FILE_MODE)
    except OSError as exc:
        raise TokenStoreError(f"Unable to save token to {path}: {exc}") from exc
    logger.info("Saved OAuth token to %s", path)
