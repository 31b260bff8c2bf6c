"""API key storage backed by a dotenv file."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values, set_key

LOGGER = logging.getLogger(__name__)

ANTHROPIC_API_KEY = "ANTHROPIC_API_KEY"


def redact_credential(secret: Optional[str]) -> str:
    """Return a log-safe form of an API key."""
    if not secret:
        return ""
    if len(secret) <= 8:
        return "***"
    return f"{secret[:4]}...{secret[-4:]}"


class CredentialStore:
    """Get and set secrets by name.

    Values already in the process environment win over the file, so a key
    exported in the shell is never shadowed by a stale `.env` entry.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def get(self, name: str) -> Optional[str]:
        value = os.getenv(name)
        if value:
            return value
        if not self.path.exists():
            return None
        return dotenv_values(self.path).get(name) or None

    def set(self, name: str, secret: str) -> None:
        secret = secret.strip()
        if not secret:
            raise ValueError(f"{name} must not be empty")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch(exist_ok=True)
        set_key(str(self.path), name, secret)
        os.environ[name] = secret
        LOGGER.info("Stored %s (%s) in %s", name, redact_credential(secret), self.path)
