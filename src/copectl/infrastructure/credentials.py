"""Credential store — ``KEY=value`` lines in a private dotenv file.

Reading is python-dotenv's parser. Values containing whitespace, quotes,
``#`` or backslashes are written double-quoted with ``\\``, ``"`` and control
characters backslash-escaped, which that parser decodes back to exactly the
values that were saved. Variable references are not expanded. The store
is consumed at process start to populate the environment specialist
processes run under.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import MutableMapping
from pathlib import Path

from dotenv import dotenv_values

from copectl.domain.errors import CredentialError

logger = logging.getLogger(__name__)

KNOWN_CREDENTIALS: dict[str, str] = {
    "ANTHROPIC_API_KEY": "API key used by model-backed specialists",
    "ANTHROPIC_AUTH_TOKEN": "Alternative auth token for API proxies",
    "ANTHROPIC_BASE_URL": "Custom API endpoint (optional)",
    "SLACK_MCP_XOXB_TOKEN": "Slack bot token for the Slack MCP server",
    "MAGISTER_USER": "Magister username for the school MCP server",
    "MAGISTER_PASS": "Magister password for the school MCP server",
    "MAGISTER_SCHOOL": "Magister school identifier",
    "OMI_API_KEY": "Omi API key for the lifelog MCP server",
    "YNAB_API_TOKEN": "YNAB API token for the finance MCP server",
    "SANITY_PROJECT_ID": "Sanity project ID for LifeOS",
    "SANITY_DATASET": "Sanity dataset name",
    "SANITY_API_TOKEN": "Sanity API token with read/write permissions",
    "GOOGLE_OAUTH_CREDENTIALS": "Path to Google OAuth credentials JSON",
}

_HEADER = [
    "# copectl credentials",
    "# This file is managed by copectl",
    "# Edit with: copectl credentials set <key> <value>",
    "",
]
_NEEDS_QUOTES = re.compile(r"[\s\"'#\\]")


def quote_value(value: str) -> str:
    """Render *value* for the right-hand side of a ``KEY=value`` line."""
    if value and not _NEEDS_QUOTES.search(value):
        return value
    if not value:
        return ""
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def serialize_env(data: dict[str, str]) -> str:
    """Render a key → value mapping in credential file format."""
    lines = list(_HEADER)
    lines.extend(f"{key}={quote_value(value)}" for key, value in data.items())
    return "\n".join(lines) + "\n"


class CredentialStore:
    """Read and write the credential file at *path*."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self) -> dict[str, str]:
        """Return all stored credentials; an absent file is an empty store."""
        if not self._path.exists():
            return {}
        try:
            values = dotenv_values(self._path, interpolate=False, encoding="utf-8")
        except (OSError, UnicodeError) as exc:
            msg = f"Cannot read credential store {self._path}: {exc}"
            raise CredentialError(msg) from exc
        # A bare ``KEY`` line has no value; it is not a stored credential.
        return {key: value for key, value in values.items() if value is not None}

    def save(self, credentials: dict[str, str]) -> None:
        """Overwrite the store; the file is readable by its owner only."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
            fd = os.open(self._path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(serialize_env(credentials))
            os.chmod(self._path, 0o600)
        except OSError as exc:
            msg = f"Cannot write credential store {self._path}: {exc}"
            raise CredentialError(msg) from exc

    def get(self, key: str) -> str | None:
        return self.load().get(key)

    def set(self, key: str, value: str) -> None:
        credentials = self.load()
        credentials[key] = value
        self.save(credentials)

    def delete(self, key: str) -> bool:
        """Remove *key*. Returns False if it was not stored."""
        credentials = self.load()
        if key not in credentials:
            return False
        del credentials[key]
        self.save(credentials)
        return True

    def list_credentials(self) -> list[dict[str, str | bool]]:
        """Known credentials plus any extra stored keys, values masked."""
        stored = self.load()
        rows: list[dict[str, str | bool]] = [
            {"key": key, "set": bool(stored.get(key)), "description": description}
            for key, description in KNOWN_CREDENTIALS.items()
        ]
        rows.extend(
            {"key": key, "set": bool(value), "description": ""}
            for key, value in stored.items()
            if key not in KNOWN_CREDENTIALS
        )
        return rows

    def load_into_env(self, environ: MutableMapping[str, str] | None = None) -> list[str]:
        """Copy stored credentials into *environ* without overriding set variables.

        Returns the keys that were applied.
        """
        target = os.environ if environ is None else environ
        applied: list[str] = []
        for key, value in self.load().items():
            if target.get(key):
                continue
            target[key] = value
            applied.append(key)
        if applied:
            logger.debug("Loaded %d credentials from %s", len(applied), self._path)
        return applied
