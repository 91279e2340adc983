"""CredentialService — manage the credential store from the CLI."""

from __future__ import annotations

import re

from copectl.domain.errors import CredentialError, ErrorCode
from copectl.infrastructure.credentials import KNOWN_CREDENTIALS, CredentialStore
from copectl.services.base import BaseService
from copectl.services.result import ServiceResult
from copectl.services.telemetry import traced

_KEY_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def mask(value: str) -> str:
    """Show only enough of *value* to recognise it."""
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}...{value[-4:]}"


class CredentialService(BaseService):
    """List, read, set, and delete stored credentials."""

    @property
    def _store(self) -> CredentialStore:
        return self._runtime.credentials

    @traced
    def list_credentials(self) -> ServiceResult:
        try:
            rows = self._store.list_credentials()
        except CredentialError as exc:
            return ServiceResult.failure("credentials_list", ErrorCode.CREDENTIAL_ERROR, str(exc))
        return ServiceResult(
            ok=True,
            op="credentials_list",
            data={
                "path": str(self._store.path),
                "exists": self._store.exists(),
                "items": rows,
                "count": sum(1 for row in rows if row["set"]),
            },
        )

    @traced
    def get(self, key: str, *, reveal: bool = False) -> ServiceResult:
        """Look up one credential. Values are masked unless *reveal* is set."""
        try:
            value = self._store.get(key)
        except CredentialError as exc:
            return ServiceResult.failure("credentials_get", ErrorCode.CREDENTIAL_ERROR, str(exc))
        if value is None:
            return ServiceResult.failure(
                "credentials_get", ErrorCode.NOT_FOUND, f"Credential not set: {key}"
            )
        return ServiceResult(
            ok=True,
            op="credentials_get",
            data={"key": key, "value": value if reveal else mask(value)},
        )

    @traced
    def set(self, key: str, value: str) -> ServiceResult:
        if not _KEY_PATTERN.match(key):
            return ServiceResult.failure(
                "credentials_set",
                ErrorCode.INVALID_REQUEST,
                f"Invalid credential name: {key!r}",
            )
        warnings: list[str] = []
        if key not in KNOWN_CREDENTIALS:
            warnings.append(f"{key} is not a known credential; stored anyway")
        try:
            self._store.set(key, value)
        except CredentialError as exc:
            return ServiceResult.failure("credentials_set", ErrorCode.CREDENTIAL_ERROR, str(exc))
        return ServiceResult(
            ok=True,
            op="credentials_set",
            data={"key": key, "path": str(self._store.path)},
            warnings=warnings,
        )

    @traced
    def delete(self, key: str) -> ServiceResult:
        try:
            removed = self._store.delete(key)
        except CredentialError as exc:
            return ServiceResult.failure(
                "credentials_delete", ErrorCode.CREDENTIAL_ERROR, str(exc)
            )
        if not removed:
            return ServiceResult.failure(
                "credentials_delete", ErrorCode.NOT_FOUND, f"Credential not set: {key}"
            )
        return ServiceResult(ok=True, op="credentials_delete", data={"key": key})
