"""Error taxonomy for routing and dispatch.

``ManifestError`` is fatal at startup. ``InvocationError`` is per task and is
always captured by the dispatcher into a result slot. ``RequestError`` rejects
a malformed request before dispatch begins. ``DispatchCancelled`` fails a
whole fan-out request atomically.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    """Error codes carried by ``ServiceError.code`` at the adapter boundary."""

    INVALID_REQUEST = "INVALID_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    CANCELLED = "CANCELLED"
    MANIFEST_ERROR = "MANIFEST_ERROR"
    CREDENTIAL_ERROR = "CREDENTIAL_ERROR"


class InvocationErrorKind(StrEnum):
    """Why a single specialist invocation failed."""

    UNKNOWN_SPECIALIST = "UNKNOWN_SPECIALIST"
    TIMEOUT = "TIMEOUT"
    CAPABILITY_DENIED = "CAPABILITY_DENIED"
    RUNTIME_FAILURE = "RUNTIME_FAILURE"


class CopectlError(Exception):
    """Base class for all copectl errors."""


class ManifestError(CopectlError):
    """The capability manifest is missing, unparseable, or violates the schema."""


class CredentialError(CopectlError):
    """The credential store could not be read or written."""


class RequestError(CopectlError):
    """A tool request is malformed (missing or mistyped field)."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class DispatchCancelled(CopectlError):
    """A dispatch request was cancelled or exceeded its request timeout."""


class InvocationError(CopectlError):
    """A single specialist invocation failed."""

    def __init__(self, kind: InvocationErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"InvocationError({self.kind.value}, {self.message!r})"


class TurnLimitExceeded(CopectlError):
    """Raised inside a specialist when it asks for a turn beyond its ceiling."""

    def __init__(self, max_turns: int) -> None:
        super().__init__(f"Max turns ({max_turns}) reached without completion")
        self.max_turns = max_turns


class CapabilityDenied(CopectlError):
    """Raised when a specialist reaches for a capability it was not granted."""

    def __init__(
        self,
        specialist: str,
        capabilities: set[str] | frozenset[str] = frozenset(),
    ) -> None:
        if capabilities:
            names = ", ".join(sorted(capabilities))
            message = f"{specialist} is not granted: {names}"
        else:
            message = f"{specialist} requested a capability outside its grant"
        super().__init__(message)
        self.specialist = specialist
        self.capabilities = frozenset(capabilities)
