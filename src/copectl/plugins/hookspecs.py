"""Pluggy hook specifications for copectl request events and setup extensions.

Three request-lifecycle events are dispatched synchronously by the EventBus.
One setup-time hook lets plugins contribute specialists to the registry.
"""

from __future__ import annotations

from typing import Any

import pluggy

hookspec = pluggy.HookspecMarker("copectl")


class CopectlHookSpec:
    """Hook specifications for the copectl plugin system."""

    @hookspec
    def pre_request(self, op: str, request_id: str, payload: dict[str, Any]) -> None:
        """Called when a tool request is accepted, before any work starts."""

    @hookspec
    def post_request(
        self,
        op: str,
        request_id: str,
        ok: bool,
        duration_ms: float,
        error_code: str | None,
    ) -> None:
        """Called once a tool request has produced its response (or failed)."""

    @hookspec
    def post_invoke(
        self,
        request_id: str,
        index: int,
        specialist: str,
        state: str,
        duration_ms: float,
        error_kind: str | None,
    ) -> None:
        """Called after each specialist invocation settles."""

    @hookspec
    def register_specialists(self) -> dict[str, Any] | None:
        """Return name -> specialist (async callable or SpecialistEntry) mappings."""
