"""Built-in plugin that logs request and invocation events through structlog."""

from __future__ import annotations

from typing import Any

import pluggy
import structlog

hookimpl = pluggy.HookimplMarker("copectl")


class RequestLogPlugin:
    """Emit ``request.*`` and ``specialist.end`` events to the copectl logger."""

    def __init__(self, logger: Any | None = None) -> None:
        self._log = logger or structlog.get_logger("copectl.requests")

    @hookimpl
    def pre_request(self, op: str, request_id: str, payload: dict[str, Any]) -> None:
        self._log.info("request.start", op=op, request_id=request_id, fields=sorted(payload))

    @hookimpl
    def post_request(
        self,
        op: str,
        request_id: str,
        ok: bool,
        duration_ms: float,
        error_code: str | None,
    ) -> None:
        if error_code is None:
            self._log.info(
                "request.end", op=op, request_id=request_id, ok=ok, duration_ms=duration_ms
            )
            return
        self._log.warning(
            "request.failed",
            op=op,
            request_id=request_id,
            ok=ok,
            duration_ms=duration_ms,
            error_code=error_code,
        )

    @hookimpl
    def post_invoke(
        self,
        request_id: str,
        index: int,
        specialist: str,
        state: str,
        duration_ms: float,
        error_kind: str | None,
    ) -> None:
        self._log.debug(
            "specialist.end",
            request_id=request_id,
            index=index,
            specialist=specialist,
            state=state,
            duration_ms=duration_ms,
            error_kind=error_kind,
        )
