"""BaseService — abstract foundation for all copectl services.

Every service receives a :class:`Runtime` at construction time. The Runtime
provides the manifest store, specialist registry, credential store, and the
plugin event bus.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from copectl.services._helpers import elapsed_ms, new_request_id
from copectl.services.result import ServiceResult

if TYPE_CHECKING:
    from copectl.infrastructure.runtime import Runtime


class BaseService:
    """Abstract base for all service-layer classes.

    Usage::

        class SpawnService(BaseService):
            async def spawn_specialist(self, ...) -> ServiceResult:
                warnings: list[str] = []
                request_id, start = self._begin_request(OP, payload, warnings)
                ...
                return self._finish_request(result, request_id, start, warnings)
    """

    def __init__(self, runtime: Runtime) -> None:
        self._runtime = runtime

    def _dispatch_event(
        self,
        hook_name: str,
        payload: dict[str, Any],
        warnings: list[str],
    ) -> None:
        """Dispatch a lifecycle event through the runtime's event bus.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        warning = self._runtime.events.dispatch(hook_name, payload)
        if warning is not None:
            warnings.append(warning)

    def _begin_request(
        self,
        op: str,
        payload: dict[str, Any],
        warnings: list[str],
    ) -> tuple[str, float]:
        """Announce a tool request. Returns ``(request_id, start)``."""
        request_id = new_request_id()
        self._dispatch_event(
            "pre_request",
            {"op": op, "request_id": request_id, "payload": payload},
            warnings,
        )
        return request_id, time.perf_counter()

    def _finish_request(
        self,
        result: ServiceResult,
        request_id: str,
        start: float,
        warnings: list[str],
    ) -> ServiceResult:
        """Announce the outcome and fold hook warnings and the request id into *result*."""
        self._dispatch_event(
            "post_request",
            {
                "op": result.op,
                "request_id": request_id,
                "ok": result.ok,
                "duration_ms": elapsed_ms(start),
                "error_code": result.error.code if result.error else None,
            },
            warnings,
        )
        meta = {**(result.meta or {}), "request_id": request_id}
        return result.model_copy(
            update={"warnings": [*result.warnings, *warnings], "meta": meta}
        )
