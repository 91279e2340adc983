"""SpawnService — the ``spawn_specialist`` and ``spawn_parallel`` operations.

A single spawn mirrors its one task: ``ok`` is the task's outcome and the
error code is the invocation failure kind. A parallel spawn is ``ok`` as a
request even when some tasks failed; per-task outcomes live in ``results``.
Only a malformed request or a cancelled dispatch fails the request itself.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from copectl.domain.dispatch import SpecialistTask
from copectl.domain.errors import DispatchCancelled, ErrorCode, RequestError
from copectl.services.base import BaseService
from copectl.services.contracts import SpawnParallelData, dump_validated
from copectl.services.dispatcher import Dispatcher
from copectl.services.invoker import SpecialistInvoker
from copectl.services.matcher import Matcher
from copectl.services.result import ServiceResult
from copectl.services.telemetry import traced

if TYPE_CHECKING:
    from copectl.infrastructure.runtime import Runtime

logger = logging.getLogger(__name__)


def build_dispatcher(runtime: Runtime) -> Dispatcher:
    """Dispatcher wired to *runtime*'s manifest, registry, and settings."""
    settings = runtime.settings
    invoker = SpecialistInvoker(
        runtime.manifest_store,
        runtime.registry,
        settings.invoker,
        overrides=settings.specialists,
    )
    return Dispatcher(
        invoker,
        max_concurrency=settings.dispatch.max_concurrency,
        request_timeout=settings.dispatch.request_timeout,
        events=runtime.events,
    )


def _require_text(value: Any, field: str, *, optional: bool = False) -> str | None:
    if value is None and optional:
        return None
    if not isinstance(value, str):
        msg = f"{field} must be a string"
        raise RequestError(msg, field=field)
    if not optional and not value.strip():
        msg = f"{field} must not be empty"
        raise RequestError(msg, field=field)
    return value


def build_task(
    specialist: Any, task: Any, context: Any = None, *, prefix: str = ""
) -> SpecialistTask:
    """Validate the three task fields. Raises RequestError naming the bad field."""
    return SpecialistTask(
        specialist=_require_text(specialist, f"{prefix}specialist"),
        task=_require_text(task, f"{prefix}task"),
        context=_require_text(context, f"{prefix}context", optional=True),
    )


def parse_task(raw: Any, position: int) -> SpecialistTask:
    """Validate one ``spawn_parallel`` entry. Raises RequestError."""
    if isinstance(raw, SpecialistTask):
        return raw
    if not isinstance(raw, dict):
        msg = f"tasks[{position}] must be an object with specialist and task"
        raise RequestError(msg, field=f"tasks[{position}]")
    return build_task(
        raw.get("specialist"), raw.get("task"), raw.get("context"), prefix=f"tasks[{position}]."
    )


def parse_tasks(raw: Any) -> list[SpecialistTask]:
    """Validate the whole ``tasks`` list. An empty list is a valid request."""
    if not isinstance(raw, Sequence) or isinstance(raw, str):
        msg = "tasks must be a list"
        raise RequestError(msg, field="tasks")
    return [parse_task(item, position) for position, item in enumerate(raw)]


class SpawnService(BaseService):
    """Run specialists through the dispatcher."""

    def __init__(self, runtime: Runtime, *, dispatcher: Dispatcher | None = None) -> None:
        super().__init__(runtime)
        self._dispatcher = dispatcher

    @property
    def dispatcher(self) -> Dispatcher:
        if self._dispatcher is None:
            self._dispatcher = build_dispatcher(self._runtime)
        return self._dispatcher

    @traced
    async def spawn_specialist(
        self,
        specialist: str,
        task: str,
        context: str | None = None,
    ) -> ServiceResult:
        """Run one specialist on one task."""
        op = "spawn_specialist"
        warnings: list[str] = []
        request_id, start = self._begin_request(
            op, {"specialist": specialist, "task": task, "context": context}, warnings
        )

        try:
            parsed = build_task(specialist, task, context)
        except RequestError as exc:
            result = ServiceResult.failure(
                op, ErrorCode.INVALID_REQUEST, str(exc), detail={"field": exc.field}
            )
            return self._finish_request(result, request_id, start, warnings)

        try:
            outcome = await self.dispatcher.spawn_one(
                parsed, request_id=request_id, warnings=warnings
            )
        except DispatchCancelled as exc:
            result = ServiceResult.failure(op, ErrorCode.CANCELLED, str(exc))
            return self._finish_request(result, request_id, start, warnings)

        if outcome.ok:
            result = ServiceResult(
                ok=True,
                op=op,
                data={
                    "specialist": outcome.specialist,
                    "text": outcome.text,
                    "duration_ms": round(outcome.duration_ms, 2),
                },
            )
        else:
            assert outcome.error is not None
            result = ServiceResult.failure(
                op,
                outcome.error.kind.value,
                outcome.error.message,
                detail={"specialist": outcome.specialist},
            )
        return self._finish_request(result, request_id, start, warnings)

    @traced
    async def spawn_parallel(self, tasks: Any) -> ServiceResult:
        """Run every task concurrently and return one result per task, in order."""
        op = "spawn_parallel"
        warnings: list[str] = []
        request_id, start = self._begin_request(op, {"tasks": tasks}, warnings)

        try:
            parsed = parse_tasks(tasks)
        except RequestError as exc:
            detail = {"field": exc.field} if exc.field else None
            result = ServiceResult.failure(op, ErrorCode.INVALID_REQUEST, str(exc), detail=detail)
            return self._finish_request(result, request_id, start, warnings)

        try:
            outcomes = await self.dispatcher.spawn_many(
                parsed, request_id=request_id, warnings=warnings
            )
        except DispatchCancelled as exc:
            logger.warning("spawn_parallel %s cancelled: %s", request_id, exc)
            result = ServiceResult.failure(
                op, ErrorCode.CANCELLED, str(exc), detail={"count": len(parsed)}
            )
            return self._finish_request(result, request_id, start, warnings)

        succeeded = sum(1 for outcome in outcomes if outcome.ok)
        payload = dump_validated(
            SpawnParallelData,
            {
                "count": len(outcomes),
                "succeeded": succeeded,
                "failed": len(outcomes) - succeeded,
                "results": [outcome.to_payload() for outcome in outcomes],
            },
        )
        result = ServiceResult(ok=True, op=op, data=payload)
        return self._finish_request(result, request_id, start, warnings)

    @traced
    async def run_workflow(self, workflow: str, context: str | None = None) -> ServiceResult:
        """Fan out a workflow's declared ``parallel_tasks``."""
        matcher = Matcher(self._runtime.manifest_store)
        if matcher.get_workflow(workflow) is None:
            return ServiceResult.failure(
                "spawn_parallel", ErrorCode.NOT_FOUND, f"No workflow named {workflow!r}"
            )
        tasks = matcher.workflow_tasks(workflow, context)
        return await self.spawn_parallel(tasks)
