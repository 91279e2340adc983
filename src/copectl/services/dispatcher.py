"""Dispatcher — run one or many specialist tasks and collect every outcome.

``spawn_many`` is a wait-for-all join: every task runs to completion (or
failure) regardless of its siblings, at most ``max_concurrency`` at a time,
and results come back in input order. A task that fails is terminal and is
reported once; nothing is retried.

Each task starts PENDING, becomes RUNNING once it holds a concurrency slot,
and settles as SUCCEEDED or FAILED. Moves are checked against the task
lifecycle table.

The request timeout covers the whole call. When it elapses every running
invocation is cancelled and the call raises DispatchCancelled; no partial
result list is returned.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING

import anyio

from copectl.domain.dispatch import (
    DispatchResult,
    SpecialistTask,
    TaskError,
    TaskState,
    advance,
)
from copectl.domain.errors import DispatchCancelled, InvocationError, InvocationErrorKind
from copectl.services._helpers import elapsed_ms, new_request_id

if TYPE_CHECKING:
    from copectl.plugins.event_bus import EventBus
    from copectl.services.invoker import SpecialistInvoker

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 4


class Dispatcher:
    """Fan tasks out to the invoker.

    Parameters:
        invoker: Runs a single specialist.
        max_concurrency: Upper bound on in-flight invocations per call.
        request_timeout: Seconds allowed for a whole call, or None.
        events: Receives a ``post_invoke`` event per settled task.
    """

    def __init__(
        self,
        invoker: SpecialistInvoker,
        *,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        request_timeout: float | None = None,
        events: EventBus | None = None,
    ) -> None:
        if max_concurrency < 1:
            msg = "max_concurrency must be at least 1"
            raise ValueError(msg)
        self._invoker = invoker
        self._max_concurrency = max_concurrency
        self._request_timeout = request_timeout
        self._events = events
        self._states: list[TaskState] = []

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    @property
    def states(self) -> list[TaskState]:
        """Current state of each task in the latest call, by index."""
        return list(self._states)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def spawn_one(
        self,
        task: SpecialistTask,
        *,
        request_id: str | None = None,
        warnings: list[str] | None = None,
    ) -> DispatchResult:
        """Run a single task. Failures come back inside the result."""
        states = self._states = [TaskState.PENDING]
        with self._deadline():
            return await self._run(0, task, request_id or new_request_id(), warnings, states)

    async def spawn_many(
        self,
        tasks: Sequence[SpecialistTask],
        *,
        request_id: str | None = None,
        warnings: list[str] | None = None,
    ) -> list[DispatchResult]:
        """Run all *tasks* concurrently; ``result[i]`` answers ``tasks[i]``."""
        rid = request_id or new_request_id()
        slots: list[DispatchResult | None] = [None] * len(tasks)
        states = self._states = [TaskState.PENDING] * len(tasks)
        limiter = anyio.CapacityLimiter(self._max_concurrency)

        async def run_slot(index: int, task: SpecialistTask) -> None:
            async with limiter:
                slots[index] = await self._run(index, task, rid, warnings, states)

        with self._deadline():
            async with anyio.create_task_group() as tg:
                for index, task in enumerate(tasks):
                    tg.start_soon(run_slot, index, task)

        results = [slot for slot in slots if slot is not None]
        if len(results) != len(tasks):
            msg = f"{len(tasks) - len(results)} tasks did not report a result"
            raise RuntimeError(msg)
        return results

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @contextmanager
    def _deadline(self) -> Iterator[None]:
        if self._request_timeout is None:
            yield
            return
        try:
            with anyio.fail_after(self._request_timeout):
                yield
        except TimeoutError as exc:
            msg = (
                f"Request exceeded {self._request_timeout:g}s; "
                "all running specialists were cancelled"
            )
            raise DispatchCancelled(msg) from exc

    async def _run(
        self,
        index: int,
        task: SpecialistTask,
        request_id: str,
        warnings: list[str] | None,
        states: list[TaskState],
    ) -> DispatchResult:
        states[index] = advance(states[index], TaskState.RUNNING)
        start = time.perf_counter()
        logger.debug("Task %d (%s): %s", index, task.specialist, states[index])

        text: str | None = None
        error: TaskError | None = None
        try:
            text = await self._invoker.invoke(task.specialist, task.task, task.context)
        except InvocationError as exc:
            error = TaskError(kind=exc.kind, message=exc.message)
        except Exception as exc:
            logger.exception("Task %d (%s) failed outside the invoker", index, task.specialist)
            error = TaskError(kind=InvocationErrorKind.RUNTIME_FAILURE, message=str(exc))

        settled = TaskState.FAILED if error is not None else TaskState.SUCCEEDED
        states[index] = advance(states[index], settled)
        result = DispatchResult(
            index=index,
            specialist=task.specialist,
            state=settled,
            text=text,
            error=error,
            duration_ms=elapsed_ms(start),
        )
        logger.debug("Task %d (%s): %s", index, task.specialist, settled)
        self._emit_invoke(request_id, result, warnings)
        return result

    def _emit_invoke(
        self,
        request_id: str,
        result: DispatchResult,
        warnings: list[str] | None,
    ) -> None:
        if self._events is None:
            return
        warning = self._events.dispatch(
            "post_invoke",
            {
                "request_id": request_id,
                "index": result.index,
                "specialist": result.specialist,
                "state": result.state.value,
                "duration_ms": result.duration_ms,
                "error_kind": result.error.kind.value if result.error else None,
            },
        )
        if warning is not None and warnings is not None:
            warnings.append(warning)
