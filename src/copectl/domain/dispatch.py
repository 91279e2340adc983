"""Per-request dispatch types: tasks, results, match candidates.

A task has no identity beyond its position in the request. Results are
always returned in the same order and number as the tasks they answer.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

from copectl.domain.errors import InvocationErrorKind
from copectl.domain.manifest import DomainConfig, WorkflowConfig, require_text


class TaskState(StrEnum):
    """Lifecycle of one dispatched task. SUCCEEDED and FAILED are terminal."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TASK_TRANSITIONS: dict[str, list[str]] = {
    "pending": ["running"],
    "running": ["succeeded", "failed"],
    "succeeded": [],
    "failed": [],
}


def is_valid_transition(current: str, target: str) -> bool:
    """Check if a task may move from *current* to *target*."""
    return target in TASK_TRANSITIONS.get(current, [])


def advance(current: TaskState, target: TaskState) -> TaskState:
    """Return *target*, or raise ValueError if the lifecycle forbids the move."""
    if not is_valid_transition(current, target):
        msg = f"Invalid task transition: {current} -> {target}"
        raise ValueError(msg)
    return target


class SpecialistTask(BaseModel):
    """One unit of work for a named specialist."""

    model_config = ConfigDict(frozen=True)

    specialist: str
    task: str
    context: str | None = None

    @field_validator("specialist", "task")
    @classmethod
    def _not_blank(cls, value: str, info: ValidationInfo) -> str:
        return require_text(value, info.field_name or "value")


class TaskError(BaseModel):
    """Typed failure embedded in a result slot."""

    model_config = ConfigDict(frozen=True)

    kind: InvocationErrorKind
    message: str


class DispatchResult(BaseModel):
    """Outcome of one SpecialistTask: ``text`` on success, ``error`` otherwise."""

    model_config = ConfigDict(frozen=True)

    index: int
    specialist: str
    state: TaskState
    text: str | None = None
    error: TaskError | None = None
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.state is TaskState.SUCCEEDED

    def to_payload(self) -> dict[str, object]:
        """Slot shape used in tool responses."""
        payload: dict[str, object] = {
            "index": self.index,
            "specialist": self.specialist,
            "ok": self.ok,
            "state": self.state.value,
            "duration_ms": round(self.duration_ms, 2),
        }
        if self.ok:
            payload["text"] = self.text
        elif self.error is not None:
            payload["error"] = {"code": self.error.kind.value, "message": self.error.message}
        return payload


class MatchCandidate(BaseModel):
    """A domain or workflow whose triggers appear in a query.

    ``matched_triggers`` is never empty and keeps the config's trigger order.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    kind: Literal["domain", "workflow"]
    config: DomainConfig | WorkflowConfig
    matched_triggers: list[str]
