"""Typed payload contracts for service and adapter boundaries.

These models validate operation payload shapes before they leave the
service layer so key regressions (for example ``results`` vs ``items``)
fail fast in tests and during development.
"""

from __future__ import annotations

from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T", bound=BaseModel)


def dump_validated(model_cls: type[T], data: dict[str, Any]) -> dict[str, Any]:
    """Validate *data* against *model_cls* and return a normalized payload dict."""
    model = model_cls.model_validate(data)
    return model.model_dump(mode="python", exclude_none=True)


class MatchItem(BaseModel):
    """One ranked domain or workflow match."""

    name: str
    kind: Literal["domain", "workflow"]
    description: str
    specialist: str
    matched_triggers: list[str] = Field(min_length=1)
    mcp_servers: list[str] | None = None
    constraints: list[str] | None = None


class DiscoverResultData(BaseModel):
    """Payload contract for ``discover_capability`` in ``discover`` mode."""

    query: str
    matched: bool
    domains: list[MatchItem]
    workflows: list[MatchItem]
    recommendation: str | None = None
    text: str


class CapabilityEntry(BaseModel):
    """Name + description row used by ``list_all``."""

    name: str
    description: str


class ListAllResultData(BaseModel):
    """Payload contract for ``discover_capability`` in ``list_all`` mode."""

    domains: list[CapabilityEntry]
    workflows: list[CapabilityEntry]
    specialists: list[str]


class SlotError(BaseModel):
    code: str
    message: str


class TaskSlot(BaseModel):
    """One position of a dispatch response."""

    model_config = ConfigDict(extra="forbid")

    index: int
    specialist: str
    ok: bool
    state: Literal["succeeded", "failed"]
    duration_ms: float
    text: str | None = None
    error: SlotError | None = None


class SpawnParallelData(BaseModel):
    """Payload contract for ``spawn_parallel``."""

    count: int
    succeeded: int
    failed: int
    results: list[TaskSlot]


class CheckIssue(BaseModel):
    """One manifest finding."""

    category: str
    severity: Literal["error", "warning"]
    entry: str
    message: str


class ManifestCheckData(BaseModel):
    """Payload contract for ``CheckService.check_manifest``."""

    path: str
    version: int
    domains: int
    workflows: int
    specialists: list[str]
    issues: list[CheckIssue]
    count: int
    healthy: bool
