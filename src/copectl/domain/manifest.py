"""Capability manifest models.

The manifest declares domains (areas of capability with an owning specialist
and a tool scope) and workflows (multi-specialist operations with a default
fan-out). Declaration order of both mappings is significant: it is the
tie-break when two candidates match the same number of triggers.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


def require_text(value: str, field: str) -> str:
    """Return *value*, or raise ValueError naming *field* if it is blank."""
    if not value.strip():
        msg = f"{field} must not be empty"
        raise ValueError(msg)
    return value


class Identity(BaseModel):
    """Descriptive metadata about the assistant. Informational only."""

    model_config = ConfigDict(frozen=True, extra="allow")

    name: str = "cope-agent"
    role: str = ""
    framework: str = ""


class DomainConfig(BaseModel):
    """One declared area of capability."""

    model_config = ConfigDict(frozen=True, extra="allow")

    description: str
    triggers: list[str]
    specialist: str
    mcp_servers: list[str] = Field(default_factory=list)
    constraints: list[str] | None = None
    vip_senders: list[str] | None = None
    priority_channels: list[str] | None = None
    databases: dict[str, str] | None = None
    workflows: list[str] | None = None

    @field_validator("specialist")
    @classmethod
    def _specialist_not_blank(cls, value: str) -> str:
        return require_text(value, "specialist")

    @property
    def scopes(self) -> frozenset[str]:
        """The tool scopes granted to this domain's specialist."""
        return frozenset(self.mcp_servers)


class ParallelTask(BaseModel):
    """One entry of a workflow's default fan-out."""

    model_config = ConfigDict(frozen=True)

    domain: str
    task: str


class WorkflowConfig(BaseModel):
    """One declared multi-step or multi-specialist operation."""

    model_config = ConfigDict(frozen=True, extra="allow")

    description: str
    triggers: list[str]
    specialist: str
    parallel_tasks: list[ParallelTask] | None = None

    @field_validator("specialist")
    @classmethod
    def _specialist_not_blank(cls, value: str) -> str:
        return require_text(value, "specialist")


class Manifest(BaseModel):
    """The loaded, immutable description of all domains and workflows."""

    model_config = ConfigDict(frozen=True)

    version: int = 1
    identity: Identity = Field(default_factory=Identity)
    domains: dict[str, DomainConfig] = Field(default_factory=dict)
    workflows: dict[str, WorkflowConfig] = Field(default_factory=dict)

    def specialists(self) -> list[str]:
        """Every specialist name the manifest declares, in declaration order."""
        names: dict[str, None] = {}
        for domain in self.domains.values():
            names.setdefault(domain.specialist)
        for workflow in self.workflows.values():
            names.setdefault(workflow.specialist)
        return list(names)

    def scopes_for(self, specialist: str) -> frozenset[str]:
        """Union of the tool scopes of every domain *specialist* owns."""
        scopes: set[str] = set()
        for domain in self.domains.values():
            if domain.specialist == specialist:
                scopes.update(domain.mcp_servers)
        return frozenset(scopes)
