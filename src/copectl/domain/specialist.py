"""The contract between the invoker and an opaque specialist.

A specialist is any async callable taking a :class:`SpecialistRequest` and
returning text. The request is the unit's whole world: the assembled
instruction, the capability scopes it was granted, and a turn budget it must
draw from once per internal reasoning turn.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from copectl.domain.errors import CapabilityDenied, TurnLimitExceeded

SpecialistFn = Callable[["SpecialistRequest"], Awaitable[str]]


def assemble_instruction(task: str, context: str | None = None) -> str:
    """Combine orchestrator context and the task into one instruction text."""
    if context:
        return f"Context from orchestrator:\n{context}\n\nTask:\n{task}"
    return task


@dataclass
class TurnBudget:
    """Ceiling on internal reasoning turns for one invocation."""

    max_turns: int
    used: int = 0

    @property
    def remaining(self) -> int:
        return max(0, self.max_turns - self.used)

    def consume(self) -> int:
        """Take one turn. Raises TurnLimitExceeded once the ceiling is reached."""
        if self.used >= self.max_turns:
            raise TurnLimitExceeded(self.max_turns)
        self.used += 1
        return self.used


@dataclass(frozen=True)
class SpecialistRequest:
    """Everything a specialist receives for a single invocation."""

    specialist: str
    task: str
    context: str | None
    capabilities: frozenset[str]
    turns: TurnBudget
    timeout: float

    @property
    def instruction(self) -> str:
        return assemble_instruction(self.task, self.context)

    def require(self, *capabilities: str) -> None:
        """Assert *capabilities* are within the grant, else CapabilityDenied."""
        missing = set(capabilities) - self.capabilities
        if missing:
            raise CapabilityDenied(self.specialist, missing)


@dataclass(frozen=True)
class SpecialistEntry:
    """A named invocation target and its per-specialist limits.

    ``max_turns`` / ``timeout`` of None fall back to the invoker defaults.
    ``requires`` lists capability scopes the target cannot run without.
    """

    name: str
    run: SpecialistFn
    description: str = ""
    max_turns: int | None = None
    timeout: float | None = None
    requires: frozenset[str] = field(default_factory=frozenset)
