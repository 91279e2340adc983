"""Tests for the specialist request contract."""

from __future__ import annotations

import pytest

from copectl.domain.errors import CapabilityDenied, TurnLimitExceeded
from copectl.domain.specialist import SpecialistRequest, TurnBudget, assemble_instruction


def _request(**overrides: object) -> SpecialistRequest:
    values: dict[str, object] = {
        "specialist": "email-agent",
        "task": "Summarize unread mail",
        "context": None,
        "capabilities": frozenset({"gmail"}),
        "turns": TurnBudget(max_turns=2),
        "timeout": 30.0,
    }
    values.update(overrides)
    return SpecialistRequest(**values)  # type: ignore[arg-type]


class TestAssembleInstruction:
    def test_task_only(self) -> None:
        assert assemble_instruction("Do it") == "Do it"

    def test_with_context(self) -> None:
        text = assemble_instruction("Do it", "User is in Amsterdam")
        assert text == "Context from orchestrator:\nUser is in Amsterdam\n\nTask:\nDo it"

    def test_empty_context_ignored(self) -> None:
        assert assemble_instruction("Do it", "") == "Do it"


class TestTurnBudget:
    def test_consume_until_ceiling(self) -> None:
        budget = TurnBudget(max_turns=2)
        assert budget.consume() == 1
        assert budget.consume() == 2
        assert budget.remaining == 0

    def test_turn_beyond_ceiling_raises(self) -> None:
        budget = TurnBudget(max_turns=1)
        budget.consume()
        with pytest.raises(TurnLimitExceeded, match=r"Max turns \(1\)"):
            budget.consume()


class TestSpecialistRequest:
    def test_instruction_property(self) -> None:
        request = _request(context="ctx")
        assert request.instruction.endswith("Task:\nSummarize unread mail")

    def test_require_granted(self) -> None:
        _request().require("gmail")

    def test_require_outside_grant(self) -> None:
        with pytest.raises(CapabilityDenied, match="not granted: slack") as exc_info:
            _request().require("gmail", "slack")
        assert exc_info.value.capabilities == frozenset({"slack"})
