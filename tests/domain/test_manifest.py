"""Tests for the capability manifest models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from copectl.domain.manifest import DomainConfig, Manifest


def _manifest() -> Manifest:
    return Manifest.model_validate(
        {
            "domains": {
                "email": {
                    "description": "Inbox",
                    "triggers": ["email"],
                    "specialist": "comms-agent",
                    "mcp_servers": ["gmail"],
                },
                "slack": {
                    "description": "Chat",
                    "triggers": ["slack"],
                    "specialist": "comms-agent",
                    "mcp_servers": ["slack", "gmail"],
                },
                "finance": {
                    "description": "Money",
                    "triggers": ["budget"],
                    "specialist": "finance-agent",
                },
            },
            "workflows": {
                "weekly-review": {
                    "description": "Review",
                    "triggers": ["review"],
                    "specialist": "review-agent",
                    "parallel_tasks": [{"domain": "finance", "task": "Summarize spending"}],
                }
            },
        }
    )


class TestManifest:
    def test_defaults(self) -> None:
        manifest = Manifest()
        assert manifest.version == 1
        assert manifest.identity.name == "cope-agent"
        assert manifest.domains == {}
        assert manifest.workflows == {}

    def test_declaration_order_preserved(self) -> None:
        assert list(_manifest().domains) == ["email", "slack", "finance"]

    def test_specialists_unique_in_order(self) -> None:
        assert _manifest().specialists() == ["comms-agent", "finance-agent", "review-agent"]

    def test_scopes_are_union_of_owned_domains(self) -> None:
        assert _manifest().scopes_for("comms-agent") == frozenset({"gmail", "slack"})

    def test_workflow_only_specialist_has_no_scopes(self) -> None:
        assert _manifest().scopes_for("review-agent") == frozenset()

    def test_frozen(self) -> None:
        manifest = _manifest()
        with pytest.raises(ValidationError):
            manifest.version = 2  # type: ignore[misc]

    def test_identity_allows_extra_fields(self) -> None:
        manifest = Manifest.model_validate({"identity": {"name": "x", "timezone": "CET"}})
        assert manifest.identity.name == "x"


class TestDomainConfig:
    def test_missing_specialist_rejected(self) -> None:
        with pytest.raises(ValidationError, match="specialist"):
            DomainConfig.model_validate({"description": "d", "triggers": ["t"]})

    def test_blank_specialist_rejected(self) -> None:
        with pytest.raises(ValidationError, match="must not be empty"):
            DomainConfig(description="d", triggers=["t"], specialist="  ")

    def test_triggers_must_be_a_list(self) -> None:
        with pytest.raises(ValidationError):
            DomainConfig.model_validate(
                {"description": "d", "triggers": "pickup", "specialist": "s"}
            )

    def test_optional_fields(self) -> None:
        config = DomainConfig(
            description="d",
            triggers=["t"],
            specialist="s",
            vip_senders=["boss@example.com"],
            databases={"tasks": "abc123"},
        )
        assert config.vip_senders == ["boss@example.com"]
        assert config.databases == {"tasks": "abc123"}
        assert config.scopes == frozenset()
