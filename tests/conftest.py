"""Shared pytest fixtures and test helpers for copectl tests."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from copectl.config.settings import CopeSettings
from copectl.domain.specialist import SpecialistEntry, SpecialistRequest
from copectl.infrastructure.runtime import Runtime
from copectl.infrastructure.specialists import SpecialistRegistry
from copectl.plugins.manager import PluginManager

MANIFEST_YAML = """\
version: 1
identity:
  name: cope-agent
  role: personal assistant
domains:
  school:
    description: School pickups, homework and teacher messages
    triggers: [pickup, dropoff, homework]
    specialist: school-agent
    mcp_servers: [magister]
  calendar:
    description: Meetings and appointments
    triggers: [calendar, meeting, schedule]
    specialist: calendar-agent
    mcp_servers: [google-calendar]
  email:
    description: Inbox triage and replies
    triggers: [email, mail, inbox]
    specialist: email-agent
    mcp_servers: [gmail, slack]
    constraints: [never send without confirmation]
    workflows: [daily-briefing]
  finance:
    description: Budget and spending
    triggers: [budget, spending]
    specialist: finance-agent
    mcp_servers: [ynab]
workflows:
  daily-briefing:
    description: Morning overview across calendar and email
    triggers: [briefing, morning]
    specialist: briefing-agent
    parallel_tasks:
      - domain: calendar
        task: List today's events
      - domain: email
        task: Summarize unread mail
"""

SPECIALIST_NAMES = (
    "school-agent",
    "calendar-agent",
    "email-agent",
    "finance-agent",
    "briefing-agent",
)


# ---------------------------------------------------------------------------
# Fake specialists
# ---------------------------------------------------------------------------


def echo_entry(name: str, **limits: Any) -> SpecialistEntry:
    """Specialist that answers with its own name and the instruction it got."""

    async def run(request: SpecialistRequest) -> str:
        request.turns.consume()
        return f"{name}: {request.instruction}"

    return SpecialistEntry(name=name, run=run, **limits)


def fake_registry(names: Iterable[str] = SPECIALIST_NAMES) -> SpecialistRegistry:
    registry = SpecialistRegistry()
    for name in names:
        registry.register(echo_entry(name))
    return registry


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def project_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Temporary project directory holding ``capabilities.yaml``.

    COPECTL_* variables from the developer's shell are cleared so they
    cannot leak into settings.
    """
    monkeypatch.delenv("COPECTL_CONFIG", raising=False)
    monkeypatch.delenv("COPECTL_MANIFEST__PATH", raising=False)
    (tmp_path / "capabilities.yaml").write_text(MANIFEST_YAML, encoding="utf-8")
    return tmp_path


@pytest.fixture
def manifest_path(project_root: Path) -> Path:
    return project_root / "capabilities.yaml"


@pytest.fixture
def settings(project_root: Path) -> CopeSettings:
    """Settings anchored at the temp project, with a private credential file."""
    return CopeSettings.from_cli(
        project_root=project_root,
        credentials={"path": str(project_root / "credentials.env")},
    )


@pytest.fixture
def runtime(settings: CopeSettings) -> Runtime:
    """Runtime with echo specialists for every name the manifest declares."""
    return Runtime(settings, registry=fake_registry(), plugin_manager=PluginManager())


@pytest.fixture
def _isolated_project(project_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to the temp project so the CLI finds its manifest.

    A ``copectl.toml`` pins the credential store inside the project.
    """
    (project_root / "copectl.toml").write_text(
        '[credentials]\npath = "credentials.env"\n', encoding="utf-8"
    )
    monkeypatch.chdir(project_root)
