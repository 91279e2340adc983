"""Tests for CheckService — manifest integrity checks."""

from __future__ import annotations

from pathlib import Path

import pytest

from copectl.config.settings import CopeSettings
from copectl.infrastructure.runtime import Runtime
from copectl.infrastructure.specialists import SpecialistRegistry
from copectl.plugins.manager import PluginManager
from copectl.services.check import CAT_REFERENCES, CAT_SPECIALISTS, CAT_TRIGGERS, CheckService
from tests.conftest import echo_entry

BROKEN_YAML = """\
domains:
  email:
    description: Inbox
    triggers: [email, Email, ""]
    specialist: email-agent
    workflows: [weekly-digest]
workflows:
  briefing:
    description: Morning
    triggers: [briefing]
    specialist: briefing-agent
    parallel_tasks:
      - domain: calendar
        task: List events
"""


@pytest.fixture
def broken_manifest(tmp_path: Path) -> Path:
    path = tmp_path / "broken.yaml"
    path.write_text(BROKEN_YAML)
    return path


def _issues(result_data: dict, category: str) -> list[dict]:
    return [i for i in result_data["issues"] if i["category"] == category]


class TestCheckManifest:
    def test_healthy_manifest(self, runtime: Runtime) -> None:
        result = CheckService(runtime).check_manifest()
        assert result.ok
        data = result.data
        assert data["healthy"] is True
        assert data["issues"] == []
        assert data["count"] == 0
        assert data["domains"] == 4
        assert data["workflows"] == 1
        assert data["path"].endswith("capabilities.yaml")

    def test_unparseable_manifest(self, runtime: Runtime, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("domains: [oops\n")
        result = CheckService(runtime).check_manifest(path)
        assert result.error is not None
        assert result.error.code == "MANIFEST_ERROR"
        assert result.error.detail == {"path": str(path)}

    def test_reference_issues(self, runtime: Runtime, broken_manifest: Path) -> None:
        data = CheckService(runtime).check_manifest(broken_manifest).data
        refs = _issues(data, CAT_REFERENCES)
        assert {(i["entry"], i["severity"]) for i in refs} == {
            ("domains.email", "warning"),
            ("workflows.briefing", "error"),
        }
        assert data["healthy"] is False

    def test_trigger_issues(self, runtime: Runtime, broken_manifest: Path) -> None:
        data = CheckService(runtime).check_manifest(broken_manifest).data
        messages = [i["message"] for i in _issues(data, CAT_TRIGGERS)]
        assert "Trigger repeated 2 times: email" in messages
        assert "Blank trigger matches any query" in messages

    def test_errors_only(self, runtime: Runtime, broken_manifest: Path) -> None:
        data = CheckService(runtime).check_manifest(broken_manifest, min_severity="error").data
        assert {i["severity"] for i in data["issues"]} == {"error"}
        assert data["count"] == len(data["issues"]) == 2
        assert data["healthy"] is False

    def test_unregistered_specialists(self, settings: CopeSettings, manifest_path: Path) -> None:
        registry = SpecialistRegistry()
        registry.register(echo_entry("school-agent"))
        runtime = Runtime(settings, registry=registry, plugin_manager=PluginManager())
        data = CheckService(runtime).check_manifest(manifest_path).data
        flagged = [i["entry"] for i in _issues(data, CAT_SPECIALISTS)]
        assert flagged == ["calendar-agent", "email-agent", "finance-agent", "briefing-agent"]
        assert data["healthy"] is True

    def test_fallback_silences_specialist_check(
        self, settings: CopeSettings, manifest_path: Path
    ) -> None:
        registry = SpecialistRegistry()
        registry.set_fallback(echo_entry)
        runtime = Runtime(settings, registry=registry, plugin_manager=PluginManager())
        data = CheckService(runtime).check_manifest(manifest_path).data
        assert _issues(data, CAT_SPECIALISTS) == []

    def test_blank_parallel_task_is_an_error(self, runtime: Runtime, tmp_path: Path) -> None:
        path = tmp_path / "blank-task.yaml"
        path.write_text(
            "domains:\n"
            "  calendar:\n"
            "    description: Meetings\n"
            "    triggers: [meeting]\n"
            "    specialist: calendar-agent\n"
            "workflows:\n"
            "  briefing:\n"
            "    description: Morning\n"
            "    triggers: [briefing]\n"
            "    specialist: briefing-agent\n"
            "    parallel_tasks:\n"
            "      - domain: calendar\n"
            '        task: "  "\n'
        )
        data = CheckService(runtime).check_manifest(path, min_severity="error").data
        assert data["issues"] == [
            {
                "category": CAT_REFERENCES,
                "severity": "error",
                "entry": "workflows.briefing",
                "message": "parallel_tasks[0] has a blank task",
            }
        ]
        assert data["healthy"] is False
