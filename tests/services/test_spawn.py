"""Tests for SpawnService — spawn_specialist, spawn_parallel, run_workflow."""

from __future__ import annotations

from typing import Any

import anyio
import pytest

from copectl.config.settings import CopeSettings
from copectl.domain.dispatch import SpecialistTask
from copectl.domain.errors import RequestError
from copectl.domain.manifest import Manifest
from copectl.domain.specialist import SpecialistEntry, SpecialistRequest
from copectl.infrastructure.manifest_store import ManifestStore
from copectl.infrastructure.runtime import Runtime
from copectl.plugins.manager import PluginManager
from copectl.services.dispatcher import Dispatcher
from copectl.services.invoker import SpecialistInvoker
from copectl.services.spawn import SpawnService, build_dispatcher, parse_tasks
from tests.conftest import fake_registry


class TestParseTasks:
    def test_dicts_and_tasks_accepted(self) -> None:
        ready = SpecialistTask(specialist="a", task="t")
        parsed = parse_tasks([{"specialist": "b", "task": "u", "context": "c"}, ready])
        assert parsed[0] == SpecialistTask(specialist="b", task="u", context="c")
        assert parsed[1] is ready

    @pytest.mark.parametrize(
        ("raw", "field"),
        [
            ("not a list", "tasks"),
            ({"specialist": "a"}, "tasks"),
            ([42], "tasks[0]"),
            ([{"task": "t"}], "tasks[0].specialist"),
            ([{"specialist": "a", "task": ""}], "tasks[0].task"),
            ([{"specialist": "a", "task": "t"}, {"specialist": "b", "task": 3}], "tasks[1].task"),
            ([{"specialist": "a", "task": "t", "context": 5}], "tasks[0].context"),
        ],
    )
    def test_malformed(self, raw: Any, field: str) -> None:
        with pytest.raises(RequestError) as exc_info:
            parse_tasks(raw)
        assert exc_info.value.field == field


class TestBuildDispatcher:
    def test_uses_settings(self, runtime: Runtime) -> None:
        dispatcher = build_dispatcher(runtime)
        assert dispatcher.max_concurrency == runtime.settings.dispatch.max_concurrency


class TestSpawnSpecialist:
    @pytest.mark.anyio
    async def test_success(self, runtime: Runtime) -> None:
        result = await SpawnService(runtime).spawn_specialist(
            "calendar-agent", "What is on today?", context="User is in CET"
        )
        assert result.ok
        assert result.op == "spawn_specialist"
        assert result.data["specialist"] == "calendar-agent"
        assert result.data["text"].endswith("Task:\nWhat is on today?")
        assert "request_id" in result.meta

    @pytest.mark.anyio
    async def test_unknown_specialist(self, runtime: Runtime) -> None:
        result = await SpawnService(runtime).spawn_specialist("nonexistent-agent", "x")
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "UNKNOWN_SPECIALIST"
        assert result.error.message.startswith("Unknown specialist: nonexistent-agent.")
        assert result.error.detail == {"specialist": "nonexistent-agent"}

    @pytest.mark.anyio
    async def test_blank_task_rejected(self, runtime: Runtime) -> None:
        result = await SpawnService(runtime).spawn_specialist("email-agent", "   ")
        assert result.error is not None
        assert result.error.code == "INVALID_REQUEST"
        assert result.error.detail == {"field": "task"}

    @pytest.mark.anyio
    async def test_cancelled(self, runtime: Runtime) -> None:
        async def run(request: SpecialistRequest) -> str:
            await anyio.sleep(5)
            return "late"

        runtime.registry.register(SpecialistEntry(name="stuck", run=run))
        dispatcher = Dispatcher(
            SpecialistInvoker(runtime.manifest_store, runtime.registry), request_timeout=0.05
        )
        result = await SpawnService(runtime, dispatcher=dispatcher).spawn_specialist("stuck", "x")
        assert result.error is not None
        assert result.error.code == "CANCELLED"


class TestSpawnParallel:
    @pytest.mark.anyio
    async def test_partial_failure_keeps_positions(self, runtime: Runtime) -> None:
        result = await SpawnService(runtime).spawn_parallel(
            [
                {"specialist": "school-agent", "task": "pickup"},
                {"specialist": "nonexistent-agent", "task": "x"},
                {"specialist": "email-agent", "task": "inbox"},
            ]
        )
        assert result.ok
        assert result.data["count"] == 3
        assert result.data["succeeded"] == 2
        assert result.data["failed"] == 1
        slots = result.data["results"]
        assert [s["index"] for s in slots] == [0, 1, 2]
        assert slots[0]["text"] == "school-agent: pickup"
        assert slots[1]["error"]["code"] == "UNKNOWN_SPECIALIST"
        assert "text" not in slots[1]
        assert slots[2]["text"] == "email-agent: inbox"

    @pytest.mark.anyio
    async def test_empty_list(self, runtime: Runtime) -> None:
        result = await SpawnService(runtime).spawn_parallel([])
        assert result.ok
        assert result.data == {"count": 0, "succeeded": 0, "failed": 0, "results": []}

    @pytest.mark.anyio
    async def test_malformed_rejected_before_dispatch(self, runtime: Runtime) -> None:
        calls: list[str] = []

        async def run(request: SpecialistRequest) -> str:
            calls.append(request.task)
            return "ok"

        runtime.registry.register(SpecialistEntry(name="tracker", run=run))
        result = await SpawnService(runtime).spawn_parallel(
            [{"specialist": "tracker", "task": "first"}, {"specialist": "tracker"}]
        )
        assert result.error is not None
        assert result.error.code == "INVALID_REQUEST"
        assert result.error.detail == {"field": "tasks[1].task"}
        assert calls == []

    @pytest.mark.anyio
    async def test_cancelled_returns_no_partial_results(self, runtime: Runtime) -> None:
        async def run(request: SpecialistRequest) -> str:
            await anyio.sleep(5)
            return "late"

        runtime.registry.register(SpecialistEntry(name="stuck", run=run))
        dispatcher = Dispatcher(
            SpecialistInvoker(runtime.manifest_store, runtime.registry), request_timeout=0.05
        )
        result = await SpawnService(runtime, dispatcher=dispatcher).spawn_parallel(
            [{"specialist": "school-agent", "task": "x"}, {"specialist": "stuck", "task": "y"}]
        )
        assert result.ok is False
        assert result.error is not None
        assert result.error.code == "CANCELLED"
        assert result.error.detail == {"count": 2}
        assert result.data == {}


class TestRunWorkflow:
    @pytest.mark.anyio
    async def test_fans_out_declared_tasks(self, runtime: Runtime) -> None:
        result = await SpawnService(runtime).run_workflow("daily-briefing", context="Monday")
        assert result.ok
        assert [s["specialist"] for s in result.data["results"]] == [
            "calendar-agent",
            "email-agent",
        ]
        assert result.data["results"][0]["text"].endswith("Task:\nList today's events")

    @pytest.mark.anyio
    async def test_unknown_workflow(self, runtime: Runtime) -> None:
        result = await SpawnService(runtime).run_workflow("nope")
        assert result.error is not None
        assert result.error.code == "NOT_FOUND"

    @pytest.mark.anyio
    async def test_blank_declared_task_is_not_run(self, settings: CopeSettings) -> None:
        manifest = Manifest.model_validate(
            {
                "domains": {
                    "calendar": {
                        "description": "Meetings",
                        "triggers": ["meeting"],
                        "specialist": "calendar-agent",
                    },
                    "email": {
                        "description": "Inbox",
                        "triggers": ["email"],
                        "specialist": "email-agent",
                    },
                },
                "workflows": {
                    "daily-briefing": {
                        "description": "Morning",
                        "triggers": ["briefing"],
                        "specialist": "briefing-agent",
                        "parallel_tasks": [
                            {"domain": "calendar", "task": "  "},
                            {"domain": "email", "task": "Summarize unread mail"},
                        ],
                    }
                },
            }
        )
        runtime = Runtime(
            settings,
            registry=fake_registry(),
            plugin_manager=PluginManager(),
            manifest_store=ManifestStore.from_manifest(manifest),
        )
        result = await SpawnService(runtime).run_workflow("daily-briefing")
        assert result.ok
        assert [(s["specialist"], s["text"]) for s in result.data["results"]] == [
            ("email-agent", "email-agent: Summarize unread mail"),
        ]
