"""MCP tool definitions — discover_capability, spawn_specialist, spawn_parallel.

Each tool has a ``_impl`` function testable without the mcp package.
``register_tools()`` wraps them with FastMCP decorators and serializes
requests: one tool call runs at a time.
"""

from __future__ import annotations

from typing import Any

import anyio

from copectl.services.result import ServiceResult


def _to_mcp_response(result: ServiceResult) -> dict[str, Any]:
    """Convert a ServiceResult to an MCP-friendly dict."""
    response: dict[str, Any] = {
        "ok": result.ok,
        "op": result.op,
        "data": result.data,
    }
    if result.warnings:
        response["warnings"] = result.warnings
    if result.error is not None:
        response["error"] = {
            "code": result.error.code,
            "message": result.error.message,
        }
        if result.error.detail:
            response["error"]["detail"] = result.error.detail
    return response


# ---------------------------------------------------------------------------
# Tool implementations (testable without mcp)
# ---------------------------------------------------------------------------


def discover_capability_impl(
    runtime: Any,
    query: str,
    *,
    mode: str | None = None,
    target: str | None = None,
) -> dict[str, Any]:
    """Find the domains and workflows that handle *query*."""
    from copectl.services.capabilities import CapabilityService

    result = CapabilityService(runtime).discover(query, mode=mode, target=target)
    return _to_mcp_response(result)


async def spawn_specialist_impl(
    runtime: Any,
    specialist: str,
    task: str,
    *,
    context: str | None = None,
) -> dict[str, Any]:
    """Run one specialist on one task."""
    from copectl.services.spawn import SpawnService

    result = await SpawnService(runtime).spawn_specialist(specialist, task, context)
    return _to_mcp_response(result)


async def spawn_parallel_impl(runtime: Any, tasks: Any) -> dict[str, Any]:
    """Run independent specialist tasks concurrently."""
    from copectl.services.spawn import SpawnService

    result = await SpawnService(runtime).spawn_parallel(tasks)
    return _to_mcp_response(result)


# ---------------------------------------------------------------------------
# Registration: wraps _impl functions with FastMCP decorators
# ---------------------------------------------------------------------------


class _RequestGate:
    """Serializes tool calls. The lock is created inside the running event loop."""

    def __init__(self) -> None:
        self._lock: anyio.Lock | None = None

    @property
    def lock(self) -> anyio.Lock:
        if self._lock is None:
            self._lock = anyio.Lock()
        return self._lock


def register_tools(server: Any, runtime: Any) -> None:
    """Register the three MCP tools on the FastMCP server."""
    gate = _RequestGate()

    @server.tool()  # type: ignore[untyped-decorator]
    async def discover_capability(
        query: str,
        mode: str = "discover",
        target: str | None = None,
    ) -> dict[str, Any]:
        """Find which specialist handles a request.

        Modes: "discover" (match the query against domain and workflow
        triggers), "domain_details" or "workflow_details" (describe *target*),
        "list_all" (every domain, workflow and specialist).
        """
        async with gate.lock:
            return discover_capability_impl(runtime, query, mode=mode, target=target)

    @server.tool()  # type: ignore[untyped-decorator]
    async def spawn_specialist(
        specialist: str,
        task: str,
        context: str | None = None,
    ) -> dict[str, Any]:
        """Run a specialist on a task with only its domain's tools."""
        async with gate.lock:
            return await spawn_specialist_impl(runtime, specialist, task, context=context)

    @server.tool()  # type: ignore[untyped-decorator]
    async def spawn_parallel(tasks: list[dict[str, Any]]) -> dict[str, Any]:
        """Run several independent specialist tasks at once.

        Each task is ``{"specialist", "task", "context"?}``. Results come back
        in task order; one failing task never fails the others.
        """
        async with gate.lock:
            return await spawn_parallel_impl(runtime, tasks)
