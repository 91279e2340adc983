"""End-to-end MCP stdio integration tests (requires the mcp extra)."""

from __future__ import annotations

import importlib.util
import json
import sys
from pathlib import Path
from typing import Any

import pytest

from tests.conftest import MANIFEST_YAML

if importlib.util.find_spec("mcp") is None:
    pytest.skip("mcp extra not installed", allow_module_level=True)

UPPERCASE = "import sys; print(sys.stdin.read().upper())"


def _tool_payload(result: Any) -> dict[str, Any]:
    structured = getattr(result, "structuredContent", None)
    if isinstance(structured, dict):
        return structured

    content = getattr(result, "content", [])
    if content:
        text = getattr(content[0], "text", None)
        if isinstance(text, str):
            return json.loads(text)

    raise AssertionError("Tool result did not expose structured or text content")


async def _exercise_stdio_server(config_path: Path) -> None:
    from mcp.client.stdio import stdio_client

    from mcp import ClientSession, StdioServerParameters

    server_params = StdioServerParameters(
        command=sys.executable,
        args=["-m", "copectl", "-c", str(config_path), "serve", "--transport", "stdio"],
    )

    async with stdio_client(server_params) as (read, write):
        async with ClientSession(read, write) as session:
            await session.initialize()

            tools = await session.list_tools()
            tool_names = {tool.name for tool in tools.tools}
            assert tool_names == {"discover_capability", "spawn_specialist", "spawn_parallel"}

            resources = await session.list_resources()
            resource_uris = {str(resource.uri) for resource in resources.resources}
            assert "copectl://capabilities" in resource_uris

            discover = _tool_payload(
                await session.call_tool(
                    "discover_capability", arguments={"query": "who does school pickup today?"}
                )
            )
            assert discover["ok"] is True
            assert discover["data"]["domains"][0]["specialist"] == "school-agent"

            spawned = _tool_payload(
                await session.call_tool(
                    "spawn_parallel",
                    arguments={
                        "tasks": [
                            {"specialist": "school-agent", "task": "pickup"},
                            {"specialist": "nonexistent-agent", "task": "x"},
                        ]
                    },
                )
            )
            assert spawned["ok"] is True
            results = spawned["data"]["results"]
            assert results[0]["text"] == "PICKUP"
            assert results[1]["error"]["code"] == "UNKNOWN_SPECIALIST"


def test_stdio_transport_end_to_end(tmp_path: Path) -> None:
    import anyio

    (tmp_path / "capabilities.yaml").write_text(MANIFEST_YAML, encoding="utf-8")
    config_path = tmp_path / "copectl.toml"
    config_path.write_text(
        '[credentials]\npath = "credentials.env"\n\n'
        f"[invoker]\ndefault_command = {json.dumps([sys.executable, '-c', UPPERCASE])}\n",
        encoding="utf-8",
    )

    anyio.run(_exercise_stdio_server, config_path)
