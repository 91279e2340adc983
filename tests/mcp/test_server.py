"""Tests for MCP server creation."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from copectl.config.settings import CopeSettings
from copectl.domain.errors import ManifestError
from copectl.infrastructure.runtime import Runtime
from copectl.mcp.server import SERVER_NAME, create_server, mcp_available


class DummyFastMCP:
    def __init__(self, name: str, **kwargs: Any) -> None:
        self.name = name
        self.kwargs = kwargs


class TestServerAvailability:
    """Test MCP server availability detection."""

    def test_mcp_available_is_bool(self) -> None:
        assert isinstance(mcp_available, bool)

    def test_create_server_without_mcp_raises(self) -> None:
        with (
            patch("copectl.mcp.server.mcp_available", False),
            pytest.raises(RuntimeError, match="MCP extra not installed"),
        ):
            create_server()


class TestCreateServer:
    def test_registers_tools_and_resources(self, runtime: Runtime) -> None:
        with (
            patch("copectl.mcp.server.mcp_available", True),
            patch("copectl.mcp.server._FastMCP", DummyFastMCP),
            patch("copectl.mcp.tools.register_tools") as tools,
            patch("copectl.mcp.resources.register_resources") as resources,
        ):
            server = create_server(runtime=runtime, host="0.0.0.0", port=9000)

        assert server.name == SERVER_NAME
        assert server.kwargs["host"] == "0.0.0.0"
        assert server.kwargs["port"] == 9000
        tools.assert_called_once_with(server, runtime)
        resources.assert_called_once_with(server, runtime)
        assert runtime.manifest_store.loaded is True

    def test_missing_manifest_registers_nothing(self, tmp_path: Path) -> None:
        settings = CopeSettings.from_cli(
            project_root=tmp_path, credentials={"path": str(tmp_path / "c.env")}
        )
        with (
            patch("copectl.mcp.server.mcp_available", True),
            patch("copectl.mcp.server._FastMCP", DummyFastMCP),
            patch("copectl.mcp.tools.register_tools") as tools,
            pytest.raises(ManifestError),
        ):
            create_server(settings=settings)
        tools.assert_not_called()
