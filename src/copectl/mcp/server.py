"""FastMCP server setup.

Optional extra — guarded behind try/except ImportError.
Transport: stdio default; SSE and streamable HTTP optional.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from copectl.config.settings import CopeSettings
    from copectl.infrastructure.runtime import Runtime

mcp_available = False
_FastMCP: Any = None

try:
    from mcp.server.fastmcp import FastMCP as _FastMCP  # type: ignore[no-redef,import-not-found]

    mcp_available = True
except ImportError:
    pass

__all__ = ["SERVER_NAME", "create_server", "mcp_available"]

SERVER_NAME = "cope-agent"

INSTRUCTIONS = """\
Personal assistant capability router.
Call discover_capability with the user's request to find the domain or
workflow that handles it, then spawn_specialist (one task) or
spawn_parallel (independent tasks) to run the owning specialists.
"""


def create_server(
    *,
    settings: CopeSettings | None = None,
    project_root: Path | None = None,
    config_path: str | None = None,
    runtime: Runtime | None = None,
    host: str = "127.0.0.1",
    port: int = 8000,
) -> Any:
    """Create and configure the MCP server.

    Builds a Runtime from *settings* (or from the config discovered under
    *project_root*), runs its startup (credentials, then the manifest), and
    registers all tools and resources. Returns the FastMCP instance.

    *host* and *port* configure the bind address for HTTP transports
    (sse, streamable-http). They are ignored when using stdio.

    Raises RuntimeError if the mcp extra is not installed, ManifestError or
    CredentialError if startup fails. No tool is registered in that case.
    """
    if not mcp_available or _FastMCP is None:
        msg = "MCP extra not installed. Install with: pip install copectl[mcp]"
        raise RuntimeError(msg)

    from copectl.config.settings import CopeSettings
    from copectl.infrastructure.runtime import Runtime
    from copectl.mcp.resources import register_resources
    from copectl.mcp.tools import register_tools

    if runtime is None:
        if settings is None:
            settings = CopeSettings.from_cli(config_path=config_path, project_root=project_root)
        runtime = Runtime(settings)
    runtime.startup()

    server = _FastMCP(SERVER_NAME, instructions=INSTRUCTIONS, host=host, port=port)

    register_tools(server, runtime)
    register_resources(server, runtime)

    return server
