"""serve — start the MCP server (requires the copectl[mcp] extra)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from copectl.commands._base import CopeCommand

if TYPE_CHECKING:
    from copectl.commands._context import AppContext


@click.command(
    cls=CopeCommand,
    examples="""\
  # Start the MCP server (stdio transport, default)
  copectl serve

  # Streamable HTTP on custom host/port
  copectl serve --transport streamable-http --host 0.0.0.0 --port 9000

  # Use a manifest outside the project
  COPECTL_MANIFEST__PATH=~/cope/capabilities.yaml copectl serve""",
)
@click.option(
    "--transport",
    default=None,
    type=click.Choice(["stdio", "sse", "streamable-http"]),
    help="MCP transport protocol (default: [mcp] transport, else stdio).",
)
@click.option("--host", default="127.0.0.1", help="Bind address (HTTP transports only).")
@click.option("--port", default=8000, type=int, help="Listen port (HTTP transports only).")
@click.pass_obj
def serve(app: AppContext, transport: str | None, host: str, port: int) -> None:
    """Start the MCP server. Exits 1 if the manifest or credentials cannot load."""
    runtime = app.startup()

    from copectl.mcp.server import create_server, mcp_available

    if not mcp_available:
        click.echo("MCP not installed. Install with: pip install copectl[mcp]", err=True)
        raise SystemExit(1)

    server = create_server(runtime=runtime, host=host, port=port)
    server.run(transport=transport or app.settings.mcp.transport)
