"""Command: run discover_capability from the shell."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from copectl.commands._base import CopeCommand

if TYPE_CHECKING:
    from copectl.commands._context import AppContext

MODES = ["discover", "domain_details", "workflow_details", "list_all"]


@click.command(
    cls=CopeCommand,
    examples="""\
  copectl discover "what's on my calendar tomorrow"
  copectl discover "" --mode list_all
  copectl discover "" --mode domain_details --target email
  copectl --json discover 'morning briefing'""",
)
@click.argument("query", default="")
@click.option("--mode", type=click.Choice(MODES), default="discover", help="Discovery mode.")
@click.option("--target", default=None, help="Domain or workflow name for *_details modes.")
@click.pass_obj
def discover(app: AppContext, query: str, mode: str, target: str | None) -> None:
    """Find which domain, workflow, and specialist handle QUERY."""
    from copectl.services.capabilities import CapabilityService

    runtime = app.startup()
    app.emit(CapabilityService(runtime).discover(query, mode=mode, target=target))
