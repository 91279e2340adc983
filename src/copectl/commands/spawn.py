"""Commands: run specialists from the shell (spawn, workflow)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import anyio
import click

from copectl.commands._base import CopeCommand

if TYPE_CHECKING:
    from copectl.commands._context import AppContext


@click.command(
    cls=CopeCommand,
    examples="""\
  copectl spawn calendar-agent "List tomorrow's meetings"
  copectl spawn email-agent "Summarize unread mail" --context "User is travelling"
  copectl --json spawn finance-agent 'Budget status'""",
)
@click.argument("specialist")
@click.argument("task")
@click.option("--context", default=None, help="Orchestrator context prepended to the task.")
@click.pass_obj
def spawn(app: AppContext, specialist: str, task: str, context: str | None) -> None:
    """Run SPECIALIST on TASK and print its answer."""
    from copectl.services.spawn import SpawnService

    svc = SpawnService(app.startup())
    app.emit(anyio.run(svc.spawn_specialist, specialist, task, context))


@click.command(
    cls=CopeCommand,
    examples="""\
  copectl workflow daily-briefing
  copectl workflow weekly-review --context 'Focus on school deadlines'""",
)
@click.argument("name")
@click.option("--context", default=None, help="Context handed to every task.")
@click.pass_obj
def workflow(app: AppContext, name: str, context: str | None) -> None:
    """Run the parallel tasks a workflow declares and print every result."""
    from copectl.services.spawn import SpawnService

    svc = SpawnService(app.startup())
    app.emit(anyio.run(svc.run_workflow, name, context))
