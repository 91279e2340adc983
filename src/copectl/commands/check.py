"""Command: capability manifest validation."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from copectl.commands._base import CopeCommand

if TYPE_CHECKING:
    from copectl.commands._context import AppContext


@click.command(
    cls=CopeCommand,
    examples="""\
  copectl check
  copectl check ~/cope/capabilities.yaml
  copectl check --errors-only
  copectl --json check""",
)
@click.argument(
    "path",
    required=False,
    type=click.Path(dir_okay=False, path_type=Path),
)
@click.option(
    "--min-severity",
    type=click.Choice(["warning", "error"]),
    default="warning",
    help="Hide issues below this severity.",
)
@click.option("--errors-only", is_flag=True, help="Shortcut for --min-severity error.")
@click.option("--strict", is_flag=True, help="Exit 1 when any error-level issue is found.")
@click.pass_obj
def check(
    app: AppContext,
    path: Path | None,
    min_severity: str,
    errors_only: bool,
    strict: bool,
) -> None:
    """Validate the capability manifest (default: the configured one)."""
    from copectl.services.check import CheckService

    threshold = "error" if errors_only else min_severity
    result = CheckService(app.runtime).check_manifest(path, min_severity=threshold)
    app.emit(result)
    if strict and not result.data.get("healthy", True):
        raise SystemExit(1)
