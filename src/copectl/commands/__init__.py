"""Subcommand modules for copectl.

Provides register_commands(), which uses deferred imports to keep
``copectl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all command groups and standalone commands on the root CLI group."""
    # --- Groups ---
    from copectl.commands.credentials import credentials

    cli.add_command(credentials)

    # --- Standalone commands ---
    from copectl.commands.check import check
    from copectl.commands.discover import discover
    from copectl.commands.serve import serve
    from copectl.commands.spawn import spawn, workflow

    cli.add_command(serve)
    cli.add_command(discover)
    cli.add_command(spawn)
    cli.add_command(workflow)
    cli.add_command(check)
