"""Command group: manage the credential store."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from copectl.commands._base import CopeGroup

if TYPE_CHECKING:
    from copectl.commands._context import AppContext


@click.group(
    cls=CopeGroup,
    examples="""\
  copectl credentials list
  copectl credentials set YNAB_API_TOKEN abc123
  copectl credentials get YNAB_API_TOKEN --reveal
  copectl credentials delete YNAB_API_TOKEN""",
)
def credentials() -> None:
    """Manage credentials handed to specialist processes."""


@credentials.command("list")
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """Show known credentials and whether each is set (values hidden)."""
    from copectl.services.credentials import CredentialService

    app.emit(CredentialService(app.runtime).list_credentials())


@credentials.command("get")
@click.argument("key")
@click.option("--reveal", is_flag=True, help="Print the full value instead of a masked one.")
@click.pass_obj
def get_cmd(app: AppContext, key: str, reveal: bool) -> None:
    """Show one stored credential."""
    from copectl.services.credentials import CredentialService

    app.emit(CredentialService(app.runtime).get(key, reveal=reveal))


@credentials.command("set")
@click.argument("key")
@click.argument("value", required=False)
@click.pass_obj
def set_cmd(app: AppContext, key: str, value: str | None) -> None:
    """Store KEY. Prompts for VALUE (hidden) when it is omitted."""
    from copectl.services.credentials import CredentialService

    if value is None:
        value = click.prompt(key, hide_input=True)
    app.emit(CredentialService(app.runtime).set(key, value))


@credentials.command("delete")
@click.argument("key")
@click.pass_obj
def delete_cmd(app: AppContext, key: str) -> None:
    """Remove KEY from the store."""
    from copectl.services.credentials import CredentialService

    app.emit(CredentialService(app.runtime).delete(key))
