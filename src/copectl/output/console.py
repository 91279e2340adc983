"""Rich Console factory and theme for copectl output.

Consoles render to a StringIO buffer so ``format_result()`` keeps returning
a plain string. Rich drops color codes by itself when there is no terminal
(tests, pipes).
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

COPE_THEME = Theme(
    {
        "cope.ok": "bold green",
        "cope.error": "bold red",
        "cope.warning": "bold yellow",
        "cope.op": "bold cyan",
        "cope.key": "dim",
        "cope.name": "bold",
        "cope.specialist": "bold blue",
        "cope.trigger": "magenta",
        "cope.kind.domain": "green",
        "cope.kind.workflow": "yellow",
    }
)

_KIND_STYLES: dict[str, str] = {
    "domain": "cope.kind.domain",
    "workflow": "cope.kind.workflow",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=COPE_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_kind(kind: str) -> str:
    """Rich style for a match kind (``domain`` or ``workflow``)."""
    return _KIND_STYLES.get(kind, "")
