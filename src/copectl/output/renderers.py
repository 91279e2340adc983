"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO); the caller
extracts the text via ``get_output(console)``. Renderers are dispatched by
``result.op`` in :func:`render_result`; unknown ops fall through to a
generic key-value renderer.

Specialist output is untrusted text and is always printed as
:class:`~rich.text.Text`, never as markup.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from copectl.output.console import create_console, get_output, style_for_kind

if TYPE_CHECKING:
    from rich.console import Console

    from copectl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    if result.op == "spawn_specialist":
        return str(result.data.get("text", ""))
    if result.op == "discover_capability" and "recommendation" in result.data:
        return str(result.data["recommendation"])
    if result.op == "discover_capability" and "domains" in result.data:
        names = [item["name"] for item in result.data["domains"] + result.data["workflows"]]
        return "\n".join(names)
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    label = Text("OK", style="cope.ok")
    op = Text(f"  {result.op}", style="cope.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    k = Text(f"  {key}: ", style="cope.key")
    if key == "specialist":
        v = Text(str(value), style="cope.specialist")
    elif isinstance(value, (dict, list)):
        v = Text(_json.dumps(value, separators=(",", ":")))
    else:
        v = Text(str(value))
    console.print(k, v, end="")
    console.print()


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 10_000:
        style = "bold red"
    elif duration > 1000:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>10.2f}ms[/{style}]  {name}"
    if span_data.get("annotations"):
        extras = [f"{ak}={av}" for ak, av in span_data["annotations"].items()]
        line += f"  ({', '.join(extras)})"
    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="cope.error")
    op = Text(f"  {result.op}", style="cope.op")
    code = Text(f" [{err.code}]" if err else "", style="dim")
    console.print(label, op, code, Text(" — "), Text(msg))

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(Text(f"    {k}: {v}"))


# ── Discovery renderers ───────────────────────────────────────────────


def _match_table(items: list[dict[str, Any]]) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name", style="cope.name", no_wrap=True)
    table.add_column("Kind")
    table.add_column("Specialist", style="cope.specialist")
    table.add_column("Matched", style="cope.trigger")
    table.add_column("Description")
    for rank, item in enumerate(items, start=1):
        kind = str(item.get("kind", ""))
        table.add_row(
            str(rank),
            str(item.get("name", "")),
            Text(kind, style=style_for_kind(kind)),
            str(item.get("specialist", "")),
            ", ".join(item.get("matched_triggers", [])),
            str(item.get("description", "")),
        )
    return table


def _render_discover(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render discover_capability in any of its modes."""
    d = result.data
    mode = d.get("mode", "discover")
    if mode == "list_all":
        _render_list_all(result, console, verbose=verbose)
        return
    if mode in ("domain_details", "workflow_details"):
        _render_details(result, console, verbose=verbose)
        return

    if not d.get("matched"):
        console.print(Text(str(d.get("text", "No matching capabilities."))))
        return

    items = [*d.get("domains", []), *d.get("workflows", [])]
    console.print(_match_table(items))
    recommendation = d.get("recommendation")
    if recommendation:
        console.print(Text("\nRecommendation: ", style="bold"), Text(recommendation), sep="")
    if verbose:
        _render_meta(console, result)


def _render_details(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    name = d.get("domain") or d.get("workflow") or "?"
    kind = "domain" if "domain" in d else "workflow"
    lines = [f"{d.get('description', '')}", "", f"specialist: {d.get('specialist', '')}"]
    if d.get("specialist_description"):
        lines.append(f"  {d['specialist_description']}")
    lines.append(f"triggers: {', '.join(d.get('triggers', []))}")
    if d.get("mcp_servers"):
        lines.append(f"mcp servers: {', '.join(d['mcp_servers'])}")
    for key in ("constraints", "vip_senders", "priority_channels", "workflows"):
        values = d.get(key)
        if values:
            lines.append(f"{key.replace('_', ' ')}: {', '.join(values)}")
    if d.get("databases"):
        lines.append("databases:")
        lines.extend(f"  {k}: {v}" for k, v in d["databases"].items())
    if d.get("parallel_tasks"):
        lines.append("parallel tasks:")
        lines.extend(
            f"  {t['domain']} ({t.get('specialist') or 'undeclared'}): {t['task']}"
            for t in d["parallel_tasks"]
        )
    console.print(
        Panel(
            Text("\n".join(lines)),
            title=f"{kind} — {name}",
            border_style=style_for_kind(kind) or "dim",
            expand=False,
        )
    )


def _render_list_all(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    for title, key in (("Domains", "domains"), ("Workflows", "workflows")):
        console.print(f"[bold]{title}[/bold]")
        for entry in d.get(key, []):
            console.print(
                Text(f"  {entry['name']}", style="cope.name"),
                Text(f"  {entry['description']}"),
                sep="",
            )
        console.print()
    specialists = d.get("specialists", [])
    console.print(f"[bold]Specialists[/bold] ({len(specialists)})")
    for name in specialists:
        console.print(Text(f"  {name}", style="cope.specialist"))


# ── Spawn renderers ───────────────────────────────────────────────────


def _render_spawn(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    console.print(Text(str(d.get("text", ""))))
    if verbose:
        console.print()
        _field(console, "specialist", d.get("specialist", ""))
        _field(console, "duration_ms", d.get("duration_ms", 0))
        _render_meta(console, result)


def _render_spawn_parallel(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    d = result.data
    for slot in d.get("results", []):
        header = Text(f"[{slot['index']}] ", style="dim")
        header.append(slot["specialist"], style="cope.specialist")
        if slot["ok"]:
            header.append("  ok", style="cope.ok")
            body = Text(str(slot.get("text", "")))
        else:
            err = slot.get("error", {})
            header.append(f"  {err.get('code', 'ERROR')}", style="cope.error")
            body = Text(str(err.get("message", "")))
        if verbose:
            header.append(f"  {slot['duration_ms']:.0f}ms", style="dim")
        console.print(header)
        console.print(body)
        console.print()
    console.print(
        f"{d.get('count', 0)} tasks, {d.get('succeeded', 0)} succeeded, "
        f"{d.get('failed', 0)} failed"
    )
    if verbose:
        _render_meta(console, result)


# ── Check / credentials renderers ─────────────────────────────────────


def _render_check(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render manifest check results with issues grouped by category."""
    d = result.data
    issues = d.get("issues", [])
    console.print(
        Text(
            f"{d.get('path', '')}: {d.get('domains', 0)} domains, "
            f"{d.get('workflows', 0)} workflows, {len(d.get('specialists', []))} specialists"
        )
    )

    if not issues:
        console.print("[cope.ok]OK[/cope.ok]  No issues found.")
        return

    severity_styles = {"error": "cope.error", "warning": "cope.warning"}

    by_category: dict[str, list[dict[str, Any]]] = {}
    for issue in issues:
        by_category.setdefault(str(issue.get("category", "unknown")), []).append(issue)

    for cat, cat_issues in by_category.items():
        console.print(f"\n[bold]{cat}[/bold]")
        for issue in cat_issues:
            sev = str(issue.get("severity", "warning"))
            line = Text("  ")
            line.append(sev, style=severity_styles.get(sev, ""))
            line.append(f" [{issue.get('entry', '')}]: {issue.get('message', '')}")
            console.print(line)

    errors = sum(1 for i in issues if i.get("severity") == "error")
    console.print(f"\n{errors} errors, {len(issues) - errors} warnings")


def _render_credentials(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Key", style="cope.name", no_wrap=True)
    table.add_column("Set")
    table.add_column("Description")
    for row in d.get("items", []):
        mark = Text("yes", style="cope.ok") if row["set"] else Text("no", style="dim")
        table.add_row(str(row["key"]), mark, str(row.get("description", "")))
    console.print(table)
    console.print(Text(f"\n{d.get('path', '')}", style="dim"))


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "discover_capability": _render_discover,
    "spawn_specialist": _render_spawn,
    "spawn_parallel": _render_spawn_parallel,
    "check": _render_check,
    "credentials_list": _render_credentials,
}
