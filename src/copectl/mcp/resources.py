"""MCP resource definitions — copectl://capabilities and copectl://specialists.

Each resource has a ``_impl`` function testable without the mcp package.
"""

from __future__ import annotations

import json
from typing import Any

# ---------------------------------------------------------------------------
# Resource implementations (testable without mcp)
# ---------------------------------------------------------------------------


def capabilities_impl(runtime: Any) -> str:
    """Markdown summary of every domain and workflow."""
    from copectl.services.capabilities import CapabilityService

    return CapabilityService(runtime).summary()


def specialists_impl(runtime: Any) -> dict[str, Any]:
    """Declared specialists and whether something can run each of them."""
    manifest = runtime.manifest
    registry = runtime.registry
    items = []
    for name in manifest.specialists():
        entry = registry.get(name)
        items.append(
            {
                "name": name,
                "registered": entry is not None or registry.has_fallback,
                "description": entry.description if entry is not None else "",
                "capabilities": sorted(manifest.scopes_for(name)),
            }
        )
    declared = set(manifest.specialists())
    extra = [name for name in registry.names() if name not in declared]
    return {"items": items, "count": len(items), "undeclared": extra}


# ---------------------------------------------------------------------------
# Registration: wraps _impl functions with FastMCP decorators
# ---------------------------------------------------------------------------


def register_resources(server: Any, runtime: Any) -> None:
    """Register both MCP resources on the FastMCP server."""

    @server.resource("copectl://capabilities")  # type: ignore[untyped-decorator]
    def capabilities_resource() -> str:
        """Domains with their triggers, and workflows."""
        return capabilities_impl(runtime)

    @server.resource("copectl://specialists")  # type: ignore[untyped-decorator]
    def specialists_resource() -> str:
        """Specialists the manifest declares and their capability grants."""
        return json.dumps(specialists_impl(runtime), indent=2)
