"""CapabilityService — the ``discover_capability`` operation.

Four modes: ``discover`` ranks domains and workflows for a query,
``domain_details`` / ``workflow_details`` describe one entry, and
``list_all`` enumerates everything. An empty match set is a successful,
explicit "no matches" answer, not an error.
"""

from __future__ import annotations

from typing import Any

from copectl.domain.dispatch import MatchCandidate
from copectl.domain.errors import ErrorCode
from copectl.domain.manifest import DomainConfig
from copectl.services.base import BaseService
from copectl.services.contracts import DiscoverResultData, ListAllResultData, dump_validated
from copectl.services.matcher import Matcher
from copectl.services.result import ServiceResult
from copectl.services.telemetry import trace_span, traced

OP = "discover_capability"
MODES = ("discover", "domain_details", "workflow_details", "list_all")


def _match_item(candidate: MatchCandidate) -> dict[str, Any]:
    config = candidate.config
    item: dict[str, Any] = {
        "name": candidate.name,
        "kind": candidate.kind,
        "description": config.description,
        "specialist": config.specialist,
        "matched_triggers": list(candidate.matched_triggers),
    }
    if isinstance(config, DomainConfig):
        item["mcp_servers"] = list(config.mcp_servers)
        item["constraints"] = config.constraints
    return item


def _render_section(title: str, items: list[dict[str, Any]]) -> list[str]:
    lines = [f"{title}:"]
    if not items:
        lines.append("  (none)")
        return lines
    for rank, item in enumerate(items, start=1):
        lines.append(f"  {rank}. {item['name']} - {item['description']}")
        lines.append(f"     specialist: {item['specialist']}")
        lines.append(f"     matched: {', '.join(item['matched_triggers'])}")
    return lines


def render_matches(
    query: str,
    domains: list[dict[str, Any]],
    workflows: list[dict[str, Any]],
    recommendation: str | None,
) -> str:
    """Format ranked matches as one text block."""
    if not domains and not workflows:
        return f'No matching capabilities for "{query}".'
    lines = [f'Capabilities matching "{query}":', ""]
    lines.extend(_render_section("Domains", domains))
    lines.append("")
    lines.extend(_render_section("Workflows", workflows))
    if recommendation:
        lines.extend(["", f"Recommendation: {recommendation}"])
    return "\n".join(lines)


class CapabilityService(BaseService):
    """Answer capability questions from the manifest."""

    @property
    def matcher(self) -> Matcher:
        return Matcher(self._runtime.manifest_store)

    @traced
    def discover(
        self,
        query: str,
        *,
        mode: str | None = None,
        target: str | None = None,
    ) -> ServiceResult:
        """Run ``discover_capability`` in the requested *mode*."""
        warnings: list[str] = []
        request_id, start = self._begin_request(
            OP, {"query": query, "mode": mode, "target": target}, warnings
        )
        result = self._discover(query, mode or "discover", target)
        return self._finish_request(result, request_id, start, warnings)

    def summary(self) -> str:
        """Markdown listing of every capability."""
        return self.matcher.capability_summary()

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------

    def _discover(self, query: str, mode: str, target: str | None) -> ServiceResult:
        if not isinstance(query, str):
            return ServiceResult.failure(OP, ErrorCode.INVALID_REQUEST, "query must be a string")
        if mode not in MODES:
            return ServiceResult.failure(
                OP,
                ErrorCode.INVALID_REQUEST,
                f"Unknown mode: {mode}. Expected one of: {', '.join(MODES)}",
            )

        if mode == "discover":
            return self._rank(query)
        if mode == "list_all":
            return self._list_all()

        if not target:
            return ServiceResult.failure(
                OP, ErrorCode.INVALID_REQUEST, f"target required for {mode} mode"
            )
        if mode == "domain_details":
            details = self.matcher.domain_details(target)
            kind = "domain"
        else:
            details = self.matcher.workflow_details(target)
            kind = "workflow"
        if details is None:
            return ServiceResult.failure(
                OP,
                ErrorCode.NOT_FOUND,
                f"No {kind} named {target!r}",
                detail={"target": target},
            )
        entry = self._runtime.registry.get(details["specialist"])
        if entry is not None and entry.description:
            details["specialist_description"] = entry.description
        return ServiceResult(ok=True, op=OP, data={"mode": mode, **details})

    def _rank(self, query: str) -> ServiceResult:
        with trace_span("match"):
            found = self.matcher.discover(query)
        domains = [_match_item(c) for c in found["domains"]]
        workflows = [_match_item(c) for c in found["workflows"]]
        payload = dump_validated(
            DiscoverResultData,
            {
                "query": query,
                "matched": bool(domains or workflows),
                "domains": domains,
                "workflows": workflows,
                "recommendation": found["recommendation"],
                "text": render_matches(query, domains, workflows, found["recommendation"]),
            },
        )
        return ServiceResult(ok=True, op=OP, data=payload)

    def _list_all(self) -> ServiceResult:
        matcher = self.matcher
        specialists = dict.fromkeys(self._runtime.manifest.specialists())
        specialists.update(dict.fromkeys(self._runtime.registry.names()))
        payload = dump_validated(
            ListAllResultData,
            {
                "domains": matcher.list_domains(),
                "workflows": matcher.list_workflows(),
                "specialists": list(specialists),
            },
        )
        return ServiceResult(ok=True, op=OP, data={"mode": "list_all", **payload})
