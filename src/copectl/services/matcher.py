"""Matcher — resolve a free-text query to ranked domains and workflows.

Matching is literal: a trigger matches when its lowercase form is a
substring of the lowercase query. There is no tokenizing and no word
boundary, so a trigger ``"on"`` matches ``"monday"``. Missing a phrasing is
preferred over routing to the wrong specialist, because an invoked
specialist is granted real external capabilities.

Candidates are ranked by how many triggers matched, most first. Python's
sort is stable, so equal counts keep manifest declaration order.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Literal

from copectl.domain.dispatch import MatchCandidate, SpecialistTask
from copectl.domain.manifest import DomainConfig, WorkflowConfig

if TYPE_CHECKING:
    from copectl.infrastructure.manifest_store import ManifestStore

logger = logging.getLogger(__name__)

SUMMARY_TRIGGER_LIMIT = 5


def matched_triggers(query: str, triggers: list[str]) -> list[str]:
    """Triggers contained (case-insensitively) in *query*, in trigger order."""
    query_lower = query.lower()
    return [trigger for trigger in triggers if trigger.lower() in query_lower]


def _rank(
    query: str,
    entries: Mapping[str, DomainConfig | WorkflowConfig],
    kind: Literal["domain", "workflow"],
) -> list[MatchCandidate]:
    candidates: list[MatchCandidate] = []
    for name, config in entries.items():
        matched = matched_triggers(query, config.triggers)
        if matched:
            candidates.append(
                MatchCandidate(name=name, kind=kind, config=config, matched_triggers=matched)
            )
    candidates.sort(key=lambda c: len(c.matched_triggers), reverse=True)
    return candidates


class Matcher:
    """Query the manifest held by a ManifestStore. Never fails on a query."""

    def __init__(self, store: ManifestStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def find_matching_domains(self, query: str) -> list[MatchCandidate]:
        return _rank(query, self._store.load().domains, "domain")

    def find_matching_workflows(self, query: str) -> list[MatchCandidate]:
        return _rank(query, self._store.load().workflows, "workflow")

    def discover(self, query: str) -> dict[str, Any]:
        """Both match lists plus a recommendation.

        The top workflow wins over the top domain, since a workflow covers a
        multi-domain request. No match at all gives a None recommendation.
        """
        domains = self.find_matching_domains(query)
        workflows = self.find_matching_workflows(query)

        recommendation: str | None = None
        if workflows:
            top = workflows[0]
            recommendation = f"Use workflow '{top.name}' via {top.config.specialist}"
        elif domains:
            top = domains[0]
            recommendation = f"Use domain '{top.name}' via {top.config.specialist}"

        return {
            "query": query,
            "domains": domains,
            "workflows": workflows,
            "recommendation": recommendation,
        }

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_domain(self, name: str) -> DomainConfig | None:
        return self._store.load().domains.get(name)

    def get_workflow(self, name: str) -> WorkflowConfig | None:
        return self._store.load().workflows.get(name)

    def get_specialist(self, name: str) -> str | None:
        """Specialist owning a domain or workflow; domains are checked first."""
        manifest = self._store.load()
        if name in manifest.domains:
            return manifest.domains[name].specialist
        if name in manifest.workflows:
            return manifest.workflows[name].specialist
        return None

    def get_mcp_servers(self, domain: str) -> frozenset[str]:
        """Tool scopes of *domain*; empty for an unknown domain."""
        config = self.get_domain(domain)
        if config is None:
            return frozenset()
        return config.scopes

    def list_domains(self) -> list[dict[str, str]]:
        return [
            {"name": name, "description": config.description}
            for name, config in self._store.load().domains.items()
        ]

    def list_workflows(self) -> list[dict[str, str]]:
        return [
            {"name": name, "description": config.description}
            for name, config in self._store.load().workflows.items()
        ]

    # ------------------------------------------------------------------
    # Details
    # ------------------------------------------------------------------

    def domain_details(self, name: str) -> dict[str, Any] | None:
        config = self.get_domain(name)
        if config is None:
            return None
        return {
            "domain": name,
            "description": config.description,
            "specialist": config.specialist,
            "mcp_servers": list(config.mcp_servers),
            "triggers": list(config.triggers),
            "constraints": config.constraints,
            "vip_senders": config.vip_senders,
            "priority_channels": config.priority_channels,
            "databases": config.databases,
            "workflows": config.workflows,
        }

    def workflow_details(self, name: str) -> dict[str, Any] | None:
        config = self.get_workflow(name)
        if config is None:
            return None
        parallel_tasks = [
            {
                "domain": entry.domain,
                "task": entry.task,
                "specialist": self.get_specialist(entry.domain),
            }
            for entry in config.parallel_tasks or []
        ]
        return {
            "workflow": name,
            "description": config.description,
            "specialist": config.specialist,
            "triggers": list(config.triggers),
            "parallel_tasks": parallel_tasks,
        }

    def workflow_tasks(self, name: str, context: str | None = None) -> list[SpecialistTask]:
        """The default fan-out of workflow *name* as dispatchable tasks.

        Entries whose domain is not declared, or whose task is blank, are
        skipped. Unknown workflows give an empty list.
        """
        config = self.get_workflow(name)
        if config is None:
            return []
        manifest = self._store.load()
        tasks: list[SpecialistTask] = []
        for entry in config.parallel_tasks or []:
            domain = manifest.domains.get(entry.domain)
            if domain is None:
                continue
            if not entry.task.strip():
                logger.warning("Workflow %s: skipping blank task for domain %s", name, entry.domain)
                continue
            tasks.append(
                SpecialistTask(specialist=domain.specialist, task=entry.task, context=context)
            )
        return tasks

    def capability_summary(self) -> str:
        """Compact markdown listing of every domain and workflow."""
        manifest = self._store.load()
        lines = ["# Available Capabilities", "", "## Domains"]
        for name, config in manifest.domains.items():
            shown = ", ".join(config.triggers[:SUMMARY_TRIGGER_LIMIT])
            more = "..." if len(config.triggers) > SUMMARY_TRIGGER_LIMIT else ""
            lines.append(f"- **{name}**: {config.description}")
            lines.append(f"  Triggers: {shown}{more}")
        lines.extend(["", "## Workflows"])
        for name, config in manifest.workflows.items():
            lines.append(f"- **{name}**: {config.description}")
        return "\n".join(lines) + "\n"
