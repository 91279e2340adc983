"""CheckService — validate a capability manifest without serving it.

Parses the file fresh (no cache), then looks for problems the schema alone
cannot see: cross references to undeclared entries, duplicated triggers,
and specialists with nothing registered to run them.
"""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING, Any

from copectl.domain.errors import ErrorCode, ManifestError
from copectl.infrastructure.manifest_store import parse_manifest
from copectl.services.base import BaseService
from copectl.services.contracts import ManifestCheckData, dump_validated
from copectl.services.result import ServiceResult
from copectl.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from copectl.domain.manifest import Manifest

# ---------------------------------------------------------------------------
# Issue severity and category constants
# ---------------------------------------------------------------------------

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"

CAT_REFERENCES = "cross_references"
CAT_TRIGGERS = "triggers"
CAT_SPECIALISTS = "specialists"

_SEVERITY_RANK = {SEVERITY_WARNING: 0, SEVERITY_ERROR: 1}


def _issue(category: str, severity: str, entry: str, message: str) -> dict[str, Any]:
    return {"category": category, "severity": severity, "entry": entry, "message": message}


class CheckService(BaseService):
    """Manifest integrity checks."""

    @traced
    def check_manifest(
        self,
        path: Path | None = None,
        *,
        min_severity: str = SEVERITY_WARNING,
    ) -> ServiceResult:
        """Parse the manifest at *path* (default: the configured one) and report issues."""
        target = path or self._runtime.settings.manifest_path
        try:
            manifest = parse_manifest(target)
        except ManifestError as exc:
            return ServiceResult.failure(
                "check", ErrorCode.MANIFEST_ERROR, str(exc), detail={"path": str(target)}
            )

        issues: list[dict[str, Any]] = []
        with trace_span("cross_references"):
            issues.extend(self._check_references(manifest))
        with trace_span("triggers"):
            issues.extend(self._check_triggers(manifest))
        with trace_span("specialists"):
            issues.extend(self._check_specialists(manifest))

        healthy = not any(i["severity"] == SEVERITY_ERROR for i in issues)
        threshold = _SEVERITY_RANK.get(min_severity, 0)
        shown = [i for i in issues if _SEVERITY_RANK[i["severity"]] >= threshold]

        payload = dump_validated(
            ManifestCheckData,
            {
                "path": str(target),
                "version": manifest.version,
                "domains": len(manifest.domains),
                "workflows": len(manifest.workflows),
                "specialists": manifest.specialists(),
                "issues": shown,
                "count": len(shown),
                "healthy": healthy,
            },
        )
        return ServiceResult(ok=True, op="check", data=payload)

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _check_references(self, manifest: Manifest) -> list[dict[str, Any]]:
        issues: list[dict[str, Any]] = []
        for name, domain in manifest.domains.items():
            for workflow in domain.workflows or []:
                if workflow not in manifest.workflows:
                    issues.append(
                        _issue(
                            CAT_REFERENCES,
                            SEVERITY_WARNING,
                            f"domains.{name}",
                            f"Lists undeclared workflow: {workflow}",
                        )
                    )
        for name, workflow in manifest.workflows.items():
            for position, task in enumerate(workflow.parallel_tasks or []):
                if not task.task.strip():
                    issues.append(
                        _issue(
                            CAT_REFERENCES,
                            SEVERITY_ERROR,
                            f"workflows.{name}",
                            f"parallel_tasks[{position}] has a blank task",
                        )
                    )
                if task.domain not in manifest.domains:
                    issues.append(
                        _issue(
                            CAT_REFERENCES,
                            SEVERITY_ERROR,
                            f"workflows.{name}",
                            f"parallel_tasks names undeclared domain: {task.domain}",
                        )
                    )
        return issues

    def _check_triggers(self, manifest: Manifest) -> list[dict[str, Any]]:
        issues: list[dict[str, Any]] = []
        entries = [
            *((f"domains.{n}", c.triggers) for n, c in manifest.domains.items()),
            *((f"workflows.{n}", c.triggers) for n, c in manifest.workflows.items()),
        ]
        for entry, triggers in entries:
            counts = Counter(t.lower() for t in triggers)
            for trigger, count in counts.items():
                if count > 1:
                    issues.append(
                        _issue(
                            CAT_TRIGGERS,
                            SEVERITY_WARNING,
                            entry,
                            f"Trigger repeated {count} times: {trigger}",
                        )
                    )
            if any(not t.strip() for t in triggers):
                # An empty trigger is a substring of every query.
                issues.append(
                    _issue(CAT_TRIGGERS, SEVERITY_ERROR, entry, "Blank trigger matches any query")
                )
        return issues

    def _check_specialists(self, manifest: Manifest) -> list[dict[str, Any]]:
        registry = self._runtime.registry
        if registry.has_fallback:
            return []
        return [
            _issue(
                CAT_SPECIALISTS,
                SEVERITY_WARNING,
                name,
                "No command or plugin registered; invocations will fail",
            )
            for name in manifest.specialists()
            if name not in registry
        ]
