"""SpecialistInvoker — run one named specialist as an isolated, bounded unit.

The invoker resolves the name, computes the capability grant from the
manifest, builds the request, and runs the target under a wall-clock limit.
Every failure leaves as an :class:`InvocationError` with a typed kind;
cancellation of the surrounding request is the only thing that propagates
otherwise.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import anyio

from copectl.config.models import InvokerConfig, SpecialistConfig
from copectl.domain.errors import (
    CapabilityDenied,
    InvocationError,
    InvocationErrorKind,
    ManifestError,
    RequestError,
    TurnLimitExceeded,
)
from copectl.domain.specialist import SpecialistEntry, SpecialistRequest, TurnBudget

if TYPE_CHECKING:
    from copectl.infrastructure.manifest_store import ManifestStore
    from copectl.infrastructure.specialists import SpecialistRegistry

logger = logging.getLogger(__name__)


class SpecialistInvoker:
    """Resolve and run specialists against tasks.

    Parameters:
        store: Manifest store; the manifest decides which names are declared
            and which capability scopes each specialist is granted.
        registry: Invocation targets by name.
        config: Default turn ceiling and timeout.
        overrides: ``[specialists.<name>]`` settings; their limits win over
            the registry entry's.
    """

    def __init__(
        self,
        store: ManifestStore,
        registry: SpecialistRegistry,
        config: InvokerConfig | None = None,
        *,
        overrides: dict[str, SpecialistConfig] | None = None,
    ) -> None:
        self._store = store
        self._registry = registry
        self._config = config or InvokerConfig()
        self._overrides = overrides or {}

    def available(self) -> list[str]:
        """Names that currently resolve to an invocation target."""
        names = dict.fromkeys(self._registry.names())
        if self._registry.has_fallback:
            names.update(dict.fromkeys(self._store.load().specialists()))
        return list(names)

    def max_turns_for(self, entry: SpecialistEntry) -> int:
        override = self._overrides.get(entry.name)
        if override is not None and override.max_turns is not None:
            return override.max_turns
        return entry.max_turns or self._config.default_max_turns

    def timeout_for(self, entry: SpecialistEntry) -> float:
        override = self._overrides.get(entry.name)
        if override is not None and override.timeout is not None:
            return override.timeout
        return entry.timeout or self._config.default_timeout

    def prepare(
        self, specialist: str, task: str, context: str | None = None
    ) -> tuple[SpecialistEntry, SpecialistRequest]:
        """Resolve *specialist* and build its scoped request without running it.

        Raises RequestError for a blank *task*, InvocationError otherwise.
        """
        if not task.strip():
            msg = "task must not be empty"
            raise RequestError(msg, field="task")
        try:
            manifest = self._store.load()
        except ManifestError as exc:
            raise InvocationError(InvocationErrorKind.RUNTIME_FAILURE, str(exc)) from exc

        declared = specialist in manifest.specialists()
        entry = self._registry.resolve(specialist, declared=declared)
        if entry is None:
            available = ", ".join(self.available()) or "none"
            raise InvocationError(
                InvocationErrorKind.UNKNOWN_SPECIALIST,
                f"Unknown specialist: {specialist}. Available: {available}",
            )

        granted = manifest.scopes_for(specialist)
        missing = entry.requires - granted
        if missing:
            denied = CapabilityDenied(specialist, missing)
            raise InvocationError(InvocationErrorKind.CAPABILITY_DENIED, str(denied))

        request = SpecialistRequest(
            specialist=specialist,
            task=task,
            context=context,
            capabilities=granted,
            turns=TurnBudget(max_turns=self.max_turns_for(entry)),
            timeout=self.timeout_for(entry),
        )
        return entry, request

    async def invoke(self, specialist: str, task: str, context: str | None = None) -> str:
        """Run *specialist* on *task* and return its text output.

        Raises InvocationError on any failure of the unit itself.
        """
        entry, request = self.prepare(specialist, task, context)
        logger.debug(
            "Invoking %s (scopes=%s, max_turns=%d, timeout=%.1fs)",
            specialist,
            ",".join(sorted(request.capabilities)) or "-",
            request.turns.max_turns,
            request.timeout,
        )

        try:
            with anyio.fail_after(request.timeout) as scope:
                output = await entry.run(request)
        except TimeoutError as exc:
            if scope.cancelled_caught:
                msg = f"{specialist} did not finish within {request.timeout:g}s"
            else:
                # Raised by the specialist itself, e.g. a client call timing out.
                msg = f"{specialist} timed out: {exc or type(exc).__name__}"
            raise InvocationError(InvocationErrorKind.TIMEOUT, msg) from exc
        except TurnLimitExceeded as exc:
            raise InvocationError(InvocationErrorKind.TIMEOUT, str(exc)) from exc
        except CapabilityDenied as exc:
            raise InvocationError(InvocationErrorKind.CAPABILITY_DENIED, str(exc)) from exc
        except InvocationError:
            raise
        except Exception as exc:
            logger.debug("Specialist %s raised", specialist, exc_info=True)
            raise InvocationError(
                InvocationErrorKind.RUNTIME_FAILURE,
                f"Specialist unavailable: {exc}",
            ) from exc

        if not isinstance(output, str):
            raise InvocationError(
                InvocationErrorKind.RUNTIME_FAILURE,
                f"{specialist} returned {type(output).__name__}, expected text",
            )
        return output
