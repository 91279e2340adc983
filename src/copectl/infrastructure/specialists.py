"""Specialist registry and subprocess-backed command specialists.

The registry is the closed set of named invocation targets. Targets come
from three places: plugins (``register_specialists`` hook), ``[specialists]``
entries in copectl.toml that name a command, and an optional default command
used for manifest specialists with no dedicated entry.

A command specialist runs one child process per invocation. The instruction
goes to stdin, the result is read from stdout. Exit statuses follow
sysexits: 75 (EX_TEMPFAIL) means the turn ceiling was hit, 77 (EX_NOPERM)
means the child needed a capability outside its grant.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any

import anyio
from anyio.abc import ByteReceiveStream, Process

from copectl.domain.errors import CapabilityDenied, TurnLimitExceeded
from copectl.domain.specialist import SpecialistEntry, SpecialistRequest

if TYPE_CHECKING:
    from copectl.config.settings import CopeSettings

logger = logging.getLogger(__name__)

EXIT_TURN_LIMIT = 75
EXIT_CAPABILITY_DENIED = 77
_STDERR_TAIL = 500

EntryFactory = Callable[[str], SpecialistEntry | None]


class SpecialistRegistry:
    """Name → invocation target lookup."""

    def __init__(self) -> None:
        self._entries: dict[str, SpecialistEntry] = {}
        self._fallback: EntryFactory | None = None

    def register(self, entry: SpecialistEntry, *, replace: bool = False) -> None:
        """Add *entry*. A second entry under the same name needs ``replace=True``."""
        if entry.name in self._entries and not replace:
            msg = f"Specialist already registered: {entry.name}"
            raise ValueError(msg)
        self._entries[entry.name] = entry
        logger.debug("Registered specialist: %s", entry.name)

    def set_fallback(self, factory: EntryFactory | None) -> None:
        """Target builder for manifest specialists with no registered entry."""
        self._fallback = factory

    def get(self, name: str) -> SpecialistEntry | None:
        return self._entries.get(name)

    def resolve(self, name: str, *, declared: bool) -> SpecialistEntry | None:
        """Find the target for *name*.

        Registered entries always resolve. A name the manifest declares but
        nothing registered falls through to the fallback factory, if any.
        """
        entry = self._entries.get(name)
        if entry is not None:
            return entry
        if declared and self._fallback is not None:
            return self._fallback(name)
        return None

    def names(self) -> list[str]:
        return list(self._entries)

    @property
    def has_fallback(self) -> bool:
        return self._fallback is not None

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[SpecialistEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)


def coerce_entry(name: str, target: Any) -> SpecialistEntry:
    """Turn a plugin-provided value into a SpecialistEntry.

    Accepts a ready entry or a bare async callable; limits are read from
    ``max_turns`` / ``timeout`` / ``requires`` / ``description`` attributes.
    """
    if isinstance(target, SpecialistEntry):
        if target.name != name:
            msg = f"Specialist registered as {name!r} is named {target.name!r}"
            raise ValueError(msg)
        return target
    if not callable(target):
        msg = f"Specialist {name!r} is not callable"
        raise TypeError(msg)
    return SpecialistEntry(
        name=name,
        run=target,
        description=getattr(target, "description", "") or "",
        max_turns=getattr(target, "max_turns", None),
        timeout=getattr(target, "timeout", None),
        requires=frozenset(getattr(target, "requires", ()) or ()),
    )


async def _drain(stream: ByteReceiveStream | None, sink: list[bytes]) -> None:
    if stream is None:
        return
    async for chunk in stream:
        sink.append(chunk)


async def _communicate(process: Process, data: bytes) -> tuple[bytes, bytes]:
    stdout: list[bytes] = []
    stderr: list[bytes] = []
    async with anyio.create_task_group() as tg:
        tg.start_soon(_drain, process.stdout, stdout)
        tg.start_soon(_drain, process.stderr, stderr)
        if process.stdin is not None:
            try:
                await process.stdin.send(data)
            except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                logger.debug("Specialist process closed stdin before reading the instruction")
            await process.stdin.aclose()
    return b"".join(stdout), b"".join(stderr)


class CommandSpecialist:
    """Run a specialist as a child process, one process per invocation.

    ``{specialist}`` in any argv element is replaced by the specialist name.
    The child is killed if the invocation is cancelled or times out.
    """

    def __init__(
        self,
        argv: list[str],
        *,
        env: dict[str, str] | None = None,
        description: str = "",
    ) -> None:
        if not argv:
            msg = "CommandSpecialist needs a non-empty argv"
            raise ValueError(msg)
        self._argv = list(argv)
        self._env = dict(env or {})
        self.description = description

    @property
    def argv(self) -> list[str]:
        return list(self._argv)

    def command_for(self, specialist: str) -> list[str]:
        return [part.replace("{specialist}", specialist) for part in self._argv]

    def environment_for(self, request: SpecialistRequest) -> dict[str, str]:
        env = {**os.environ, **self._env}
        env["COPECTL_SPECIALIST"] = request.specialist
        env["COPECTL_CAPABILITIES"] = ",".join(sorted(request.capabilities))
        env["COPECTL_MAX_TURNS"] = str(request.turns.max_turns)
        return env

    async def __call__(self, request: SpecialistRequest) -> str:
        argv = self.command_for(request.specialist)
        try:
            process = await anyio.open_process(argv, env=self.environment_for(request))
        except OSError as exc:
            msg = f"Cannot start {argv[0]}: {exc}"
            raise RuntimeError(msg) from exc

        async with process:
            stdout, stderr = await _communicate(process, request.instruction.encode("utf-8"))
            returncode = await process.wait()

        if returncode == 0:
            return stdout.decode("utf-8", errors="replace").strip()

        tail = stderr.decode("utf-8", errors="replace").strip()[-_STDERR_TAIL:]
        if returncode == EXIT_TURN_LIMIT:
            raise TurnLimitExceeded(request.turns.max_turns)
        if returncode == EXIT_CAPABILITY_DENIED:
            raise CapabilityDenied(request.specialist)
        msg = f"{argv[0]} exited with status {returncode}"
        if tail:
            msg = f"{msg}: {tail}"
        raise RuntimeError(msg)


def build_registry(settings: CopeSettings) -> SpecialistRegistry:
    """Registry with every ``[specialists.<name>]`` entry that names a command."""
    registry = SpecialistRegistry()
    for name, config in settings.specialists.items():
        if not config.command:
            continue
        runner = CommandSpecialist(config.command, description=config.description)
        registry.register(
            SpecialistEntry(
                name=name,
                run=runner,
                description=config.description,
                max_turns=config.max_turns,
                timeout=config.timeout,
                requires=frozenset(config.requires),
            )
        )

    default_command = settings.invoker.default_command
    if default_command:
        runner = CommandSpecialist(default_command)

        def _default_entry(name: str) -> SpecialistEntry:
            return SpecialistEntry(name=name, run=runner)

        registry.set_fallback(_default_entry)
    return registry
