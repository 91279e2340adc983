"""AppContext — shared Click context for all commands.

Created once by the root CLI group and handed to subcommands via
``@click.pass_obj``. Builds the Runtime lazily and owns result emission
(stdout/stderr routing and exit codes).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, NoReturn

import click

from copectl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from copectl.config.settings import CopeSettings
    from copectl.infrastructure.runtime import Runtime
    from copectl.services.result import ServiceResult

logger = logging.getLogger(__name__)


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The runtime is created on first use so ``--help`` and ``--version``
    never read the manifest, the credential store, or plugin entry points.
    """

    def __init__(self, settings: CopeSettings) -> None:
        self.settings = settings
        self._runtime: Runtime | None = None

        from copectl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        if settings.verbose:
            from copectl.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def runtime(self) -> Runtime:
        """The runtime (created lazily on first access)."""
        if self._runtime is None:
            from copectl.infrastructure.runtime import Runtime

            self._runtime = Runtime(self.settings)
        return self._runtime

    def startup(self) -> Runtime:
        """Start the runtime (credentials, then manifest) or exit 1 on failure."""
        from copectl.domain.errors import CredentialError, ManifestError

        try:
            self.runtime.startup()
        except (ManifestError, CredentialError) as exc:
            logger.error("Startup failed: %s", exc)
            self.fail(str(exc))
        return self.runtime

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success: writes to stdout; warnings go to stderr outside JSON mode.
        * Failure: writes to stderr and exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)

    def fail(self, message: str) -> NoReturn:
        """Report a fatal error on stderr and exit with code 1."""
        click.echo(f"ERROR: {message}", err=True)
        raise SystemExit(1)
