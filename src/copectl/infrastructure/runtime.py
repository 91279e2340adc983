"""Runtime — the single dependency injected into every service.

The Runtime owns the process-wide pieces: settings, the manifest store, the
specialist registry, the credential store, and the plugin event bus. It is
cheap to construct; nothing touches the disk until :meth:`startup` (or the
first manifest access).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from copectl.domain.errors import CredentialError
from copectl.infrastructure.credentials import CredentialStore
from copectl.infrastructure.manifest_store import ManifestStore
from copectl.infrastructure.specialists import SpecialistRegistry, build_registry
from copectl.plugins.builtins.request_log import RequestLogPlugin
from copectl.plugins.event_bus import EventBus
from copectl.plugins.manager import PluginManager

if TYPE_CHECKING:
    from copectl.config.settings import CopeSettings
    from copectl.domain.manifest import Manifest

logger = logging.getLogger(__name__)


class Runtime:
    """Process-wide state shared by the CLI and the MCP server.

    Parameters:
        settings: Resolved settings.
        registry: Pre-built specialist registry. Defaults to the configured
            command specialists.
        plugin_manager: Pre-built plugin manager. Defaults to a manager with
            entry-point plugins and the built-in request log loaded.
        manifest_store: Override the store (tests hand in in-memory manifests).
    """

    def __init__(
        self,
        settings: CopeSettings,
        *,
        registry: SpecialistRegistry | None = None,
        plugin_manager: PluginManager | None = None,
        manifest_store: ManifestStore | None = None,
    ) -> None:
        self.settings = settings
        self.manifest_store = manifest_store or ManifestStore(settings.manifest_path)
        self.credentials = CredentialStore(settings.credentials_path)
        self.registry = registry if registry is not None else build_registry(settings)

        if plugin_manager is None:
            plugin_manager = PluginManager()
            plugin_manager.discover_and_load()
            plugin_manager.register_plugin(RequestLogPlugin(), name="request-log")
        self.plugins = plugin_manager
        self.plugins.collect_specialists(self.registry)
        self.events = EventBus(self.plugins)

    def startup(self) -> Manifest:
        """Load credentials into the environment, then the manifest.

        Raises CredentialError when the store is required but unreadable, and
        ManifestError when the manifest cannot be loaded. Both are fatal.
        """
        self.load_credentials()
        return self.manifest_store.load()

    def load_credentials(self) -> list[str]:
        """Populate ``os.environ`` from the credential store.

        An unreadable or missing store is only fatal when
        ``credentials.required`` is set; otherwise it is logged and skipped.
        """
        required = self.settings.credentials.required
        if required and not self.credentials.exists():
            msg = f"Credential store not found: {self.credentials.path}"
            raise CredentialError(msg)
        try:
            return self.credentials.load_into_env()
        except CredentialError:
            if required:
                raise
            logger.warning("Skipping unreadable credential store %s", self.credentials.path)
            return []

    @property
    def manifest(self) -> Manifest:
        return self.manifest_store.load()
