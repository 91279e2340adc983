"""Plugin discovery and loading.

Discovery: entry_points (pip-installed) via pluggy setuptools entrypoints.
Capabilities: request lifecycle hooks and specialist registration.
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING

import pluggy

from copectl.plugins.hookspecs import CopectlHookSpec

if TYPE_CHECKING:
    from copectl.infrastructure.specialists import SpecialistRegistry

PROJECT_NAME = "copectl"

logger = logging.getLogger(__name__)


class PluginManager:
    """Manages plugin discovery, loading, and hook dispatch."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(CopectlHookSpec)
        self._loaded: bool = False

    def discover_and_load(self) -> list[str]:
        """Discover plugins from the ``copectl.plugins`` entry-point group.

        Returns a list of loaded plugin names.
        """
        self._pm.load_setuptools_entrypoints("copectl.plugins")
        self._normalize_plugin_instances()
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance directly (e.g. built-in plugins)."""
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def unregister(self, plugin: object) -> None:
        """Unregister a plugin instance."""
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        """Whether discover_and_load() has been called."""
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        """Access the hook relay for dispatching events."""
        return self._pm.hook

    def get_plugins(self) -> list[object]:
        """Return all registered plugins."""
        return list(self._pm.get_plugins())

    def list_plugin_names(self) -> list[str]:
        """Return names of all registered plugins."""
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    def collect_specialists(self, registry: SpecialistRegistry) -> list[str]:
        """Add every plugin-provided specialist to *registry*.

        A plugin that fails or returns garbage is logged and skipped; it must
        not prevent the server from starting. Returns the names added.
        """
        from copectl.infrastructure.specialists import coerce_entry

        added: list[str] = []
        for plugin in self._pm.get_plugins():
            plugin_name = self._pm.get_name(plugin) or plugin.__class__.__name__
            hook = getattr(plugin, "register_specialists", None)
            if hook is None:
                continue

            try:
                provided = hook()
            except Exception:
                logger.warning(
                    "Failed to collect specialists from plugin %s",
                    plugin_name,
                    exc_info=True,
                )
                continue

            if provided is None:
                continue
            if not isinstance(provided, dict):
                logger.warning("Plugin %s returned non-dict specialist registrations", plugin_name)
                continue

            for name, target in provided.items():
                try:
                    registry.register(coerce_entry(name, target))
                except (TypeError, ValueError) as exc:
                    logger.warning(
                        "Plugin %s could not register specialist %s: %s",
                        plugin_name,
                        name,
                        exc,
                    )
                    continue
                added.append(name)
        return added

    def _normalize_plugin_instances(self) -> None:
        """Replace registered plugin classes with instantiated objects.

        Entry-point loading may register a plugin class directly. Hook dispatch
        against class objects leaves ``self`` unbound and fails at runtime.
        """
        for plugin in list(self._pm.get_plugins()):
            if not inspect.isclass(plugin):
                continue

            plugin_name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)

            try:
                instance = plugin()
            except Exception:
                logger.warning(
                    "Failed to instantiate entry-point plugin %s",
                    plugin_name,
                    exc_info=True,
                )
                continue

            self._pm.register(instance, name=plugin_name)
            logger.debug("Instantiated entry-point plugin: %s", plugin_name)
