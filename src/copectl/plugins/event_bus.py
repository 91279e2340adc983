"""Synchronous request-event dispatch via pluggy.

Nothing is persisted: events are handed to hook implementations as they
happen and forgotten.

INVARIANT: Plugin failures are warnings, never errors.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from copectl.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class EventBus:
    """Dispatch lifecycle events to registered plugins.

    Parameters:
        plugin_manager: Loaded PluginManager for hook dispatch.
    """

    def __init__(self, plugin_manager: PluginManager) -> None:
        self._pm = plugin_manager

    def dispatch(self, hook_name: str, payload: dict[str, Any]) -> str | None:
        """Call *hook_name* on every plugin.

        Returns a warning message if a plugin raised, otherwise None.
        """
        hook_fn = getattr(self._pm.hook, hook_name, None)
        if hook_fn is None:
            return None

        try:
            hook_fn(**payload)
        except Exception as exc:
            logger.warning("Hook %s failed: %s", hook_name, exc, exc_info=True)
            return f"Event dispatch failed for {hook_name}"
        return None
