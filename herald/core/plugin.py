"""Plugin management for herald.

This module provides the PluginManager class that handles plugin discovery
via Python entry points, registration with pluggy, and hook invocation for
the CALLBACK action.
"""

from __future__ import annotations

import logging
from importlib.metadata import entry_points
from typing import TYPE_CHECKING

import pluggy

from herald.plugin import HeraldHookSpec, HeraldPlugin

if TYPE_CHECKING:
    from herald.core.reporter import Reporter
    from herald.models.message import ReportMessage

logger = logging.getLogger(__name__)

# Entry point group name for herald plugins
ENTRY_POINT_GROUP = "herald.plugins"


class PluginError(Exception):
    """Base exception for plugin-related errors."""


class PluginManager:
    """Manages plugin discovery, registration and hook calls.

    Example:
        manager = PluginManager()
        manager.discover()  # Find and register entry point plugins
        manager.register(MyPlugin())  # Manually register a plugin

        # Deliver an accepted report to every plugin
        manager.report_callback(message)
    """

    def __init__(self) -> None:
        self.pm = pluggy.PluginManager("herald")
        self.pm.add_hookspecs(HeraldHookSpec)
        self._plugins: dict[str, HeraldPlugin] = {}

    def register(self, plugin: HeraldPlugin) -> None:
        """Register a plugin instance.

        Raises:
            PluginError: If a plugin with the same name is registered.
        """
        name = plugin.name
        if name in self._plugins:
            raise PluginError(f"Plugin '{name}' is already registered")
        self._plugins[name] = plugin
        self.pm.register(plugin, name=name)

    def unregister(self, name: str) -> None:
        if name in self._plugins:
            plugin = self._plugins.pop(name)
            self.pm.unregister(plugin)

    def discover(self) -> list[str]:
        """Discover and register plugins from the 'herald.plugins' entry
        point group.

        Returns:
            List of discovered plugin names.
        """
        discovered = []
        for ep in entry_points(group=ENTRY_POINT_GROUP):
            try:
                plugin_instance = ep.load()()
                self.register(plugin_instance)
                discovered.append(plugin_instance.name)
            except Exception as e:
                # Skip plugins that fail to load
                logger.warning("Skipping plugin %s: %s", ep.name, e)
        return discovered

    def list_plugins(self) -> list[str]:
        return list(self._plugins.keys())

    def get_plugin(self, name: str) -> HeraldPlugin | None:
        return self._plugins.get(name)

    def get_plugin_info(self, name: str) -> dict[str, str] | None:
        """Get information about a plugin.

        Returns:
            Dictionary with plugin info (name, version, description),
            or None if not found.
        """
        plugin = self._plugins.get(name)
        if plugin is None:
            return None

        return {
            "name": plugin.name,
            "version": getattr(plugin, "version", "0.0.0"),
            "description": getattr(plugin, "description", ""),
        }

    def report_callback(self, message: "ReportMessage") -> None:
        self.pm.hook.report_callback(message=message)

    def configure(self, reporter: "Reporter") -> None:
        self.pm.hook.configure(reporter=reporter)
