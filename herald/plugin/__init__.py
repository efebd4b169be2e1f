"""Plugin system for herald.

Plugins receive accepted reports that carry the CALLBACK action and may
configure the reporter before a run.

Usage:
    from herald.plugin import HeraldPlugin, hookimpl

    class Collector(HeraldPlugin):
        name = "collector"

        def __init__(self):
            self.seen = []

        @hookimpl
        def report_callback(self, message):
            self.seen.append(message)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

from herald.plugin.hookspec import HeraldHookSpec

if TYPE_CHECKING:
    from herald.core.reporter import Reporter
    from herald.models.message import ReportMessage

# Create the hookimpl marker for plugins to use
hookimpl = pluggy.HookimplMarker("herald")

__all__ = ["HeraldPlugin", "hookimpl", "HeraldHookSpec"]


class HeraldPlugin:
    """Base class for herald plugins.

    Subclasses must define:
        name: Unique identifier for the plugin (str)

    Optional hooks (have no-op defaults):
        report_callback(): Observe accepted CALLBACK reports
        configure(): Adjust policy before a run

    Optional attributes:
        version: Plugin version string (str)
        description: Human-readable description (str)
    """

    name: str = "base"
    version: str = "0.0.0"
    description: str = ""

    @hookimpl
    def report_callback(self, message: "ReportMessage") -> None:
        """Default implementation: ignore the report."""
        return None

    @hookimpl
    def configure(self, reporter: "Reporter") -> None:
        """Default implementation: leave the policy unchanged."""
        return None
