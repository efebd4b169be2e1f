"""Hook specifications for herald plugins.

This module defines the pluggy hook specification for report callbacks.
Plugins use the @hookimpl decorator to register their implementations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from herald.core.reporter import Reporter
    from herald.models.message import ReportMessage

hookspec = pluggy.HookspecMarker("herald")


class HeraldHookSpec:
    """Hook specification defining the plugin interface.

    The reporter calls these hooks through the pluggy PluginManager.
    """

    @hookspec
    def report_callback(self, message: "ReportMessage") -> None:
        """Observe an accepted report whose actions include CALLBACK.

        Called after the DISPLAY and LOG effects of the report and before
        any termination it triggers. Return values are ignored.

        Args:
            message: The accepted report.
        """

    @hookspec
    def configure(self, reporter: "Reporter") -> None:
        """Adjust report policy before a run starts.

        The CLI calls this after configuration files and command-line
        overrides have been applied, so plugin settings win.

        Args:
            reporter: The reporter whose policy may be changed.
        """
