"""Reporter: the entry point that ties the reporting core together.

A Reporter owns one policy store, one termination controller, the console
sink, the plugin manager and the report tallies. Components created through
it report into it.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from rich.console import Console

from herald.core.component import Component
from herald.core.dispatcher import Outcome, ReportDispatcher
from herald.core.plugin import PluginManager
from herald.core.policy import ConfigError
from herald.core.sinks import ConsoleSink, FileSink, Sink, SinkError
from herald.core.store import PolicyStore
from herald.core.summary import ReportCounts, print_summary
from herald.core.termination import TerminationController, TerminationEvent
from herald.models.severity import Severity, Verbosity

logger = logging.getLogger(__name__)


class Reporter:
    """Hierarchical message reporter.

    Args:
        console: Console for the DISPLAY action (stdout by default).
        color: Style console lines by severity.
        startup_verbosity: Global verbosity from a startup parameter. It is
            applied before any other configuration and is not replaced by
            soft defaults from config files.
        exit_handler: Called once on termination. Defaults to raising a
            ReportTermination (a SystemExit).
        plugins: Plugin manager for CALLBACK. A fresh one is created when
            omitted.
        time_source: Optional callable giving the current caller time.

    Example:
        reporter = Reporter()
        top = reporter.create_component("top")
        env = reporter.create_component("env", parent=top)
        reporter.policy.set_verbosity_threshold(top, "HIGH", hier=True)
        env.info("ENV", "built", verbosity=Verbosity.HIGH)
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        color: bool = True,
        startup_verbosity: Optional[Union[int, str]] = None,
        exit_handler: Optional[Callable[[TerminationEvent], None]] = None,
        plugins: Optional[PluginManager] = None,
        time_source: Optional[Callable[[], Union[int, float]]] = None,
    ):
        self.policy = PolicyStore()
        if startup_verbosity is not None:
            self.policy.apply_startup_verbosity(startup_verbosity)

        self.console = ConsoleSink(console, color=color)
        self.plugins = plugins if plugins is not None else PluginManager()
        self.counts = ReportCounts()
        self.roots: list[Component] = []
        self._files: dict[Path, FileSink] = {}

        self.termination = TerminationController(sinks=self._open_sinks, exit_handler=exit_handler)
        self.dispatcher = ReportDispatcher(
            self.policy,
            self.termination,
            console=self.console,
            plugins=self.plugins,
            counts=self.counts,
            time_source=time_source,
        )

    # Components

    def create_component(self, name: str, parent: Optional[Component] = None) -> Component:
        """Create a component attached to this reporter.

        Raises:
            ConfigError: If parent belongs to another reporter.
            ValueError: If the name is invalid or taken by a sibling.
        """
        if parent is None:
            if any(root.name == name for root in self.roots):
                raise ValueError(f"Root component {name!r} already exists")
            component = Component(name, reporter=self)
            self.roots.append(component)
            return component
        if parent.reporter is not self:
            raise ConfigError(f"Component {parent.full_name!r} belongs to another reporter")
        return Component(name, parent=parent)

    def get_component(self, path: str) -> Component:
        """Look up a component by full name.

        Raises:
            ConfigError: If no such component exists.
        """
        return self.policy.find(path)

    def ensure_component(self, path: str) -> Component:
        """Return the component at path, creating missing nodes on the way."""
        names = path.split(".")
        node = next((root for root in self.roots if root.name == names[0]), None)
        if node is None:
            node = self.create_component(names[0])
        for name in names[1:]:
            child = node.get_child(name)
            node = child if child is not None else Component(name, parent=node)
        return node

    # Reporting

    def report(
        self,
        component: Component,
        message_id: str,
        severity: Union[Severity, str, int],
        verbosity: Union[int, str] = Verbosity.MEDIUM,
        text: str = "",
        filename: Optional[str] = None,
        line: Optional[int] = None,
    ) -> Outcome:
        """Issue a report. See ReportDispatcher.report."""
        return self.dispatcher.report(
            component, message_id, severity, verbosity, text, filename=filename, line=line
        )

    # Sinks

    def open_file(self, path: Union[str, Path], buffer_lines: int = 64) -> FileSink:
        """Open (or reuse) a file sink for path.

        Raises:
            ConfigError: If the file cannot be opened.
        """
        key = Path(path).resolve()
        sink = self._files.get(key)
        if sink is None or sink.closed:
            try:
                sink = FileSink(path, buffer_lines=buffer_lines)
            except SinkError as e:
                raise ConfigError(str(e)) from e
            self._files[key] = sink
        return sink

    def _open_sinks(self) -> Iterable[Sink]:
        sinks: list[Sink] = [self.console]
        for sink in self.policy.sinks() + list(self._files.values()):
            if not sink.closed and sink not in sinks:
                sinks.append(sink)
        return sinks

    def close(self) -> None:
        """Flush the console and close every file sink."""
        for sink in self._open_sinks():
            try:
                sink.close()
            except SinkError as e:
                logger.warning("Could not close %s: %s", sink.name, e)

    # Summary

    def summarize(self, console: Optional[Console] = None) -> None:
        """Print the report summary to console (the DISPLAY console by default)."""
        limit = self.policy.defaults.max_quit_count
        print_summary(
            console if console is not None else self.console.console,
            self.counts,
            quit_count=(self.policy.error_count(), limit),
        )
