"""Report dispatcher.

The dispatcher decides whether a report is accepted, resolves its actions,
and fans it out to the console, the log file, the error tally and callback
plugins. Filtering is a normal outcome: report() returns Outcome.DROPPED
rather than raising.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional, Union

from herald.core.actions import Action
from herald.core.sinks import ConsoleSink, Sink, SinkError
from herald.core.store import PolicyStore
from herald.core.summary import ReportCounts
from herald.core.termination import TerminationController, TerminationReason
from herald.models.message import ReportMessage
from herald.models.severity import Severity, Verbosity

if TYPE_CHECKING:
    from herald.core.component import Component
    from herald.core.plugin import PluginManager

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    ACCEPTED = "accepted"
    DROPPED = "dropped"


class ReportDispatcher:
    """Filters reports and performs their actions.

    Policy resolution, error counting and the termination decision happen
    under the store lock, so a report never sees a half-applied propagation
    and quit-count crossings are never missed. Sink writes happen after the
    lock is released.

    Args:
        store: Policy store for the component tree.
        controller: Termination controller.
        console: Sink for the DISPLAY action.
        plugins: Plugin manager for the CALLBACK action.
        counts: Tallies to update.
        time_source: Optional callable returning the caller's current time.
    """

    def __init__(
        self,
        store: PolicyStore,
        controller: TerminationController,
        console: Optional[ConsoleSink] = None,
        plugins: Optional["PluginManager"] = None,
        counts: Optional[ReportCounts] = None,
        time_source: Optional[Callable[[], Union[int, float]]] = None,
    ):
        self.store = store
        self.controller = controller
        self.console = console if console is not None else ConsoleSink()
        self.plugins = plugins
        self.counts = counts if counts is not None else ReportCounts()
        self.time_source = time_source

    def report(
        self,
        component: "Component",
        message_id: str,
        severity: Union[Severity, str, int],
        verbosity: Union[int, str] = Verbosity.MEDIUM,
        text: str = "",
        filename: Optional[str] = None,
        line: Optional[int] = None,
    ) -> Outcome:
        """Issue a report from a component.

        Args:
            component: Reporting component (must belong to the store).
            message_id: Message identifier.
            severity: Message severity.
            verbosity: Message verbosity; ignored for non-INFO severities.
            text: Message body.
            filename: Optional call-site file.
            line: Optional call-site line.

        Returns:
            Outcome.ACCEPTED or Outcome.DROPPED.

        Raises:
            ConfigError: If the component is not registered in the store.
            ReportTermination: From the default exit handler when this report
                ends the run.
        """
        severity = Severity.coerce(severity)
        level = Verbosity.coerce(verbosity) if severity is Severity.INFO else Verbosity.NONE

        reason: Optional[TerminationReason] = None
        with self.store.lock:
            if not self.controller.running:
                self.counts.add_dropped()
                return Outcome.DROPPED

            if severity is not Severity.FATAL:
                threshold = self.store.resolve_effective_verbosity(component, message_id)
                if level > threshold:
                    self.counts.add_dropped()
                    return Outcome.DROPPED

            actions = self.store.resolve_effective_action(component, severity, message_id)
            sink = self.store.resolve_file(component, severity) if Action.LOG in actions else None

            # Built before anything is counted or claimed; a bad argument
            # leaves the tallies and the controller untouched
            message = ReportMessage(
                id=message_id,
                severity=severity,
                verbosity=level,
                text=text,
                component=component.full_name,
                time=self.time_source() if self.time_source else None,
                filename=filename,
                line=line,
            )

            quit_reached = False
            if Action.COUNT in actions and severity.counts_as_error:
                quit_reached = self.store.count_error(component)

            if severity is Severity.FATAL and Action.EXIT in actions:
                reason = TerminationReason.FATAL
            elif quit_reached:
                reason = TerminationReason.MAX_QUIT_COUNT
            if reason is not None and not self.controller.claim():
                reason = None

            self.counts.add(message)

        try:
            self._perform(message, actions, sink)
        finally:
            if reason is not None:
                self.controller.finish(reason, message)

        return Outcome.ACCEPTED

    def _perform(self, message: ReportMessage, actions: Action, sink: Optional[Sink]) -> None:
        line_text = message.format()

        if Action.DISPLAY in actions:
            try:
                self.console.write(line_text, message.severity)
            except SinkError as e:
                self.counts.add_sink_failure()
                logger.warning("Dropped DISPLAY for [%s]: %s", message.id, e)

        if sink is not None:
            try:
                sink.write(line_text, message.severity)
            except SinkError as e:
                self.counts.add_sink_failure()
                logger.warning("Dropped LOG for [%s]: %s", message.id, e)

        if Action.CALLBACK in actions and self.plugins is not None:
            try:
                self.plugins.report_callback(message)
            except Exception:
                self.counts.add_callback_failure()
                logger.exception("Report callback failed for [%s]", message.id)
