"""Termination controller for fatal and quit-count events.

The controller is a one-way state machine: RUNNING -> TERMINATING ->
TERMINATED. Only the first termination request has any effect. On that
request all open sinks are flushed and the exit handler is called; the
default handler raises a ReportTermination, which is a SystemExit carrying
the documented exit code.

Exit codes:
    EXIT_OK (0): normal completion.
    EXIT_FATAL (3): a FATAL report with the EXIT action.
    EXIT_QUIT_COUNT (4): the error tally reached the max quit count.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

from herald.core.sinks import Sink, SinkError
from herald.models.message import ReportMessage

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 3
EXIT_QUIT_COUNT = 4


class TerminationState(str, Enum):
    RUNNING = "running"
    TERMINATING = "terminating"
    TERMINATED = "terminated"


class TerminationReason(str, Enum):
    FATAL = "fatal"
    MAX_QUIT_COUNT = "max-quit-count"

    @property
    def exit_code(self) -> int:
        return EXIT_FATAL if self is TerminationReason.FATAL else EXIT_QUIT_COUNT


@dataclass(frozen=True)
class TerminationEvent:
    """Record of the termination that ended a run.

    Attributes:
        reason: Why the run ended.
        exit_code: Process exit code for the reason.
        message: The report that triggered termination, if any.
    """

    reason: TerminationReason
    exit_code: int
    message: Optional[ReportMessage] = None


class ReportTermination(SystemExit):
    """Process-ending termination raised by the default exit handler."""

    def __init__(self, event: TerminationEvent):
        self.event = event
        super().__init__(event.exit_code)


class FatalTermination(ReportTermination):
    """Termination caused by a FATAL report."""


class QuitCountTermination(ReportTermination):
    """Termination caused by reaching the max quit count."""


def raise_termination(event: TerminationEvent) -> None:
    """Default exit handler: raise the matching ReportTermination."""
    if event.reason is TerminationReason.FATAL:
        raise FatalTermination(event)
    raise QuitCountTermination(event)


class TerminationController:
    """Observes termination requests and ends the run exactly once.

    Args:
        sinks: Callable returning the sinks to flush on termination.
        exit_handler: Called with the TerminationEvent once sinks are
            flushed. Defaults to raise_termination.
    """

    def __init__(
        self,
        sinks: Optional[Callable[[], Iterable[Sink]]] = None,
        exit_handler: Optional[Callable[[TerminationEvent], None]] = None,
    ):
        self._sinks = sinks or (lambda: [])
        self._exit_handler = exit_handler or raise_termination
        self._lock = threading.Lock()
        self.state = TerminationState.RUNNING
        self.event: Optional[TerminationEvent] = None
        self.flush_failures = 0

    @property
    def running(self) -> bool:
        return self.state is TerminationState.RUNNING

    @property
    def exit_code(self) -> int:
        return self.event.exit_code if self.event else EXIT_OK

    def terminate(self, reason: TerminationReason, message: Optional[ReportMessage] = None) -> bool:
        """Request termination.

        Returns:
            False if termination was already requested (no-op). Otherwise the
            exit handler runs; if it returns instead of raising, True.
        """
        if not self.claim():
            return False
        self.finish(reason, message)
        return True

    def claim(self) -> bool:
        """Move RUNNING to TERMINATING. Returns False if already claimed."""
        with self._lock:
            if self.state is not TerminationState.RUNNING:
                return False
            self.state = TerminationState.TERMINATING
            return True

    def finish(self, reason: TerminationReason, message: Optional[ReportMessage] = None) -> None:
        """Flush sinks, record the event and call the exit handler.

        Must follow a successful claim().
        """
        event = TerminationEvent(reason=reason, exit_code=reason.exit_code, message=message)
        logger.info("Terminating: %s (exit code %d)", reason.value, event.exit_code)
        self._flush_sinks()

        with self._lock:
            self.event = event
            self.state = TerminationState.TERMINATED

        self._exit_handler(event)

    def _flush_sinks(self) -> None:
        for sink in self._sinks():
            try:
                sink.flush()
            except SinkError as e:
                self.flush_failures += 1
                logger.warning("Could not flush %s during termination: %s", sink.name, e)
