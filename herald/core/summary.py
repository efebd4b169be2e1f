"""Report tallies and the end-of-run summary.

ReportCounts records how many reports were accepted per severity and per
message id, how many were dropped by verbosity filtering, and how many LOG
or CALLBACK effects failed. The summary printout lists the counts by
severity, then by id.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Optional

from rich.console import Console

from herald.models.message import ReportMessage
from herald.models.severity import Severity


@dataclass
class ReportCounts:
    """Tallies for one reporter.

    Attributes:
        by_severity: Accepted reports per severity.
        by_id: Accepted reports per message id.
        dropped: Reports filtered out by verbosity or issued after
            termination.
        sink_failures: LOG effects lost to sink errors.
        callback_failures: CALLBACK effects that raised.
    """

    by_severity: dict[Severity, int] = field(default_factory=lambda: {s: 0 for s in Severity})
    by_id: dict[str, int] = field(default_factory=dict)
    dropped: int = 0
    sink_failures: int = 0
    callback_failures: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add(self, message: ReportMessage) -> None:
        with self._lock:
            self.by_severity[message.severity] += 1
            self.by_id[message.id] = self.by_id.get(message.id, 0) + 1

    def add_dropped(self) -> None:
        with self._lock:
            self.dropped += 1

    def add_sink_failure(self) -> None:
        with self._lock:
            self.sink_failures += 1

    def add_callback_failure(self) -> None:
        with self._lock:
            self.callback_failures += 1

    @property
    def total(self) -> int:
        return sum(self.by_severity.values())

    def sorted_ids(self) -> list[tuple[str, int]]:
        """Ids sorted by count descending, then name."""
        return sorted(self.by_id.items(), key=lambda x: (-x[1], x[0]))

    def to_dict(self) -> dict:
        return {
            "by_severity": {s.name: n for s, n in self.by_severity.items()},
            "by_id": dict(self.by_id),
            "dropped": self.dropped,
            "sink_failures": self.sink_failures,
            "callback_failures": self.callback_failures,
        }


def print_summary(
    console: Console,
    counts: ReportCounts,
    quit_count: Optional[tuple[int, int]] = None,
) -> None:
    """Print the report summary.

    Args:
        console: Rich console for output.
        counts: Tallies to print.
        quit_count: Optional (error tally, max quit count) pair.
    """
    console.print()
    console.print("=" * 70)
    console.print("Report Summary")
    console.print("=" * 70)

    if quit_count is not None:
        tally, limit = quit_count
        limit_text = str(limit) if limit > 0 else "unlimited"
        console.print(f"\n Quit count : {tally} of {limit_text}")

    console.print("\n ** Report counts by severity")
    for severity in Severity:
        console.print(f"  {severity.name:8s} : {counts.by_severity[severity]}")

    sorted_ids = counts.sorted_ids()
    if sorted_ids:
        console.print("\n ** Report counts by id")
        # 4 ids per row
        for i in range(0, len(sorted_ids), 4):
            row = sorted_ids[i:i+4]
            formatted = [f"  [{msg_id}] {count}" for msg_id, count in row]
            console.print("".join(f"{item:18s}" for item in formatted), markup=False)

    if counts.dropped or counts.sink_failures or counts.callback_failures:
        console.print()
        console.print(f" Dropped: {counts.dropped}  Sink failures: {counts.sink_failures}  "
                      f"Callback failures: {counts.callback_failures}")

    console.print()
    console.print("=" * 70)
    console.print(f"Total: {counts.total} reports")
    console.print("=" * 70)
