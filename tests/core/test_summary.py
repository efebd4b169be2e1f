"""Tests for report tallies and the summary printout."""

import io

from rich.console import Console

from herald.core.summary import ReportCounts, print_summary
from herald.models.message import ReportMessage
from herald.models.severity import Severity


def _msg(msg_id, severity):
    return ReportMessage(id=msg_id, severity=severity, text="", component="top")


def _render(counts, **kwargs):
    out = io.StringIO()
    print_summary(Console(file=out, color_system=None, width=120), counts, **kwargs)
    return out.getvalue()


class TestReportCounts:
    def test_starts_at_zero_for_every_severity(self):
        counts = ReportCounts()
        assert counts.by_severity == {s: 0 for s in Severity}
        assert counts.total == 0

    def test_add(self):
        counts = ReportCounts()
        counts.add(_msg("A", Severity.INFO))
        counts.add(_msg("A", Severity.INFO))
        counts.add(_msg("B", Severity.ERROR))
        assert counts.by_severity[Severity.INFO] == 2
        assert counts.by_severity[Severity.ERROR] == 1
        assert counts.by_id == {"A": 2, "B": 1}
        assert counts.total == 3

    def test_sorted_ids(self):
        counts = ReportCounts(by_id={"b": 1, "a": 1, "c": 5})
        assert counts.sorted_ids() == [("c", 5), ("a", 1), ("b", 1)]

    def test_to_dict(self):
        counts = ReportCounts()
        counts.add(_msg("A", Severity.WARNING))
        counts.add_dropped()
        data = counts.to_dict()
        assert data["by_severity"]["WARNING"] == 1
        assert data["by_id"] == {"A": 1}
        assert data["dropped"] == 1


class TestPrintSummary:
    def test_lists_severities_and_ids(self):
        counts = ReportCounts()
        counts.add(_msg("MISMATCH", Severity.ERROR))
        counts.add(_msg("MISMATCH", Severity.ERROR))
        counts.add(_msg("CFG", Severity.INFO))

        text = _render(counts)

        assert "Report Summary" in text
        assert "ERROR    : 2" in text
        assert "FATAL    : 0" in text
        assert "[MISMATCH] 2" in text
        assert "Total: 3 reports" in text

    def test_quit_count_line(self):
        assert "Quit count : 2 of 5" in _render(ReportCounts(), quit_count=(2, 5))
        assert "Quit count : 0 of unlimited" in _render(ReportCounts(), quit_count=(0, 0))

    def test_failures_line_only_when_nonzero(self):
        assert "Sink failures" not in _render(ReportCounts())
        counts = ReportCounts()
        counts.add_sink_failure()
        assert "Sink failures: 1" in _render(counts)
