"""Data models for herald."""

from herald.models.message import ReportMessage
from herald.models.severity import DEFAULT_VERBOSITY, Severity, Verbosity
from herald.models.trace import TraceRecord

__all__ = [
    "DEFAULT_VERBOSITY",
    "ReportMessage",
    "Severity",
    "TraceRecord",
    "Verbosity",
]
