"""Severity and verbosity scales for herald.

Severity is a closed, totally ordered classification of a message. Verbosity
is an open integer scale with named tiers; lower numbers are higher priority.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Union


def _normalize_name(name: str) -> str:
    normalized = name.strip().upper()
    if normalized.startswith("UVM_"):
        normalized = normalized[4:]
    return normalized


class Severity(IntEnum):
    """Message severity, ordered by increasing criticality."""

    INFO = 0
    WARNING = 1
    ERROR = 2
    FATAL = 3

    @property
    def counts_as_error(self) -> bool:
        """True for severities that feed the error tally."""
        return self >= Severity.ERROR

    @property
    def style(self) -> str:
        """Rich style string used by the console sink."""
        return _SEVERITY_STYLES[self]

    @classmethod
    def coerce(cls, value: Union["Severity", int, str]) -> "Severity":
        """Convert a member, its value, or its name to a Severity.

        Names are case-insensitive and may carry a ``UVM_`` prefix.

        Raises:
            ValueError: If the value does not name a severity.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[_normalize_name(value)]
            except KeyError as e:
                raise ValueError(f"Unknown severity: {value!r}") from e
        try:
            return cls(value)
        except ValueError as e:
            raise ValueError(f"Unknown severity: {value!r}") from e


_SEVERITY_STYLES = {
    Severity.INFO: "cyan",
    Severity.WARNING: "yellow",
    Severity.ERROR: "red bold",
    Severity.FATAL: "white on red bold",
}


class Verbosity(IntEnum):
    """Named verbosity tiers.

    Thresholds and message verbosities are plain ints, so values between the
    named tiers are allowed.
    """

    NONE = 0
    LOW = 100
    MEDIUM = 200
    HIGH = 300
    FULL = 400
    DEBUG = 500

    @classmethod
    def coerce(cls, value: Union["Verbosity", int, str]) -> int:
        """Convert a tier name or a non-negative integer to a verbosity level.

        Raises:
            ValueError: If the value is negative or not a known tier name.
        """
        if isinstance(value, bool):
            raise ValueError(f"Invalid verbosity: {value!r}")
        if isinstance(value, str):
            text = value.strip()
            if text.isdigit():
                return int(text)
            try:
                return cls[_normalize_name(text)]
            except KeyError as e:
                raise ValueError(f"Unknown verbosity: {value!r}") from e
        level = int(value)
        if level < 0:
            raise ValueError(f"Verbosity must be non-negative, got {level}")
        return level

    @classmethod
    def describe(cls, level: int) -> str:
        """Return the tier name for a level, or the number itself."""
        try:
            return cls(level).name
        except ValueError:
            return str(level)


DEFAULT_VERBOSITY = Verbosity.MEDIUM
