"""Per-component report policy records.

A Policy holds only values that were explicitly set (pinned) on its
component. Unset fields are None or absent from their mapping; the effective
value is resolved lazily from ancestors and global defaults by PolicyStore.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from herald.core.actions import DEFAULT_ACTIONS, Action, ActionTable
from herald.models.severity import DEFAULT_VERBOSITY, Severity

if TYPE_CHECKING:
    from herald.core.sinks import Sink


class ConfigError(Exception):
    """Exception raised for invalid report configuration.

    Raised for unknown components, invalid sink handles, bad levels or
    action specs, and malformed configuration files.

    Attributes:
        message: Error description
        line: Line number where error occurred (if available)
        path: Path to the config file (if available)
    """

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        path: Optional[Path] = None
    ):
        self.line = line
        self.path = path

        parts = []
        if path:
            parts.append(f"Error in {path}")
        if line is not None:
            parts.append(f"at line {line}")
        if parts:
            full_message = f"{' '.join(parts)}: {message}"
        else:
            full_message = message

        super().__init__(full_message)


@dataclass
class Policy:
    """Pinned report settings of one component.

    Attributes:
        verbosity: Pinned verbosity threshold, or None to inherit.
        id_verbosity: Per-id verbosity overrides (never inherited).
        actions: Pinned action overrides by severity, id and severity+id.
        severity_file: Pinned log sink per severity.
        default_file: Pinned log sink for any severity, or None to inherit.
        max_quit_count: Pinned quit threshold (0 = unlimited), or None.
        error_count: Accepted ERROR/FATAL reports with COUNT on this component.
    """

    verbosity: Optional[int] = None
    id_verbosity: dict[str, int] = field(default_factory=dict)
    actions: ActionTable = field(default_factory=ActionTable)
    severity_file: dict[Severity, "Sink"] = field(default_factory=dict)
    default_file: Optional["Sink"] = None
    max_quit_count: Optional[int] = None
    error_count: int = 0

    def pinned_fields(self) -> list[str]:
        """Names of the component-level fields that are explicitly set."""
        pinned = []
        if self.verbosity is not None:
            pinned.append("verbosity")
        if self.actions.by_severity:
            pinned.append("severity_action")
        if self.severity_file:
            pinned.append("severity_file")
        if self.default_file is not None:
            pinned.append("default_file")
        if self.max_quit_count is not None:
            pinned.append("max_quit_count")
        return pinned


@dataclass
class GlobalDefaults:
    """Process-scoped defaults consulted when no component pins a value.

    Attributes:
        verbosity: Global verbosity threshold.
        verbosity_locked: True once a startup override set the verbosity;
            soft defaults can no longer change it.
        actions: Global action per severity.
        default_file: Global log sink, or None for no logging.
        max_quit_count: Store-wide quit threshold (0 = unlimited).
    """

    verbosity: int = DEFAULT_VERBOSITY
    verbosity_locked: bool = False
    actions: dict[Severity, Action] = field(default_factory=lambda: dict(DEFAULT_ACTIONS))
    default_file: Optional["Sink"] = None
    max_quit_count: int = 0
