"""Report actions and the per-component action registry.

An action is a bitmask of dispatch effects applied to an accepted message.
ActionTable stores the explicit (pinned) action overrides of one component:
by severity, by message id, and by severity+id pair.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntFlag
from typing import Optional, Union

from herald.models.severity import Severity


class Action(IntFlag):
    """Dispatch effects for an accepted message."""

    NO_ACTION = 0
    DISPLAY = 1
    LOG = 2
    COUNT = 4
    EXIT = 8
    CALLBACK = 16


ALL_ACTIONS = Action.DISPLAY | Action.LOG | Action.COUNT | Action.EXIT | Action.CALLBACK

# Hardcoded per-severity defaults, used when nothing is pinned anywhere
DEFAULT_ACTIONS: dict[Severity, Action] = {
    Severity.INFO: Action.DISPLAY,
    Severity.WARNING: Action.DISPLAY | Action.COUNT,
    Severity.ERROR: Action.DISPLAY | Action.COUNT,
    Severity.FATAL: Action.DISPLAY | Action.COUNT | Action.EXIT,
}


def parse_actions(value: Union[Action, int, str]) -> Action:
    """Convert an action spec to an Action bitmask.

    Accepts an Action, an int bitmask, or a string of flag names joined by
    ``|`` (e.g. ``"DISPLAY|LOG"``). Names are case-insensitive and may carry
    a ``UVM_`` prefix. ``"NO_ACTION"`` and the empty string give no action.

    Raises:
        ValueError: If a name is unknown or the int has bits outside the mask.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid action: {value!r}")
    if isinstance(value, Action):
        return value
    if isinstance(value, int):
        if value < 0 or value & ~int(ALL_ACTIONS):
            raise ValueError(f"Invalid action bitmask: {value}")
        return Action(value)

    result = Action.NO_ACTION
    for token in value.split("|"):
        name = token.strip().upper()
        if not name:
            continue
        if name.startswith("UVM_"):
            name = name[4:]
        if name in ("NO_ACTION", "NONE"):
            continue
        try:
            result |= Action[name]
        except KeyError as e:
            raise ValueError(f"Unknown action: {token.strip()!r}") from e
    return result


def format_actions(actions: Action) -> str:
    """Render an action bitmask as ``DISPLAY|COUNT`` style text."""
    names = [flag.name for flag in Action if flag and flag in actions]
    return "|".join(names) if names else "NO_ACTION"


@dataclass
class ActionTable:
    """Pinned action overrides of a single component.

    Attributes:
        by_severity: Component-level action per severity.
        by_id: Action per message id, regardless of severity.
        by_severity_id: Action per (severity, id) pair.
    """

    by_severity: dict[Severity, Action] = field(default_factory=dict)
    by_id: dict[str, Action] = field(default_factory=dict)
    by_severity_id: dict[tuple[Severity, str], Action] = field(default_factory=dict)

    def lookup_id(self, severity: Severity, message_id: Optional[str]) -> Optional[Action]:
        """Return the id-specific override for a message, if any.

        A severity+id override wins over a plain id override.
        """
        if message_id is None:
            return None
        pair = self.by_severity_id.get((severity, message_id))
        if pair is not None:
            return pair
        return self.by_id.get(message_id)

    def lookup_severity(self, severity: Severity) -> Optional[Action]:
        return self.by_severity.get(severity)
