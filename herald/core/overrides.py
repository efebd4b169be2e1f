"""Command-line style policy overrides.

Overrides are short comma-separated specs, applied after configuration
files:

    COMPONENT,ID,VERBOSITY            e.g. "top.env.*,DRV1,HIGH"
    COMPONENT,ID,SEVERITY,ACTIONS     e.g. "top.*,_ALL_,WARNING,DISPLAY|LOG"

COMPONENT is a glob matched against full component names. ID is a message
id, or ``_ALL_`` to set the component-level threshold or severity action
instead of an id override.
"""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass
from typing import TYPE_CHECKING

from herald.core.actions import Action, parse_actions
from herald.core.policy import ConfigError
from herald.models.severity import Severity, Verbosity

if TYPE_CHECKING:
    from herald.core.component import Component
    from herald.core.store import PolicyStore

ALL_IDS = "_ALL_"


@dataclass(frozen=True)
class VerbosityOverride:
    pattern: str
    message_id: str
    level: int

    @classmethod
    def parse(cls, spec: str) -> "VerbosityOverride":
        """Parse a ``COMPONENT,ID,VERBOSITY`` spec.

        Raises:
            ConfigError: If the spec is malformed.
        """
        parts = [p.strip() for p in spec.split(",")]
        if len(parts) != 3 or not all(parts):
            raise ConfigError(f"Invalid verbosity override {spec!r}: expected COMPONENT,ID,VERBOSITY")
        try:
            level = Verbosity.coerce(parts[2])
        except ValueError as e:
            raise ConfigError(f"Invalid verbosity override {spec!r}: {e}") from e
        return cls(pattern=parts[0], message_id=parts[1], level=level)

    def apply(self, store: "PolicyStore") -> list["Component"]:
        matched = _match(store, self.pattern)
        for component in matched:
            if self.message_id == ALL_IDS:
                store.set_verbosity_threshold(component, self.level)
            else:
                store.set_id_verbosity(component, self.message_id, self.level)
        return matched


@dataclass(frozen=True)
class ActionOverride:
    pattern: str
    message_id: str
    severity: Severity
    actions: Action

    @classmethod
    def parse(cls, spec: str) -> "ActionOverride":
        """Parse a ``COMPONENT,ID,SEVERITY,ACTIONS`` spec.

        Raises:
            ConfigError: If the spec is malformed.
        """
        parts = [p.strip() for p in spec.split(",")]
        if len(parts) != 4 or not all(parts[:3]):
            raise ConfigError(
                f"Invalid action override {spec!r}: expected COMPONENT,ID,SEVERITY,ACTIONS"
            )
        try:
            severity = Severity.coerce(parts[2])
            actions = parse_actions(parts[3])
        except ValueError as e:
            raise ConfigError(f"Invalid action override {spec!r}: {e}") from e
        return cls(pattern=parts[0], message_id=parts[1], severity=severity, actions=actions)

    def apply(self, store: "PolicyStore") -> list["Component"]:
        matched = _match(store, self.pattern)
        for component in matched:
            if self.message_id == ALL_IDS:
                store.set_severity_action(component, self.severity, self.actions)
            else:
                store.set_severity_id_action(component, self.severity, self.message_id, self.actions)
        return matched


def _match(store: "PolicyStore", pattern: str) -> list["Component"]:
    matched = [c for c in store.components() if fnmatch.fnmatchcase(c.full_name, pattern)]
    if not matched:
        raise ConfigError(f"No component matches {pattern!r}")
    return matched
