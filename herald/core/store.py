"""Report policy store.

PolicyStore owns the global defaults, the registry of known components and
the lock that serialises policy mutation, propagation, resolution and error
counting for one component tree.
"""

from __future__ import annotations

import logging
import threading
import weakref
from typing import TYPE_CHECKING, Iterator, Optional, Union

from herald.core.actions import Action, parse_actions
from herald.core.hierarchy import (
    PolicyMutation,
    SetDefaultFile,
    SetMaxQuitCount,
    SetSeverityAction,
    SetSeverityFile,
    SetVerbosityThreshold,
    propagate,
    walk,
)
from herald.core.policy import ConfigError, GlobalDefaults
from herald.core.sinks import Sink
from herald.models.severity import Severity, Verbosity

if TYPE_CHECKING:
    from herald.core.component import Component

logger = logging.getLogger(__name__)

LevelLike = Union[int, str, Verbosity]
ActionLike = Union[int, str, Action]
SeverityLike = Union[int, str, Severity]


def _level(value: LevelLike) -> int:
    try:
        return Verbosity.coerce(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(str(e)) from e


def _severity(value: SeverityLike) -> Severity:
    try:
        return Severity.coerce(value)
    except ValueError as e:
        raise ConfigError(str(e)) from e


def _actions(value: ActionLike) -> Action:
    try:
        return parse_actions(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(str(e)) from e


def _quit_count(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"Max quit count must be a non-negative integer, got {value!r}")
    return value


def _sink(value: Optional[Sink], allow_none: bool = True) -> Optional[Sink]:
    if value is None and allow_none:
        return None
    if not isinstance(value, Sink):
        raise ConfigError(f"Invalid sink handle: {value!r}")
    if value.closed:
        raise ConfigError(f"Sink {value.name!r} is closed")
    return value


class PolicyStore:
    """Report configuration for a tree of components.

    Every setter fails with ConfigError for a component that was not
    registered with this store. Setters overwrite silently (last write wins).
    Setters that take ``hier=True`` propagate the change to the whole subtree
    (see herald.core.hierarchy).

    Example:
        store = PolicyStore()
        top = Component("top")
        store.register(top)
        store.set_verbosity_threshold(top, "HIGH", hier=True)
        store.resolve_effective_verbosity(top, "DRV1")  # 300
    """

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.defaults = GlobalDefaults()
        self._components: "weakref.WeakValueDictionary[str, Component]" = weakref.WeakValueDictionary()
        self._error_count = 0

    # Registry

    def register(self, component: "Component") -> None:
        """Make a component (and any children it already has) known."""
        with self.lock:
            for node in walk(component):
                existing = self._components.get(node.full_name)
                if existing is not None and existing is not node:
                    raise ConfigError(f"Component {node.full_name!r} is already registered")
                self._components[node.full_name] = node

    def is_registered(self, component: "Component") -> bool:
        return self._components.get(component.full_name) is component

    def find(self, path: str) -> "Component":
        """Return the registered component with the given full name.

        Raises:
            ConfigError: If no such component exists.
        """
        component = self._components.get(path)
        if component is None:
            raise ConfigError(f"Unknown component: {path!r}")
        return component

    def components(self) -> list["Component"]:
        """All registered components, sorted by full name."""
        with self.lock:
            return sorted(self._components.values(), key=lambda c: c.full_name)

    def _check(self, component: "Component") -> "Component":
        if isinstance(component, str):
            return self.find(component)
        if not self.is_registered(component):
            raise ConfigError(f"Unknown component: {getattr(component, 'full_name', component)!r}")
        return component

    # Global defaults

    def set_global_verbosity(self, level: LevelLike) -> None:
        """Explicitly set the global verbosity. Always wins."""
        with self.lock:
            self.defaults.verbosity = _level(level)

    def default_global_verbosity(self, level: LevelLike) -> bool:
        """Set the global verbosity unless a startup override is in place.

        Returns:
            True if the value was applied.
        """
        with self.lock:
            if self.defaults.verbosity_locked:
                return False
            self.defaults.verbosity = _level(level)
            return True

    def apply_startup_verbosity(self, level: LevelLike) -> None:
        """Set the global verbosity from a startup parameter and lock it
        against later soft defaults."""
        with self.lock:
            self.defaults.verbosity = _level(level)
            self.defaults.verbosity_locked = True

    def set_global_action(self, severity: SeverityLike, actions: ActionLike) -> None:
        with self.lock:
            self.defaults.actions[_severity(severity)] = _actions(actions)

    def set_global_default_file(self, sink: Optional[Sink]) -> None:
        with self.lock:
            self.defaults.default_file = _sink(sink)

    def set_global_max_quit_count(self, count: int) -> None:
        with self.lock:
            self.defaults.max_quit_count = _quit_count(count)

    # Component setters

    def set_verbosity_threshold(self, component: "Component", level: LevelLike, hier: bool = False) -> None:
        self._mutate(component, SetVerbosityThreshold(_level(level)), hier)

    def set_id_verbosity(self, component: "Component", message_id: str, level: LevelLike) -> None:
        value = _level(level)
        with self.lock:
            self._check(component).policy.id_verbosity[message_id] = value

    def set_severity_action(
        self, component: "Component", severity: SeverityLike, actions: ActionLike, hier: bool = False
    ) -> None:
        self._mutate(component, SetSeverityAction(_severity(severity), _actions(actions)), hier)

    def set_id_action(self, component: "Component", message_id: str, actions: ActionLike) -> None:
        value = _actions(actions)
        with self.lock:
            self._check(component).policy.actions.by_id[message_id] = value

    def set_severity_id_action(
        self, component: "Component", severity: SeverityLike, message_id: str, actions: ActionLike
    ) -> None:
        key = (_severity(severity), message_id)
        value = _actions(actions)
        with self.lock:
            self._check(component).policy.actions.by_severity_id[key] = value

    def set_severity_file(
        self, component: "Component", severity: SeverityLike, sink: Optional[Sink], hier: bool = False
    ) -> None:
        self._mutate(component, SetSeverityFile(_severity(severity), _sink(sink)), hier)

    def set_default_file(self, component: "Component", sink: Optional[Sink], hier: bool = False) -> None:
        self._mutate(component, SetDefaultFile(_sink(sink)), hier)

    def set_max_quit_count(self, component: "Component", count: int, hier: bool = False) -> None:
        self._mutate(component, SetMaxQuitCount(_quit_count(count)), hier)

    def propagate(self, root: "Component", mutation: PolicyMutation) -> int:
        """Apply a mutation to root and its whole subtree atomically.

        Returns:
            Number of components updated.
        """
        with self.lock:
            return self._propagate(self._check(root), mutation)

    def _propagate(self, root: "Component", mutation: PolicyMutation) -> int:
        overwritten = []
        if isinstance(mutation, PolicyMutation):
            overwritten = [
                node.full_name
                for node in walk(root)
                if node is not root and mutation.field_name in node.policy.pinned_fields()
            ]
        count = propagate(root, mutation)
        logger.debug(
            "Propagated %s from %s to %d components", mutation.field_name, root.full_name, count
        )
        if overwritten:
            logger.debug("Overwrote pinned %s on %s", mutation.field_name, ", ".join(overwritten))
        return count

    def _mutate(self, component: "Component", mutation: PolicyMutation, hier: bool) -> None:
        with self.lock:
            component = self._check(component)
            if hier:
                self._propagate(component, mutation)
            else:
                mutation.apply(component.policy)

    # Resolution

    def resolve_effective_verbosity(self, component: "Component", message_id: Optional[str] = None) -> int:
        """Return the verbosity threshold that applies to a message.

        Precedence: id override on the component, the component's pinned
        threshold, the nearest ancestor's pinned threshold, global default.
        """
        with self.lock:
            component = self._check(component)
            if message_id is not None:
                override = component.policy.id_verbosity.get(message_id)
                if override is not None:
                    return override
            for node in component.lineage():
                if node.policy.verbosity is not None:
                    return node.policy.verbosity
            return self.defaults.verbosity

    def resolve_effective_action(
        self, component: "Component", severity: SeverityLike, message_id: Optional[str] = None
    ) -> Action:
        """Return the action bitmask that applies to a message.

        Precedence: severity+id override, id override, the component's pinned
        severity action, the nearest ancestor's pinned severity action,
        global per-severity default.
        """
        severity = _severity(severity)
        with self.lock:
            component = self._check(component)
            override = component.policy.actions.lookup_id(severity, message_id)
            if override is not None:
                return override
            for node in component.lineage():
                pinned = node.policy.actions.lookup_severity(severity)
                if pinned is not None:
                    return pinned
            return self.defaults.actions[severity]

    def resolve_file(self, component: "Component", severity: SeverityLike) -> Optional[Sink]:
        """Return the log sink for a message, or None if logging goes nowhere.

        The nearest component (self first) with a severity file or a default
        file wins; the severity file beats the default file on the same
        component. Falls back to the global default file.
        """
        severity = _severity(severity)
        with self.lock:
            component = self._check(component)
            for node in component.lineage():
                sink = node.policy.severity_file.get(severity)
                if sink is not None:
                    return sink
                if node.policy.default_file is not None:
                    return node.policy.default_file
            return self.defaults.default_file

    def resolve_max_quit_count(self, component: "Component") -> tuple[int, Optional["Component"]]:
        """Return the effective quit threshold and the component that pins it.

        The owner is None when the store-wide default applies.
        """
        with self.lock:
            component = self._check(component)
            for node in component.lineage():
                if node.policy.max_quit_count is not None:
                    return node.policy.max_quit_count, node
            return self.defaults.max_quit_count, None

    # Error tally

    def count_error(self, component: "Component") -> bool:
        """Record one counted ERROR/FATAL report from a component.

        Increments the component tally and the store-wide tally atomically.
        A quit threshold pinned in the component's lineage is compared with
        the component's own tally; the store-wide threshold with the
        store-wide tally.

        Returns:
            True exactly when the relevant tally has just reached a non-zero
            quit threshold.
        """
        with self.lock:
            component = self._check(component)
            component.policy.error_count += 1
            self._error_count += 1
            limit, owner = self.resolve_max_quit_count(component)
            if limit <= 0:
                return False
            tally = component.policy.error_count if owner is not None else self._error_count
            return tally == limit

    def error_count(self, component: Optional["Component"] = None) -> int:
        """Return a component's error tally, or the store-wide tally."""
        with self.lock:
            if component is None:
                return self._error_count
            return self._check(component).policy.error_count

    def reset_error_count(self, component: Optional["Component"] = None) -> None:
        """Reset one component's tally, or every tally when None."""
        with self.lock:
            if component is not None:
                component = self._check(component)
                self._error_count -= component.policy.error_count
                component.policy.error_count = 0
                return
            self._error_count = 0
            for node in self._components.values():
                node.policy.error_count = 0

    # Sinks

    def sinks(self) -> list[Sink]:
        """Every distinct sink referenced by a policy or the defaults."""
        with self.lock:
            found: list[Sink] = []
            for sink in self._iter_sinks():
                if sink not in found:
                    found.append(sink)
            return found

    def _iter_sinks(self) -> Iterator[Sink]:
        if self.defaults.default_file is not None:
            yield self.defaults.default_file
        for node in self._components.values():
            if node.policy.default_file is not None:
                yield node.policy.default_file
            yield from node.policy.severity_file.values()
