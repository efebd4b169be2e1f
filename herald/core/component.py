"""Component tree nodes.

A Component is anything that can report. It owns its children and a policy
record; the parent link is a weak back-reference so the tree has no
ownership cycles.
"""

from __future__ import annotations

import weakref
from typing import TYPE_CHECKING, Iterator, Optional

from herald.core.policy import ConfigError, Policy
from herald.models.severity import Severity, Verbosity

if TYPE_CHECKING:
    from herald.core.dispatcher import Outcome
    from herald.core.reporter import Reporter


class Component:
    """A node in the reporting hierarchy.

    Children inherit the parent's reporter. A root component is attached to
    a reporter explicitly (see Reporter.create_component); a root created
    without one is detached and cannot report or be configured.

    Args:
        name: Leaf name. Must be non-empty and must not contain ".".
        parent: Owning parent component, or None for a root.
        reporter: Reporter for a root component. Ignored for children.

    Raises:
        ValueError: If the name is invalid or already used by a sibling.
    """

    def __init__(
        self,
        name: str,
        parent: Optional["Component"] = None,
        reporter: Optional["Reporter"] = None,
    ):
        if not name or "." in name:
            raise ValueError(f"Invalid component name: {name!r}")
        if parent is not None and parent.get_child(name) is not None:
            raise ValueError(f"Component {parent.full_name!r} already has a child named {name!r}")

        self.name = name
        self.children: list[Component] = []
        self.policy = Policy()
        self._parent: Optional[weakref.ref[Component]] = None

        if parent is not None:
            self._parent = weakref.ref(parent)
            reporter = parent.reporter
            parent.children.append(self)

        self.reporter = reporter
        if reporter is not None:
            reporter.policy.register(self)

    @property
    def parent(self) -> Optional["Component"]:
        if self._parent is None:
            return None
        return self._parent()

    @property
    def full_name(self) -> str:
        parent = self.parent
        if parent is None:
            return self.name
        return f"{parent.full_name}.{self.name}"

    def get_child(self, name: str) -> Optional["Component"]:
        for child in self.children:
            if child.name == name:
                return child
        return None

    def lineage(self) -> Iterator["Component"]:
        """Yield this component, then each ancestor up to the root."""
        node: Optional[Component] = self
        while node is not None:
            yield node
            node = node.parent

    def __repr__(self) -> str:
        return f"Component({self.full_name!r})"

    # Report call shapes. Only info takes a verbosity.

    def info(
        self,
        message_id: str,
        text: str,
        verbosity: int = Verbosity.MEDIUM,
        filename: Optional[str] = None,
        line: Optional[int] = None,
    ) -> "Outcome":
        return self._report(message_id, Severity.INFO, verbosity, text, filename, line)

    def warning(self, message_id: str, text: str, filename: Optional[str] = None, line: Optional[int] = None) -> "Outcome":
        return self._report(message_id, Severity.WARNING, Verbosity.NONE, text, filename, line)

    def error(self, message_id: str, text: str, filename: Optional[str] = None, line: Optional[int] = None) -> "Outcome":
        return self._report(message_id, Severity.ERROR, Verbosity.NONE, text, filename, line)

    def fatal(self, message_id: str, text: str, filename: Optional[str] = None, line: Optional[int] = None) -> "Outcome":
        return self._report(message_id, Severity.FATAL, Verbosity.NONE, text, filename, line)

    def _report(self, message_id, severity, verbosity, text, filename, line) -> "Outcome":
        if self.reporter is None:
            raise ConfigError(f"Component {self.full_name!r} is not attached to a reporter")
        return self.reporter.report(
            self, message_id, severity, verbosity, text, filename=filename, line=line
        )
