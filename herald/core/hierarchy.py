"""Hierarchy traversal and forced top-down policy propagation.

Propagation applies one mutation to a component and every descendant,
overwriting whatever each of them had pinned. Only component-level fields
can be propagated; id-specific overrides have no mutation type and are
never touched.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, Optional

from herald.core.actions import Action
from herald.core.policy import ConfigError, Policy
from herald.models.severity import Severity

if TYPE_CHECKING:
    from herald.core.component import Component
    from herald.core.sinks import Sink


def walk(root: "Component") -> Iterator["Component"]:
    """Yield root and its descendants in pre-order.

    Parents come before their children and siblings keep insertion order.
    """
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


class PolicyMutation:
    """A single component-level policy change that can be propagated."""

    field_name: str = ""

    def apply(self, policy: Policy) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class SetVerbosityThreshold(PolicyMutation):
    level: int
    field_name = "verbosity"

    def apply(self, policy: Policy) -> None:
        policy.verbosity = self.level


@dataclass(frozen=True)
class SetSeverityAction(PolicyMutation):
    severity: Severity
    actions: Action
    field_name = "severity_action"

    def apply(self, policy: Policy) -> None:
        policy.actions.by_severity[self.severity] = self.actions


@dataclass(frozen=True)
class SetSeverityFile(PolicyMutation):
    severity: Severity
    sink: Optional["Sink"]
    field_name = "severity_file"

    def apply(self, policy: Policy) -> None:
        if self.sink is None:
            policy.severity_file.pop(self.severity, None)
        else:
            policy.severity_file[self.severity] = self.sink


@dataclass(frozen=True)
class SetDefaultFile(PolicyMutation):
    sink: Optional["Sink"]
    field_name = "default_file"

    def apply(self, policy: Policy) -> None:
        policy.default_file = self.sink


@dataclass(frozen=True)
class SetMaxQuitCount(PolicyMutation):
    count: int
    field_name = "max_quit_count"

    def apply(self, policy: Policy) -> None:
        policy.max_quit_count = self.count


def propagate(root: "Component", mutation: PolicyMutation) -> int:
    """Apply a mutation to root and all of its descendants.

    Pinned values below root are overwritten. The walk is not transactional;
    callers that need atomicity hold the store lock (see
    PolicyStore.propagate).

    Args:
        root: Component where propagation starts.
        mutation: The component-level change to apply.

    Returns:
        Number of components updated.

    Raises:
        ConfigError: If mutation is not a PolicyMutation.
    """
    if not isinstance(mutation, PolicyMutation):
        raise ConfigError(
            f"Cannot propagate {mutation!r}: only component-level policy mutations propagate"
        )

    count = 0
    for node in walk(root):
        mutation.apply(node.policy)
        count += 1
    return count
