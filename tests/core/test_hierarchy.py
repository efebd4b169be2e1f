"""Tests for pre-order traversal and forced subtree propagation."""

import io
import logging

import pytest

from herald.core.actions import Action
from herald.core.component import Component
from herald.core.hierarchy import (
    SetDefaultFile,
    SetMaxQuitCount,
    SetSeverityAction,
    SetSeverityFile,
    SetVerbosityThreshold,
    propagate,
    walk,
)
from herald.core.policy import ConfigError, Policy
from herald.core.sinks import FileSink
from herald.models.severity import Severity, Verbosity


class TestWalk:
    def test_pre_order(self, tree):
        names = [c.name for c in walk(tree["top"])]
        assert names == ["top", "env", "agent", "drv", "mon", "scb"]

    def test_subtree_only(self, tree):
        names = [c.name for c in walk(tree["agent"])]
        assert names == ["agent", "drv", "mon"]

    def test_single_node(self):
        leaf = Component("leaf")
        assert list(walk(leaf)) == [leaf]


class TestPropagate:
    def test_overwrites_pinned_values(self, tree):
        """A child pinned to FULL is overwritten by a HIGH propagation."""
        tree["agent"].policy.verbosity = Verbosity.FULL
        count = propagate(tree["env"], SetVerbosityThreshold(Verbosity.HIGH))

        assert count == 5
        for name in ("env", "agent", "drv", "mon", "scb"):
            assert tree[name].policy.verbosity == Verbosity.HIGH
        assert tree["top"].policy.verbosity is None

    def test_leaves_id_overrides_alone(self, tree):
        tree["drv"].policy.id_verbosity["DRV1"] = Verbosity.DEBUG
        tree["drv"].policy.actions.by_id["NOISY"] = Action.NO_ACTION
        propagate(tree["top"], SetVerbosityThreshold(Verbosity.LOW))
        propagate(tree["top"], SetSeverityAction(Severity.INFO, Action.LOG))

        assert tree["drv"].policy.id_verbosity == {"DRV1": Verbosity.DEBUG}
        assert tree["drv"].policy.actions.by_id == {"NOISY": Action.NO_ACTION}
        assert tree["drv"].policy.actions.by_severity == {Severity.INFO: Action.LOG}

    def test_severity_action(self, tree):
        propagate(tree["agent"], SetSeverityAction(Severity.WARNING, Action.DISPLAY))
        assert tree["mon"].policy.actions.by_severity[Severity.WARNING] == Action.DISPLAY
        assert Severity.WARNING not in tree["scb"].policy.actions.by_severity

    def test_files(self, tree, tmp_path):
        sink = FileSink(tmp_path / "agent.log")
        propagate(tree["agent"], SetDefaultFile(sink))
        propagate(tree["agent"], SetSeverityFile(Severity.ERROR, sink))
        assert tree["drv"].policy.default_file is sink
        assert tree["mon"].policy.severity_file[Severity.ERROR] is sink

        propagate(tree["agent"], SetSeverityFile(Severity.ERROR, None))
        assert tree["drv"].policy.severity_file == {}

    def test_max_quit_count(self, tree):
        propagate(tree["env"], SetMaxQuitCount(3))
        assert tree["scb"].policy.max_quit_count == 3

    def test_rejects_non_mutation(self, tree):
        with pytest.raises(ConfigError, match="Cannot propagate"):
            propagate(tree["top"], lambda policy: None)


class TestStoreHierSetters:
    def test_set_verbosity_hier(self, reporter, tree):
        store = reporter.policy
        store.set_verbosity_threshold(tree["agent"], Verbosity.FULL)
        store.set_verbosity_threshold(tree["top"], Verbosity.HIGH, hier=True)

        for name in tree:
            assert store.resolve_effective_verbosity(tree[name], "ANY") == Verbosity.HIGH
        assert tree["agent"].policy.verbosity == Verbosity.HIGH

    def test_set_verbosity_non_hier_only_touches_component(self, reporter, tree):
        reporter.policy.set_verbosity_threshold(tree["env"], Verbosity.HIGH)
        assert tree["env"].policy.verbosity == Verbosity.HIGH
        assert tree["agent"].policy.verbosity is None

    def test_id_override_still_wins_after_propagation(self, reporter, tree):
        store = reporter.policy
        store.set_id_verbosity(tree["drv"], "DRV1", Verbosity.DEBUG)
        store.set_verbosity_threshold(tree["top"], Verbosity.LOW, hier=True)
        assert store.resolve_effective_verbosity(tree["drv"], "DRV1") == Verbosity.DEBUG
        assert store.resolve_effective_verbosity(tree["drv"], "DRV2") == Verbosity.LOW

    def test_store_propagate_unknown_root(self, reporter):
        with pytest.raises(ConfigError):
            reporter.policy.propagate(Component("stranger"), SetMaxQuitCount(1))

    def test_store_propagate(self, reporter, tree):
        assert reporter.policy.propagate(tree["agent"], SetMaxQuitCount(2)) == 3
        assert reporter.policy.resolve_max_quit_count(tree["mon"]) == (2, tree["mon"])

    def test_store_logs_overwritten_pins(self, reporter, tree, caplog):
        caplog.set_level(logging.DEBUG, logger="herald.core.store")
        store = reporter.policy
        store.set_verbosity_threshold(tree["drv"], Verbosity.HIGH)

        store.set_verbosity_threshold(tree["agent"], Verbosity.LOW, hier=True)

        assert "Propagated verbosity from top.env.agent to 3 components" in caplog.text
        assert "Overwrote pinned verbosity on top.env.agent.drv" in caplog.text


@pytest.mark.parametrize(
    "mutation",
    [
        SetVerbosityThreshold(Verbosity.HIGH),
        SetSeverityAction(Severity.ERROR, Action.DISPLAY),
        SetSeverityFile(Severity.ERROR, FileSink(io.StringIO())),
        SetDefaultFile(FileSink(io.StringIO())),
        SetMaxQuitCount(0),
    ],
    ids=lambda m: type(m).__name__,
)
def test_mutation_pins_its_field(mutation):
    policy = Policy()
    assert mutation.field_name not in policy.pinned_fields()
    mutation.apply(policy)
    assert policy.pinned_fields() == [mutation.field_name]
