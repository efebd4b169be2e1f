"""Core logic for herald.

This module provides the reporting core:
- PolicyStore: Per-component verbosity/action/file/quit-count policy
- propagate: Forced top-down policy propagation over a subtree
- ReportDispatcher: Filtering and action fan-out for reports
- TerminationController: Fatal and quit-count termination
- Reporter: Facade wiring the pieces together
- ConfigLoader: Configuration file loading
"""

from herald.core.actions import DEFAULT_ACTIONS, Action, ActionTable, format_actions, parse_actions
from herald.core.component import Component
from herald.core.config import Config, ConfigLoader, apply_config
from herald.core.dispatcher import Outcome, ReportDispatcher
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
from herald.core.overrides import ActionOverride, VerbosityOverride
from herald.core.plugin import PluginError, PluginManager
from herald.core.policy import ConfigError, GlobalDefaults, Policy
from herald.core.reporter import Reporter
from herald.core.sinks import ConsoleSink, FileSink, Sink, SinkError
from herald.core.store import PolicyStore
from herald.core.summary import ReportCounts
from herald.core.termination import (
    EXIT_FATAL,
    EXIT_OK,
    EXIT_QUIT_COUNT,
    FatalTermination,
    QuitCountTermination,
    ReportTermination,
    TerminationController,
    TerminationEvent,
    TerminationReason,
    TerminationState,
)

__all__ = [
    "DEFAULT_ACTIONS",
    "EXIT_FATAL",
    "EXIT_OK",
    "EXIT_QUIT_COUNT",
    "Action",
    "ActionOverride",
    "ActionTable",
    "Component",
    "Config",
    "ConfigError",
    "ConfigLoader",
    "ConsoleSink",
    "FatalTermination",
    "FileSink",
    "GlobalDefaults",
    "Outcome",
    "Policy",
    "PolicyMutation",
    "PolicyStore",
    "PluginError",
    "PluginManager",
    "QuitCountTermination",
    "ReportCounts",
    "ReportDispatcher",
    "ReportTermination",
    "Reporter",
    "SetDefaultFile",
    "SetMaxQuitCount",
    "SetSeverityAction",
    "SetSeverityFile",
    "SetVerbosityThreshold",
    "Sink",
    "SinkError",
    "TerminationController",
    "TerminationEvent",
    "TerminationReason",
    "TerminationState",
    "VerbosityOverride",
    "apply_config",
    "format_actions",
    "parse_actions",
    "propagate",
    "walk",
]
