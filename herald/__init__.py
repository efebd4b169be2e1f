"""herald - hierarchical message reporting for component trees."""

__version__ = "0.1.0"

from herald.core import Action, Component, ConfigError, Outcome, Reporter
from herald.models import Severity, Verbosity

__all__ = [
    "Action",
    "Component",
    "ConfigError",
    "Outcome",
    "Reporter",
    "Severity",
    "Verbosity",
    "__version__",
]
