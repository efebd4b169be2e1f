"""Configuration loading and application for herald.

This module provides the ConfigLoader class for reading TOML configuration
files, the Config dataclasses for storing configuration values, and
apply_config() which writes a Config into a reporter's policy store.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

import tomli

from herald.core.policy import ConfigError
from herald.models.severity import Severity

if TYPE_CHECKING:
    from herald.core.reporter import Reporter

logger = logging.getLogger(__name__)

__all__ = [
    "ComponentConfig",
    "Config",
    "ConfigError",
    "ConfigLoader",
    "GeneralConfig",
    "apply_config",
]


def _str_map(data: dict, section: str) -> dict[str, str]:
    if not isinstance(data, dict):
        raise ConfigError(f"'{section}' must be a table")
    return {str(k): v for k, v in data.items()}


def _flag(data: dict, key: str, section: str) -> bool:
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise ConfigError(f"{section}.{key} must be true or false, got {value!r}")
    return value


def _count(data: dict, key: str, section: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"{section}.{key} must be a non-negative integer, got {value!r}")
    return value


def _level(data: dict, key: str, section: str) -> Optional[Union[int, str]]:
    value = data.get(key)
    if value is not None and (isinstance(value, bool) or not isinstance(value, (int, str))):
        raise ConfigError(f"{section}.{key} must be a verbosity name or number, got {value!r}")
    return value


def _path(data: dict, key: str, section: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ConfigError(f"{section}.{key} must be a string, got {value!r}")
    return value


@dataclass
class GeneralConfig:
    """Global settings.

    Attributes:
        verbosity: Soft global verbosity default (a startup override wins).
        max_quit_count: Store-wide quit threshold, 0 for unlimited.
        log_file: Global default log file.
    """

    verbosity: Optional[Union[int, str]] = None
    max_quit_count: Optional[int] = None
    log_file: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "GeneralConfig":
        """Create GeneralConfig from a dictionary."""
        if not isinstance(data, dict):
            raise ConfigError("'general' must be a table")
        return cls(
            verbosity=_level(data, "verbosity", "general"),
            max_quit_count=_count(data, "max_quit_count", "general"),
            log_file=_path(data, "log_file", "general"),
        )


@dataclass
class ComponentConfig:
    """Settings for one component (and optionally its subtree).

    Attributes:
        path: Full name of the component.
        hier: Propagate verbosity, actions, log file and quit count to the
            whole subtree.
        verbosity: Verbosity threshold.
        max_quit_count: Quit threshold counted on this component.
        log_file: Default log file.
        actions: Action spec per severity name.
        id_verbosity: Verbosity per message id.
        id_actions: Action spec per message id.
    """

    path: str
    hier: bool = False
    verbosity: Optional[Union[int, str]] = None
    max_quit_count: Optional[int] = None
    log_file: Optional[str] = None
    actions: dict[str, str] = field(default_factory=dict)
    id_verbosity: dict[str, Union[int, str]] = field(default_factory=dict)
    id_actions: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, path: str, data: dict) -> "ComponentConfig":
        """Create ComponentConfig from a dictionary."""
        if not isinstance(data, dict):
            raise ConfigError(f"components.{path!r} must be a table")
        section = f"components.{path!r}"
        return cls(
            path=path,
            hier=_flag(data, "hier", section),
            verbosity=_level(data, "verbosity", section),
            max_quit_count=_count(data, "max_quit_count", section),
            log_file=_path(data, "log_file", section),
            actions=_str_map(data.get("actions", {}), "actions"),
            id_verbosity=_str_map(data.get("id_verbosity", {}), "id_verbosity"),
            id_actions=_str_map(data.get("id_actions", {}), "id_actions"),
        )


@dataclass
class Config:
    """Complete herald configuration.

    Attributes:
        general: Global settings
        components: Per-component settings, in file order
    """

    general: GeneralConfig = field(default_factory=GeneralConfig)
    components: list[ComponentConfig] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Create Config from a dictionary.

        Args:
            data: Dictionary parsed from TOML file

        Returns:
            Config instance with values from dictionary
        """
        components = data.get("components", {})
        if not isinstance(components, dict):
            raise ConfigError("'components' must be a table")
        return cls(
            general=GeneralConfig.from_dict(data.get("general", {})),
            components=[ComponentConfig.from_dict(path, table) for path, table in components.items()],
        )


class ConfigLoader:
    """Loader for herald TOML configuration files.

    Example usage:
        loader = ConfigLoader()
        config = loader.load(Path("herald.toml"))

        # Or load defaults when no file exists
        config = loader.load(None)
    """

    def load(self, path: Optional[Path]) -> Config:
        """Load configuration from a TOML file.

        Args:
            path: Path to the TOML configuration file, or None to use defaults

        Returns:
            Config instance with values from file or defaults

        Raises:
            ConfigError: If the file contains invalid TOML or invalid sections
            FileNotFoundError: If the path is specified but file doesn't exist
        """
        if path is None:
            return Config()
        return self._build(self._read(path), path)

    def _read(self, path: Path) -> dict:
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        try:
            data = tomli.loads(path.read_text(encoding="utf-8"))
        except tomli.TOMLDecodeError as e:
            raise ConfigError(str(e), line=self._extract_line_number(str(e)), path=path) from e
        logger.debug("Loaded config %s", path)
        return data

    def _build(self, data: dict, path: Optional[Path] = None) -> Config:
        try:
            return Config.from_dict(data)
        except ConfigError as e:
            if path is None or e.path is not None:
                raise
            raise ConfigError(str(e), path=path) from e

    def _extract_line_number(self, error_message: str) -> Optional[int]:
        # tomli error messages often contain "at line N" or "line N"
        match = re.search(r"(?:at )?line (\d+)", error_message, re.IGNORECASE)
        if match:
            return int(match.group(1))
        return None

    def discover_configs(self, start_path: Optional[Path] = None) -> list[Path]:
        """Discover configuration files in order of precedence.

        Precedence order (lowest to highest):
        1. User config: ~/.config/herald/config.toml
        2. Local (start_path): <start_path>/herald.toml

        Args:
            start_path: Directory for the local config. Defaults to the
                current working directory.

        Returns:
            List of existing config file paths in precedence order (lowest first).
        """
        start_path = Path.cwd() if start_path is None else Path(start_path).resolve()

        configs: list[Path] = []
        user_config = Path(os.path.expanduser("~")) / ".config" / "herald" / "config.toml"
        if user_config.exists():
            configs.append(user_config)

        local_config = start_path / "herald.toml"
        if local_config.exists() and local_config.resolve() not in [c.resolve() for c in configs]:
            configs.append(local_config)

        return configs

    def load_merged(self, paths: Optional[list[Path]] = None, start_path: Optional[Path] = None) -> Config:
        """Load and deep-merge several config files.

        Later files override earlier ones; unspecified values fall through.

        Args:
            paths: Files to merge, lowest precedence first. Discovered with
                discover_configs(start_path) when None.
            start_path: Starting directory for discovery.

        Raises:
            ConfigError: If any config file is invalid.
        """
        if paths is None:
            paths = self.discover_configs(start_path)

        merged_data: dict = {}
        for config_path in paths:
            merged_data = self._deep_merge(merged_data, self._read(config_path))

        return self._build(merged_data, paths[-1] if len(paths) == 1 else None)

    def _deep_merge(self, base: dict, override: dict) -> dict:
        """Deep merge two dictionaries; override wins, nested dicts merge."""
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result


def apply_config(config: Config, reporter: "Reporter") -> None:
    """Write a Config into a reporter's policy store.

    Components named in the config must already exist. The general verbosity
    is applied as a soft default, so a startup override keeps precedence.

    Raises:
        ConfigError: For unknown components or invalid values.
    """
    store = reporter.policy
    general = config.general

    if general.verbosity is not None:
        if not store.default_global_verbosity(general.verbosity):
            logger.debug("Config verbosity %s ignored: startup override in effect", general.verbosity)
    if general.max_quit_count is not None:
        store.set_global_max_quit_count(general.max_quit_count)
    if general.log_file:
        store.set_global_default_file(reporter.open_file(general.log_file))

    for entry in config.components:
        component = store.find(entry.path)
        hier = entry.hier
        if entry.verbosity is not None:
            store.set_verbosity_threshold(component, entry.verbosity, hier=hier)
        if entry.max_quit_count is not None:
            store.set_max_quit_count(component, entry.max_quit_count, hier=hier)
        if entry.log_file:
            store.set_default_file(component, reporter.open_file(entry.log_file), hier=hier)
        for severity_name, actions in entry.actions.items():
            try:
                severity = Severity.coerce(severity_name)
            except ValueError as e:
                raise ConfigError(f"components.{entry.path!r}.actions: {e}") from e
            store.set_severity_action(component, severity, actions, hier=hier)
        for message_id, level in entry.id_verbosity.items():
            store.set_id_verbosity(component, message_id, level)
        for message_id, actions in entry.id_actions.items():
            store.set_id_action(component, message_id, actions)
