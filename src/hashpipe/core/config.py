"""
Layered configuration for a hashpipe run.

Loads configuration from multiple sources with this precedence (highest wins):
    1. Command-line overrides (applied by the CLI through ``Config.set``)
    2. Environment variables (HASHPIPE_SECTION__KEY)
    3. Config file (YAML or JSON)
    4. Built-in defaults

Usage:
    config = Config(config_file="hashpipe.yaml")
    config.set("irc.server", "irc.libera.chat")

    config.get("irc.nick")           # dot-notation access
    settings = config.validated()    # typed HashpipeConfig
"""

from __future__ import annotations

import json
import os
from typing import TYPE_CHECKING, Any

import yaml

from hashpipe.core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from hashpipe.core.config_schema import HashpipeConfig

_DEFAULT_ENV_PREFIX = "HASHPIPE_"

DEFAULT_NICK = "hashpipe"
DEFAULT_CHANNEL = "#hashpipe"
DEFAULT_QUIT_MESSAGE = "#|"


class Config:
    """
    Central configuration manager.

    Loads and merges configuration from defaults, a config file, and
    environment variables. Env vars use double-underscore to denote nesting:
    HASHPIPE_IRC__SERVER=irc.libera.chat -> config["irc"]["server"]
    """

    def __init__(
        self,
        config_file: str | None = None,
        env_prefix: str = _DEFAULT_ENV_PREFIX,
        defaults: dict[str, Any] | None = None,
    ):
        """
        Args:
            config_file: Path to YAML or JSON configuration file.
            env_prefix: Prefix for environment variable overrides.
            defaults: Additional default values to merge.
        """
        self.config_file = config_file
        self.env_prefix = env_prefix or ""
        self._extra_defaults = defaults or {}
        self.config_data: dict[str, Any] = {}

        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from all sources."""
        self.config_data = self._get_default_config()

        if self._extra_defaults:
            self._update_dict(self.config_data, self._extra_defaults)

        if self.config_file:
            if not os.path.exists(self.config_file):
                raise ConfigurationError(f"Config file not found: {self.config_file}")
            file_config = self._load_file(self.config_file)
            if not isinstance(file_config, dict):
                raise ConfigurationError(f"Config file must contain a mapping: {self.config_file}")
            self._update_dict(self.config_data, file_config)

        # Env vars override the file
        self._load_from_env()

    @staticmethod
    def _get_default_config() -> dict[str, Any]:
        """Build default configuration.

        ``irc.channels`` stays None so the schema can pick the default
        channel list, which depends on ``pipe.raw_in``.
        """
        return {
            "irc": {
                "server": None,
                "port": None,
                "tls": False,
                "nick": DEFAULT_NICK,
                "channels": None,
                "quit_message": DEFAULT_QUIT_MESSAGE,
            },
            "pipe": {
                "raw_out": False,
                "raw_in": False,
                "quiet": False,
            },
            "logging": {
                "verbosity": 0,
                "file": None,
            },
        }

    @staticmethod
    def _load_file(path: str) -> Any:
        """Load a YAML or JSON config file."""
        ext = os.path.splitext(path)[1].lower()
        try:
            with open(path) as f:
                if ext in (".yaml", ".yml"):
                    return yaml.safe_load(f) or {}
                elif ext == ".json":
                    return json.load(f)
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ConfigurationError(f"Could not parse config file {path}: {exc}") from exc
        raise ConfigurationError(f"Unsupported config file type: {path} (use .yaml, .yml or .json)")

    def _update_dict(self, target: dict, source: dict) -> None:
        """Recursively merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._update_dict(target[key], value)
            else:
                target[key] = value

    def _load_from_env(self) -> None:
        """Override config values from environment variables."""
        if not self.env_prefix:
            return
        for env_key, env_value in os.environ.items():
            if not env_key.startswith(self.env_prefix):
                continue
            config_key = env_key[len(self.env_prefix) :].lower()
            key_parts = config_key.split("__")

            current = self.config_data
            for part in key_parts[:-1]:
                if not isinstance(current.get(part), dict):
                    current[part] = {}
                current = current[part]
            current[key_parts[-1]] = env_value

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a config value by dot-notation path.

        Args:
            key_path: e.g. "irc.server", "pipe.raw_in"
            default: Returned when key is not found.
        """
        parts = key_path.split(".")
        current = self.config_data
        for part in parts:
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    def set(self, key_path: str, value: Any) -> None:
        """Set a config value by dot-notation path, creating intermediate dicts."""
        parts = key_path.split(".")
        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]
        current[parts[-1]] = value

    def validated(self) -> HashpipeConfig:
        """Return the merged configuration as a validated ``HashpipeConfig``.

        Raises:
            ConfigurationError: If any value fails validation.
        """
        from pydantic import ValidationError

        from hashpipe.core.config_schema import HashpipeConfig

        try:
            return HashpipeConfig.model_validate(self.config_data)
        except ValidationError as exc:
            raise ConfigurationError(_format_validation_error(exc)) from exc


def _format_validation_error(exc: Any) -> str:
    """Flatten pydantic errors into one line per field."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "config"
        problems.append(f"{location}: {error['msg']}")
    return "Invalid configuration: " + "; ".join(problems)
