"""Configuration manager for cmdgate."""

from typing import Dict, Any, Optional, Mapping
from pathlib import Path
import os
import sys

import yaml

from ..constants import (
    CONFIG_DIR, ENV_MAX_OUTPUT_LENGTH, ENV_DEFAULT_TIMEOUT_MS,
    DEFAULT_TIMEOUT_MS, DEFAULT_MAX_OUTPUT_LENGTH, DEFAULT_PTY_RETRIES,
    DEFAULT_PTY_BACKOFF_MS, DEFAULT_TIMEOUT_GRACE_MS, DEFAULT_FALLBACK_INHERIT_ENV,
    DEFAULT_TERMINAL_COLUMNS, DEFAULT_TERMINAL_ROWS, DEFAULT_ENABLE_DEBUG,
)
from ..commands.executor import ExecutorConfig
from ..commands.shell import acceptable_shell
from ..utils.logging import logger
from ..utils.helpers import safe_file_write
from .templates import CONFIG_TEMPLATE

# key: (default, minimum)
INTEGER_SETTINGS = {
    "default_timeout_ms": (DEFAULT_TIMEOUT_MS, 1),
    "max_output_length": (DEFAULT_MAX_OUTPUT_LENGTH, 1),
    "pty_retries": (DEFAULT_PTY_RETRIES, 0),
    "pty_backoff_ms": (DEFAULT_PTY_BACKOFF_MS, 0),
    "timeout_grace_ms": (DEFAULT_TIMEOUT_GRACE_MS, 0),
    "terminal_columns": (DEFAULT_TERMINAL_COLUMNS, 1),
    "terminal_rows": (DEFAULT_TERMINAL_ROWS, 1),
}

BOOLEAN_SETTINGS = {
    "fallback_inherit_env": DEFAULT_FALLBACK_INHERIT_ENV,
    "enable_debug": DEFAULT_ENABLE_DEBUG,
}

ENV_OVERRIDES = {
    ENV_MAX_OUTPUT_LENGTH: "max_output_length",
    ENV_DEFAULT_TIMEOUT_MS: "default_timeout_ms",
}


def render_config_template() -> str:
    """Fill the config template with the built-in defaults."""
    values = {key: default for key, (default, _) in INTEGER_SETTINGS.items()}
    values.update({key: str(default).lower() for key, default in BOOLEAN_SETTINGS.items()})
    return CONFIG_TEMPLATE.format(
        env_timeout=ENV_DEFAULT_TIMEOUT_MS,
        env_max_output=ENV_MAX_OUTPUT_LENGTH,
        **values,
    )


class ConfigManager:
    """Manages configuration loading, validation, and setup for cmdgate."""

    def __init__(self, config_dir: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None):
        """Initialize the configuration manager.

        Args:
            config_dir: Custom configuration directory path
            environ: Environment to read overrides from (defaults to os.environ)
        """
        self.config_dir = Path(config_dir) if config_dir else CONFIG_DIR
        self.config_file = self.config_dir / "config.yaml"
        self.environ = os.environ if environ is None else environ

        # Configuration data
        self._config: Optional[Dict[str, Any]] = None

    def initialize(self) -> bool:
        """Initialize configuration by setting up files and loading config.

        Returns:
            True if an existing config file was loaded, False if a fresh
            template was generated (and loaded)
        """
        existed = self._perform_initial_setup()
        self._config = self._load_config()
        self._apply_env_overrides(self._config)
        return existed

    def _perform_initial_setup(self) -> bool:
        """Creates the config directory and a default config file if missing.

        Returns:
            True if no setup was needed, False if the template was written
        """
        if self.config_file.exists():
            return True
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create config directory {self.config_dir}: {e}")
            return False
        if safe_file_write(self.config_file, render_config_template(), "config template"):
            logger.system(f"Configuration template generated: {self.config_file}")
        return False

    def _load_config(self) -> Dict[str, Any]:
        """Load and validate the configuration file."""
        config_data: Any = {}
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r') as f:
                    config_data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                logger.error(f"Error parsing YAML file {self.config_file}: {e}")
                sys.exit(1)
            except IOError as e:
                logger.error(f"Could not read {self.config_file}: {e}")
                sys.exit(1)
        else:
            logger.warning(f"Configuration file not found: {self.config_file}. Using defaults.")

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            logger.error(f"{self.config_file} is not a valid YAML dictionary.")
            sys.exit(1)

        for key, (default, minimum) in INTEGER_SETTINGS.items():
            config_data[key] = self._validate_integer(key, config_data.get(key, default), default, minimum)

        for key, default in BOOLEAN_SETTINGS.items():
            value = config_data.get(key, default)
            if not isinstance(value, bool):
                logger.warning(f"{key} in {self.config_file} must be true/false. Defaulting to {str(default).lower()}.")
                value = default
            config_data[key] = value

        shell = config_data.get("shell") or ""
        if not isinstance(shell, str):
            logger.warning(f"shell in {self.config_file} must be a string. Using the default shell.")
            shell = ""
        config_data["shell"] = shell or acceptable_shell()

        logger.debug(f"Debug mode set to: {config_data['enable_debug']}")
        logger.debug(f"Configuration loaded successfully from {self.config_file}")
        return config_data

    def _validate_integer(self, key: str, value: Any, default: int, minimum: int) -> int:
        """Type errors fall back to the default; range errors are fatal."""
        if isinstance(value, bool) or not isinstance(value, int):
            logger.warning(f"{key} ('{value}') in {self.config_file} must be an integer. Defaulting to {default}.")
            return default
        if value < minimum:
            bound = "a positive" if minimum > 0 else "a non-negative"
            logger.error(f"{key} ('{value}') in {self.config_file} must be {bound} integer.")
            sys.exit(1)
        return value

    def _apply_env_overrides(self, config_data: Dict[str, Any]) -> None:
        """Let environment variables override execution limits."""
        for variable, key in ENV_OVERRIDES.items():
            raw = self.environ.get(variable)
            if not raw:
                continue
            try:
                value = int(raw)
            except ValueError:
                logger.warning(f"Ignoring {variable}='{raw}': not an integer.")
                continue
            if value <= 0:
                logger.warning(f"Ignoring {variable}='{raw}': must be positive.")
                continue
            logger.debug(f"{key} overridden by {variable}: {value}")
            config_data[key] = value

    @property
    def config(self) -> Dict[str, Any]:
        """Get the current configuration."""
        self._require_loaded()
        return self._config.copy()

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        self._require_loaded()
        return self._config.get(key, default)

    def _require_loaded(self) -> None:
        if not self.is_initialized():
            raise RuntimeError("Configuration not loaded. Call initialize() first.")

    @property
    def executor_config(self) -> ExecutorConfig:
        """Typed view of the execution settings."""
        config = self.config
        return ExecutorConfig(
            shell=config["shell"],
            default_timeout_ms=config["default_timeout_ms"],
            max_output_length=config["max_output_length"],
            pty_retries=config["pty_retries"],
            pty_backoff_ms=config["pty_backoff_ms"],
            timeout_grace_ms=config["timeout_grace_ms"],
            fallback_inherit_env=config["fallback_inherit_env"],
            terminal_columns=config["terminal_columns"],
            terminal_rows=config["terminal_rows"],
        )

    def is_initialized(self) -> bool:
        """Check if the configuration has been initialized."""
        return self._config is not None


def create_config_manager(config_dir: Optional[Path] = None) -> ConfigManager:
    """Create and initialize a configuration manager.

    Args:
        config_dir: Custom configuration directory path

    Returns:
        Initialized ConfigManager instance
    """
    manager = ConfigManager(config_dir)
    if not manager.initialize():
        logger.system("Using default configuration. Edit the generated file to change it.")
    return manager
