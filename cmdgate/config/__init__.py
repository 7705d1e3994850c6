"""Configuration management for cmdgate."""

from .manager import ConfigManager, create_config_manager, render_config_template
from .templates import CONFIG_TEMPLATE

__all__ = [
    "ConfigManager",
    "create_config_manager",
    "render_config_template",
    "CONFIG_TEMPLATE",
]
