"""
cmdgate - supervised, permission-gated shell command execution for coding agents.

This package turns a shell command proposed by a model into a supervised OS
process: the command is parsed to find the programs it runs and the paths it
touches outside the project, each of those needs a permission decision, and
only then does it run under a pseudo-terminal with a timeout, cancellation
and an output limit.
"""

__version__ = "1.0.0"
__author__ = "cmdgate Team"

# Main API imports
from .core.application import CmdGate, create_application
from .core.tool import BashTool, ToolContext, create_bash_tool
from .config.manager import ConfigManager, create_config_manager

__all__ = [
    "CmdGate",
    "create_application",
    "BashTool",
    "ToolContext",
    "create_bash_tool",
    "ConfigManager",
    "create_config_manager",
    "__version__",
]
