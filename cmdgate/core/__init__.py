"""Core application logic for cmdgate."""

from .application import CmdGate, create_application
from .tool import BashTool, ToolContext, create_bash_tool

__all__ = [
    "CmdGate",
    "create_application",
    "BashTool",
    "ToolContext",
    "create_bash_tool",
]
