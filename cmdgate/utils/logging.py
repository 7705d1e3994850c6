"""Logging utilities for cmdgate."""

import sys
import datetime
from typing import TextIO

from ..constants import (
    CLR_RESET, CLR_CYAN, CLR_BOLD_CYAN, CLR_MAGENTA, CLR_BOLD_MAGENTA,
    CLR_BLUE, CLR_BOLD_BLUE, CLR_YELLOW, CLR_BOLD_YELLOW, CLR_WHITE,
    CLR_BOLD_WHITE, CLR_RED, CLR_BOLD_RED
)


class Logger:
    """Centralized logging for cmdgate with color coding and level management."""

    def __init__(self, debug_enabled: bool = False):
        self.debug_enabled = debug_enabled
        self.system_to_stderr = False

        # Level color mapping
        self.level_map = {
            "System": (CLR_CYAN, CLR_BOLD_CYAN),
            "Command": (CLR_YELLOW, CLR_BOLD_YELLOW),
            "Permission": (CLR_MAGENTA, CLR_BOLD_MAGENTA),
            "Process": (CLR_BLUE, CLR_BOLD_BLUE),
            "Error": (CLR_RED, CLR_BOLD_RED),
            "Warning": (CLR_YELLOW, CLR_BOLD_YELLOW),
            "Debug": (CLR_WHITE, CLR_BOLD_WHITE),
        }

    def set_debug(self, enabled: bool) -> None:
        """Enable or disable debug logging."""
        self.debug_enabled = enabled

    def set_system_to_stderr(self, enabled: bool) -> None:
        """Send System messages to stderr while stdout carries command output."""
        self.system_to_stderr = enabled

    def get_current_timestamp(self) -> str:
        """Returns the current timestamp in YYYY-MM-DD HH:MM:SS format."""
        return datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')

    def log_message(self, level: str, message: str) -> None:
        """Logs a message with a given level and color coding."""
        if level == "Debug" and not self.debug_enabled:
            return

        timestamp = self.get_current_timestamp()

        if level in self.level_map:
            header_color, content_color = self.level_map[level]
        else:
            header_color, content_color = CLR_WHITE, CLR_BOLD_WHITE

        # Diagnostics go to stderr so command output on stdout stays clean
        to_stdout = level == "System" and not self.system_to_stderr
        stream: TextIO = sys.stdout if to_stdout else sys.stderr

        header_text = f"{header_color}[{timestamp}] [{level}]: {CLR_RESET}"

        indent_length = len(f"[{timestamp}] [{level}]: ")
        indent_str = ' ' * indent_length

        lines = message.splitlines()
        if not lines:
            print(f"{header_text}{content_color}{CLR_RESET}", file=stream)
            return

        print(f"{header_text}{content_color}{lines[0]}{CLR_RESET}", file=stream)

        # Continuation lines line up under the first one
        for line in lines[1:]:
            print(f"{indent_str}{content_color}{line}{CLR_RESET}", file=stream)

        stream.flush()

    def system(self, message: str) -> None:
        """Log a system message."""
        self.log_message("System", message)

    def command(self, message: str) -> None:
        """Log a command analysis message."""
        self.log_message("Command", message)

    def permission(self, message: str) -> None:
        """Log a permission request or decision."""
        self.log_message("Permission", message)

    def process(self, message: str) -> None:
        """Log a process lifecycle message (spawn, exit, kill)."""
        self.log_message("Process", message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.log_message("Error", message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.log_message("Warning", message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.log_message("Debug", message)


# Global logger instance (debug setting is applied by the application)
logger = Logger()
