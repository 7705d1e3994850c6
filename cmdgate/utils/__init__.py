"""Utility functions and helpers for cmdgate."""

from .logging import logger
from .helpers import (
    contains,
    normalize_windows_path,
    strip_quotes,
    resolve_path_argument,
    safe_file_write,
)
from .terminal import render_terminal

__all__ = [
    "logger",
    "contains",
    "normalize_windows_path",
    "strip_quotes",
    "resolve_path_argument",
    "safe_file_write",
    "render_terminal",
]
