"""Helper utility functions for cmdgate."""

import os
import re
import sys
from pathlib import Path
from typing import Optional

from ..utils.logging import logger

_POSIX_DRIVE_RE = re.compile(r"^/([a-zA-Z])/")


def contains(root: str, candidate: str) -> bool:
    """Check whether candidate is root itself or lives below it.

    Both paths are compared as given; callers canonicalize first.
    """
    try:
        relative = os.path.relpath(candidate, root)
    except ValueError:
        # Different drives on Windows
        return False
    if os.path.isabs(relative):
        return False
    return relative != os.pardir and not relative.startswith(os.pardir + os.sep)


def normalize_windows_path(path: str, platform: Optional[str] = None) -> str:
    """Translate a Git Bash style path (/c/Users/...) into C:\\Users\\... on Windows."""
    platform = platform or sys.platform
    if platform != "win32":
        return path
    match = _POSIX_DRIVE_RE.match(path)
    if not match:
        return path
    drive = match.group(1).upper()
    return f"{drive}:\\" + path[match.end():].replace("/", "\\")


def strip_quotes(token: str) -> str:
    """Remove one pair of matching surrounding quotes from a shell token."""
    if len(token) >= 2 and token[0] == token[-1] and token[0] in ("'", '"'):
        return token[1:-1]
    return token


def resolve_path_argument(argument: str, cwd: str, platform: Optional[str] = None) -> str:
    """Resolve a command-line path argument to an absolute canonical path.

    Args:
        argument: Path token as written in the command
        cwd: Directory the command will run in
        platform: Override for sys.platform (used by tests)

    Returns:
        Canonical absolute path, or an empty string when the argument is blank
    """
    raw = os.path.expanduser(strip_quotes(argument))
    if not raw:
        return ""
    resolved = os.path.realpath(os.path.join(cwd, raw))
    return normalize_windows_path(resolved, platform)


def safe_file_write(file_path: Path, content: str, description: str = None) -> bool:
    """Safely write content to a file with error handling."""
    try:
        file_path.write_text(content)
        desc = description or f"file {file_path}"
        logger.system(f"Generated {desc}")
        return True
    except Exception as e:
        desc = description or f"file {file_path}"
        logger.error(f"Failed to write {desc}: {e}")
        return False
