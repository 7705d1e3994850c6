"""Constants used throughout the cmdgate package."""

from pathlib import Path
from colorama import Fore, Style

# Configuration paths
CONFIG_DIR = Path.home() / ".config" / "cmdgate"

# ANSI Color Codes (using colorama)
CLR_RESET = Style.RESET_ALL
CLR_RED = Fore.RED
CLR_BOLD_RED = Style.BRIGHT + Fore.RED
CLR_YELLOW = Fore.YELLOW
CLR_BOLD_YELLOW = Style.BRIGHT + Fore.YELLOW
CLR_BLUE = Fore.BLUE
CLR_BOLD_BLUE = Style.BRIGHT + Fore.BLUE
CLR_MAGENTA = Fore.MAGENTA
CLR_BOLD_MAGENTA = Style.BRIGHT + Fore.MAGENTA
CLR_CYAN = Fore.CYAN
CLR_BOLD_CYAN = Style.BRIGHT + Fore.CYAN
CLR_WHITE = Fore.WHITE
CLR_BOLD_WHITE = Style.BRIGHT + Fore.WHITE

# Environment overrides for execution limits
ENV_MAX_OUTPUT_LENGTH = "CMDGATE_BASH_MAX_OUTPUT_LENGTH"
ENV_DEFAULT_TIMEOUT_MS = "CMDGATE_BASH_DEFAULT_TIMEOUT_MS"

# Default configuration values
DEFAULT_MAX_OUTPUT_LENGTH = 30_000
DEFAULT_TIMEOUT_MS = 2 * 60 * 1000
DEFAULT_TIMEOUT_GRACE_MS = 100
DEFAULT_PTY_RETRIES = 3
DEFAULT_PTY_BACKOFF_MS = 50
DEFAULT_TERMINAL_COLUMNS = 120
DEFAULT_TERMINAL_ROWS = 24
DEFAULT_FALLBACK_INHERIT_ENV = False
DEFAULT_ENABLE_DEBUG = False

# Commands whose arguments are treated as filesystem paths.
# Not exhaustive, but covers the common ways a command escapes the project.
PATH_COMMANDS = ("cd", "rm", "cp", "mv", "mkdir", "touch", "chmod", "chown")

# Syntax node kinds that carry literal command text
LITERAL_NODE_TYPES = ("command_name", "word", "string", "raw_string", "concatenation")

# Terminal type advertised to spawned processes
TERMINAL_TYPE = "xterm-256color"

# Variables that keep commands from blocking on interactive input
NONINTERACTIVE_ENV = {
    "TERM": TERMINAL_TYPE,
    "CI": "true",
    "DEBIAN_FRONTEND": "noninteractive",
    "GIT_TERMINAL_PROMPT": "0",
    "GH_PROMPT_DISABLED": "1",
    "npm_config_yes": "true",
    "PAGER": "cat",
    "GIT_PAGER": "cat",
}

# Shells that do not accept POSIX `-c` scripts reliably
UNACCEPTABLE_SHELLS = ("fish", "nu")

# Footer wrapping abnormal-completion notes appended to command output
METADATA_OPEN_TAG = "<bash_metadata>"
METADATA_CLOSE_TAG = "</bash_metadata>"
