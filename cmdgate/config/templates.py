"""Configuration templates for cmdgate."""

CONFIG_TEMPLATE = """\
# config.yaml - cmdgate execution settings
# Ensure this is valid YAML. Every key is optional; removing one restores its default.
#
# shell: Shell used to run commands with -c. Leave empty to pick $SHELL
#   (unless it is fish or nu), then bash, then /bin/sh.
# default_timeout_ms: Timeout applied when a command does not give one.
#   Overridden by the {env_timeout} environment variable.
# max_output_length: Characters of output kept per command; the rest is cut off
#   and noted in the result. Overridden by {env_max_output}.
# pty_retries: Pseudo-terminal spawn attempts before falling back to a plain
#   child process. 0 skips the pseudo-terminal entirely.
# pty_backoff_ms: Delay between attempts, multiplied by the attempt number.
# timeout_grace_ms: Extra time granted past the timeout before the command is killed.
# fallback_inherit_env: true runs fallback processes with the unmodified parent
#   environment; false applies the same non-interactive variables as the
#   pseudo-terminal path (CI=true, PAGER=cat, ...).
# terminal_columns / terminal_rows: Size of the pseudo-terminal.
# enable_debug: Set to true for verbose debugging output.

shell: ""
default_timeout_ms: {default_timeout_ms}
max_output_length: {max_output_length}
pty_retries: {pty_retries}
pty_backoff_ms: {pty_backoff_ms}
timeout_grace_ms: {timeout_grace_ms}
fallback_inherit_env: {fallback_inherit_env}
terminal_columns: {terminal_columns}
terminal_rows: {terminal_rows}
enable_debug: {enable_debug}
"""
