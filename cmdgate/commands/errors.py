"""Error taxonomy for command analysis, permission and execution."""

from typing import Optional


class CmdGateError(Exception):
    """Base class for all cmdgate errors."""


class ParseError(CmdGateError):
    """The command could not be parsed; nothing was executed."""

    def __init__(self, command: str, detail: str = ""):
        self.command = command
        self.detail = detail
        message = f"Failed to parse command: {command}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class InvalidTimeout(CmdGateError):
    """A negative timeout was supplied."""

    def __init__(self, timeout_ms: int):
        self.timeout_ms = timeout_ms
        super().__init__(
            f"Invalid timeout value: {timeout_ms}. Timeout must be a positive number."
        )


class PermissionDenied(CmdGateError):
    """The decision provider rejected a permission request."""

    def __init__(self, request):
        self.request = request
        super().__init__(
            f"Permission denied for {request.kind.value}: {', '.join(request.patterns)}"
        )


class CommandAborted(CmdGateError):
    """The caller cancelled while the pipeline was waiting on a permission decision."""

    def __init__(self, message: str = "Command aborted before execution"):
        super().__init__(message)


class SpawnFailure(CmdGateError):
    """Every pseudo-terminal spawn attempt failed."""

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"PTY spawn failed after {attempts} attempt(s): {last_error}")


class ProcessError(CmdGateError):
    """The fallback process could not be started or reported an OS-level error."""

    def __init__(self, command: str, cause: BaseException):
        self.command = command
        self.cause = cause
        super().__init__(f"Error executing command '{command}': {cause}")
