"""Main application class for cmdgate."""

import asyncio
import os
import signal
from typing import Any, Dict, Iterable, Optional
from pathlib import Path

from ..commands.cancellation import CancellationToken
from ..commands.errors import CmdGateError
from ..commands.executor import ExecutionResult
from ..commands.permissions import create_permission_gate
from ..config.manager import create_config_manager
from ..core.tool import BashTool, ToolContext, create_bash_tool
from ..utils.logging import logger
from ..utils.terminal import render_terminal


class CmdGate:
    """Wires configuration, analysis, permission and execution together."""

    def __init__(self, config_dir: Optional[str] = None, debug: bool = False,
                 project_root: Optional[str] = None, allow_all: bool = False,
                 allowed_globs: Optional[Iterable[str]] = None):
        """Initialize the cmdgate application.

        Args:
            config_dir: Custom configuration directory path
            debug: Enable debug logging
            project_root: Directory commands may freely touch (defaults to cwd)
            allow_all: Approve every permission request
            allowed_globs: Approve requests whose patterns match these globs
        """
        # Set up logging first
        logger.set_debug(debug)

        config_path = Path(config_dir) if config_dir else None
        self.config_manager = create_config_manager(config_path)
        self.config = self.config_manager.config

        # Update debug setting from config if not explicitly set
        if not debug and self.config_manager.get("enable_debug", False):
            logger.set_debug(True)

        self.project_root = os.path.abspath(project_root or os.getcwd())
        self.executor_config = self.config_manager.executor_config
        self.gate = create_permission_gate(allow_all, list(allowed_globs or []))
        self.tool: BashTool = create_bash_tool(self.executor_config, self.gate, self.project_root)

        logger.debug("Application initialization complete")

    def run_command(self, command: str, workdir: Optional[str] = None,
                    timeout_ms: Optional[int] = None, raw: bool = False) -> int:
        """Run one command through the gate and print its output.

        Returns:
            Process exit code, or 1 if the command was refused, aborted,
            timed out or could not be parsed
        """
        try:
            result = asyncio.run(self._run(command, workdir, timeout_ms))
        except CmdGateError as e:
            logger.error(str(e))
            return 1

        print(result.output if raw else render_terminal(result.output))

        if result.success:
            return 0
        if result.timed_out or result.aborted:
            logger.warning("Command timed out" if result.timed_out else "Command aborted")
            return 1
        logger.debug(f"Command finished with exit code {result.exit_code}")
        return result.exit_code

    async def _run(self, command: str, workdir: Optional[str], timeout_ms: Optional[int]) -> ExecutionResult:
        token = CancellationToken()
        params: Dict[str, Any] = {"command": command}
        if workdir:
            params["workdir"] = os.path.abspath(workdir)
        if timeout_ms is not None:
            params["timeout"] = timeout_ms

        loop = asyncio.get_running_loop()
        restore = self._install_interrupt_handler(loop, token)
        try:
            return await self.tool.execute(params, ToolContext(token=token))
        finally:
            restore()

    def _install_interrupt_handler(self, loop: asyncio.AbstractEventLoop, token: CancellationToken):
        """Route SIGINT to the cancellation token; returns a function undoing it."""
        def interrupt():
            logger.system("Interrupted, stopping command...")
            token.cancel("interrupted")

        try:
            loop.add_signal_handler(signal.SIGINT, interrupt)
            return lambda: loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no add_signal_handler
            previous = signal.signal(signal.SIGINT, lambda sig, frame: loop.call_soon_threadsafe(interrupt))
            return lambda: signal.signal(signal.SIGINT, previous)

    def render_file(self, path: str) -> bool:
        """Render a captured terminal transcript and print it."""
        try:
            text = Path(path).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.error(f"Could not read {path}: {e}")
            return False
        print(render_terminal(text))
        return True

    def get_config_summary(self) -> dict:
        """Get a summary of the current configuration.

        Returns:
            Dictionary with configuration summary
        """
        summary = dict(self.config)
        summary["project_root"] = self.project_root
        summary["permission_provider"] = type(self.gate.provider).__name__
        return summary

    def print_config_summary(self) -> None:
        """Print a summary of the current configuration."""
        summary = self.get_config_summary()

        logger.system("Configuration Summary:")
        for key, value in summary.items():
            logger.system(f"  {key}: {value}")
        logger.system(f"  config_file: {self.config_manager.config_file}")


def create_application(config_dir: Optional[str] = None, debug: bool = False,
                       project_root: Optional[str] = None, allow_all: bool = False,
                       allowed_globs: Optional[Iterable[str]] = None) -> CmdGate:
    """Create and initialize a CmdGate application instance."""
    return CmdGate(config_dir, debug, project_root, allow_all, allowed_globs)
