"""The bash tool: analyse, ask permission, then run under supervision."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from ..commands.cancellation import CancellationToken
from ..commands.errors import InvalidTimeout
from ..commands.executor import (
    CommandRequest, ExecutionResult, ExecutorConfig, ProcessSupervisor, create_process_supervisor,
)
from ..commands.permissions import PermissionGate, bash_request, external_directory_request
from ..commands.safety import CommandSafetyAnalyzer, create_safety_analyzer
from ..utils.logging import logger

MetadataCallback = Callable[[Dict[str, Any]], None]

DESCRIPTION = """Executes a shell command in a non-interactive session with an optional timeout.

All commands run in ${directory} by default. Use the `workdir` parameter instead of
`cd <dir> && <command>` when a command must run somewhere else.

Before running:
1. Commands that create, move or delete files outside ${directory} need an
   external_directory permission for each path.
2. Every program invoked (including inside pipelines, lists and subshells) needs a
   bash permission.

Usage notes:
- The command argument is required.
- Timeouts are given in milliseconds (default ${timeout} ms).
- Output longer than ${max_output} characters is truncated.
- Interactive prompts are disabled: CI=true, GIT_TERMINAL_PROMPT=0 and PAGER=cat are set.
- Quote paths that contain spaces.
"""


@dataclass
class ToolContext:
    """Per-call context for the bash tool.

    Attributes:
        token: Cancellation token for this call
        gate: Permission gate to ask (overrides the tool's own when set)
        metadata: Called with {"output": ...} as output arrives
    """
    token: CancellationToken = field(default_factory=CancellationToken)
    gate: Optional[PermissionGate] = None
    metadata: Optional[MetadataCallback] = None

    def publish(self, **metadata: Any) -> None:
        if self.metadata is not None:
            self.metadata(metadata)


class BashTool:
    """Runs model-proposed shell commands behind the permission gate."""

    def __init__(self, config: ExecutorConfig, gate: PermissionGate,
                 analyzer: CommandSafetyAnalyzer, supervisor: ProcessSupervisor):
        self.config = config
        self.gate = gate
        self.analyzer = analyzer
        self.supervisor = supervisor
        logger.debug(f"Bash tool using shell {config.shell}")

    @property
    def directory(self) -> str:
        return self.analyzer.project_root

    @property
    def description(self) -> str:
        return (
            DESCRIPTION
            .replace("${directory}", self.directory)
            .replace("${timeout}", str(self.config.default_timeout_ms))
            .replace("${max_output}", str(self.config.max_output_length))
        )

    async def execute(self, params: Dict[str, Any], ctx: Optional[ToolContext] = None) -> ExecutionResult:
        """Run one command through analysis, permission and supervision.

        Args:
            params: {"command": str, "workdir": str?, "timeout": int?, "description": str?}
            ctx: Cancellation token, gate override and metadata callback

        Returns:
            ExecutionResult with title, metadata and output

        Raises:
            InvalidTimeout: Negative timeout
            ParseError: Command is not valid shell syntax
            PermissionDenied: A permission request was rejected
            CommandAborted: Cancelled while waiting on a permission decision
        """
        ctx = ctx or ToolContext()
        gate = ctx.gate or self.gate

        request = CommandRequest(
            command=params["command"],
            workdir=params.get("workdir") or self.directory,
            timeout_ms=params.get("timeout"),
            description=params.get("description"),
        )
        if request.timeout_ms is not None and request.timeout_ms < 0:
            raise InvalidTimeout(request.timeout_ms)

        analysis = self.analyzer.analyze(request.command, request.workdir)

        if analysis.directories:
            await gate.ask(external_directory_request(analysis.directories, request.command), ctx.token)
        if analysis.patterns:
            await gate.ask(bash_request(analysis.patterns, analysis.always, request.command), ctx.token)

        ctx.publish(output="", description=request.description)

        def on_output(text: str) -> None:
            ctx.publish(output=text, description=request.description)

        return await self.supervisor.execute(request, ctx.token, on_output)


def create_bash_tool(config: ExecutorConfig, gate: PermissionGate, project_root: str) -> BashTool:
    """Create a bash tool with its own analyzer and supervisor."""
    analyzer = create_safety_analyzer(project_root)
    supervisor = create_process_supervisor(config, analyzer.project_root)
    return BashTool(config, gate, analyzer, supervisor)
