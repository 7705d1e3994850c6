"""Command analysis, permission and execution for cmdgate."""

from .cancellation import CancellationToken
from .errors import (
    CmdGateError,
    ParseError,
    InvalidTimeout,
    PermissionDenied,
    CommandAborted,
    SpawnFailure,
    ProcessError,
)
from .executor import (
    ExecutorConfig,
    CommandRequest,
    ExecutionResult,
    SpawnPlan,
    SpawnState,
    ProcessSupervisor,
    create_process_supervisor,
)
from .permissions import (
    PermissionKind,
    Decision,
    PermissionRequest,
    PermissionGate,
    AllowAllProvider,
    DenyAllProvider,
    GlobProvider,
    external_directory_request,
    bash_request,
    create_permission_gate,
)
from .safety import CommandAnalysis, CommandSafetyAnalyzer, ParsedInvocation, create_safety_analyzer

__all__ = [
    "CancellationToken",
    "CmdGateError",
    "ParseError",
    "InvalidTimeout",
    "PermissionDenied",
    "CommandAborted",
    "SpawnFailure",
    "ProcessError",
    "ExecutorConfig",
    "CommandRequest",
    "ExecutionResult",
    "SpawnPlan",
    "SpawnState",
    "ProcessSupervisor",
    "create_process_supervisor",
    "PermissionKind",
    "Decision",
    "PermissionRequest",
    "PermissionGate",
    "AllowAllProvider",
    "DenyAllProvider",
    "GlobProvider",
    "external_directory_request",
    "bash_request",
    "create_permission_gate",
    "CommandAnalysis",
    "CommandSafetyAnalyzer",
    "ParsedInvocation",
    "create_safety_analyzer",
]
