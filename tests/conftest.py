# conftest.py - Shared pytest fixtures for all tests
"""Shared pytest fixtures for the cmdgate test suite.

Provides a temporary project root, fast executor settings, and recording
decision providers for driving the permission gate.
"""

import sys
from pathlib import Path
from typing import List

import pytest

from cmdgate.commands.executor import ExecutorConfig, ProcessSupervisor
from cmdgate.commands.permissions import Decision, PermissionGate, PermissionRequest
from cmdgate.commands.safety import CommandSafetyAnalyzer
from cmdgate.core.tool import BashTool

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="spawns POSIX shell processes")


# =============================================================================
# File System Fixtures
# =============================================================================


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Create a project directory with a little content.

    Returns:
        Canonical path of the project root (tmp dirs can be symlinks).
    """
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "src" / "main.py").write_text("print('hi')\n")
    return root.resolve()


@pytest.fixture
def outside_dir(tmp_path: Path) -> Path:
    """A directory next to the project root, outside of it."""
    other = tmp_path / "elsewhere"
    other.mkdir()
    return other.resolve()


# =============================================================================
# Executor Fixtures
# =============================================================================


@pytest.fixture
def executor_config() -> ExecutorConfig:
    """Executor settings tuned for tests: /bin/sh and short backoff."""
    return ExecutorConfig(
        shell="/bin/sh",
        default_timeout_ms=10_000,
        max_output_length=30_000,
        pty_retries=3,
        pty_backoff_ms=1,
    )


@pytest.fixture
def supervisor(executor_config: ExecutorConfig, project_root: Path) -> ProcessSupervisor:
    return ProcessSupervisor(executor_config, str(project_root))


# =============================================================================
# Permission Fixtures
# =============================================================================


class RecordingProvider:
    """Decision provider that records every request and answers from a script."""

    def __init__(self, decision: Decision = Decision.ONCE):
        self.decision = decision
        self.requests: List[PermissionRequest] = []

    async def resolve(self, request: PermissionRequest) -> Decision:
        self.requests.append(request)
        return self.decision


@pytest.fixture
def recorder() -> RecordingProvider:
    return RecordingProvider()


@pytest.fixture
def bash_tool(executor_config, project_root, recorder, supervisor) -> BashTool:
    """A bash tool whose gate records requests and approves them."""
    return BashTool(
        executor_config,
        PermissionGate(recorder),
        CommandSafetyAnalyzer(str(project_root)),
        supervisor,
    )
