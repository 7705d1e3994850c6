"""Tests for the bash tool pipeline: validate, analyse, ask, supervise."""

import asyncio

import pytest

from cmdgate.commands.cancellation import CancellationToken
from cmdgate.commands.errors import CommandAborted, InvalidTimeout, ParseError, PermissionDenied
from cmdgate.commands.permissions import Decision, PermissionGate, PermissionKind
from cmdgate.core.tool import ToolContext, create_bash_tool

from conftest import RecordingProvider, posix_only


def execute(tool, params, ctx=None):
    async def scenario():
        return await tool.execute(params, ctx)
    return asyncio.run(scenario())


# =============================================================================
# Failures Before Execution
# =============================================================================


class TestRejectedBeforeExecution:
    """Nothing is asked or run when validation or parsing fails."""

    def test_negative_timeout(self, bash_tool, recorder):
        with pytest.raises(InvalidTimeout):
            execute(bash_tool, {"command": "echo hi", "timeout": -5})
        assert recorder.requests == []

    def test_unparsable_command(self, bash_tool, recorder):
        with pytest.raises(ParseError):
            execute(bash_tool, {"command": "echo 'oops"})
        assert recorder.requests == []

    def test_rejected_permission_runs_nothing(self, bash_tool, project_root):
        marker = project_root / "created.txt"
        ctx = ToolContext(gate=PermissionGate(RecordingProvider(Decision.REJECT)))
        with pytest.raises(PermissionDenied) as exc_info:
            execute(bash_tool, {"command": f"touch {marker}"}, ctx)
        assert exc_info.value.request.kind is PermissionKind.BASH
        assert not marker.exists()

    def test_cancelled_while_waiting_for_permission(self, bash_tool):
        class NeverAnswers:
            async def resolve(self, request):
                await asyncio.Event().wait()

        async def scenario():
            token = CancellationToken()
            ctx = ToolContext(token=token, gate=PermissionGate(NeverAnswers()))
            asyncio.get_running_loop().call_later(0.1, token.cancel)
            await bash_tool.execute({"command": "echo hi"}, ctx)

        with pytest.raises(CommandAborted):
            asyncio.run(scenario())


# =============================================================================
# Permission Requests
# =============================================================================


@posix_only
class TestPermissionRequests:
    """Directory requests come first, then one bash request per command."""

    def test_external_path_then_command(self, bash_tool, recorder, outside_dir):
        target = outside_dir / "new.txt"
        result = execute(bash_tool, {"command": f"touch {target}"})

        kinds = [request.kind for request in recorder.requests]
        assert kinds == [PermissionKind.EXTERNAL_DIRECTORY, PermissionKind.BASH]
        assert recorder.requests[0].patterns == (str(target),)
        assert recorder.requests[0].always == (str(outside_dir) + "*",)
        assert recorder.requests[1].patterns == (f"touch {target}",)
        assert recorder.requests[1].always == ("touch*",)
        assert target.exists()
        assert result.exit_code == 0

    def test_inside_project_only_bash(self, bash_tool, recorder):
        execute(bash_tool, {"command": "git status --short; ls"})
        assert len(recorder.requests) == 1
        assert recorder.requests[0].patterns == ("git status --short", "ls")
        assert recorder.requests[0].always == ("git status*", "ls*")
        assert recorder.requests[0].metadata["command"] == "git status --short; ls"

    def test_cd_inside_project_needs_nothing(self, bash_tool, recorder):
        result = execute(bash_tool, {"command": "cd src"})
        assert recorder.requests == []
        assert result.exit_code == 0

    def test_workdir_outside_project(self, bash_tool, recorder, outside_dir):
        execute(bash_tool, {"command": "pwd", "workdir": str(outside_dir)})
        assert recorder.requests[0].kind is PermissionKind.EXTERNAL_DIRECTORY
        assert recorder.requests[0].patterns == (str(outside_dir),)


# =============================================================================
# Execution
# =============================================================================


@posix_only
class TestExecution:
    def test_metadata_published_from_empty(self, bash_tool):
        published = []
        ctx = ToolContext(metadata=published.append)
        result = execute(bash_tool, {"command": "echo streamed", "description": "Echo a word"}, ctx)

        assert published[0] == {"output": "", "description": "Echo a word"}
        assert "streamed" in published[-1]["output"]
        assert result.title == "echo streamed"
        assert result.metadata["description"] == "Echo a word"

    def test_default_workdir_is_project_root(self, bash_tool, project_root):
        result = execute(bash_tool, {"command": "pwd"})
        assert str(project_root) in result.output

    def test_timeout_parameter(self, bash_tool):
        result = execute(bash_tool, {"command": "sleep 5", "timeout": 200})
        assert result.timed_out
        assert "exceeding timeout 200 ms" in result.output


def test_description_mentions_project_directory(executor_config, project_root):
    tool = create_bash_tool(executor_config, PermissionGate(RecordingProvider()), str(project_root))
    assert str(project_root) in tool.description
    assert "${directory}" not in tool.description
    assert str(executor_config.max_output_length) in tool.description
