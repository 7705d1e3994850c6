"""Tests for the cmdgate command-line interface."""

import pytest

from cmdgate import __version__
from cmdgate.cli import create_parser, main
from cmdgate.utils.logging import logger

from conftest import posix_only


def run_main(args):
    """Run the CLI and return its exit status."""
    with pytest.raises(SystemExit) as exc_info:
        main(args)
    return exc_info.value.code


@pytest.fixture
def base_args(tmp_path, project_root):
    return ["--config-dir", str(tmp_path / "cfg"), "--project-root", str(project_root)]


class TestParser:
    def test_allow_is_repeatable(self):
        args = create_parser().parse_args(["--allow", "ls*", "--allow", "git status*", "ls"])
        assert args.allow == ["ls*", "git status*"]
        assert args.command == ["ls"]

    def test_version(self, capsys):
        assert run_main(["--version"]) == 0
        assert __version__ in capsys.readouterr().out


class TestMain:
    def test_no_command_is_usage_error(self, base_args):
        assert run_main(base_args) == 2

    def test_render_file(self, base_args, tmp_path, capsys):
        transcript = tmp_path / "session.log"
        transcript.write_text("Progress 10%\rProgress 100%\n")
        assert run_main(base_args + ["--render", str(transcript)]) == 0
        assert "Progress 100%" in capsys.readouterr().out

    def test_render_missing_file(self, base_args, tmp_path):
        assert run_main(base_args + ["--render", str(tmp_path / "nope.log")]) == 1

    def test_config_summary(self, base_args, capsys):
        main(base_args + ["--config-summary"])
        out = capsys.readouterr().out
        assert "max_output_length" in out
        assert "DenyAllProvider" in out

    def test_denied_without_approval(self, base_args, project_root):
        marker = project_root / "made.txt"
        assert run_main(base_args + [f"touch {marker}"]) == 1
        assert not marker.exists()

    def test_unparsable_command(self, base_args):
        assert run_main(base_args + ["--yes", "echo 'oops"]) == 1

    @posix_only
    def test_yes_runs_command(self, base_args, capsys):
        assert run_main(base_args + ["--yes", "echo", "from-cli"]) == 0
        assert "from-cli" in capsys.readouterr().out

    @posix_only
    def test_exit_code_propagates(self, base_args):
        assert run_main(base_args + ["--yes", "exit 4"]) == 4

    @posix_only
    def test_allow_glob(self, base_args, capsys):
        assert run_main(base_args + ["--allow", "echo*", "echo allowed"]) == 0
        assert "allowed" in capsys.readouterr().out

    @posix_only
    def test_timeout_is_failure(self, base_args):
        assert run_main(base_args + ["--yes", "--timeout", "200", "sleep 5"]) == 1

    @posix_only
    def test_system_messages_kept_off_stdout(self, base_args, capsys):
        assert run_main(base_args + ["--yes", "echo", "only-output"]) == 0
        captured = capsys.readouterr()
        assert captured.out.strip() == "only-output"
        assert "Configuration template generated" in captured.err

    def test_debug_enabled_from_config(self, base_args, tmp_path):
        config_dir = tmp_path / "cfg"
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text("enable_debug: true\n")
        try:
            main(base_args + ["--config-summary"])
            assert logger.debug_enabled
        finally:
            logger.set_debug(False)
