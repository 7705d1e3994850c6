"""Tests for command parsing and permission-pattern derivation.

These use the real tree-sitter bash grammar; nothing is executed.
"""

import pytest

from cmdgate.commands.errors import ParseError
from cmdgate.commands.safety import CommandSafetyAnalyzer, create_safety_analyzer, get_parser


@pytest.fixture
def analyzer(project_root):
    return CommandSafetyAnalyzer(str(project_root))


# =============================================================================
# Parsing
# =============================================================================


class TestParsing:
    """Every `command` node becomes one invocation."""

    def test_parser_is_created_once(self):
        assert get_parser() is get_parser()

    def test_simple_command(self, analyzer):
        invocations = analyzer.parse("ls -la src")
        assert [i.tokens for i in invocations] == [("ls", "-la", "src")]

    def test_pipeline_and_list(self, analyzer):
        invocations = analyzer.parse("cat a.txt | grep foo && echo done")
        assert [i.program for i in invocations] == ["cat", "grep", "echo"]

    def test_nested_substitution_found(self, analyzer):
        invocations = analyzer.parse("echo $(whoami)")
        assert [i.program for i in invocations] == ["echo", "whoami"]

    def test_subshell(self, analyzer):
        invocations = analyzer.parse("(cd src && make)")
        assert [i.program for i in invocations] == ["cd", "make"]

    def test_quoted_tokens_kept_verbatim(self, analyzer):
        invocations = analyzer.parse("echo \"hello world\" 'raw'")
        assert invocations[0].tokens == ("echo", '"hello world"', "'raw'")

    def test_redirections_not_tokens(self, analyzer):
        invocations = analyzer.parse("echo hi > out.txt")
        assert invocations[0].tokens == ("echo", "hi")

    @pytest.mark.parametrize("command", ["echo 'unterminated", "if true; then echo x"])
    def test_syntax_error_raises(self, analyzer, command):
        with pytest.raises(ParseError) as exc_info:
            analyzer.parse(command)
        assert command in str(exc_info.value)


# =============================================================================
# Patterns
# =============================================================================


class TestPatterns:
    """patterns hold exact invocations; always holds arity-broadened globs."""

    def test_git_status(self, analyzer):
        analysis = analyzer.analyze("git status --short")
        assert analysis.patterns == ["git status --short"]
        assert analysis.always == ["git status*"]
        assert analysis.directories == []

    def test_multiple_invocations_in_order(self, analyzer):
        analysis = analyzer.analyze("npm run build && git push origin main")
        assert analysis.patterns == ["npm run build", "git push origin main"]
        assert analysis.always == ["npm run build*", "git push*"]

    def test_duplicates_collapsed(self, analyzer):
        analysis = analyzer.analyze("echo a; echo a; echo b")
        assert analysis.patterns == ["echo a", "echo b"]
        assert analysis.always == ["echo*"]

    def test_cd_has_no_pattern(self, analyzer):
        analysis = analyzer.analyze("cd src")
        assert analysis.patterns == []
        assert analysis.always == []
        assert analysis.directories == []

    def test_chmod_plus_flag_skipped(self, analyzer):
        analysis = analyzer.analyze("chmod +x script.sh")
        assert analysis.patterns == ["chmod +x script.sh"]
        assert analysis.always == ["chmod*"]
        assert analysis.directories == []

    def test_deterministic(self, analyzer, outside_dir):
        command = f"rm -rf {outside_dir}/a && cp x {outside_dir}/b | tee log"
        first = analyzer.analyze(command)
        second = analyzer.analyze(command)
        assert first.patterns == second.patterns
        assert first.always == second.always
        assert first.directories == second.directories


# =============================================================================
# External Paths
# =============================================================================


class TestExternalPaths:
    """Path arguments of mutating commands are checked against the project root."""

    def test_rm_outside_project(self, analyzer, outside_dir):
        target = outside_dir / "victim"
        analysis = analyzer.analyze(f"rm -rf {target}")
        assert analysis.directories == [str(target)]
        assert analysis.path_references == [str(target)]
        assert analysis.patterns == [f"rm -rf {target}"]
        assert analysis.always == ["rm*"]

    def test_rm_inside_project(self, analyzer):
        analysis = analyzer.analyze("rm -rf build")
        assert analysis.directories == []

    def test_relative_escape(self, analyzer, outside_dir):
        analysis = analyzer.analyze("touch ../elsewhere/new.txt")
        assert analysis.directories == [str(outside_dir / "new.txt")]

    def test_nested_mutation_detected(self, analyzer, outside_dir):
        analysis = analyzer.analyze("echo $(rm -rf ../elsewhere/x)")
        assert analysis.directories == [str(outside_dir / "x")]
        assert analysis.patterns == ["echo", "rm -rf ../elsewhere/x"]

    def test_cd_outside_project_needs_directory(self, analyzer, outside_dir):
        analysis = analyzer.analyze(f"cd {outside_dir}")
        assert analysis.directories == [str(outside_dir)]
        assert analysis.patterns == []

    def test_read_only_command_paths_ignored(self, analyzer, outside_dir):
        analysis = analyzer.analyze(f"cat {outside_dir}/secrets.txt")
        assert analysis.directories == []

    def test_workdir_outside_project(self, analyzer, outside_dir):
        analysis = analyzer.analyze("ls", workdir=str(outside_dir))
        assert analysis.directories == [str(outside_dir)]
        assert analysis.patterns == ["ls"]

    def test_relative_paths_resolved_against_workdir(self, analyzer, project_root):
        analysis = analyzer.analyze("rm ../src/main.py", workdir=str(project_root / "src"))
        assert analysis.directories == []

    def test_home_relative_path(self, analyzer, outside_dir, monkeypatch):
        monkeypatch.setenv("HOME", str(outside_dir))
        analysis = analyzer.analyze("mkdir ~/cache")
        assert analysis.directories == [str(outside_dir / "cache")]

    def test_summary_lists_everything(self, analyzer, outside_dir):
        analysis = analyzer.analyze(f"rm -rf {outside_dir}")
        summary = analyzer.summarize(analysis)
        assert f"rm -rf {outside_dir}" in summary
        assert "Outside project root:" in summary


def test_factory_canonicalizes_root(project_root):
    analyzer = create_safety_analyzer(str(project_root / "src" / ".."))
    assert analyzer.project_root == str(project_root)
