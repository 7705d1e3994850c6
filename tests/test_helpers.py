"""Tests for path helpers and the arity table."""

import os

import pytest

from cmdgate.commands.arity import ARITY, prefix
from cmdgate.utils.helpers import contains, normalize_windows_path, resolve_path_argument, strip_quotes

# =============================================================================
# Containment
# =============================================================================


class TestContains:
    """contains(root, path) is true for root itself and anything below it."""

    def test_root_contains_itself(self, project_root):
        assert contains(str(project_root), str(project_root))

    def test_root_contains_child(self, project_root):
        assert contains(str(project_root), str(project_root / "src" / "main.py"))

    def test_parent_is_outside(self, project_root):
        assert not contains(str(project_root), str(project_root.parent))

    def test_sibling_is_outside(self, project_root, outside_dir):
        assert not contains(str(project_root), str(outside_dir))

    def test_sibling_sharing_name_prefix_is_outside(self, project_root):
        """/x/project-old is not inside /x/project."""
        assert not contains(str(project_root), str(project_root) + "-old")

    def test_dotdot_named_child_is_inside(self, project_root):
        assert contains(str(project_root), str(project_root / "..hidden"))


# =============================================================================
# Path Normalization
# =============================================================================


class TestNormalizeWindowsPath:
    def test_drive_prefix_translated_on_windows(self):
        assert normalize_windows_path("/c/Users/me/project", platform="win32") == "C:\\Users\\me\\project"

    def test_untouched_elsewhere(self):
        assert normalize_windows_path("/c/Users/me", platform="linux") == "/c/Users/me"

    def test_non_drive_path_untouched_on_windows(self):
        assert normalize_windows_path("/home/me", platform="win32") == "/home/me"


class TestStripQuotes:
    @pytest.mark.parametrize("token,expected", [
        ('"my file"', "my file"),
        ("'my file'", "my file"),
        ("plain", "plain"),
        ("'mismatched\"", "'mismatched\""),
        ('"', '"'),
    ])
    def test_strip_quotes(self, token, expected):
        assert strip_quotes(token) == expected


class TestResolvePathArgument:
    def test_relative_argument_joined_with_cwd(self, project_root):
        resolved = resolve_path_argument("../other", str(project_root))
        assert resolved == os.path.realpath(str(project_root.parent / "other"))

    def test_absolute_argument_kept(self, project_root, outside_dir):
        assert resolve_path_argument(str(outside_dir), str(project_root)) == str(outside_dir)

    def test_quoted_argument_unquoted(self, project_root):
        resolved = resolve_path_argument('"my file.txt"', str(project_root))
        assert resolved == str(project_root / "my file.txt")

    def test_tilde_expanded(self, project_root, outside_dir, monkeypatch):
        monkeypatch.setenv("HOME", str(outside_dir))
        monkeypatch.setenv("USERPROFILE", str(outside_dir))
        assert resolve_path_argument("~/notes", str(project_root)) == str(outside_dir / "notes")

    @pytest.mark.parametrize("argument", ["", "''", '""'])
    def test_blank_argument_resolves_to_nothing(self, project_root, argument):
        assert resolve_path_argument(argument, str(project_root)) == ""


# =============================================================================
# Arity
# =============================================================================


class TestArityPrefix:
    """prefix() keeps the tokens that name what a command does."""

    def test_empty_invocation(self):
        assert prefix([]) == []

    def test_unknown_program_keeps_name_only(self):
        assert prefix(["rm", "-rf", "build"]) == ["rm"]

    def test_git_subcommand(self):
        assert prefix(["git", "status", "--short"]) == ["git", "status"]

    def test_longest_match_wins(self):
        assert prefix(["npm", "run", "build", "--watch"]) == ["npm", "run", "build"]
        assert prefix(["npm", "install", "left-pad"]) == ["npm", "install"]

    def test_docker_compose(self):
        assert prefix(["docker", "compose", "up", "-d"]) == ["docker", "compose", "up"]

    def test_python_module(self):
        assert prefix(["python", "-m", "pytest", "tests"]) == ["python", "-m", "pytest"]

    def test_short_invocation_not_padded(self):
        assert prefix(["git"]) == ["git"]

    def test_table_values_are_positive(self):
        assert all(isinstance(v, int) and v >= 1 for v in ARITY.values())
