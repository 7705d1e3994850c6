"""Command safety analysis for cmdgate.

Parses a shell command with tree-sitter's bash grammar and works out what
needs permission before it may run: the programs it invokes and any
filesystem paths it touches outside the project root.
"""

import os
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence

import tree_sitter_bash
from tree_sitter import Language, Node, Parser

from ..constants import PATH_COMMANDS, LITERAL_NODE_TYPES
from ..utils.helpers import contains, resolve_path_argument
from ..utils.logging import logger
from .arity import prefix
from .errors import ParseError

_PARSER: Optional[Parser] = None


def get_parser() -> Parser:
    """Return the shared bash parser, creating it on first use."""
    global _PARSER
    if _PARSER is None:
        _PARSER = Parser(Language(tree_sitter_bash.language()))
        logger.debug("Initialized tree-sitter bash parser")
    return _PARSER


@dataclass(frozen=True)
class ParsedInvocation:
    """One `command` node of the parsed script, reduced to its literal tokens."""
    tokens: tuple

    @property
    def program(self) -> str:
        return self.tokens[0] if self.tokens else ""

    @property
    def text(self) -> str:
        return " ".join(self.tokens)


@dataclass
class CommandAnalysis:
    """Everything the permission step needs to know about a command.

    Attributes:
        command: The command string that was analysed
        invocations: Every invocation found, in source order
        path_references: Canonical paths outside the project root touched by
            path-mutating invocations
        directories: Paths needing an external_directory permission, i.e. the
            path references plus the working directory when it is itself
            outside the project root
        patterns: Exact invocation strings needing bash permission
        always: Broadened patterns (arity prefix + "*") for the same invocations
    """
    command: str
    invocations: List[ParsedInvocation] = field(default_factory=list)
    path_references: List[str] = field(default_factory=list)
    directories: List[str] = field(default_factory=list)
    patterns: List[str] = field(default_factory=list)
    always: List[str] = field(default_factory=list)


def _add_unique(items: List[str], value: str) -> None:
    if value not in items:
        items.append(value)


def iter_command_nodes(node: Node) -> Iterator[Node]:
    """Yield every `command` node below node, in document order."""
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == "command":
            yield current
        stack.extend(reversed(current.children))


def extract_tokens(node: Node) -> tuple:
    """Collect the literal tokens of a command node.

    Substitutions, redirections and operators are skipped; only names,
    words, strings and concatenations of them are kept.
    """
    tokens = []
    for child in node.children:
        if child.type not in LITERAL_NODE_TYPES:
            continue
        tokens.append(child.text.decode("utf-8", errors="replace"))
    return tuple(tokens)


def is_flag(program: str, argument: str) -> bool:
    """Check whether an argument is an option rather than a path."""
    if argument.startswith("-"):
        return True
    return program == "chmod" and argument.startswith("+")


class CommandSafetyAnalyzer:
    """Derives permission requirements from a shell command."""

    def __init__(self, project_root: str, platform: Optional[str] = None):
        """Initialize the analyzer.

        Args:
            project_root: Directory the agent is allowed to work in freely
            platform: Override for sys.platform, used for path normalization
        """
        self.project_root = os.path.realpath(project_root)
        self.platform = platform

    def parse(self, command: str) -> List[ParsedInvocation]:
        """Parse a command into its invocations.

        Raises:
            ParseError: If the command is not valid shell syntax
        """
        tree = get_parser().parse(command.encode("utf-8"))
        if tree is None:
            raise ParseError(command)
        if tree.root_node.has_error:
            raise ParseError(command, "syntax error")
        return [ParsedInvocation(extract_tokens(node)) for node in iter_command_nodes(tree.root_node)]

    def is_external(self, path: str) -> bool:
        """Check whether an absolute path lies outside the project root."""
        return not contains(self.project_root, path)

    def analyze(self, command: str, workdir: Optional[str] = None) -> CommandAnalysis:
        """Analyse a command that will run in workdir.

        Args:
            command: Shell command string
            workdir: Directory the command runs in (defaults to the project root)

        Returns:
            CommandAnalysis with invocations, external paths and patterns

        Raises:
            ParseError: If the command is not valid shell syntax
        """
        cwd = workdir or self.project_root
        analysis = CommandAnalysis(command=command)
        analysis.invocations = self.parse(command)

        if self.is_external(os.path.realpath(cwd)):
            _add_unique(analysis.directories, cwd)

        for invocation in analysis.invocations:
            tokens = invocation.tokens
            if not tokens:
                continue

            if invocation.program in PATH_COMMANDS:
                for path in self._external_paths(invocation.program, tokens[1:], cwd):
                    _add_unique(analysis.path_references, path)
                    _add_unique(analysis.directories, path)

            # cd is covered by the directory check above
            if invocation.program != "cd":
                _add_unique(analysis.patterns, invocation.text)
                _add_unique(analysis.always, " ".join(prefix(tokens)) + "*")

        logger.command(
            f"Analyzed '{command}': {len(analysis.invocations)} invocation(s), "
            f"{len(analysis.directories)} external path(s)"
        )
        return analysis

    def _external_paths(self, program: str, arguments: Sequence[str], cwd: str) -> List[str]:
        """Resolve the path arguments of a path-mutating command."""
        external = []
        for argument in arguments:
            if is_flag(program, argument):
                continue
            resolved = resolve_path_argument(argument, cwd, self.platform)
            logger.debug(f"Resolved path '{argument}' -> '{resolved}'")
            if resolved and self.is_external(resolved):
                external.append(resolved)
        return external

    def summarize(self, analysis: CommandAnalysis) -> str:
        """Format an analysis for display before the permission step."""
        lines = [f"Command: {analysis.command}"]
        if analysis.patterns:
            lines.append("Invocations:")
            lines.extend(f"  - {pattern}" for pattern in analysis.patterns)
        if analysis.directories:
            lines.append("Outside project root:")
            lines.extend(f"  - {path}" for path in analysis.directories)
        if not analysis.patterns and not analysis.directories:
            lines.append("No permission required.")
        return "\n".join(lines)


def create_safety_analyzer(project_root: str) -> CommandSafetyAnalyzer:
    """Create a command safety analyzer rooted at project_root."""
    return CommandSafetyAnalyzer(project_root)
