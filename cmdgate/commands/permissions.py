"""Permission requests and the gate that blocks on their decisions.

The gate does not decide anything itself. A DecisionProvider answers each
request with once, always or reject; the gate waits for that answer, or for
the caller to cancel, whichever comes first.
"""

import asyncio
import fnmatch
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

from ..utils.logging import logger
from .cancellation import CancellationToken
from .errors import CommandAborted, PermissionDenied


class PermissionKind(Enum):
    """What a permission request is about."""
    BASH = "bash"
    EXTERNAL_DIRECTORY = "external_directory"


class Decision(Enum):
    """Answer a decision provider gives to a request."""
    ONCE = "once"
    ALWAYS = "always"
    REJECT = "reject"


@dataclass(frozen=True)
class KindHandling:
    """How the gate presents and logs one kind of request."""
    title: str
    log_level: str


KIND_HANDLING: Dict[PermissionKind, KindHandling] = {
    PermissionKind.BASH: KindHandling(
        title="Run command: {patterns}",
        log_level="Permission",
    ),
    PermissionKind.EXTERNAL_DIRECTORY: KindHandling(
        title="Access outside the project: {patterns}",
        log_level="Warning",
    ),
}

_unhandled = set(PermissionKind) - set(KIND_HANDLING)
if _unhandled:
    raise RuntimeError(
        f"No permission handling defined for: {', '.join(k.value for k in _unhandled)}"
    )


@dataclass
class PermissionRequest:
    """A request for permission to do something.

    Attributes:
        kind: What the request is about
        patterns: The exact strings being asked for (never empty)
        always: Broader patterns an "always" answer would cover
        metadata: Free-form context for the provider (e.g. the command)
        title: Human-readable summary; derived from the kind when not given
    """
    kind: PermissionKind
    patterns: Sequence[str]
    always: Sequence[str] = ()
    metadata: Dict[str, Any] = field(default_factory=dict)
    title: Optional[str] = None

    def __post_init__(self):
        self.kind = PermissionKind(self.kind)
        self.patterns = tuple(self.patterns)
        self.always = tuple(self.always)
        if not self.patterns:
            raise ValueError(f"{self.kind.value} permission request needs at least one pattern")
        if self.title is None:
            handling = KIND_HANDLING[self.kind]
            self.title = handling.title.format(patterns=", ".join(self.patterns))


def external_directory_request(directories: Iterable[str], command: str = "") -> PermissionRequest:
    """Build the request for paths that lie outside the project root."""
    directories = list(directories)
    always: List[str] = []
    for directory in directories:
        pattern = os.path.dirname(directory) + "*"
        if pattern not in always:
            always.append(pattern)
    return PermissionRequest(
        kind=PermissionKind.EXTERNAL_DIRECTORY,
        patterns=directories,
        always=always,
        metadata={"command": command},
    )


def bash_request(patterns: Iterable[str], always: Iterable[str], command: str = "") -> PermissionRequest:
    """Build the request for the invocations a command will run."""
    return PermissionRequest(
        kind=PermissionKind.BASH,
        patterns=list(patterns),
        always=list(always),
        metadata={"command": command},
    )


class DecisionProvider(Protocol):
    """Anything that can answer a permission request."""

    async def resolve(self, request: PermissionRequest) -> Decision:
        ...


class PermissionGate:
    """Suspends the caller until each permission request is decided."""

    def __init__(self, provider: DecisionProvider):
        self.provider = provider

    async def ask(self, request: PermissionRequest, token: CancellationToken) -> Decision:
        """Wait for a decision on one request.

        Returns:
            Decision.ONCE or Decision.ALWAYS

        Raises:
            PermissionDenied: If the provider rejects the request
            CommandAborted: If the token fires before a decision arrives
        """
        handling = KIND_HANDLING[request.kind]
        if token.cancelled:
            raise CommandAborted()

        logger.log_message(handling.log_level, f"Requesting permission: {request.title}")

        decision_task = asyncio.ensure_future(self.provider.resolve(request))
        cancel_task = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait({decision_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (decision_task, cancel_task):
                if not task.done():
                    task.cancel()

        if not decision_task.done() or decision_task.cancelled():
            logger.permission(f"Cancelled while waiting on: {request.title}")
            raise CommandAborted()

        decision = Decision(decision_task.result())
        logger.permission(f"Decision '{decision.value}' for {request.kind.value}: {', '.join(request.patterns)}")
        if decision is Decision.REJECT:
            raise PermissionDenied(request)
        return decision

    async def ask_all(self, requests: Iterable[PermissionRequest], token: CancellationToken) -> List[Decision]:
        """Ask each request in order, stopping at the first refusal."""
        decisions = []
        for request in requests:
            decisions.append(await self.ask(request, token))
        return decisions


class AllowAllProvider:
    """Approves every request once."""

    async def resolve(self, request: PermissionRequest) -> Decision:
        return Decision.ONCE


class DenyAllProvider:
    """Rejects every request."""

    async def resolve(self, request: PermissionRequest) -> Decision:
        return Decision.REJECT


class GlobProvider:
    """Approves a request when every pattern matches one of the allowed globs."""

    def __init__(self, allowed_globs: Iterable[str]):
        self.allowed_globs = list(allowed_globs)

    def matches(self, pattern: str) -> bool:
        return any(fnmatch.fnmatchcase(pattern, glob) for glob in self.allowed_globs)

    async def resolve(self, request: PermissionRequest) -> Decision:
        if all(self.matches(pattern) for pattern in request.patterns):
            return Decision.ONCE
        return Decision.REJECT


def create_permission_gate(allow_all: bool = False, allowed_globs: Optional[Iterable[str]] = None) -> PermissionGate:
    """Create a permission gate with a provider chosen from simple options.

    Args:
        allow_all: Approve everything
        allowed_globs: Approve only requests whose patterns match these globs

    Returns:
        PermissionGate; with neither option every request is rejected
    """
    if allow_all:
        provider = AllowAllProvider()
    elif allowed_globs:
        provider = GlobProvider(allowed_globs)
    else:
        provider = DenyAllProvider()
    logger.debug(f"Permission gate using {type(provider).__name__}")
    return PermissionGate(provider)
