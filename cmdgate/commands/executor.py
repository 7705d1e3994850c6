"""Supervised command execution for cmdgate.

Commands run under a pseudo-terminal when one can be allocated, so tools
that check isatty() behave as they would for a user. If the PTY cannot be
spawned after a few attempts the command falls back to a plain child
process with piped output. Either way the supervisor enforces the timeout,
honours the cancellation token and caps the amount of output it keeps.
"""

import asyncio
import codecs
import os
import sys
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import pexpect

from ..constants import (
    DEFAULT_MAX_OUTPUT_LENGTH, DEFAULT_TIMEOUT_MS, DEFAULT_TIMEOUT_GRACE_MS,
    DEFAULT_PTY_RETRIES, DEFAULT_PTY_BACKOFF_MS, DEFAULT_FALLBACK_INHERIT_ENV,
    DEFAULT_TERMINAL_COLUMNS, DEFAULT_TERMINAL_ROWS,
    METADATA_OPEN_TAG, METADATA_CLOSE_TAG,
)
from ..utils.logging import logger
from .cancellation import CancellationToken
from .errors import InvalidTimeout, ProcessError, SpawnFailure
from .shell import acceptable_shell, build_environment, kill_process_tree, shell_args

OutputCallback = Callable[[str], None]

READ_SIZE = 4096
PTY_POLL_SECONDS = 0.1
QUEUE_SIZE = 64
PIPE_CLOSE_SECONDS = 1.0


@dataclass
class ExecutorConfig:
    """Execution limits and process settings."""
    shell: str = field(default_factory=acceptable_shell)
    default_timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_output_length: int = DEFAULT_MAX_OUTPUT_LENGTH
    pty_retries: int = DEFAULT_PTY_RETRIES
    pty_backoff_ms: int = DEFAULT_PTY_BACKOFF_MS
    timeout_grace_ms: int = DEFAULT_TIMEOUT_GRACE_MS
    fallback_inherit_env: bool = DEFAULT_FALLBACK_INHERIT_ENV
    terminal_columns: int = DEFAULT_TERMINAL_COLUMNS
    terminal_rows: int = DEFAULT_TERMINAL_ROWS


@dataclass
class CommandRequest:
    """A command to run.

    Attributes:
        command: Shell command string
        workdir: Directory to run in (defaults to the project root)
        timeout_ms: Timeout in milliseconds (defaults to the configured one)
        description: Short human description, for display only
    """
    command: str
    workdir: Optional[str] = None
    timeout_ms: Optional[int] = None
    description: Optional[str] = None


@dataclass
class ExecutionResult:
    """Outcome of a supervised command.

    exit_code is 0 when the process never reported one (killed by a signal
    or never started), so check timed_out and aborted before trusting it.
    """
    output: str
    exit_code: int = 0
    truncated: bool = False
    timed_out: bool = False
    aborted: bool = False
    title: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out and not self.aborted


class SpawnState(Enum):
    ATTEMPTING = "attempting"
    PTY_READY = "pty_ready"
    FALLBACK = "fallback"
    FALLBACK_READY = "fallback_ready"
    FALLBACK_FAILED = "fallback_failed"


class SpawnPlan:
    """State machine for choosing how a command gets spawned.

    ATTEMPTING(n) -> PTY_READY | ATTEMPTING(n+1) | FALLBACK
    FALLBACK -> FALLBACK_READY | FALLBACK_FAILED
    """

    def __init__(self, max_attempts: int = DEFAULT_PTY_RETRIES, backoff_ms: int = DEFAULT_PTY_BACKOFF_MS):
        self.max_attempts = max_attempts
        self.backoff_ms = backoff_ms
        self.attempt = 1
        self.errors: List[BaseException] = []
        self.state = SpawnState.ATTEMPTING if max_attempts > 0 else SpawnState.FALLBACK

    def _require(self, state: SpawnState) -> None:
        if self.state is not state:
            raise RuntimeError(f"Invalid spawn transition from {self.state.value}")

    @property
    def finished(self) -> bool:
        return self.state in (SpawnState.PTY_READY, SpawnState.FALLBACK_READY, SpawnState.FALLBACK_FAILED)

    def pty_succeeded(self) -> None:
        self._require(SpawnState.ATTEMPTING)
        self.state = SpawnState.PTY_READY

    def pty_failed(self, error: BaseException) -> Optional[float]:
        """Record a failed PTY attempt.

        Returns:
            Seconds to wait before the next attempt, or None once the plan
            has moved to FALLBACK
        """
        self._require(SpawnState.ATTEMPTING)
        self.errors.append(error)
        if self.attempt < self.max_attempts:
            delay = self.backoff_ms * self.attempt / 1000
            self.attempt += 1
            return delay
        self.state = SpawnState.FALLBACK
        return None

    def fallback_succeeded(self) -> None:
        self._require(SpawnState.FALLBACK)
        self.state = SpawnState.FALLBACK_READY

    def fallback_failed(self, error: BaseException) -> None:
        self._require(SpawnState.FALLBACK)
        self.errors.append(error)
        self.state = SpawnState.FALLBACK_FAILED


class OutputBuffer:
    """Output of one spawn attempt, capped at a character limit.

    Chunks are appended while the buffer is within the limit, so it can
    overshoot by at most one chunk; the overshoot is cut off at the end.
    """

    def __init__(self, limit: int, on_output: Optional[OutputCallback] = None):
        self.limit = limit
        self.on_output = on_output
        self.text = ""

    def append(self, chunk: str) -> None:
        if len(self.text) > self.limit:
            return
        self.text += chunk
        if self.on_output is not None:
            try:
                self.on_output(self.text)
            except Exception as e:
                logger.warning(f"Output callback failed: {e}")

    @property
    def truncated(self) -> bool:
        return len(self.text) > self.limit


class ProcessSupervisor:
    """Runs commands under a PTY (or a plain child process) with limits."""

    def __init__(self, config: Optional[ExecutorConfig] = None, project_root: Optional[str] = None):
        """Initialize the supervisor.

        Args:
            config: Execution settings (defaults apply when omitted)
            project_root: Default working directory for requests without one
        """
        self.config = config or ExecutorConfig()
        self.project_root = project_root or os.getcwd()

    async def execute(self, request: CommandRequest, token: Optional[CancellationToken] = None,
                      on_output: Optional[OutputCallback] = None) -> ExecutionResult:
        """Run a command to completion, timeout or cancellation.

        Args:
            request: What to run
            token: Cancellation token; firing it kills the process
            on_output: Called with the whole buffer after each append

        Returns:
            ExecutionResult with output, exit code and outcome flags

        Raises:
            InvalidTimeout: If the request carries a negative timeout
            ProcessError: If neither a PTY nor a plain process could be started
        """
        timeout_ms = self.config.default_timeout_ms if request.timeout_ms is None else request.timeout_ms
        if timeout_ms < 0:
            raise InvalidTimeout(timeout_ms)

        token = token or CancellationToken()
        cwd = request.workdir or self.project_root
        buffer = OutputBuffer(self.config.max_output_length, on_output)

        if token.cancelled:
            logger.process(f"Cancelled before start, not running: {request.command}")
            return self._build_result(request, buffer, 0, timeout_ms, timed_out=False, aborted=True)

        plan = SpawnPlan(self.config.pty_retries, self.config.pty_backoff_ms)
        child = None
        while plan.state is SpawnState.ATTEMPTING:
            try:
                child = self._spawn_pty(request.command, cwd)
                plan.pty_succeeded()
            except Exception as e:
                attempt = plan.attempt
                delay = plan.pty_failed(e)
                if delay is not None:
                    logger.warning(f"PTY spawn failed (attempt {attempt}), retrying: {e}")
                    await asyncio.sleep(delay)

        if plan.state is SpawnState.PTY_READY:
            logger.process(f"Running under PTY (pid {child.pid}): {request.command}")
            exit_code, timed_out, aborted = await self._supervise_pty(child, buffer, token, timeout_ms)
        else:
            if plan.errors:
                failure = SpawnFailure(len(plan.errors), plan.errors[-1])
                logger.warning(f"{failure}; falling back to regular spawn")
            try:
                proc = await self._spawn_fallback(request.command, cwd)
                plan.fallback_succeeded()
            except OSError as e:
                plan.fallback_failed(e)
                logger.error(f"Fallback spawn failed: {e}")
                raise ProcessError(request.command, e) from e
            logger.process(f"Running without PTY (pid {proc.pid}): {request.command}")
            exit_code, timed_out, aborted = await self._supervise_fallback(proc, buffer, token, timeout_ms)

        return self._build_result(request, buffer, exit_code, timeout_ms, timed_out, aborted)

    def _spawn_pty(self, command: str, cwd: str) -> "pexpect.spawn":
        shell = self.config.shell
        return pexpect.spawn(
            shell,
            shell_args(shell, command),
            cwd=cwd,
            env=build_environment(hardened=True),
            encoding="utf-8",
            codec_errors="replace",
            dimensions=(self.config.terminal_rows, self.config.terminal_columns),
            timeout=None,
        )

    async def _spawn_fallback(self, command: str, cwd: str) -> asyncio.subprocess.Process:
        shell = self.config.shell
        return await asyncio.create_subprocess_exec(
            shell,
            *shell_args(shell, command),
            cwd=cwd,
            env=build_environment(hardened=not self.config.fallback_inherit_env),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=sys.platform != "win32",
        )

    async def _supervise_pty(self, child, buffer: OutputBuffer, token: CancellationToken, timeout_ms: int):
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue(maxsize=QUEUE_SIZE)
        stop = threading.Event()

        exited = loop.run_in_executor(None, _pump_pty, child, stop, loop, queue)
        drained = asyncio.ensure_future(_drain(queue, buffer, producers=1))

        outcome = await self._wait(exited, token, timeout_ms)
        timed_out = outcome == "timeout"
        aborted = outcome == "cancelled"
        if timed_out or aborted:
            logger.process(f"Terminating PTY child {child.pid} ({outcome})")
            stop.set()

        await exited
        await drained

        exit_code = child.exitstatus
        if exit_code is None or exit_code < 0:
            exit_code = 0
        logger.process(f"PTY child {child.pid} finished: exit={child.exitstatus} signal={child.signalstatus}")
        return exit_code, timed_out, aborted

    async def _supervise_fallback(self, proc: asyncio.subprocess.Process, buffer: OutputBuffer,
                                  token: CancellationToken, timeout_ms: int):
        queue: asyncio.Queue = asyncio.Queue(maxsize=QUEUE_SIZE)
        readers = [
            asyncio.ensure_future(_pump_stream(proc.stdout, queue)),
            asyncio.ensure_future(_pump_stream(proc.stderr, queue)),
        ]
        drained = asyncio.ensure_future(_drain(queue, buffer, producers=len(readers)))
        exited = asyncio.ensure_future(proc.wait())
        # Background jobs keep the pipes open after the shell exits, so the
        # command only counts as finished once its output is closed too
        finished = asyncio.ensure_future(asyncio.wait([exited, *readers]))

        outcome = await self._wait(finished, token, timeout_ms)
        timed_out = outcome == "timeout"
        aborted = outcome == "cancelled"
        if timed_out or aborted:
            await kill_process_tree(proc)
            # A descendant that left the process group can hold the pipes open
            stuck = await _settle([exited, *readers], PIPE_CLOSE_SECONDS)
            if stuck:
                logger.warning(f"Output of process {proc.pid} still open after kill; stopped reading")
        await finished
        await drained
        await asyncio.gather(*(reader for reader in readers if not reader.cancelled()))

        exit_code = proc.returncode
        if exit_code is None or exit_code < 0:
            exit_code = 0
        logger.process(f"Process {proc.pid} finished: returncode={proc.returncode}")
        return exit_code, timed_out, aborted

    async def _wait(self, exited: "asyncio.Future", token: CancellationToken, timeout_ms: int) -> str:
        """Wait for whichever comes first: exit, cancellation or timeout."""
        cancelled = asyncio.ensure_future(token.wait())
        timeout = (timeout_ms + self.config.timeout_grace_ms) / 1000
        try:
            done, _ = await asyncio.wait({exited, cancelled}, timeout=timeout,
                                         return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not cancelled.done():
                cancelled.cancel()
        if exited in done:
            return "exited"
        if cancelled in done:
            return "cancelled"
        return "timeout"

    def _build_result(self, request: CommandRequest, buffer: OutputBuffer, exit_code: int,
                      timeout_ms: int, timed_out: bool, aborted: bool) -> ExecutionResult:
        limit = self.config.max_output_length
        output = buffer.text
        notes = []

        truncated = buffer.truncated
        if truncated:
            output = output[:limit]
            notes.append(f"bash tool truncated output as it exceeded {limit} char limit")
        if timed_out:
            notes.append(f"bash tool terminated command after exceeding timeout {timeout_ms} ms")
        if aborted:
            notes.append("User aborted the command")

        if notes:
            output += "\n\n" + "\n".join([METADATA_OPEN_TAG] + notes + [METADATA_CLOSE_TAG])

        return ExecutionResult(
            output=output,
            exit_code=exit_code,
            truncated=truncated,
            timed_out=timed_out,
            aborted=aborted,
            title=request.command,
            metadata={
                "output": output,
                "exit": exit_code,
                "description": request.description,
            },
        )


def _pump_pty(child, stop: threading.Event, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue) -> None:
    """Read a PTY child until EOF, feeding chunks to the event loop.

    Runs in a worker thread. All calls on the child happen here, including
    termination once stop is set, since pexpect objects are not thread-safe.
    """
    try:
        terminated = False
        while True:
            if stop.is_set() and not terminated:
                terminated = True
                if not _terminate_pty(child):
                    break
            try:
                chunk = child.read_nonblocking(size=READ_SIZE, timeout=PTY_POLL_SECONDS)
            except pexpect.TIMEOUT:
                continue
            except (pexpect.EOF, OSError):
                break
            if chunk:
                asyncio.run_coroutine_threadsafe(queue.put(chunk), loop).result()
        try:
            child.close()
        except (pexpect.ExceptionPexpect, OSError) as e:
            logger.warning(f"Failed to close PTY child {child.pid}: {e}")
    finally:
        asyncio.run_coroutine_threadsafe(queue.put(None), loop).result()


def _terminate_pty(child) -> bool:
    try:
        return child.terminate(force=True)
    except (pexpect.ExceptionPexpect, OSError) as e:
        logger.warning(f"Failed to terminate PTY child {child.pid}: {e}")
        return False


async def _pump_stream(stream: asyncio.StreamReader, queue: asyncio.Queue) -> None:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    try:
        while True:
            data = await stream.read(READ_SIZE)
            if not data:
                break
            text = decoder.decode(data)
            if text:
                await queue.put(text)
        tail = decoder.decode(b"", final=True)
        if tail:
            await queue.put(tail)
    finally:
        # The drain counts one sentinel per reader, cancelled or not
        await queue.put(None)


async def _settle(tasks: List["asyncio.Future"], timeout: float) -> List["asyncio.Future"]:
    """Give tasks a bounded time to finish, cancelling the rest.

    Returns the tasks that had to be cancelled.
    """
    _, pending = await asyncio.wait(tasks, timeout=timeout)
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.wait(pending)
    return list(pending)


async def _drain(queue: asyncio.Queue, buffer: OutputBuffer, producers: int) -> None:
    """Append queued chunks in arrival order until every producer has finished."""
    remaining = producers
    while remaining:
        chunk = await queue.get()
        if chunk is None:
            remaining -= 1
            continue
        buffer.append(chunk)


def create_process_supervisor(config: Optional[ExecutorConfig] = None,
                              project_root: Optional[str] = None) -> ProcessSupervisor:
    """Create a process supervisor with the given settings."""
    return ProcessSupervisor(config, project_root)
