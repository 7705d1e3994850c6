"""Shell selection, child environment and process-tree termination."""

import asyncio
import os
import shutil
import signal
import sys
from typing import Dict, List, Mapping, Optional

from ..constants import NONINTERACTIVE_ENV, UNACCEPTABLE_SHELLS
from ..utils.logging import logger

KILL_GRACE_SECONDS = 0.2


def acceptable_shell(platform: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> str:
    """Pick the shell that will run `-c` scripts.

    Uses $SHELL unless it is one that does not speak POSIX sh (fish, nu),
    then bash from PATH, then /bin/sh. On Windows, %COMSPEC% or cmd.exe.
    """
    platform = platform or sys.platform
    environ = os.environ if environ is None else environ

    if platform == "win32":
        return environ.get("COMSPEC", "cmd.exe")

    shell = environ.get("SHELL")
    if shell and os.path.basename(shell) not in UNACCEPTABLE_SHELLS:
        return shell

    bash = shutil.which("bash")
    if bash:
        return bash
    return "/bin/sh"


def shell_args(shell: str, command: str) -> List[str]:
    """Arguments that make shell run command and exit."""
    name = os.path.basename(shell).lower()
    if name in ("cmd", "cmd.exe"):
        return ["/c", command]
    if name in ("powershell", "powershell.exe", "pwsh", "pwsh.exe"):
        return ["-NoProfile", "-Command", command]
    return ["-c", command]


def build_environment(hardened: bool = True, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Environment for a child process.

    Args:
        hardened: Layer the non-interactive variables over the base
        base: Parent environment (defaults to os.environ)
    """
    env = dict(os.environ if base is None else base)
    if hardened:
        env.update(NONINTERACTIVE_ENV)
    return env


async def kill_process_tree(proc: asyncio.subprocess.Process) -> None:
    """Kill a child started in its own session, together with its children.

    POSIX: SIGTERM to the process group, then SIGKILL after a short grace
    period if any member is still alive. The group is signalled even when
    the shell itself has already exited, since background jobs it started
    stay in the group (its id is the shell's pid). Windows: taskkill /F /T
    while the child is still running.
    """
    if sys.platform == "win32":
        if proc.returncode is not None:
            logger.warning(f"Process {proc.pid} already exited; its children cannot be reached")
            return
        logger.process(f"Killing process tree {proc.pid} with taskkill")
        try:
            killer = await asyncio.create_subprocess_exec(
                "taskkill", "/F", "/T", "/PID", str(proc.pid),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            await killer.wait()
        except OSError as e:
            logger.warning(f"taskkill failed for {proc.pid}: {e}")
            try:
                proc.kill()
            except ProcessLookupError:
                pass
        return

    pgid = proc.pid
    logger.process(f"Sending SIGTERM to process group {pgid}")
    if not _signal_group(pgid, signal.SIGTERM):
        return
    await asyncio.sleep(KILL_GRACE_SECONDS)
    if _signal_group(pgid, 0):
        logger.process(f"Sending SIGKILL to process group {pgid}")
        _signal_group(pgid, signal.SIGKILL)


def _signal_group(pgid: int, sig: int) -> bool:
    """Signal a process group; False when the group no longer exists."""
    try:
        os.killpg(pgid, sig)
    except ProcessLookupError:
        return False
    except PermissionError as e:
        logger.warning(f"Cannot signal process group {pgid}: {e}")
        return False
    return True
