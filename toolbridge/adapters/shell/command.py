"""
Command runner — spawn one external process and collect its output.

This is the single place where processes are spawned.  It never blocks
the event loop: the process runs while the caller is suspended, so
several generators' processes can run in parallel.

A process that outlives its timeout is killed and reaped, and the result
is reported as timed out.  Once the deadline has passed, a late exit is
ignored.  Cancelling the awaiting task kills the process too.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shlex
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from toolbridge.core.errors import ExecutableNotFound

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Captured output of one process run."""

    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = None
    timed_out: bool = False
    duration_ms: int = 0


async def _kill(process: asyncio.subprocess.Process) -> None:
    """Forcefully terminate ``process`` and wait for it to exit."""
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
    await process.wait()


class CommandRunner:
    """Run commands asynchronously with a timeout."""

    async def run(
        self,
        path: str,
        args: Sequence[str],
        *,
        cwd: str | None = None,
        env: Mapping[str, str] | None = None,
        stdin: str | bytes | None = None,
        timeout: float = 5.0,
    ) -> CommandResult:
        """Run ``path`` with ``args`` and capture its output.

        Args:
            path: Executable to run (absolute, or looked up on PATH).
            args: Arguments, already substituted.
            cwd: Working directory.
            env: Extra environment variables, merged over os.environ.
            stdin: Content piped to the process, or None for no stdin.
            timeout: Seconds before the process is killed.

        Raises:
            ExecutableNotFound: The executable does not exist or cannot run.
        """
        full_env = os.environ.copy()
        if env:
            for key, value in env.items():
                full_env[key] = os.path.expandvars(value)

        logger.debug("Executing: %s (cwd=%s)", shlex.join([path, *args]), cwd)
        start = time.monotonic()

        try:
            process = await asyncio.create_subprocess_exec(
                path,
                *args,
                stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                env=full_env,
            )
        except FileNotFoundError as e:
            raise ExecutableNotFound(path) from e
        except PermissionError as e:
            raise ExecutableNotFound(path, "not executable") from e

        data = stdin.encode("utf-8") if isinstance(stdin, str) else stdin
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(data), timeout)
        except TimeoutError:
            await _kill(process)
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.debug("Command timed out after %ss: %s", timeout, path)
            return CommandResult(timed_out=True, duration_ms=elapsed_ms)
        except asyncio.CancelledError:
            await _kill(process)
            raise

        elapsed_ms = int((time.monotonic() - start) * 1000)
        return CommandResult(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=process.returncode,
            duration_ms=elapsed_ms,
        )
