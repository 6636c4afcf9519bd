"""
Mock command runner — test double for the process layer.

Records every spawn without touching the OS.  Responses are configurable
per command (matched by full path first, then by basename).  Delays are
simulated with asyncio.sleep and honour the timeout the caller passes,
so timeout handling can be tested without real processes.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Callable

from toolbridge.adapters.shell.command import CommandResult
from toolbridge.core.errors import ExecutableNotFound


@dataclass
class MockCall:
    """One recorded spawn."""

    path: str
    args: list[str]
    cwd: str | None = None
    env: dict[str, str] = field(default_factory=dict)
    stdin: str | bytes | None = None
    timeout: float = 0.0


Responder = Callable[[MockCall], CommandResult]


class MockCommandRunner:
    """Universal mock runner for testing.

    By default every command succeeds with empty output.
    """

    def __init__(self, default_output: str = ""):
        self._default_output = default_output
        self._responses: dict[str, CommandResult | Responder] = {}
        self._delays: dict[str, float] = {}
        self._missing: set[str] = set()
        self._call_log: list[MockCall] = []
        self.active = 0
        self.max_active = 0

    @property
    def call_log(self) -> list[MockCall]:
        """All spawns this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def calls_for(self, command: str) -> list[MockCall]:
        """Spawns of ``command`` (full path or basename)."""
        return [
            call for call in self._call_log
            if call.path == command or os.path.basename(call.path) == command
        ]

    def set_response(self, command: str, response: CommandResult | Responder) -> None:
        """Set a fixed result, or a callable building one, for ``command``."""
        self._responses[command] = response

    def set_output(self, command: str, stdout: str = "", stderr: str = "", exit_code: int = 0) -> None:
        """Shorthand for a fixed result."""
        self._responses[command] = CommandResult(stdout=stdout, stderr=stderr, exit_code=exit_code)

    def set_delay(self, command: str, seconds: float) -> None:
        """Make ``command`` take ``seconds`` to finish."""
        self._delays[command] = seconds

    def set_missing(self, command: str) -> None:
        """Make spawning ``command`` fail as if it were not installed."""
        self._missing.add(command)

    def _lookup(self, table: Mapping[str, object], path: str) -> object | None:
        if path in table:
            return table[path]
        return table.get(os.path.basename(path))

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
        call = MockCall(path, list(args), cwd, dict(env or {}), stdin, timeout)
        self._call_log.append(call)

        if path in self._missing or os.path.basename(path) in self._missing:
            raise ExecutableNotFound(path)

        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            delay = self._lookup(self._delays, path) or 0.0
            if delay:
                if delay > timeout:
                    await asyncio.sleep(timeout)
                    return CommandResult(timed_out=True, duration_ms=int(timeout * 1000))
                await asyncio.sleep(delay)

            response = self._lookup(self._responses, path)
            if response is None:
                return CommandResult(stdout=self._default_output, exit_code=0)
            if callable(response):
                return response(call)
            return response
        finally:
            self.active -= 1

    def reset(self) -> None:
        """Clear call log and configured responses."""
        self._call_log.clear()
        self._responses.clear()
        self._delays.clear()
        self._missing.clear()
        self.active = 0
        self.max_active = 0
