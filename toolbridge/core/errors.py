"""
Error taxonomy for the generator engine.

Only ConfigurationError ever reaches callers of the public API: it is
raised at registration or config load time.  The other errors are raised
inside generators and converted into outcomes before they reach the
dispatcher.
"""

from __future__ import annotations


class ToolbridgeError(Exception):
    """Base class for all toolbridge errors."""


class ConfigurationError(ToolbridgeError):
    """A descriptor or configuration file is invalid."""


class ExecutableNotFound(ToolbridgeError):
    """The command could not be located or spawned."""

    def __init__(self, command: str, detail: str = ""):
        self.command = command
        message = f"Executable not found: {command}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class ProcessFailure(ToolbridgeError):
    """The process exited in a way its descriptor treats as an error."""

    def __init__(self, command: str, exit_code: int, stderr: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(
            stderr.strip() or f"{command} exited with code {exit_code}"
        )


class GeneratorTimeout(ToolbridgeError):
    """A generator did not finish within its timeout."""

    def __init__(self, source: str, timeout: float):
        self.source = source
        self.timeout = timeout
        super().__init__(f"{source} timed out after {timeout}s")
