"""
Execution outcomes — the result of one generator invocation.

Generators never raise into the dispatcher.  Every invocation ends in an
outcome: ok (with a payload), failed, timeout or skipped.  Only ok
outcomes contribute to the merged result.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class ExecutionOutcome(BaseModel):
    """What happened when a source was asked for a payload."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    source: str
    status: Literal["ok", "failed", "timeout", "skipped"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    payload: Any = None
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def timed_out(self) -> bool:
        return self.status == "timeout"

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"

    @classmethod
    def success(cls, source: str, payload: Any = None, **kwargs: Any) -> ExecutionOutcome:
        """Create a success outcome."""
        return cls(source=source, status="ok", payload=payload, **kwargs)

    @classmethod
    def failure(cls, source: str, error: str, **kwargs: Any) -> ExecutionOutcome:
        """Create a failure outcome."""
        return cls(source=source, status="failed", error=error, **kwargs)

    @classmethod
    def timeout(cls, source: str, timeout: float, **kwargs: Any) -> ExecutionOutcome:
        """Create a timeout outcome."""
        return cls(
            source=source,
            status="timeout",
            error=f"Timed out after {timeout}s",
            **kwargs,
        )

    @classmethod
    def skip(cls, source: str, reason: str = "", **kwargs: Any) -> ExecutionOutcome:
        """Create a skip outcome."""
        return cls(source=source, status="skipped", error=reason or None, **kwargs)


class ProcessOutput(BaseModel):
    """What a process generator's output handler receives.

    ``output`` is shaped by the process spec's ``output_format``: the raw text, a
    list of lines, a decoded JSON value, or None.
    """

    output: Any = None
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
