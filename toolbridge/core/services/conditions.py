"""
Condition evaluation — decides whether a generator is eligible.

Two checks with different lifecycles:

    static   evaluated once, at registration, against the workspace.
             False marks the source dead until it is registered again.
    runtime  evaluated on every request, against the request.
             False skips the source for that request only.

Static conditions are either callables receiving a WorkspaceContext, or
string specs usable from the YAML config:

    file_exists:<path relative to the workspace root>
    has_command:<executable on PATH>
    env:<VARIABLE that must be set and non-empty>
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from toolbridge.core.models.request import ExecutionRequest

logger = logging.getLogger(__name__)


@dataclass
class WorkspaceContext:
    """What a static condition may look at."""

    root: Path = field(default_factory=Path.cwd)

    def root_has_file(self, *names: str) -> bool:
        """True if any of ``names`` exists under the workspace root."""
        return any((self.root / name).exists() for name in names)

    def has_command(self, name: str) -> bool:
        """True if ``name`` is on PATH."""
        return shutil.which(name) is not None


def _evaluate_spec(spec: str, workspace: WorkspaceContext) -> bool:
    """Evaluate a string condition spec."""
    kind, _, arg = spec.partition(":")
    if kind == "file_exists":
        return workspace.root_has_file(arg)
    if kind == "has_command":
        return workspace.has_command(arg)
    if kind == "env":
        return bool(os.environ.get(arg))
    logger.warning("Unknown condition: %s", spec)
    return True


def evaluate_static(
    condition: Callable[..., Any] | str | None,
    workspace: WorkspaceContext,
    source: str = "",
) -> bool:
    """Evaluate a registration-time condition.

    A condition that raises counts as false.
    """
    if condition is None:
        return True
    try:
        if isinstance(condition, str):
            return _evaluate_spec(condition, workspace)
        return bool(condition(workspace))
    except Exception as e:
        logger.warning("Condition for '%s' raised: %s", source, e)
        return False


def evaluate_runtime(
    condition: Callable[..., Any] | None,
    request: ExecutionRequest,
    source: str = "",
) -> bool:
    """Evaluate a per-request condition.

    A condition that raises counts as false for this request.
    """
    if condition is None:
        return True
    try:
        return bool(condition(request))
    except Exception as e:
        logger.warning("Runtime condition for '%s' raised: %s", source, e)
        return False
