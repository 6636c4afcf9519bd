"""
Local executable resolution — workspace copy or global install.

Decides, per invocation, which executable a process generator runs and
in which working directory:

    global        command as given (PATH lookup at spawn), cwd = process cwd
    prefer_local  look for a project-local copy walking up from the
                  document's directory; fall back to global
    only_local    like prefer_local, but no local copy means no run

A local copy is ``<dir>/<prefix>/<command>`` (or ``<dir>/<command>``
without a prefix) that exists and is executable.  The working directory
is the ``<dir>`` where it was found.

Nothing is cached: the workspace may change between requests.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from toolbridge.core.models.descriptor import ResolutionMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutableResolution:
    """Which executable to run and where."""

    path: str
    cwd: str
    local: bool = False


class LocalExecutableResolver:
    """Resolve commands according to a ResolutionMode.

    Args:
        search_ancestors: Walk up from the document directory.  When
            False only the document's own directory is searched.
        max_depth: Maximum number of parent directories to visit above
            the document directory (None = no limit besides the root).
    """

    def __init__(self, search_ancestors: bool = True, max_depth: int | None = None):
        self.search_ancestors = search_ancestors
        self.max_depth = max_depth

    def resolve(
        self,
        command: str,
        mode: ResolutionMode,
        document_path: str | None = None,
        workspace_root: Path | None = None,
        prefix: str | None = None,
    ) -> ExecutableResolution | None:
        """Resolve ``command`` for one invocation.

        Returns:
            The resolution, or None when ``mode`` is only_local and no
            local copy exists.
        """
        if mode != ResolutionMode.GLOBAL and document_path:
            found = self.find_local(command, Path(document_path), workspace_root, prefix)
            if found is not None:
                logger.debug("Using local %s at %s", command, found.path)
                return found

        if mode == ResolutionMode.ONLY_LOCAL:
            logger.debug("No local %s for %s", command, document_path)
            return None

        return ExecutableResolution(path=command, cwd=os.getcwd())

    def find_local(
        self,
        command: str,
        document_path: Path,
        workspace_root: Path | None = None,
        prefix: str | None = None,
    ) -> ExecutableResolution | None:
        """Search for a local copy of ``command``."""
        for directory in self._candidate_dirs(document_path, workspace_root):
            candidate = directory / prefix / command if prefix else directory / command
            if candidate.is_file() and os.access(candidate, os.X_OK):
                return ExecutableResolution(
                    path=str(candidate),
                    cwd=str(directory),
                    local=True,
                )
        return None

    def _candidate_dirs(self, document_path: Path, workspace_root: Path | None) -> list[Path]:
        start = document_path.resolve().parent
        if not self.search_ancestors:
            return [start]

        root = workspace_root.resolve() if workspace_root else None
        dirs = [start]
        current = start
        while self.max_depth is None or len(dirs) <= self.max_depth:
            if current == root:
                break
            parent = current.parent
            if parent == current:
                break  # filesystem root
            dirs.append(parent)
            current = parent
        return dirs
