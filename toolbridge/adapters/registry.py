"""
Source registry — the set of registered generators.

The registry is the single point of source management.  It handles
registration (with the one-time static condition check), removal,
enable/disable toggling, and ordered lookup by capability and file type.
The dispatcher never holds descriptors of its own: it always asks the
registry.

Order matters.  Every registration receives the next sequence number;
``query()`` returns sources in ascending sequence, which is the order
formatters are chained in and the order diagnostics and code actions are
presented in.  Sequence numbers are never reused, not even after
``reset()``.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from toolbridge.core.models.descriptor import Capability, GeneratorDescriptor
from toolbridge.core.services.conditions import WorkspaceContext, evaluate_static

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class RegisteredSource:
    """A descriptor as held by the registry.

    ``alive`` is cleared when the static condition fails; the source stays
    visible to introspection but never matches a query again.  ``enabled``
    is the user-facing on/off switch.
    """

    descriptor: GeneratorDescriptor
    seq: int
    alive: bool = True
    enabled: bool = True
    registered_at: str = field(default_factory=_now_iso)

    # ── Last resolution (introspection) ──────────────────────────
    last_command: str | None = None
    last_cwd: str | None = None

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def capability(self) -> Capability:
        return self.descriptor.capability

    @property
    def active(self) -> bool:
        """Whether the source takes part in dispatch."""
        return self.alive and self.enabled

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "seq": self.seq,
            "capability": self.capability.value,
            "kind": self.descriptor.kind.value,
            "filetypes": list(self.descriptor.filetypes),
            "alive": self.alive,
            "enabled": self.enabled,
            "last_command": self.last_command,
            "last_cwd": self.last_cwd,
        }


class SourceRegistry:
    """Central registry of generator sources.

    Features:
        - Register/deregister sources by name
        - One-time static condition check at registration
        - Enable, disable and toggle sources
        - Ordered lookup by capability and file type
    """

    def __init__(self, workspace: WorkspaceContext | None = None):
        self._sources: dict[str, RegisteredSource] = {}
        self._seq = itertools.count(1)
        self.workspace = workspace or WorkspaceContext()

    def __len__(self) -> int:
        return len(self._sources)

    def __contains__(self, name: object) -> bool:
        return name in self._sources

    def register(self, descriptor: GeneratorDescriptor | Mapping[str, Any]) -> RegisteredSource:
        """Register a source.

        Args:
            descriptor: A descriptor, or a mapping validated into one.

        Returns:
            The registered source, alive or not.

        Raises:
            ConfigurationError: If the mapping is not a valid descriptor.
        """
        if not isinstance(descriptor, GeneratorDescriptor):
            descriptor = GeneratorDescriptor.from_mapping(descriptor)

        name = descriptor.name
        if name in self._sources:
            logger.warning("Overwriting existing source: %s", name)
            del self._sources[name]

        source = RegisteredSource(descriptor=descriptor, seq=next(self._seq))
        if not evaluate_static(descriptor.condition, self.workspace, name):
            source.alive = False
            logger.info("Source '%s' registered but inactive (condition not met)", name)
        else:
            logger.debug("Registered source: %s (%s, seq=%d)", name, descriptor.capability, source.seq)

        self._sources[name] = source
        return source

    def register_all(
        self, descriptors: Iterable[GeneratorDescriptor | Mapping[str, Any]]
    ) -> list[RegisteredSource]:
        """Register several sources in order."""
        return [self.register(d) for d in descriptors]

    def deregister(self, name: str) -> RegisteredSource | None:
        """Remove a source entirely."""
        return self._sources.pop(name, None)

    def reset(self) -> None:
        """Remove every source.  Sequence numbering continues."""
        self._sources.clear()

    def get(self, name: str) -> RegisteredSource | None:
        """Look up a source by name, alive or not."""
        return self._sources.get(name)

    def list_sources(self) -> list[RegisteredSource]:
        """Every registered source, including dead ones, in sequence order."""
        return sorted(self._sources.values(), key=lambda s: s.seq)

    def query(
        self,
        capability: Capability | None = None,
        filetype: str | None = None,
    ) -> list[RegisteredSource]:
        """Active sources matching both filters, in sequence order.

        A None filter matches everything.
        """
        matches = []
        for source in self.list_sources():
            if not source.active:
                continue
            if capability is not None and source.capability != capability:
                continue
            if filetype is not None and not source.descriptor.applies_to(filetype):
                continue
            matches.append(source)
        return matches

    # ── Toggling ────────────────────────────────────────────────

    def enable(self, name: str) -> None:
        self._require(name).enabled = True

    def disable(self, name: str) -> None:
        self._require(name).enabled = False

    def toggle(self, name: str) -> bool:
        """Flip a source on or off.  Returns the new enabled state."""
        source = self._require(name)
        source.enabled = not source.enabled
        logger.info("Source '%s' %s", name, "enabled" if source.enabled else "disabled")
        return source.enabled

    def _require(self, name: str) -> RegisteredSource:
        source = self._sources.get(name)
        if source is None:
            raise KeyError(f"No source registered as '{name}'")
        return source

    def source_status(self) -> dict[str, dict[str, Any]]:
        """Status of every registered source."""
        return {source.name: source.to_dict() for source in self.list_sources()}
