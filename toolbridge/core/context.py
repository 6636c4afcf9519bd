"""
Session context — one workspace's registry, cache, documents and dispatcher.

Entry points build a Session once and route every request through it:

    - CLI:       main.py  → Session.from_config(config, root)
    - Embedders: Session(root) + session.register(...)
    - Tests:     conftest → Session(tmp_path, runner=MockCommandRunner())

Nothing here is a module-level singleton; two sessions never share
state.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from toolbridge.adapters.diagnostics import DiagnosticSink, DiagnosticStore
from toolbridge.adapters.documents import InMemoryDocuments
from toolbridge.adapters.registry import RegisteredSource, SourceRegistry
from toolbridge.adapters.shell.command import CommandRunner
from toolbridge.core.engine.dispatcher import Dispatcher
from toolbridge.core.models.config import BridgeConfig
from toolbridge.core.models.descriptor import GeneratorDescriptor
from toolbridge.core.services.conditions import WorkspaceContext
from toolbridge.core.services.resolver import LocalExecutableResolver
from toolbridge.core.services.result_cache import ResultCache

logger = logging.getLogger(__name__)


class Session:
    """Everything needed to serve requests for one workspace."""

    def __init__(
        self,
        workspace_root: Path | str | None = None,
        *,
        documents: InMemoryDocuments | None = None,
        sink: DiagnosticSink | None = None,
        runner: CommandRunner | None = None,
        resolver: LocalExecutableResolver | None = None,
    ):
        root = Path(workspace_root).resolve() if workspace_root else Path.cwd()
        self.workspace = WorkspaceContext(root)
        self.registry = SourceRegistry(self.workspace)
        self.cache = ResultCache()
        self.documents = documents or InMemoryDocuments()
        self.diagnostics = sink or DiagnosticStore()
        self.dispatcher = Dispatcher(
            self.registry,
            self.documents,
            cache=self.cache,
            runner=runner,
            resolver=resolver,
            sink=self.diagnostics,
        )

    @property
    def root(self) -> Path:
        return self.workspace.root

    def register(self, *descriptors: GeneratorDescriptor | Mapping[str, Any]) -> list[RegisteredSource]:
        """Register one or more generators, in order."""
        return [self.registry.register(d) for d in descriptors]

    def reset(self) -> None:
        """Drop all sources, cached results and request bookkeeping."""
        self.dispatcher.reset()
        self.registry.reset()
        self.cache.clear()
        logger.debug("Session reset for %s", self.root)

    @classmethod
    def from_config(
        cls,
        config: BridgeConfig,
        workspace_root: Path | str | None = None,
        **kwargs: Any,
    ) -> Session:
        """Build a session with every configured source registered."""
        settings = config.settings
        kwargs.setdefault(
            "resolver",
            LocalExecutableResolver(
                search_ancestors=settings.search_ancestors,
                max_depth=settings.max_depth,
            ),
        )
        session = cls(workspace_root, **kwargs)
        for entry, descriptor in zip(config.sources, config.descriptors()):
            session.registry.register(descriptor)
            if not entry.enabled:
                session.registry.disable(entry.name)
        return session
