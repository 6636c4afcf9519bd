"""
Generator base — the uniform task interface over all execution kinds.

The dispatcher only talks to generators through this interface:
``invoke(request) -> ExecutionOutcome``.  Whether the work happens in a
spawned process or an in-process function is the subclass's business.

Generators NEVER raise into the dispatcher.  ``execute()`` may raise the
toolbridge errors (or anything else); ``invoke()`` converts every failure
into an outcome.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from toolbridge.adapters.registry import RegisteredSource
from toolbridge.adapters.shell.command import CommandRunner
from toolbridge.core.errors import ExecutableNotFound, GeneratorTimeout, ProcessFailure
from toolbridge.core.models.descriptor import ExecutionKind, GeneratorDescriptor
from toolbridge.core.models.outcome import ExecutionOutcome
from toolbridge.core.models.request import ExecutionRequest
from toolbridge.core.services.resolver import LocalExecutableResolver

logger = logging.getLogger(__name__)


@dataclass
class GeneratorContext:
    """Everything a generator needs besides its own descriptor."""

    runner: CommandRunner = field(default_factory=CommandRunner)
    resolver: LocalExecutableResolver = field(default_factory=LocalExecutableResolver)
    workspace_root: Path | None = None


class Generator(ABC):
    """Abstract base class for generators.

    To add an execution kind:
        1. Subclass Generator
        2. Implement kind and execute
        3. Map the kind in ``toolbridge.adapters.make_generator``
    """

    def __init__(self, source: RegisteredSource, context: GeneratorContext):
        self.source = source
        self.context = context

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def descriptor(self) -> GeneratorDescriptor:
        return self.source.descriptor

    @property
    @abstractmethod
    def kind(self) -> ExecutionKind:
        """The execution kind this generator implements."""

    @abstractmethod
    async def execute(self, request: ExecutionRequest) -> ExecutionOutcome:
        """Produce the outcome for ``request``.  May raise."""

    async def invoke(self, request: ExecutionRequest) -> ExecutionOutcome:
        """Run the generator and return an outcome.  Never raises.

        Cancellation is the one exception: it propagates so the caller's
        task can be torn down.
        """
        start = time.monotonic()
        try:
            outcome = await self.execute(request)
        except GeneratorTimeout as e:
            outcome = ExecutionOutcome.timeout(self.name, e.timeout)
        except ExecutableNotFound as e:
            outcome = ExecutionOutcome.failure(self.name, str(e), metadata={"command": e.command})
        except ProcessFailure as e:
            outcome = ExecutionOutcome.failure(
                self.name, str(e), metadata={"exit_code": e.exit_code}
            )
        except Exception as e:
            logger.error("Generator %s raised: %s", self.name, e)
            outcome = ExecutionOutcome.failure(self.name, f"Unexpected error: {e}")

        outcome.duration_ms = int((time.monotonic() - start) * 1000)
        return outcome

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
