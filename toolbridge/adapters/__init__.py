"""
Adapters — everything that touches the outside world.

    generators   base.Generator, process.ProcessGenerator, function.FunctionGenerator
    registry     registry.SourceRegistry
    processes    shell.command.CommandRunner, mock.MockCommandRunner
    editor       documents.InMemoryDocuments, diagnostics.DiagnosticStore
"""

from __future__ import annotations

from toolbridge.adapters.base import Generator, GeneratorContext
from toolbridge.adapters.function import FunctionGenerator
from toolbridge.adapters.process import ProcessGenerator
from toolbridge.adapters.registry import RegisteredSource
from toolbridge.core.models.descriptor import ExecutionKind

_GENERATOR_TYPES: dict[ExecutionKind, type[Generator]] = {
    ExecutionKind.PROCESS: ProcessGenerator,
    ExecutionKind.FUNCTION: FunctionGenerator,
}


def make_generator(source: RegisteredSource, context: GeneratorContext) -> Generator:
    """Wrap a registered source in the generator for its execution kind."""
    return _GENERATOR_TYPES[source.descriptor.kind](source, context)


__all__ = [
    "FunctionGenerator",
    "Generator",
    "GeneratorContext",
    "ProcessGenerator",
    "make_generator",
]
