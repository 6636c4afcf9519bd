"""
Domain models for the generator engine.

    from toolbridge.core.models import GeneratorDescriptor, ExecutionRequest, ...
"""

from toolbridge.core.models.descriptor import (
    CachePolicy,
    Capability,
    ExecutionKind,
    GeneratorDescriptor,
    ProcessSpec,
    ResolutionMode,
)
from toolbridge.core.models.outcome import ExecutionOutcome, ProcessOutput
from toolbridge.core.models.payloads import CodeAction, Diagnostic, Severity
from toolbridge.core.models.request import DocumentSnapshot, ExecutionRequest, content_hash
from toolbridge.core.models.text import Position, Range, TextEdit

__all__ = [
    "CachePolicy",
    "Capability",
    "CodeAction",
    "Diagnostic",
    "DocumentSnapshot",
    "ExecutionKind",
    "ExecutionOutcome",
    "ExecutionRequest",
    "ProcessOutput",
    "GeneratorDescriptor",
    "Position",
    "ProcessSpec",
    "Range",
    "ResolutionMode",
    "Severity",
    "TextEdit",
    "content_hash",
]
