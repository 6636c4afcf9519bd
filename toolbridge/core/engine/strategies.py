"""
Capability strategies — how each capability is dispatched and merged.

    capability        dispatch     merge
    diagnostics       concurrent   union, routed per file, stamped, formatted
    code_action       concurrent   concatenation in source order, tagged
    hover             concurrent   earliest-ordered non-empty success
    formatting        sequential   final content of the chain
    range_formatting  sequential   final content of the chain

Each ok payload is first normalized to the capability's payload type
(a source returning something malformed fails on its own).  Merge
functions then receive (source, outcome) pairs in registry order and only
look at ok outcomes.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Callable, Literal

from toolbridge.adapters.registry import RegisteredSource
from toolbridge.core.models.descriptor import Capability
from toolbridge.core.models.outcome import ExecutionOutcome
from toolbridge.core.models.payloads import CodeAction, Diagnostic
from toolbridge.core.models.request import ExecutionRequest
from toolbridge.core.models.text import TextEdit
from toolbridge.core.services.text_edits import apply_edits

logger = logging.getLogger(__name__)

Pairs = Sequence[tuple[RegisteredSource, ExecutionOutcome]]


@dataclass(frozen=True)
class Strategy:
    """Dispatch mode plus merge rule for one capability."""

    mode: Literal["concurrent", "sequential"]
    normalize: Callable[[Any, str], Any]
    merge: Callable[[Pairs, ExecutionRequest], Any]

    @property
    def sequential(self) -> bool:
        return self.mode == "sequential"


def format_message(template: str | None, diagnostic: Diagnostic) -> str:
    """Expand a diagnostics format template.

    ``#{m}`` message, ``#{s}`` source, ``#{c}`` code.
    """
    if not template:
        return diagnostic.message
    return (
        template.replace("#{m}", diagnostic.message)
        .replace("#{s}", diagnostic.source)
        .replace("#{c}", diagnostic.code or "")
    )


def _same_file(filename: str, path: str | None) -> bool:
    if not path:
        return False
    return os.path.abspath(filename) == os.path.abspath(path)


def merge_diagnostics(pairs: Pairs, request: ExecutionRequest) -> dict[str, list[Diagnostic]]:
    """Union of all diagnostics, keyed by the document they belong to.

    The requested document is always present, possibly empty.
    Diagnostics naming another file are keyed by that file's absolute path.
    A diagnostic that never set its severity takes the source's
    ``diagnostic_severity``.
    """
    by_document: dict[str, list[Diagnostic]] = {request.document_id: []}
    for source, outcome in pairs:
        if not outcome.ok or not outcome.payload:
            continue
        descriptor = source.descriptor
        for diagnostic in outcome.payload:
            update = {"source": source.name}
            if "severity" not in diagnostic.model_fields_set:
                update["severity"] = descriptor.diagnostic_severity
            stamped = diagnostic.model_copy(update=update)
            stamped.message = format_message(descriptor.diagnostics_format, stamped)

            target = request.document_id
            if stamped.filename and not _same_file(stamped.filename, request.path):
                target = os.path.abspath(stamped.filename)
            by_document.setdefault(target, []).append(stamped)
    return by_document


def merge_code_actions(pairs: Pairs, request: ExecutionRequest) -> list[CodeAction]:
    """Concatenate actions in source order, each tagged with its source."""
    actions: list[CodeAction] = []
    for source, outcome in pairs:
        if not outcome.ok or not outcome.payload:
            continue
        for action in outcome.payload:
            actions.append(action.model_copy(update={"source": source.name}))
    return actions


def hover_lines(payload: Any) -> list[str]:
    """Normalize a hover payload to a list of lines."""
    if payload is None:
        return []
    if isinstance(payload, str):
        return [payload] if payload.strip() else []
    return [str(line) for line in payload if str(line).strip()]


def merge_hover(pairs: Pairs, request: ExecutionRequest) -> list[str]:
    """The earliest-ordered non-empty hover result."""
    for _, outcome in pairs:
        if outcome.ok:
            lines = hover_lines(outcome.payload)
            if lines:
                return lines
    return []


def formatted_content(payload: Any, text: str) -> str:
    """Normalize a formatting payload to the resulting content.

    Raises:
        ValueError: If the payload is neither text nor edits, or edits overlap.
    """
    if payload is None:
        return text
    if isinstance(payload, str):
        return payload
    if isinstance(payload, TextEdit):
        payload = [payload]
    if isinstance(payload, list) and all(isinstance(e, TextEdit) for e in payload):
        return apply_edits(text, payload)
    raise ValueError(f"Unsupported formatting payload: {type(payload).__name__}")


def merge_formatting(pairs: Pairs, request: ExecutionRequest) -> str:
    """Content after the last formatter that succeeded.

    The dispatcher has already normalized each ok payload to the content
    it produced.
    """
    content = request.text
    for _, outcome in pairs:
        if outcome.ok:
            content = outcome.payload
    return content


def diagnostics_payload(payload: Any, text: str) -> list[Diagnostic]:
    """Normalize a diagnostics payload (mappings are validated)."""
    if not payload:
        return []
    return [d if isinstance(d, Diagnostic) else Diagnostic.model_validate(d) for d in payload]


def code_actions_payload(payload: Any, text: str) -> list[CodeAction]:
    """Normalize a code action payload (mappings are validated)."""
    if not payload:
        return []
    return [a if isinstance(a, CodeAction) else CodeAction.model_validate(a) for a in payload]


def hover_payload(payload: Any, text: str) -> list[str]:
    return hover_lines(payload)


STRATEGIES: dict[Capability, Strategy] = {
    Capability.DIAGNOSTICS: Strategy("concurrent", diagnostics_payload, merge_diagnostics),
    Capability.CODE_ACTION: Strategy("concurrent", code_actions_payload, merge_code_actions),
    Capability.HOVER: Strategy("concurrent", hover_payload, merge_hover),
    Capability.FORMATTING: Strategy("sequential", formatted_content, merge_formatting),
    Capability.RANGE_FORMATTING: Strategy("sequential", formatted_content, merge_formatting),
}
