"""
Diagnostics sink — where merged diagnostics are published.

``publish()`` replaces a document's diagnostic set.  ``DiagnosticStore``
keeps the sets in memory so each document's diagnostics can be queried
independently.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from toolbridge.core.models.payloads import Diagnostic


class DiagnosticSink(Protocol):
    def publish(self, document_id: str, diagnostics: Sequence[Diagnostic]) -> None: ...


class DiagnosticStore:
    """In-memory diagnostic sets, one per document."""

    def __init__(self) -> None:
        self._diagnostics: dict[str, list[Diagnostic]] = {}

    def publish(self, document_id: str, diagnostics: Sequence[Diagnostic]) -> None:
        if diagnostics:
            self._diagnostics[document_id] = list(diagnostics)
        else:
            self._diagnostics.pop(document_id, None)

    def get(self, document_id: str) -> list[Diagnostic]:
        return list(self._diagnostics.get(document_id, []))

    def all(self) -> dict[str, list[Diagnostic]]:
        return {doc: list(diags) for doc, diags in self._diagnostics.items()}

    def documents(self) -> list[str]:
        return sorted(self._diagnostics)

    def clear(self, document_id: str | None = None) -> None:
        if document_id is None:
            self._diagnostics.clear()
        else:
            self._diagnostics.pop(document_id, None)
