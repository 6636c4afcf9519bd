"""
Documents — the snapshot accessor and edit applier the engine consumes.

The engine needs two things from the editor: a snapshot of a document's
content, and a way to apply edits.  ``DocumentStore`` is that contract.
``InMemoryDocuments`` implements it with a per-document undo stack; the
CLI loads files into it, and tests use it as the editor.

Atomic edits are one undo step regardless of how many text edits they
contain.  That is what makes "undo formatting" a single step even when
several formatters ran.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from toolbridge.core.models.request import DocumentSnapshot
from toolbridge.core.models.text import Range, TextEdit
from toolbridge.core.services.text_edits import apply_edits

logger = logging.getLogger(__name__)

# Extension → filetype.  Unknown extensions use the bare extension.
_FILETYPES: dict[str, str] = {
    ".py": "python",
    ".pyi": "python",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascriptreact",
    ".ts": "typescript",
    ".tsx": "typescriptreact",
    ".lua": "lua",
    ".tl": "teal",
    ".md": "markdown",
    ".markdown": "markdown",
    ".txt": "text",
    ".json": "json",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".toml": "toml",
    ".sh": "sh",
    ".bash": "sh",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".css": "css",
    ".html": "html",
}


def filetype_for_path(path: str | Path) -> str:
    """Guess a document's filetype from its extension."""
    suffix = Path(path).suffix.lower()
    return _FILETYPES.get(suffix, suffix.lstrip("."))


class DocumentStore(Protocol):
    """What the dispatcher needs from the editor's buffers."""

    def get_snapshot(self, document_id: str) -> DocumentSnapshot: ...

    def get_content(self, document_id: str, range: Range | None = None) -> tuple[str, str]: ...

    def apply_edit(self, document_id: str, edits: Sequence[TextEdit], atomic: bool = True) -> bool: ...


@dataclass
class _Document:
    text: str
    path: str | None = None
    filetype: str = ""
    version: int = 0
    undo_stack: list[str] = field(default_factory=list)


class InMemoryDocuments:
    """Document buffers held in memory, with undo."""

    def __init__(self) -> None:
        self._documents: dict[str, _Document] = {}

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._documents

    def open(
        self,
        document_id: str,
        text: str,
        *,
        path: str | None = None,
        filetype: str | None = None,
    ) -> DocumentSnapshot:
        """Open (or reopen) a document."""
        if filetype is None:
            filetype = filetype_for_path(path or document_id)
        self._documents[document_id] = _Document(text=text, path=path, filetype=filetype)
        return self.get_snapshot(document_id)

    def open_file(self, path: str | Path) -> DocumentSnapshot:
        """Open a file from disk; its absolute path is the document id."""
        resolved = str(Path(path).resolve())
        text = Path(resolved).read_text(encoding="utf-8")
        return self.open(resolved, text, path=resolved)

    def close(self, document_id: str) -> None:
        self._documents.pop(document_id, None)

    def _require(self, document_id: str) -> _Document:
        document = self._documents.get(document_id)
        if document is None:
            raise KeyError(f"Document not open: {document_id}")
        return document

    def text(self, document_id: str) -> str:
        return self._require(document_id).text

    def get_snapshot(self, document_id: str) -> DocumentSnapshot:
        document = self._require(document_id)
        return DocumentSnapshot(
            document_id=document_id,
            text=document.text,
            version=document.version,
            path=document.path,
            filetype=document.filetype,
        )

    def get_content(self, document_id: str, range: Range | None = None) -> tuple[str, str]:
        """Text (or the text of ``range``) plus the document's content hash."""
        snapshot = self.get_snapshot(document_id)
        text = range.slice(snapshot.text) if range is not None else snapshot.text
        return text, snapshot.content_hash

    def set_text(self, document_id: str, text: str) -> None:
        """Replace the whole text, as a user edit would."""
        self._commit(self._require(document_id), text)

    def apply_edit(self, document_id: str, edits: Sequence[TextEdit], atomic: bool = True) -> bool:
        """Apply ``edits``.

        With ``atomic`` the edits form one undo step; otherwise each edit
        is its own step.  Returns False when the edits cannot be applied.
        """
        document = self._documents.get(document_id)
        if document is None:
            logger.warning("Edit for unknown document: %s", document_id)
            return False
        if not edits:
            return True

        try:
            if atomic:
                self._commit(document, apply_edits(document.text, edits))
            else:
                # Back to front, so earlier ranges stay valid.
                ordered = sorted(edits, key=lambda e: e.range.offsets_in(document.text), reverse=True)
                for edit in ordered:
                    self._commit(document, apply_edits(document.text, [edit]))
        except ValueError as e:
            logger.warning("Rejected edit for %s: %s", document_id, e)
            return False
        return True

    def _commit(self, document: _Document, text: str) -> None:
        document.undo_stack.append(document.text)
        document.text = text
        document.version += 1

    def undo(self, document_id: str) -> bool:
        """Revert the last edit step.  Returns False if there is none."""
        document = self._require(document_id)
        if not document.undo_stack:
            return False
        document.text = document.undo_stack.pop()
        document.version += 1
        return True

    def undo_depth(self, document_id: str) -> int:
        """Number of undoable steps."""
        return len(self._require(document_id).undo_stack)
