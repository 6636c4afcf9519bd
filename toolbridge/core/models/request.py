"""
Execution requests — immutable inputs for one generator invocation.
"""

from __future__ import annotations

import hashlib
import os
from typing import Any

from pydantic import BaseModel, ConfigDict

from toolbridge.core.models.descriptor import Capability
from toolbridge.core.models.text import Position, Range


def content_hash(text: str, version: int = 0) -> str:
    """Fingerprint of document text plus version."""
    digest = hashlib.sha256()
    digest.update(str(version).encode("utf-8"))
    digest.update(b"\0")
    digest.update(text.encode("utf-8"))
    return digest.hexdigest()


class DocumentSnapshot(BaseModel):
    """The state of a document at the moment a request was made."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    text: str
    version: int = 0
    path: str | None = None
    filetype: str = ""

    @property
    def content_hash(self) -> str:
        return content_hash(self.text, self.version)


class ExecutionRequest(BaseModel):
    """What a generator is asked to work on.

    ``text`` is the content handed to this generator.  It equals
    ``document.text`` except inside a formatting chain, where each
    formatter receives the previous formatter's output.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    capability: Capability
    document: DocumentSnapshot
    text: str
    range: Range | None = None
    position: Position | None = None
    context: dict[str, Any] | None = None

    @classmethod
    def build(
        cls,
        capability: Capability,
        document: DocumentSnapshot,
        *,
        range: Range | None = None,
        position: Position | None = None,
        context: dict[str, Any] | None = None,
    ) -> ExecutionRequest:
        return cls(
            capability=capability,
            document=document,
            text=document.text,
            range=range,
            position=position,
            context=context,
        )

    def with_text(self, text: str) -> ExecutionRequest:
        """Same request, different input content."""
        return self.model_copy(update={"text": text})

    @property
    def document_id(self) -> str:
        return self.document.document_id

    @property
    def filetype(self) -> str:
        return self.document.filetype

    @property
    def path(self) -> str | None:
        return self.document.path

    @property
    def dirname(self) -> str | None:
        if not self.document.path:
            return None
        return os.path.dirname(os.path.abspath(self.document.path))

    @property
    def content_hash(self) -> str:
        """Hash of the input content (not the live document)."""
        if self.text == self.document.text:
            return self.document.content_hash
        return content_hash(self.text, self.document.version)

    @property
    def fingerprint(self) -> tuple:
        """Everything a generator's answer may depend on, besides the source."""
        return (self.capability, self.content_hash, self.range, self.position)

    @property
    def lines(self) -> list[str]:
        return self.text.split("\n")
