"""
Capability payloads — what generators produce.

    diagnostics       → list[Diagnostic]
    formatting        → str (new content) or list[TextEdit]
    range_formatting  → str (new content) or list[TextEdit]
    code_action       → list[CodeAction]
    hover             → str or list[str]
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

from toolbridge.core.models.text import TextEdit


class Severity(IntEnum):
    """Diagnostic severity, most severe first."""

    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4


class Diagnostic(BaseModel):
    """A single problem reported against a file.

    ``filename`` is set when a generator reports a problem for a file
    other than the one the request was made for; the dispatcher routes
    such diagnostics to that file's set.
    """

    message: str
    source: str = ""
    start_line: int = 0
    start_col: int = 0
    end_line: int | None = None
    end_col: int | None = None
    severity: Severity = Severity.ERROR
    code: str | None = None
    filename: str | None = None

    def model_post_init(self, __context: Any) -> None:
        if self.end_line is None:
            self.end_line = self.start_line
        if self.end_col is None:
            self.end_col = self.start_col


class CodeAction(BaseModel):
    """An action offered to the user.

    Either ``edits`` are applied directly, or ``action`` is called when the
    user picks the action.  ``action`` may return a list of edits, which
    are then applied as one step.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    title: str
    source: str = ""
    kind: str = "quickfix"
    edits: list[TextEdit] = Field(default_factory=list)
    action: Callable[..., Any] | None = None
