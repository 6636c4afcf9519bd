"""
Text geometry — positions, ranges and edits.

Lines and columns are zero-based.  Columns count characters, not bytes.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Position(BaseModel):
    """A point in a document."""

    model_config = ConfigDict(frozen=True)

    line: int = 0
    col: int = 0

    def offset_in(self, text: str) -> int:
        """Character offset of this position in ``text``.

        Positions past the end of a line or of the text are clamped.
        """
        lines = text.split("\n")
        if self.line >= len(lines):
            return len(text)
        offset = sum(len(line) + 1 for line in lines[: self.line])
        return offset + min(self.col, len(lines[self.line]))


class Range(BaseModel):
    """A half-open span between two positions."""

    model_config = ConfigDict(frozen=True)

    start: Position = Position()
    end: Position = Position()

    @classmethod
    def of(cls, start_line: int, start_col: int, end_line: int, end_col: int) -> Range:
        """Shorthand constructor from four integers."""
        return cls(
            start=Position(line=start_line, col=start_col),
            end=Position(line=end_line, col=end_col),
        )

    @classmethod
    def whole(cls, text: str) -> Range:
        """A range spanning all of ``text``."""
        lines = text.split("\n")
        return cls.of(0, 0, len(lines) - 1, len(lines[-1]))

    def offsets_in(self, text: str) -> tuple[int, int]:
        """(start, end) character offsets of this range in ``text``."""
        return self.start.offset_in(text), self.end.offset_in(text)

    def slice(self, text: str) -> str:
        """The text covered by this range."""
        start, end = self.offsets_in(text)
        return text[start:end]


class TextEdit(BaseModel):
    """Replace ``range`` with ``new_text``."""

    model_config = ConfigDict(frozen=True)

    range: Range
    new_text: str = ""
