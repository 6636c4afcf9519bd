"""
Text edit helpers — apply edits to a string and compute the edit that
turns one string into another.
"""

from __future__ import annotations

from collections.abc import Sequence

from toolbridge.core.models.text import Position, Range, TextEdit


def position_at(text: str, offset: int) -> Position:
    """Convert a character offset into a line/column position."""
    offset = max(0, min(offset, len(text)))
    before = text[:offset]
    line = before.count("\n")
    col = offset - (before.rfind("\n") + 1)
    return Position(line=line, col=col)


def apply_edits(text: str, edits: Sequence[TextEdit]) -> str:
    """Apply ``edits`` to ``text``.

    All ranges refer to the original text.  Edits are applied back to
    front so earlier offsets stay valid.

    Raises:
        ValueError: If two edits overlap.
    """
    spans = sorted(
        ((*edit.range.offsets_in(text), edit.new_text) for edit in edits),
        key=lambda span: (span[0], span[1]),
    )
    for (_, prev_end, _), (start, _, _) in zip(spans, spans[1:]):
        if start < prev_end:
            raise ValueError("Overlapping text edits")

    result = text
    for start, end, new_text in reversed(spans):
        result = result[:start] + new_text + result[end:]
    return result


def diff_edit(old: str, new: str) -> TextEdit | None:
    """The single smallest edit turning ``old`` into ``new``.

    Returns None when the strings are equal.
    """
    if old == new:
        return None

    prefix = 0
    limit = min(len(old), len(new))
    while prefix < limit and old[prefix] == new[prefix]:
        prefix += 1

    suffix = 0
    limit -= prefix
    while suffix < limit and old[-1 - suffix] == new[-1 - suffix]:
        suffix += 1

    old_end = len(old) - suffix
    new_end = len(new) - suffix
    return TextEdit(
        range=Range(start=position_at(old, prefix), end=position_at(old, old_end)),
        new_text=new[prefix:new_end],
    )
