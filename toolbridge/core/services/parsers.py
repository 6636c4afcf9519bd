r"""
Output parsers — turn tool output into payloads.

Factories here build ``on_output`` handlers for process generators:

    on_output=diagnostics_from_pattern(
        r"(\d+):(\d+) (\w+) (.*)", ["row", "col", "severity", "message"]
    )

Recognised group/attribute names: row, col, end_row, end_col, message,
severity, code, filename.  Rows and columns in tool output are taken as
1-based unless ``one_based=False``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any, Callable

from toolbridge.core.models.outcome import ProcessOutput
from toolbridge.core.models.payloads import Diagnostic, Severity
from toolbridge.core.models.request import ExecutionRequest

logger = logging.getLogger(__name__)

OutputHandler = Callable[[ProcessOutput, ExecutionRequest], Any]

DEFAULT_SEVERITIES: dict[str, Severity] = {
    "error": Severity.ERROR,
    "fatal": Severity.ERROR,
    "warning": Severity.WARNING,
    "warn": Severity.WARNING,
    "info": Severity.INFORMATION,
    "note": Severity.INFORMATION,
    "hint": Severity.HINT,
    "style": Severity.HINT,
}


def _to_lines(output: Any) -> list[str]:
    if output is None:
        return []
    if isinstance(output, str):
        return output.splitlines()
    return [str(line) for line in output]


def _severity(
    value: Any, severities: Mapping[str, Severity], default: Severity | None
) -> Severity | None:
    if value is None or value == "":
        return default
    if isinstance(value, int):
        try:
            return Severity(value)
        except ValueError:
            return default
    return severities.get(str(value).lower(), default)


def _build_diagnostic(
    fields: Mapping[str, Any],
    severities: Mapping[str, Severity],
    default_severity: Severity | None,
    one_based: bool,
) -> Diagnostic | None:
    message = fields.get("message")
    if not message:
        return None

    shift = 1 if one_based else 0

    def _pos(name: str, fallback: int | None) -> int | None:
        raw = fields.get(name)
        if raw is None or raw == "":
            return fallback
        return max(int(raw) - shift, 0)

    start_line = _pos("row", 0)
    start_col = _pos("col", 0)
    extra = {}
    severity = _severity(fields.get("severity"), severities, default_severity)
    if severity is not None:
        extra["severity"] = severity
    return Diagnostic(
        message=str(message).strip(),
        start_line=start_line,
        start_col=start_col,
        end_line=_pos("end_row", start_line),
        end_col=_pos("end_col", start_col),
        code=str(fields["code"]) if fields.get("code") not in (None, "") else None,
        filename=fields.get("filename") or None,
        **extra,
    )


def diagnostics_from_pattern(
    pattern: str,
    groups: Sequence[str],
    *,
    severities: Mapping[str, Severity] | None = None,
    default_severity: Severity | None = None,
    one_based: bool = True,
) -> OutputHandler:
    """Match ``pattern`` against each output line.

    ``groups`` names the regex's capture groups in order.
    """
    regex = re.compile(pattern)
    severity_map = {**DEFAULT_SEVERITIES, **(severities or {})}

    def handler(output: ProcessOutput, request: ExecutionRequest) -> list[Diagnostic]:
        diagnostics = []
        for line in _to_lines(output.output):
            match = regex.search(line)
            if not match:
                continue
            fields = dict(zip(groups, match.groups()))
            diagnostic = _build_diagnostic(fields, severity_map, default_severity, one_based)
            if diagnostic is not None:
                diagnostics.append(diagnostic)
        return diagnostics

    return handler


def diagnostics_from_json(
    attributes: Mapping[str, str] | None = None,
    *,
    severities: Mapping[str, Severity] | None = None,
    default_severity: Severity | None = None,
    one_based: bool = True,
) -> OutputHandler:
    """Read diagnostics from a JSON list of objects.

    ``attributes`` maps recognised names to the tool's keys, e.g.
    ``{"row": "line", "col": "column"}``.  Unmapped names are read under
    their own key.
    """
    mapping = dict(attributes or {})
    severity_map = {**DEFAULT_SEVERITIES, **(severities or {})}
    names = ("row", "col", "end_row", "end_col", "message", "severity", "code", "filename")

    def handler(output: ProcessOutput, request: ExecutionRequest) -> list[Diagnostic]:
        items = output.output
        if isinstance(items, Mapping):
            items = [items]
        if not isinstance(items, list):
            return []
        diagnostics = []
        for item in items:
            if not isinstance(item, Mapping):
                continue
            fields = {name: item.get(mapping.get(name, name)) for name in names}
            diagnostic = _build_diagnostic(fields, severity_map, default_severity, one_based)
            if diagnostic is not None:
                diagnostics.append(diagnostic)
        return diagnostics

    return handler


def formatted_text(output: ProcessOutput, request: ExecutionRequest) -> str | None:
    """Default formatting handler: the output is the new content.

    Empty output means "no change".
    """
    text = output.output
    if isinstance(text, list):
        text = "\n".join(text)
    if not text:
        return None
    return str(text)


def hover_text(output: ProcessOutput, request: ExecutionRequest) -> list[str]:
    """Default hover handler: non-empty output lines."""
    return [line for line in _to_lines(output.output) if line.strip()]
