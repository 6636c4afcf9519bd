"""
Tests for output parsers — pattern and JSON diagnostics, default handlers.
"""

import warnings
from pathlib import Path

from toolbridge.core.models import Capability, DocumentSnapshot, ExecutionRequest, ProcessOutput, Severity
from toolbridge.core.services import parsers
from toolbridge.core.services.parsers import (
    diagnostics_from_json,
    diagnostics_from_pattern,
    formatted_text,
    hover_text,
)

REQUEST = ExecutionRequest.build(
    Capability.DIAGNOSTICS, DocumentSnapshot(document_id="doc", text="")
)


class TestPatternDiagnostics:
    def test_write_good_style(self):
        handler = diagnostics_from_pattern(
            r"(\d+):(\d+):(\d+):(.+)", ["row", "col", "end_col", "message"]
        )
        output = ProcessOutput(output='1:8:14:"really" can weaken meaning\nnoise line\n')
        diagnostics = handler(output, REQUEST)

        assert len(diagnostics) == 1
        d = diagnostics[0]
        assert d.message == '"really" can weaken meaning'
        assert (d.start_line, d.start_col, d.end_line, d.end_col) == (0, 7, 0, 13)
        assert d.severity == Severity.ERROR

    def test_severity_names(self):
        handler = diagnostics_from_pattern(
            r"(\d+): (\w+): (.*)", ["row", "severity", "message"],
            default_severity=Severity.HINT,
        )
        output = ProcessOutput(output=["3: warning: unused", "4: bogus: odd"])
        first, second = handler(output, REQUEST)
        assert first.severity == Severity.WARNING
        assert first.start_line == 2
        assert second.severity == Severity.HINT

    def test_missing_severity_left_unset(self):
        handler = diagnostics_from_pattern(r"(\d+):(.*)", ["row", "message"])
        (d,) = handler(ProcessOutput(output="1:msg"), REQUEST)
        assert "severity" not in d.model_fields_set
        assert d.severity == Severity.ERROR

    def test_custom_severities_and_zero_based(self):
        handler = diagnostics_from_pattern(
            r"(\d+):(\w):(.*)",
            ["row", "severity", "message"],
            severities={"w": Severity.WARNING},
            one_based=False,
        )
        (d,) = handler(ProcessOutput(output="0:w:msg"), REQUEST)
        assert d.severity == Severity.WARNING
        assert d.start_line == 0

    def test_code_and_filename(self):
        handler = diagnostics_from_pattern(
            r"(.+?):(\d+):(\d+): (\w+) (.*)", ["filename", "row", "col", "code", "message"]
        )
        (d,) = handler(ProcessOutput(output="lib/a.lua:2:3: W211 unused variable"), REQUEST)
        assert d.filename == "lib/a.lua"
        assert d.code == "W211"

    def test_empty_output(self):
        handler = diagnostics_from_pattern(r"(.*)", ["message"])
        assert handler(ProcessOutput(output=None), REQUEST) == []


class TestJsonDiagnostics:
    def test_mapped_attributes(self):
        handler = diagnostics_from_json({"row": "line", "col": "column", "message": "text"})
        output = ProcessOutput(output=[
            {"line": 1, "column": 53, "text": "in return value", "severity": "error"},
            {"line": 2, "text": ""},
            "not a mapping",
        ])
        diagnostics = handler(output, REQUEST)
        assert len(diagnostics) == 1
        assert diagnostics[0].start_col == 52
        assert diagnostics[0].severity == Severity.ERROR

    def test_single_object(self):
        handler = diagnostics_from_json()
        (d,) = handler(ProcessOutput(output={"row": 1, "message": "m", "severity": 2}), REQUEST)
        assert d.severity == Severity.WARNING

    def test_non_list(self):
        assert diagnostics_from_json()(ProcessOutput(output="text"), REQUEST) == []


class TestDefaultHandlers:
    def test_formatted_text(self):
        assert formatted_text(ProcessOutput(output="new\n"), REQUEST) == "new\n"
        assert formatted_text(ProcessOutput(output=["a", "b"]), REQUEST) == "a\nb"
        assert formatted_text(ProcessOutput(output=""), REQUEST) is None

    def test_hover_text(self):
        output = ProcessOutput(output="first\n\n  \nsecond\n")
        assert hover_text(output, REQUEST) == ["first", "second"]


class TestModuleSource:
    def test_compiles_without_warnings(self):
        source = Path(parsers.__file__).read_text(encoding="utf-8")
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            compile(source, parsers.__file__, "exec")
