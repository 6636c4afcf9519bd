"""
Tests for domain models — descriptors, requests, outcomes, payloads.
"""

import pytest

from toolbridge.core.errors import ConfigurationError
from toolbridge.core.models import (
    CachePolicy,
    Capability,
    Diagnostic,
    DocumentSnapshot,
    ExecutionKind,
    ExecutionOutcome,
    ExecutionRequest,
    GeneratorDescriptor,
    Position,
    ProcessSpec,
    Range,
    ResolutionMode,
    Severity,
)


def _process_formatter(**kwargs) -> GeneratorDescriptor:
    return GeneratorDescriptor(
        name="prettier",
        capability="formatting",
        process={"command": "prettier", "args": ["--stdin-filepath", "$FILENAME"]},
        **kwargs,
    )


# ── Descriptor ──────────────────────────────────────────────────────


class TestGeneratorDescriptor:
    def test_function_descriptor(self):
        d = GeneratorDescriptor(name="f", capability="hover", function=lambda r: ["x"])
        assert d.kind == ExecutionKind.FUNCTION
        assert d.capability == Capability.HOVER
        assert d.timeout == 5.0
        assert d.resolution == ResolutionMode.GLOBAL
        assert d.cache == CachePolicy.NONE

    def test_process_descriptor(self):
        d = _process_formatter()
        assert d.kind == ExecutionKind.PROCESS
        assert isinstance(d.process, ProcessSpec)
        assert d.process.input == "stdin"
        assert d.process.output == "stdout"

    def test_needs_exactly_one_kind(self):
        with pytest.raises(ValueError):
            GeneratorDescriptor(name="none", capability="hover")
        with pytest.raises(ValueError):
            GeneratorDescriptor(
                name="both",
                capability="hover",
                function=lambda r: [],
                process={"command": "cat"},
            )

    def test_process_diagnostics_need_handler(self):
        with pytest.raises(ValueError, match="on_output"):
            GeneratorDescriptor(
                name="lint", capability="diagnostics", process={"command": "lint"}
            )

    def test_temp_file_output_needs_temp_file_input(self):
        with pytest.raises(ValueError, match="temp_file"):
            ProcessSpec(command="fmt", output="temp_file")
        spec = ProcessSpec(command="fmt", input="temp_file", output="temp_file")
        assert spec.output == "temp_file"

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValueError):
            GeneratorDescriptor(name="f", capability="hover", function=print, timeout=0)

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            GeneratorDescriptor(name="f", capability="hover", function=print, colour="red")

    def test_from_mapping_wraps_errors(self):
        with pytest.raises(ConfigurationError, match="broken"):
            GeneratorDescriptor.from_mapping({"name": "broken", "capability": "nonsense"})

    def test_applies_to(self):
        d = GeneratorDescriptor(
            name="f",
            capability="hover",
            function=print,
            filetypes=["lua", "teal"],
        )
        assert d.applies_to("lua")
        assert not d.applies_to("python")

    def test_applies_to_all_except_disabled(self):
        d = GeneratorDescriptor(
            name="f", capability="hover", function=print, disabled_filetypes=["markdown"]
        )
        assert d.applies_to("python")
        assert not d.applies_to("markdown")

    def test_frozen(self):
        d = _process_formatter()
        with pytest.raises(ValueError):
            d.timeout = 10


class TestDescriptorWith:
    """with_() derives a copy and never touches the original."""

    def test_overrides_top_level(self):
        original = _process_formatter()
        copy = original.with_(timeout=10, resolution="prefer_local")
        assert copy.timeout == 10
        assert copy.resolution == ResolutionMode.PREFER_LOCAL
        assert original.timeout == 5.0
        assert original.resolution == ResolutionMode.GLOBAL

    def test_routes_process_fields(self):
        original = _process_formatter()
        copy = original.with_(command="npx", extra_args=["--no-semi"])
        assert copy.process.command == "npx"
        assert copy.process.extra_args == ["--no-semi"]
        assert copy.process.args == original.process.args
        assert original.process.command == "prettier"

    def test_revalidates(self):
        with pytest.raises(ConfigurationError):
            _process_formatter().with_(timeout=-1)

    def test_process_fields_on_function_rejected(self):
        d = GeneratorDescriptor(name="f", capability="hover", function=print)
        with pytest.raises(ConfigurationError, match="function generator"):
            d.with_(command="cat")


class TestProcessSpec:
    def test_exit_code_unspecified(self):
        assert ProcessSpec(command="x").accepts_exit_code(1, "") is None

    def test_exit_code_list(self):
        spec = ProcessSpec(command="x", check_exit_code=[0, 1])
        assert spec.accepts_exit_code(1, "")
        assert not spec.accepts_exit_code(2, "")

    def test_exit_code_callable(self):
        spec = ProcessSpec(command="x", check_exit_code=lambda code, stderr: "fatal" not in stderr)
        assert spec.accepts_exit_code(3, "warning")
        assert not spec.accepts_exit_code(0, "fatal: boom")


# ── Requests ────────────────────────────────────────────────────────


class TestExecutionRequest:
    def _snapshot(self, text="a\nb\n", version=0) -> DocumentSnapshot:
        return DocumentSnapshot(
            document_id="/w/doc.lua",
            text=text,
            version=version,
            path="/w/doc.lua",
            filetype="lua",
        )

    def test_build_copies_document_text(self):
        request = ExecutionRequest.build(Capability.FORMATTING, self._snapshot())
        assert request.text == "a\nb\n"
        assert request.document_id == "/w/doc.lua"
        assert request.filetype == "lua"
        assert request.dirname == "/w"
        assert request.lines == ["a", "b", ""]

    def test_content_hash_tracks_input_text(self):
        request = ExecutionRequest.build(Capability.FORMATTING, self._snapshot())
        assert request.content_hash == request.document.content_hash

        changed = request.with_text("other")
        assert changed.content_hash != request.content_hash
        assert changed.document.content_hash == request.document.content_hash
        assert request.text == "a\nb\n"

    def test_version_changes_hash(self):
        assert self._snapshot(version=1).content_hash != self._snapshot(version=2).content_hash


# ── Outcomes & payloads ─────────────────────────────────────────────


class TestExecutionOutcome:
    def test_success(self):
        o = ExecutionOutcome.success("src", ["x"])
        assert o.ok
        assert o.payload == ["x"]
        assert o.error is None

    def test_failure(self):
        o = ExecutionOutcome.failure("src", "boom")
        assert o.failed
        assert not o.ok
        assert o.error == "boom"

    def test_timeout(self):
        o = ExecutionOutcome.timeout("src", 0.5)
        assert o.timed_out
        assert "0.5" in o.error

    def test_skip(self):
        o = ExecutionOutcome.skip("src", "condition")
        assert o.skipped
        assert o.error == "condition"

    def test_serialization(self):
        o = ExecutionOutcome.success("src", metadata={"exit_code": 0})
        data = o.model_dump(mode="json")
        assert data["status"] == "ok"
        assert data["metadata"] == {"exit_code": 0}
        assert data["started_at"]


class TestDiagnostic:
    def test_end_defaults_to_start(self):
        d = Diagnostic(message="m", start_line=3, start_col=4)
        assert d.end_line == 3
        assert d.end_col == 4
        assert d.severity == Severity.ERROR

    def test_explicit_end(self):
        d = Diagnostic(message="m", start_line=0, start_col=7, end_line=0, end_col=13)
        assert (d.end_line, d.end_col) == (0, 13)


class TestTextGeometry:
    def test_offset(self):
        assert Position(line=1, col=2).offset_in("abc\ndef\n") == 6

    def test_offset_clamped(self):
        text = "abc\ndef"
        assert Position(line=0, col=99).offset_in(text) == 3
        assert Position(line=9, col=0).offset_in(text) == len(text)

    def test_range_slice(self):
        assert Range.of(0, 1, 1, 2).slice("abc\ndef") == "bc\nde"

    def test_whole(self):
        text = "one\ntwo\n"
        assert Range.whole(text).slice(text) == text
