"""
Process generator — run an external command for each request.

Flow:
    resolve executable → (write temp file) → build args → spawn
    → check exit code → read output → shape output → on_output → payload

Argument tokens, filled from the request with string.Template:

    $FILENAME      document path, or the temp file path with input=temp_file
    $DIRNAME       directory of the document
    $FILEEXT       extension of the document, without the dot
    $TEXT          content handed to this generator
    $ROW / $COL    1-based start of the request range (or position)
    $END_ROW / $END_COL          1-based end of the request range
    $START_OFFSET / $END_OFFSET  0-based character offsets of the range
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager, nullcontext
from pathlib import Path
from string import Template
from typing import Any

from toolbridge.adapters.base import Generator
from toolbridge.core.errors import ProcessFailure
from toolbridge.core.models.descriptor import Capability, ExecutionKind, ProcessSpec
from toolbridge.core.models.outcome import ExecutionOutcome, ProcessOutput
from toolbridge.core.models.request import ExecutionRequest
from toolbridge.core.models.text import Range
from toolbridge.core.services.parsers import formatted_text, hover_text

logger = logging.getLogger(__name__)

_FORMATTING = (Capability.FORMATTING, Capability.RANGE_FORMATTING)

_DEFAULT_HANDLERS = {
    Capability.FORMATTING: formatted_text,
    Capability.RANGE_FORMATTING: formatted_text,
    Capability.HOVER: hover_text,
}


@contextmanager
def temp_source_file(request: ExecutionRequest) -> Iterator[str]:
    """Write the request content to a temp file, removed on exit.

    The file is created beside the document when possible, so tools that
    look for config files next to their input still find them.  It keeps
    the document's extension.
    """
    suffix = Path(request.path).suffix if request.path else ""
    directory = request.dirname
    try:
        fd, path = tempfile.mkstemp(prefix=".toolbridge_", suffix=suffix, dir=directory)
    except OSError:
        fd, path = tempfile.mkstemp(prefix="toolbridge_", suffix=suffix)

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(request.text)
        yield path
    finally:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass


def build_tokens(request: ExecutionRequest, temp_path: str | None = None) -> dict[str, str]:
    """Values for the argument placeholders."""
    path = temp_path or (os.path.abspath(request.path) if request.path else "")
    span = request.range
    if span is None and request.position is not None:
        span = Range(start=request.position, end=request.position)

    tokens = {
        "FILENAME": path,
        "DIRNAME": request.dirname or os.getcwd(),
        "FILEEXT": Path(request.path).suffix.lstrip(".") if request.path else "",
        "TEXT": request.text,
    }
    if span is not None:
        start_offset, end_offset = span.offsets_in(request.text)
        tokens.update(
            ROW=str(span.start.line + 1),
            COL=str(span.start.col + 1),
            END_ROW=str(span.end.line + 1),
            END_COL=str(span.end.col + 1),
            START_OFFSET=str(start_offset),
            END_OFFSET=str(end_offset),
        )
    return tokens


def build_args(spec: ProcessSpec, request: ExecutionRequest, temp_path: str | None = None) -> list[str]:
    """Substitute placeholders in the process arguments."""
    tokens = build_tokens(request, temp_path)
    return [Template(arg).safe_substitute(tokens) for arg in [*spec.args, *spec.extra_args]]


def shape_output(raw: str, output_format: str) -> Any:
    """Shape raw output text for the output handler.

    Raises:
        ValueError: If output_format is json and the text is not JSON.
    """
    if output_format == "none":
        return None
    if output_format == "lines":
        return raw.splitlines()
    if output_format == "json":
        return json.loads(raw) if raw.strip() else None
    return raw


class ProcessGenerator(Generator):
    """Run ``descriptor.process`` for each request."""

    @property
    def kind(self) -> ExecutionKind:
        return ExecutionKind.PROCESS

    @property
    def spec(self) -> ProcessSpec:
        spec = self.descriptor.process
        assert spec is not None  # guaranteed by the descriptor validator
        return spec

    async def execute(self, request: ExecutionRequest) -> ExecutionOutcome:
        spec = self.spec
        descriptor = self.descriptor

        resolution = self.context.resolver.resolve(
            spec.command,
            descriptor.resolution,
            document_path=request.path,
            workspace_root=self.context.workspace_root,
            prefix=descriptor.local_prefix,
        )
        if resolution is None:
            return ExecutionOutcome.skip(self.name, f"No local executable for '{spec.command}'")

        cwd = spec.cwd or resolution.cwd
        self.source.last_command = resolution.path
        self.source.last_cwd = cwd

        use_temp = spec.input == "temp_file"
        with temp_source_file(request) if use_temp else nullcontext(None) as temp_path:
            args = build_args(spec, request, temp_path)
            result = await self.context.runner.run(
                resolution.path,
                args,
                cwd=cwd,
                env=spec.env,
                stdin=request.text if spec.input == "stdin" else None,
                timeout=descriptor.timeout,
            )
            if result.timed_out:
                return ExecutionOutcome.timeout(
                    self.name, descriptor.timeout, metadata={"command": resolution.path}
                )

            if spec.output == "temp_file":
                assert temp_path is not None
                raw = Path(temp_path).read_text(encoding="utf-8")
            elif spec.output == "stderr":
                raw = result.stderr
            else:
                raw = result.stdout

        exit_code = result.exit_code if result.exit_code is not None else 0
        accepted = spec.accepts_exit_code(exit_code, result.stderr)
        if accepted is None:
            accepted = exit_code == 0 if descriptor.capability in _FORMATTING else True
        if not accepted:
            raise ProcessFailure(resolution.path, exit_code, result.stderr)

        if not spec.ignore_stderr and spec.output != "stderr" and result.stderr.strip():
            raise ProcessFailure(resolution.path, exit_code, result.stderr)

        output = ProcessOutput(
            output=shape_output(raw, spec.output_format),
            stdout=result.stdout,
            stderr=result.stderr,
            exit_code=exit_code,
        )
        handler = descriptor.on_output or _DEFAULT_HANDLERS[descriptor.capability]
        payload = handler(output, request)

        logger.debug("%s exited %d in %dms", self.name, exit_code, result.duration_ms)
        return ExecutionOutcome.success(
            self.name,
            payload,
            metadata={"command": resolution.path, "exit_code": exit_code},
        )
