"""
Generator descriptors — the registration shape of a source.

A descriptor says what a generator serves (capability, file types), how it
runs (a process spec or an in-process function), when it is eligible
(static and runtime conditions) and how its results are treated (output
handler, diagnostics format, timeout, cache policy).

Descriptors are immutable.  ``with_()`` derives a modified copy, which is
how callers customize a shared descriptor without touching the original:

    eslint = GeneratorDescriptor(name="eslint", ...)
    local_eslint = eslint.with_(resolution="prefer_local", timeout=10)
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from toolbridge.core.errors import ConfigurationError
from toolbridge.core.models.payloads import Severity


class Capability(StrEnum):
    """What a generator produces."""

    DIAGNOSTICS = "diagnostics"
    FORMATTING = "formatting"
    RANGE_FORMATTING = "range_formatting"
    CODE_ACTION = "code_action"
    HOVER = "hover"


class ExecutionKind(StrEnum):
    """How a generator runs."""

    PROCESS = "process"
    FUNCTION = "function"


class ResolutionMode(StrEnum):
    """Where to look for a generator's executable."""

    GLOBAL = "global"
    PREFER_LOCAL = "prefer_local"
    ONLY_LOCAL = "only_local"


class CachePolicy(StrEnum):
    """Whether results are memoized per document content."""

    NONE = "none"
    CONTENT = "content"


class ProcessSpec(BaseModel):
    """How to run an external command.

    ``args`` may contain ``$TOKEN`` placeholders (``$FILENAME``,
    ``$DIRNAME``, ``$FILEEXT``, ``$TEXT``, ``$ROW``, ``$COL``, ``$END_ROW``,
    ``$END_COL``, ``$START_OFFSET``, ``$END_OFFSET``) that are filled from
    the request at invocation time.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="forbid")

    command: str = Field(min_length=1)
    args: list[str] = Field(default_factory=list)
    extra_args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    input: Literal["stdin", "temp_file", "none"] = "stdin"
    output: Literal["stdout", "stderr", "temp_file"] = "stdout"
    output_format: Literal["raw", "lines", "json", "none"] = "raw"
    check_exit_code: Callable[[int, str], bool] | list[int] | None = None
    ignore_stderr: bool = True
    cwd: str | None = None

    @model_validator(mode="after")
    def _temp_file_output_needs_temp_file_input(self) -> ProcessSpec:
        if self.output == "temp_file" and self.input != "temp_file":
            raise ValueError("output='temp_file' requires input='temp_file'")
        return self

    def accepts_exit_code(self, exit_code: int, stderr: str) -> bool | None:
        """Whether ``exit_code`` is acceptable, or None if unspecified."""
        if self.check_exit_code is None:
            return None
        if callable(self.check_exit_code):
            return bool(self.check_exit_code(exit_code, stderr))
        return exit_code in self.check_exit_code


class GeneratorDescriptor(BaseModel):
    """A generator as registered by a caller.

    Exactly one of ``process`` or ``function`` must be set; that choice is
    the descriptor's execution kind.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="forbid")

    name: str = Field(min_length=1)
    capability: Capability

    # ── Applicability ────────────────────────────────────────────
    filetypes: list[str] = Field(default_factory=list)  # empty = all
    disabled_filetypes: list[str] = Field(default_factory=list)

    # ── Execution ────────────────────────────────────────────────
    process: ProcessSpec | None = None
    function: Callable[..., Any] | None = None
    on_output: Callable[..., Any] | None = None
    resolution: ResolutionMode = ResolutionMode.GLOBAL
    local_prefix: str | None = None  # e.g. "node_modules/.bin"
    timeout: float = Field(default=5.0, gt=0)

    # ── Eligibility ──────────────────────────────────────────────
    condition: Callable[..., Any] | str | None = None
    runtime_condition: Callable[..., Any] | None = None

    # ── Results ──────────────────────────────────────────────────
    diagnostics_format: str | None = None  # "#{m} (#{s})"
    diagnostic_severity: Severity = Severity.ERROR
    cache: CachePolicy = CachePolicy.NONE

    @model_validator(mode="after")
    def _exactly_one_kind(self) -> GeneratorDescriptor:
        if (self.process is None) == (self.function is None):
            raise ValueError("exactly one of 'process' or 'function' is required")
        if (
            self.process is not None
            and self.on_output is None
            and self.capability in (Capability.DIAGNOSTICS, Capability.CODE_ACTION)
        ):
            raise ValueError(f"process generators for {self.capability} need an on_output handler")
        return self

    @property
    def kind(self) -> ExecutionKind:
        if self.process is not None:
            return ExecutionKind.PROCESS
        return ExecutionKind.FUNCTION

    def applies_to(self, filetype: str) -> bool:
        """Whether this generator handles documents of ``filetype``."""
        if filetype and filetype in self.disabled_filetypes:
            return False
        if not self.filetypes:
            return True
        return filetype in self.filetypes

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> GeneratorDescriptor:
        """Validate a raw mapping, raising ConfigurationError on failure."""
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            name = data.get("name", "<unnamed>") if isinstance(data, Mapping) else "<unnamed>"
            raise ConfigurationError(f"Invalid generator '{name}': {e}") from e

    def with_(self, **overrides: Any) -> GeneratorDescriptor:
        """Return a new descriptor with ``overrides`` applied.

        Keys that belong to the process spec (``command``, ``args``, ...)
        may be given at the top level and are routed into a copy of it.
        """
        own_fields = type(self).model_fields
        process_overrides = {
            key: overrides.pop(key)
            for key in list(overrides)
            if key not in own_fields and key in ProcessSpec.model_fields
        }

        data = {name: getattr(self, name) for name in own_fields}
        if process_overrides:
            if self.process is None:
                raise ConfigurationError(
                    f"Cannot override {sorted(process_overrides)} on function "
                    f"generator '{self.name}'"
                )
            spec = {name: getattr(self.process, name) for name in ProcessSpec.model_fields}
            spec.update(process_overrides)
            data["process"] = spec
        data.update(overrides)
        return self.from_mapping(data)
