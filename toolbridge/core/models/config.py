"""
Configuration model — the shape of toolbridge.yml.

Config files can only describe process generators, since functions and
output handlers cannot be written in YAML.  Diagnostics sources pick one
of the built-in parsers via ``pattern``/``groups`` or ``json_attributes``;
formatting and hover sources use the default handlers.
"""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from toolbridge.core.models.descriptor import (
    CachePolicy,
    Capability,
    GeneratorDescriptor,
    ResolutionMode,
)
from toolbridge.core.models.payloads import Severity
from toolbridge.core.services import parsers


def _severity(value: Any) -> Any:
    """Accept severity names ('warning') as well as numbers."""
    if isinstance(value, str) and not value.isdigit():
        return parsers.DEFAULT_SEVERITIES.get(value.lower(), value)
    return value


class Settings(BaseModel):
    """Defaults shared by every configured source."""

    timeout: float = Field(default=5.0, gt=0)
    search_ancestors: bool = True
    max_depth: int | None = Field(default=None, ge=0)


class SourceConfig(BaseModel):
    """One entry under ``sources:``."""

    model_config = ConfigDict(extra="forbid")

    name: str
    capability: Capability
    filetypes: list[str] = Field(default_factory=list)
    disabled_filetypes: list[str] = Field(default_factory=list)
    enabled: bool = True

    # ── Process ──────────────────────────────────────────────────
    command: str
    args: list[str] = Field(default_factory=list)
    extra_args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    input: Literal["stdin", "temp_file", "none"] = "stdin"
    output: Literal["stdout", "stderr", "temp_file"] = "stdout"
    exit_codes: list[int] | None = None
    ignore_stderr: bool = True
    cwd: str | None = None

    resolution: ResolutionMode = ResolutionMode.GLOBAL
    local_prefix: str | None = None
    timeout: float | None = Field(default=None, gt=0)
    condition: str | None = None
    cache: CachePolicy = CachePolicy.NONE

    # ── Diagnostics parsing ──────────────────────────────────────
    pattern: str | None = None
    groups: list[str] = Field(default_factory=list)
    json_attributes: dict[str, str] | None = None
    severity: Severity = Severity.ERROR
    severities: dict[str, Severity] | None = None
    one_based: bool = True
    diagnostics_format: str | None = None

    @field_validator("severity", mode="before")
    @classmethod
    def _severity_name(cls, value: Any) -> Any:
        return _severity(value)

    @field_validator("severities", mode="before")
    @classmethod
    def _severity_names(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {key: _severity(v) for key, v in value.items()}
        return value

    @model_validator(mode="after")
    def _check_parser(self) -> SourceConfig:
        if self.capability == Capability.CODE_ACTION:
            raise ValueError("code actions cannot be configured from a file")
        if self.capability == Capability.DIAGNOSTICS:
            if (self.pattern is None) == (self.json_attributes is None):
                raise ValueError("diagnostics sources need exactly one of 'pattern' or 'json_attributes'")
            if self.pattern is not None:
                if not self.groups:
                    raise ValueError("'pattern' needs 'groups'")
                try:
                    re.compile(self.pattern)
                except re.error as e:
                    raise ValueError(f"invalid pattern: {e}") from e
        return self

    def _on_output(self) -> Any:
        if self.capability == Capability.DIAGNOSTICS:
            severities = {**parsers.DEFAULT_SEVERITIES, **(self.severities or {})}
            if self.pattern is not None:
                return parsers.diagnostics_from_pattern(
                    self.pattern,
                    self.groups,
                    severities=severities,
                    default_severity=self.severity,
                    one_based=self.one_based,
                )
            return parsers.diagnostics_from_json(
                self.json_attributes,
                severities=severities,
                default_severity=self.severity,
                one_based=self.one_based,
            )
        if self.capability == Capability.HOVER:
            return parsers.hover_text
        return parsers.formatted_text

    def to_descriptor(self, settings: Settings | None = None) -> GeneratorDescriptor:
        """Build the generator descriptor for this entry."""
        settings = settings or Settings()
        output_format = "json" if self.json_attributes is not None else "raw"
        return GeneratorDescriptor.from_mapping({
            "name": self.name,
            "capability": self.capability,
            "filetypes": self.filetypes,
            "disabled_filetypes": self.disabled_filetypes,
            "process": {
                "command": self.command,
                "args": self.args,
                "extra_args": self.extra_args,
                "env": self.env,
                "input": self.input,
                "output": self.output,
                "output_format": output_format,
                "check_exit_code": self.exit_codes,
                "ignore_stderr": self.ignore_stderr,
                "cwd": self.cwd,
            },
            "on_output": self._on_output(),
            "resolution": self.resolution,
            "local_prefix": self.local_prefix,
            "timeout": self.timeout or settings.timeout,
            "condition": self.condition,
            "diagnostics_format": self.diagnostics_format,
            "diagnostic_severity": self.severity,
            "cache": self.cache,
        })


class BridgeConfig(BaseModel):
    """Root of toolbridge.yml."""

    settings: Settings = Field(default_factory=Settings)
    sources: list[SourceConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_names(self) -> BridgeConfig:
        seen: set[str] = set()
        for source in self.sources:
            if source.name in seen:
                raise ValueError(f"duplicate source name '{source.name}'")
            seen.add(source.name)
        return self

    def get_source(self, name: str) -> SourceConfig | None:
        """Look up a source entry by name."""
        for source in self.sources:
            if source.name == name:
                return source
        return None

    def descriptors(self) -> list[GeneratorDescriptor]:
        """Descriptors for every entry, in file order.

        Raises:
            ConfigurationError: If an entry does not make a valid descriptor.
        """
        return [source.to_descriptor(self.settings) for source in self.sources]
