"""
Config check use case — validate toolbridge.yml and report issues.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path

from toolbridge.core.config.loader import find_config_file, load_config, workspace_root
from toolbridge.core.errors import ConfigurationError
from toolbridge.core.models.config import BridgeConfig
from toolbridge.core.models.descriptor import ResolutionMode
from toolbridge.core.services.conditions import WorkspaceContext, evaluate_static


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: BridgeConfig | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "source_count": len(self.config.sources) if self.config else 0,
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate configuration and report issues.

    Errors make the configuration unusable.  Warnings flag sources that
    load fine but will not run here (missing command, unmet condition).
    """
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_config_file()
    if config_path is None:
        result.errors.append("No toolbridge.yml found.")
        return result
    result.config_path = config_path

    try:
        config = load_config(config_path)
        descriptors = config.descriptors()
    except ConfigurationError as e:
        result.errors.append(str(e))
        return result
    result.config = config

    if not config.sources:
        result.warnings.append("No sources defined. Nothing will run.")

    workspace = WorkspaceContext(workspace_root(config_path))
    for descriptor in descriptors:
        spec = descriptor.process
        if (
            spec is not None
            and descriptor.resolution == ResolutionMode.GLOBAL
            and shutil.which(spec.command) is None
        ):
            result.warnings.append(f"Source '{descriptor.name}': command not found on PATH: {spec.command}")
        if descriptor.condition is not None and not evaluate_static(
            descriptor.condition, workspace, descriptor.name
        ):
            result.warnings.append(
                f"Source '{descriptor.name}': condition not met ({descriptor.condition})"
            )

    result.valid = len(result.errors) == 0
    return result
