"""
Configuration loader — reads toolbridge.yml into a BridgeConfig.

The file is searched for upward from the working directory, so commands
run from a subdirectory still pick up the workspace configuration.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from toolbridge.core.errors import ConfigurationError
from toolbridge.core.models.config import BridgeConfig

logger = logging.getLogger(__name__)

CONFIG_FILE = "toolbridge.yml"


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for toolbridge.yml starting at ``start_dir``, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to the config file, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_config(path: Path | None = None) -> BridgeConfig:
    """Load and validate a configuration file.

    Args:
        path: Explicit path to the file.  If None, searches upward.

    Returns:
        Validated BridgeConfig.

    Raises:
        ConfigurationError: If the file is missing or invalid.
    """
    if path is None:
        path = find_config_file()

    if path is None:
        raise ConfigurationError(f"No {CONFIG_FILE} found. Create one or pass --config.")

    if not path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    # An empty file is an empty configuration
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = BridgeConfig.model_validate(data)
    except Exception as e:
        raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e

    logger.info("Loaded %d source(s) from %s", len(config.sources), path)
    return config


def workspace_root(config_path: Path) -> Path:
    """The workspace a config file belongs to."""
    return config_path.parent.resolve()
