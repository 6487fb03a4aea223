"""
Configuration loader for WorkTree.

Loads worktree.yaml. If no config file exists, returns defaults.

Example:

    ignored_dirs: [vendor, third_party]
    strict_in_progress: true
    log_level: INFO
    scope_separator: " / "
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from . import validate
from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE = "worktree.yaml"


@dataclass
class WorkTreeConfig:
    """Settings from worktree.yaml."""
    ignored_dirs: list[str] = field(default_factory=list)  # Added to the built-in skip list
    strict_in_progress: bool = False  # Raise instead of warn on several in-progress steps
    log_level: str = "WARNING"
    scope_separator: str = "; "


def find_config(start: Path) -> Optional[Path]:
    """Return the nearest worktree.yaml at or above start, if any."""
    start = Path(start).resolve()
    for directory in [start, *start.parents]:
        candidate = directory / CONFIG_FILE
        if candidate.is_file():
            return candidate
    return None


def load_config(config_path: Optional[Path]) -> WorkTreeConfig:
    """Load worktree.yaml and return WorkTreeConfig.

    If config_path is None or the file doesn't exist, returns defaults.

    Raises:
        ConfigError: if the file is not valid YAML or fails schema validation
    """
    if config_path is None or not Path(config_path).exists():
        return WorkTreeConfig()

    try:
        data = yaml.safe_load(Path(config_path).read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from None

    if data is None:
        data = {}

    try:
        validate.validate(data, "config")
    except validate.ValidationError as e:
        raise ConfigError(f"Invalid config {config_path}: {e}") from None

    config = WorkTreeConfig(
        ignored_dirs=list(data.get("ignored_dirs", [])),
        strict_in_progress=data.get("strict_in_progress", False),
        log_level=data.get("log_level", "WARNING"),
        scope_separator=data.get("scope_separator", "; "),
    )
    logger.debug(f"Loaded config from {config_path}: {config}")
    return config
