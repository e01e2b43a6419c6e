"""
YAML configuration loader.

Settings files mirror ``DetectionSettings.to_dict()``:

    velocity:
      max_requests_per_second: 5
    processing:
      chunk_size: 2000
    confidence_threshold: 0.3

Keys missing from the file are taken from environment variables, then
defaults.
"""

import logging
from pathlib import Path
from typing import Any, Union

import yaml

from ..exceptions import ConfigurationError
from .settings import DetectionSettings

logger = logging.getLogger(__name__)


def load_yaml_file(file_path: Union[str, Path]) -> dict[str, Any]:
    """
    Read a YAML file and return its top-level mapping.

    Args:
        file_path: Path to the YAML file

    Returns:
        Parsed mapping (empty dict for an empty file)

    Raises:
        ConfigurationError: If the file is missing, unparseable or not a mapping
    """
    path = Path(file_path)
    if not path.exists():
        raise ConfigurationError([f"config file not found: {path}"])

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError([f"config file {path} is not valid YAML: {e}"]) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            [f"config file {path} must contain a mapping, got {type(data).__name__}"]
        )
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings_file(file_path: Union[str, Path]) -> DetectionSettings:
    """
    Load DetectionSettings from a YAML file layered over the environment.

    Priority:
    1. Values in the YAML file
    2. Environment variables
    3. Defaults
    """
    file_config = load_yaml_file(file_path)
    merged = _deep_merge(DetectionSettings.from_env().to_dict(), file_config)
    logger.debug(f"Loaded settings from {file_path}")
    return DetectionSettings.from_dict(merged)
