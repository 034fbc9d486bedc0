"""Load a DeployConfig from YAML with environment variable substitution."""

from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from pydantic import ValidationError

from .config_data import DeployConfig
from .config_utils import substitute_env_vars


def load_config(file_path: Path | None = None) -> DeployConfig:
    """
    Load the deployment configuration.

    Args:
        file_path: Optional YAML file. When omitted, defaults are returned.

    Returns:
        Validated DeployConfig

    Raises:
        ValueError: If a required environment variable is missing, the YAML
                   cannot be parsed, the 'config' key is missing or
                   validation fails
        FileNotFoundError: If the YAML file doesn't exist

    YAML Structure Requirements:
        The YAML file must have a top-level 'config:' key containing the
        configuration sections (fetch, cluster, manifests, charts).
    """
    if file_path is None:
        logger.debug("No configuration file given, using defaults")
        return DeployConfig()

    with open(file_path) as f:
        content = f.read()

    logger.info(f"Loading configuration from {file_path}")
    content = substitute_env_vars(content)

    try:
        loaded: dict[str, Any] | None = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML: {e}") from e

    if not isinstance(loaded, dict) or "config" not in loaded:
        raise ValueError("Invalid YAML structure: missing 'config' key")

    try:
        return DeployConfig(**(loaded["config"] or {}))
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e
