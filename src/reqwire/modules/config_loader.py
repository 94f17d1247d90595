"""Config file loading.

Reads transport settings from a YAML or JSON file into a Config.
"""

import logging
from typing import Any

import yaml
from pydantic import ValidationError

from reqwire.types import Config


logger = logging.getLogger("reqwire.config")


def parse_config(content: str | dict[str, Any]) -> Config:
    """Parse transport settings.

    Args:
        content: YAML/JSON text or an already-parsed dict. Empty text yields
            the defaults.

    Returns:
        Validated Config.

    Raises:
        ValueError: If the content is not a mapping or fails validation.
    """
    if isinstance(content, str):
        try:
            raw = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid config file: {e}") from e
    else:
        raw = content

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config must be a mapping, got {type(raw).__name__}")

    try:
        return Config.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid config: {e}") from e


def load_config(file_path: str) -> Config:
    """Load transport settings from a YAML or JSON file.

    Args:
        file_path: Path to the config file.

    Returns:
        Validated Config.
    """
    logger.debug(f"Loading config from {file_path}")
    with open(file_path, encoding="utf-8") as f:
        content = f.read()
    return parse_config(content)
