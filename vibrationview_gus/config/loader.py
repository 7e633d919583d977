"""Configuration file loading."""

import json
import logging
from pathlib import Path

from .schema import AppConfig, validate_config

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "default_config.json"


def load_config(
    config_path: str | Path | None = None,
) -> tuple[AppConfig | None, list[str]]:
    """
    Load and validate a JSON configuration file.

    Args:
        config_path: Path to the config file, or None for the packaged default

    Returns:
        Tuple of (AppConfig or None, list of error messages)
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH

    if not path.exists():
        return None, [f"Config file not found: {path}"]

    try:
        with open(path, encoding="utf-8") as f:
            config_dict = json.load(f)
    except json.JSONDecodeError as e:
        return None, [f"Invalid JSON in config file {path}: {e}"]
    except OSError as e:
        return None, [f"Cannot read config file {path}: {e}"]

    if not isinstance(config_dict, dict):
        return None, [f"Config root must be a JSON object, got {type(config_dict).__name__}"]

    logger.debug("Loaded config from %s", path)
    return validate_config(config_dict)
