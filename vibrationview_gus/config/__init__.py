"""Configuration loading and validation."""

from .loader import DEFAULT_CONFIG_PATH, load_config
from .schema import AppConfig, validate_config

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "load_config",
    "AppConfig",
    "validate_config",
]
