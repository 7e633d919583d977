"""Configuration schema and validation."""

from dataclasses import dataclass
from typing import Any

DEFAULT_SIMULATION_FILE = "simulation/controller.yaml"
DEFAULT_LOG_FILE = "vibrationview_gus.log"
DEFAULT_PROFILES_DIR = "c:\\vibrationview\\profiles"
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class AppConfig:
    """Application configuration."""

    simulation_mode: bool = False
    simulation_file: str = DEFAULT_SIMULATION_FILE
    log_file: str = DEFAULT_LOG_FILE
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 5025
    profiles_dir: str = DEFAULT_PROFILES_DIR
    open_device_timeout_s: float = 10.0
    open_device_poll_interval_s: float = 0.25
    device_name: str = "VibrationVIEW_Default"
    device_model: str = "VR9500"


def _validate_str_field(
    config_dict: dict[str, Any],
    key: str,
    default: str,
    errors: list[str],
) -> str:
    """Validate a string configuration field."""
    value = config_dict.get(key, default)
    if not isinstance(value, str):
        errors.append(f"{key} must be string, got {type(value).__name__}")
        return default
    return value


def _validate_int_min_field(
    config_dict: dict[str, Any],
    key: str,
    default: int,
    minimum: int,
    errors: list[str],
) -> int:
    """Validate an integer configuration field with a minimum value."""
    value = config_dict.get(key, default)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        errors.append(f"{key} must be integer >= {minimum}, got {value}")
        return default
    return value


def _validate_positive_number_field(
    config_dict: dict[str, Any],
    key: str,
    default: float,
    errors: list[str],
) -> float:
    """Validate a numeric field that must be > 0."""
    value = config_dict.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        errors.append(f"{key} must be numeric > 0, got {value}")
        return default
    return float(value)


def validate_config(config_dict: dict[str, Any]) -> tuple[AppConfig | None, list[str]]:
    """
    Validate configuration dictionary and return AppConfig or list of errors.

    Returns:
        Tuple of (AppConfig or None, list of error messages)
    """
    errors: list[str] = []
    defaults = AppConfig()

    # Validate simulation_mode
    simulation_mode = config_dict.get("simulation_mode", False)
    if not isinstance(simulation_mode, bool):
        errors.append(
            f"simulation_mode must be boolean, got {type(simulation_mode).__name__}"
        )
        simulation_mode = False

    simulation_file = _validate_str_field(
        config_dict, "simulation_file", defaults.simulation_file, errors
    )
    log_file = _validate_str_field(config_dict, "log_file", defaults.log_file, errors)

    log_level = config_dict.get("log_level", "INFO")
    if not isinstance(log_level, str):
        errors.append(f"log_level must be string, got {type(log_level).__name__}")
        log_level = "INFO"
    elif log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"log_level must be one of {VALID_LOG_LEVELS}, got '{log_level}'"
        )
        log_level = "INFO"
    else:
        log_level = log_level.upper()

    # Host interface
    host = _validate_str_field(config_dict, "host", defaults.host, errors)
    port = _validate_int_min_field(config_dict, "port", defaults.port, 0, errors)
    if port > 65535:
        errors.append(f"port must be <= 65535, got {port}")
        port = defaults.port
    profiles_dir = _validate_str_field(
        config_dict, "profiles_dir", defaults.profiles_dir, errors
    )

    # Controller
    open_device_timeout_s = _validate_positive_number_field(
        config_dict, "open_device_timeout_s", defaults.open_device_timeout_s, errors
    )
    open_device_poll_interval_s = _validate_positive_number_field(
        config_dict,
        "open_device_poll_interval_s",
        defaults.open_device_poll_interval_s,
        errors,
    )
    device_name = _validate_str_field(
        config_dict, "device_name", defaults.device_name, errors
    )
    device_model = _validate_str_field(
        config_dict, "device_model", defaults.device_model, errors
    )

    if errors:
        return None, errors

    return (
        AppConfig(
            simulation_mode=simulation_mode,
            simulation_file=simulation_file,
            log_file=log_file,
            log_level=log_level,
            host=host,
            port=port,
            profiles_dir=profiles_dir,
            open_device_timeout_s=open_device_timeout_s,
            open_device_poll_interval_s=open_device_poll_interval_s,
            device_name=device_name,
            device_model=device_model,
        ),
        [],
    )
