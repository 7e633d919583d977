"""Report documents built from controller telemetry."""

from .device_info import (
    build_device_info_document,
    build_info_document,
    engineering_unit,
    format_seconds,
    parse_level_time,
    parse_pulse_counts,
)

__all__ = [
    "build_device_info_document",
    "build_info_document",
    "engineering_unit",
    "format_seconds",
    "parse_level_time",
    "parse_pulse_counts",
]
