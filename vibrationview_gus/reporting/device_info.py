"""
GUS device information documents.

Two XML documents are built from live controller reads:

    GetInfo        - current values (identity, control/demand, test
                     progress, channel measurements)
    GetDeviceInfo  - the attribute catalog describing those values, in
                     the GusDeviceInfo schema namespace

Shock tests report pulse counters; every other test type reports the
elapsed time in tolerance.
"""

import logging
import re
import xml.etree.ElementTree as ET

from ..constants import (
    DEFAULT_DEVICE_MODEL,
    DEFAULT_DEVICE_NAME,
    DEVICE_REMARK,
    GUS_DEVICE_INFO_NAMESPACE,
    GUS_DEVICE_INFO_SCHEMA_LOCATION,
    MANUFACTURER,
    XSI_NAMESPACE,
)
from ..controller import Controller, TestType, read_serial_number

logger = logging.getLogger(__name__)

_XML_HEADER = '<?xml version="1.0" encoding="utf-8"?>\n'

# TimeSpan style: [-][d.]hh:mm[:ss[.fffffff]] or a bare day count
_LEVEL_TIME_PATTERN = re.compile(
    r"^\s*(?P<sign>-)?(?:(?P<days>\d+)\.)?(?P<hours>\d+):(?P<minutes>\d+)"
    r"(?::(?P<seconds>\d+)(?:\.(?P<fraction>\d+))?)?\s*$"
)
_DAYS_ONLY_PATTERN = re.compile(r"^\s*(?P<sign>-)?(?P<days>\d+)\s*$")

_FIRST_INTEGER = re.compile(r"\d+")
_LAST_INTEGER = re.compile(r"(\d+)(?!.*\d)")


def parse_level_time(text: str) -> float:
    """
    Convert a controller level time (``[d.]hh:mm:ss[.fff]``) to seconds.

    Raises:
        ValueError: If the text is not a valid time span
    """
    match = _LEVEL_TIME_PATTERN.match(text)
    if match:
        hours = int(match["hours"])
        minutes = int(match["minutes"])
        seconds = int(match["seconds"] or 0)
        if hours > 23 or minutes > 59 or seconds > 59:
            raise ValueError(f"Time span component out of range: {text!r}")
        total = (
            int(match["days"] or 0) * 86400 + hours * 3600 + minutes * 60 + seconds
        )
        if match["fraction"]:
            total += float(f"0.{match['fraction']}")
    else:
        match = _DAYS_ONLY_PATTERN.match(text)
        if not match:
            raise ValueError(f"Invalid time span: {text!r}")
        total = int(match["days"]) * 86400

    return -total if match["sign"] else float(total)


def format_seconds(seconds: float) -> str:
    """Render seconds without a trailing ``.0`` for whole values."""
    if float(seconds).is_integer():
        return str(int(seconds))
    return str(round(seconds, 7))


def parse_pulse_counts(pulses: str) -> tuple[str, str]:
    """
    Split a pulse report such as ``"12 of 100"`` into (run, scheduled).

    The first integer is the pulses run, the last is the pulses scheduled.
    Missing numbers are returned as empty strings.
    """
    first = _FIRST_INTEGER.search(pulses)
    last = _LAST_INTEGER.search(pulses)
    return (first.group(0) if first else "", last.group(1) if last else "")


def engineering_unit(field_value: str) -> str:
    """Return the unit part of a ``"<value> <unit>"`` report field."""
    return field_value.split(" ", 1)[-1]


def _to_xml(root: ET.Element) -> str:
    ET.indent(root)
    return _XML_HEADER + ET.tostring(root, encoding="unicode")


def _text_element(parent: ET.Element, tag: str, text: str) -> ET.Element:
    element = ET.SubElement(parent, tag)
    element.text = text
    return element


def build_info_document(
    controller: Controller,
    device_name: str = DEFAULT_DEVICE_NAME,
    device_model: str = DEFAULT_DEVICE_MODEL,
) -> str:
    """
    Build the GetInfo status document.

    Args:
        controller: Controller to read values from
        device_name: Reported device name
        device_model: Reported device model

    Returns:
        XML document string

    Raises:
        ControllerError: If a controller read fails
        ValueError: If the level time cannot be parsed
    """
    root = ET.Element("Device")

    info = ET.SubElement(root, "DeviceInfo")
    _text_element(info, "Name", device_name)
    _text_element(info, "Manufacturer", MANUFACTURER)
    _text_element(info, "DeviceModel", device_model)
    _text_element(info, "Address", read_serial_number(controller))
    _text_element(info, "Remark", DEVICE_REMARK)

    values = ET.SubElement(root, "ControlledValues")
    _text_element(values, "Control", controller.report_field("Control%.2f"))
    _text_element(values, "Demand", controller.report_field("Demand%.2f"))

    testing = ET.SubElement(root, "Testing")
    _text_element(testing, "Stopcode", controller.report_field("Stopcode"))
    if controller.test_type() == TestType.SHOCK:
        pulses_run, pulses_scheduled = parse_pulse_counts(
            controller.report_field("Pulses")
        )
        _text_element(testing, "PulsesRun", pulses_run)
        _text_element(testing, "PulsesScheduled", pulses_scheduled)
    else:
        elapsed = parse_level_time(controller.report_field("LevelTime"))
        _text_element(testing, "TimeElapsedInTolerance", format_seconds(elapsed))

    measurements = ET.SubElement(root, "Measurements")
    for channel in range(1, controller.hardware_input_channels + 1):
        _text_element(
            measurements,
            f"Measurement{channel}",
            controller.report_field(f"Ch{channel}%.2f"),
        )

    return _to_xml(root)


def _group(parent: ET.Element, name: str) -> ET.Element:
    return ET.SubElement(parent, "Group", {"Name": name})


def _attribute(
    group: ET.Element,
    name: str,
    value_type: str,
    unit: str | None = None,
) -> ET.Element:
    """Add a read-only attribute description to a group."""
    attribute = ET.SubElement(group, "Attribute", {"Name": name})
    _text_element(attribute, "IsReadOnly", "true")
    type_element = ET.SubElement(attribute, "Type", {"xsi:type": value_type})
    if unit is not None:
        _text_element(type_element, "EngineeringUnit", unit)
    return attribute


def build_device_info_document(controller: Controller) -> str:
    """
    Build the GetDeviceInfo attribute catalog.

    Args:
        controller: Controller to read units and channel count from

    Returns:
        XML document string in the GusDeviceInfo namespace

    Raises:
        ControllerError: If a controller read fails
    """
    # Namespace declarations are written literally so every element stays
    # in the default GusDeviceInfo namespace without ns0: prefixes.
    root = ET.Element(
        "Device",
        {
            "xmlns": GUS_DEVICE_INFO_NAMESPACE,
            "xmlns:xsi": XSI_NAMESPACE,
            "xsi:schemaLocation": GUS_DEVICE_INFO_SCHEMA_LOCATION,
        },
    )

    device_info = _group(root, "DeviceInfo")
    for name in ("Name", "DeviceType", "Manufacturer", "DeviceModel", "Address", "Remark"):
        _attribute(device_info, name, "String")

    controlled = _group(root, "ControlledValues")
    _attribute(
        controlled,
        "Control",
        "Decimal",
        engineering_unit(controller.report_field("Control%f %s")),
    )
    _attribute(
        controlled,
        "Demand",
        "Decimal",
        engineering_unit(controller.report_field("Demand%f %s")),
    )

    testing = _group(root, "Testing")
    _attribute(testing, "Stopcode", "String")
    if controller.test_type() == TestType.SHOCK:
        _attribute(testing, "PulsesRun", "Integer")
        _attribute(testing, "PulsesScheduled", "Integer")
    else:
        _attribute(testing, "TimeElapsedInTolerance", "Integer", "Sec")

    measurements = _group(root, "Measurements")
    for channel in range(1, controller.hardware_input_channels + 1):
        _attribute(
            measurements,
            f"Measurement{channel}",
            "Decimal",
            engineering_unit(controller.report_field(f"Ch{channel}%f %s")),
        )

    return _to_xml(root)
