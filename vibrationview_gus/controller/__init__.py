"""Vibration controller capability and its implementations."""

from .base import (
    MENU_ADVANCE_TO_NEXT_LEVEL,
    MENU_CLOSE_TEST,
    MENU_RUN_TEST,
    STOP_WAITING_FOR_BOX,
    WAIT_FOR_OPERATOR,
    Controller,
    ControllerError,
    TestType,
    format_serial_number,
    read_serial_number,
)
from .com_controller import ComController
from .simulated import SimulatedController
from .loader import ControllerFactory, create_controller_factory, resolve_simulation_file

__all__ = [
    "MENU_ADVANCE_TO_NEXT_LEVEL",
    "MENU_CLOSE_TEST",
    "MENU_RUN_TEST",
    "STOP_WAITING_FOR_BOX",
    "WAIT_FOR_OPERATOR",
    "Controller",
    "ControllerError",
    "TestType",
    "format_serial_number",
    "read_serial_number",
    "ComController",
    "SimulatedController",
    "ControllerFactory",
    "create_controller_factory",
    "resolve_simulation_file",
]
