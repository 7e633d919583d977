"""In-memory controller used in simulation mode and tests."""

import logging
from pathlib import Path
from typing import Any

import yaml

from .base import (
    MENU_ADVANCE_TO_NEXT_LEVEL,
    MENU_CLOSE_TEST,
    MENU_RUN_TEST,
    STOP_WAITING_FOR_BOX,
    Controller,
    ControllerError,
    TestType,
)

logger = logging.getLogger(__name__)

DEFAULT_REPORT_FIELDS: dict[str, str] = {
    "Control%.2f": "0.00",
    "Demand%.2f": "0.00",
    "Control%f %s": "0.000000 G",
    "Demand%f %s": "0.000000 G",
    "Stopcode": "",
    "LevelTime": "00:00:00",
    "Pulses": "0 of 0",
}


class SimulatedController(Controller):
    """
    Software model of a VibrationVIEW controller.

    Behaves like the real controller from the adapter's point of view:
    running a test enters a pre-test phase that ends after a number of
    ``starting`` reads, stopping leaves the test resumable, and the box
    reports "waiting for box" for a number of status polls after creation.
    Console-side events (operator start, completion, abort, schedule hold)
    are driven through the ``operator_*`` and ``complete``/``abort``
    methods.
    """

    def __init__(
        self,
        software_version: str = "10.0.0.0",
        hardware_serial_number: int = 0x00A1B2C3,
        hardware_input_channels: int = 4,
        test_type: int = TestType.SINE,
        box_not_ready_polls: int = 0,
        pretest_polls: int = 0,
        tests: list[str] | None = None,
        report_fields: dict[str, str] | None = None,
    ):
        """
        Initialize simulated controller.

        Args:
            software_version: Version string reported by software_version
            hardware_serial_number: Hardware serial number
            hardware_input_channels: Number of input channels
            test_type: Test type reported for loaded tests
            box_not_ready_polls: Status polls answered with "waiting for box"
            pretest_polls: ``starting`` reads that return True after a run
            tests: Test names that can be opened, or None to accept any name
            report_fields: Report field values keyed by field format
        """
        if hardware_input_channels < 0:
            raise ValueError(
                f"hardware_input_channels must be >= 0, got {hardware_input_channels}"
            )

        self._software_version = software_version
        self._serial_number = hardware_serial_number
        self._input_channels = hardware_input_channels
        self._test_type = int(test_type)
        self._loaded_test_type = int(test_type)
        self._box_not_ready_polls = box_not_ready_polls
        self._pretest_polls = pretest_polls
        self._tests = set(tests) if tests is not None else None

        self._report_fields = dict(DEFAULT_REPORT_FIELDS)
        for channel in range(1, hardware_input_channels + 1):
            self._report_fields[f"Ch{channel}%.2f"] = "0.00"
            self._report_fields[f"Ch{channel}%f %s"] = "0.000000 G"
        if report_fields:
            self._report_fields.update(report_fields)

        self._loaded_test: str | None = None
        self._running = False
        self._aborted = False
        self._can_resume = False
        self._hold_level = False
        self._starting_reads_left = 0
        self._status_code = 0
        self._status_text = "Stopped"
        self._released = False
        self._menu_commands: list[int] = []

    @classmethod
    def from_yaml(cls, path: str | Path) -> "SimulatedController":
        """
        Create a simulated controller from a YAML description.

        Args:
            path: Path to YAML file; keys match the constructor arguments

        Raises:
            ControllerError: If the file cannot be read or is malformed
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ControllerError(f"Cannot load simulation file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ControllerError(f"Simulation file {path} must contain a mapping")

        section: Any = data.get("controller", data)
        try:
            controller = cls(**section)
        except (TypeError, ValueError) as e:
            raise ControllerError(f"Invalid simulation file {path}: {e}") from e

        logger.info("Loaded simulated controller from %s", path)
        return controller

    # --- Inspection helpers for tests ---

    @property
    def loaded_test(self) -> str | None:
        return self._loaded_test

    @property
    def menu_commands(self) -> list[int]:
        return list(self._menu_commands)

    @property
    def released(self) -> bool:
        return self._released

    # --- Console-side events ---

    def operator_run(self, test_name: str, starting: bool = False) -> None:
        """Start a test from the controller console, bypassing the adapter."""
        self._loaded_test = test_name
        # negative: stay in pre-test until operator_end_pretest()
        self._start(pretest_reads=-1 if starting else 0)

    def operator_end_pretest(self) -> None:
        """Leave the pre-test phase."""
        self._starting_reads_left = 0

    def operator_hold(self, hold: bool = True) -> None:
        """Hold (or release) the schedule at the current level."""
        self._hold_level = hold

    def operator_wait(self, waiting: bool = True) -> None:
        """Enter (or leave) a schedule "wait for operator" step."""
        self._status_code = 0x31 if waiting else 0
        self._status_text = "Waiting for operator" if waiting else "Running"

    def complete(self) -> None:
        """End the running test normally."""
        self._running = False
        self._aborted = False
        self._can_resume = False
        self._starting_reads_left = 0
        self._status_text = "Test complete"
        self._status_code = 0

    def abort(self, reason: str = "Abort: control loss", code: int = 0x1001) -> None:
        """End the running test with a fault."""
        self._running = False
        self._aborted = True
        self._can_resume = False
        self._starting_reads_left = 0
        self._status_text = reason
        self._status_code = code

    def set_report_field(self, field_format: str, value: str) -> None:
        self._report_fields[field_format] = value

    # --- Controller interface ---

    def open(self, test_name: str) -> None:
        self._check_released()
        if self._tests is not None and test_name not in self._tests:
            raise ControllerError(f"Test not found: {test_name}")
        self._loaded_test = test_name
        self._loaded_test_type = self._test_type
        logger.debug("Simulated controller opened %s", test_name)

    def run(self, test_name: str) -> None:
        self.open(test_name)
        self._start(pretest_reads=self._pretest_polls)

    def resume(self) -> None:
        self._check_released()
        if not self._can_resume:
            raise ControllerError("Test cannot be resumed")
        self._running = True
        self._can_resume = False
        self._status_text = "Running"

    def stop(self) -> None:
        self._check_released()
        if self._running:
            self._can_resume = True
        self._running = False
        self._starting_reads_left = 0
        self._status_text = "Stopped"

    def menu_command(self, command_id: int) -> None:
        self._check_released()
        self._menu_commands.append(command_id)
        if command_id == MENU_RUN_TEST:
            self._hold_level = False
        elif command_id == MENU_ADVANCE_TO_NEXT_LEVEL:
            self._status_code = 0
            self._status_text = "Running"
        elif command_id == MENU_CLOSE_TEST:
            self._loaded_test = None
            self._can_resume = False

    def set_test_type(self, test_type: TestType) -> None:
        self._check_released()
        self._loaded_test_type = int(test_type)

    @property
    def running(self) -> bool:
        self._check_released()
        return self._running

    @property
    def aborted(self) -> bool:
        self._check_released()
        return self._aborted

    @property
    def starting(self) -> bool:
        self._check_released()
        if not self._running:
            return False
        if self._starting_reads_left < 0:
            return True
        if self._starting_reads_left > 0:
            self._starting_reads_left -= 1
            return True
        return False

    @property
    def can_resume(self) -> bool:
        self._check_released()
        return self._can_resume

    @property
    def hold_level(self) -> bool:
        self._check_released()
        return self._hold_level

    def status(self) -> tuple[int, str]:
        self._check_released()
        if self._box_not_ready_polls > 0:
            self._box_not_ready_polls -= 1
            return STOP_WAITING_FOR_BOX, "Waiting for box"
        return self._status_code, self._status_text

    def report_field(self, field_format: str) -> str:
        self._check_released()
        try:
            return self._report_fields[field_format]
        except KeyError:
            raise ControllerError(f"Unknown report field: {field_format}") from None

    def test_type(self) -> int:
        self._check_released()
        return self._loaded_test_type

    @property
    def software_version(self) -> str:
        self._check_released()
        return self._software_version

    @property
    def hardware_serial_number(self) -> int:
        self._check_released()
        return self._serial_number

    @property
    def hardware_input_channels(self) -> int:
        self._check_released()
        return self._input_channels

    def release(self) -> None:
        if not self._released:
            logger.debug("Simulated controller released")
        self._released = True

    # --- Private helpers ---

    def _start(self, pretest_reads: int) -> None:
        self._running = True
        self._aborted = False
        self._can_resume = False
        self._starting_reads_left = pretest_reads
        self._status_code = 0
        self._status_text = "Running"

    def _check_released(self) -> None:
        if self._released:
            raise ControllerError("Controller handle has been released")
