"""Abstract controller capability consumed by the equipment model."""

from abc import ABC, abstractmethod
from enum import IntEnum


class ControllerError(Exception):
    """Raised by controller implementations when a call to the controller fails."""


class TestType(IntEnum):
    """Test types as numbered by VibrationVIEW."""

    __test__ = False  # not a pytest test class

    SYSCHECK = 0
    SINE = 1
    RANDOM = 2
    SINE_ON_RANDOM = 3
    SHOCK = 4
    TRANSIENT = 5
    REPLAY = 6
    WAVEFORM = 7
    CALIBRATION = 8


# VibrationVIEW menu command resource ids
MENU_RUN_TEST = 32870
MENU_ADVANCE_TO_NEXT_LEVEL = 32896
MENU_CLOSE_TEST = 33050

# Status codes
STOP_WAITING_FOR_BOX = 0x103A
WAIT_FOR_OPERATOR = 0x31


def format_serial_number(serial: int) -> str:
    """Format a hardware serial number as printed on the back of the box."""
    return f"{serial & 0xFFFFFFFF:>8X}"


def read_serial_number(controller: "Controller") -> str:
    """Formatted hardware serial number, or "" if it cannot be read."""
    try:
        return format_serial_number(controller.hardware_serial_number)
    except ControllerError:
        return ""


class Controller(ABC):
    """
    Capability interface to a vibration controller.

    Every method and property may raise ControllerError. Implementations
    translate their native failures into ControllerError so callers only
    have one exception type to handle.
    """

    # Test control

    @abstractmethod
    def open(self, test_name: str) -> None:
        """Open (load) a test profile."""

    @abstractmethod
    def run(self, test_name: str) -> None:
        """Run a test profile."""

    @abstractmethod
    def resume(self) -> None:
        """Resume a stopped test."""

    @abstractmethod
    def stop(self) -> None:
        """Stop the running test."""

    @abstractmethod
    def menu_command(self, command_id: int) -> None:
        """Invoke a controller menu command by resource id."""

    @abstractmethod
    def set_test_type(self, test_type: TestType) -> None:
        """Select the active test type."""

    # Telemetry flags

    @property
    @abstractmethod
    def running(self) -> bool:
        """True while a test is running."""

    @property
    @abstractmethod
    def aborted(self) -> bool:
        """True if the last test ended by abort."""

    @property
    @abstractmethod
    def starting(self) -> bool:
        """True during the pre-test phase of a run."""

    @property
    @abstractmethod
    def can_resume(self) -> bool:
        """True if a stopped test can be resumed."""

    @property
    @abstractmethod
    def hold_level(self) -> bool:
        """True while the schedule holds at the current level."""

    # Reports and identity

    @abstractmethod
    def status(self) -> tuple[int, str]:
        """
        Query controller status.

        Returns:
            Tuple of (status code, status text)
        """

    @abstractmethod
    def report_field(self, field_format: str) -> str:
        """Read a formatted report field, e.g. ``"Control%.2f"``."""

    @abstractmethod
    def test_type(self) -> int:
        """Return the type of the loaded test."""

    @property
    @abstractmethod
    def software_version(self) -> str:
        """Controller software version."""

    @property
    @abstractmethod
    def hardware_serial_number(self) -> int:
        """Serial number of the connected hardware."""

    @property
    @abstractmethod
    def hardware_input_channels(self) -> int:
        """Number of hardware input channels."""

    # Lifecycle

    @abstractmethod
    def release(self) -> None:
        """Release the controller handle. Must be safe to call more than once."""
