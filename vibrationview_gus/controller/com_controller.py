"""VibrationVIEW automation (COM) controller binding."""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

from .base import Controller, ControllerError, TestType

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ProgID registered by the VibrationVIEW installer
VIBRATIONVIEW_PROGID = "VibrationVIEW.VibrationVIEW"

# VibrationVIEW reports booleans as integers
_FALSE = 0


class ComController(Controller):
    """
    Controller backed by the VibrationVIEW COM automation server.

    The COM server is 32-bit only, so this class only works from a 32-bit
    Python on Windows with pywin32 installed. pywin32 is imported when the
    controller is created so the rest of the package loads on any platform.
    """

    def __init__(self, progid: str = VIBRATIONVIEW_PROGID):
        """
        Create the COM object.

        Args:
            progid: COM ProgID of the VibrationVIEW automation server

        Raises:
            ControllerError: If pywin32 is missing or the server cannot be created
        """
        try:
            import pythoncom
            import pywintypes
            from win32com.client import gencache
        except ImportError as e:
            raise ControllerError(
                "pywin32 is required to control VibrationVIEW over COM"
            ) from e

        self._com_error: type[Exception] = pywintypes.com_error
        self._pythoncom = pythoncom

        pythoncom.CoInitialize()
        try:
            # makepy wrappers are needed so out-parameters come back as tuples
            self._vv: Any = gencache.EnsureDispatch(progid)
        except self._com_error as e:
            pythoncom.CoUninitialize()
            raise ControllerError(f"Cannot create {progid}: {e}") from e

        logger.info("Connected to %s", progid)

    def _call(self, operation: Callable[[], T]) -> T:
        """Run a COM call, translating COM failures into ControllerError."""
        if self._vv is None:
            raise ControllerError("VibrationVIEW handle has been released")
        try:
            return operation()
        except self._com_error as e:
            raise ControllerError(str(e)) from e

    # Test control

    def open(self, test_name: str) -> None:
        logger.debug("OpenTest(%s)", test_name)
        self._call(lambda: self._vv.OpenTest(test_name))

    def run(self, test_name: str) -> None:
        logger.debug("RunTest(%s)", test_name)
        self._call(lambda: self._vv.RunTest(test_name))

    def resume(self) -> None:
        self._call(lambda: self._vv.ResumeTest())

    def stop(self) -> None:
        self._call(lambda: self._vv.StopTest())

    def menu_command(self, command_id: int) -> None:
        logger.debug("MenuCommand(%d)", command_id)
        self._call(lambda: self._vv.MenuCommand(command_id))

    def set_test_type(self, test_type: TestType) -> None:
        def assign() -> None:
            self._vv.TestType = int(test_type)

        self._call(assign)

    # Telemetry flags

    @property
    def running(self) -> bool:
        return self._call(lambda: self._vv.Running) != _FALSE

    @property
    def aborted(self) -> bool:
        return self._call(lambda: self._vv.Aborted) != _FALSE

    @property
    def starting(self) -> bool:
        return self._call(lambda: self._vv.Starting) != _FALSE

    @property
    def can_resume(self) -> bool:
        return self._call(lambda: self._vv.CanResumeTest) != _FALSE

    @property
    def hold_level(self) -> bool:
        return self._call(lambda: self._vv.HoldLevel) != _FALSE

    # Reports and identity

    def status(self) -> tuple[int, str]:
        text, code = self._call(lambda: self._vv.Status())
        return int(code), str(text)

    def report_field(self, field_format: str) -> str:
        return str(self._call(lambda: self._vv.ReportField(field_format)))

    def test_type(self) -> int:
        return int(self._call(lambda: self._vv.TestType))

    @property
    def software_version(self) -> str:
        return str(self._call(lambda: self._vv.SoftwareVersion))

    @property
    def hardware_serial_number(self) -> int:
        return int(self._call(lambda: self._vv.HardwareSerialNumber))

    @property
    def hardware_input_channels(self) -> int:
        return int(self._call(lambda: self._vv.HardwareInputChannels))

    # Lifecycle

    def release(self) -> None:
        """Drop the COM reference so VibrationVIEW can shut down."""
        if self._vv is None:
            return
        self._vv = None
        self._pythoncom.CoUninitialize()
        logger.info("Released VibrationVIEW COM handle")
