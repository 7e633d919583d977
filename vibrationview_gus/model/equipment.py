"""Equipment model - GUS lifecycle over a single vibration controller."""

import logging
import time
from typing import Callable

from ..constants import DEFAULT_DEVICE_MODEL, DEFAULT_DEVICE_NAME, FAILURE, SUCCESS
from ..controller import (
    MENU_ADVANCE_TO_NEXT_LEVEL,
    MENU_CLOSE_TEST,
    MENU_RUN_TEST,
    STOP_WAITING_FOR_BOX,
    Controller,
    ControllerFactory,
    ControllerError,
    TestType,
    read_serial_number,
)
from ..reporting import build_device_info_document, build_info_document
from .reconciler import poll_and_reconcile
from .results import PollOutcome, attempt
from .state_machine import (
    ACTIVE_RUN_STATES,
    DEVICE_BOUND_STATES,
    TEST_BOUND_STATES,
    EquipmentState,
    StateMachine,
)

logger = logging.getLogger(__name__)

# States from which StopTest returns to Ready
_STOPPABLE_STATES = frozenset(
    {
        EquipmentState.PAUSE,
        EquipmentState.RUNNING,
        EquipmentState.PRE_TEST_RUNNING,
        EquipmentState.ERROR,
        EquipmentState.FINISHED,
    }
)

# States in which StopTest has to stop the controller
_STOP_REQUIRED_STATES = ACTIVE_RUN_STATES | {EquipmentState.PAUSE}

_CLOSABLE_TEST_STATES = frozenset(
    {EquipmentState.READY, EquipmentState.FINISHED, EquipmentState.ERROR}
)


class EquipmentModel:
    """
    Core business logic for the GUS adapter.

    Owns the equipment state, the device and test bindings and the single
    controller handle. Apart from the pure reads (GetError and the info
    documents), every command reconciles the state against fresh controller
    telemetry, validates its precondition, calls the controller and commits
    the new state. Commands return SUCCESS/FAILURE tokens and never raise.

    Not thread safe; callers serialize access.
    """

    def __init__(
        self,
        controller_factory: ControllerFactory,
        open_device_timeout_s: float = 10.0,
        poll_interval_s: float = 0.25,
        device_name: str = DEFAULT_DEVICE_NAME,
        device_model: str = DEFAULT_DEVICE_MODEL,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize equipment model.

        Args:
            controller_factory: Creates the controller handle on OpenApp
            open_device_timeout_s: How long OpenDevice waits for the box
            poll_interval_s: Delay between box status polls
            device_name: Name reported by GetInfo
            device_model: Model reported by GetInfo
            sleep: Sleep function used while polling
            clock: Monotonic clock used for the OpenDevice deadline
        """
        self._controller_factory = controller_factory
        self._open_device_timeout_s = open_device_timeout_s
        self._poll_interval_s = poll_interval_s
        self._device_name = device_name
        self._device_model = device_model
        self._sleep = sleep
        self._clock = clock

        self._state_machine = StateMachine()
        self._controller: Controller | None = None
        self._device = ""
        self._test_name = ""

    @property
    def state(self) -> EquipmentState:
        """Get committed equipment state (not reconciled)."""
        return self._state_machine.state

    @property
    def device(self) -> str:
        """Bound device id, "" if none."""
        return self._device

    @property
    def test_name(self) -> str:
        """Prepared test name, "" if none."""
        return self._test_name

    @property
    def controller(self) -> Controller | None:
        return self._controller

    @property
    def is_app_open(self) -> bool:
        """True while a controller handle is held."""
        return self._controller is not None

    def register_state_callback(
        self, callback: Callable[[EquipmentState, EquipmentState], None]
    ) -> None:
        """Register callback for state changes."""
        self._state_machine.register_callback(callback)

    # Application

    def open_app(self, app: str = "") -> str:
        """
        Connect to the controller application.

        Creates the controller handle if none is held and reads the software
        version. Resets the state to DeviceClosed.

        Args:
            app: Application name from the host; informational only

        Returns:
            "ACK:<version>" on success, FAILURE otherwise
        """
        logger.info("Opening application %s", app or "VibrationVIEW")

        created = False
        if self._controller is None:
            result = attempt(self._controller_factory, "create controller")
            if not result.success:
                return FAILURE
            self._controller = result.value
            created = True

        controller = self._controller
        version = attempt(lambda: controller.software_version, "software version")
        if not version.success:
            if created:
                self._release_controller()
            return FAILURE

        self._commit(EquipmentState.DEVICE_CLOSED)
        logger.info("Connected to VibrationVIEW %s", version.value)
        return f"{SUCCESS}:{version.value}"

    def close_app(self) -> str:
        """Release the controller handle and return to DeviceClosed."""
        self.close()
        return SUCCESS

    def close(self) -> None:
        """Release the controller handle and clear all bindings. Idempotent."""
        self._release_controller()
        self._commit(EquipmentState.DEVICE_CLOSED)

    def __enter__(self) -> "EquipmentModel":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    # Device

    def open_device(self, device: str = "") -> str:
        """
        Bind the controller hardware.

        Waits for the box to leave the not-ready status, then checks the
        hardware serial number against the requested device id. An empty
        device id adopts whatever hardware is connected.

        Args:
            device: Hardware serial number, or "" for any

        Returns:
            SUCCESS or FAILURE
        """
        state = self._reconcile()
        if state != EquipmentState.DEVICE_CLOSED:
            return self._reject("OpenDevice", state)
        if self._controller is None:
            return self._reject("OpenDevice", state, "application not open")

        outcome = self._wait_for_box()
        if outcome == PollOutcome.TIMEOUT:
            logger.warning(
                "Hardware not ready after %.1f s", self._open_device_timeout_s
            )
            return FAILURE
        if outcome == PollOutcome.FAILED:
            return FAILURE

        serial = read_serial_number(self._controller).strip()
        if not serial:
            logger.error("Could not read hardware serial number")
            return FAILURE

        requested = device.strip()
        if requested and requested.upper() != serial:
            logger.warning(
                "OpenDevice: requested device %s, connected hardware is %s",
                requested,
                serial,
            )
            return FAILURE

        self._device = serial
        self._commit(EquipmentState.DEVICE_OPEN)
        logger.info("Device %s open", serial)
        return SUCCESS

    def close_device(self, device: str = "") -> str:
        """Unbind the device. "" closes whichever device is bound."""
        state = self._reconcile()
        if state != EquipmentState.DEVICE_OPEN:
            return self._reject("CloseDevice", state)

        requested = device.strip()
        if requested and requested.upper() != self._device:
            return self._reject(
                "CloseDevice", state, f"device {requested} is not open"
            )

        self._commit(EquipmentState.DEVICE_CLOSED)
        return SUCCESS

    def _wait_for_box(self) -> PollOutcome:
        """Poll status until the box is ready or the timeout expires."""
        controller = self._controller
        deadline = self._clock() + self._open_device_timeout_s
        while True:
            result = attempt(controller.status, "status")
            if not result.success:
                return PollOutcome.FAILED
            code, _ = result.value
            if code != STOP_WAITING_FOR_BOX:
                return PollOutcome.READY
            if self._clock() >= deadline:
                return PollOutcome.TIMEOUT
            logger.debug("Waiting for hardware")
            self._sleep(self._poll_interval_s)

    # Test

    def prepare_test(self, name: str) -> str:
        """
        Load a test profile.

        Args:
            name: Test profile name or path

        Returns:
            SUCCESS, or FAILURE (Error state if loading fails)
        """
        state = self._reconcile()
        if state != EquipmentState.DEVICE_OPEN:
            return self._reject("PrepareTest", state)
        if not name:
            return self._reject("PrepareTest", state, "no test name given")

        controller = self._controller
        result = attempt(lambda: controller.open(name), "open test")
        if not result.success:
            return self._force_error(f"could not load test {name}")

        self._test_name = name
        self._commit(EquipmentState.READY)
        return SUCCESS

    def start_test(self) -> str:
        """
        Run the prepared test.

        Returns:
            SUCCESS (PreTestRunning or Running), or FAILURE
        """
        state = self._reconcile()
        if state in (EquipmentState.DEVICE_OPEN, EquipmentState.READY) and not (
            self._test_name
        ):
            return self._force_error("StartTest without a prepared test")
        if state != EquipmentState.READY:
            return self._reject("StartTest", state)

        controller = self._controller
        name = self._test_name
        if not attempt(lambda: controller.run(name), "run test").success:
            return self._force_error(f"could not run test {name}")

        running = attempt(lambda: controller.running, "running")
        if not running.success or not running.value:
            return self._force_error(f"test {name} did not start")

        starting = attempt(lambda: controller.starting, "starting")
        if not starting.success:
            return self._force_error("could not read pre-test flag")

        self._commit(
            EquipmentState.PRE_TEST_RUNNING if starting.value else EquipmentState.RUNNING
        )
        return SUCCESS

    def pause_test(self) -> str:
        """Stop the running test so it can be resumed."""
        state = self._reconcile()
        if state != EquipmentState.RUNNING:
            return self._reject("PauseTest", state)

        controller = self._controller
        if not attempt(controller.stop, "stop").success:
            return self._force_error("could not pause test")

        can_resume = attempt(lambda: controller.can_resume, "can resume")
        if not can_resume.success or not can_resume.value:
            return self._force_error("test cannot be resumed after pause")

        self._commit(EquipmentState.PAUSE)
        return SUCCESS

    def continue_test(self) -> str:
        """
        Continue a paused test.

        A stopped test is resumed. A running test that holds at a level is
        released with the run command; one waiting on the schedule is
        advanced to the next level.
        """
        state = self._reconcile()
        if state != EquipmentState.PAUSE:
            return self._reject("ContinueTest", state)

        controller = self._controller
        flags = attempt(
            lambda: (controller.running, controller.hold_level), "pause flags"
        )
        if not flags.success:
            return self._force_error("could not read pause flags")

        running, hold_level = flags.value
        if not running:
            action, description = controller.resume, "resume"
        elif hold_level:
            action, description = (
                lambda: controller.menu_command(MENU_RUN_TEST),
                "advance past hold",
            )
        else:
            action, description = (
                lambda: controller.menu_command(MENU_ADVANCE_TO_NEXT_LEVEL),
                "advance to next level",
            )

        if not attempt(action, description).success:
            return self._force_error(f"could not {description}")

        confirmed = attempt(lambda: controller.running, "running")
        if not confirmed.success or not confirmed.value:
            return self._force_error("test did not continue")

        self._commit(EquipmentState.RUNNING)
        return SUCCESS

    def stop_test(self) -> str:
        """Stop the test and return to Ready."""
        state = self._reconcile()
        if state not in _STOPPABLE_STATES:
            return self._reject("StopTest", state)

        if state in _STOP_REQUIRED_STATES:
            controller = self._controller
            if controller is None or not attempt(controller.stop, "stop").success:
                return self._force_error("could not stop test")

        self._commit(EquipmentState.READY)
        return SUCCESS

    def close_test(self) -> str:
        """
        Close the prepared test and return to DeviceOpen.

        The controller is left with the system check test type selected.
        A failing controller call leaves the state unchanged.
        """
        state = self._reconcile()
        if state not in _CLOSABLE_TEST_STATES:
            return self._reject("CloseTest", state)
        if self._controller is None:
            return self._reject("CloseTest", state, "application not open")

        controller = self._controller
        name = self._test_name

        def unload() -> None:
            if name:
                controller.open(name)
                controller.menu_command(MENU_CLOSE_TEST)
            controller.set_test_type(TestType.SYSCHECK)

        if not attempt(unload, "close test").success:
            return FAILURE

        self._commit(EquipmentState.DEVICE_OPEN)
        return SUCCESS

    # Queries

    def get_status(self) -> str:
        """Reconciled state name."""
        return self._reconcile().value

    def get_error(self) -> str:
        """
        Fault text of an aborted test.

        Returns:
            Status text if the last test aborted, SUCCESS if not, FAILURE if
            the controller cannot be read
        """
        controller = self._controller
        if controller is None:
            logger.warning("GetError rejected: application not open")
            return FAILURE

        aborted = attempt(lambda: controller.aborted, "aborted")
        if not aborted.success:
            return FAILURE
        if not aborted.value:
            return SUCCESS

        status = attempt(controller.status, "status")
        if not status.success:
            return FAILURE
        return status.value[1]

    def get_info(self) -> str:
        """GetInfo XML document, or FAILURE."""
        controller = self._controller
        if controller is None:
            logger.warning("GetInfo rejected: application not open")
            return FAILURE
        result = attempt(
            lambda: build_info_document(
                controller, self._device_name, self._device_model
            ),
            "device info",
        )
        return result.value if result.success else FAILURE

    def get_device_info(self) -> str:
        """GetDeviceInfo XML schema document, or FAILURE."""
        controller = self._controller
        if controller is None:
            logger.warning("GetDeviceInfo rejected: application not open")
            return FAILURE
        result = attempt(
            lambda: build_device_info_document(controller), "device info schema"
        )
        return result.value if result.success else FAILURE

    # Internals

    def _reconcile(self) -> EquipmentState:
        """Correct the committed state from fresh controller telemetry."""
        corrected = poll_and_reconcile(
            self.state, bool(self._device), self._controller
        )
        self._commit(corrected)
        return corrected

    def _commit(self, new_state: EquipmentState) -> None:
        """Commit a state, clearing bindings that the state cannot hold."""
        if new_state not in DEVICE_BOUND_STATES:
            self._device = ""
        if new_state not in TEST_BOUND_STATES:
            self._test_name = ""
        self._state_machine.transition_to(new_state)

    def _reject(self, command: str, state: EquipmentState, reason: str = "") -> str:
        if reason:
            logger.warning("%s rejected in %s: %s", command, state.value, reason)
        else:
            logger.warning("%s not allowed in %s", command, state.value)
        return FAILURE

    def _force_error(self, reason: str) -> str:
        self._state_machine.to_error(reason)
        return FAILURE

    def _release_controller(self) -> None:
        controller, self._controller = self._controller, None
        if controller is None:
            return
        try:
            controller.release()
        except ControllerError as e:
            logger.error("Error releasing controller: %s", e)
        logger.info("Controller released")
