"""Tests for the equipment model module."""

from unittest.mock import Mock, PropertyMock

import pytest

from vibrationview_gus.controller import (
    MENU_ADVANCE_TO_NEXT_LEVEL,
    MENU_CLOSE_TEST,
    MENU_RUN_TEST,
    STOP_WAITING_FOR_BOX,
    ControllerError,
    SimulatedController,
    TestType,
)
from vibrationview_gus.model import EquipmentModel, EquipmentState

S = EquipmentState


# --- Shared helpers ---


def _make_model(controller: Mock, **kwargs) -> EquipmentModel:
    kwargs.setdefault("sleep", lambda _: None)
    return EquipmentModel(lambda: controller, **kwargs)


def _force_model_state(
    model: EquipmentModel,
    state: EquipmentState,
    device: str = "12345678",
    test_name: str = "t1",
) -> None:
    """Force model into a specific state, bypassing transition validation."""
    model._state_machine._state = state
    model._device = device
    model._test_name = test_name


def _model_in_state(
    controller: Mock, state: EquipmentState, **kwargs
) -> EquipmentModel:
    model = _make_model(controller)
    assert model.open_app().startswith("ACK")
    _force_model_state(model, state, **kwargs)
    return model


class FakeClock:
    """Monotonic clock advanced by the fake sleep."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class TestOpenApp:
    """Tests for open_app."""

    def test_returns_version(self, equipment_model: EquipmentModel) -> None:
        assert equipment_model.open_app("VibrationVIEW") == "ACK:10.0.0.0"
        assert equipment_model.is_app_open
        assert equipment_model.state == S.DEVICE_CLOSED

    def test_factory_failure(self) -> None:
        model = EquipmentModel(Mock(side_effect=ControllerError("no COM server")))
        assert model.open_app() == "ERR"
        assert not model.is_app_open

    def test_version_failure_releases_new_handle(self, mock_controller: Mock) -> None:
        type(mock_controller).software_version = PropertyMock(
            side_effect=ControllerError("RPC server unavailable")
        )
        model = _make_model(mock_controller)

        assert model.open_app() == "ERR"
        assert not model.is_app_open
        mock_controller.release.assert_called_once()

    def test_reuses_existing_handle(self) -> None:
        factory = Mock(return_value=SimulatedController())
        model = EquipmentModel(factory)
        model.open_app()
        model.open_app()
        factory.assert_called_once()

    def test_resets_bindings(self, ready_model: EquipmentModel) -> None:
        assert ready_model.open_app().startswith("ACK")
        assert ready_model.state == S.DEVICE_CLOSED
        assert ready_model.device == ""
        assert ready_model.test_name == ""


class TestOpenDevice:
    """Tests for open_device."""

    def test_empty_id_adopts_serial(self, equipment_model: EquipmentModel) -> None:
        equipment_model.open_app()
        assert equipment_model.open_device("") == "ACK"
        assert equipment_model.state == S.DEVICE_OPEN
        assert equipment_model.device == "A1B2C3"

    def test_matching_serial(self, equipment_model: EquipmentModel) -> None:
        equipment_model.open_app()
        assert equipment_model.open_device("a1b2c3") == "ACK"
        assert equipment_model.device == "A1B2C3"

    def test_serial_mismatch(self, equipment_model: EquipmentModel) -> None:
        equipment_model.open_app()
        assert equipment_model.open_device("FFFF") == "ERR"
        assert equipment_model.state == S.DEVICE_CLOSED
        assert equipment_model.device == ""

    def test_second_device_rejected(self, open_model: EquipmentModel) -> None:
        """Opening another device while one is open keeps the first binding."""
        assert open_model.open_device("X") == "ERR"
        assert open_model.device == "A1B2C3"
        assert open_model.state == S.DEVICE_OPEN

    def test_requires_app(self, equipment_model: EquipmentModel) -> None:
        assert equipment_model.open_device() == "ERR"

    def test_waits_for_box(self, mock_controller: Mock) -> None:
        mock_controller.status.side_effect = [
            (STOP_WAITING_FOR_BOX, "Waiting for box"),
            (STOP_WAITING_FOR_BOX, "Waiting for box"),
            (0, "Stopped"),
        ]
        clock = FakeClock()
        model = _make_model(
            mock_controller, clock=clock, sleep=clock.sleep, poll_interval_s=0.5
        )
        model.open_app()

        assert model.open_device() == "ACK"
        assert clock.sleeps == [0.5, 0.5]

    def test_box_timeout(self, mock_controller: Mock) -> None:
        mock_controller.status.return_value = (STOP_WAITING_FOR_BOX, "Waiting")
        clock = FakeClock()
        model = _make_model(
            mock_controller,
            clock=clock,
            sleep=clock.sleep,
            open_device_timeout_s=2.0,
            poll_interval_s=0.5,
        )
        model.open_app()

        assert model.open_device() == "ERR"
        assert model.state == S.DEVICE_CLOSED
        assert clock.now == pytest.approx(2.0)

    def test_status_failure(self, mock_controller: Mock) -> None:
        mock_controller.status.side_effect = ControllerError("COM failure")
        model = _make_model(mock_controller)
        model.open_app()

        assert model.open_device() == "ERR"
        assert model.state == S.DEVICE_CLOSED

    def test_serial_read_failure(self, mock_controller: Mock) -> None:
        type(mock_controller).hardware_serial_number = PropertyMock(
            side_effect=ControllerError("no hardware")
        )
        model = _make_model(mock_controller)
        model.open_app()

        assert model.open_device() == "ERR"
        assert model.device == ""


class TestCloseDevice:
    """Tests for close_device."""

    def test_close_bound_device(self, open_model: EquipmentModel) -> None:
        assert open_model.close_device("") == "ACK"
        assert open_model.state == S.DEVICE_CLOSED
        assert open_model.device == ""

    def test_close_by_id(self, open_model: EquipmentModel) -> None:
        assert open_model.close_device("A1B2C3") == "ACK"

    def test_wrong_id(self, open_model: EquipmentModel) -> None:
        assert open_model.close_device("OTHER") == "ERR"
        assert open_model.device == "A1B2C3"
        assert open_model.state == S.DEVICE_OPEN

    def test_test_prepared(self, ready_model: EquipmentModel) -> None:
        assert ready_model.close_device() == "ERR"
        assert ready_model.state == S.READY


class TestPrepareTest:
    """Tests for prepare_test."""

    def test_loads_test(
        self, open_model: EquipmentModel, sim_controller: SimulatedController
    ) -> None:
        assert open_model.prepare_test("sweep.vsp") == "ACK"
        assert open_model.state == S.READY
        assert open_model.test_name == "sweep.vsp"
        assert sim_controller.loaded_test == "sweep.vsp"

    def test_load_failure_is_error(self, mock_controller: Mock) -> None:
        mock_controller.open.side_effect = ControllerError("file not found")
        model = _model_in_state(mock_controller, S.DEVICE_OPEN, test_name="")

        assert model.prepare_test("missing.vsp") == "ERR"
        assert model.state == S.ERROR
        assert model.test_name == ""

    def test_wrong_state(self, equipment_model: EquipmentModel) -> None:
        equipment_model.open_app()
        assert equipment_model.prepare_test("t1") == "ERR"
        assert equipment_model.state == S.DEVICE_CLOSED

    def test_empty_name(self, open_model: EquipmentModel) -> None:
        assert open_model.prepare_test("") == "ERR"
        assert open_model.state == S.DEVICE_OPEN


class TestStartTest:
    """Tests for start_test."""

    def test_starts_running(self, ready_model: EquipmentModel) -> None:
        assert ready_model.start_test() == "ACK"
        assert ready_model.state == S.RUNNING

    def test_starts_in_pretest(self, mock_controller: Mock) -> None:
        model = _model_in_state(mock_controller, S.READY)

        def run(name: str) -> None:
            mock_controller.running = True
            mock_controller.starting = True

        mock_controller.run.side_effect = run

        assert model.start_test() == "ACK"
        assert model.state == S.PRE_TEST_RUNNING
        mock_controller.run.assert_called_once_with("t1")

    def test_never_prepared_is_error(self, open_model: EquipmentModel) -> None:
        assert open_model.start_test() == "ERR"
        assert open_model.state == S.ERROR

    def test_empty_binding_in_ready_is_error(self, mock_controller: Mock) -> None:
        model = _model_in_state(mock_controller, S.READY, test_name="")

        assert model.start_test() == "ERR"
        assert model.state == S.ERROR
        mock_controller.run.assert_not_called()

    def test_not_confirmed_is_error(self, mock_controller: Mock) -> None:
        model = _model_in_state(mock_controller, S.READY)

        assert model.start_test() == "ERR"
        assert model.state == S.ERROR

    def test_run_failure_is_error(self, mock_controller: Mock) -> None:
        mock_controller.run.side_effect = ControllerError("hardware fault")
        model = _model_in_state(mock_controller, S.READY)

        assert model.start_test() == "ERR"
        assert model.state == S.ERROR

    def test_wrong_state(self, running_model: EquipmentModel) -> None:
        assert running_model.start_test() == "ERR"
        assert running_model.state == S.RUNNING


class TestPauseTest:
    """Tests for pause_test."""

    def test_pauses(self, running_model: EquipmentModel) -> None:
        assert running_model.pause_test() == "ACK"
        assert running_model.state == S.PAUSE

    def test_not_resumable_is_error(self, mock_controller: Mock) -> None:
        """The stop happens, but a test that cannot resume is an error."""
        mock_controller.running = True
        model = _model_in_state(mock_controller, S.RUNNING)

        def stop() -> None:
            mock_controller.running = False

        mock_controller.stop.side_effect = stop

        assert model.pause_test() == "ERR"
        assert model.state == S.ERROR
        mock_controller.stop.assert_called_once()

    def test_wrong_state(self, ready_model: EquipmentModel) -> None:
        assert ready_model.pause_test() == "ERR"
        assert ready_model.state == S.READY


class TestContinueTest:
    """Tests for continue_test."""

    def test_resumes_stopped_test(self, running_model: EquipmentModel) -> None:
        running_model.pause_test()
        assert running_model.continue_test() == "ACK"
        assert running_model.state == S.RUNNING

    def test_hold_level_uses_run_command(
        self, running_model: EquipmentModel, sim_controller: SimulatedController
    ) -> None:
        sim_controller.operator_hold(True)
        assert running_model.get_status() == "Pause"

        assert running_model.continue_test() == "ACK"
        assert running_model.state == S.RUNNING
        assert sim_controller.menu_commands == [MENU_RUN_TEST]

    def test_schedule_wait_advances_level(
        self, running_model: EquipmentModel, sim_controller: SimulatedController
    ) -> None:
        sim_controller.operator_wait(True)
        assert running_model.get_status() == "Pause"

        assert running_model.continue_test() == "ACK"
        assert sim_controller.menu_commands == [MENU_ADVANCE_TO_NEXT_LEVEL]

    def test_resume_not_confirmed_is_error(self, mock_controller: Mock) -> None:
        model = _model_in_state(mock_controller, S.PAUSE)

        assert model.continue_test() == "ERR"
        assert model.state == S.ERROR
        mock_controller.resume.assert_called_once()

    def test_resume_failure_is_error(self, mock_controller: Mock) -> None:
        mock_controller.resume.side_effect = ControllerError("cannot resume")
        model = _model_in_state(mock_controller, S.PAUSE)

        assert model.continue_test() == "ERR"
        assert model.state == S.ERROR

    def test_wrong_state(self, running_model: EquipmentModel) -> None:
        assert running_model.continue_test() == "ERR"
        assert running_model.state == S.RUNNING


class TestStopTest:
    """Tests for stop_test."""

    def test_stops_running_test(
        self, running_model: EquipmentModel, sim_controller: SimulatedController
    ) -> None:
        assert running_model.stop_test() == "ACK"
        assert running_model.state == S.READY
        assert running_model.test_name == "t1"
        assert not sim_controller.running

    @pytest.mark.parametrize("state", [S.FINISHED, S.ERROR])
    def test_no_stop_call_when_not_running(
        self, mock_controller: Mock, state: EquipmentState
    ) -> None:
        model = _model_in_state(mock_controller, state)

        assert model.stop_test() == "ACK"
        assert model.state == S.READY
        mock_controller.stop.assert_not_called()

    def test_stop_failure_is_error(self, mock_controller: Mock) -> None:
        mock_controller.stop.side_effect = ControllerError("COM failure")
        model = _model_in_state(mock_controller, S.PAUSE)

        assert model.stop_test() == "ERR"
        assert model.state == S.ERROR

    @pytest.mark.parametrize("state", [S.DEVICE_OPEN, S.READY])
    def test_wrong_state(self, mock_controller: Mock, state: EquipmentState) -> None:
        model = _model_in_state(mock_controller, state)
        assert model.stop_test() == "ERR"
        assert model.state == state


class TestCloseTest:
    """Tests for close_test."""

    def test_closes_prepared_test(
        self, ready_model: EquipmentModel, sim_controller: SimulatedController
    ) -> None:
        assert ready_model.close_test() == "ACK"
        assert ready_model.state == S.DEVICE_OPEN
        assert ready_model.test_name == ""
        assert ready_model.device == "A1B2C3"
        assert sim_controller.loaded_test is None
        assert sim_controller.menu_commands == [MENU_CLOSE_TEST]
        assert sim_controller.test_type() == TestType.SYSCHECK

    def test_without_binding_only_selects_syscheck(
        self, mock_controller: Mock
    ) -> None:
        model = _model_in_state(mock_controller, S.ERROR, test_name="")

        assert model.close_test() == "ACK"
        mock_controller.open.assert_not_called()
        mock_controller.menu_command.assert_not_called()
        mock_controller.set_test_type.assert_called_once_with(TestType.SYSCHECK)

    def test_failure_leaves_state(self, mock_controller: Mock) -> None:
        mock_controller.menu_command.side_effect = ControllerError("menu failed")
        model = _model_in_state(mock_controller, S.FINISHED)

        assert model.close_test() == "ERR"
        assert model.state == S.FINISHED
        assert model.test_name == "t1"

    def test_wrong_state(self, running_model: EquipmentModel) -> None:
        assert running_model.close_test() == "ERR"
        assert running_model.state == S.RUNNING


class TestCloseApp:
    """Tests for close_app and resource release."""

    def test_releases_and_clears(
        self, ready_model: EquipmentModel, sim_controller: SimulatedController
    ) -> None:
        assert ready_model.close_app() == "ACK"
        assert ready_model.state == S.DEVICE_CLOSED
        assert ready_model.device == ""
        assert ready_model.test_name == ""
        assert not ready_model.is_app_open
        assert sim_controller.released

    def test_close_is_idempotent(self, mock_controller: Mock) -> None:
        model = _make_model(mock_controller)
        model.open_app()
        model.close()
        model.close()
        mock_controller.release.assert_called_once()

    def test_release_failure_still_drops_handle(self, mock_controller: Mock) -> None:
        mock_controller.release.side_effect = ControllerError("already gone")
        model = _make_model(mock_controller)
        model.open_app()

        assert model.close_app() == "ACK"
        assert not model.is_app_open

    def test_context_manager_releases(self, mock_controller: Mock) -> None:
        with _make_model(mock_controller) as model:
            model.open_app()
        mock_controller.release.assert_called_once()


class TestGetStatus:
    """Tests for get_status and reconciliation."""

    def test_initial_status(self, equipment_model: EquipmentModel) -> None:
        assert equipment_model.get_status() == "DeviceClosed"

    def test_status_is_stable(self, running_model: EquipmentModel) -> None:
        assert running_model.get_status() == running_model.get_status() == "Running"

    def test_completion_detected(
        self, running_model: EquipmentModel, sim_controller: SimulatedController
    ) -> None:
        sim_controller.complete()
        assert running_model.get_status() == "Finished"

    def test_abort_detected(
        self, running_model: EquipmentModel, sim_controller: SimulatedController
    ) -> None:
        sim_controller.abort("Abort: COLA overload")
        assert running_model.get_status() == "Error"

    def test_console_start_detected(
        self, open_model: EquipmentModel, sim_controller: SimulatedController
    ) -> None:
        sim_controller.operator_run("console.vsp", starting=True)
        assert open_model.get_status() == "PreTestRunning"
        sim_controller.operator_end_pretest()
        assert open_model.get_status() == "Running"

    def test_poll_failure_forces_error(self, mock_controller: Mock) -> None:
        mock_controller.running = True
        model = _model_in_state(mock_controller, S.RUNNING)
        mock_controller.status.side_effect = ControllerError("COM failure")

        assert model.get_status() == "Error"

    def test_reconciled_state_gates_commands(
        self, running_model: EquipmentModel, sim_controller: SimulatedController
    ) -> None:
        """A run that finished at the console can be stopped without a stop call."""
        sim_controller.complete()
        assert running_model.stop_test() == "ACK"
        assert running_model.state == S.READY


class TestGetError:
    """Tests for get_error."""

    def test_no_fault(self, open_model: EquipmentModel) -> None:
        assert open_model.get_error() == "ACK"

    def test_fault_text(
        self, running_model: EquipmentModel, sim_controller: SimulatedController
    ) -> None:
        sim_controller.abort("Abort: COLA overload")
        assert running_model.get_error() == "Abort: COLA overload"
        assert running_model.state == S.RUNNING
        assert running_model.get_status() == "Error"

    def test_read_failure_keeps_state(self, mock_controller: Mock) -> None:
        model = _make_model(mock_controller)
        assert model.open_app().startswith("ACK")
        assert model.open_device() == "ACK"
        assert model.prepare_test("t1") == "ACK"
        type(mock_controller).aborted = PropertyMock(
            side_effect=ControllerError("COM failure")
        )

        assert model.get_error() == "ERR"
        assert model.state == S.READY
        assert model.device == "12345678"
        assert model.test_name == "t1"

    def test_requires_app(self, equipment_model: EquipmentModel) -> None:
        assert equipment_model.get_error() == "ERR"


class TestInfoDocuments:
    """Tests for get_info and get_device_info."""

    def test_get_info(self, open_model: EquipmentModel) -> None:
        document = open_model.get_info()
        assert document.startswith("<?xml")
        assert "<Address>  A1B2C3</Address>" in document

    def test_get_device_info(self, open_model: EquipmentModel) -> None:
        assert "GusDeviceInfo" in open_model.get_device_info()

    def test_require_app(self, equipment_model: EquipmentModel) -> None:
        assert equipment_model.get_info() == "ERR"
        assert equipment_model.get_device_info() == "ERR"

    def test_controller_failure(self, mock_controller: Mock) -> None:
        mock_controller.report_field.side_effect = ControllerError("no field")
        model = _make_model(mock_controller)
        model.open_app()

        assert model.get_info() == "ERR"
        assert model.get_device_info() == "ERR"


class TestHappyPath:
    """Full command sequence against a healthy controller."""

    def test_full_sequence(self, equipment_model: EquipmentModel) -> None:
        responses = [
            equipment_model.open_app(),
            equipment_model.open_device(""),
            equipment_model.prepare_test("t1"),
            equipment_model.start_test(),
            equipment_model.stop_test(),
            equipment_model.close_test(),
            equipment_model.close_device(""),
            equipment_model.close_app(),
        ]
        assert responses[0].startswith("ACK:")
        assert responses[1:] == ["ACK"] * 7
        assert equipment_model.state == S.DEVICE_CLOSED

    def test_state_callback_sees_transitions(
        self, equipment_model: EquipmentModel
    ) -> None:
        seen = []
        equipment_model.register_state_callback(lambda old, new: seen.append(new))
        equipment_model.open_app()
        equipment_model.open_device()
        equipment_model.prepare_test("t1")
        assert seen == [S.DEVICE_OPEN, S.READY]
