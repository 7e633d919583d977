"""Shared pytest fixtures."""

from pathlib import Path
from unittest.mock import Mock

import pytest


# === Path Fixtures ===


@pytest.fixture
def fixtures_path() -> Path:
    """Path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def config_fixtures_path(fixtures_path: Path) -> Path:
    """Path to config fixtures."""
    return fixtures_path / "config"


@pytest.fixture
def simulation_yaml_path() -> Path:
    """Path to the bundled simulation YAML file."""
    return (
        Path(__file__).parent.parent
        / "vibrationview_gus"
        / "simulation"
        / "controller.yaml"
    )


@pytest.fixture
def profiles_dir(tmp_path: Path) -> Path:
    """Profile directory with one or more files per test family."""
    directory = tmp_path / "profiles"
    directory.mkdir()
    for name in (
        "Sweep.vsp",
        "resonance.VSP",
        "Road.vrp",
        "HalfSine.vkp",
        "Replay.vfp",
        "notes.txt",
    ):
        (directory / name).write_text("")
    (directory / "archive.vsp").mkdir()
    return directory


# === Mock Fixtures ===


@pytest.fixture
def mock_controller() -> Mock:
    """Mock Controller reporting an idle, ready controller."""
    from vibrationview_gus.controller import Controller, TestType

    controller = Mock(spec=Controller)
    controller.software_version = "10.0.0.0"
    controller.hardware_serial_number = 0x12345678
    controller.hardware_input_channels = 2
    controller.running = False
    controller.aborted = False
    controller.starting = False
    controller.can_resume = False
    controller.hold_level = False
    controller.status.return_value = (0, "Stopped")
    controller.test_type.return_value = TestType.SINE
    return controller


# === Model Fixtures ===


@pytest.fixture
def state_machine():
    """Fresh StateMachine instance."""
    from vibrationview_gus.model.state_machine import StateMachine

    return StateMachine()


@pytest.fixture
def sim_controller():
    """SimulatedController with a ready box and no pre-test phase."""
    from vibrationview_gus.controller import SimulatedController

    return SimulatedController(
        software_version="10.0.0.0",
        hardware_serial_number=0x00A1B2C3,
        hardware_input_channels=2,
    )


@pytest.fixture
def equipment_model(sim_controller):
    """EquipmentModel whose factory returns the simulated controller."""
    from vibrationview_gus.model import EquipmentModel

    model = EquipmentModel(
        lambda: sim_controller,
        open_device_timeout_s=1.0,
        poll_interval_s=0.01,
        sleep=lambda _: None,
    )
    yield model
    model.close()


@pytest.fixture
def open_model(equipment_model):
    """EquipmentModel in DeviceOpen with the simulated hardware bound."""
    assert equipment_model.open_app().startswith("ACK")
    assert equipment_model.open_device() == "ACK"
    return equipment_model


@pytest.fixture
def ready_model(open_model):
    """EquipmentModel in Ready with test "t1" prepared."""
    assert open_model.prepare_test("t1") == "ACK"
    return open_model


@pytest.fixture
def running_model(ready_model):
    """EquipmentModel in Running."""
    assert ready_model.start_test() == "ACK"
    return ready_model
