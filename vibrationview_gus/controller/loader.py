"""Controller selection for real and simulated operation."""

import logging
from functools import partial
from pathlib import Path
from typing import Callable

from .base import Controller
from .com_controller import VIBRATIONVIEW_PROGID, ComController
from .simulated import SimulatedController

logger = logging.getLogger(__name__)

ControllerFactory = Callable[[], Controller]

_PACKAGE_DIR = Path(__file__).resolve().parent.parent


def resolve_simulation_file(simulation_file: str | Path) -> Path:
    """
    Locate a simulation file.

    Relative paths are tried against the working directory first and then
    against the package directory, where the bundled simulation lives.
    """
    path = Path(simulation_file)
    if path.is_absolute() or path.exists():
        return path
    bundled = _PACKAGE_DIR / path
    if bundled.exists():
        return bundled
    return path


def create_controller_factory(
    simulation_mode: bool,
    simulation_file: str | Path = "simulation/controller.yaml",
    progid: str = VIBRATIONVIEW_PROGID,
) -> ControllerFactory:
    """
    Build the factory the equipment model calls on OpenApp.

    Args:
        simulation_mode: Use the simulated controller instead of COM
        simulation_file: YAML description for the simulated controller
        progid: COM ProgID used when not simulating

    Returns:
        Zero-argument callable creating a new controller handle
    """
    if simulation_mode:
        path = resolve_simulation_file(simulation_file)
        logger.info("Using simulated controller from %s", path)
        return partial(SimulatedController.from_yaml, path)

    logger.info("Using VibrationVIEW COM controller (%s)", progid)
    return partial(ComController, progid)
