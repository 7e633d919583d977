"""
Status reconciliation.

The controller can be started, paused or stopped from its own console and
can fault at any time, so the state the adapter last committed may be
stale. Before every command the equipment model polls a fresh
ControllerSnapshot and runs reconcile() to correct its state.
"""

import logging
from dataclasses import dataclass

from ..controller import WAIT_FOR_OPERATOR, Controller
from .state_machine import ACTIVE_RUN_STATES, EquipmentState

logger = logging.getLogger(__name__)

_STATUS_CODE_MASK = 0xFF


@dataclass(frozen=True)
class ControllerSnapshot:
    """One poll of controller telemetry. Never cached across commands."""

    running: bool = False
    aborted: bool = False
    starting: bool = False
    can_resume: bool = False
    hold_level: bool = False
    status_code: int = 0
    status_text: str = ""

    @property
    def schedule_paused(self) -> bool:
        """True if the controller schedule is holding (operator wait or level hold)."""
        return (
            self.status_code & _STATUS_CODE_MASK
        ) == WAIT_FOR_OPERATOR or self.hold_level


def read_snapshot(controller: Controller) -> ControllerSnapshot:
    """
    Poll all telemetry flags from the controller.

    Raises:
        ControllerError: If any read fails
    """
    running = controller.running
    code, text = controller.status()
    return ControllerSnapshot(
        running=running,
        aborted=controller.aborted,
        starting=controller.starting if running else False,
        can_resume=controller.can_resume,
        hold_level=controller.hold_level,
        status_code=code,
        status_text=text,
    )


def needs_snapshot(state: EquipmentState, binding_present: bool) -> bool:
    """Whether reconciling this state requires polling the controller."""
    return state in ACTIVE_RUN_STATES or binding_present


def _stopped_outcome(snapshot: ControllerSnapshot) -> EquipmentState:
    return EquipmentState.ERROR if snapshot.aborted else EquipmentState.FINISHED


def reconcile(
    state: EquipmentState,
    binding_present: bool,
    snapshot: ControllerSnapshot,
) -> EquipmentState:
    """
    Compute the corrected state from the committed state and a snapshot.

    Pure function; calling it again with its own result and the same
    snapshot returns the same state.

    Args:
        state: Currently committed state
        binding_present: True if a device is bound
        snapshot: Fresh controller telemetry

    Returns:
        Corrected state
    """
    if state == EquipmentState.PRE_TEST_RUNNING:
        if not snapshot.running:
            return _stopped_outcome(snapshot)
        if snapshot.starting:
            return EquipmentState.PRE_TEST_RUNNING
        # Pre-test is over; continue with the Running rules below
        state = EquipmentState.RUNNING

    if state == EquipmentState.RUNNING:
        if snapshot.schedule_paused:
            return EquipmentState.PAUSE
        if not snapshot.running:
            return _stopped_outcome(snapshot)
        return EquipmentState.RUNNING

    # Not under adapter run control: pick up runs started elsewhere
    if binding_present and snapshot.running:
        if snapshot.schedule_paused:
            return EquipmentState.PAUSE
        if snapshot.starting:
            return EquipmentState.PRE_TEST_RUNNING
        return EquipmentState.RUNNING

    return state


def poll_and_reconcile(
    state: EquipmentState,
    binding_present: bool,
    controller: Controller | None,
) -> EquipmentState:
    """
    Poll the controller if needed and reconcile.

    Any failure while polling forces ERROR.
    """
    if not needs_snapshot(state, binding_present):
        return state

    if controller is None:
        if state in ACTIVE_RUN_STATES:
            logger.error("No controller handle while in %s", state.value)
            return EquipmentState.ERROR
        return state

    try:
        snapshot = read_snapshot(controller)
    except Exception as e:
        logger.error("Controller poll failed: %s", e)
        return EquipmentState.ERROR

    return reconcile(state, binding_present, snapshot)
