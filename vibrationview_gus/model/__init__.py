"""Equipment state, status reconciliation and the GUS lifecycle model."""

from .equipment import EquipmentModel
from .reconciler import (
    ControllerSnapshot,
    needs_snapshot,
    poll_and_reconcile,
    read_snapshot,
    reconcile,
)
from .results import CallResult, PollOutcome, attempt
from .state_machine import (
    ACTIVE_RUN_STATES,
    DEVICE_BOUND_STATES,
    TEST_BOUND_STATES,
    VALID_TRANSITIONS,
    EquipmentState,
    StateMachine,
)

__all__ = [
    "EquipmentModel",
    "ControllerSnapshot",
    "needs_snapshot",
    "poll_and_reconcile",
    "read_snapshot",
    "reconcile",
    "CallResult",
    "PollOutcome",
    "attempt",
    "ACTIVE_RUN_STATES",
    "DEVICE_BOUND_STATES",
    "TEST_BOUND_STATES",
    "VALID_TRANSITIONS",
    "EquipmentState",
    "StateMachine",
]
