"""Equipment state definitions and transition table."""

import logging
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class EquipmentState(Enum):
    """GUS equipment states. Values are the names reported to the host."""

    DEVICE_CLOSED = "DeviceClosed"
    DEVICE_OPEN = "DeviceOpen"
    READY = "Ready"
    PRE_TEST_RUNNING = "PreTestRunning"
    RUNNING = "Running"
    PAUSE = "Pause"
    FINISHED = "Finished"
    ERROR = "Error"
    PROJ_LOAD_FAILED = "ProjLoadFailed"


# States in which a test run is in progress under adapter control
ACTIVE_RUN_STATES = frozenset(
    {EquipmentState.PRE_TEST_RUNNING, EquipmentState.RUNNING}
)

# States that hold a device binding
DEVICE_BOUND_STATES = frozenset(
    {
        EquipmentState.DEVICE_OPEN,
        EquipmentState.READY,
        EquipmentState.PRE_TEST_RUNNING,
        EquipmentState.RUNNING,
        EquipmentState.PAUSE,
        EquipmentState.FINISHED,
        EquipmentState.ERROR,
    }
)

# States that may hold a test binding
TEST_BOUND_STATES = DEVICE_BOUND_STATES - {EquipmentState.DEVICE_OPEN}

# Run states the controller can be observed in at any time, e.g. after an
# operator starts a test from the console
_OBSERVED_RUN_STATES = {
    EquipmentState.PRE_TEST_RUNNING,
    EquipmentState.RUNNING,
    EquipmentState.PAUSE,
}

# Valid state transitions. DEVICE_CLOSED is reachable from every state
# (CloseApp / OpenApp).
VALID_TRANSITIONS: dict[EquipmentState, set[EquipmentState]] = {
    EquipmentState.DEVICE_CLOSED: {EquipmentState.DEVICE_OPEN},
    EquipmentState.DEVICE_OPEN: {
        EquipmentState.DEVICE_CLOSED,
        EquipmentState.READY,
        EquipmentState.ERROR,
        *_OBSERVED_RUN_STATES,
    },
    EquipmentState.READY: {
        EquipmentState.DEVICE_OPEN,
        EquipmentState.ERROR,
        *_OBSERVED_RUN_STATES,
    },
    EquipmentState.PRE_TEST_RUNNING: {
        EquipmentState.RUNNING,
        EquipmentState.PAUSE,
        EquipmentState.FINISHED,
        EquipmentState.READY,
        EquipmentState.ERROR,
    },
    EquipmentState.RUNNING: {
        EquipmentState.PAUSE,
        EquipmentState.FINISHED,
        EquipmentState.READY,
        EquipmentState.ERROR,
    },
    EquipmentState.PAUSE: {
        EquipmentState.RUNNING,
        EquipmentState.PRE_TEST_RUNNING,
        EquipmentState.READY,
        EquipmentState.ERROR,
    },
    EquipmentState.FINISHED: {
        EquipmentState.READY,
        EquipmentState.DEVICE_OPEN,
        EquipmentState.ERROR,
        *_OBSERVED_RUN_STATES,
    },
    EquipmentState.ERROR: {
        EquipmentState.READY,
        EquipmentState.DEVICE_OPEN,
        *_OBSERVED_RUN_STATES,
    },
    EquipmentState.PROJ_LOAD_FAILED: {
        EquipmentState.DEVICE_OPEN,
        EquipmentState.READY,
        EquipmentState.ERROR,
        *_OBSERVED_RUN_STATES,
    },
}

for _targets in VALID_TRANSITIONS.values():
    _targets.add(EquipmentState.DEVICE_CLOSED)
del _targets

StateCallback = Callable[[EquipmentState, EquipmentState], None]


class StateMachine:
    """
    Holds the committed equipment state and validates transitions.

    Callbacks registered with register_callback are invoked with
    (old_state, new_state) after every change.
    """

    def __init__(self, initial_state: EquipmentState = EquipmentState.DEVICE_CLOSED):
        self._state = initial_state
        self._callbacks: list[StateCallback] = []

    @property
    def state(self) -> EquipmentState:
        """Current state."""
        return self._state

    def register_callback(self, callback: StateCallback) -> None:
        """Register a callback for state changes."""
        self._callbacks.append(callback)

    def can_transition_to(self, new_state: EquipmentState) -> bool:
        """Check whether a transition from the current state is allowed."""
        if new_state == self._state:
            return True
        return new_state in VALID_TRANSITIONS[self._state]

    def transition_to(self, new_state: EquipmentState) -> bool:
        """
        Transition to a new state.

        Args:
            new_state: Target state

        Returns:
            True once the machine is in new_state

        Raises:
            ValueError: If the transition is not allowed
        """
        if new_state == self._state:
            return True

        if not self.can_transition_to(new_state):
            raise ValueError(
                f"Invalid state transition: {self._state.value} -> {new_state.value}"
            )

        old_state = self._state
        self._state = new_state
        logger.info("State: %s -> %s", old_state.value, new_state.value)
        self._notify(old_state, new_state)
        return True

    def to_error(self, reason: str = "") -> None:
        """Transition to ERROR, logging the reason."""
        if reason:
            logger.error("Entering Error state: %s", reason)
        self.transition_to(EquipmentState.ERROR)

    def _notify(self, old_state: EquipmentState, new_state: EquipmentState) -> None:
        for callback in self._callbacks:
            try:
                callback(old_state, new_state)
            except Exception as e:
                logger.error("Error in state callback: %s", e)
