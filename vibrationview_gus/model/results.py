"""Result types for controller calls made by the equipment model."""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CallResult(Generic[T]):
    """Outcome of a single controller operation."""

    success: bool
    value: T | None = None
    error: Exception | None = None


def attempt(operation: Callable[[], T], description: str = "") -> CallResult[T]:
    """
    Run a controller operation and capture its outcome.

    Args:
        operation: Zero-argument callable performing the controller call
        description: Operation name for the log

    Returns:
        CallResult with the value on success, or the exception on failure
    """
    try:
        return CallResult(success=True, value=operation())
    except Exception as e:
        logger.error("Controller call failed (%s): %s", description or "unnamed", e)
        return CallResult(success=False, error=e)


class PollOutcome(Enum):
    """Outcome of waiting for the controller hardware to become ready."""

    READY = auto()
    TIMEOUT = auto()
    FAILED = auto()
