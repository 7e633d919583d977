"""GUS command dispatcher.

Maps wire command lines to equipment model operations. A line is a
command name optionally followed by one argument (the rest of the line).
The ``GUS_`` prefix is optional and names are matched without regard to
case, so ``GUS_OpenDevice``, ``opendevice`` and ``GUS_OPENDEVICE`` are the
same command.
"""

import logging
from pathlib import Path
from typing import Callable

from ..constants import FAILURE
from ..file_io import list_test_profiles
from ..model import EquipmentModel

logger = logging.getLogger(__name__)

COMMAND_PREFIX = "gus_"

CommandHandler = Callable[[str], str]


def parse_command(line: str) -> tuple[str, str]:
    """
    Split a command line into (normalized name, argument).

    The name is lowercased with the GUS_ prefix removed. Surrounding
    double quotes are stripped from the argument.
    """
    parts = line.strip().split(None, 1)
    if not parts:
        return "", ""

    name = parts[0].lower()
    if name.startswith(COMMAND_PREFIX):
        name = name[len(COMMAND_PREFIX):]

    argument = parts[1].strip() if len(parts) > 1 else ""
    if len(argument) >= 2 and argument[0] == argument[-1] == '"':
        argument = argument[1:-1]
    return name, argument


class CommandDispatcher:
    """
    Routes GUS command lines to an EquipmentModel.

    dispatch() always returns a response string; unknown commands and
    unexpected errors answer FAILURE.
    """

    def __init__(self, model: EquipmentModel, profiles_dir: str | Path):
        """
        Args:
            model: Equipment model receiving the commands
            profiles_dir: Directory searched by GetTestProfiles
        """
        self._model = model
        self._profiles_dir = Path(profiles_dir)
        self._handlers: dict[str, CommandHandler] = {
            "openapp": model.open_app,
            "open_app": model.open_app,
            "opendevice": model.open_device,
            "closedevice": model.close_device,
            "preparetest": model.prepare_test,
            "starttest": lambda _: model.start_test(),
            "pausetest": lambda _: model.pause_test(),
            "continuetest": lambda _: model.continue_test(),
            "stoptest": lambda _: model.stop_test(),
            "closetest": lambda _: model.close_test(),
            "closeapp": lambda _: model.close_app(),
            "getstatus": lambda _: model.get_status(),
            "geterror": lambda _: model.get_error(),
            "getinfo": lambda _: model.get_info(),
            "getdeviceinfo": lambda _: model.get_device_info(),
            "gettestprofiles": self._get_test_profiles,
            "scan_devices": lambda _: "",
        }

    @property
    def model(self) -> EquipmentModel:
        return self._model

    @property
    def commands(self) -> list[str]:
        """Normalized names of all supported commands."""
        return sorted(self._handlers)

    def dispatch(self, line: str) -> str:
        """
        Execute one command line.

        Args:
            line: Raw command line from the host

        Returns:
            Response text (token, state name or XML document)
        """
        name, argument = parse_command(line)
        handler = self._handlers.get(name)
        if handler is None:
            logger.warning("Unknown command: %r", line.strip())
            return FAILURE

        logger.debug("Command %s(%r)", name, argument)
        try:
            response = handler(argument)
        except Exception:
            logger.exception("Unhandled error in command %s", name)
            return FAILURE
        logger.debug("Response to %s: %r", name, response)
        return response

    def _get_test_profiles(self, profile_filter: str) -> str:
        return list_test_profiles(self._profiles_dir, profile_filter)
