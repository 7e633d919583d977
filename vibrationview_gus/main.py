#!/usr/bin/env python3
"""VibrationVIEW GUS adapter - Main entry point."""

import argparse
import logging
import sys

from .config import AppConfig, load_config
from .controller import create_controller_factory, resolve_simulation_file
from .logging_config import setup_logging
from .model import EquipmentModel, EquipmentState
from .protocol import CommandDispatcher, GusServer

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="VibrationVIEW GUS adapter - GUS host interface for VibrationVIEW"
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file (default: config/default_config.json)",
    )
    parser.add_argument(
        "--simulation",
        action="store_true",
        help="Force simulation mode (overrides config)",
    )
    parser.add_argument("--host", type=str, help="Bind address (overrides config)")
    parser.add_argument("--port", type=int, help="TCP port (overrides config)")
    parser.add_argument(
        "--command",
        action="append",
        metavar="CMD",
        help="Run a GUS command and print the response instead of serving; "
        "may be repeated",
    )
    return parser.parse_args(argv)


def validate_simulation_file(simulation_file: str) -> str | None:
    """Check that the simulation file exists.

    Returns:
        Error message if missing, None if found.
    """
    path = resolve_simulation_file(simulation_file)
    if not path.is_file():
        return f"Simulation file not found: {simulation_file}"
    return None


def build_dispatcher(config: AppConfig) -> CommandDispatcher:
    """Create the equipment model and dispatcher described by a config."""
    factory = create_controller_factory(
        simulation_mode=config.simulation_mode,
        simulation_file=config.simulation_file,
    )
    model = EquipmentModel(
        factory,
        open_device_timeout_s=config.open_device_timeout_s,
        poll_interval_s=config.open_device_poll_interval_s,
        device_name=config.device_name,
        device_model=config.device_model,
    )
    model.register_state_callback(_log_state_change)
    return CommandDispatcher(model, config.profiles_dir)


def _log_state_change(old_state: EquipmentState, new_state: EquipmentState) -> None:
    logger.debug("Equipment state changed %s -> %s", old_state.value, new_state.value)


def run_commands(dispatcher: CommandDispatcher, commands: list[str]) -> None:
    """Dispatch commands in order and print each response."""
    for command in commands:
        print(dispatcher.dispatch(command))


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    # Load configuration
    config, errors = load_config(args.config)

    if errors:
        print("Configuration errors:", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        return 1

    if config is None:
        print("Failed to load configuration", file=sys.stderr)
        return 1

    # Command line overrides
    if args.simulation:
        config.simulation_mode = True
    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        if not 0 <= args.port <= 65535:
            print(f"Configuration error: invalid port {args.port}", file=sys.stderr)
            return 1
        config.port = args.port

    if config.simulation_mode:
        simulation_error = validate_simulation_file(config.simulation_file)
        if simulation_error:
            print(f"Configuration error: {simulation_error}", file=sys.stderr)
            return 1

    setup_logging(log_file=config.log_file, log_level=config.log_level)

    logger.info("Starting VibrationVIEW GUS adapter")
    logger.info("Simulation mode: %s", config.simulation_mode)

    dispatcher = build_dispatcher(config)

    with dispatcher.model:
        if args.command:
            run_commands(dispatcher, args.command)
            return 0

        try:
            server = GusServer(dispatcher, host=config.host, port=config.port)
        except OSError as e:
            logger.error("Cannot listen on %s:%d: %s", config.host, config.port, e)
            return 1

        try:
            server.serve_forever()
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
        finally:
            server.stop()

    logger.info("Adapter exited")
    return 0


if __name__ == "__main__":
    sys.exit(main())
