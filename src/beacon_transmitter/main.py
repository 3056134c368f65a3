"""Entry point for the beacon advertising service.

This module provides the main entry point for running the beacon transmitter
as a standalone service. It handles:
- Logging configuration
- Signal handling for graceful shutdown
- Creating and running the transmitter

Usage:
    python -m beacon_transmitter --uuid e2c56db5-dffb-48d2-b060-d0f5a71096e0 --major 1
    # or
    beacon-transmitter  (if installed via pip/uv)
"""

import argparse
import asyncio
import logging
import signal
import sys

from .beacon_config import (
    DEFAULT_IDENTIFIER,
    DEFAULT_MAJOR,
    DEFAULT_MINOR,
    DEFAULT_TX_POWER,
    BeaconConfig,
    format_config_for_logging,
    make_beacon_config,
)
from .bluez import DEFAULT_ADAPTER, BlueZAdvertisingBackend
from .identifier import InvalidFormatError, decode
from .transmitter import BeaconTransmitter

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Args:
        verbose: If True, set log level to DEBUG; otherwise INFO
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="BLE proximity beacon transmitter for Linux (BlueZ)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Advertise the all-zero identifier with default values
    python -m beacon_transmitter

    # Advertise a specific beacon
    python -m beacon_transmitter --uuid e2c56db5-dffb-48d2-b060-d0f5a71096e0 \\
        --major 1 --minor 2 --tx-power -59

    # Also broadcast a device name (sets the adapter alias)
    python -m beacon_transmitter --name "Lobby Beacon"
        """,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )
    parser.add_argument(
        "--adapter",
        default=DEFAULT_ADAPTER,
        help=f"Bluetooth adapter to use (default: {DEFAULT_ADAPTER})",
    )
    parser.add_argument(
        "--uuid",
        default=DEFAULT_IDENTIFIER,
        help="Beacon identifier, 32 hex characters, hyphens optional",
    )
    parser.add_argument(
        "--major",
        type=int,
        default=DEFAULT_MAJOR,
        help=f"Major value, low 16 bits are used (default: {DEFAULT_MAJOR})",
    )
    parser.add_argument(
        "--minor",
        type=int,
        default=DEFAULT_MINOR,
        help=f"Minor value, low 16 bits are used (default: {DEFAULT_MINOR})",
    )
    parser.add_argument(
        "--tx-power",
        type=int,
        default=DEFAULT_TX_POWER,
        help=f"Calibrated RSSI at 1 meter in dBm (default: {DEFAULT_TX_POWER})",
    )
    parser.add_argument(
        "--name",
        default=None,
        help="Broadcast this device name (changes the adapter alias)",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    return build_parser().parse_args(argv)


def config_from_args(args: argparse.Namespace) -> BeaconConfig:
    """Build and validate a beacon config from parsed arguments.

    Raises:
        InvalidFormatError: If --uuid is malformed
    """
    decode(args.uuid)
    return make_beacon_config(
        identifier=args.uuid,
        major=args.major,
        minor=args.minor,
        tx_power=args.tx_power,
        name=args.name,
    )


async def async_main(config: BeaconConfig, adapter: str) -> None:
    """Async entry point with signal handling.

    Args:
        config: Beacon configuration
        adapter: Bluetooth adapter name
    """
    backend = BlueZAdvertisingBackend(adapter)
    transmitter = BeaconTransmitter.get_instance(backend, config)

    # Set up signal handlers for graceful shutdown
    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def signal_handler(sig: signal.Signals) -> None:
        logger.info(f"[MAIN] Received signal {sig.name}, initiating shutdown...")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler, sig)

    try:
        await transmitter.start()
        logger.info("[MAIN] Beacon advertising is active. Press Ctrl+C to stop.")

        await shutdown_event.wait()

    except Exception as e:
        logger.error(f"[MAIN] Error during advertising: {e}")
        raise
    finally:
        await transmitter.stop()
        BeaconTransmitter.release_instance()
        logger.info("[MAIN] Shutdown complete")


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the beacon advertising service."""
    args = parse_args(argv)
    setup_logging(verbose=args.verbose)

    logger.info("[MAIN] Starting beacon advertising service...")

    try:
        config = config_from_args(args)
    except InvalidFormatError as e:
        logger.error(f"[MAIN] {e}")
        sys.exit(1)

    logger.info("[MAIN] Configuration:")
    for line in format_config_for_logging(config).split("\n"):
        logger.info(f"[MAIN]   {line}")
    logger.info(f"[MAIN]   Adapter: {args.adapter}")

    # Check platform
    if sys.platform != "linux":
        logger.error(f"[MAIN] This service only runs on Linux (current: {sys.platform})")
        logger.error("[MAIN] BlueZ D-Bus API is Linux-specific")
        sys.exit(1)

    try:
        asyncio.run(async_main(config, args.adapter))
    except KeyboardInterrupt:
        logger.info("[MAIN] Interrupted")
    except Exception as e:
        logger.error(f"[MAIN] Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
