"""Beacon identity configuration."""

from dataclasses import dataclass
from typing import Optional

# Default configuration values
DEFAULT_IDENTIFIER = "00000000-0000-0000-0000-000000000000"
DEFAULT_MAJOR = 0
DEFAULT_MINOR = 0
DEFAULT_TX_POWER = -59  # Calibrated RSSI at 1 meter


@dataclass(frozen=True)
class BeaconConfig:
    """Identity broadcast by a beacon.

    The identifier is not checked here; encoding the config validates it.
    Use dataclasses.replace() to derive a config with different values.

    Attributes:
        identifier: 128-bit identifier as 32 hex characters, hyphens optional
        major: Group identifier, truncated to 16 bits when encoded
        minor: Device identifier within group, truncated to 16 bits when encoded
        tx_power: Calibrated RSSI at 1 meter in dBm, truncated to a signed byte
        name: Broadcast device name, or None to leave the adapter name alone
    """

    identifier: str = DEFAULT_IDENTIFIER
    major: int = DEFAULT_MAJOR
    minor: int = DEFAULT_MINOR
    tx_power: int = DEFAULT_TX_POWER
    name: Optional[str] = None


def make_beacon_config(
    *,
    identifier: str = DEFAULT_IDENTIFIER,
    major: int = DEFAULT_MAJOR,
    minor: int = DEFAULT_MINOR,
    tx_power: int = DEFAULT_TX_POWER,
    name: Optional[str] = None,
) -> BeaconConfig:
    """Build a BeaconConfig from named fields, falling back to the defaults."""
    return BeaconConfig(
        identifier=identifier,
        major=major,
        minor=minor,
        tx_power=tx_power,
        name=name,
    )


def format_config_for_logging(config: BeaconConfig) -> str:
    """Format configuration for human-readable logging.

    Args:
        config: Beacon configuration

    Returns:
        Multi-line string with formatted configuration
    """
    return (
        f"Identifier: {config.identifier}\n"
        f"Major: {config.major}\n"
        f"Minor: {config.minor}\n"
        f"TX Power: {config.tx_power} dBm\n"
        f"Name: {config.name if config.name is not None else '(not broadcast)'}"
    )
