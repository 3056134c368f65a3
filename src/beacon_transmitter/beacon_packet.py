"""Beacon packet construction utilities.

This module builds the manufacturer-specific data carried by a beacon
advertisement, plus the fixed settings the advertisement is started with.
It has no platform dependencies.

Beacon Packet Format (Manufacturer Specific Data, after the company ID):
    Offset  Length  Value       Description
    0       1       0x02        Beacon type
    1       1       0x15        Length (21 bytes following)
    2-17    16      [ID]        Beacon identifier (big-endian)
    18-19   2       [Major]     Major value (big-endian)
    20-21   2       [Minor]     Minor value (big-endian)
    22      1       [TxPower]   Calibrated TX Power (signed int8)
"""

import logging
import struct
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional

from . import identifier
from .beacon_config import BeaconConfig

logger = logging.getLogger(__name__)

# Company identifier the manufacturer data is tagged with (0x004C)
MANUFACTURER_ID = 76

# Beacon type and length constants
BEACON_TYPE = 0x02
BEACON_DATA_LENGTH = 0x15  # 21 bytes
PAYLOAD_LENGTH = 23

# >: big-endian
# B: type, B: length, 16s: identifier, H: major, H: minor, B: tx_power byte
PAYLOAD_FORMAT = ">BB16sHHB"


class AdvertiseMode(Enum):
    """Advertising duty cycle, as min/max interval in milliseconds."""

    LOW_POWER = 1000
    BALANCED = 250
    LOW_LATENCY = 100

    @property
    def interval_ms(self) -> int:
        return self.value


class TxPowerLevel(IntEnum):
    """Hardware transmit power levels for Bluetooth adapter.

    These values represent the power level in dBm that can be set on
    the Bluetooth adapter. Lower values = shorter range = user must be closer.
    This is unrelated to the calibration byte carried in the payload.

    Note: Actual supported values depend on the hardware. The adapter will
    use the closest supported value if the exact value isn't available.
    """

    # High power - maximum range (~30-50m)
    HIGH = 4

    # Medium power - moderate range (~10-20m)
    MEDIUM = 0

    # Low power - short range (~5-10m)
    LOW = -6

    # Very low power - close proximity (~2-5m)
    VERY_LOW = -12

    # Minimum power - very close proximity (~1-2m)
    MINIMUM = -20


@dataclass(frozen=True)
class AdvertiseSettings:
    """How the radio advertises, independent of the payload.

    Attributes:
        mode: Advertising interval preset
        connectable: Whether centrals may connect
        timeout: Seconds to advertise for, 0 means until stopped
        tx_power_level: Hardware radio power
    """

    mode: AdvertiseMode = AdvertiseMode.LOW_POWER
    connectable: bool = False
    timeout: int = 0
    tx_power_level: TxPowerLevel = TxPowerLevel.MEDIUM


@dataclass(frozen=True)
class AdvertiseData:
    """Advertisement content handed to the advertising backend."""

    manufacturer_id: int
    manufacturer_data: bytes
    include_device_name: bool = False
    device_name: Optional[str] = None


def encode(config: BeaconConfig) -> bytes:
    """Build the 23-byte beacon payload (without the company ID prefix).

    Major and minor keep only their low 16 bits and tx_power its low 8 bits,
    so -59 is sent as 0xC5 and a major of 0x10001 is sent as 1.

    Args:
        config: Beacon configuration

    Returns:
        23-byte beacon payload

    Raises:
        InvalidFormatError: If the configured identifier is malformed
    """
    identifier_bytes = identifier.decode(config.identifier)

    payload = struct.pack(
        PAYLOAD_FORMAT,
        BEACON_TYPE,
        BEACON_DATA_LENGTH,
        identifier_bytes,
        config.major & 0xFFFF,
        config.minor & 0xFFFF,
        config.tx_power & 0xFF,
    )

    logger.debug(f"[ENCODE] Beacon payload: {payload.hex()}")
    return payload


def build_manufacturer_data(config: BeaconConfig) -> dict[int, bytes]:
    """Build the manufacturer-specific data dictionary.

    Args:
        config: Beacon configuration

    Returns:
        Dictionary with the manufacturer ID as key and beacon payload as value
    """
    return {MANUFACTURER_ID: encode(config)}


def build_advertise_settings() -> AdvertiseSettings:
    """Return the fixed beacon settings.

    Low power, non-connectable, no timeout, medium radio power.
    """
    return AdvertiseSettings(
        mode=AdvertiseMode.LOW_POWER,
        connectable=False,
        timeout=0,
        tx_power_level=TxPowerLevel.MEDIUM,
    )


def build_advertise_data(config: BeaconConfig) -> AdvertiseData:
    """Build the advertisement content for a config.

    The device name is included if and only if config.name is set. The
    backend is expected to apply that name to the adapter before starting.

    Raises:
        InvalidFormatError: If the configured identifier is malformed
    """
    payload = encode(config)
    include_name = config.name is not None

    return AdvertiseData(
        manufacturer_id=MANUFACTURER_ID,
        manufacturer_data=payload,
        include_device_name=include_name,
        device_name=config.name if include_name else None,
    )
