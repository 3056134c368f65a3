"""BLE proximity beacon transmitter for Linux.

This package encodes a beacon identity into the 23-byte manufacturer data
of a BLE advertisement and manages a single advertising session through
the BlueZ Bluetooth stack.

Example:
    from beacon_transmitter import BeaconTransmitter, BlueZAdvertisingBackend, make_beacon_config

    config = make_beacon_config(
        identifier="e2c56db5-dffb-48d2-b060-d0f5a71096e0",
        major=1,
        minor=2,
        tx_power=-59,  # Calibrated RSSI at 1m (for distance calculation)
    )

    transmitter = BeaconTransmitter.get_instance(BlueZAdvertisingBackend(), config)
    await transmitter.start()
"""

__version__ = "0.1.0"

from .identifier import InvalidFormatError, decode, encode, format_identifier
from .beacon_config import (
    BeaconConfig,
    make_beacon_config,
    format_config_for_logging,
    DEFAULT_IDENTIFIER,
    DEFAULT_MAJOR,
    DEFAULT_MINOR,
    DEFAULT_TX_POWER,
)
from .beacon_packet import (
    AdvertiseData,
    AdvertiseMode,
    AdvertiseSettings,
    TxPowerLevel,
    build_advertise_data,
    build_advertise_settings,
    build_manufacturer_data,
    MANUFACTURER_ID,
    PAYLOAD_LENGTH,
)
from .beacon_packet import encode as encode_payload
from .transmitter import (
    AdvertiseCallback,
    AdvertiseFailure,
    AdvertisingBackend,
    BeaconTransmitter,
    PermissionDeniedError,
    UnsupportedFeatureError,
)
from .bluez import BlueZAdvertisingBackend

__all__ = [
    # Version
    "__version__",
    # Classes
    "BeaconConfig",
    "AdvertiseData",
    "AdvertiseMode",
    "AdvertiseSettings",
    "TxPowerLevel",
    "AdvertiseCallback",
    "AdvertiseFailure",
    "AdvertisingBackend",
    "BeaconTransmitter",
    "BlueZAdvertisingBackend",
    # Errors
    "InvalidFormatError",
    "PermissionDeniedError",
    "UnsupportedFeatureError",
    # Functions
    "decode",
    "encode",
    "format_identifier",
    "make_beacon_config",
    "format_config_for_logging",
    "encode_payload",
    "build_advertise_data",
    "build_advertise_settings",
    "build_manufacturer_data",
    # Constants
    "MANUFACTURER_ID",
    "PAYLOAD_LENGTH",
    "DEFAULT_IDENTIFIER",
    "DEFAULT_MAJOR",
    "DEFAULT_MINOR",
    "DEFAULT_TX_POWER",
]
