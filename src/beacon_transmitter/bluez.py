"""Beacon advertising backend using BlueZ D-Bus API.

Requirements:
    - Linux with BlueZ 5.x
    - bluetoothd running
    - Bluetooth adapter available and powered on
    - Root/sudo access for hardware TX power control (optional)
"""

import asyncio
import logging
import subprocess
from typing import Any, Optional

from dbus_next import BusType, Variant
from dbus_next.aio import MessageBus
from dbus_next.errors import DBusError
from dbus_next.service import ServiceInterface, dbus_property, method, PropertyAccess

from .beacon_packet import AdvertiseData, AdvertiseSettings
from .transmitter import AdvertiseCallback, AdvertiseFailure

logger = logging.getLogger(__name__)

# BlueZ D-Bus constants
BLUEZ_SERVICE = "org.bluez"
BLUEZ_ADAPTER_INTERFACE = "org.bluez.Adapter1"
BLUEZ_LE_ADVERTISING_MANAGER_INTERFACE = "org.bluez.LEAdvertisingManager1"
BLUEZ_LE_ADVERTISEMENT_INTERFACE = "org.bluez.LEAdvertisement1"

# D-Bus object paths
DEFAULT_ADAPTER = "hci0"
ADVERTISEMENT_PATH = "/com/beacon_transmitter/advertisement0"

ACCESS_DENIED_ERROR = "org.freedesktop.DBus.Error.AccessDenied"

# BlueZ RegisterAdvertisement errors
BLUEZ_ERROR_FAILURES = {
    "org.bluez.Error.AlreadyExists": AdvertiseFailure.ALREADY_STARTED,
    "org.bluez.Error.InvalidLength": AdvertiseFailure.DATA_TOO_LARGE,
    "org.bluez.Error.NotSupported": AdvertiseFailure.FEATURE_UNSUPPORTED,
    "org.bluez.Error.NotPermitted": AdvertiseFailure.TOO_MANY_ADVERTISERS,
}


def failure_from_dbus_error(error_name: str) -> AdvertiseFailure:
    """Map a BlueZ D-Bus error name to an AdvertiseFailure code."""
    return BLUEZ_ERROR_FAILURES.get(error_name, AdvertiseFailure.INTERNAL_ERROR)


async def set_adapter_tx_power(adapter: str, power_dbm: int) -> bool:
    """Set the Bluetooth adapter's transmit power level.

    Uses hciconfig to set the inquiry transmit power level, which affects
    overall adapter power on many chipsets. Requires root/sudo privileges.

    Args:
        adapter: Adapter name (e.g., "hci0")
        power_dbm: Desired transmit power in dBm (-20 to +4 typical range)

    Returns:
        True if the command ran, False otherwise
    """
    # Clamp power to valid range
    power_dbm = max(-20, min(20, power_dbm))

    logger.info(f"[TX_POWER] Setting {adapter} transmit power to {power_dbm} dBm...")

    try:
        result = await asyncio.create_subprocess_exec(
            "sudo", "hciconfig", adapter, "inqtpl", str(power_dbm),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
        _, stderr = await result.communicate()

        if result.returncode == 0:
            logger.info(f"[TX_POWER] Successfully set inquiry TX power to {power_dbm} dBm")
        else:
            logger.debug(f"[TX_POWER] inqtpl not supported: {stderr.decode()}")
        return True

    except FileNotFoundError:
        logger.warning("[TX_POWER] hciconfig not found. Install bluez-utils package.")
        return False
    except PermissionError:
        logger.warning("[TX_POWER] Permission denied. Run with sudo for TX power control.")
        return False


class BeaconAdvertisement(ServiceInterface):
    """D-Bus service implementing org.bluez.LEAdvertisement1 for a beacon.

    - Type: "broadcast" (one-way advertisement, no connection)
    - ManufacturerData: company ID 76 with the beacon payload
    - Includes: "local-name" when the device name is broadcast
    """

    def __init__(self, settings: AdvertiseSettings, data: AdvertiseData):
        super().__init__(BLUEZ_LE_ADVERTISEMENT_INTERFACE)
        self._settings = settings
        self._data = data

    @dbus_property(access=PropertyAccess.READ)
    def Type(self) -> "s":
        return "peripheral" if self._settings.connectable else "broadcast"

    @dbus_property(access=PropertyAccess.READ)
    def ManufacturerData(self) -> "a{qv}":
        """BlueZ expects a{qv}; dbus-next takes bytes directly for "ay"."""
        return {
            self._data.manufacturer_id: Variant("ay", self._data.manufacturer_data)
        }

    @dbus_property(access=PropertyAccess.READ)
    def Includes(self) -> "as":
        return ["local-name"] if self._data.include_device_name else []

    @dbus_property(access=PropertyAccess.READ)
    def MinInterval(self) -> "u":
        return self._settings.mode.interval_ms

    @dbus_property(access=PropertyAccess.READ)
    def MaxInterval(self) -> "u":
        return self._settings.mode.interval_ms

    @method()
    def Release(self) -> None:
        """Called by BlueZ when the advertisement is released."""
        logger.info("[ADVERTISE] Advertisement released by BlueZ")


class BlueZAdvertisingBackend:
    """Advertising backend on Linux via BlueZ D-Bus.

    This class handles:
    - Connecting to the system D-Bus
    - Reading and setting the adapter alias (broadcast name)
    - Exporting the LEAdvertisement1 interface
    - Registering/unregistering the advertisement with BlueZ
    - Setting hardware transmit power level (best effort)
    """

    def __init__(self, adapter: str = DEFAULT_ADAPTER):
        self._adapter_name = adapter
        self._adapter_path = f"/org/bluez/{adapter}"

        self._bus: MessageBus | None = None
        self._adapter_proxy: Any = None
        self._advertisement: BeaconAdvertisement | None = None
        self._registered = False

    async def _connect(self) -> Any:
        """Connect to the system bus and return the adapter proxy object."""
        if self._adapter_proxy is None:
            logger.debug("[ADVERTISE] Connecting to system D-Bus...")
            self._bus = await MessageBus(bus_type=BusType.SYSTEM).connect()
            logger.info("[ADVERTISE] Connected to D-Bus system bus")

            try:
                introspection = await self._bus.introspect(BLUEZ_SERVICE, self._adapter_path)
            except DBusError:
                self._bus.disconnect()
                self._bus = None
                raise
            self._adapter_proxy = self._bus.get_proxy_object(
                BLUEZ_SERVICE, self._adapter_path, introspection
            )
        return self._adapter_proxy

    async def is_supported(self) -> bool:
        try:
            proxy = await self._connect()
        except DBusError as e:
            if e.type == ACCESS_DENIED_ERROR:
                # Reported by has_permission()
                return True
            logger.warning(f"[ADVERTISE] Adapter {self._adapter_name} unavailable: {e.text}")
            return False
        except PermissionError:
            # Reported by has_permission()
            return True
        interfaces = {iface.name for iface in proxy.introspection.interfaces}
        return BLUEZ_LE_ADVERTISING_MANAGER_INTERFACE in interfaces

    async def has_permission(self) -> bool:
        try:
            await self._connect()
        except DBusError as e:
            if e.type == ACCESS_DENIED_ERROR:
                return False
            raise
        except PermissionError:
            return False
        return True

    async def get_name(self) -> Optional[str]:
        proxy = await self._connect()
        adapter = proxy.get_interface(BLUEZ_ADAPTER_INTERFACE)
        return await adapter.get_alias()

    async def set_name(self, name: str) -> None:
        proxy = await self._connect()
        adapter = proxy.get_interface(BLUEZ_ADAPTER_INTERFACE)
        await adapter.set_alias(name)
        logger.debug(f"[ADVERTISE] Adapter alias set to {name!r}")

    async def start_advertising(
        self,
        settings: AdvertiseSettings,
        data: AdvertiseData,
        callback: AdvertiseCallback,
    ) -> None:
        """Register a beacon advertisement with BlueZ.

        The result is reported to the callback; BlueZ errors are not raised.
        """
        if self._registered:
            callback.on_start_failure(AdvertiseFailure.ALREADY_STARTED)
            return

        logger.info(f"[ADVERTISE] Adapter: {self._adapter_name}")

        success = await set_adapter_tx_power(
            self._adapter_name, int(settings.tx_power_level)
        )
        if not success:
            logger.warning(
                "[ADVERTISE] Could not set hardware TX power. "
                "Continuing with default power level."
            )

        proxy = await self._connect()
        manager = proxy.get_interface(BLUEZ_LE_ADVERTISING_MANAGER_INTERFACE)

        self._advertisement = BeaconAdvertisement(settings, data)
        self._bus.export(ADVERTISEMENT_PATH, self._advertisement)
        logger.debug(f"[ADVERTISE] Exported advertisement at {ADVERTISEMENT_PATH}")

        try:
            await manager.call_register_advertisement(ADVERTISEMENT_PATH, {})
        except DBusError as e:
            logger.debug(f"[ADVERTISE] RegisterAdvertisement failed: {e.type}: {e.text}")
            self._bus.unexport(ADVERTISEMENT_PATH, self._advertisement)
            self._advertisement = None
            callback.on_start_failure(failure_from_dbus_error(e.type))
            return

        self._registered = True
        callback.on_start_success(settings)

    async def stop_advertising(self, callback: AdvertiseCallback) -> None:
        """Unregister the advertisement and disconnect from D-Bus.

        Errors are logged so cleanup always completes.
        """
        if self._registered and self._adapter_proxy is not None:
            manager = self._adapter_proxy.get_interface(
                BLUEZ_LE_ADVERTISING_MANAGER_INTERFACE
            )
            try:
                await manager.call_unregister_advertisement(ADVERTISEMENT_PATH)
                logger.debug("[ADVERTISE] Advertisement unregistered")
            except DBusError as e:
                logger.warning(f"[ADVERTISE] Error unregistering advertisement: {e.text}")

        if self._bus is not None:
            if self._advertisement is not None:
                try:
                    self._bus.unexport(ADVERTISEMENT_PATH, self._advertisement)
                except Exception as e:
                    logger.warning(f"[ADVERTISE] Error unexporting advertisement: {e}")
            try:
                self._bus.disconnect()
                logger.debug("[ADVERTISE] Disconnected from D-Bus")
            except Exception as e:
                logger.warning(f"[ADVERTISE] Error disconnecting from D-Bus: {e}")

        self._registered = False
        self._bus = None
        self._adapter_proxy = None
        self._advertisement = None
