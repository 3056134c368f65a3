"""Beacon advertising lifecycle.

BeaconTransmitter owns the single advertising session of the process. It
checks platform preconditions, encodes the configured beacon, and drives an
AdvertisingBackend, which reports the outcome of each start through an
AdvertiseCallback.
"""

import asyncio
import logging
import threading
from enum import IntEnum
from typing import Optional, Protocol

from .beacon_config import BeaconConfig
from .beacon_packet import (
    AdvertiseData,
    AdvertiseSettings,
    build_advertise_data,
    build_advertise_settings,
)

logger = logging.getLogger(__name__)


class AdvertiseFailure(IntEnum):
    """Error codes a backend reports when an advertisement fails to start."""

    DATA_TOO_LARGE = 1
    TOO_MANY_ADVERTISERS = 2
    ALREADY_STARTED = 3
    INTERNAL_ERROR = 4
    FEATURE_UNSUPPORTED = 5


class PermissionDeniedError(Exception):
    """Raised when the process may not advertise."""

    pass


class UnsupportedFeatureError(Exception):
    """Raised when the adapter cannot advertise BLE beacons."""

    pass


class AdvertiseCallback:
    """Receives the result of a start request.

    The default implementation only logs. Failures are not retried; the
    caller recovers with an explicit stop/start cycle.
    """

    def on_start_success(self, settings_in_effect: AdvertiseSettings) -> None:
        logger.info(
            f"[ADVERTISE] Advertising successfully started "
            f"(mode={settings_in_effect.mode.name}, "
            f"tx_power_level={settings_in_effect.tx_power_level.name})"
        )

    def on_start_failure(self, error_code: int) -> None:
        try:
            failure = AdvertiseFailure(error_code)
        except ValueError:
            logger.error(f"[ADVERTISE] Advertising failed, unhandled error: {error_code}")
            return
        logger.error(
            f"[ADVERTISE] Advertising failed, errorCode: {error_code} "
            f"(ADVERTISE_FAILED_{failure.name})"
        )


class AdvertisingBackend(Protocol):
    """Platform advertiser the transmitter feeds."""

    async def is_supported(self) -> bool:
        ...

    async def has_permission(self) -> bool:
        ...

    async def start_advertising(
        self,
        settings: AdvertiseSettings,
        data: AdvertiseData,
        callback: AdvertiseCallback,
    ) -> None:
        ...

    async def stop_advertising(self, callback: AdvertiseCallback) -> None:
        ...

    async def get_name(self) -> Optional[str]:
        ...

    async def set_name(self, name: str) -> None:
        ...


class BeaconTransmitter:
    """Advertises one beacon configuration through a backend.

    Use get_instance() to obtain the process-wide transmitter. The backend
    and config passed by the first caller are kept; later callers get the
    same instance whatever they pass. Call release_instance() to discard it
    before using a different config.

    Example:
        transmitter = BeaconTransmitter.get_instance(backend, config)
        await transmitter.start()
        # ... advertising is active ...
        await transmitter.stop()
    """

    _instance: Optional["BeaconTransmitter"] = None
    _instance_lock = threading.Lock()

    def __init__(
        self,
        backend: AdvertisingBackend,
        config: BeaconConfig,
        callback: Optional[AdvertiseCallback] = None,
    ):
        self._backend = backend
        self._config = config
        self._callback = callback or AdvertiseCallback()
        self._is_advertising = False
        self._lock = asyncio.Lock()

    @classmethod
    def get_instance(
        cls,
        backend: AdvertisingBackend,
        config: BeaconConfig,
        callback: Optional[AdvertiseCallback] = None,
    ) -> "BeaconTransmitter":
        """Return the shared transmitter, creating it on first use."""
        instance = cls._instance
        if instance is None:
            with cls._instance_lock:
                instance = cls._instance
                if instance is None:
                    instance = cls(backend, config, callback)
                    cls._instance = instance
                    logger.debug("[ADVERTISE] Created beacon transmitter")
        return instance

    @classmethod
    def release_instance(cls) -> None:
        """Forget the shared transmitter. Does not stop it."""
        with cls._instance_lock:
            cls._instance = None

    @property
    def config(self) -> BeaconConfig:
        return self._config

    @property
    def is_advertising(self) -> bool:
        """Return whether a start has been issued and not stopped since."""
        return self._is_advertising

    async def start(self) -> None:
        """Start advertising the configured beacon.

        An advertisement that is already running is stopped first, so
        calling start twice leaves exactly one advertisement active. The
        outcome of the start is delivered to the callback.

        Raises:
            UnsupportedFeatureError: If the adapter cannot advertise
            PermissionDeniedError: If the process may not advertise
            InvalidFormatError: If the configured identifier is malformed
        """
        async with self._lock:
            if not await self._backend.is_supported():
                logger.error("[ADVERTISE] Bluetooth LE advertising not supported")
                raise UnsupportedFeatureError("Bluetooth LE advertising not supported")

            if not await self._backend.has_permission():
                logger.error("[ADVERTISE] Permission to advertise denied")
                raise PermissionDeniedError("Permission to advertise denied")

            data = build_advertise_data(self._config)
            settings = build_advertise_settings()

            # The adapter name is read when the advertisement starts
            if data.include_device_name:
                logger.info(f"[ADVERTISE] Setting adapter name to {data.device_name!r}")
                await self._backend.set_name(data.device_name)

            if self._is_advertising:
                logger.info("[ADVERTISE] Already advertising, restarting")
                await self._backend.stop_advertising(self._callback)
                self._is_advertising = False

            await self._backend.start_advertising(settings, data, self._callback)
            self._is_advertising = True

    async def stop(self) -> None:
        """Stop advertising. Does nothing when not advertising."""
        async with self._lock:
            if not self._is_advertising:
                logger.debug("[ADVERTISE] Not advertising, nothing to stop")
                return

            if not await self._backend.has_permission():
                logger.error("[ADVERTISE] Permission to advertise denied, cannot stop")
                return

            await self._backend.stop_advertising(self._callback)
            self._is_advertising = False
            logger.info("[ADVERTISE] Beacon advertising stopped")
