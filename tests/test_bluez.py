"""Tests for the BlueZ advertising backend that don't need a system bus."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from dbus_next.errors import DBusError

from beacon_transmitter import bluez
from beacon_transmitter.beacon_config import make_beacon_config
from beacon_transmitter.beacon_packet import build_advertise_data, build_advertise_settings
from beacon_transmitter.bluez import (
    ADVERTISEMENT_PATH,
    BeaconAdvertisement,
    BlueZAdvertisingBackend,
    failure_from_dbus_error,
)
from beacon_transmitter.transmitter import (
    AdvertiseFailure,
    BeaconTransmitter,
    PermissionDeniedError,
)

SAMPLE = "e2c56db5-dffb-48d2-b060-d0f5a71096e0"


def make_advertisement(name=None):
    config = make_beacon_config(identifier=SAMPLE, major=1, minor=2, name=name)
    return BeaconAdvertisement(build_advertise_settings(), build_advertise_data(config))


class TestBeaconAdvertisement:
    def test_broadcast_type(self):
        assert make_advertisement().Type == "broadcast"

    def test_manufacturer_data(self):
        data = make_advertisement().ManufacturerData
        assert list(data) == [76]
        assert data[76].signature == "ay"
        assert len(data[76].value) == 23
        assert data[76].value[:2] == b"\x02\x15"

    def test_includes_local_name_only_with_name(self):
        assert make_advertisement().Includes == []
        assert make_advertisement(name="Test").Includes == ["local-name"]

    def test_low_power_interval(self):
        advertisement = make_advertisement()
        assert advertisement.MinInterval == 1000
        assert advertisement.MaxInterval == 1000


@pytest.mark.parametrize(
    "error_name, failure",
    [
        ("org.bluez.Error.AlreadyExists", AdvertiseFailure.ALREADY_STARTED),
        ("org.bluez.Error.InvalidLength", AdvertiseFailure.DATA_TOO_LARGE),
        ("org.bluez.Error.NotSupported", AdvertiseFailure.FEATURE_UNSUPPORTED),
        ("org.bluez.Error.NotPermitted", AdvertiseFailure.TOO_MANY_ADVERTISERS),
        ("org.bluez.Error.Failed", AdvertiseFailure.INTERNAL_ERROR),
    ],
)
def test_failure_from_dbus_error(error_name, failure):
    assert failure_from_dbus_error(error_name) is failure


@pytest.fixture
def wired_backend():
    """Backend with the bus and adapter proxy replaced by mocks."""
    backend = BlueZAdvertisingBackend("hci0")
    manager = MagicMock()
    manager.call_register_advertisement = AsyncMock()
    manager.call_unregister_advertisement = AsyncMock()
    proxy = MagicMock()
    proxy.get_interface.return_value = manager
    backend._bus = MagicMock()
    backend._adapter_proxy = proxy
    return backend, manager


@pytest.mark.asyncio
class TestBlueZAdvertisingBackend:
    async def test_start_success(self, wired_backend, callback):
        backend, manager = wired_backend
        config = make_beacon_config(identifier=SAMPLE)
        bus = backend._bus

        with patch.object(bluez, "set_adapter_tx_power", AsyncMock(return_value=True)) as tx:
            await backend.start_advertising(
                build_advertise_settings(), build_advertise_data(config), callback
            )

        tx.assert_awaited_once_with("hci0", 0)
        bus.export.assert_called_once()
        manager.call_register_advertisement.assert_awaited_once_with(ADVERTISEMENT_PATH, {})
        assert len(callback.successes) == 1

        await backend.stop_advertising(callback)
        manager.call_unregister_advertisement.assert_awaited_once_with(ADVERTISEMENT_PATH)
        bus.disconnect.assert_called_once()

    async def test_start_failure_goes_to_callback(self, wired_backend, callback):
        backend, manager = wired_backend
        manager.call_register_advertisement.side_effect = DBusError(
            "org.bluez.Error.NotPermitted", "Maximum advertisements reached"
        )
        config = make_beacon_config(identifier=SAMPLE)

        with patch.object(bluez, "set_adapter_tx_power", AsyncMock(return_value=True)):
            await backend.start_advertising(
                build_advertise_settings(), build_advertise_data(config), callback
            )

        assert callback.failures == [AdvertiseFailure.TOO_MANY_ADVERTISERS]
        assert callback.successes == []

        # Nothing registered, so stop only disconnects
        await backend.stop_advertising(callback)
        manager.call_unregister_advertisement.assert_not_awaited()

    async def test_set_name_writes_alias(self, wired_backend):
        backend, _ = wired_backend
        adapter = MagicMock()
        adapter.set_alias = AsyncMock()
        backend._adapter_proxy.get_interface.return_value = adapter

        await backend.set_name("Test")

        backend._adapter_proxy.get_interface.assert_called_with(bluez.BLUEZ_ADAPTER_INTERFACE)
        adapter.set_alias.assert_awaited_once_with("Test")

    async def test_stop_completes_when_disconnect_fails(self, wired_backend, callback):
        backend, _ = wired_backend
        config = make_beacon_config(identifier=SAMPLE)
        bus = backend._bus
        bus.unexport.side_effect = KeyError(ADVERTISEMENT_PATH)
        bus.disconnect.side_effect = EOFError("bus already closed")

        with patch.object(bluez, "set_adapter_tx_power", AsyncMock(return_value=True)):
            await backend.start_advertising(
                build_advertise_settings(), build_advertise_data(config), callback
            )
        await backend.stop_advertising(callback)

        bus.disconnect.assert_called_once()
        assert backend._registered is False
        assert backend._bus is None
        assert backend._adapter_proxy is None

    async def test_bus_permission_error_is_permission_denied(self, callback):
        message_bus = MagicMock()
        message_bus.return_value.connect = AsyncMock(
            side_effect=PermissionError(13, "Permission denied")
        )
        config = make_beacon_config(identifier=SAMPLE)
        transmitter = BeaconTransmitter(BlueZAdvertisingBackend("hci0"), config, callback)

        with patch.object(bluez, "MessageBus", message_bus):
            assert await transmitter._backend.is_supported() is True
            assert await transmitter._backend.has_permission() is False
            with pytest.raises(PermissionDeniedError):
                await transmitter.start()

        assert transmitter.is_advertising is False
        assert callback.successes == []
        assert callback.failures == []
