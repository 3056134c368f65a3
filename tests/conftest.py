"""Shared fixtures for beacon transmitter tests."""

import asyncio

import pytest

from beacon_transmitter.beacon_packet import AdvertiseData, AdvertiseSettings
from beacon_transmitter.transmitter import AdvertiseCallback, BeaconTransmitter


class FakeBackend:
    """In-memory advertising backend recording every call."""

    def __init__(self, supported=True, permitted=True, failure_code=None):
        self.supported = supported
        self.permitted = permitted
        self.failure_code = failure_code
        self.name = "host"
        self.calls = []
        self.active = 0
        self.started_with = []

    async def is_supported(self):
        return self.supported

    async def has_permission(self):
        return self.permitted

    async def start_advertising(self, settings: AdvertiseSettings, data: AdvertiseData, callback: AdvertiseCallback):
        self.calls.append("start")
        await asyncio.sleep(0)
        self.started_with.append((settings, data, self.name))
        if self.failure_code is not None:
            callback.on_start_failure(self.failure_code)
            return
        self.active += 1
        callback.on_start_success(settings)

    async def stop_advertising(self, callback):
        self.calls.append("stop")
        await asyncio.sleep(0)
        self.active = max(0, self.active - 1)

    async def get_name(self):
        return self.name

    async def set_name(self, name):
        self.calls.append("set_name")
        self.name = name


class RecordingCallback(AdvertiseCallback):
    def __init__(self):
        self.successes = []
        self.failures = []

    def on_start_success(self, settings_in_effect):
        super().on_start_success(settings_in_effect)
        self.successes.append(settings_in_effect)

    def on_start_failure(self, error_code):
        super().on_start_failure(error_code)
        self.failures.append(error_code)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def callback():
    return RecordingCallback()


@pytest.fixture(autouse=True)
def release_transmitter():
    BeaconTransmitter.release_instance()
    yield
    BeaconTransmitter.release_instance()
