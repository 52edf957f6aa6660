"""Tests for the real BLE backend against the scripted adapter."""

import asyncio

import pytest
from bleak.exc import BleakError

from blelkdom_control.adapter import AdapterState
from blelkdom_control.const import CHARACTERISTIC_UUID_SHORT, SERVICE_UUID
from blelkdom_control.device import BleStripDevice, SimulatedDevice, get_device
from blelkdom_control.exception import CharacteristicMissingError, DeviceNotFound, NotConnectedError
from blelkdom_control.matcher import to_summary

from conftest import FakeAdapter, FakeCharacteristic, FakeConnection, strip_connection

UNFILTERED = ()
FILTERED = (SERVICE_UUID,)


class LostCounter:
    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1


class TestFindSavedDevice:
    @pytest.mark.asyncio
    async def test_connects_on_first_matching_attempt(self, adapter, ble_device, saved_device, strip_peripheral):
        adapter.script[UNFILTERED] = [strip_peripheral]
        await ble_device.connect(saved_device, LostCounter())
        assert ble_device.is_attached
        assert adapter.scans == [UNFILTERED]
        assert adapter.connect_calls == [strip_peripheral]

    @pytest.mark.asyncio
    async def test_filtered_attempt_is_used_when_unfiltered_misses(
        self, adapter, ble_device, saved_device, strip_peripheral
    ):
        adapter.script[FILTERED] = [strip_peripheral]
        await ble_device.connect(saved_device, LostCounter())
        assert adapter.scans == [UNFILTERED, FILTERED]

    @pytest.mark.asyncio
    async def test_not_found_without_cache_runs_one_pass(self, adapter, ble_device, saved_device):
        with pytest.raises(DeviceNotFound):
            await ble_device.connect(saved_device, LostCounter())
        assert adapter.scans == [UNFILTERED, FILTERED]
        assert adapter.connect_calls == []

    @pytest.mark.asyncio
    async def test_cached_device_gets_quick_pass_first(
        self, adapter, ble_device, saved_device, strip_peripheral
    ):
        ble_device.last_discovery[saved_device.id] = to_summary(strip_peripheral)
        with pytest.raises(DeviceNotFound):
            await ble_device.connect(saved_device, LostCounter())
        assert adapter.scans == [UNFILTERED, FILTERED, UNFILTERED, FILTERED]

    @pytest.mark.asyncio
    async def test_scan_errors_move_to_next_attempt(self, adapter, ble_device, saved_device):
        adapter.scan_error = BleakError("org.bluez.Error.InProgress")
        with pytest.raises(DeviceNotFound):
            await ble_device.connect(saved_device, LostCounter())
        assert len(adapter.scans) == 2


class TestAttach:
    @pytest.mark.asyncio
    async def test_narrow_lookup_is_used_first(self, adapter, ble_device, saved_device, strip_peripheral):
        adapter.script[UNFILTERED] = [strip_peripheral]
        await ble_device.connect(saved_device, LostCounter())
        connection = adapter.connections[0]
        assert connection.narrow_calls == 1
        assert connection.exhaustive_calls == 0

    @pytest.mark.asyncio
    async def test_narrow_failure_falls_back_to_exhaustive(
        self, adapter, ble_device, saved_device, strip_peripheral
    ):
        adapter.script[UNFILTERED] = [strip_peripheral]

        def _factory():
            connection = strip_connection()
            connection.narrow_error = BleakError("service lookup failed")
            return connection

        adapter.connection_factory = _factory
        await ble_device.connect(saved_device, LostCounter())
        assert ble_device.is_attached
        assert adapter.connections[0].exhaustive_calls == 1

    @pytest.mark.asyncio
    async def test_exhaustive_walk_finds_short_uuid_elsewhere(
        self, adapter, ble_device, saved_device, strip_peripheral
    ):
        adapter.script[UNFILTERED] = [strip_peripheral]
        adapter.connection_factory = lambda: FakeConnection(
            services={"0000ffe0-0000-1000-8000-00805f9b34fb": [FakeCharacteristic(CHARACTERISTIC_UUID_SHORT)]}
        )
        await ble_device.connect(saved_device, LostCounter())
        await ble_device.write(b"\x01")
        assert adapter.connections[0].writes == [b"\x01"]

    @pytest.mark.asyncio
    async def test_missing_characteristic_disconnects(self, adapter, ble_device, saved_device, strip_peripheral):
        adapter.script[UNFILTERED] = [strip_peripheral]
        adapter.connection_factory = FakeConnection
        with pytest.raises(CharacteristicMissingError):
            await ble_device.connect(saved_device, LostCounter())
        assert not ble_device.is_attached
        assert adapter.connections[0].disconnect_calls == 1


class TestLinkLoss:
    @pytest.mark.asyncio
    async def test_peripheral_disconnect_reports_once(
        self, adapter, ble_device, saved_device, strip_peripheral
    ):
        adapter.script[UNFILTERED] = [strip_peripheral]
        lost = LostCounter()
        await ble_device.connect(saved_device, lost)

        adapter.on_disconnect()
        adapter.on_disconnect()
        assert lost.calls == 1
        assert not ble_device.is_attached

    @pytest.mark.asyncio
    async def test_disconnect_before_attach_does_not_consume_observer(
        self, adapter, ble_device, saved_device, strip_peripheral
    ):
        adapter.script[UNFILTERED] = [strip_peripheral]
        adapter.connect_delay = 0.02
        lost = LostCounter()
        connecting = asyncio.ensure_future(ble_device.connect(saved_device, lost))
        while not adapter.connect_calls:
            await asyncio.sleep(0)

        # stale event from a connect attempt that was retried
        adapter.on_disconnect()
        await connecting
        assert ble_device.is_attached
        assert lost.calls == 0

        adapter.on_disconnect()
        assert lost.calls == 1
        assert not ble_device.is_attached

    @pytest.mark.asyncio
    async def test_disconnect_after_local_disconnect_is_ignored(
        self, adapter, ble_device, saved_device, strip_peripheral
    ):
        adapter.script[UNFILTERED] = [strip_peripheral]
        lost = LostCounter()
        await ble_device.connect(saved_device, lost)
        await ble_device.disconnect()

        adapter.on_disconnect()
        assert lost.calls == 0

    @pytest.mark.asyncio
    async def test_disconnect_swallows_teardown_errors(
        self, adapter, ble_device, saved_device, strip_peripheral
    ):
        adapter.script[UNFILTERED] = [strip_peripheral]

        def _factory():
            connection = strip_connection()
            connection.disconnect_error = BleakError("not connected")
            return connection

        adapter.connection_factory = _factory
        await ble_device.connect(saved_device, LostCounter())
        await ble_device.disconnect()
        assert not ble_device.is_attached

    @pytest.mark.asyncio
    async def test_disconnect_without_connection_is_noop(self, ble_device):
        await ble_device.disconnect()
        assert not ble_device.is_attached


class TestWrite:
    @pytest.mark.asyncio
    async def test_write_requires_connection(self, ble_device):
        with pytest.raises(NotConnectedError):
            await ble_device.write(b"\x7e")

    @pytest.mark.asyncio
    async def test_write_failure_drops_link(self, adapter, ble_device, saved_device, strip_peripheral):
        adapter.script[UNFILTERED] = [strip_peripheral]
        lost = LostCounter()
        await ble_device.connect(saved_device, lost)
        connection = adapter.connections[0]
        connection.write_error = BleakError("write failed")

        with pytest.raises(BleakError):
            await ble_device.write(b"\x7e")
        assert not ble_device.is_attached
        assert lost.calls == 1
        assert connection.disconnect_calls == 1

        with pytest.raises(NotConnectedError):
            await ble_device.write(b"\x7e")


class TestGetDevice:
    @pytest.mark.asyncio
    async def test_explicit_simulation(self):
        device = await get_device(simulate=True, adapter=FakeAdapter())
        assert isinstance(device, SimulatedDevice)
        assert device.simulated

    @pytest.mark.asyncio
    async def test_environment_flag(self, monkeypatch):
        monkeypatch.setenv("BLELKDOM_SIMULATE", "1")
        assert isinstance(await get_device(adapter=FakeAdapter()), SimulatedDevice)

    @pytest.mark.asyncio
    async def test_unavailable_stack_falls_back(self):
        adapter = FakeAdapter(AdapterState.UNAVAILABLE)
        assert isinstance(await get_device(simulate=False, adapter=adapter), SimulatedDevice)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("state", [AdapterState.POWERED_ON, AdapterState.POWERED_OFF])
    async def test_present_stack_uses_real_backend(self, state):
        adapter = FakeAdapter(state)
        device = await get_device(simulate=False, adapter=adapter)
        assert isinstance(device, BleStripDevice)
        assert device.adapter is adapter
        assert not device.simulated
