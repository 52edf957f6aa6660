"""
pytest configuration for the BLELKDOM client tests.

Provides a scripted FakeAdapter that replays advertisements per scan filter
and hands out FakeConnection objects, so discovery, matching and the
connection lifecycle can be exercised without a Bluetooth radio.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import pytest

from blelkdom_control.adapter import AdapterState, BaseAdapter, GattConnection
from blelkdom_control.const import CHARACTERISTIC_UUID, SERVICE_UUID
from blelkdom_control.device import BleStripDevice
from blelkdom_control.models import Peripheral, SavedDevice
from blelkdom_control.settings import SettingsStore


@dataclass
class FakeCharacteristic:
    uuid: str


@dataclass
class FakeConnection(GattConnection):
    services: Dict[str, List[FakeCharacteristic]] = field(default_factory=dict)
    narrow_error: Optional[Exception] = None
    write_error: Optional[Exception] = None
    disconnect_error: Optional[Exception] = None
    writes: List[bytes] = field(default_factory=list)
    narrow_calls: int = 0
    exhaustive_calls: int = 0
    disconnect_calls: int = 0

    async def discover_characteristics(self, service_uuids, characteristic_uuids):
        self.narrow_calls += 1
        if self.narrow_error is not None:
            raise self.narrow_error
        return [
            char
            for service_uuid in service_uuids
            for char in self.services.get(service_uuid, [])
            if char.uuid in characteristic_uuids
        ]

    async def discover_all_characteristics(self):
        self.exhaustive_calls += 1
        return [char for chars in self.services.values() for char in chars]

    async def write(self, characteristic, data):
        if self.write_error is not None:
            raise self.write_error
        self.writes.append(bytes(data))

    async def disconnect(self):
        self.disconnect_calls += 1
        if self.disconnect_error is not None:
            raise self.disconnect_error


def strip_connection() -> FakeConnection:
    return FakeConnection(services={SERVICE_UUID: [FakeCharacteristic(CHARACTERISTIC_UUID)]})


class FakeAdapter(BaseAdapter):
    """Adapter whose scans replay ``script[filter]`` right after start."""

    def __init__(self, state: AdapterState = AdapterState.POWERED_ON) -> None:
        super().__init__()
        self._state = state
        self.script: Dict[Tuple[str, ...], List[Peripheral]] = {}
        self.scans: List[Tuple[str, ...]] = []
        self.stop_calls = 0
        self.scan_error: Optional[Exception] = None
        self.scanning = False
        self.connection_factory: Callable[[], FakeConnection] = strip_connection
        self.connect_delay = 0.0
        self.connect_calls: List[Peripheral] = []
        self.connections: List[FakeConnection] = []
        self.on_disconnect: Optional[Callable[[], None]] = None
        self._scan_token = 0

    def set_state(self, state: AdapterState) -> None:
        self._set_state(state)

    async def refresh_state(self) -> AdapterState:
        return self._state

    async def start_scan(self, service_uuids: Sequence[str], callback) -> None:
        assert not self.scanning, "scan started while another scan was running"
        key = tuple(service_uuids)
        self.scans.append(key)
        if self.scan_error is not None:
            raise self.scan_error
        self.scanning = True
        self._scan_token += 1
        token = self._scan_token

        def _deliver() -> None:
            for peripheral in self.script.get(key, []):
                if not self.scanning or token != self._scan_token:
                    return
                callback(peripheral)

        asyncio.get_running_loop().call_soon(_deliver)

    async def stop_scan(self) -> None:
        self.stop_calls += 1
        self.scanning = False

    async def connect(self, peripheral: Peripheral, on_disconnect):
        self.connect_calls.append(peripheral)
        self.on_disconnect = on_disconnect
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        connection = self.connection_factory()
        self.connections.append(connection)
        return connection


@pytest.fixture
def adapter():
    return FakeAdapter()


@pytest.fixture
def saved_device():
    return SavedDevice(id="AA:BB:CC:DD:EE:FF", name="BLELKDOM-01", address="AA:BB:CC:DD:EE:FF")


@pytest.fixture
def strip_peripheral(saved_device):
    return Peripheral(
        id=saved_device.id,
        name=saved_device.name,
        address=saved_device.address,
        service_uuids=[SERVICE_UUID],
        rssi=-60,
    )


@pytest.fixture
def ble_device(adapter):
    return BleStripDevice(
        adapter,
        connect_timeout=0.2,
        quick_attempt_timeout=0.05,
        min_attempt_timeout=0.05,
    )


@pytest.fixture
def settings(tmp_path):
    return SettingsStore(tmp_path / "bt-control.json")
