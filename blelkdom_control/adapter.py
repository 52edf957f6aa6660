# blelkdom_control/adapter.py
"""Bluetooth adapter binding.

This module provides:
- AdapterState: the adapter power/authorization states the client cares about.
- BaseAdapter: the capability the BLE backend is built on (state + change
  listeners, start/stop scan with an optional service filter, connect).
- GattConnection: what a successful connect hands back (targeted and
  exhaustive characteristic discovery, write without response, disconnect).
- BleakAdapter / BleakGattConnection: the bleak implementation, using
  bleak-retry-connector for the connect path.
- wait_for_adapter_ready(): block until the adapter is powered on.

bleak exposes no adapter state feed, so BleakAdapter derives its state from a
short probe scan and re-probes periodically while anyone is waiting on it.
"""

from __future__ import annotations

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional, Sequence

from bleak import BleakScanner
from bleak.exc import BleakError
from bleak_retry_connector import BleakClientWithServiceCache, establish_connection

from .const import ADAPTER_POLL_INTERVAL, ADAPTER_READY_TIMEOUT
from .exception import AdapterStateError
from .models import Peripheral

if TYPE_CHECKING:  # pragma: no cover
    from bleak.backends.device import BLEDevice
    from bleak.backends.scanner import AdvertisementData

_LOGGER = logging.getLogger(__name__)

_MAC_RE = re.compile(r"^([0-9A-Fa-f]{2}[:-]){5}[0-9A-Fa-f]{2}$")


class AdapterState(str, Enum):
    UNKNOWN = "unknown"
    UNAVAILABLE = "unavailable"
    UNAUTHORIZED = "unauthorized"
    UNSUPPORTED = "unsupported"
    POWERED_OFF = "poweredOff"
    POWERED_ON = "poweredOn"


FATAL_STATES = frozenset({AdapterState.UNAUTHORIZED, AdapterState.UNSUPPORTED})

StateListener = Callable[[AdapterState], None]
DetectionCallback = Callable[[Peripheral], None]
DisconnectCallback = Callable[[], None]


# ────────────────────────────────────────────────────────────────
# Capability interfaces
# ────────────────────────────────────────────────────────────────
class GattConnection(ABC):
    """A live GATT link to one peripheral."""

    @abstractmethod
    async def discover_characteristics(
        self, service_uuids: Sequence[str], characteristic_uuids: Sequence[str]
    ) -> list[Any]:
        """Return characteristics found under the given services only."""

    @abstractmethod
    async def discover_all_characteristics(self) -> list[Any]:
        """Return every characteristic of every service on the peripheral."""

    @abstractmethod
    async def write(self, characteristic: Any, data: bytes) -> None:
        """Write without response."""

    @abstractmethod
    async def disconnect(self) -> None: ...


class BaseAdapter(ABC):
    """Adapter state bookkeeping shared by every binding."""

    def __init__(self) -> None:
        self._state = AdapterState.UNKNOWN
        self._state_listeners: list[StateListener] = []

    @property
    def state(self) -> AdapterState:
        return self._state

    def add_state_listener(self, listener: StateListener) -> Callable[[], None]:
        self._state_listeners.append(listener)
        self._listeners_changed()

        def _remove() -> None:
            try:
                self._state_listeners.remove(listener)
            except ValueError:
                return
            self._listeners_changed()

        return _remove

    def _set_state(self, state: AdapterState) -> None:
        if state is self._state:
            return
        _LOGGER.debug("Adapter state %s -> %s", self._state.value, state.value)
        self._state = state
        for listener in tuple(self._state_listeners):
            listener(state)

    def _listeners_changed(self) -> None:
        """Hook for bindings that need to poll while someone is listening."""

    @abstractmethod
    async def refresh_state(self) -> AdapterState: ...

    @abstractmethod
    async def start_scan(self, service_uuids: Sequence[str], callback: DetectionCallback) -> None: ...

    @abstractmethod
    async def stop_scan(self) -> None: ...

    @abstractmethod
    async def connect(self, peripheral: Peripheral, on_disconnect: DisconnectCallback) -> GattConnection: ...


# ────────────────────────────────────────────────────────────────
# bleak implementation
# ────────────────────────────────────────────────────────────────
def classify_adapter_error(err: BaseException) -> AdapterState:
    """Map a probe failure to an adapter state."""
    if isinstance(err, (FileNotFoundError, ConnectionRefusedError)):
        # no D-Bus socket / no BlueZ
        return AdapterState.UNAVAILABLE
    msg = str(err).lower()
    if "no bluetooth adapter" in msg or "adapter not found" in msg or "no adapter" in msg:
        return AdapterState.UNAVAILABLE
    if "serviceunknown" in msg or (
        "org.bluez" in msg and ("was not provided" in msg or "not found" in msg)
    ):
        # D-Bus is up but BlueZ is not installed or not running
        return AdapterState.UNAVAILABLE
    if any(k in msg for k in ("notready", "not ready", "powered off", "turned off", "not powered")):
        return AdapterState.POWERED_OFF
    if any(k in msg for k in ("accessdenied", "access denied", "unauthorized", "not authorized", "denied")):
        return AdapterState.UNAUTHORIZED
    if "not supported" in msg or "unsupported" in msg:
        return AdapterState.UNSUPPORTED
    return AdapterState.UNKNOWN


class BleakGattConnection(GattConnection):
    def __init__(self, client: BleakClientWithServiceCache) -> None:
        self._client = client

    @property
    def is_connected(self) -> bool:
        return bool(getattr(self._client, "is_connected", False))

    async def discover_characteristics(
        self, service_uuids: Sequence[str], characteristic_uuids: Sequence[str]
    ) -> list[Any]:
        services = self._client.services
        found: list[Any] = []
        for service_uuid in service_uuids:
            service = services.get_service(service_uuid)
            if service is None:
                continue
            for char_uuid in characteristic_uuids:
                if char := service.get_characteristic(char_uuid):
                    found.append(char)
        return found

    async def discover_all_characteristics(self) -> list[Any]:
        services = list(self._client.services)
        _LOGGER.debug("All services: %s", [service.uuid for service in services])
        return [char for service in services for char in service.characteristics]

    async def write(self, characteristic: Any, data: bytes) -> None:
        await self._client.write_gatt_char(characteristic, data, response=False)

    async def disconnect(self) -> None:
        await self._client.disconnect()


class BleakAdapter(BaseAdapter):
    """BaseAdapter over bleak's scanner and bleak-retry-connector."""

    def __init__(self, poll_interval: float = ADAPTER_POLL_INTERVAL) -> None:
        super().__init__()
        self._poll_interval = poll_interval
        self._poll_task: Optional[asyncio.Task] = None
        self._scanner: Optional[BleakScanner] = None

    @property
    def is_scanning(self) -> bool:
        return self._scanner is not None

    async def refresh_state(self) -> AdapterState:
        if self._scanner is not None:
            return self._state
        try:
            probe = BleakScanner()
            await probe.start()
            await probe.stop()
        except (BleakError, OSError, asyncio.TimeoutError) as ex:
            state = classify_adapter_error(ex)
            _LOGGER.debug("Adapter probe failed (%s): %s", state.value, ex)
        else:
            state = AdapterState.POWERED_ON
        self._set_state(state)
        return state

    def _listeners_changed(self) -> None:
        if self._state_listeners:
            if self._poll_task is None or self._poll_task.done():
                self._poll_task = asyncio.get_running_loop().create_task(self._poll_state())
        elif self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

    async def _poll_state(self) -> None:
        while self._state_listeners:
            await asyncio.sleep(self._poll_interval)
            await self.refresh_state()

    async def start_scan(self, service_uuids: Sequence[str], callback: DetectionCallback) -> None:
        if self._scanner is not None:
            raise BleakError("A scan is already running on this adapter")

        def _detected(device: BLEDevice, advertisement: AdvertisementData) -> None:
            callback(self._to_peripheral(device, advertisement))

        scanner = BleakScanner(
            detection_callback=_detected,
            service_uuids=list(service_uuids) or None,
        )
        await scanner.start()
        self._scanner = scanner

    async def stop_scan(self) -> None:
        scanner = self._scanner
        self._scanner = None
        if scanner is not None:
            await scanner.stop()

    async def connect(self, peripheral: Peripheral, on_disconnect: DisconnectCallback) -> GattConnection:
        client = await establish_connection(
            BleakClientWithServiceCache,
            peripheral.handle,
            peripheral.name or peripheral.id,
            disconnected_callback=lambda _client: on_disconnect(),
            use_services_cache=True,
            ble_device_callback=lambda: peripheral.handle,
        )
        return BleakGattConnection(client)

    @staticmethod
    def _to_peripheral(device: BLEDevice, advertisement: AdvertisementData) -> Peripheral:
        # On macOS device.address is a CoreBluetooth UUID, not a hardware address.
        address = device.address if _MAC_RE.match(device.address or "") else None
        return Peripheral(
            id=device.address,
            name=advertisement.local_name or device.name,
            address=address,
            service_uuids=list(advertisement.service_uuids or []),
            manufacturer_data=dict(advertisement.manufacturer_data or {}),
            rssi=advertisement.rssi,
            handle=device,
        )


# ────────────────────────────────────────────────────────────────
# Readiness
# ────────────────────────────────────────────────────────────────
async def wait_for_adapter_ready(
    adapter: BaseAdapter, timeout: Optional[float] = ADAPTER_READY_TIMEOUT
) -> None:
    """Return once the adapter is powered on.

    Raises AdapterStateError immediately for unauthorized/unsupported adapters
    and when the adapter does not power on within ``timeout`` seconds.
    """
    state = adapter.state
    if state is AdapterState.POWERED_ON:
        return
    if state in FATAL_STATES:
        raise AdapterStateError(state.value)

    ready: asyncio.Future[None] = asyncio.get_running_loop().create_future()

    def _on_state(new_state: AdapterState) -> None:
        if ready.done():
            return
        if new_state is AdapterState.POWERED_ON:
            ready.set_result(None)
        elif new_state in FATAL_STATES:
            ready.set_exception(AdapterStateError(new_state.value))

    _LOGGER.info("Waiting for Bluetooth adapter to power on (state: %s)", state.value)
    remove = adapter.add_state_listener(_on_state)
    try:
        await asyncio.wait_for(ready, timeout)
    except asyncio.TimeoutError as ex:
        raise AdapterStateError(
            adapter.state.value,
            f"Bluetooth adapter did not power on within {timeout:g}s "
            f"(state: {adapter.state.value})",
        ) from ex
    finally:
        remove()


def filter_characteristics(characteristics: Iterable[Any], uuids: Iterable[str]) -> list[Any]:
    """Filter characteristics down to the given UUIDs (short or full form)."""
    wanted = {uuid.lower() for uuid in uuids}
    return [char for char in characteristics if str(getattr(char, "uuid", "")).lower() in wanted]


__all__ = [
    "AdapterState",
    "BaseAdapter",
    "BleakAdapter",
    "BleakGattConnection",
    "FATAL_STATES",
    "GattConnection",
    "classify_adapter_error",
    "filter_characteristics",
    "wait_for_adapter_ready",
]
