# blelkdom_control/device/ble_strip.py
"""Real BLE backend for BLELKDOM strips.

Connect path:
- wait for the adapter to power on;
- find the saved strip: a quick pass (short per-attempt timeout) when the
  saved id was seen in the last discovery, then a full pass sharing the
  total timeout across the scan attempts;
- attach: GATT connect, then resolve the write characteristic with a
  narrow service/characteristic lookup, falling back to an exhaustive walk.

Writes are serialized; a write that fails with a bleak error drops the link
so the next command reconnects.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional, Sequence

from bleak.exc import BleakError

from ..adapter import BaseAdapter, GattConnection, filter_characteristics, wait_for_adapter_ready
from ..const import (
    CHARACTERISTIC_UUID,
    CHARACTERISTIC_UUID_SHORT,
    CONNECT_TIMEOUT,
    MIN_ATTEMPT_TIMEOUT,
    QUICK_ATTEMPT_TIMEOUT,
    SCAN_ATTEMPTS,
    SERVICE_UUID,
)
from ..discovery import discover, run_match_attempt
from ..exception import CharacteristicMissingError, DeviceNotFound, NotConnectedError
from ..models import BleDeviceSummary, Peripheral, SavedDevice, ScanAttempt
from .base_device import BaseDevice, ConnectionLostCallback


class BleStripDevice(BaseDevice):
    """BaseDevice talking to a real strip through a BaseAdapter."""

    def __init__(
        self,
        adapter: BaseAdapter,
        *,
        scan_attempts: Sequence[ScanAttempt] = SCAN_ATTEMPTS,
        connect_timeout: float = CONNECT_TIMEOUT,
        quick_attempt_timeout: float = QUICK_ATTEMPT_TIMEOUT,
        min_attempt_timeout: float = MIN_ATTEMPT_TIMEOUT,
    ) -> None:
        super().__init__()
        self._adapter = adapter
        self._scan_attempts = tuple(scan_attempts)
        self._connect_timeout = connect_timeout
        self._quick_attempt_timeout = quick_attempt_timeout
        self._min_attempt_timeout = min_attempt_timeout
        self._connection: Optional[GattConnection] = None
        self._characteristic: Any = None
        self._on_lost: Optional[ConnectionLostCallback] = None
        self._operation_lock = asyncio.Lock()

    @property
    def adapter(self) -> BaseAdapter:
        return self._adapter

    @property
    def is_attached(self) -> bool:
        return self._connection is not None

    # ---- discovery ----
    async def discover(
        self, timeout: float, saved: Optional[SavedDevice] = None
    ) -> list[BleDeviceSummary]:
        return await discover(self._adapter, self._scan_attempts, timeout, self.last_discovery, saved)

    # ---- connect ----
    async def connect(self, target: SavedDevice, on_lost: ConnectionLostCallback) -> None:
        await wait_for_adapter_ready(self._adapter)
        self._logger.info("Starting search for saved device %s (%s)", target.name, target.id)
        peripheral = await self._find_peripheral_for_saved(target)
        self._logger.info("Found peripheral %s", peripheral.id)
        await self._attach(peripheral, on_lost)

    async def _find_peripheral_for_saved(self, target: SavedDevice) -> Peripheral:
        per_attempt = max(
            self._min_attempt_timeout,
            self._connect_timeout / max(1, len(self._scan_attempts)),
        )

        if target.id in self.last_discovery:
            quick = min(per_attempt, self._quick_attempt_timeout)
            self._logger.debug("Device found in cache, running quick scans (%ss each)", quick)
            peripheral = await self._run_match_pass(target, quick, "quick")
            if peripheral is not None:
                return peripheral

        peripheral = await self._run_match_pass(target, per_attempt, "full")
        if peripheral is not None:
            return peripheral

        self._logger.error(
            "Saved device not found after all attempts; target=%s, last discovery=%s",
            target,
            list(self.last_discovery),
        )
        raise DeviceNotFound

    async def _run_match_pass(
        self, target: SavedDevice, timeout: float, phase: str
    ) -> Optional[Peripheral]:
        for attempt in self._scan_attempts:
            self._logger.debug("%s scan attempt: %s (timeout: %ss)", phase, attempt.label, timeout)
            try:
                peripheral = await run_match_attempt(self._adapter, attempt, target, timeout)
            except (BleakError, OSError) as ex:
                self._logger.warning("%s scan failed (%s): %s", phase, attempt.label, ex)
                continue
            if peripheral is not None:
                self._logger.debug(
                    "Match found via %s scan: %s (%s)", phase, peripheral.id, peripheral.name
                )
                return peripheral
            self._logger.debug("No match in %s attempt: %s", phase, attempt.label)
        return None

    async def _attach(self, peripheral: Peripheral, on_lost: ConnectionLostCallback) -> None:
        connection: Optional[GattConnection] = None
        fired = False

        def _on_disconnect() -> None:
            nonlocal fired
            if fired:
                return
            if connection is None or self._connection is not connection:
                self._logger.debug("%s: disconnected (link not attached)", peripheral.id)
                return
            fired = True
            self._logger.warning("%s: device unexpectedly disconnected", peripheral.id)
            self._drop_handle()
            on_lost()

        self._logger.debug("Connecting to peripheral %s", peripheral.id)
        connection = await self._adapter.connect(peripheral, _on_disconnect)
        self._logger.debug("Connected, discovering services")

        characteristic = await self._resolve_characteristic(connection)
        if characteristic is None:
            await self._disconnect_quietly(connection)
            raise CharacteristicMissingError

        self._logger.debug("Using characteristic %s", getattr(characteristic, "uuid", characteristic))
        self._characteristic = characteristic
        self._connection = connection
        self._on_lost = on_lost

    async def _resolve_characteristic(self, connection: GattConnection) -> Any:
        characteristics: list[Any] = []
        try:
            characteristics = await connection.discover_characteristics(
                [SERVICE_UUID], [CHARACTERISTIC_UUID]
            )
            self._logger.debug("Discovered characteristics: %d", len(characteristics))
        except (BleakError, OSError, KeyError) as ex:
            self._logger.debug("Failed to discover specific services, trying all services: %s", ex)

        if not characteristics:
            everything = await connection.discover_all_characteristics()
            self._logger.debug(
                "All characteristics: %s", [getattr(c, "uuid", c) for c in everything]
            )
            characteristics = filter_characteristics(
                everything, [CHARACTERISTIC_UUID, CHARACTERISTIC_UUID_SHORT]
            )

        return characteristics[0] if characteristics else None

    # ---- disconnect ----
    async def disconnect(self) -> None:
        connection = self._connection
        self._drop_handle()
        if connection is not None:
            await self._disconnect_quietly(connection)

    def _drop_handle(self) -> None:
        self._connection = None
        self._characteristic = None
        self._on_lost = None

    async def _disconnect_quietly(self, connection: GattConnection) -> None:
        try:
            await connection.disconnect()
        except Exception:
            self._logger.debug("GATT disconnect failed (already gone?)", exc_info=True)

    # ---- write ----
    async def write(self, frame: bytes) -> None:
        if self._operation_lock.locked():
            self._logger.debug("Operation already in progress, waiting for it to complete")
        async with self._operation_lock:
            connection = self._connection
            characteristic = self._characteristic
            if connection is None or characteristic is None:
                raise NotConnectedError
            self._logger.debug("Writing %s", frame.hex(" ").upper())
            try:
                await connection.write(characteristic, frame)
            except BleakError as ex:
                self._logger.debug("Write failed, dropping connection: %s", ex)
                on_lost = self._on_lost
                if self._connection is connection:
                    self._drop_handle()
                await self._disconnect_quietly(connection)
                if on_lost is not None:
                    on_lost()
                raise


__all__ = ["BleStripDevice"]
