# blelkdom_control/device/simulated.py
"""Stand-in backend for machines without a usable Bluetooth stack.

Keeps the client contract intact with a fixed latency per operation and a
single synthetic strip in discovery results.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from ..const import SIMULATED_DEVICE_ID, SIMULATED_DEVICE_NAME, SIMULATED_LATENCY
from ..models import BleDeviceSummary, SavedDevice
from .base_device import BaseDevice, ConnectionLostCallback


class SimulatedDevice(BaseDevice):
    simulated = True

    def __init__(self, latency: float = SIMULATED_LATENCY) -> None:
        super().__init__()
        self._latency = latency
        self._attached = False

    @property
    def is_attached(self) -> bool:
        return self._attached

    async def discover(
        self, timeout: float, saved: Optional[SavedDevice] = None
    ) -> list[BleDeviceSummary]:
        self._logger.debug("Simulation mode active, returning fake device")
        fake = [BleDeviceSummary(id=SIMULATED_DEVICE_ID, name=SIMULATED_DEVICE_NAME)]
        for device in fake:
            self.last_discovery[device.id] = device
        return fake

    async def connect(self, target: SavedDevice, on_lost: ConnectionLostCallback) -> None:
        await asyncio.sleep(self._latency)
        self._attached = True
        self._logger.debug("Simulated connection to %s", target.name or target.id)

    async def disconnect(self) -> None:
        self._attached = False

    async def write(self, frame: bytes) -> None:
        self._logger.debug("Simulated write %s", frame.hex(" ").upper())
        await asyncio.sleep(self._latency)


__all__ = ["SimulatedDevice"]
