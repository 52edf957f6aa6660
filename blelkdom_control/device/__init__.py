# blelkdom_control/device/__init__.py
"""Backend selection for the BLELKDOM client.

- BleStripDevice talks to a real strip through a BaseAdapter.
- SimulatedDevice keeps the same contract without any radio.
- get_device() probes the adapter once and picks one of them; the client
  never re-decides afterwards.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

from ..adapter import AdapterState, BaseAdapter, BleakAdapter
from ..const import ENV_SIMULATE
from .base_device import BaseDevice, ConnectionLostCallback
from .ble_strip import BleStripDevice
from .simulated import SimulatedDevice

_LOGGER = logging.getLogger(__name__)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


async def get_device(
    simulate: Optional[bool] = None,
    adapter: Optional[BaseAdapter] = None,
) -> BaseDevice:
    """Return the backend for this process.

    ``simulate=None`` defers to the BLELKDOM_SIMULATE environment variable and
    otherwise falls back to simulation only when no Bluetooth stack is present.
    """
    if simulate is None:
        simulate = _env_flag(ENV_SIMULATE)
    if simulate:
        _LOGGER.info("Running in simulation mode")
        return SimulatedDevice()

    adapter = adapter or BleakAdapter()
    state = await adapter.refresh_state()
    if state is AdapterState.UNAVAILABLE:
        _LOGGER.warning("Bluetooth stack unavailable; falling back to simulation mode")
        return SimulatedDevice()

    _LOGGER.debug("Bluetooth adapter state at startup: %s", state.value)
    return BleStripDevice(adapter)


__all__ = [
    "BaseDevice",
    "BleStripDevice",
    "ConnectionLostCallback",
    "SimulatedDevice",
    "get_device",
]
