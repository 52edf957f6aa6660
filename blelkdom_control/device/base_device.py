# blelkdom_control/device/base_device.py
"""Backend strategy shared by the real and simulated strip paths.

The client picks one backend at construction time and never branches on
simulation itself. A backend owns the connection handle and the
last-discovery cache; the client owns DeviceState and the subscribers.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..models import BleDeviceSummary, SavedDevice

ConnectionLostCallback = Callable[[], None]


class BaseDevice(ABC):
    """Base backend used by BlelkdomClient."""

    simulated: bool = False
    _logger: logging.Logger

    def __init__(self) -> None:
        self._logger = logging.getLogger(f"{__name__.rsplit('.', 1)[0]}.{type(self).__name__}")
        self.last_discovery: dict[str, BleDeviceSummary] = {}

    @property
    @abstractmethod
    def is_attached(self) -> bool:
        """True while a connection handle exists."""

    @abstractmethod
    async def discover(
        self, timeout: float, saved: Optional[SavedDevice] = None
    ) -> list[BleDeviceSummary]:
        """Return nearby strips, falling back to the last discovery."""

    @abstractmethod
    async def connect(self, target: SavedDevice, on_lost: ConnectionLostCallback) -> None:
        """Find ``target`` and attach to it.

        ``on_lost`` fires at most once, when the peripheral drops an attached
        link on its own.
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Drop the connection handle; never raises for teardown failures."""

    @abstractmethod
    async def write(self, frame: bytes) -> None:
        """Write one command frame to the attached characteristic."""


__all__ = ["BaseDevice", "ConnectionLostCallback"]
