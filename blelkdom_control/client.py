# blelkdom_control/client.py
"""BLELKDOM client: the command surface used by UIs and the CLI.

The client owns the single DeviceState, the subscribers and the connect
guard; the backend (real or simulated, chosen once) owns the radio.

Connection lifecycle:
    Disconnected → Connecting → Connected → Disconnected

At most one connect attempt runs at a time. Concurrent callers of
``connect_to_saved_device`` await the same task and observe the same
outcome. Every command goes through ``_ensure_connected`` first, so a
dropped link is re-established on the next command.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, Optional

from . import commands
from .const import (
    BRIGHTNESS_MAX,
    BRIGHTNESS_MIN,
    BRIGHTNESS_STEP,
    DEFAULT_BRIGHTNESS,
    DEFAULT_DISCOVERY_TIMEOUT,
)
from .device import BaseDevice
from .exception import NoDeviceSelectedError
from .models import BleDeviceSummary, CustomPreset, DeviceState, SavedDevice
from .settings import SettingsStore

_LOGGER = logging.getLogger(__name__)

StateListener = Callable[[DeviceState], None]
ConnectionListener = Callable[[bool], None]


class BlelkdomClient:
    def __init__(self, device: BaseDevice, settings: SettingsStore) -> None:
        self._device = device
        self._settings = settings
        color, power_on = settings.get_last_state()
        self._state = DeviceState(
            power_on=power_on,
            color=color,
            brightness=DEFAULT_BRIGHTNESS,
            connected=False,
            selected_device=settings.get_selected_device(),
        )
        self._connect_task: Optional[asyncio.Task[None]] = None
        self._state_listeners: list[StateListener] = []
        self._connection_listeners: list[ConnectionListener] = []

    # ────────────────────────────────────────────────────────────────
    # State & subscriptions
    # ────────────────────────────────────────────────────────────────
    @property
    def simulation_mode(self) -> bool:
        return self._device.simulated

    @property
    def device(self) -> BaseDevice:
        return self._device

    def get_state(self) -> DeviceState:
        return self._state.snapshot()

    def on_state_changed(self, listener: StateListener) -> Callable[[], None]:
        self._state_listeners.append(listener)
        return lambda: self._remove(self._state_listeners, listener)

    def on_connection_changed(self, listener: ConnectionListener) -> Callable[[], None]:
        self._connection_listeners.append(listener)
        return lambda: self._remove(self._connection_listeners, listener)

    @staticmethod
    def _remove(listeners: list, listener: Callable) -> None:
        try:
            listeners.remove(listener)
        except ValueError:
            pass

    def _emit_state(self) -> None:
        snapshot = self.get_state()
        for listener in tuple(self._state_listeners):
            try:
                listener(snapshot)
            except Exception:
                _LOGGER.exception("State listener %r raised", listener)

    def _emit_connection(self, connected: bool) -> None:
        for listener in tuple(self._connection_listeners):
            try:
                listener(connected)
            except Exception:
                _LOGGER.exception("Connection listener %r raised", listener)

    def _set_connected(self, connected: bool) -> None:
        if self._state.connected == connected:
            return
        self._state.connected = connected
        _LOGGER.info("Strip %s", "connected" if connected else "disconnected")
        self._emit_connection(connected)
        self._emit_state()

    # ────────────────────────────────────────────────────────────────
    # Device selection, discovery, presets
    # ────────────────────────────────────────────────────────────────
    async def discover_devices(
        self, timeout: float = DEFAULT_DISCOVERY_TIMEOUT
    ) -> list[BleDeviceSummary]:
        _LOGGER.debug("discover_devices called, timeout=%ss", timeout)
        return await self._device.discover(timeout, self._state.selected_device)

    async def save_selected_device(self, device: Optional[SavedDevice]) -> DeviceState:
        self._settings.set_selected_device(device)
        self._state.selected_device = SavedDevice(**device.to_dict()) if device else None
        if device is None:
            await self.disconnect()
        self._emit_state()
        return self.get_state()

    def get_selected_device(self) -> Optional[SavedDevice]:
        selected = self._state.selected_device
        return SavedDevice(**selected.to_dict()) if selected else None

    def get_custom_presets(self) -> list[CustomPreset]:
        return self._settings.get_custom_presets()

    def save_custom_presets(self, presets: Iterable[CustomPreset]) -> list[CustomPreset]:
        self._settings.save_custom_presets(presets)
        return self._settings.get_custom_presets()

    # ────────────────────────────────────────────────────────────────
    # Connection lifecycle
    # ────────────────────────────────────────────────────────────────
    async def connect_to_saved_device(self) -> None:
        if self._state.connected:
            return
        task = self._connect_task
        if task is None:
            target = self._state.selected_device
            if target is None:
                raise NoDeviceSelectedError
            _LOGGER.debug("connect_to_saved_device: target=%s", target)
            task = asyncio.ensure_future(self._run_connect(target))
            self._connect_task = task
        else:
            _LOGGER.debug("Connection already in progress, waiting for it to complete")
        await asyncio.shield(task)

    async def _run_connect(self, target: SavedDevice) -> None:
        try:
            await self._device.connect(target, self._handle_connection_lost)
            self._set_connected(True)
        finally:
            self._connect_task = None

    def _handle_connection_lost(self) -> None:
        if self._state.connected:
            self._set_connected(False)

    async def disconnect(self) -> None:
        task = self._connect_task
        if task is not None:
            # settle only; the outcome belongs to the connect callers
            await asyncio.wait({task})
        await self._device.disconnect()
        self._set_connected(False)

    async def _ensure_connected(self) -> None:
        if self._state.selected_device is None:
            raise NoDeviceSelectedError
        if not self._state.connected:
            await self.connect_to_saved_device()

    # ────────────────────────────────────────────────────────────────
    # Commands
    # ────────────────────────────────────────────────────────────────
    async def set_power(self, on: bool) -> DeviceState:
        await self._ensure_connected()
        await self._device.write(commands.create_power_command(on))
        self._state.power_on = on
        self._settings.persist_state(self._state.color, self._state.power_on)
        self._emit_state()
        return self.get_state()

    async def set_color(self, hex_color: str) -> DeviceState:
        await self._ensure_connected()
        frame = commands.create_color_command(hex_color)
        _LOGGER.debug("set_color %s -> %s", hex_color, frame.hex(" ").upper())
        await self._device.write(frame)
        self._state.color = hex_color
        self._state.power_on = True
        self._settings.persist_state(self._state.color, self._state.power_on)
        self._emit_state()
        return self.get_state()

    async def increase_brightness(self) -> DeviceState:
        return await self._step_brightness(BRIGHTNESS_STEP)

    async def decrease_brightness(self) -> DeviceState:
        return await self._step_brightness(-BRIGHTNESS_STEP)

    async def _step_brightness(self, delta: int) -> DeviceState:
        await self._ensure_connected()
        level = min(BRIGHTNESS_MAX, max(BRIGHTNESS_MIN, self._state.brightness + delta))
        await self._device.write(commands.create_brightness_command(level))
        self._state.brightness = level
        self._emit_state()
        return self.get_state()


__all__ = ["BlelkdomClient"]
