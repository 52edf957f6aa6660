# blelkdom_control/__init__.py
"""Control BLELKDOM Bluetooth LED strips from Python.

Typical use:

    device = await get_device()            # real adapter, or simulation
    client = BlelkdomClient(device, SettingsStore())
    await client.save_selected_device((await client.discover_devices())[0].to_saved())
    await client.set_color("#7fae02")
"""
from __future__ import annotations

from .client import BlelkdomClient
from .device import BaseDevice, BleStripDevice, SimulatedDevice, get_device
from .exception import (
    AdapterStateError,
    BlelkdomError,
    CharacteristicMissingError,
    DeviceNotFound,
    NoDeviceSelectedError,
    NotConnectedError,
)
from .models import BleDeviceSummary, CustomPreset, DeviceState, SavedDevice
from .settings import SettingsStore

__all__ = [
    "AdapterStateError",
    "BaseDevice",
    "BleDeviceSummary",
    "BleStripDevice",
    "BlelkdomClient",
    "BlelkdomError",
    "CharacteristicMissingError",
    "CustomPreset",
    "DeviceNotFound",
    "DeviceState",
    "NoDeviceSelectedError",
    "NotConnectedError",
    "SavedDevice",
    "SettingsStore",
    "SimulatedDevice",
    "get_device",
]
