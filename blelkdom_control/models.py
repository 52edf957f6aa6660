# blelkdom_control/models.py
"""Data containers shared by the client, the backends and the settings store."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Optional


@dataclass(frozen=True)
class ScanAttempt:
    """One bounded listen-for-advertisements strategy."""

    label: str
    service_uuids: tuple[str, ...] = ()


@dataclass
class SavedDevice:
    """The strip the user picked; survives restarts through the settings store."""

    id: str
    name: str
    address: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "address": self.address}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SavedDevice":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            address=data.get("address") or None,
        )


@dataclass(frozen=True)
class BleDeviceSummary:
    """A peripheral as reported by one discovery pass."""

    id: str
    name: str
    address: Optional[str] = None
    rssi: Optional[int] = None

    def to_saved(self) -> SavedDevice:
        return SavedDevice(id=self.id, name=self.name, address=self.address)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "address": self.address, "rssi": self.rssi}


@dataclass
class CustomPreset:
    id: str
    label: str
    color: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "label": self.label, "color": self.color}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CustomPreset":
        return cls(id=str(data["id"]), label=str(data["label"]), color=str(data["color"]))


@dataclass
class Peripheral:
    """Advertisement snapshot handed from the adapter binding to the matcher.

    ``handle`` is the platform object (a bleak ``BLEDevice``) needed to connect;
    nothing outside the adapter binding looks inside it.
    """

    id: str
    name: Optional[str] = None
    address: Optional[str] = None
    service_uuids: list[str] = field(default_factory=list)
    manufacturer_data: dict[int, bytes] = field(default_factory=dict)
    rssi: Optional[int] = None
    handle: Any = None


@dataclass
class DeviceState:
    power_on: bool
    color: str
    brightness: int
    connected: bool = False
    selected_device: Optional[SavedDevice] = None

    def snapshot(self) -> "DeviceState":
        """Return a detached copy safe to hand to subscribers."""
        selected = replace(self.selected_device) if self.selected_device else None
        return replace(self, selected_device=selected)

    def to_dict(self) -> dict[str, Any]:
        return {
            "powerOn": self.power_on,
            "color": self.color,
            "brightness": self.brightness,
            "connected": self.connected,
            "selectedDevice": self.selected_device.to_dict() if self.selected_device else None,
        }


__all__ = [
    "BleDeviceSummary",
    "CustomPreset",
    "DeviceState",
    "Peripheral",
    "SavedDevice",
    "ScanAttempt",
]
