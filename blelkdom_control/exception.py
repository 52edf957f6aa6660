# blelkdom_control/exception.py
"""Exceptions raised by the BLELKDOM control stack."""

from __future__ import annotations


class BlelkdomError(Exception):
    """Base class for every error surfaced to callers of the client."""


class AdapterStateError(BlelkdomError):
    """The Bluetooth adapter is unauthorized, unsupported or never powered on."""

    def __init__(self, state: str, message: str | None = None) -> None:
        self.state = state
        super().__init__(message or f"Bluetooth adapter state: {state}")


class NoDeviceSelectedError(BlelkdomError):
    """A command was issued before a strip was selected."""

    def __init__(self, message: str = "Select a BLELKDOM strip first") -> None:
        super().__init__(message)


class DeviceNotFound(BlelkdomError):
    """The saved strip did not show up in any scan attempt."""

    def __init__(
        self,
        message: str = (
            "Saved device not found during scan attempts. "
            "Try rescanning and selecting the device again."
        ),
    ) -> None:
        super().__init__(message)


class CharacteristicMissingError(BlelkdomError):
    """The strip connected but does not expose the write characteristic."""

    def __init__(self, message: str = "Unable to find BLELKDOM write characteristic") -> None:
        super().__init__(message)


class NotConnectedError(BlelkdomError):
    """A frame was written while no characteristic was attached."""

    def __init__(self, message: str = "No BLE characteristic is available") -> None:
        super().__init__(message)


__all__ = [
    "AdapterStateError",
    "BlelkdomError",
    "CharacteristicMissingError",
    "DeviceNotFound",
    "NoDeviceSelectedError",
    "NotConnectedError",
]
