# blelkdom_control/matcher.py
"""Predicates deciding whether an advertised peripheral is interesting.

- ``has_target_service``: the peripheral advertises the strip's service.
- ``matches_saved``: the peripheral is the previously saved strip. Any one of
  id, address or local name is enough; platform ids change across adapter
  resets.
- ``is_discoverable``: whether the peripheral belongs in a discovery listing.
"""

from __future__ import annotations

import logging
from typing import Optional

from .const import SERVICE_UUID, SERVICE_UUID_SHORT, UNNAMED_DEVICE
from .models import BleDeviceSummary, Peripheral, SavedDevice

_LOGGER = logging.getLogger(__name__)

_TARGET_SERVICE_UUIDS = frozenset({SERVICE_UUID.lower(), SERVICE_UUID_SHORT.lower()})


def has_target_service(peripheral: Peripheral) -> bool:
    return any(uuid.lower() in _TARGET_SERVICE_UUIDS for uuid in peripheral.service_uuids or ())


def matches_saved(peripheral: Peripheral, saved: SavedDevice) -> bool:
    id_match = peripheral.id == saved.id
    address_match = bool(
        saved.address
        and peripheral.address
        and peripheral.address.lower() == saved.address.lower()
    )
    name_match = bool(
        saved.name
        and peripheral.name
        and peripheral.name.strip() == saved.name.strip()
    )

    if id_match or address_match or name_match:
        _LOGGER.debug(
            "Match criteria id=%s address=%s name=%s; peripheral=(%s, %s, %s) saved=(%s, %s, %s)",
            id_match,
            address_match,
            name_match,
            peripheral.id,
            peripheral.address,
            peripheral.name,
            saved.id,
            saved.address,
            saved.name,
        )
        return True
    return False


def is_discoverable(peripheral: Peripheral, saved: Optional[SavedDevice] = None) -> bool:
    """Service match, saved-device match, or any identifying advertisement data.

    Some stacks drop service UUIDs from advertisements depending on
    power/connectable flags.
    """
    if has_target_service(peripheral):
        return True
    if saved is not None and matches_saved(peripheral, saved):
        return True
    return bool(peripheral.name) or bool(peripheral.manufacturer_data) or bool(peripheral.address)


def to_summary(peripheral: Peripheral) -> BleDeviceSummary:
    return BleDeviceSummary(
        id=peripheral.id,
        name=peripheral.name or UNNAMED_DEVICE,
        address=peripheral.address or None,
        rssi=peripheral.rssi,
    )


__all__ = ["has_target_service", "is_discoverable", "matches_saved", "to_summary"]
