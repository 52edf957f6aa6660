# blelkdom_control/discovery.py
"""Timed scans over a BaseAdapter.

All scans go through ``scan_until``: the scanner is started, detections are
fed to a handler in arrival order, and the wait ends either at the deadline
or as soon as the handler reports it is done. The scanner is always stopped
before returning, so callers can chain attempts strictly one after another.

A timeout is a normal outcome: discovery returns what it collected and a
match attempt returns ``None``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Sequence

from .adapter import BaseAdapter, wait_for_adapter_ready
from .matcher import is_discoverable, matches_saved, to_summary
from .models import BleDeviceSummary, Peripheral, SavedDevice, ScanAttempt

_LOGGER = logging.getLogger(__name__)


# ────────────────────────────────────────────────────────────────
# Scan primitive
# ────────────────────────────────────────────────────────────────
async def scan_until(
    adapter: BaseAdapter,
    attempt: ScanAttempt,
    timeout: float,
    handler: Callable[[Peripheral], bool],
) -> bool:
    """Scan with ``attempt``'s filter until ``handler`` returns True or ``timeout``.

    Returns True when the handler ended the scan early.
    """
    done = asyncio.Event()

    def _detected(peripheral: Peripheral) -> None:
        if done.is_set():
            return
        if handler(peripheral):
            done.set()

    await adapter.start_scan(attempt.service_uuids, _detected)
    try:
        await asyncio.wait_for(done.wait(), timeout)
    except asyncio.TimeoutError:
        pass
    finally:
        try:
            await adapter.stop_scan()
        except Exception:
            _LOGGER.debug("stop_scan failed after %s attempt", attempt.label, exc_info=True)
    return done.is_set()


# ────────────────────────────────────────────────────────────────
# Discovery
# ────────────────────────────────────────────────────────────────
async def run_discovery_attempt(
    adapter: BaseAdapter,
    attempt: ScanAttempt,
    timeout: float,
    cache: dict[str, BleDeviceSummary],
    saved: Optional[SavedDevice] = None,
) -> dict[str, BleDeviceSummary]:
    devices: dict[str, BleDeviceSummary] = {}

    def _collect(peripheral: Peripheral) -> bool:
        if is_discoverable(peripheral, saved):
            summary = to_summary(peripheral)
            devices[summary.id] = summary
            cache[summary.id] = summary
        return False

    await scan_until(adapter, attempt, timeout, _collect)
    return devices


async def discover(
    adapter: BaseAdapter,
    attempts: Sequence[ScanAttempt],
    timeout: float,
    cache: dict[str, BleDeviceSummary],
    saved: Optional[SavedDevice] = None,
) -> list[BleDeviceSummary]:
    """Run scan attempts in order until one finds something.

    Falls back to the last-discovery ``cache`` when nothing is advertising now.
    """
    await wait_for_adapter_ready(adapter)
    _LOGGER.debug("Adapter ready, starting scan attempts")

    aggregated: dict[str, BleDeviceSummary] = {}
    for attempt in attempts:
        _LOGGER.debug("Attempting scan: %s, filters: %s", attempt.label, list(attempt.service_uuids))
        found = await run_discovery_attempt(adapter, attempt, timeout, cache, saved)
        _LOGGER.debug("Scan attempt %s found %d device(s)", attempt.label, len(found))
        aggregated.update(found)
        if aggregated:
            break

    if not aggregated and cache:
        _LOGGER.info("No new devices, returning %d cached device(s)", len(cache))
        return list(cache.values())

    _LOGGER.info("Discovery returned %d device(s)", len(aggregated))
    return list(aggregated.values())


# ────────────────────────────────────────────────────────────────
# Targeted match
# ────────────────────────────────────────────────────────────────
async def run_match_attempt(
    adapter: BaseAdapter,
    attempt: ScanAttempt,
    saved: SavedDevice,
    timeout: float,
) -> Optional[Peripheral]:
    """Return the first peripheral matching ``saved``, or None on timeout."""
    match: list[Peripheral] = []

    def _check(peripheral: Peripheral) -> bool:
        matched = matches_saved(peripheral, saved)
        _LOGGER.debug(
            "Discovered id=%s name=%s address=%s matches=%s",
            peripheral.id,
            peripheral.name,
            peripheral.address,
            matched,
        )
        if matched:
            match.append(peripheral)
        return matched

    await scan_until(adapter, attempt, timeout, _check)
    return match[0] if match else None


__all__ = ["discover", "run_discovery_attempt", "run_match_attempt", "scan_until"]
