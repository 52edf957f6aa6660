# blelkdom_control/const.py
"""BLELKDOM strip constants.

Single source of truth for the GATT identifiers, the scan strategy and the
timing knobs shared by the discovery, connection and simulation paths.
"""

from __future__ import annotations

from .models import ScanAttempt

# ────────────────────────────────────────────────────────────────────────────────
# GATT identifiers
# ────────────────────────────────────────────────────────────────────────────────
SERVICE_UUID: str = "0000fff0-0000-1000-8000-00805f9b34fb"
SERVICE_UUID_SHORT: str = "fff0"
CHARACTERISTIC_UUID: str = "0000fff3-0000-1000-8000-00805f9b34fb"  # write
CHARACTERISTIC_UUID_SHORT: str = "fff3"

# ────────────────────────────────────────────────────────────────────────────────
# Scan strategy (tried in order; unfiltered first, service-filtered second)
# ────────────────────────────────────────────────────────────────────────────────
SCAN_ATTEMPTS: tuple[ScanAttempt, ...] = (
    ScanAttempt("unfiltered"),
    ScanAttempt("blelkdom-service", (SERVICE_UUID,)),
)

# ────────────────────────────────────────────────────────────────────────────────
# Timing (seconds)
# ────────────────────────────────────────────────────────────────────────────────
DEFAULT_DISCOVERY_TIMEOUT: float = 8.0
CONNECT_TIMEOUT: float = 12.0
QUICK_ATTEMPT_TIMEOUT: float = 5.0
MIN_ATTEMPT_TIMEOUT: float = 3.0
SIMULATED_LATENCY: float = 0.18
ADAPTER_READY_TIMEOUT: float = 30.0
ADAPTER_POLL_INTERVAL: float = 2.0

# ────────────────────────────────────────────────────────────────────────────────
# Device state defaults
# ────────────────────────────────────────────────────────────────────────────────
DEFAULT_COLOR: str = "#ff0000"
DEFAULT_POWER_ON: bool = False
DEFAULT_BRIGHTNESS: int = 100
BRIGHTNESS_STEP: int = 10
BRIGHTNESS_MIN: int = 0
BRIGHTNESS_MAX: int = 100
UNNAMED_DEVICE: str = "Unnamed device"

# Simulation identity
SIMULATED_DEVICE_ID: str = "simulated-led"
SIMULATED_DEVICE_NAME: str = "Simulated BLE Strip"

# ────────────────────────────────────────────────────────────────────────────────
# Settings / environment
# ────────────────────────────────────────────────────────────────────────────────
SETTINGS_NAME: str = "bt-control"
ENV_SETTINGS_PATH: str = "BLELKDOM_SETTINGS"
ENV_SIMULATE: str = "BLELKDOM_SIMULATE"

__all__ = [
    "ADAPTER_POLL_INTERVAL",
    "ADAPTER_READY_TIMEOUT",
    "BRIGHTNESS_MAX",
    "BRIGHTNESS_MIN",
    "BRIGHTNESS_STEP",
    "CHARACTERISTIC_UUID",
    "CHARACTERISTIC_UUID_SHORT",
    "CONNECT_TIMEOUT",
    "DEFAULT_BRIGHTNESS",
    "DEFAULT_COLOR",
    "DEFAULT_DISCOVERY_TIMEOUT",
    "DEFAULT_POWER_ON",
    "ENV_SETTINGS_PATH",
    "ENV_SIMULATE",
    "MIN_ATTEMPT_TIMEOUT",
    "QUICK_ATTEMPT_TIMEOUT",
    "SCAN_ATTEMPTS",
    "SERVICE_UUID",
    "SERVICE_UUID_SHORT",
    "SETTINGS_NAME",
    "SIMULATED_DEVICE_ID",
    "SIMULATED_DEVICE_NAME",
    "SIMULATED_LATENCY",
    "UNNAMED_DEVICE",
]
