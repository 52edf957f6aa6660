# blelkdom_control/commands.py
"""BLELKDOM command builders.

Every command is a fixed 9-byte frame:

    [0x7E, HDR, LEN, CMD, A, B, C, PAD, 0xEF]

• Power:       HDR=0x00 LEN=0x04 CMD=0x01 (on) / 0x00 (off), rest zero
• Brightness:  HDR=0x00 LEN=0x01 CMD=level (0..100), rest zero
• Color:       HDR=0x07 LEN=0x05 CMD=0x03 A,B,C=R,G,B PAD=0x10

Pure functions; no BLE imports.
"""

from __future__ import annotations

from .const import BRIGHTNESS_MAX, BRIGHTNESS_MIN

__all__ = [
    "FRAME_END",
    "FRAME_START",
    "create_brightness_command",
    "create_color_command",
    "create_power_command",
    "create_power_off_command",
    "create_power_on_command",
    "hex_to_rgb",
]

FRAME_START = 0x7E
FRAME_END = 0xEF


# ────────────────────────────────────────────────────────────────
# Frame helpers
# ────────────────────────────────────────────────────────────────
def _frame(hdr: int, length: int, cmd: int, a: int = 0, b: int = 0, c: int = 0, pad: int = 0) -> bytes:
    return bytes([FRAME_START, hdr, length, cmd, a, b, c, pad, FRAME_END])


def hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    """Split ``#RRGGBB`` (leading ``#`` optional) into its channel values."""
    clean = hex_color.lstrip("#")
    return int(clean[0:2], 16), int(clean[2:4], 16), int(clean[4:6], 16)


# ────────────────────────────────────────────────────────────────
# Commands
# ────────────────────────────────────────────────────────────────
def create_power_on_command() -> bytes:
    return _frame(0x00, 0x04, 0x01)


def create_power_off_command() -> bytes:
    return _frame(0x00, 0x04, 0x00)


def create_power_command(on: bool) -> bytes:
    return create_power_on_command() if on else create_power_off_command()


def create_brightness_command(level: int) -> bytes:
    level = min(BRIGHTNESS_MAX, max(BRIGHTNESS_MIN, int(level)))
    return _frame(0x00, 0x01, level)


def create_color_command(hex_color: str) -> bytes:
    r, g, b = hex_to_rgb(hex_color)
    return _frame(0x07, 0x05, 0x03, r, g, b, 0x10)
