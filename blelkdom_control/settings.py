# blelkdom_control/settings.py
"""Persisted settings for the BLELKDOM client.

A single JSON document holds the selected strip, the last color/power and
the user's custom presets:

    {
      "selectedDevice": {"id": ..., "name": ..., "address": ...} | null,
      "lastColor": "#RRGGBB",
      "lastPowerOn": false,
      "customPresets": [{"id": ..., "label": ..., "color": ...}]
    }

Single process, single writer; every setter rewrites the whole file.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from .const import DEFAULT_COLOR, DEFAULT_POWER_ON, ENV_SETTINGS_PATH, SETTINGS_NAME
from .models import CustomPreset, SavedDevice

_LOGGER = logging.getLogger(__name__)

_DEFAULTS: dict[str, Any] = {
    "lastColor": DEFAULT_COLOR,
    "lastPowerOn": DEFAULT_POWER_ON,
    "customPresets": [],
}


def default_settings_path() -> Path:
    env = os.environ.get(ENV_SETTINGS_PATH)
    if env:
        return Path(env).expanduser()
    base = os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config"
    return Path(base) / SETTINGS_NAME / f"{SETTINGS_NAME}.json"


class SettingsStore:
    def __init__(self, path: Optional[Union[str, Path]] = None) -> None:
        self.path = Path(path).expanduser() if path else default_settings_path()
        self._data = self._load()

    def _load(self) -> dict[str, Any]:
        data = dict(_DEFAULTS)
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return data
        except (OSError, ValueError) as ex:
            _LOGGER.warning("Ignoring unreadable settings file %s: %s", self.path, ex)
            return data
        if isinstance(raw, dict):
            data.update(raw)
        else:
            _LOGGER.warning("Ignoring settings file %s: expected a JSON object", self.path)
        return data

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._data, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)

    # ---- selected device ----
    def get_selected_device(self) -> Optional[SavedDevice]:
        raw = self._data.get("selectedDevice")
        if not isinstance(raw, dict) or "id" not in raw:
            return None
        return SavedDevice.from_dict(raw)

    def set_selected_device(self, device: Optional[SavedDevice]) -> None:
        self._data["selectedDevice"] = device.to_dict() if device else None
        self._save()

    # ---- last color / power ----
    def get_last_state(self) -> tuple[str, bool]:
        color = self._data.get("lastColor") or DEFAULT_COLOR
        power_on = bool(self._data.get("lastPowerOn", DEFAULT_POWER_ON))
        return str(color), power_on

    def persist_state(self, color: str, power_on: bool) -> None:
        self._data["lastColor"] = color
        self._data["lastPowerOn"] = bool(power_on)
        self._save()

    # ---- presets ----
    def get_custom_presets(self) -> list[CustomPreset]:
        presets: list[CustomPreset] = []
        for raw in self._data.get("customPresets") or []:
            try:
                presets.append(CustomPreset.from_dict(raw))
            except (KeyError, TypeError):
                _LOGGER.debug("Skipping malformed preset: %r", raw)
        return presets

    def save_custom_presets(self, presets: Iterable[CustomPreset]) -> None:
        self._data["customPresets"] = [preset.to_dict() for preset in presets]
        self._save()


__all__ = ["SettingsStore", "default_settings_path"]
