# blelkdom_control/blelkdomctl.py
"""BLELKDOM strip control CLI entrypoint.

Every strip command builds a client over the backend picked for this run (real
adapter, or simulation when no Bluetooth stack is present / --simulate is
given), performs one operation and disconnects again.
"""

from __future__ import annotations

import asyncio
import logging
import re
import uuid
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

import typer
from bleak.exc import BleakError
from rich import print
from rich.table import Table
from typer import Context
from typing_extensions import Annotated

from .client import BlelkdomClient
from .const import DEFAULT_BRIGHTNESS, DEFAULT_DISCOVERY_TIMEOUT
from .device import get_device
from .exception import BlelkdomError
from .models import CustomPreset, DeviceState
from .settings import SettingsStore

T = TypeVar("T")

_HEX_COLOR_RE = re.compile(r"^#?[0-9a-fA-F]{6}$")

app = typer.Typer(help="BLELKDOM LED strip control")
presets_app = typer.Typer(help="Custom color presets")
app.add_typer(presets_app, name="presets")


# ────────────────────────────────────────────────────────────────
# Global options
# ────────────────────────────────────────────────────────────────
@app.callback()
def _global_options(
    ctx: Context,
    debug: Annotated[
        bool,
        typer.Option("--debug/--no-debug", help="Enable verbose debug logging"),
    ] = False,
    simulate: Annotated[
        Optional[bool],
        typer.Option("--simulate/--no-simulate", help="Force (or forbid) simulation mode"),
    ] = None,
    settings: Annotated[
        Optional[Path],
        typer.Option("--settings", help="Path of the settings JSON file"),
    ] = None,
) -> None:
    ctx.obj = {"simulate": simulate, "settings": settings}

    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_time=False, show_level=True)],
    )
    if debug:
        logging.getLogger("bleak").setLevel(logging.DEBUG)
        logging.getLogger("blelkdom_control").setLevel(logging.DEBUG)


# ────────────────────────────────────────────────────────────────
# Helpers
# ────────────────────────────────────────────────────────────────
def _settings(ctx: Context) -> SettingsStore:
    return SettingsStore((ctx.obj or {}).get("settings"))


def _run_client(ctx: Context, func: Callable[[BlelkdomClient], Awaitable[T]]) -> T:
    """Run ``func`` against a fresh client and always disconnect afterwards."""
    obj = ctx.obj or {}

    async def _async_func() -> T:
        device = await get_device(simulate=obj.get("simulate"))
        client = BlelkdomClient(device, _settings(ctx))
        try:
            return await func(client)
        finally:
            await client.disconnect()

    try:
        return asyncio.run(_async_func())
    except (BlelkdomError, BleakError) as ex:
        print(f"[red]{ex}[/red]")
        raise typer.Exit(code=1) from ex


def _parse_color(value: str) -> str:
    if not _HEX_COLOR_RE.match(value.strip()):
        raise typer.BadParameter("Color must be 6 hex digits, e.g. #7fae02.")
    return "#" + value.strip().lstrip("#").lower()


def _print_state(state: DeviceState) -> None:
    table = Table("Field", "Value")
    table.add_row("Power", "on" if state.power_on else "off")
    table.add_row("Color", state.color)
    table.add_row("Brightness", f"{state.brightness}%")
    table.add_row("Connected", "yes" if state.connected else "no")
    selected = state.selected_device
    table.add_row("Selected", f"{selected.name} ({selected.id})" if selected else "-")
    print(table)


# ────────────────────────────────────────────────────────────────
# Discovery & selection
# ────────────────────────────────────────────────────────────────
@app.command(name="list-devices")
def list_devices(
    ctx: Context,
    timeout: Annotated[float, typer.Option(min=0.5)] = DEFAULT_DISCOVERY_TIMEOUT,
) -> None:
    """Scan for nearby strips."""
    print("Scanning for Bluetooth devices…")
    devices = _run_client(ctx, lambda client: client.discover_devices(timeout))
    table = Table("Name", "Id", "Address", "RSSI")
    for device in devices:
        table.add_row(
            device.name,
            device.id,
            device.address or "",
            "" if device.rssi is None else str(device.rssi),
        )
    print("Discovered devices:")
    print(table)


@app.command(name="select")
def select_device(
    ctx: Context,
    device: Annotated[str, typer.Argument(help="Device id, address or name from list-devices")],
    timeout: Annotated[float, typer.Option(min=0.5)] = DEFAULT_DISCOVERY_TIMEOUT,
) -> None:
    """Discover and remember a strip for later commands."""

    async def _select(client: BlelkdomClient) -> Optional[DeviceState]:
        wanted = device.strip().lower()
        for summary in await client.discover_devices(timeout):
            candidates = {summary.id.lower(), summary.name.strip().lower()}
            if summary.address:
                candidates.add(summary.address.lower())
            if wanted in candidates:
                return await client.save_selected_device(summary.to_saved())
        return None

    state = _run_client(ctx, _select)
    if state is None:
        print(f"[red]No discovered device matches {device!r}[/red]")
        raise typer.Exit(code=1)
    selected = state.selected_device
    print(f"Selected {selected.name} ({selected.id})")


@app.command(name="forget")
def forget_device(ctx: Context) -> None:
    """Clear the selected strip."""
    _run_client(ctx, lambda client: client.save_selected_device(None))
    print("Selection cleared")


@app.command(name="selected")
def selected_device(ctx: Context) -> None:
    """Show the selected strip."""
    selected = _settings(ctx).get_selected_device()
    if selected is None:
        print("No device selected")
        return
    print(f"{selected.name} id={selected.id} address={selected.address or '-'}")


@app.command(name="state")
def show_state(ctx: Context) -> None:
    """Show the last known state."""
    store = _settings(ctx)
    color, power_on = store.get_last_state()
    _print_state(
        DeviceState(
            power_on=power_on,
            color=color,
            brightness=DEFAULT_BRIGHTNESS,
            selected_device=store.get_selected_device(),
        )
    )


# ────────────────────────────────────────────────────────────────
# Strip commands
# ────────────────────────────────────────────────────────────────
@app.command(name="turn-on")
def turn_on(ctx: Context) -> None:
    """Turn the strip on."""
    _print_state(_run_client(ctx, lambda client: client.set_power(True)))


@app.command(name="turn-off")
def turn_off(ctx: Context) -> None:
    """Turn the strip off."""
    _print_state(_run_client(ctx, lambda client: client.set_power(False)))


@app.command(name="set-color")
def set_color(
    ctx: Context,
    color: Annotated[str, typer.Argument(help="Hex color, e.g. #7fae02")],
) -> None:
    """Set the strip color (also turns it on)."""
    hex_color = _parse_color(color)
    _print_state(_run_client(ctx, lambda client: client.set_color(hex_color)))


@app.command(name="brightness-up")
def brightness_up(ctx: Context) -> None:
    """Raise brightness by one step."""
    _print_state(_run_client(ctx, lambda client: client.increase_brightness()))


@app.command(name="brightness-down")
def brightness_down(ctx: Context) -> None:
    """Lower brightness by one step."""
    _print_state(_run_client(ctx, lambda client: client.decrease_brightness()))


# ────────────────────────────────────────────────────────────────
# Presets
# ────────────────────────────────────────────────────────────────
@presets_app.command(name="list")
def presets_list(ctx: Context) -> None:
    """List saved presets."""
    table = Table("Id", "Label", "Color")
    for preset in _settings(ctx).get_custom_presets():
        table.add_row(preset.id, preset.label, preset.color)
    print(table)


@presets_app.command(name="add")
def presets_add(
    ctx: Context,
    label: str,
    color: Annotated[str, typer.Argument(help="Hex color, e.g. #7fae02")],
) -> None:
    """Save a new preset."""
    store = _settings(ctx)
    preset = CustomPreset(id=uuid.uuid4().hex[:8], label=label, color=_parse_color(color))
    store.save_custom_presets([*store.get_custom_presets(), preset])
    print(f"Added preset {preset.id} ({preset.label} {preset.color})")


@presets_app.command(name="remove")
def presets_remove(ctx: Context, preset_id: str) -> None:
    """Delete a preset by id."""
    store = _settings(ctx)
    presets = store.get_custom_presets()
    remaining = [preset for preset in presets if preset.id != preset_id]
    if len(remaining) == len(presets):
        print(f"[red]No preset with id {preset_id!r}[/red]")
        raise typer.Exit(code=1)
    store.save_custom_presets(remaining)
    print(f"Removed preset {preset_id}")


@presets_app.command(name="apply")
def presets_apply(ctx: Context, preset_id: str) -> None:
    """Set the strip to a preset's color."""
    preset: Optional[CustomPreset] = next(
        (p for p in _settings(ctx).get_custom_presets() if p.id == preset_id), None
    )
    if preset is None:
        print(f"[red]No preset with id {preset_id!r}[/red]")
        raise typer.Exit(code=1)
    color = preset.color
    _print_state(_run_client(ctx, lambda client: client.set_color(color)))


if __name__ == "__main__":
    app()
