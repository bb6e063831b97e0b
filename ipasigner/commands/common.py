import sys
from typing import List, Optional

from rich.prompt import IntPrompt
from rich.table import Table

from ipasigner.src.core.errors import SigningError, ToolMissing
from ipasigner.src.devices.device_registry import (
    Device,
    DeviceRegistry,
    default_selection,
)


def print_failure(console, error: SigningError) -> None:
    """One summarized line, then whatever the tool printed"""
    console.print(f"\n[red]Error:[/] {error.summary()}")
    extra = error.details()[len(error.summary()) :].strip()
    if not extra:
        return
    if isinstance(error, ToolMissing):
        console.print(f"[yellow]{extra}[/]")
    else:
        console.print(f"[dim]{extra}[/]")


def print_device_table(console, devices: List[Device], numbered: bool = False) -> None:
    table = Table(title="Connected Devices")
    if numbered:
        table.add_column("#")
    table.add_column("Identifier")
    table.add_column("Name")
    table.add_column("Source")

    for index, device in enumerate(devices, start=1):
        row = [device.identifier, device.name, device.source.value]
        if numbered:
            row.insert(0, str(index))
        table.add_row(*row)

    console.print(table)


def choose_device(
    console, registry: DeviceRegistry, requested: Optional[str] = None
) -> Optional[str]:
    """Resolve the device to install on; None when the user has to pick one"""
    if requested:
        return requested

    devices = registry.list_devices()
    if not devices:
        console.print(
            "[red]No iOS devices found.[/] Connect the device over USB, unlock it "
            "and trust this computer."
        )
        return None

    selected = default_selection(devices)
    if selected:
        console.print(f"[blue]Using device:[/] {devices[0].name} ({selected})")
        return selected

    if not sys.stdin.isatty():
        print_device_table(console, devices)
        console.print("[red]Several devices connected, choose one with --device[/]")
        return None

    print_device_table(console, devices, numbered=True)
    index = IntPrompt.ask(
        "Select device",
        choices=[str(i) for i in range(1, len(devices) + 1)],
    )
    return devices[index - 1].identifier
