import sys
from pathlib import Path

from rich.prompt import Confirm

from ipasigner.commands.common import choose_device, print_failure
from ipasigner.logger import get_console
from ipasigner.src.core.errors import SigningError
from ipasigner.src.devices.device_installer import (
    INSTALL_SUCCESS_HINT,
    DeviceInstaller,
)
from ipasigner.src.devices.device_registry import DeviceRegistry
from ipasigner.src.utils.config_loader import get_devices_config


def build_device_services():
    devices_config = get_devices_config()
    registry = DeviceRegistry(system_profiler=devices_config["system_profiler"])
    installer = DeviceInstaller(login_shell=devices_config["login_shell"])
    return registry, installer


def offer_tool_install(console, installer: DeviceInstaller) -> bool:
    """Ask to install ideviceinstaller when it is missing; True if it is usable"""
    if installer.installer_available():
        return True

    console.print("[yellow]ideviceinstaller was not found.[/]")
    if not sys.stdin.isatty():
        console.print("[dim]Run `ipasigner install-tool` to install it.[/]")
        return True
    if not Confirm.ask("Install it with Homebrew now?", default=True):
        # The login shell may still find it somewhere else
        return True

    try:
        installer.install_tool()
    except SigningError as e:
        print_failure(console, e)
        return False

    console.print("[green]ideviceinstaller installed[/]")
    return True


def install_to_device(console, ipa_path: Path, device_id=None) -> int:
    registry, installer = build_device_services()

    if not offer_tool_install(console, installer):
        return 1

    device_id = choose_device(console, registry, device_id)
    if not device_id:
        return 1

    try:
        with console.status("[bold blue]Installing on device..."):
            installer.install(ipa_path, device_id)
    except SigningError as e:
        print_failure(console, e)
        return 1

    console.print("[bold green]App installed on the device![/]")
    console.print(INSTALL_SUCCESS_HINT)
    return 0


def run_install_command(args) -> int:
    console = get_console()
    return install_to_device(console, args.ipa_path, args.device)


def run_install_tool_command(args) -> int:
    console = get_console()
    _, installer = build_device_services()

    if installer.installer_available():
        console.print("[green]ideviceinstaller is already installed[/]")
        return 0

    try:
        with console.status("[bold blue]Running brew install ideviceinstaller..."):
            installer.install_tool()
    except SigningError as e:
        print_failure(console, e)
        return 1

    console.print("[green]ideviceinstaller installed[/]")
    return 0
