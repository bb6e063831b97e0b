from ipasigner.commands.common import print_device_table
from ipasigner.commands.install import build_device_services
from ipasigner.logger import get_console


def run_devices_command(args) -> int:
    console = get_console()
    registry, installer = build_device_services()

    devices = registry.list_devices()
    if not devices:
        console.print("[yellow]No iOS devices found.[/]")
    else:
        print_device_table(console, devices)

    if not installer.installer_available():
        console.print(
            "[dim]ideviceinstaller is not installed; run `ipasigner install-tool` "
            "before installing apps.[/]"
        )
    return 0
