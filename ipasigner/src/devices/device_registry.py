import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

from ipasigner.logger import get_console
from ipasigner.src.core.tool_locator import ToolLocator, get_tool_locator
from ipasigner.src.utils.process import run_tool

DEFAULT_DEVICE_NAME = "iOS Device"

# Product names the USB inventory reports for devices we can install on
DEVICE_NAME_MARKERS = ("iPhone", "iPad", "iPod")


class DeviceSource(Enum):
    PRIMARY = "idevice_id"
    INVENTORY = "system_profiler"


@dataclass(frozen=True)
class Device:
    identifier: str  # UDID, or USB serial number from the inventory
    name: str
    source: DeviceSource


def find_inventory_devices(items: Any) -> List[Device]:
    """Walk a system_profiler USB tree and collect iOS devices.

    Anything that is not the expected shape is skipped rather than reported.
    """
    devices = []
    if not isinstance(items, list):
        return devices

    for item in items:
        if not isinstance(item, dict):
            continue

        name = item.get("_name")
        serial = item.get("serial_num")
        if (
            isinstance(name, str)
            and isinstance(serial, str)
            and serial
            and any(marker in name for marker in DEVICE_NAME_MARKERS)
        ):
            devices.append(Device(serial, name, DeviceSource.INVENTORY))

        devices.extend(find_inventory_devices(item.get("_items")))

    return devices


def default_selection(devices: List[Device]) -> Optional[str]:
    """The device to preselect: the only one, or none when there is a choice"""
    if len(devices) == 1:
        return devices[0].identifier
    return None


class DeviceRegistry:
    """Discovers attached iOS devices"""

    def __init__(
        self,
        locator: Optional[ToolLocator] = None,
        runner=run_tool,
        system_profiler: str = "/usr/sbin/system_profiler",
    ):
        self.console = get_console()
        self.locator = locator or get_tool_locator()
        self.runner = runner
        self.system_profiler = system_profiler

    def list_devices(self) -> List[Device]:
        """Prefer libimobiledevice, fall back to the USB inventory"""
        devices = self._devices_from_idevice()
        if devices:
            return devices

        self.console.log("[dim]Falling back to system_profiler for device discovery[/]")
        return self._devices_from_inventory()

    def _devices_from_idevice(self) -> Optional[List[Device]]:
        idevice_id = self.locator.locate("idevice_id")
        if idevice_id is None:
            return None

        result = self.runner([idevice_id, "-l"])
        if not result.ok:
            self.console.log(
                f"[yellow]idevice_id exited with {result.exit_code}:[/] {result.output.strip()}"
            )
            return None

        udids = [line.strip() for line in result.output.splitlines() if line.strip()]
        return [
            Device(udid, self._device_name(udid), DeviceSource.PRIMARY)
            for udid in udids
        ]

    def _device_name(self, udid: str) -> str:
        idevicename = self.locator.locate("idevicename")
        if idevicename is None:
            return DEFAULT_DEVICE_NAME

        result = self.runner([idevicename, "-u", udid])
        name = result.output.strip() if result.ok else ""
        return name or DEFAULT_DEVICE_NAME

    def _devices_from_inventory(self) -> List[Device]:
        result = self.runner([self.system_profiler, "SPUSBDataType", "-json"])
        if not result.ok:
            self.console.log(
                f"[yellow]system_profiler exited with {result.exit_code}[/]"
            )
            return []

        try:
            data = json.loads(result.output)
        except ValueError:
            self.console.log("[yellow]system_profiler returned unreadable JSON[/]")
            return []

        if not isinstance(data, dict):
            return []
        return find_inventory_devices(data.get("SPUSBDataType"))
