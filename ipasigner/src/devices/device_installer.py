import shlex
from pathlib import Path
from typing import Optional

from ipasigner.logger import get_console
from ipasigner.src.core.errors import (
    ExternalToolFailure,
    InstallFailure,
    PreconditionError,
)
from ipasigner.src.core.tool_locator import ToolLocator, get_tool_locator
from ipasigner.src.utils.process import run_tool

INSTALLER_TOOL = "ideviceinstaller"

INSTALL_REMEDIATION = (
    "Things to try:\n"
    "1. Make sure the installer is present: brew install ideviceinstaller\n"
    "2. Unlock the device and tap 'Trust' when asked to trust this computer\n"
    "3. Open a new terminal and try again\n"
    "4. Or install manually from Xcode > Window > Devices and Simulators"
)

INSTALL_SUCCESS_HINT = (
    "If the app does not open, go to Settings > General > VPN & Device "
    "Management on the device and trust the developer certificate."
)


class DeviceInstaller:
    """Pushes a signed IPA to a device with ideviceinstaller"""

    def __init__(
        self,
        locator: Optional[ToolLocator] = None,
        runner=run_tool,
        login_shell: str = "/bin/zsh",
    ):
        self.console = get_console()
        self.locator = locator or get_tool_locator()
        self.runner = runner
        self.login_shell = login_shell

    def installer_available(self) -> bool:
        return self.locator.is_available(INSTALLER_TOOL)

    def install(self, artifact_path: Optional[Path], device_id: Optional[str]) -> str:
        """Install ``artifact_path`` on ``device_id`` and return the captured output"""
        if not artifact_path or not Path(artifact_path).is_file():
            raise PreconditionError("Sign an IPA before installing it")
        if not device_id or not device_id.strip():
            raise PreconditionError("No device selected")

        # Going through a login shell picks up Homebrew's PATH even when we
        # were started with a minimal environment
        shell_command = " ".join(
            [
                INSTALLER_TOOL,
                "-u",
                shlex.quote(device_id.strip()),
                "-i",
                shlex.quote(str(Path(artifact_path).resolve())),
            ]
        )
        command = [self.login_shell, "-l", "-c", shell_command]

        self.console.log(f"[blue]Installing {Path(artifact_path).name} on {device_id}[/]")
        result = self.runner(command)
        if not result.ok:
            raise InstallFailure(
                result.exit_code,
                result.output,
                command,
                remediation=INSTALL_REMEDIATION,
            )

        self.console.log("[green]Installed successfully[/]")
        return result.output

    def install_tool(self) -> str:
        """Install ideviceinstaller with Homebrew; not retried on failure"""
        brew = self.locator.require("brew")
        command = [str(brew), "install", INSTALLER_TOOL]

        self.console.log(f"[blue]Installing {INSTALLER_TOOL} with Homebrew...[/]")
        result = self.runner(command)
        if not result.ok:
            raise ExternalToolFailure(
                result.exit_code,
                result.output,
                command,
                message=(
                    f"Installing {INSTALLER_TOOL} failed, run it manually in a terminal:\n"
                    f"brew install {INSTALLER_TOOL}"
                ),
            )

        # A fresh install must be visible to the next lookup
        self.locator.forget(INSTALLER_TOOL)
        return result.output
