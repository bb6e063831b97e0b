from pathlib import Path
from typing import Optional

from ipasigner.logger import get_console
from ipasigner.src.utils.process import check_tool, run_tool


class CodesignTool:
    """Signs bundles and libraries in place with codesign"""

    def __init__(self, executable: str = "/usr/bin/codesign", runner=run_tool):
        self.console = get_console()
        self.executable = executable
        self.runner = runner

    def sign(
        self,
        target: Path,
        identity: str,
        entitlements: Optional[Path] = None,
    ) -> None:
        """Sign ``target`` with ``identity``, embedding ``entitlements`` when given"""
        cmd = [self.executable, "-f", "-s", identity]
        if entitlements:
            cmd.extend(["--entitlements", str(entitlements)])
        cmd.append(str(target))

        self.console.log(f"[blue]Signing:[/] {Path(target).name}")
        check_tool(cmd, runner=self.runner)
