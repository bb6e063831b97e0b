import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ipasigner.logger import get_console
from ipasigner.src.core.errors import ExternalToolFailure

PathLike = Union[str, Path]


@dataclass
class ToolOutput:
    """Exit status and combined stdout/stderr of a finished tool"""

    exit_code: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def _as_args(command: Sequence[PathLike]) -> List[str]:
    return [str(part) for part in command]


def run_tool(
    command: Sequence[PathLike],
    cwd: Optional[PathLike] = None,
    quiet: bool = False,
    stdout_only: bool = False,
) -> ToolOutput:
    """Run a tool to completion and return its status; never raises on failure.

    With ``quiet`` both streams go to /dev/null, so tools that print a line per
    archive member cannot stall on a full pipe. A tool that cannot be launched
    is reported like a shell would: exit status 127 (or 126 when not executable).
    With ``stdout_only`` stderr is discarded, for tools whose stdout is the
    payload itself.
    """
    args = _as_args(command)
    get_console().log(f"[dim]$ {' '.join(args)}[/]")
    try:
        if quiet:
            result = subprocess.run(
                args,
                cwd=cwd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
            return ToolOutput(result.returncode)
        result = subprocess.run(
            args,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL if stdout_only else subprocess.STDOUT,
            text=True,
            errors="replace",
        )
    except FileNotFoundError as e:
        return ToolOutput(127, str(e))
    except PermissionError as e:
        return ToolOutput(126, str(e))
    return ToolOutput(result.returncode, result.stdout or "")


def check_tool(
    command: Sequence[PathLike],
    cwd: Optional[PathLike] = None,
    quiet: bool = False,
    runner=run_tool,
) -> ToolOutput:
    """Run a tool and raise ExternalToolFailure on a non-zero exit"""
    result = runner(command, cwd=cwd, quiet=quiet)
    if not result.ok:
        raise ExternalToolFailure(result.exit_code, result.output, _as_args(command))
    return result
