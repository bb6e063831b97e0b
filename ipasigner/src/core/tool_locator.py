from pathlib import Path
from typing import Dict, List, Optional, Sequence
from functools import lru_cache

from ipasigner.src.core.errors import ToolMissing
from ipasigner.src.utils.config_loader import get_tool_candidates

# Homebrew installs land in one of a few prefixes; PATH is not searched.
DEFAULT_TOOL_CANDIDATES: Dict[str, List[Path]] = {
    "security": [Path("/usr/bin/security")],
    "open": [Path("/usr/bin/open")],
    "brew": [Path("/opt/homebrew/bin/brew"), Path("/usr/local/bin/brew")],
    "idevice_id": [
        Path("/opt/homebrew/bin/idevice_id"),
        Path("/usr/local/bin/idevice_id"),
    ],
    "idevicename": [
        Path("/opt/homebrew/bin/idevicename"),
        Path("/usr/local/bin/idevicename"),
    ],
    "ideviceinstaller": [
        Path("/usr/local/bin/ideviceinstaller"),
        Path("/opt/homebrew/bin/ideviceinstaller"),
    ],
}

HOMEBREW_INSTALL_HINT = (
    '/bin/bash -c "$(curl -fsSL '
    'https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh)"'
)

REMEDIATIONS: Dict[str, str] = {
    "brew": f"Install Homebrew first:\n\n{HOMEBREW_INSTALL_HINT}",
    "idevice_id": "Install libimobiledevice: brew install libimobiledevice",
    "idevicename": "Install libimobiledevice: brew install libimobiledevice",
    "ideviceinstaller": "Run `ipasigner install-tool` or: brew install ideviceinstaller",
}


class ToolLocator:
    """Resolves optional external tools from fixed candidate locations"""

    def __init__(self, candidates: Optional[Dict[str, Sequence[Path]]] = None):
        self.candidates: Dict[str, List[Path]] = {
            name: list(paths) for name, paths in DEFAULT_TOOL_CANDIDATES.items()
        }
        if candidates:
            for name, paths in candidates.items():
                self.candidates[name] = [Path(p) for p in paths]
        self._cache: Dict[str, Optional[Path]] = {}

    def locate(self, tool: str) -> Optional[Path]:
        """Return the first existing candidate for ``tool``, or None"""
        if tool in self._cache:
            return self._cache[tool]

        found = next(
            (path for path in self.candidates.get(tool, []) if path.exists()), None
        )
        self._cache[tool] = found
        return found

    def forget(self, tool: str) -> None:
        """Drop the cached lookup, e.g. right after installing the tool"""
        self._cache.pop(tool, None)

    def is_available(self, tool: str) -> bool:
        return self.locate(tool) is not None

    def require(self, tool: str) -> Path:
        path = self.locate(tool)
        if path is None:
            raise ToolMissing(tool, REMEDIATIONS.get(tool, ""))
        return path


@lru_cache(maxsize=1)
def get_tool_locator() -> ToolLocator:
    """Process-wide locator honouring the [tools] table of the config file"""
    return ToolLocator(get_tool_candidates())
