from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional

import toml

from ipasigner.logger import get_console
from ipasigner.src.utils.config_loader import get_home_dir


def get_state_path() -> Path:
    """Return the path to the file remembering the last used inputs."""
    return get_home_dir() / "state.toml"


@dataclass
class LastUsed:
    """Inputs of the last successful signing run"""

    ipa_path: str = ""
    profile_path: str = ""
    output_dir: str = ""
    identity: str = ""

    # The stored paths are kept as-is; callers only reuse the ones that
    # still exist.
    def restorable_ipa_path(self) -> Optional[Path]:
        return _existing_file(self.ipa_path)

    def restorable_profile_path(self) -> Optional[Path]:
        return _existing_file(self.profile_path)

    def restorable_output_dir(self) -> Optional[Path]:
        return Path(self.output_dir) if self.output_dir else None


def _existing_file(value: str) -> Optional[Path]:
    if not value:
        return None
    path = Path(value)
    return path if path.is_file() else None


def load_last_used(state_path: Optional[Path] = None) -> LastUsed:
    """Load the persisted inputs; an unreadable file counts as empty"""
    state_path = state_path or get_state_path()
    if not state_path.exists():
        return LastUsed()

    try:
        data = toml.load(state_path)
    except Exception as e:
        get_console().log(f"[yellow]Ignoring unreadable state file {state_path}:[/] {e}")
        return LastUsed()

    known = {k: str(v) for k, v in data.get("last_used", {}).items() if k in LastUsed.__dataclass_fields__}
    return LastUsed(**known)


def save_last_used(last_used: LastUsed, state_path: Optional[Path] = None) -> Path:
    state_path = state_path or get_state_path()
    state_path.parent.mkdir(parents=True, exist_ok=True)
    with open(state_path, "w") as f:
        toml.dump({"last_used": asdict(last_used)}, f)
    return state_path
