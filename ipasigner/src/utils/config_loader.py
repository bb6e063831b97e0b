import os
from pathlib import Path
import toml
from typing import Dict, Any, List, Optional


def get_home_dir() -> Path:
    """Return the directory holding config and persisted state."""
    env_home = os.environ.get("IPASIGNER_HOME")
    if env_home:
        return Path(env_home)
    return Path.home() / ".ipasigner"


def get_config_path() -> Path:
    """Return the path to the configuration file."""
    return get_home_dir() / "config.toml"


def load_config() -> Dict[str, Any]:
    """Load configuration from TOML file."""
    config_path = get_config_path()
    if not config_path.exists():
        return {}

    try:
        return toml.load(config_path)
    except Exception as e:
        raise ValueError(f"Failed to load config: {e}")


def get_tool_candidates(config: Optional[Dict[str, Any]] = None) -> Dict[str, List[Path]]:
    """Get per-tool candidate overrides from the [tools] table."""
    config = load_config() if config is None else config
    tools = config.get("tools", {})

    overrides = {}
    for name, paths in tools.items():
        if isinstance(paths, str):
            paths = [paths]
        overrides[name] = [Path(p) for p in paths]
    return overrides


def get_signing_config(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Get the [signing] table merged over the defaults."""
    config = load_config() if config is None else config
    signing = {
        "codesign": "/usr/bin/codesign",
        "unzip": "/usr/bin/unzip",
        "zip": "/usr/bin/zip",
        "security": "/usr/bin/security",
        "plistbuddy": "/usr/libexec/PlistBuddy",
        "profile_decoder": "security",
        "plist_query": "plistbuddy",
        "workspace_dir": "",
    }
    signing.update(config.get("signing", {}))

    # Environment wins over the file
    env_workspace = os.environ.get("IPASIGNER_WORKSPACE_DIR")
    if env_workspace:
        signing["workspace_dir"] = env_workspace

    return signing


def get_devices_config(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Get the [devices] table merged over the defaults."""
    config = load_config() if config is None else config
    devices = {
        "system_profiler": "/usr/sbin/system_profiler",
        "login_shell": "/bin/zsh",
    }
    devices.update(config.get("devices", {}))

    env_shell = os.environ.get("IPASIGNER_LOGIN_SHELL")
    if env_shell:
        devices["login_shell"] = env_shell

    return devices
