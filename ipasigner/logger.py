from functools import lru_cache

from rich.console import Console


@lru_cache(maxsize=1)
def get_console() -> Console:
    """Shared Console for command output and the per-tool log lines.

    Log lines carry a timestamp but no source location.
    """
    return Console(log_path=False, log_time_format="[%X]")
