from pathlib import Path

from ipasigner.src.core.errors import ExternalToolFailure
from ipasigner.src.utils.process import run_tool


class ZipArchiveTool:
    """Unpacks and repacks IPAs with the system unzip/zip tools.

    Both run with their output discarded; an IPA of a few hundred MB makes
    them print thousands of lines and only the exit status matters.
    """

    def __init__(
        self,
        unzip: str = "/usr/bin/unzip",
        zip: str = "/usr/bin/zip",
        runner=run_tool,
    ):
        self.unzip = unzip
        self.zip = zip
        self.runner = runner

    def extract(self, archive_path: Path, dest_dir: Path) -> None:
        command = [self.unzip, "-o", "-q", archive_path, "-d", dest_dir]
        result = self.runner(command, quiet=True)
        if not result.ok:
            raise ExternalToolFailure(
                result.exit_code,
                result.output,
                [str(c) for c in command],
                message=f"Extracting {Path(archive_path).name} failed with exit code {result.exit_code}",
            )

    def create(self, source_dir: Path, entry: str, archive_path: Path) -> None:
        """Compress ``source_dir/entry`` into ``archive_path`` with paths rooted at ``entry``"""
        command = [self.zip, "-r", "-q", archive_path, entry]
        result = self.runner(command, cwd=source_dir, quiet=True)
        if not result.ok:
            raise ExternalToolFailure(
                result.exit_code,
                result.output,
                [str(c) for c in command],
                message=f"Packaging {Path(archive_path).name} failed with exit code {result.exit_code}",
            )
