import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List

from ipasigner.src.core.errors import BundleNotFoundError

CODE_SIGNATURE_DIR = "_CodeSignature"
EMBEDDED_PROFILE = "embedded.mobileprovision"


@dataclass
class AppBundle:
    """The single .app inside an unpacked IPA's Payload directory"""

    path: Path

    @classmethod
    def locate(cls, unpack_dir: Path) -> "AppBundle":
        """Find Payload/<Name>.app; only the first level is looked at"""
        payload_dir = Path(unpack_dir) / "Payload"
        if not payload_dir.is_dir():
            raise BundleNotFoundError("No Payload directory found in the IPA")

        app_dir = next(
            (
                item
                for item in sorted(payload_dir.iterdir())
                if item.suffix == ".app" and item.is_dir()
            ),
            None,
        )
        if app_dir is None:
            raise BundleNotFoundError("No .app directory found in the IPA")
        return cls(app_dir)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def frameworks_dir(self) -> Path:
        return self.path / "Frameworks"

    @property
    def plugins_dir(self) -> Path:
        return self.path / "PlugIns"

    def frameworks(self) -> List[Path]:
        """Every entry under Frameworks/ (.framework bundles and bare dylibs)"""
        if not self.frameworks_dir.is_dir():
            return []
        return sorted(self.frameworks_dir.iterdir())

    def extensions(self) -> List[Path]:
        if not self.plugins_dir.is_dir():
            return []
        return sorted(
            item for item in self.plugins_dir.iterdir() if item.suffix == ".appex"
        )

    def strip_signatures(self) -> List[Path]:
        """Remove _CodeSignature from the bundle and its extensions"""
        removed = []
        for bundle_dir in [self.path, *self.extensions()]:
            signature = bundle_dir / CODE_SIGNATURE_DIR
            if signature.is_dir():
                shutil.rmtree(signature)
                removed.append(signature)
            elif signature.exists():
                signature.unlink()
                removed.append(signature)
        return removed

    def inject_profile(self, profile_path: Path) -> List[Path]:
        """Replace embedded.mobileprovision in the bundle and every extension"""
        written = []
        for bundle_dir in [self.path, *self.extensions()]:
            embedded = bundle_dir / EMBEDDED_PROFILE
            if embedded.exists() or embedded.is_symlink():
                embedded.unlink()
            shutil.copyfile(profile_path, embedded)
            written.append(embedded)
        return written
