import plistlib
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from asn1crypto.cms import ContentInfo

from ipasigner.logger import get_console
from ipasigner.src.core.errors import (
    EntitlementsExtractionFailure,
    ProfileDecodeFailure,
)
from ipasigner.src.utils.config_loader import get_signing_config
from ipasigner.src.utils.process import run_tool

ENTITLEMENTS_KEY = "Entitlements"


class SecurityCmsDecoder:
    """Decodes a provisioning profile with `security cms -D`"""

    def __init__(self, executable: str = "/usr/bin/security", runner=run_tool):
        self.executable = executable
        self.runner = runner

    def decode(self, profile_path: Path, plist_path: Path) -> Path:
        result = self.runner(
            [self.executable, "cms", "-D", "-i", profile_path, "-o", plist_path]
        )
        if not result.ok or not Path(plist_path).exists():
            raise ProfileDecodeFailure(
                f"Could not decode provisioning profile: {profile_path}",
                result.output,
            )
        return Path(plist_path)


class Asn1ProfileDecoder:
    """Reads the plist straight out of the CMS envelope, no macOS tools needed"""

    def decode(self, profile_path: Path, plist_path: Path) -> Path:
        try:
            with open(profile_path, "rb") as f:
                content_info = ContentInfo.load(f.read())
            signed_data = content_info["content"]
            plist_data = signed_data["encap_content_info"]["content"].native
        except (OSError, ValueError, TypeError, KeyError) as e:
            raise ProfileDecodeFailure(
                f"Could not decode provisioning profile: {profile_path}", str(e)
            )

        if not isinstance(plist_data, bytes) or not plist_data:
            raise ProfileDecodeFailure(
                f"Provisioning profile has no embedded plist: {profile_path}"
            )

        Path(plist_path).write_bytes(plist_data)
        return Path(plist_path)


class PlistBuddyQuery:
    """Extracts a top-level key into its own plist with PlistBuddy"""

    def __init__(self, executable: str = "/usr/libexec/PlistBuddy", runner=run_tool):
        self.executable = executable
        self.runner = runner

    def extract(self, plist_path: Path, key: str, output_path: Path) -> Path:
        result = self.runner(
            [self.executable, "-x", "-c", f"Print :{key}", plist_path], stdout_only=True
        )
        if not result.ok or not result.output.strip():
            raise EntitlementsExtractionFailure(
                f"Could not extract {key} from decoded profile"
            )
        Path(output_path).write_text(result.output)
        return Path(output_path)


class PlistlibQuery:
    def extract(self, plist_path: Path, key: str, output_path: Path) -> Path:
        try:
            with open(plist_path, "rb") as f:
                data = plistlib.load(f)
        except Exception as e:
            raise EntitlementsExtractionFailure(
                f"Decoded profile is not a readable plist: {e}"
            )

        if not isinstance(data, dict) or key not in data:
            raise EntitlementsExtractionFailure(
                f"Could not extract {key} from decoded profile"
            )

        with open(output_path, "wb") as f:
            plistlib.dump(data[key], f)
        return Path(output_path)


class EntitlementsExtractor:
    """Turns a provisioning profile into an entitlements file for codesign"""

    def __init__(self, decoder=None, query=None):
        self.console = get_console()
        self.decoder = decoder or SecurityCmsDecoder()
        self.query = query or PlistBuddyQuery()

    def extract_entitlements(self, profile_path: Path, work_dir: Path) -> Path:
        """Decode ``profile_path`` and write its Entitlements to ``work_dir``"""
        work_dir = Path(work_dir)
        profile_plist = work_dir / "profile.plist"
        entitlements_plist = work_dir / "entitlements.plist"

        self.decoder.decode(Path(profile_path), profile_plist)
        self.query.extract(profile_plist, ENTITLEMENTS_KEY, entitlements_plist)

        self.console.log(f"[green]Extracted entitlements:[/] {entitlements_plist}")
        return entitlements_plist

    def read_profile(self, profile_path: Path) -> Dict[str, Any]:
        """Return the whole decoded profile as a dictionary"""
        with tempfile.TemporaryDirectory() as temp_dir:
            plist_path = self.decoder.decode(
                Path(profile_path), Path(temp_dir) / "profile.plist"
            )
            try:
                with open(plist_path, "rb") as f:
                    return plistlib.load(f)
            except Exception as e:
                raise ProfileDecodeFailure(
                    f"Decoded profile is not a readable plist: {profile_path}", str(e)
                )


def build_entitlements_extractor(
    signing_config: Optional[Dict[str, Any]] = None,
) -> EntitlementsExtractor:
    """Pick decoder and query backends from the [signing] config table"""
    signing_config = signing_config or get_signing_config()

    if signing_config.get("profile_decoder") == "asn1":
        decoder = Asn1ProfileDecoder()
    else:
        decoder = SecurityCmsDecoder(signing_config["security"])

    if signing_config.get("plist_query") == "plistlib":
        query = PlistlibQuery()
    else:
        query = PlistBuddyQuery(signing_config["plistbuddy"])

    return EntitlementsExtractor(decoder, query)
