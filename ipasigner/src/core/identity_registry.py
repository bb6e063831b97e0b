import re
from pathlib import Path
from typing import List, Optional

from ipasigner.logger import get_console
from ipasigner.src.core.errors import PreconditionError
from ipasigner.src.core.tool_locator import ToolLocator, get_tool_locator
from ipasigner.src.utils.process import check_tool, run_tool

IDENTITY_PATTERN = re.compile(r'"(.*)"')


def parse_identities(output: str) -> List[str]:
    """Pull the quoted display names out of `security find-identity` output.

    Names are returned once each, in the order they first appear.
    """
    identities = []
    for line in output.splitlines():
        match = IDENTITY_PATTERN.search(line)
        if not match:
            continue
        name = match.group(1).strip()
        if name and name not in identities:
            identities.append(name)
    return identities


class IdentityRegistry:
    """Lists and imports code signing identities in the user's keychains"""

    def __init__(self, locator: Optional[ToolLocator] = None, runner=run_tool):
        self.console = get_console()
        self.locator = locator or get_tool_locator()
        self.runner = runner

    def list_signing_identities(self) -> List[str]:
        """Return the usable signing identities; empty when none can be found"""
        security = self.locator.locate("security")
        if security is None:
            self.console.log("[yellow]security tool not found, no identities listed[/]")
            return []

        result = self.runner([security, "find-identity", "-v", "-p", "codesigning"])
        if not result.ok:
            self.console.log(
                f"[yellow]Identity lookup exited with {result.exit_code}[/]"
            )
        return parse_identities(result.output)

    def import_certificate(self, cert_path: Path, password: Optional[str] = None) -> str:
        """Import a .cer or .p12 into the login keychain and return a status message"""
        cert_path = Path(cert_path)
        if not cert_path.is_file():
            raise PreconditionError(f"Certificate file not found: {cert_path}")

        suffix = cert_path.suffix.lower()
        if suffix == ".cer":
            security = self.locator.require("security")
            check_tool(
                [security, "add-certificates", cert_path], runner=self.runner
            )
            return (
                "Certificate imported.\n\n"
                "A .cer only signs if its private key is already in this keychain, "
                "i.e. the CSR was created on this Mac."
            )

        if suffix == ".p12":
            if password is not None:
                security = self.locator.require("security")
                check_tool(
                    [
                        security,
                        "import",
                        cert_path,
                        "-f",
                        "pkcs12",
                        "-P",
                        password,
                        "-T",
                        "/usr/bin/codesign",
                    ],
                    runner=self.runner,
                )
                return "Certificate and private key imported."

            # No password given: let Keychain Access ask for it
            opener = self.locator.require("open")
            check_tool([opener, cert_path], runner=self.runner)
            return (
                "Opened Keychain Access to import the .p12.\n\n"
                "Enter the certificate password there, then list identities again."
            )

        raise PreconditionError(
            f"Unsupported certificate type '{cert_path.suffix}', expected .cer or .p12"
        )
