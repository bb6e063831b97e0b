import argparse
import sys
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme
from rich_argparse import RichHelpFormatter
from ipasigner.arguments import (
    add_signing_arguments,
    add_install_arguments,
    add_import_cert_arguments,
    add_profile_arguments,
)
from ipasigner.logger import get_console
from ipasigner.src.constants.cli_constants import (
    __version__,
    get_banner_text,
    APP_DESCRIPTION,
    APP_NAME,
)


class IpaSignerHelpFormatter(RichHelpFormatter):
    """Custom formatter for the ipasigner CLI with rich styling."""

    def __init__(self, prog):
        super().__init__(prog, max_help_position=30, width=100)
        self.console = Console(
            theme=Theme(
                {
                    "command": "bold cyan",
                    "argument": "green",
                    "option": "yellow",
                    "version": "blue",
                    "title": "bold magenta",
                }
            )
        )

    def start_section(self, heading):
        # Make section headings more prominent
        heading_text = Text(heading, style="title")
        super().start_section(str(heading_text))


def display_banner():
    """Display a banner for ipasigner."""
    console = get_console()
    banner = get_banner_text()

    version_info = Text(f"v{__version__}", style="blue")
    tagline = Text(APP_DESCRIPTION, style="italic")

    panel = Panel.fit(
        Text.assemble(banner, "\n", tagline, "\n", version_info),
        border_style="green",
        padding=(1, 2),
    )
    console.print(panel)


def create_parser():
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description=f"{APP_NAME}: {APP_DESCRIPTION}",
        formatter_class=IpaSignerHelpFormatter,
        add_help=True,
    )

    parser.add_argument(
        "--version", action="version", version=f"{APP_NAME} {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command")

    sign_parser = subparsers.add_parser(
        "sign",
        help="Re-sign an IPA file",
        formatter_class=IpaSignerHelpFormatter,
        description="Re-sign an IPA with a signing identity and provisioning profile.",
    )
    add_signing_arguments(sign_parser)

    subparsers.add_parser(
        "identities",
        help="List signing identities",
        formatter_class=IpaSignerHelpFormatter,
        description="List the code signing identities available in your keychains.",
    )

    import_parser = subparsers.add_parser(
        "import-cert",
        help="Import a signing certificate",
        formatter_class=IpaSignerHelpFormatter,
        description="Import a .cer or .p12 certificate into the login keychain.",
    )
    add_import_cert_arguments(import_parser)

    profile_parser = subparsers.add_parser(
        "profile",
        help="Inspect a provisioning profile",
        formatter_class=IpaSignerHelpFormatter,
        description="Show a provisioning profile's team, expiry and entitlements.",
    )
    add_profile_arguments(profile_parser)

    subparsers.add_parser(
        "devices",
        help="List connected iOS devices",
        formatter_class=IpaSignerHelpFormatter,
        description="List iOS devices connected over USB.",
    )

    install_parser = subparsers.add_parser(
        "install",
        help="Install a signed IPA on a device",
        formatter_class=IpaSignerHelpFormatter,
        description="Install a signed IPA on a connected device with ideviceinstaller.",
    )
    add_install_arguments(install_parser)

    subparsers.add_parser(
        "install-tool",
        help="Install ideviceinstaller with Homebrew",
        formatter_class=IpaSignerHelpFormatter,
        description="Install the ideviceinstaller tool needed for device installs.",
    )

    return parser


def main():
    load_dotenv()

    # Display the banner before the help text
    if len(sys.argv) == 1 or "-h" in sys.argv or "--help" in sys.argv:
        display_banner()

    parser = create_parser()
    args = parser.parse_args()

    try:
        if args.command == "sign":
            from ipasigner.commands.sign import run_sign_command

            return run_sign_command(args)
        elif args.command == "identities":
            from ipasigner.commands.identities import run_identities_command

            return run_identities_command(args)
        elif args.command == "import-cert":
            from ipasigner.commands.identities import run_import_cert_command

            return run_import_cert_command(args)
        elif args.command == "profile":
            from ipasigner.commands.profile import run_profile_command

            return run_profile_command(args)
        elif args.command == "devices":
            from ipasigner.commands.devices import run_devices_command

            return run_devices_command(args)
        elif args.command == "install":
            from ipasigner.commands.install import run_install_command

            return run_install_command(args)
        elif args.command == "install-tool":
            from ipasigner.commands.install import run_install_tool_command

            return run_install_tool_command(args)
        else:
            parser.print_help()
            return 1
    except ValueError as e:
        # Broken config file
        get_console().print(f"[red]Error:[/] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
