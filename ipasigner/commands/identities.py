import sys
from typing import Optional

from rich.prompt import IntPrompt
from rich.table import Table

from ipasigner.commands.common import print_failure
from ipasigner.logger import get_console
from ipasigner.src.core.errors import SigningError
from ipasigner.src.core.identity_registry import IdentityRegistry

NO_IDENTITIES_HINT = (
    "[yellow]No signing identities found yet.[/]\n"
    "Import your certificate with `ipasigner import-cert <file>` and list again."
)


def print_identity_table(console, identities, numbered: bool = False) -> None:
    table = Table(title="Signing Identities")
    if numbered:
        table.add_column("#")
    table.add_column("Identity")

    for index, identity in enumerate(identities, start=1):
        if numbered:
            table.add_row(str(index), identity)
        else:
            table.add_row(identity)

    console.print(table)


def choose_identity(
    console, registry: IdentityRegistry, remembered: str = ""
) -> Optional[str]:
    """Pick an identity: the remembered one if still valid, else the only one, else ask"""
    identities = registry.list_signing_identities()
    if not identities:
        console.print(NO_IDENTITIES_HINT)
        return None

    if remembered and remembered in identities:
        return remembered
    if len(identities) == 1:
        return identities[0]

    if not sys.stdin.isatty():
        print_identity_table(console, identities)
        console.print("[red]Several identities available, choose one with --identity[/]")
        return None

    print_identity_table(console, identities, numbered=True)
    index = IntPrompt.ask(
        "Select signing identity",
        choices=[str(i) for i in range(1, len(identities) + 1)],
        default=1,
    )
    return identities[index - 1]


def run_identities_command(args) -> int:
    console = get_console()
    identities = IdentityRegistry().list_signing_identities()

    if not identities:
        console.print(NO_IDENTITIES_HINT)
        return 0

    print_identity_table(console, identities)
    return 0


def run_import_cert_command(args) -> int:
    console = get_console()
    registry = IdentityRegistry()

    try:
        message = registry.import_certificate(args.cert_path, args.password)
    except SigningError as e:
        print_failure(console, e)
        return 1

    console.print(f"[green]{message}[/]")
    return 0
