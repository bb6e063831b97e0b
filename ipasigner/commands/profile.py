import json

from ipasigner.commands.common import print_failure
from ipasigner.logger import get_console
from ipasigner.src.core.errors import SigningError
from ipasigner.src.ipa.entitlements_extractor import (
    ENTITLEMENTS_KEY,
    build_entitlements_extractor,
)


def print_profile_summary(console, data: dict) -> None:
    console.print("\n[bold]Provisioning Profile:[/bold]")
    console.print(f"[cyan]Name:[/] {data.get('Name', '-')}")
    console.print(f"[cyan]Team:[/] {data.get('TeamName', '-')}")
    team_ids = data.get("TeamIdentifier") or []
    if team_ids:
        console.print(f"[cyan]Team ID:[/] {', '.join(team_ids)}")
    console.print(f"[cyan]Expires:[/] {data.get('ExpirationDate', '-')}")

    devices = data.get("ProvisionedDevices")
    if devices is not None:
        console.print(f"[cyan]Provisioned devices:[/] {len(devices)}")
    elif data.get("ProvisionsAllDevices"):
        console.print("[cyan]Provisioned devices:[/] all")


def run_profile_command(args) -> int:
    console = get_console()

    if not args.profile_path.exists():
        console.print(f"[red]Error:[/] profile not found: {args.profile_path}")
        return 1

    extractor = build_entitlements_extractor()
    try:
        data = extractor.read_profile(args.profile_path)
    except SigningError as e:
        print_failure(console, e)
        return 1

    print_profile_summary(console, data)

    entitlements = data.get(ENTITLEMENTS_KEY)
    if entitlements is None:
        console.print("[red]The profile has no Entitlements[/]")
        return 1

    console.print("\n[bold]Entitlements:[/bold]")
    console.print_json(json.dumps(entitlements, default=str))
    return 0
