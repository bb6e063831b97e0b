from pathlib import Path
from typing import Optional
import sys

from ipasigner.commands.common import print_failure
from ipasigner.commands.identities import choose_identity
from ipasigner.commands.install import install_to_device
from ipasigner.logger import get_console
from ipasigner.src.core.identity_registry import IdentityRegistry
from ipasigner.src.core.job import SigningJob
from ipasigner.src.core.pipeline import (
    PipelineResult,
    ProgressEvent,
    SigningRequest,
    build_signing_pipeline,
)
from ipasigner.src.utils.settings import LastUsed, load_last_used, save_last_used


def resolve_path(given: Optional[Path], remembered: Optional[Path], what: str, console) -> Optional[Path]:
    """Explicit argument first, then the remembered value if it still exists"""
    if given:
        if not given.exists():
            console.print(f"[red]Error:[/] {what} not found: {given}")
            return None
        return given
    if remembered:
        console.print(f"[dim]Using last {what}: {remembered}[/]")
        return remembered
    console.print(f"[red]Error:[/] no {what} given")
    return None


def print_configuration_summary(console, request: SigningRequest) -> None:
    """Print the configuration summary."""
    console.print("\n[bold blue]Signing Configuration:[/]")
    console.print(f"[cyan]Input IPA:[/] {request.ipa_path}")
    console.print(f"[cyan]Provisioning profile:[/] {request.profile_path}")
    console.print(f"[cyan]Identity:[/] {request.identity}")
    console.print(
        f"[cyan]Output directory:[/] {request.output_dir or Path(request.ipa_path).parent}"
    )


def sign_application(console, request: SigningRequest) -> PipelineResult:
    """Sign on the background worker and stream its progress lines here"""
    job = SigningJob(build_signing_pipeline())
    result = None

    try:
        job.start(request)
        with console.status("[bold blue]Signing..."):
            for event in job.iter_events():
                if isinstance(event, ProgressEvent):
                    console.print(f"[green]✓[/] {event.message}")
                else:
                    result = event
    finally:
        job.shutdown()

    return result


def main(parsed_args) -> int:
    """Main sign function that does the actual work."""
    console = get_console()
    args = parsed_args
    last_used = load_last_used()

    ipa_path = resolve_path(
        args.ipa_path, last_used.restorable_ipa_path(), "IPA file", console
    )
    if not ipa_path:
        return 1

    profile_path = resolve_path(
        args.profile_path,
        last_used.restorable_profile_path(),
        "provisioning profile",
        console,
    )
    if not profile_path:
        return 1

    output_dir = args.output_dir or last_used.restorable_output_dir()

    identity = args.identity
    if not identity:
        identity = choose_identity(console, IdentityRegistry(), last_used.identity)
        if not identity:
            return 1

    request = SigningRequest(
        ipa_path=ipa_path,
        profile_path=profile_path,
        identity=identity,
        output_dir=output_dir,
    )
    print_configuration_summary(console, request)
    console.print()

    result = sign_application(console, request)
    if not result.ok:
        print_failure(console, result.error)
        return 1

    console.print(f"\n[bold green]Successfully signed IPA:[/] {result.output_path}")

    save_last_used(
        LastUsed(
            ipa_path=str(Path(ipa_path).resolve()),
            profile_path=str(Path(profile_path).resolve()),
            output_dir=str(output_dir) if output_dir else "",
            identity=identity,
        )
    )

    if args.install:
        return install_to_device(console, result.output_path, args.device)
    return 0


def run_sign_command(args):
    """Entry point for the sign command from CLI"""
    return main(parsed_args=args)


# For direct script execution - route through the CLI
if __name__ == "__main__":
    from ipasigner.cli import main as cli_main

    sys.exit(cli_main())
