import shutil
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ipasigner.logger import get_console
from ipasigner.src.core.codesign import CodesignTool
from ipasigner.src.core.errors import (
    PreconditionError,
    SigningError,
    WorkspaceError,
)
from ipasigner.src.ipa.archive import ZipArchiveTool
from ipasigner.src.ipa.bundle import AppBundle
from ipasigner.src.ipa.entitlements_extractor import (
    EntitlementsExtractor,
    build_entitlements_extractor,
)
from ipasigner.src.utils.config_loader import get_signing_config


class Stage(Enum):
    ACQUIRE_WORKSPACE = "acquire_workspace"
    EXTRACT = "extract"
    LOCATE_BUNDLE = "locate_bundle"
    STRIP_SIGNATURES = "strip_signatures"
    INJECT_PROFILE = "inject_profile"
    EXTRACT_ENTITLEMENTS = "extract_entitlements"
    SIGN_NESTED = "sign_nested"
    SIGN_MAIN = "sign_main"
    REPACKAGE = "repackage"
    CLEANUP = "cleanup"


@dataclass(frozen=True)
class SigningRequest:
    """Inputs of one signing run"""

    ipa_path: Path
    profile_path: Path
    identity: str
    output_dir: Optional[Path] = None


@dataclass(frozen=True)
class ProgressEvent:
    stage: Stage
    message: str


@dataclass
class PipelineResult:
    """Terminal outcome of a run: an output path or the error that stopped it"""

    output_path: Optional[Path] = None
    error: Optional[SigningError] = None
    progress: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None and self.output_path is not None

    def unwrap(self) -> Path:
        if self.error is not None:
            raise self.error
        return self.output_path


ProgressSink = Callable[[ProgressEvent], None]


def signed_output_path(ipa_path: Path, output_dir: Optional[Path] = None) -> Path:
    """<stem>-signed<suffix> in ``output_dir``, or next to the input"""
    ipa_path = Path(ipa_path).resolve()
    target_dir = Path(output_dir).resolve() if output_dir else ipa_path.parent
    suffix = ipa_path.suffix or ".ipa"
    return target_dir / f"{ipa_path.stem}-signed{suffix}"


class Workspace:
    """Exclusively owned temporary directory, removed on exit no matter what"""

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root) if root else None
        self.path: Optional[Path] = None
        self.console = get_console()

    def __enter__(self) -> "Workspace":
        try:
            self.path = Path(
                tempfile.mkdtemp(
                    prefix="ipasigner-", dir=str(self.root) if self.root else None
                )
            )
        except OSError as e:
            raise WorkspaceError(f"Could not create a temporary workspace: {e}")
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.cleanup()
        return False

    def cleanup(self) -> bool:
        """Remove the workspace; False if it could not be removed"""
        if self.path is None or not self.path.exists():
            return True
        try:
            shutil.rmtree(self.path)
        except OSError as e:
            # Never mask the error that got us here
            self.console.log(
                f"[red]{Stage.CLEANUP.value}: could not remove workspace {self.path}:[/] {e}"
            )
            return False
        self.console.log(f"[dim]{Stage.CLEANUP.value}: removed workspace {self.path}[/]")
        return True


class SigningPipeline:
    """Re-signs an IPA with a new identity and provisioning profile.

    The run is strictly ordered: unpack, strip old signatures, embed the
    profile, extract its entitlements, sign Frameworks/ then PlugIns/ then the
    app itself, and zip Payload/ back up. Nested code is always signed before
    the bundle containing it.
    """

    def __init__(
        self,
        archive_tool=None,
        signer=None,
        extractor: Optional[EntitlementsExtractor] = None,
        workspace_root: Optional[Path] = None,
    ):
        self.console = get_console()
        self.archive_tool = archive_tool or ZipArchiveTool()
        self.signer = signer or CodesignTool()
        self.extractor = extractor or EntitlementsExtractor()
        self.workspace_root = workspace_root

    def execute(
        self, request: SigningRequest, sink: Optional[ProgressSink] = None
    ) -> PipelineResult:
        """Run the whole pipeline; failures come back inside the result"""
        progress: List[str] = []

        def emit(stage: Stage, message: str) -> None:
            progress.append(message)
            self.console.log(f"[cyan]{message}[/]")
            if sink is not None:
                sink(ProgressEvent(stage, message))

        try:
            self._check_request(request)
            output_path = self._run(request, emit)
        except SigningError as e:
            self.console.log(f"[red]Signing failed:[/] {e.summary()}")
            return PipelineResult(error=e, progress=progress)

        return PipelineResult(output_path=output_path, progress=progress)

    def sign(self, request: SigningRequest, sink: Optional[ProgressSink] = None) -> Path:
        """Like execute, but raises the failure instead of returning it"""
        return self.execute(request, sink).unwrap()

    def _check_request(self, request: SigningRequest) -> None:
        if not request.ipa_path or not Path(request.ipa_path).is_file():
            raise PreconditionError(f"IPA file not found: {request.ipa_path}")
        if not request.profile_path or not Path(request.profile_path).is_file():
            raise PreconditionError(
                f"Provisioning profile not found: {request.profile_path}"
            )
        if not request.identity or not request.identity.strip():
            raise PreconditionError("No signing identity selected")

    def _run(self, request: SigningRequest, emit: Callable[[Stage, str], None]) -> Path:
        ipa_path = Path(request.ipa_path).resolve()
        profile_path = Path(request.profile_path).resolve()
        output_path = signed_output_path(ipa_path, request.output_dir)

        with Workspace(self.workspace_root) as workspace:
            work_dir = workspace.path
            emit(Stage.ACQUIRE_WORKSPACE, f"Created workspace: {work_dir}")

            size_mb = ipa_path.stat().st_size / 1024.0 / 1024.0
            self.console.log(f"[blue]Unpacking {ipa_path.name} ({size_mb:.1f} MB)...[/]")
            self.archive_tool.extract(ipa_path, work_dir)
            emit(Stage.EXTRACT, f"Extracted {ipa_path.name} ({size_mb:.1f} MB)")

            bundle = AppBundle.locate(work_dir)
            emit(Stage.LOCATE_BUNDLE, f"Found app bundle: {bundle.name}")

            try:
                removed = bundle.strip_signatures()
            except OSError as e:
                raise WorkspaceError(f"Could not remove old signatures: {e}")
            emit(Stage.STRIP_SIGNATURES, f"Removed {len(removed)} old signature(s)")

            try:
                embedded = bundle.inject_profile(profile_path)
            except OSError as e:
                raise WorkspaceError(f"Could not embed provisioning profile: {e}")
            emit(
                Stage.INJECT_PROFILE,
                f"Embedded provisioning profile in {len(embedded)} bundle(s)",
            )

            entitlements = self.extractor.extract_entitlements(
                bundle.path / "embedded.mobileprovision", work_dir
            )
            emit(Stage.EXTRACT_ENTITLEMENTS, "Extracted entitlements from profile")

            frameworks = bundle.frameworks()
            for framework in frameworks:
                self.signer.sign(framework, request.identity)
            extensions = bundle.extensions()
            for extension in extensions:
                self.signer.sign(extension, request.identity, entitlements)
            emit(
                Stage.SIGN_NESTED,
                f"Signed {len(frameworks)} framework(s) and {len(extensions)} extension(s)",
            )

            self.signer.sign(bundle.path, request.identity, entitlements)
            emit(Stage.SIGN_MAIN, f"Signed {bundle.name}")

            self._repackage(work_dir, output_path)
            emit(Stage.REPACKAGE, f"Signed IPA written to: {output_path}")

        return output_path

    def _repackage(self, work_dir: Path, output_path: Path) -> None:
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            if output_path.exists():
                output_path.unlink()
        except OSError as e:
            raise WorkspaceError(f"Could not prepare output {output_path}: {e}")

        self.console.log("[blue]Repackaging IPA...[/]")
        try:
            self.archive_tool.create(work_dir, "Payload", output_path)
        except SigningError:
            # zip may leave a truncated archive behind
            if output_path.exists():
                output_path.unlink()
            raise


def build_signing_pipeline(
    signing_config: Optional[Dict[str, Any]] = None,
) -> SigningPipeline:
    """Assemble a pipeline from the [signing] config table"""
    signing_config = signing_config or get_signing_config()
    workspace_dir = signing_config.get("workspace_dir") or None

    return SigningPipeline(
        archive_tool=ZipArchiveTool(signing_config["unzip"], signing_config["zip"]),
        signer=CodesignTool(signing_config["codesign"]),
        extractor=build_entitlements_extractor(signing_config),
        workspace_root=Path(workspace_dir) if workspace_dir else None,
    )
