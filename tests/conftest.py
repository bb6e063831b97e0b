from pathlib import Path

import pytest

from ipasigner.src.core.pipeline import SigningPipeline
from ipasigner.src.core.tool_locator import ToolLocator
from ipasigner.src.ipa.entitlements_extractor import (
    EntitlementsExtractor,
    PlistlibQuery,
)
from tests.fakes import (
    CopyDecoder,
    RecordingSigner,
    ZipfileArchiveTool,
    make_ipa,
    make_profile,
)

IDENTITY = "Apple Development: J. Doe (TEAMID)"


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep config and state files out of the real home directory"""
    home = tmp_path / "home"
    monkeypatch.setenv("IPASIGNER_HOME", str(home))
    monkeypatch.delenv("IPASIGNER_WORKSPACE_DIR", raising=False)
    monkeypatch.delenv("IPASIGNER_LOGIN_SHELL", raising=False)
    return home


@pytest.fixture
def workspace_root(tmp_path) -> Path:
    root = tmp_path / "workspaces"
    root.mkdir()
    return root


@pytest.fixture
def ipa_path(tmp_path) -> Path:
    inputs = tmp_path / "inputs"
    inputs.mkdir()
    return make_ipa(inputs / "App.ipa")


@pytest.fixture
def profile_path(tmp_path) -> Path:
    return make_profile(tmp_path / "Dev.mobileprovision")


@pytest.fixture
def signer() -> RecordingSigner:
    return RecordingSigner()


@pytest.fixture
def make_pipeline(workspace_root, signer):
    def factory(archive_tool=None, signer_override=None, extractor=None):
        return SigningPipeline(
            archive_tool=archive_tool or ZipfileArchiveTool(),
            signer=signer_override or signer,
            extractor=extractor or EntitlementsExtractor(CopyDecoder(), PlistlibQuery()),
            workspace_root=workspace_root,
        )

    return factory


@pytest.fixture
def tool_dir(tmp_path) -> Path:
    """Directory for fake tool binaries that ToolLocator can find"""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    return bin_dir


@pytest.fixture
def make_locator(tool_dir):
    """Locator where only the named tools exist"""

    def factory(*present):
        candidates = {}
        for tool in [
            "security",
            "open",
            "brew",
            "idevice_id",
            "idevicename",
            "ideviceinstaller",
        ]:
            path = tool_dir / tool
            if tool in present:
                path.write_text("#!/bin/sh\n")
            else:
                path.unlink(missing_ok=True)
            candidates[tool] = [path]
        return ToolLocator(candidates)

    return factory
