import plistlib

import pytest
from asn1crypto import cms

from ipasigner.src.core.errors import EntitlementsExtractionFailure, ProfileDecodeFailure
from ipasigner.src.ipa.entitlements_extractor import (
    Asn1ProfileDecoder,
    EntitlementsExtractor,
    PlistBuddyQuery,
    PlistlibQuery,
    SecurityCmsDecoder,
    build_entitlements_extractor,
)
from ipasigner.src.utils.config_loader import get_signing_config
from ipasigner.src.utils.process import ToolOutput
from tests.fakes import ENTITLEMENTS, CopyDecoder, FakeRunner, make_profile


def make_cms_profile(path, payload: bytes):
    """Wrap a plist in an unsigned CMS envelope, the way profiles are stored"""
    content_info = cms.ContentInfo(
        {
            "content_type": "signed_data",
            "content": cms.SignedData(
                {
                    "version": "v1",
                    "digest_algorithms": [],
                    "encap_content_info": {"content_type": "data", "content": payload},
                    "signer_infos": [],
                }
            ),
        }
    )
    path.write_bytes(content_info.dump())
    return path


def test_security_decoder_runs_cms(tmp_path):
    profile = make_profile(tmp_path / "Dev.mobileprovision")
    out = tmp_path / "profile.plist"

    def decode(args):
        out.write_bytes(profile.read_bytes())
        return ToolOutput(0, "")

    runner = FakeRunner({"security": decode})
    SecurityCmsDecoder("/usr/bin/security", runner).decode(profile, out)

    assert runner.calls[0] == [
        "/usr/bin/security",
        "cms",
        "-D",
        "-i",
        str(profile),
        "-o",
        str(out),
    ]


def test_security_decoder_failure(tmp_path):
    runner = FakeRunner({"security": ToolOutput(1, "security: failed to decode message")})

    with pytest.raises(ProfileDecodeFailure) as excinfo:
        SecurityCmsDecoder("/usr/bin/security", runner).decode(
            tmp_path / "Bad.mobileprovision", tmp_path / "profile.plist"
        )

    assert "failed to decode message" in excinfo.value.details()


def test_asn1_decoder_reads_embedded_plist(tmp_path):
    payload = plistlib.dumps({"Entitlements": ENTITLEMENTS})
    profile = make_cms_profile(tmp_path / "Dev.mobileprovision", payload)

    out = Asn1ProfileDecoder().decode(profile, tmp_path / "profile.plist")

    assert out.read_bytes() == payload


def test_asn1_decoder_rejects_garbage(tmp_path):
    profile = tmp_path / "Bad.mobileprovision"
    profile.write_bytes(b"not a profile at all")

    with pytest.raises(ProfileDecodeFailure):
        Asn1ProfileDecoder().decode(profile, tmp_path / "profile.plist")


def test_plistbuddy_query_writes_stdout(tmp_path):
    xml = plistlib.dumps(ENTITLEMENTS).decode()
    runner = FakeRunner({"PlistBuddy": ToolOutput(0, xml)})
    out = tmp_path / "entitlements.plist"

    PlistBuddyQuery("/usr/libexec/PlistBuddy", runner).extract(
        tmp_path / "profile.plist", "Entitlements", out
    )

    assert runner.calls[0][1:4] == ["-x", "-c", "Print :Entitlements"]
    assert plistlib.loads(out.read_bytes()) == ENTITLEMENTS


def test_plistbuddy_query_failure(tmp_path):
    runner = FakeRunner({"PlistBuddy": ToolOutput(1, 'Print: Entry, ":Entitlements", Does Not Exist')})

    with pytest.raises(EntitlementsExtractionFailure):
        PlistBuddyQuery("/usr/libexec/PlistBuddy", runner).extract(
            tmp_path / "profile.plist", "Entitlements", tmp_path / "entitlements.plist"
        )


def test_plistlib_query_missing_key(tmp_path):
    plist = make_profile(tmp_path / "profile.plist", entitlements=None)

    with pytest.raises(EntitlementsExtractionFailure):
        PlistlibQuery().extract(plist, "Entitlements", tmp_path / "entitlements.plist")


def test_plistlib_query_unreadable_plist(tmp_path):
    plist = tmp_path / "profile.plist"
    plist.write_bytes(b"\x00\x01 binary junk")

    with pytest.raises(EntitlementsExtractionFailure):
        PlistlibQuery().extract(plist, "Entitlements", tmp_path / "entitlements.plist")


def test_extract_entitlements_writes_into_work_dir(tmp_path):
    profile = make_profile(tmp_path / "Dev.mobileprovision")
    work_dir = tmp_path / "work"
    work_dir.mkdir()

    path = EntitlementsExtractor(CopyDecoder(), PlistlibQuery()).extract_entitlements(
        profile, work_dir
    )

    assert path == work_dir / "entitlements.plist"
    assert (work_dir / "profile.plist").exists()
    assert plistlib.loads(path.read_bytes()) == ENTITLEMENTS


def test_read_profile(tmp_path):
    profile = make_profile(tmp_path / "Dev.mobileprovision")

    data = EntitlementsExtractor(CopyDecoder(), PlistlibQuery()).read_profile(profile)

    assert data["TeamIdentifier"] == ["TEAMID"]
    assert data["Entitlements"] == ENTITLEMENTS


def test_build_extractor_defaults_to_macos_tools():
    extractor = build_entitlements_extractor(get_signing_config({}))

    assert isinstance(extractor.decoder, SecurityCmsDecoder)
    assert isinstance(extractor.query, PlistBuddyQuery)
    assert extractor.query.executable == "/usr/libexec/PlistBuddy"


def test_build_extractor_portable_backends():
    config = get_signing_config(
        {"signing": {"profile_decoder": "asn1", "plist_query": "plistlib"}}
    )
    extractor = build_entitlements_extractor(config)

    assert isinstance(extractor.decoder, Asn1ProfileDecoder)
    assert isinstance(extractor.query, PlistlibQuery)


def test_plistbuddy_warnings_stay_out_of_entitlements(tmp_path):
    xml = plistlib.dumps(ENTITLEMENTS).decode()
    tool = tmp_path / "PlistBuddy"
    tool.write_text(
        "#!/bin/sh\n"
        "echo 'warning: something' >&2\n"
        f"cat <<'PLIST'\n{xml}PLIST\n"
    )
    tool.chmod(0o755)
    out = tmp_path / "entitlements.plist"

    PlistBuddyQuery(str(tool)).extract(tmp_path / "profile.plist", "Entitlements", out)

    assert plistlib.loads(out.read_bytes()) == ENTITLEMENTS
