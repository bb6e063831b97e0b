import pytest

from ipasigner.src.core.errors import ExternalToolFailure, PreconditionError, ToolMissing
from ipasigner.src.core.identity_registry import IdentityRegistry, parse_identities
from ipasigner.src.utils.process import ToolOutput
from tests.fakes import FakeRunner

FIND_IDENTITY_OUTPUT = """\
  1) 1A2B3C4D5E6F708192A3B4C5D6E7F8091A2B3C4D "Apple Development: J. Doe (TEAMID)"
  2) 2B3C4D5E6F708192A3B4C5D6E7F8091A2B3C4D5E "Apple Distribution: Example Corp (TEAMID)"
  3) 1A2B3C4D5E6F708192A3B4C5D6E7F8091A2B3C4D "Apple Development: J. Doe (TEAMID)"
     3 valid identities found
"""


def test_duplicates_collapse_to_first_position():
    assert parse_identities(FIND_IDENTITY_OUTPUT) == [
        "Apple Development: J. Doe (TEAMID)",
        "Apple Distribution: Example Corp (TEAMID)",
    ]


def test_lists_identities_with_security(make_locator):
    runner = FakeRunner({"security": ToolOutput(0, FIND_IDENTITY_OUTPUT)})
    registry = IdentityRegistry(make_locator("security"), runner)

    identities = registry.list_signing_identities()

    assert identities[0] == "Apple Development: J. Doe (TEAMID)"
    assert len(identities) == 2
    assert runner.calls[0][1:] == ["find-identity", "-v", "-p", "codesigning"]


def test_missing_tool_gives_empty_list(make_locator):
    runner = FakeRunner()
    registry = IdentityRegistry(make_locator(), runner)

    assert registry.list_signing_identities() == []
    assert runner.calls == []


def test_no_matches_gives_empty_list(make_locator):
    runner = FakeRunner({"security": ToolOutput(0, "     0 valid identities found\n")})

    assert IdentityRegistry(make_locator("security"), runner).list_signing_identities() == []


def test_failing_tool_is_not_fatal(make_locator):
    runner = FakeRunner({"security": ToolOutput(1, "security: SecKeychainSearch failed")})

    assert IdentityRegistry(make_locator("security"), runner).list_signing_identities() == []


def test_import_cer(make_locator, tmp_path):
    cert = tmp_path / "dev.cer"
    cert.write_bytes(b"cert")
    runner = FakeRunner()

    message = IdentityRegistry(make_locator("security"), runner).import_certificate(cert)

    assert runner.calls[0][1:] == ["add-certificates", str(cert)]
    assert "private key" in message


def test_import_p12_with_password(make_locator, tmp_path):
    cert = tmp_path / "dev.p12"
    cert.write_bytes(b"p12")
    runner = FakeRunner()

    IdentityRegistry(make_locator("security"), runner).import_certificate(cert, "secret")

    call = runner.calls[0]
    assert call[1:3] == ["import", str(cert)]
    assert call[call.index("-P") + 1] == "secret"
    assert "/usr/bin/codesign" in call


def test_import_p12_without_password_opens_keychain_access(make_locator, tool_dir, tmp_path):
    cert = tmp_path / "dev.p12"
    cert.write_bytes(b"p12")
    runner = FakeRunner()

    message = IdentityRegistry(make_locator("security", "open"), runner).import_certificate(cert)

    assert runner.commands_for("open") == [[str(tool_dir / "open"), str(cert)]]
    assert "Keychain Access" in message


def test_import_failure_carries_tool_output(make_locator, tmp_path):
    cert = tmp_path / "dev.cer"
    cert.write_bytes(b"cert")
    runner = FakeRunner({"security": ToolOutput(1, "The specified item already exists in the keychain.")})

    with pytest.raises(ExternalToolFailure) as excinfo:
        IdentityRegistry(make_locator("security"), runner).import_certificate(cert)

    assert "already exists" in excinfo.value.details()


def test_import_without_helper(make_locator, tmp_path):
    cert = tmp_path / "dev.p12"
    cert.write_bytes(b"p12")

    with pytest.raises(ToolMissing):
        IdentityRegistry(make_locator("security"), FakeRunner()).import_certificate(cert)


def test_import_rejects_unknown_files(make_locator, tmp_path):
    registry = IdentityRegistry(make_locator("security"), FakeRunner())
    pem = tmp_path / "dev.pem"
    pem.write_text("pem")

    with pytest.raises(PreconditionError):
        registry.import_certificate(pem)
    with pytest.raises(PreconditionError):
        registry.import_certificate(tmp_path / "missing.cer")
