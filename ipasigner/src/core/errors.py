from enum import Enum
from typing import List, Optional


class ErrorKind(Enum):
    WORKSPACE = "workspace"
    EXTERNAL_TOOL = "external_tool"
    BUNDLE_NOT_FOUND = "bundle_not_found"
    PROFILE_DECODE = "profile_decode"
    ENTITLEMENTS_EXTRACTION = "entitlements_extraction"
    TOOL_MISSING = "tool_missing"
    PRECONDITION = "precondition"
    INSTALL = "install"


class SigningError(Exception):
    """Base class for every failure the signer reports to its callers"""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def summary(self) -> str:
        return self.message

    def details(self) -> str:
        """Summary plus whatever tool output was captured"""
        return self.summary()


class WorkspaceError(SigningError):
    kind = ErrorKind.WORKSPACE


class ExternalToolFailure(SigningError):
    """A delegated tool exited with a non-zero status"""

    kind = ErrorKind.EXTERNAL_TOOL

    def __init__(
        self,
        exit_code: int,
        output: str = "",
        command: Optional[List[str]] = None,
        message: Optional[str] = None,
    ):
        self.exit_code = exit_code
        self.output = output or ""
        self.command = list(command or [])
        if message is None:
            tool = self.command[0] if self.command else "tool"
            message = f"{tool} failed with exit code {exit_code}"
        super().__init__(message)

    def details(self) -> str:
        if not self.output.strip():
            return self.summary()
        return f"{self.summary()}\n{self.output.strip()}"


class BundleNotFoundError(SigningError):
    kind = ErrorKind.BUNDLE_NOT_FOUND


class ProfileDecodeFailure(SigningError):
    kind = ErrorKind.PROFILE_DECODE

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output

    def details(self) -> str:
        if not self.output.strip():
            return self.summary()
        return f"{self.summary()}\n{self.output.strip()}"


class EntitlementsExtractionFailure(SigningError):
    kind = ErrorKind.ENTITLEMENTS_EXTRACTION


class ToolMissing(SigningError):
    """An optional tool is not installed; advisory, carries a remediation hint"""

    kind = ErrorKind.TOOL_MISSING

    def __init__(self, tool: str, remediation: str = ""):
        self.tool = tool
        self.remediation = remediation
        super().__init__(f"{tool} is not installed")

    def details(self) -> str:
        if not self.remediation:
            return self.summary()
        return f"{self.summary()}\n{self.remediation}"


class PreconditionError(SigningError):
    kind = ErrorKind.PRECONDITION


class InstallFailure(ExternalToolFailure):
    kind = ErrorKind.INSTALL

    def __init__(
        self,
        exit_code: int,
        output: str = "",
        command: Optional[List[str]] = None,
        remediation: str = "",
    ):
        super().__init__(
            exit_code,
            output,
            command,
            message=f"Installation failed with exit code {exit_code}",
        )
        self.remediation = remediation

    def details(self) -> str:
        text = super().details()
        if self.remediation:
            text = f"{text}\n\n{self.remediation}"
        return text
