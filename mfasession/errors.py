"""Exception types raised by mfa-session.

Every failure the tool can report has its own class so callers (and the CLI
exit codes) branch on the type rather than on message text.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .sts.issuer import TemporaryCredential


class MfaSessionError(Exception):
    """Base class for all mfa-session failures."""


class InvalidSecretFormat(MfaSessionError, ValueError):
    """Raised when an MFA secret is not valid Base32."""


class MissingProfile(MfaSessionError):
    """Raised when no profiles are configured or the requested one is absent."""

    def __init__(self, message: str, profile: Optional[str] = None) -> None:
        super().__init__(message)
        self.profile = profile


class IncompleteProfile(MfaSessionError):
    """Raised when a profile lacks one of the required settings or holds an unusable value."""

    def __init__(self, profile: str, field: str, source: str = "settings", reason: str = "does not exist") -> None:
        super().__init__(f"[{field}] of profile [{profile}] {reason} in {source}")
        self.profile = profile
        self.field = field


class SessionTokenUnavailable(MfaSessionError):
    """Raised when the issuing service refused or returned no session token."""


class IssuingTimedOut(MfaSessionError):
    """Raised when the issuing service did not answer in time."""


class FileAccessError(MfaSessionError, OSError):
    """Raised when a settings, config or credentials file cannot be read or written."""

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        return self.args[0]


class CredentialNotSaved(MfaSessionError):
    """Raised when a temporary credential was issued but could not be persisted.

    The issued credential is still attached so the operator can use it before
    it expires.
    """

    def __init__(self, credential: "TemporaryCredential", cause: Exception) -> None:
        super().__init__(f"Session token was issued but could not be saved: {cause}")
        self.credential = credential
        self.cause = cause
