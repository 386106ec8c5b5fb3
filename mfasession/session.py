"""Renewal of a profile's temporary session credentials."""

from __future__ import annotations

import enum
import logging
import time
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

from .errors import CredentialNotSaved, FileAccessError
from .io.file_utils import CredentialFileManager
from .otp import otp_utils
from .settings import DEFAULT_SETTINGS_FILE, ProfileSettings, select_profile
from .sts.issuer import TemporaryCredential

logger = logging.getLogger(__name__)


class CredentialIssuer(Protocol):
    def issue(self, code: str, serial: str, profile_name: str, profile: ProfileSettings) -> TemporaryCredential:
        ...


class RenewalState(enum.Enum):
    VALIDATING = "validating"
    TOKEN_GENERATING = "token-generating"
    ISSUING = "issuing"
    PERSISTING = "persisting"
    DONE = "done"


class SessionRenewer:
    """Validate a profile, obtain a session token with a TOTP code and store it.

    Each stage runs only if the previous one succeeded. Nothing is written to
    disk before the issuer has returned a session token.
    """

    def __init__(
        self,
        profiles: Mapping[str, Mapping[str, Any]],
        profile_name: str,
        files: CredentialFileManager,
        issuer: CredentialIssuer,
        clock: Callable[[], float] = time.time,
        settings_source: str = DEFAULT_SETTINGS_FILE,
    ) -> None:
        self.profiles = profiles
        self.profile_name = profile_name
        self.files = files
        self.issuer = issuer
        self.clock = clock
        self.settings_source = settings_source
        self.state: Optional[RenewalState] = None

    def _enter(self, state: RenewalState) -> None:
        self.state = state
        logger.debug("Profile [%s]: %s", self.profile_name, state.value)

    def renew(self) -> TemporaryCredential:
        self._enter(RenewalState.VALIDATING)
        profile = select_profile(self.profiles, self.profile_name, self.settings_source)

        self._enter(RenewalState.TOKEN_GENERATING)
        code = otp_utils.generate_totp(profile.mfa_secret_key, self.clock())

        self._enter(RenewalState.ISSUING)
        credential = self.issuer.issue(code, profile.serial, self.profile_name, profile)

        self._enter(RenewalState.PERSISTING)
        try:
            self.persist(profile, credential)
        except (FileAccessError, ValueError) as exc:
            raise CredentialNotSaved(credential, exc) from exc

        self._enter(RenewalState.DONE)
        logger.info("Token renewed for profile [%s], expires %s", self.profile_name, credential.expiration)
        return credential

    def persist(self, profile: ProfileSettings, credential: TemporaryCredential) -> None:
        identity = profile.identity()
        self.files.update_config(self.profile_name, identity)
        merged: Dict[str, str] = {**identity, **credential.to_dict()}
        self.files.update_credentials(self.profile_name, merged)
