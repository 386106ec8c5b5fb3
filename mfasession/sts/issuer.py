"""Temporary credential issuing through ``aws sts get-session-token``."""

from __future__ import annotations

import json
import logging
import os
import subprocess
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional

from ..errors import IssuingTimedOut, SessionTokenUnavailable
from ..settings import ProfileSettings

logger = logging.getLogger(__name__)

DEFAULT_EXECUTABLE = "aws"
# Inherited variables that would override the long-term keys handed to the CLI.
_SCRUBBED_ENV = ("AWS_SESSION_TOKEN", "AWS_SECURITY_TOKEN", "AWS_PROFILE", "AWS_DEFAULT_PROFILE")


@dataclass
class TemporaryCredential:
    """Short-lived credential set returned by STS."""

    aws_access_key_id: str
    aws_secret_access_key: str
    aws_session_token: str
    expiration: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_sts_response(cls, payload: Mapping[str, Any]) -> "TemporaryCredential":
        """Build a credential from a ``get-session-token`` JSON response.

        Raises :class:`SessionTokenUnavailable` when the response has no
        ``Credentials`` object or no ``SessionToken`` inside it.
        """

        credentials = payload.get("Credentials") if isinstance(payload, Mapping) else None
        if not isinstance(credentials, Mapping):
            raise SessionTokenUnavailable("Response does not contain Credentials.")
        if not credentials.get("SessionToken"):
            raise SessionTokenUnavailable("Unable to determine aws_session_token")
        return cls(
            aws_access_key_id=str(credentials.get("AccessKeyId", "")),
            aws_secret_access_key=str(credentials.get("SecretAccessKey", "")),
            aws_session_token=str(credentials["SessionToken"]),
            expiration=str(credentials.get("Expiration", "")),
        )


class AwsCliIssuer:
    """Obtain a session token by running the AWS CLI.

    The long-term keys are passed through the child's environment so nothing
    has to be written to the credentials file before issuing succeeds.
    """

    def __init__(
        self,
        executable: str = DEFAULT_EXECUTABLE,
        timeout: float = 30.0,
        duration_seconds: Optional[int] = None,
    ) -> None:
        self.executable = executable
        self.timeout = timeout
        self.duration_seconds = duration_seconds

    def build_command(self, code: str, serial: str) -> List[str]:
        command = [
            self.executable,
            "sts",
            "get-session-token",
            "--serial-number",
            serial,
            "--token-code",
            code,
            "--output",
            "json",
        ]
        if self.duration_seconds:
            command += ["--duration-seconds", str(self.duration_seconds)]
        return command

    def build_env(self, profile: ProfileSettings) -> Dict[str, str]:
        env = {key: value for key, value in os.environ.items() if key not in _SCRUBBED_ENV}
        env["AWS_ACCESS_KEY_ID"] = profile.aws_access_key_id
        env["AWS_SECRET_ACCESS_KEY"] = profile.aws_secret_access_key
        if profile.region:
            env["AWS_DEFAULT_REGION"] = profile.region
        return env

    def issue(self, code: str, serial: str, profile_name: str, profile: ProfileSettings) -> TemporaryCredential:
        command = self.build_command(code, serial)
        logger.info("Requesting session token for profile [%s] with device %s", profile_name, serial)
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=self.build_env(profile),
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise IssuingTimedOut(
                f"{self.executable} sts get-session-token did not finish within {self.timeout:g}s"
            ) from exc
        except OSError as exc:
            raise SessionTokenUnavailable(f"Unable to run {self.executable}: {exc}") from exc

        if result.returncode != 0:
            logger.debug("get-session-token stderr: %s", result.stderr.strip())
            message = result.stderr.strip() or f"exit status {result.returncode}"
            raise SessionTokenUnavailable(f"get-session-token failed: {message}")
        try:
            payload = json.loads(result.stdout)
        except ValueError as exc:
            raise SessionTokenUnavailable("get-session-token returned output that is not JSON.") from exc
        return TemporaryCredential.from_sts_response(payload)
