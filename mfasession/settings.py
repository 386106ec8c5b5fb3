"""Profile settings and runtime configuration for mfa-session.

Long-term credentials and MFA details live in a JSON settings file under a
``"profiles"`` key (by default ``package.json`` in the working directory)::

    {
      "profiles": {
        "default": {
          "region": "eu-west-1",
          "aws_access_key_id": "AKIA...",
          "aws_secret_access_key": "...",
          "serial": "arn:aws:iam::123456789012:mfa/me",
          "mfa_secret_key": "JBSWY3DPEHPK3PXP"
        }
      }
    }
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import FileAccessError, IncompleteProfile, MissingProfile

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("aws_access_key_id", "aws_secret_access_key", "region", "serial", "mfa_secret_key")

DEFAULT_SETTINGS_FILE = "package.json"
DEFAULT_TIMEOUT_SECONDS = 30.0

ENV_SETTINGS = "MFA_SESSION_SETTINGS"
ENV_TIMEOUT = "MFA_SESSION_TIMEOUT"
ENV_CONFIG_FILE = "AWS_CONFIG_FILE"
ENV_CREDENTIALS_FILE = "AWS_SHARED_CREDENTIALS_FILE"


@dataclass
class ProfileSettings:
    """Long-term credentials and MFA device details for one profile."""

    aws_access_key_id: str
    aws_secret_access_key: str
    serial: str
    mfa_secret_key: str
    region: Optional[str] = None

    def identity(self) -> Dict[str, str]:
        """Fields written to the AWS config file and reused in the credentials file."""

        return {
            "aws_access_key_id": self.aws_access_key_id,
            "aws_secret_access_key": self.aws_secret_access_key,
            "region": self.region or "",
        }

    def to_dict(self) -> dict:
        return asdict(self)


def load_profiles(path: os.PathLike | str) -> Dict[str, Dict[str, Any]]:
    """Read the ``"profiles"`` mapping from a JSON settings file."""

    source = Path(path)
    try:
        content = json.loads(source.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise FileAccessError(f"Settings file {source} does not exist.", str(source)) from exc
    except (OSError, ValueError) as exc:
        raise FileAccessError(f"Unable to load settings from {source}: {exc}", str(source)) from exc

    profiles = content.get("profiles") if isinstance(content, dict) else None
    if not isinstance(profiles, dict):
        logger.debug("No profiles object in %s", source)
        return {}
    return profiles


def select_profile(
    profiles: Mapping[str, Mapping[str, Any]],
    profile_name: str,
    source: str = DEFAULT_SETTINGS_FILE,
) -> ProfileSettings:
    """Validate and return the settings for ``profile_name``."""

    if not profiles:
        raise MissingProfile("You have not set up profiles")
    entry = profiles.get(profile_name)
    if entry is None:
        raise MissingProfile(f"Profile [{profile_name}] does not exist in {source}", profile=profile_name)
    for key in REQUIRED_FIELDS:
        if key not in entry or entry[key] is None:
            raise IncompleteProfile(profile_name, key, source)
        value = str(entry[key])
        if "\n" in value or "\r" in value:
            raise IncompleteProfile(profile_name, key, source, reason="contains a line break")
    return ProfileSettings(
        aws_access_key_id=str(entry["aws_access_key_id"]),
        aws_secret_access_key=str(entry["aws_secret_access_key"]),
        serial=str(entry["serial"]),
        mfa_secret_key=str(entry["mfa_secret_key"]),
        region=str(entry["region"]),
    )


def _env_path(name: str, default: Path) -> Path:
    value = os.environ.get(name)
    return Path(value).expanduser() if value else default


@dataclass
class RuntimeConfig:
    """Where settings are read from and where credentials are written to."""

    settings_path: Path = field(default_factory=lambda: _env_path(ENV_SETTINGS, Path.cwd() / DEFAULT_SETTINGS_FILE))
    config_path: Path = field(default_factory=lambda: _env_path(ENV_CONFIG_FILE, Path.home() / ".aws" / "config"))
    credentials_path: Path = field(
        default_factory=lambda: _env_path(ENV_CREDENTIALS_FILE, Path.home() / ".aws" / "credentials")
    )
    timeout: float = field(default_factory=lambda: float(os.environ.get(ENV_TIMEOUT) or DEFAULT_TIMEOUT_SECONDS))

    @classmethod
    def resolve(
        cls,
        settings_path: Optional[str] = None,
        config_path: Optional[str] = None,
        credentials_path: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> "RuntimeConfig":
        """Build a config where explicit arguments win over environment variables and defaults."""

        config = cls()
        if settings_path:
            config.settings_path = Path(settings_path).expanduser()
        if config_path:
            config.config_path = Path(config_path).expanduser()
        if credentials_path:
            config.credentials_path = Path(credentials_path).expanduser()
        if timeout is not None:
            config.timeout = float(timeout)
        if config.timeout <= 0:
            raise ValueError("Timeout must be a positive number of seconds.")
        return config
