"""Reading and patching AWS-style config and credentials files."""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from ..errors import FileAccessError
from . import ini_utils

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]
NEW_FILE_MODE = 0o600


def read_document(path: PathLike) -> ini_utils.ConfigDocument:
    """Return the parsed contents of ``path``, or an empty document if it does not exist."""

    source = Path(path)
    if not source.exists():
        logger.debug("%s does not exist, starting from an empty document", source)
        return {}
    try:
        text = source.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FileAccessError(f"Unable to read {source}: {exc}", str(source)) from exc
    return ini_utils.parse(text)


def write_document(path: PathLike, document: Mapping[str, Mapping[str, str]]) -> None:
    """Serialize ``document`` and replace ``path`` with it.

    The text is written to a temporary file in the target directory and then
    moved over the target, so a crash never leaves a half-written file. Parent
    directories are created when needed.
    """

    requested = Path(path)
    content = ini_utils.serialize(document)
    try:
        # Write next to the real file so a symlinked credentials file stays linked.
        target = requested.resolve()
        target.parent.mkdir(parents=True, exist_ok=True)
        mode = stat.S_IMODE(target.stat().st_mode) if target.exists() else NEW_FILE_MODE
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=str(target.parent))
    except (OSError, RuntimeError) as exc:
        raise FileAccessError(f"Unable to prepare {requested}: {exc}", str(requested)) from exc

    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
            handle.write(content)
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, target)
    except (OSError, UnicodeError) as exc:
        raise FileAccessError(f"Unable to write {requested}: {exc}", str(requested)) from exc
    finally:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
    logger.debug("Wrote %d section(s) to %s", len(document), requested)


def upsert_section(path: PathLike, section: str, fields: Mapping[str, str]) -> None:
    """Replace ``section`` in ``path`` with exactly ``fields``.

    Keys previously stored under ``section`` but missing from ``fields`` are
    dropped. Every other section keeps its keys, values and order. An existing
    section keeps its position; a new one is appended.
    """

    document = read_document(path)
    action = "Updating" if section in document else "Creating"
    logger.info("%s profile [%s] in %s", action, section, path)
    document[section] = {key: "" if value is None else str(value) for key, value in fields.items()}
    write_document(path, document)


def read_section(path: PathLike, section: str) -> Optional[Dict[str, str]]:
    """Return the key/value pairs stored under ``section``, or ``None``."""

    return read_document(path).get(section)


@dataclass
class CredentialFileManager:
    """The pair of files a profile is written to.

    Paths are supplied explicitly; :meth:`from_aws_dir` builds the
    conventional ``config``/``credentials`` pair inside one directory.
    """

    config_path: Path
    credentials_path: Path

    def __post_init__(self) -> None:
        self.config_path = Path(self.config_path)
        self.credentials_path = Path(self.credentials_path)

    @classmethod
    def from_aws_dir(cls, directory: PathLike) -> "CredentialFileManager":
        base = Path(directory)
        return cls(config_path=base / "config", credentials_path=base / "credentials")

    def update_config(self, profile_name: str, fields: Mapping[str, str]) -> None:
        upsert_section(self.config_path, profile_name, fields)

    def update_credentials(self, profile_name: str, fields: Mapping[str, str]) -> None:
        upsert_section(self.credentials_path, profile_name, fields)

    def read_config(self, profile_name: str) -> Optional[Dict[str, str]]:
        return read_section(self.config_path, profile_name)

    def read_credentials(self, profile_name: str) -> Optional[Dict[str, str]]:
        return read_section(self.credentials_path, profile_name)
