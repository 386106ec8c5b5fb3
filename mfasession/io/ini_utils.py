"""Parser and serializer for the sectioned ``key = value`` files the AWS CLI reads.

Keys keep their case, a repeated section header resets that section and
``%`` has no meaning, which rules out ``configparser``.
"""

from __future__ import annotations

import re
from typing import Dict, List, Mapping

ConfigDocument = Dict[str, Dict[str, str]]

_SECTION_RE = re.compile(r"^\[(.+)\]$")
COMMENT_PREFIX = "#"


def parse(text: str) -> ConfigDocument:
    """Parse ``text`` into an ordered mapping of section -> key -> value.

    Blank lines and ``#`` comments are skipped. Re-opening a section discards
    what was collected for it so far. Lines before the first section header
    are ignored. Parsing never fails: unrecognised lines are dropped.
    """

    document: ConfigDocument = {}
    active = None
    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if not line or line.startswith(COMMENT_PREFIX):
            continue
        match = _SECTION_RE.match(line)
        if match:
            active = match.group(1)
            document[active] = {}
            continue
        if active is None:
            continue
        key, _, value = line.partition("=")
        document[active][key.strip()] = value.strip()
    return document


def serialize(document: Mapping[str, Mapping[str, str]]) -> str:
    """Render ``document`` back into text, one blank line after each section."""

    lines: List[str] = []
    for section, values in document.items():
        lines.append(f"[{section}]")
        for key, value in values.items():
            value = "" if value is None else str(value)
            if "\n" in value or "\r" in value:
                raise ValueError(f"Value for [{section}] {key} must not contain line breaks.")
            lines.append(f"{key} = {value}")
        lines.append("")
    return "\n".join(lines)
