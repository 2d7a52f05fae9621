"""Line cleanup and command-token canonicalization."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

_CONTROL_RE = re.compile(r"[\r\n\x1b]")
_COMMAND_ID_RE = re.compile(r"^(\S+)")
RESET_ALIAS = "@"
RESET_COMMAND = "I4"
STABILITY_PREFIX = "SI"
LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizedLine:
    text: str
    command_id: str | None


def clean_line(raw: str) -> str:
    cleaned = _CONTROL_RE.sub("", raw).strip()
    # "@" resets the balance; the balance answers it like an I4 query
    if cleaned == RESET_ALIAS:
        return RESET_COMMAND
    return cleaned


def extract_command_id(text: str) -> str | None:
    match = _COMMAND_ID_RE.match(text)
    if not match:
        return None
    command_id = match.group(1)
    if command_id.startswith(STABILITY_PREFIX):
        command_id = "S" + command_id[len(STABILITY_PREFIX):]
    return command_id


def normalize_line(raw: str) -> NormalizedLine | None:
    """Normalize one received line.

    Returns ``None`` for blank input, which the caller ignores silently. A
    result whose ``command_id`` is ``None`` carries text that could not be
    split into a command token.
    """
    text = clean_line(raw)
    if not text:
        return None

    command_id = extract_command_id(text)
    if command_id is None:
        LOGGER.warning("Command not valid: %r", text)
    return NormalizedLine(text=text, command_id=command_id)
