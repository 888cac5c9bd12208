"""Command grammar for the channel file.

Only one command exists:

    gotoURL <location>

The prefix is case-sensitive and followed by exactly one space. Anything
else is an unrecognized command.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from pollchannel.errors import ValidationError
from pollchannel.models import Command, CommandType

GOTO_URL_PREFIX = "gotoURL "

_RE_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")
_RE_WHITESPACE = re.compile(r"\s")
# Schemes that are meaningless without a host
_HOST_SCHEMES = frozenset({"http", "https", "ftp", "ws", "wss"})


def parse_command(content: str) -> Command:
    """Split raw channel content into a Command."""
    if content.startswith(GOTO_URL_PREFIX):
        return Command(
            type=CommandType.NAVIGATE,
            argument=content[len(GOTO_URL_PREFIX):].strip(),
            raw=content,
        )
    return Command(type=CommandType.UNRECOGNIZED, argument=content, raw=content)


def parse_location(candidate: str) -> str:
    """Validate an absolute location reference and return it unchanged.

    Raises ValidationError for anything that is not ``scheme:rest`` with a
    well-formed scheme, no embedded whitespace and, for network schemes, a
    host.
    """
    if not candidate:
        raise ValidationError("Empty location")
    if _RE_WHITESPACE.search(candidate):
        raise ValidationError(f"Invalid URL detected: {candidate!r}")

    try:
        parts = urlsplit(candidate)
        parts.port  # parsed lazily, raises on a malformed port
    except ValueError as exc:
        raise ValidationError(f"Invalid URL detected: {candidate!r}") from exc

    if not parts.scheme or not _RE_SCHEME.match(parts.scheme):
        raise ValidationError(f"Invalid URL detected: {candidate!r}")
    if parts.scheme.lower() in _HOST_SCHEMES and not parts.hostname:
        raise ValidationError(f"Missing host in URL: {candidate!r}")
    if not (parts.netloc or parts.path or parts.query):
        raise ValidationError(f"Invalid URL detected: {candidate!r}")
    return candidate


def is_valid_location(candidate: str) -> bool:
    try:
        parse_location(candidate)
    except ValidationError:
        return False
    return True


def format_command(location: str) -> str:
    """Build the channel text that asks the host to navigate to ``location``."""
    return f"{GOTO_URL_PREFIX}{location}"
