"""Public credential identifiers for certificates."""
from __future__ import annotations

import re
import secrets
import time
from typing import Final

from .exceptions import ValidationError

_ALPHABET: Final = "0123456789abcdefghijklmnopqrstuvwxyz"
_SUFFIX_LENGTH: Final = 6
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]+")

CREDENTIAL_ID_PATTERN: Final = re.compile(r"^[0-9A-Z_-]+-[0-9A-Z]+-[0-9A-Z]{6}$")


def to_base36(value: int) -> str:
    """Return ``value`` in lowercase base 36."""

    if value < 0:
        raise ValueError("Only non-negative integers can be encoded.")
    if value == 0:
        return "0"

    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_ALPHABET[remainder])
    return "".join(reversed(digits))


def normalise_track_id(track_id: str) -> str:
    """Collapse characters that are unsafe in file names and URLs."""

    cleaned = _UNSAFE_CHARS.sub("-", (track_id or "").strip()).strip("-")
    if not cleaned:
        raise ValidationError("trackId must contain letters or digits.")
    return cleaned


def generate_credential_id(track_id: str, *, now_ms: int | None = None) -> str:
    """Return ``{TRACK}-{base36 ms timestamp}-{6 random base36}`` uppercased."""

    timestamp = now_ms if now_ms is not None else time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(_SUFFIX_LENGTH))
    return f"{normalise_track_id(track_id)}-{to_base36(timestamp)}-{suffix}".upper()


def is_credential_id(value: str) -> bool:
    return bool(CREDENTIAL_ID_PATTERN.match(value or ""))


__all__ = [
    "CREDENTIAL_ID_PATTERN",
    "generate_credential_id",
    "is_credential_id",
    "normalise_track_id",
    "to_base36",
]
