"""SHA-256 fingerprints binding stored PDFs to their records."""
from __future__ import annotations

import hashlib
from pathlib import Path

_CHUNK_SIZE = 64 * 1024


def sha256_hex(data: bytes) -> str:
    """Return the lowercase hex SHA-256 digest of ``data``."""

    return hashlib.sha256(data).hexdigest()


def file_sha256_hex(path: str | Path) -> str:
    """Return the digest of the file at ``path`` without loading it whole."""

    digest = hashlib.sha256()
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


__all__ = ["file_sha256_hex", "sha256_hex"]
