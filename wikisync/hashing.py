"""Content digests used for change detection."""

from __future__ import annotations

import hashlib
from pathlib import Path

from .logging import get_logger

_CHUNK_SIZE = 1024 * 1024

logger = get_logger("hashing")


def hash_file(path: Path | str) -> str:
    """Return the SHA-256 hex digest of ``path`` or ``""`` when it cannot be read."""
    digest = hashlib.sha256()
    try:
        with Path(path).open("rb") as handle:
            for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
    except OSError as exc:
        logger.debug("Unable to hash %s: %s", path, exc)
        return ""
    return digest.hexdigest()


__all__ = ["hash_file"]
