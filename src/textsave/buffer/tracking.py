"""Modification tracking: content hashing and on-disk timestamps."""

from __future__ import annotations

import hashlib
import os
from typing import Iterable, Optional

# Above this many bytes hashing is too slow for interactive use and the
# buffer falls back to the in-memory modified flag ("fastdirty").
LARGE_FILE_THRESHOLD = 50_000


def content_hash(lines: Iterable[bytes]) -> bytes:
    """md5 digest of ``lines`` joined with ``\\n``."""

    digest = hashlib.md5()
    for index, data in enumerate(lines):
        if index:
            digest.update(b"\n")
        digest.update(data)
    return digest.digest()


def exceeds_threshold(size: int) -> bool:
    return size > LARGE_FILE_THRESHOLD


def get_mod_time(path: str) -> Optional[float]:
    """Return the mtime of ``path``, or ``None`` when it does not exist."""

    try:
        return os.stat(path).st_mtime
    except FileNotFoundError:
        return None


__all__ = ["LARGE_FILE_THRESHOLD", "content_hash", "exceeds_threshold", "get_mod_time"]
