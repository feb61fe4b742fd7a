"""Capped content fingerprints for watched files."""

import hashlib
import os
from typing import Optional

from .config import MAX_HASHED_FILE_SIZE
from .models import DigestResult

_CHUNK_SIZE = 65536


def digest(
    path: str,
    max_size: int = MAX_HASHED_FILE_SIZE,
    algorithm: str = "sha256",
) -> DigestResult:
    """
    Compute a fingerprint of a file's contents.

    At most ``max_size`` bytes are hashed. If the file holds more than that,
    no fingerprint is produced at all: a hash of a prefix would hide changes
    past the cap.

    Args:
        path: Path to the file
        max_size: Largest file size that is fingerprinted
        algorithm: hashlib algorithm name

    Returns:
        OK with the digest bytes, UNAVAILABLE for directories and files over
        the cap, or ERROR carrying the OSError that stopped the read
    """
    try:
        if os.path.isdir(path):
            return DigestResult.unavailable("directory")

        hasher = hashlib.new(algorithm)
        with open(path, "rb") as f:
            remaining = max_size
            while remaining > 0:
                chunk = f.read(min(_CHUNK_SIZE, remaining))
                if not chunk:
                    break
                hasher.update(chunk)
                remaining -= len(chunk)

            if f.peek(1):
                return DigestResult.unavailable("too_large")

        return DigestResult.of(hasher.digest())
    except IsADirectoryError:
        return DigestResult.unavailable("directory")
    except OSError as e:
        return DigestResult.failed(e)


def digest_or_raise(
    path: str,
    max_size: int = MAX_HASHED_FILE_SIZE,
    algorithm: str = "sha256",
) -> Optional[bytes]:
    """
    Like digest(), but returns the bare fingerprint and raises read errors.

    Returns:
        Digest bytes, or None for directories and oversized files

    Raises:
        OSError: If the file could not be opened or read
    """
    result = digest(path, max_size, algorithm)
    if result.error is not None:
        raise result.error
    return result.fingerprint
