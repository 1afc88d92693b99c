from __future__ import annotations

from typing import BinaryIO

from Cryptodome.Hash import SHA1

from .constants import DEFAULT_COPY_CHUNK_SIZE


def sha1_stream(f: BinaryIO, length: int, chunk_size: int = DEFAULT_COPY_CHUNK_SIZE) -> bytes:
    """SHA-1 over the next `length` bytes of f.

    Stops early if the stream ends; callers compare against the expected length.
    """
    h = SHA1.new()
    remaining = length
    while remaining > 0:
        buf = f.read(min(chunk_size, remaining))
        if not buf:
            break
        h.update(buf)
        remaining -= len(buf)
    return h.digest()


def new_sha1():
    """Incremental SHA-1 object (update/digest) for streamed checksums."""
    return SHA1.new()
