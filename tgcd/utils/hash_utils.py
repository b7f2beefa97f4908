"""Utility functions for calculating content digests."""

import asyncio
import hashlib
from pathlib import Path
from typing import Any, BinaryIO, Protocol, runtime_checkable

DIGEST_SIZE = 64
CHUNK_SIZE = 8192


@runtime_checkable
class Hasher(Protocol):
    """A protocol for hash-like objects."""

    def update(self, __data: bytes) -> Any:
        """Update the hash object with the bytes-like object."""
        ...

    def digest(self) -> bytes:
        """Return the digest of the data passed to the update() method so far."""
        ...


def new_hasher() -> Hasher:
    """Return a fresh BLAKE2b state producing a 64-byte digest."""
    return hashlib.blake2b(digest_size=DIGEST_SIZE)


def calculate_digest_from_stream(stream: BinaryIO, chunk_size: int = CHUNK_SIZE) -> bytes:
    """
    Calculate the content digest of a stream in a single pass.

    The stream is read in chunks of at most `chunk_size` bytes, so inputs
    larger than memory are supported. The result does not depend on the
    chunk size.

    Args:
        stream: A binary file-like object, read from its current position to EOF.
        chunk_size: The number of bytes requested per read.

    Returns:
        The 64-byte digest.

    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    hasher = new_hasher()
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break  # EOF
        hasher.update(chunk)
    return hasher.digest()


def calculate_digest(filepath: Path, chunk_size: int = CHUNK_SIZE) -> bytes:
    """
    Calculate the content digest of a file.

    Raises:
        OSError: If the file cannot be opened or read.

    """
    with open(filepath, "rb") as f:
        return calculate_digest_from_stream(f, chunk_size)


async def calculate_digest_async(filepath: Path, chunk_size: int = CHUNK_SIZE) -> bytes:
    """Asynchronously calculate the content digest of a file."""
    return await asyncio.to_thread(calculate_digest, filepath, chunk_size)
