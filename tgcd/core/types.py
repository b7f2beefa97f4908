"""Value types for content digests and tags."""

from __future__ import annotations

import binascii
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

from tgcd.core.exceptions import DigestLengthError, InvalidDigestTextError, InvalidTagTextError, TagLengthError
from tgcd.utils import hash_utils
from tgcd.utils.hash_utils import CHUNK_SIZE, DIGEST_SIZE

MAX_TAG_LENGTH = 255

__all__ = ["DIGEST_SIZE", "MAX_TAG_LENGTH", "Digest", "Tag"]


@dataclass(frozen=True)
class Digest:
    """
    The identity of a piece of content: a 64-byte BLAKE2b digest of its bytes.

    Instances are always exactly `DIGEST_SIZE` bytes long; any other length
    raises `DigestLengthError` at construction.
    """

    value: bytes = field(repr=False)

    def __post_init__(self) -> None:
        """Validate the digest type and length."""
        if not isinstance(self.value, (bytes, bytearray, memoryview)):
            raise TypeError(f"Digest value must be bytes, not {type(self.value).__name__}")
        if not isinstance(self.value, bytes):
            object.__setattr__(self, "value", bytes(self.value))
        if len(self.value) != DIGEST_SIZE:
            raise DigestLengthError(len(self.value), DIGEST_SIZE)

    def __str__(self) -> str:
        return self.to_hex()

    def __repr__(self) -> str:
        return f"Digest({self.to_hex()})"

    def __bytes__(self) -> bytes:
        return self.value

    @classmethod
    def parse(cls, data: bytes) -> Digest:
        """Create a Digest from its raw byte form."""
        return cls(data)

    @classmethod
    def from_hex(cls, text: str) -> Digest:
        """Create a Digest from its hex text form."""
        try:
            raw = bytes.fromhex(text)
        except ValueError as e:
            raise InvalidDigestTextError(text) from e
        return cls(raw)

    @classmethod
    def compute(cls, stream: BinaryIO, chunk_size: int = CHUNK_SIZE) -> Digest:
        """Hash everything remaining in `stream`."""
        return cls(hash_utils.calculate_digest_from_stream(stream, chunk_size))

    @classmethod
    def from_file(cls, path: Path | str, chunk_size: int = CHUNK_SIZE) -> Digest:
        """Hash the contents of the file at `path`."""
        return cls(hash_utils.calculate_digest(Path(path), chunk_size))

    @classmethod
    async def from_file_async(cls, path: Path | str, chunk_size: int = CHUNK_SIZE) -> Digest:
        """Hash the contents of the file at `path` without blocking the event loop."""
        return cls(await hash_utils.calculate_digest_async(Path(path), chunk_size))

    def to_bytes(self) -> bytes:
        """Return the raw 64-byte form."""
        return self.value

    def to_hex(self) -> str:
        """Return the lowercase, 128-character hex form."""
        return binascii.hexlify(self.value).decode("ascii")


@dataclass(frozen=True, order=True)
class Tag:
    """
    A text label attached to digests.

    The length is counted in Unicode scalar values, not bytes, and must be
    between 1 and `MAX_TAG_LENGTH`; lone surrogates are rejected. Tags compare
    by exact text: no case folding or trimming.
    """

    name: str

    def __post_init__(self) -> None:
        """Validate the tag length and text."""
        length = len(self.name)
        if not 1 <= length <= MAX_TAG_LENGTH:
            raise TagLengthError(length, self.name, MAX_TAG_LENGTH)
        try:
            self.name.encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidTagTextError(self.name) from e

    def __str__(self) -> str:
        return self.name

    @classmethod
    def parse(cls, text: str) -> Tag:
        """Create a Tag from its text form."""
        return cls(text)
