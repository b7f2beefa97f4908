"""Content-addressed tag store: attach tags to content digests and query them over RPC."""

from tgcd.core.exceptions import (
    DigestLengthError,
    ErrorKind,
    InvalidTagTextError,
    StorageError,
    TagLengthError,
    TgcdError,
    ValidationError,
)
from tgcd.core.types import DIGEST_SIZE, MAX_TAG_LENGTH, Digest, Tag

__all__ = [
    "DIGEST_SIZE",
    "MAX_TAG_LENGTH",
    "Digest",
    "DigestLengthError",
    "ErrorKind",
    "InvalidTagTextError",
    "StorageError",
    "Tag",
    "TagLengthError",
    "TgcdError",
    "ValidationError",
]
