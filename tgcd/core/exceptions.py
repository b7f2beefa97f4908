"""Error taxonomy for the tag store and its outward status mapping."""

from enum import Enum
from typing import assert_never


class ErrorKind(Enum):
    """The closed set of failure kinds a caller can observe."""

    INVALID_ARGUMENT = "invalid_argument"
    UNAVAILABLE = "unavailable"


class TgcdError(Exception):
    """Base class for all errors raised by the tag store."""

    kind: ErrorKind


class ValidationError(TgcdError, ValueError):
    """Raised when a digest or tag fails validation."""

    kind = ErrorKind.INVALID_ARGUMENT


class DigestLengthError(ValidationError):
    """Raised when a digest is not exactly the required number of bytes."""

    def __init__(self, length: int, expected: int) -> None:
        super().__init__(f"Invalid hash, must be exactly {expected} byte long, is {length}")
        self.length = length
        self.expected = expected


class InvalidDigestTextError(ValidationError):
    """Raised when the hex form of a digest cannot be decoded."""

    def __init__(self, text: str) -> None:
        super().__init__(f"Invalid hex digest: {text!r}")
        self.text = text


class TagLengthError(ValidationError):
    """Raised when a tag is empty or longer than the maximum length."""

    def __init__(self, length: int, text: str, maximum: int) -> None:
        super().__init__(f"Invalid tag {text!r}: Must be between 1 and {maximum} characters, is {length}")
        self.length = length
        self.text = text
        self.maximum = maximum


class InvalidTagTextError(ValidationError):
    """Raised when a tag contains code points that are not Unicode scalar values (lone surrogates)."""

    def __init__(self, text: str) -> None:
        super().__init__(f"Invalid tag {text!r}: Must be valid unicode text")
        self.text = text


class StorageError(TgcdError):
    """Raised when the relational store fails. Always chained to the underlying error."""

    kind = ErrorKind.UNAVAILABLE


def http_status_for(kind: ErrorKind) -> int:
    """Map an error kind to the HTTP status code returned to callers."""
    if kind is ErrorKind.INVALID_ARGUMENT:
        return 400
    if kind is ErrorKind.UNAVAILABLE:
        return 503
    assert_never(kind)


def kind_for_http_status(status_code: int) -> ErrorKind:
    """
    Map an HTTP error status back to an error kind.

    Anything that is not a client fault is treated as the service being unavailable.
    """
    if 400 <= status_code < 500:
        return ErrorKind.INVALID_ARGUMENT
    return ErrorKind.UNAVAILABLE
