import hashlib
import io
from pathlib import Path

import pytest

from tgcd.core.exceptions import (
    DigestLengthError,
    ErrorKind,
    InvalidDigestTextError,
    InvalidTagTextError,
    TagLengthError,
    ValidationError,
)
from tgcd.core.types import DIGEST_SIZE, MAX_TAG_LENGTH, Digest, Tag

# BLAKE2b-512 known answers (RFC 7693, Appendix A for "abc").
EMPTY_DIGEST_HEX = (
    "786a02f742015903c6c6fd852552d272912f4740e15847618a86e217f71f5419"
    "d25e1031afee585313896444934eb04b903a685b1448b755d56f701afe9be2ce"
)
ABC_DIGEST_HEX = (
    "ba80a53f981c4d0d6a2797b69f12f6e94c212f14685ac4b74b12bb6fdbffa2d1"
    "7d87c5392aab792dc252d5de4533cc9518d38aa8dbf1925ab92386edd4009923"
)

# Three 8 KiB reads minus a few bytes, so the last read is short.
REPEATED_A = b"a" * (3 * 8192 - 28)
# Recorded BLAKE2b-512 of REPEATED_A.
REPEATED_A_DIGEST_HEX = (
    "140def0a7a9c50efd14d7a11330e8a8c4d0cf3a1d1fe0953060c13a78928ded1"
    "52d198c7e20a69d237b98ee3639822156fb78778577a97efd1dccabb6c4a74f6"
)


# --- Tag ---


def test_tag_accepts_lengths_within_bounds() -> None:
    assert Tag.parse("a").name == "a"
    assert Tag.parse("x" * MAX_TAG_LENGTH).name == "x" * MAX_TAG_LENGTH


@pytest.mark.parametrize("text", ["", "x" * (MAX_TAG_LENGTH + 1), "y" * 1000])
def test_tag_rejects_lengths_out_of_bounds(text: str) -> None:
    with pytest.raises(TagLengthError) as exc_info:
        Tag.parse(text)
    assert exc_info.value.length == len(text)
    assert exc_info.value.text == text
    assert exc_info.value.kind is ErrorKind.INVALID_ARGUMENT


def test_tag_length_counts_characters_not_bytes() -> None:
    # 255 two-byte characters: 510 bytes of UTF-8 but a valid tag.
    assert Tag.parse("é" * 255).name == "é" * 255
    with pytest.raises(TagLengthError):
        Tag.parse("é" * 256)


@pytest.mark.parametrize("text", ["\ud800", "ok\udfff", "\udc80tail"])
def test_tag_rejects_lone_surrogates(text: str) -> None:
    with pytest.raises(InvalidTagTextError) as exc_info:
        Tag.parse(text)
    assert exc_info.value.text == text
    assert exc_info.value.kind is ErrorKind.INVALID_ARGUMENT


def test_tag_accepts_astral_characters() -> None:
    assert Tag.parse("\U0001f600" * MAX_TAG_LENGTH).name == "\U0001f600" * MAX_TAG_LENGTH


def test_tag_equality_is_exact_text() -> None:
    assert Tag.parse("foo") == Tag.parse("foo")
    assert Tag.parse("Foo") != Tag.parse("foo")
    assert Tag.parse(" foo") != Tag.parse("foo")
    assert len({Tag.parse("foo"), Tag.parse("foo"), Tag.parse("bar")}) == 2


def test_tags_sort_by_text() -> None:
    tags = [Tag.parse("b"), Tag.parse("a"), Tag.parse("c")]
    assert [t.name for t in sorted(tags)] == ["a", "b", "c"]


def test_tag_length_error_is_a_validation_error() -> None:
    with pytest.raises(ValidationError):
        Tag.parse("")
    with pytest.raises(ValueError):
        Tag.parse("")


# --- Digest ---


def test_digest_parse_accepts_exact_length() -> None:
    raw = bytes(range(DIGEST_SIZE))
    digest = Digest.parse(raw)
    assert digest.to_bytes() == raw
    assert bytes(digest) == raw


@pytest.mark.parametrize("length", [0, 20, 32, 63, 65, 128])
def test_digest_parse_rejects_other_lengths(length: int) -> None:
    with pytest.raises(DigestLengthError) as exc_info:
        Digest.parse(b"\x01" * length)
    assert exc_info.value.length == length
    assert str(length) in str(exc_info.value)


def test_digest_hex_is_lowercase_and_round_trips() -> None:
    raw = bytes(range(0xC0, 0x100))
    digest = Digest.parse(raw)
    text = digest.to_hex()
    assert len(text) == 2 * DIGEST_SIZE
    assert text == text.lower()
    assert str(digest) == text
    assert Digest.from_hex(text) == digest
    assert Digest.from_hex(text.upper()) == digest


def test_digest_from_hex_rejects_bad_text() -> None:
    with pytest.raises(InvalidDigestTextError):
        Digest.from_hex("zz" * DIGEST_SIZE)
    with pytest.raises(DigestLengthError):
        Digest.from_hex("ab" * 20)


@pytest.mark.parametrize("value", [64, "a" * 64, None])
def test_digest_rejects_values_that_are_not_bytes(value: object) -> None:
    with pytest.raises(TypeError):
        Digest.parse(value)  # type: ignore[arg-type]


def test_digest_accepts_bytes_like_values() -> None:
    raw = bytes(range(DIGEST_SIZE))
    assert Digest.parse(bytearray(raw)).to_bytes() == raw
    assert Digest.parse(memoryview(raw)).to_bytes() == raw


def test_digest_is_hashable_and_compares_by_value() -> None:
    a = Digest.parse(b"\x00" * DIGEST_SIZE)
    b = Digest.parse(b"\x00" * DIGEST_SIZE)
    assert a == b
    assert len({a, b}) == 1


@pytest.mark.parametrize(("data", "expected"), [(b"", EMPTY_DIGEST_HEX), (b"abc", ABC_DIGEST_HEX)])
def test_compute_matches_known_answers(data: bytes, expected: str) -> None:
    assert Digest.compute(io.BytesIO(data)).to_hex() == expected


@pytest.mark.parametrize("chunk_size", [1, 8192, len(REPEATED_A)])
def test_compute_matches_recorded_digest(chunk_size: int) -> None:
    digest = Digest.compute(io.BytesIO(REPEATED_A), chunk_size=chunk_size)
    assert digest.to_hex() == REPEATED_A_DIGEST_HEX


def test_compute_is_independent_of_chunk_size() -> None:
    expected = hashlib.blake2b(REPEATED_A, digest_size=64).digest()

    for chunk_size in (1, 7, 8192, len(REPEATED_A), 1 << 20):
        digest = Digest.compute(io.BytesIO(REPEATED_A), chunk_size=chunk_size)
        assert digest.to_bytes() == expected, f"chunk size {chunk_size}"


def test_compute_reads_from_current_position() -> None:
    stream = io.BytesIO(b"skip-abc")
    stream.seek(5)
    assert Digest.compute(stream).to_hex() == ABC_DIGEST_HEX


def test_from_file_matches_compute(tmp_path: Path) -> None:
    path = tmp_path / "content.bin"
    path.write_bytes(REPEATED_A)
    assert Digest.from_file(path) == Digest.compute(io.BytesIO(REPEATED_A))


@pytest.mark.asyncio
async def test_from_file_async_matches_sync(tmp_path: Path) -> None:
    path = tmp_path / "content.bin"
    path.write_bytes(b"abc")
    assert (await Digest.from_file_async(path)).to_hex() == ABC_DIGEST_HEX


def test_from_file_missing_raises_os_error(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        Digest.from_file(tmp_path / "does-not-exist")
