"""Request and response messages of the tgcd RPC protocol."""

import base64
import binascii
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer

# Route prefix shared by all operations.
SERVICE_PATH = "/tgcd.Tgcd"


def _decode_base64(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return base64.b64decode(value, validate=True)
        except binascii.Error as e:
            raise ValueError(f"invalid base64: {e}") from e
    return value


def _encode_base64(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


# Raw bytes in Python, standard base64 text in JSON.
WireBytes = Annotated[
    bytes,
    BeforeValidator(_decode_base64),
    PlainSerializer(_encode_base64, return_type=str, when_used="json"),
]


class WireModel(BaseModel):
    """Base for all messages."""

    model_config = ConfigDict(extra="forbid")


class DigestRequest(WireModel):
    """Request for GetTags."""

    digest: WireBytes


class Tags(WireModel):
    """A list of tag names."""

    tags: list[str] = Field(default_factory=list)


class AddTagsRequest(WireModel):
    """Request for AddTagsToHash."""

    digest: WireBytes
    tags: list[str]


class GetMultipleTagsRequest(WireModel):
    """Request for GetMultipleTags."""

    digests: list[WireBytes]


class GetMultipleTagsResponse(WireModel):
    """Response for GetMultipleTags; `tags[i]` belongs to `digests[i]` of the request."""

    tags: list[Tags] = Field(default_factory=list)


class CopyTagsRequest(WireModel):
    """Request for CopyTags."""

    src_digest: WireBytes
    dest_digest: WireBytes


class Empty(WireModel):
    """Response of operations that return nothing."""


class ErrorBody(WireModel):
    """Body of every non-200 response."""

    code: str
    message: str
