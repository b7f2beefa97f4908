"""Async client for the tgcd service."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from types import TracebackType
from typing import TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from tgcd.api.wire import (
    SERVICE_PATH,
    AddTagsRequest,
    CopyTagsRequest,
    DigestRequest,
    Empty,
    ErrorBody,
    GetMultipleTagsRequest,
    GetMultipleTagsResponse,
    Tags,
)
from tgcd.core.config import ClientConfig
from tgcd.core.exceptions import ErrorKind, kind_for_http_status
from tgcd.core.types import Digest, Tag

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)

DEFAULT_TIMEOUT = 30.0


class ClientError(Exception):
    """Base class for failures of a remote call."""


class StatusError(ClientError):
    """The server answered with an error status."""

    def __init__(self, kind: ErrorKind, message: str, status_code: int) -> None:
        super().__init__(f"server returned status {kind.value} ({status_code}): {message}")
        self.kind = kind
        self.message = message
        self.status_code = status_code


class ConnectError(ClientError):
    """The server could not be reached, or answered with something that is not a valid reply."""


class TgcdClient:
    """
    Calls the four tag operations on a remote tgcd service.

    Holds one persistent HTTP connection pool; use it as an async context
    manager or call `aclose` when done.
    """

    def __init__(
        self,
        base_url: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    @classmethod
    def from_config(cls, config: ClientConfig) -> TgcdClient:
        """Create a client for the server named in the client configuration."""
        return cls(config.server_url)

    async def __aenter__(self) -> TgcdClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP connections."""
        await self._http.aclose()

    async def _call(self, method: str, request: BaseModel, response_type: type[ResponseT]) -> ResponseT:
        path = f"{SERVICE_PATH}/{method}"
        try:
            response = await self._http.post(path, json=request.model_dump(mode="json"))
        except httpx.HTTPError as e:
            raise ConnectError(f"Can't reach tgcd service for {method}: {e}") from e

        if response.status_code != httpx.codes.OK:
            kind = kind_for_http_status(response.status_code)
            try:
                message = ErrorBody.model_validate_json(response.content).message
            except ValidationError:
                message = response.text
            raise StatusError(kind, message, response.status_code)

        try:
            return response_type.model_validate_json(response.content)
        except ValidationError as e:
            raise ConnectError(f"Malformed {method} response: {e}") from e

    async def get_tags(self, digest: Digest) -> list[Tag]:
        """Return the tags of `digest`."""
        resp = await self._call("GetTags", DigestRequest(digest=digest.to_bytes()), Tags)
        return [Tag.parse(tag) for tag in resp.tags]

    async def add_tags_to_hash(self, digest: Digest, tags: Iterable[Tag]) -> None:
        """Attach `tags` to `digest`."""
        request = AddTagsRequest(digest=digest.to_bytes(), tags=[tag.name for tag in tags])
        await self._call("AddTagsToHash", request, Empty)

    async def get_multiple_tags(self, digests: Iterable[Digest]) -> list[list[Tag]]:
        """Return the tags of each digest, in input order."""
        request = GetMultipleTagsRequest(digests=[digest.to_bytes() for digest in digests])
        resp = await self._call("GetMultipleTags", request, GetMultipleTagsResponse)
        if len(resp.tags) != len(request.digests):
            raise ConnectError(f"Expected tags for {len(request.digests)} digest(s), got {len(resp.tags)}")
        return [[Tag.parse(tag) for tag in entry.tags] for entry in resp.tags]

    async def copy_tags(self, src: Digest, dest: Digest) -> None:
        """Add the tags of `src` to `dest`."""
        request = CopyTagsRequest(src_digest=src.to_bytes(), dest_digest=dest.to_bytes())
        await self._call("CopyTags", request, Empty)
