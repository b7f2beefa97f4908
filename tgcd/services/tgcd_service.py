"""Service facade: validates wire values and calls the tag store."""

import logging
from collections.abc import Sequence

from tgcd.core.types import Digest, Tag
from tgcd.services.tag_store import TagStore

logger = logging.getLogger(__name__)


def _sorted_names(tags: set[Tag]) -> list[str]:
    return [tag.name for tag in sorted(tags)]


class TgcdService:
    """
    The four tag operations as seen from the wire.

    Every digest and tag received is validated before the store is touched, so
    a `ValidationError` means no database work was done.
    """

    def __init__(self, store: TagStore):
        self.store = store

    async def get_tags(self, digest: bytes) -> list[str]:
        """Return the tags of `digest`."""
        parsed = Digest.parse(digest)
        return _sorted_names(await self.store.get_tags(parsed))

    async def add_tags_to_hash(self, digest: bytes, tags: Sequence[str]) -> None:
        """Attach `tags` to `digest`."""
        parsed = Digest.parse(digest)
        parsed_tags = [Tag.parse(tag) for tag in tags]
        await self.store.add_tags_to_hash(parsed, parsed_tags)

    async def get_multiple_tags(self, digests: Sequence[bytes]) -> list[list[str]]:
        """Return the tags of each digest, in input order."""
        parsed = [Digest.parse(digest) for digest in digests]
        return [_sorted_names(tags) for tags in await self.store.get_multiple_tags(parsed)]

    async def copy_tags(self, src_digest: bytes, dest_digest: bytes) -> None:
        """Add the tags of `src_digest` to `dest_digest`."""
        src = Digest.parse(src_digest)
        dest = Digest.parse(dest_digest)
        await self.store.copy_tags(src, dest)
