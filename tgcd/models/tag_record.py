"""Data models for tag names and their links to digests."""

from sqlalchemy import ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base_class import Base


class TagRecord(Base):
    """One row per distinct tag name. Rows are never deleted."""

    __tablename__ = "tag"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, init=False)
    name: Mapped[str] = mapped_column(Text, unique=True, nullable=False)

    def __repr__(self) -> str:
        return f"<TagRecord id={self.id} name='{self.name}'>"


class HashTagLink(Base):
    """
    Associates a digest with a tag.

    The composite primary key makes each (hash, tag) pair unique, so applying
    the same tag to the same digest twice never produces a second row.
    """

    __tablename__ = "hash_tag"

    hash_id: Mapped[int] = mapped_column(ForeignKey("hash.id"), primary_key=True)
    tag_id: Mapped[int] = mapped_column(ForeignKey("tag.id"), primary_key=True, index=True)
