"""Data model for stored content digests."""

from sqlalchemy import Integer, LargeBinary
from sqlalchemy.orm import Mapped, mapped_column

from tgcd.core.types import DIGEST_SIZE

from .base_class import Base


class HashRecord(Base):
    """One row per distinct digest that has ever been tagged. Rows are never deleted."""

    __tablename__ = "hash"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, init=False)
    hash: Mapped[bytes] = mapped_column(LargeBinary(DIGEST_SIZE), unique=True, nullable=False)

    def __repr__(self) -> str:
        return f"<HashRecord id={self.id} hash={self.hash.hex()}>"
