from .base_class import Base
from .hash_record import HashRecord
from .tag_record import HashTagLink, TagRecord

__all__ = ["Base", "HashRecord", "HashTagLink", "TagRecord"]
