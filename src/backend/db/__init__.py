"""Database module."""

from db.cosmos_session import close_cosmos, get_container
from db.local_cache import FileLocalCache, LocalCache, MemoryLocalCache

__all__ = ["close_cosmos", "get_container", "LocalCache", "MemoryLocalCache", "FileLocalCache"]
