"""
Registry caching package.

Archives are digested and stored at metadata time under a key derived from
(package, version) with a fixed TTL, then served verbatim to tarball
requests. Nothing here regenerates an archive.
"""

from .archive_cache import ArchiveCache, ArchiveRetrieval, CacheRecord
from .archive_store import InMemoryArchiveStore, RedisArchiveStore

__all__ = [
    "ArchiveCache",
    "ArchiveRetrieval",
    "CacheRecord",
    "InMemoryArchiveStore",
    "RedisArchiveStore",
]
