"""
Digests and caches materialized package archives.

An archive is stored at metadata time and only ever read back afterwards.
The digest is computed over the exact bytes that are stored, so the shasum a
manifest advertises always describes what the tarball URL serves while the
record lives.
"""

import asyncio
import base64
import gzip
import hashlib
import json
import time
from dataclasses import dataclass
from typing import Callable, Optional

from shared.errors import ArchiveStoreError, ArchiveUnavailableError
from shared.logging import get_logger


GZIP_CONTENT_TYPE = "application/gzip"
TAR_CONTENT_TYPE = "application/octet-stream"


def sha1_hex(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def sha512_integrity(data: bytes) -> str:
    """Subresource-integrity string as written by npm into lockfiles."""
    return "sha512-" + base64.b64encode(hashlib.sha512(data).digest()).decode("ascii")


@dataclass(frozen=True)
class CacheRecord:
    """A stored archive together with its digests."""
    key: str
    data: bytes
    shasum: str
    integrity: str
    content_type: str
    created_at: float
    expires_at: float

    def to_bytes(self) -> bytes:
        """One value per key: a JSON header line followed by the archive."""
        header = {
            "shasum": self.shasum,
            "integrity": self.integrity,
            "content_type": self.content_type,
            "created_at": self.created_at,
            "expires_at": self.expires_at,
            "size": len(self.data),
        }
        return json.dumps(header, separators=(",", ":")).encode("utf-8") + b"\n" + self.data

    @classmethod
    def from_bytes(cls, key: str, value: bytes) -> "CacheRecord":
        """Decode a stored value; raises ``ValueError`` if it is damaged."""
        head, sep, data = value.partition(b"\n")
        if not sep:
            raise ValueError("missing record header")
        header = json.loads(head.decode("utf-8"))
        if header.get("size") != len(data):
            raise ValueError("archive length does not match record header")
        if header.get("shasum") != sha1_hex(data):
            raise ValueError("archive digest does not match record header")
        return cls(
            key=key,
            data=data,
            shasum=header["shasum"],
            integrity=header["integrity"],
            content_type=header["content_type"],
            created_at=float(header["created_at"]),
            expires_at=float(header["expires_at"]),
        )


class ArchiveCache:
    """Digest & cache for package archives keyed by (package, version)."""

    KEY_PREFIX = "registry:archive"

    def __init__(
        self,
        store,
        ttl_seconds: int = 300,
        compress: bool = True,
        clock: Callable[[], float] = time.time,
        metrics=None,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.compress = compress
        self.clock = clock
        self.metrics = metrics
        self.logger = get_logger("registry.archive_cache")

    def make_key(self, package: str, version: str) -> str:
        """Generate cache key."""
        key_string = f"{package}:{version}"
        return f"{self.KEY_PREFIX}:{hashlib.md5(key_string.encode()).hexdigest()}"

    def encode(self, tarball: bytes) -> bytes:
        """Apply the served encoding; gzip output is stable for equal input."""
        if self.compress:
            return gzip.compress(tarball, mtime=0)
        return tarball

    async def store_archive(self, package: str, version: str, tarball: bytes) -> CacheRecord:
        """Encode, digest and store an archive; returns the stored record."""
        data = self.encode(tarball)
        now = self.clock()
        record = CacheRecord(
            key=self.make_key(package, version),
            data=data,
            shasum=sha1_hex(data),
            integrity=sha512_integrity(data),
            content_type=GZIP_CONTENT_TYPE if self.compress else TAR_CONTENT_TYPE,
            created_at=now,
            expires_at=now + self.ttl_seconds,
        )

        # A disconnecting client must not leave a manifest without its archive.
        stored = await asyncio.shield(self.store.put(record.key, record.to_bytes(), self.ttl_seconds))
        if not stored:
            raise ArchiveStoreError(details={"package": package, "version": version})

        if self.metrics:
            self.metrics.observe_histogram(
                "archive_size_bytes",
                len(data),
                encoding="gzip" if self.compress else "tar",
            )

        self.logger.info(
            "Archive cached",
            package=package,
            version=version,
            shasum=record.shasum,
            size=len(data),
            ttl=self.ttl_seconds,
        )
        return record

    async def load_archive(self, package: str, version: str) -> Optional[CacheRecord]:
        """Read back a stored, unexpired record; ``None`` otherwise."""
        key = self.make_key(package, version)
        value = await self.store.get(key)
        if value is None:
            return None

        try:
            record = CacheRecord.from_bytes(key, value)
        except (ValueError, KeyError) as exc:
            self.logger.error("Discarding damaged archive record", key=key, error=str(exc))
            return None

        if self.clock() >= record.expires_at:
            return None
        return record


class ArchiveRetrieval:
    """Serves archives stored by a previous metadata request.

    Retrieval never materializes anything: once a record is gone the
    tarball URL fails until a new metadata request stores a fresh one.
    """

    def __init__(self, cache: ArchiveCache, metrics=None):
        self.cache = cache
        self.metrics = metrics
        self.logger = get_logger("registry.archive_retrieval")

    async def retrieve(self, package: str, version: str) -> CacheRecord:
        record = await self.cache.load_archive(package, version)
        if record is None:
            self._record("miss")
            self.logger.info("Archive not available", package=package, version=version)
            raise ArchiveUnavailableError(details={"package": package, "version": version})

        self._record("hit")
        return record

    def _record(self, result: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("archive_retrieval_total", result=result)
