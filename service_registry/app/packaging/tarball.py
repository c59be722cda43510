"""
Tar archive encoding for generated packages.

Only regular files are written, each as a single 512-byte header followed by
its content padded to the block size. The layout is the pre-POSIX (v7)
header that every tar reader accepts:

    offset  size  field
    0       100   name (truncated)
    100     8     mode, "0000644 "
    124     12    size, 11 octal digits + space
    136     12    mtime, 11 octal digits + space
    148     8     checksum, 6 octal digits + NUL + space
    156     1     typeflag, "0"

All other header bytes stay NUL. The archive ends with two zero blocks.
"""

import time
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union


BLOCK_SIZE = 512
END_OF_ARCHIVE = 2 * BLOCK_SIZE

NAME_FIELD = slice(0, 100)
MODE_FIELD = slice(100, 108)
SIZE_FIELD = slice(124, 136)
MTIME_FIELD = slice(136, 148)
CHECKSUM_FIELD = slice(148, 156)
TYPEFLAG_OFFSET = 156

DEFAULT_MODE = b"0000644 "
REGULAR_FILE = ord("0")

# Largest value representable by 11 octal digits
MAX_OCTAL_11 = 0o77777777777


@dataclass(frozen=True)
class ArchiveEntry:
    """A file to place in the archive."""
    path: str
    content: bytes

    @classmethod
    def text(cls, path: str, content: str) -> "ArchiveEntry":
        return cls(path, content.encode("utf-8"))


def padded_size(length: int) -> int:
    """Round ``length`` up to a whole number of blocks."""
    return -(-length // BLOCK_SIZE) * BLOCK_SIZE


def archive_size(entries: Iterable[ArchiveEntry]) -> int:
    """Exact byte length of the archive ``write_archive`` produces."""
    return sum(BLOCK_SIZE + padded_size(len(entry.content)) for entry in entries) + END_OF_ARCHIVE


def _octal_field(value: int) -> bytes:
    if value < 0 or value > MAX_OCTAL_11:
        raise ValueError(f"value {value} does not fit an 11-digit octal header field")
    return f"{value:011o} ".encode("ascii")


def header_checksum(header: Union[bytes, bytearray]) -> int:
    """Unsigned byte sum of a header with the checksum field read as spaces."""
    if len(header) != BLOCK_SIZE:
        raise ValueError("tar headers are exactly one block long")
    return sum(header[:CHECKSUM_FIELD.start]) + 8 * ord(" ") + sum(header[CHECKSUM_FIELD.stop:])


def encode_checksum(checksum: int) -> bytes:
    return f"{checksum:06o}".encode("ascii") + b"\0 "


def build_header(path: str, size: int, mtime: int) -> bytes:
    """Encode the header block for one regular file."""
    header = bytearray(BLOCK_SIZE)

    name = path.encode("utf-8")[:NAME_FIELD.stop]
    header[NAME_FIELD.start:NAME_FIELD.start + len(name)] = name
    header[MODE_FIELD] = DEFAULT_MODE
    header[SIZE_FIELD] = _octal_field(size)
    header[MTIME_FIELD] = _octal_field(mtime)
    header[TYPEFLAG_OFFSET] = REGULAR_FILE

    header[CHECKSUM_FIELD] = encode_checksum(header_checksum(header))
    return bytes(header)


def write_archive(entries: List[ArchiveEntry], mtime: Optional[int] = None) -> bytes:
    """Encode ``entries`` in order into a complete tar archive.

    ``mtime`` defaults to the current time; pass a fixed value to get
    byte-identical output for identical entries.
    """
    seen = set()
    for entry in entries:
        if entry.path in seen:
            raise ValueError(f"duplicate archive path: {entry.path}")
        seen.add(entry.path)

    if mtime is None:
        mtime = int(time.time())

    buffer = bytearray(archive_size(entries))
    offset = 0
    for entry in entries:
        buffer[offset:offset + BLOCK_SIZE] = build_header(entry.path, len(entry.content), mtime)
        offset += BLOCK_SIZE
        buffer[offset:offset + len(entry.content)] = entry.content
        offset += padded_size(len(entry.content))

    # The remaining END_OF_ARCHIVE bytes are already zero.
    return bytes(buffer)
