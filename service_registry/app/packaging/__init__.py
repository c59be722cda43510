"""
Packaging package for the Registry Service.

- tarball: byte-exact tar encoding of archive entries.
- codegen: default client-stub generator and annotation eraser.
- package_builder: package file layout (package.json, README.md, index.js).
- manifest: registry manifests, written only after their archive is stored.
"""

from .tarball import ArchiveEntry, archive_size, write_archive
from .package_builder import PackageBuilder
from .manifest import ManifestSynthesizer

__all__ = [
    "ArchiveEntry",
    "archive_size",
    "write_archive",
    "PackageBuilder",
    "ManifestSynthesizer",
]
