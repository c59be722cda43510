"""
Package manifest (packument) synthesis.

Every manifest is produced in the same order: build the archive, hand it to
the archive cache, and only then write the ``dist`` block from the stored
record. A manifest therefore never advertises bytes that do not exist.
"""

from contextlib import nullcontext
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from shared.logging import get_logger
from shared.tracing import trace_operation
from ..caching.archive_cache import ArchiveCache, CacheRecord
from ..domain.models import APIDescription, Operation
from .package_builder import PackageBuilder, package_json
from .tarball import write_archive


# npm's reproducible-build mtime (1985-10-26T08:15:00Z): identical inputs give identical archives
REPRODUCIBLE_MTIME = 499162500


def _isoformat(timestamp: float) -> str:
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def scoped_name(scope: str, package: str) -> str:
    return f"@{scope}/{package}"


class ManifestSynthesizer:
    """Builds registry manifests for whole-domain and single-operation packages."""

    def __init__(
        self,
        builder: PackageBuilder,
        cache: ArchiveCache,
        public_base_url: str,
        version: str = "1.0.0",
        mtime: Optional[int] = REPRODUCIBLE_MTIME,
        metrics=None,
    ):
        self.builder = builder
        self.cache = cache
        self.public_base_url = public_base_url.rstrip("/")
        self.version = version
        self.mtime = mtime
        self.metrics = metrics
        self.logger = get_logger("registry.manifest")

    def tarball_url(self, package: str, version: str, scope: Optional[str] = None) -> str:
        filename = f"{package}-{version}.tgz"
        if scope:
            return f"{self.public_base_url}/@{scope}/{package}/-/{filename}"
        return f"{self.public_base_url}/{package}/-/{filename}"

    async def domain_manifest(
        self,
        package: str,
        description: APIDescription,
        operations: List[Operation],
    ) -> Dict[str, Any]:
        """Manifest bundling every operation of ``description`` into one module."""
        summary = f"API client for {description.title}"
        version_description = f"Complete API client for {description.title}"
        readme = self._domain_readme(package, description, operations)

        record = await self._materialize(
            "domain",
            identity=package,
            operations=operations,
            base_url=description.base_url,
            description=version_description,
            readme=readme,
        )

        version_record = self._version_record(package, version_description, record, self.tarball_url(package, self.version))
        version_record["operations"] = [
            {
                "id": operation.operation_id,
                "method": operation.method,
                "path": operation.path,
                "summary": operation.summary or "",
                "description": operation.description or "",
            }
            for operation in operations
        ]
        return self._document(package, summary, version_record, readme, record)

    async def operation_manifest(
        self,
        scope: str,
        package: str,
        operation: Operation,
        description: APIDescription,
    ) -> Dict[str, Any]:
        """Manifest for a scoped package wrapping a single operation."""
        full_name = scoped_name(scope, package)
        summary = operation.description or operation.summary or f"Generated from {description.title}"
        readme = f"# {full_name}\n\n{summary}"

        record = await self._materialize(
            "operation",
            identity=full_name,
            operations=[operation],
            base_url=description.base_url,
            description=summary,
            readme=readme,
        )

        version_record = self._version_record(
            full_name, summary, record, self.tarball_url(package, self.version, scope=scope)
        )
        return self._document(full_name, summary, version_record, readme, record)

    async def _materialize(
        self,
        mode: str,
        identity: str,
        operations: List[Operation],
        base_url: str,
        description: str,
        readme: str,
    ) -> CacheRecord:
        """Build, encode, digest and store the archive for one package version."""
        timer = (
            self.metrics.time_operation("materialization_duration_seconds", mode=mode)
            if self.metrics else nullcontext()
        )
        with trace_operation("registry.materialize", package=identity, mode=mode, operations=len(operations)), timer:
            entries = self.builder.build_entries(
                identity,
                self.version,
                operations,
                base_url,
                description=description,
                readme=readme,
            )
            tarball = write_archive(entries, mtime=self.mtime)
            record = await self.cache.store_archive(identity, self.version, tarball)

        if self.metrics:
            self.metrics.increment_counter("packages_materialized_total", mode=mode)

        self.logger.info(
            "Package materialized",
            package=identity,
            version=self.version,
            mode=mode,
            operations=len(operations),
            shasum=record.shasum,
        )
        return record

    def _version_record(self, name: str, description: str, record: CacheRecord, tarball_url: str) -> Dict[str, Any]:
        version_record = package_json(name, self.version, description)
        version_record.pop("author")
        version_record.pop("license")
        version_record["dist"] = {
            "shasum": record.shasum,
            "integrity": record.integrity,
            "tarball": tarball_url,
        }
        return version_record

    def _document(
        self,
        name: str,
        description: str,
        version_record: Dict[str, Any],
        readme: str,
        record: CacheRecord,
    ) -> Dict[str, Any]:
        created = _isoformat(record.created_at)
        return {
            "_id": name,
            "_rev": f"1-{int(record.created_at * 1000):x}",
            "name": name,
            "description": description,
            "dist-tags": {"latest": self.version},
            "versions": {self.version: version_record},
            "time": {
                "created": created,
                "modified": created,
                self.version: created,
            },
            "readme": readme,
        }

    def _domain_readme(self, package: str, description: APIDescription, operations: List[Operation]) -> str:
        listing = "\n".join(f"- {operation.operation_id}" for operation in operations)
        return (
            f"# {package}\n\nGenerated API client for {description.title}"
            f"\n\n## Included Operations\n\n{listing}"
        )
