"""
Registry service for OAPIS.

Serves npm-compatible package metadata and tarballs synthesized from the
OpenAPI description published by the domain a package is named after.
"""

import time
from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import PackageNotFoundError
from shared.logging import set_package_context
from shared.tracing import add_span_attributes
from .adapters.description_client import DescriptionClient
from .caching.archive_cache import ArchiveCache, ArchiveRetrieval
from .caching.archive_store import InMemoryArchiveStore, RedisArchiveStore
from .domain.operations import OperationIndex, package_name_to_operation_id
from .packaging.manifest import ManifestSynthesizer, scoped_name
from .packaging.package_builder import PackageBuilder
from .routing.path_router import RouteKind, RouteMatch, classify_path


class RegistryService(BaseService):
    """Registry service implementation.

    Collaborators (cache store, description fetcher, stub generator,
    annotation eraser) can be injected; defaults come from configuration.
    """

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        store=None,
        fetcher=None,
        generator=None,
        eraser=None,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__("registry", 8000, config)

        if store is None:
            if self.config.redis_url:
                store = RedisArchiveStore(self.config.redis_url)
            else:
                self.logger.warning("No redis_url configured, archives are cached in-process")
                store = InMemoryArchiveStore()
        self.store = store

        self.description_client = fetcher or DescriptionClient(
            scheme=self.config.description_scheme,
            document_path=self.config.description_path,
            default_tld=self.config.default_tld,
            timeout=self.config.fetch_timeout_seconds,
            metrics=self.metrics,
        )
        self.archive_cache = ArchiveCache(
            self.store,
            ttl_seconds=self.config.archive_ttl_seconds,
            compress=self.config.compress_archives,
            clock=clock,
            metrics=self.metrics,
        )
        self.archive_retrieval = ArchiveRetrieval(self.archive_cache, metrics=self.metrics)
        self.synthesizer = ManifestSynthesizer(
            PackageBuilder(generator, eraser),
            self.archive_cache,
            public_base_url=self.config.public_base_url,
            version=self.config.package_version,
            metrics=self.metrics,
        )

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.store.close()

        self._setup_registry_routes()

        self.app.state.registry_service = self

    def _setup_registry_routes(self):
        """Set up registry routes; the catch-all must be registered last."""

        @self.app.get("/-/ping")
        async def ping():
            return {}

        @self.app.get("/{full_path:path}")
        async def registry_path(full_path: str):
            match = classify_path(full_path)
            if match is None:
                raise PackageNotFoundError("unrecognized registry path", details={"path": full_path})
            return await self.dispatch(match)

    async def dispatch(self, match: RouteMatch) -> Response:
        """Route a classified request to its handler."""
        if match.kind == RouteKind.ROOT:
            return PlainTextResponse(self.config.banner)

        set_package_context(scoped_name(match.scope, match.package) if match.scope else match.package)
        add_span_attributes(
            **{"registry.kind": match.kind.value, "registry.package": match.package, "registry.scope": match.scope}
        )

        if match.kind == RouteKind.PACKAGE:
            return await self.package_metadata(match.package)
        if match.kind == RouteKind.SCOPED_PACKAGE:
            return await self.scoped_package_metadata(match.scope, match.package)
        return await self.package_tarball(match)

    async def package_metadata(self, package: str) -> Response:
        """Manifest for an unscoped package covering a whole domain."""
        description = await self.description_client.fetch(package_name_to_operation_id(package))
        if description is None:
            raise PackageNotFoundError("package not found - no OpenAPI spec available")

        operations = OperationIndex(description).list_operations()
        manifest = await self.synthesizer.domain_manifest(package, description, operations)
        return JSONResponse(manifest)

    async def scoped_package_metadata(self, scope: str, package: str) -> Response:
        """Manifest for a scoped package wrapping one operation of the scope's domain."""
        description = await self.description_client.fetch(scope)
        if description is None:
            raise PackageNotFoundError("package not found - no OpenAPI spec available for scope")

        operation = OperationIndex(description).find_operation(package)
        if operation is None:
            raise PackageNotFoundError(
                "operation not found for package name",
                details={"operation_id": package_name_to_operation_id(package)},
            )

        manifest = await self.synthesizer.operation_manifest(scope, package, operation, description)
        return JSONResponse(manifest)

    async def package_tarball(self, match: RouteMatch) -> Response:
        """Serve the archive stored when the package's manifest was produced."""
        identity = scoped_name(match.scope, match.package) if match.scope else match.package
        record = await self.archive_retrieval.retrieve(identity, match.version)
        return Response(
            content=record.data,
            media_type=record.content_type,
            headers={"ETag": f'"{record.shasum}"'},
        )

    def _endpoint_label(self, request: Request) -> str:
        path = request.url.path
        if path.startswith("/-/"):
            return path
        match = classify_path(path)
        return match.kind.value if match else "unmatched"

    async def _check_dependencies(self):
        """Check registry dependencies."""
        return {"archive_store": "ok" if await self.store.ping() else "error"}


def create_app():
    """Create FastAPI application."""
    service = RegistryService()
    return service.app


def main():
    service = RegistryService()
    service.run()


if __name__ == "__main__":
    main()
