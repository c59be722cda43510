"""
Unit tests for manifest synthesis, package layout and stub generation.
"""

import gzip
import hashlib
import io
import json
import tarfile

import pytest
from unittest.mock import AsyncMock

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_registry.app.caching.archive_cache import ArchiveCache
from service_registry.app.caching.archive_store import InMemoryArchiveStore
from service_registry.app.domain.models import APIDescription
from service_registry.app.domain.operations import OperationIndex
from service_registry.app.packaging.codegen import JavaScriptStubGenerator, to_identifier
from service_registry.app.packaging.manifest import ManifestSynthesizer, REPRODUCIBLE_MTIME
from service_registry.app.packaging.package_builder import PackageBuilder
from shared.errors import ArchiveStoreError
from shared.metrics import MetricsCollector


LIST_ITEMS = {
    "info": {"title": "Test"},
    "paths": {"/items": {"get": {"operationId": "listItems", "responses": {"200": {}}}}},
}

PETSTORE = {
    "info": {"title": "Petstore", "version": "1.0"},
    "servers": [{"url": "https://api.petstore.test/v2/"}],
    "paths": {
        "/pets/{petId}": {
            "get": {
                "operationId": "getPet",
                "summary": "Fetch a pet",
                "description": "Returns a single pet by id",
                "parameters": [
                    {"name": "petId", "in": "path", "required": True},
                    {"name": "fields", "in": "query"},
                    {"name": "X-Trace", "in": "header"},
                ],
            },
            "put": {
                "operationId": "pets/update",
                "summary": "Update a pet",
                "requestBody": {"content": {"application/json": {"schema": {}}}},
            },
            "delete": {"operationId": "deletePet"},
        },
    },
}


def read_tgz(data: bytes):
    with tarfile.open(fileobj=io.BytesIO(gzip.decompress(data)), mode="r:") as archive:
        return {member.name: archive.extractfile(member).read() for member in archive.getmembers()}


class TestManifestSynthesizer:
    """Test cases for ManifestSynthesizer."""

    @pytest.fixture
    def cache(self):
        return ArchiveCache(InMemoryArchiveStore(), ttl_seconds=300)

    @pytest.fixture
    def synthesizer(self, cache):
        return ManifestSynthesizer(PackageBuilder(), cache, public_base_url="https://npm.oapis.org/")

    @pytest.mark.asyncio
    async def test_domain_manifest_lists_operations(self, synthesizer):
        """The single version lists listItems GET /items."""
        description = APIDescription.from_document(LIST_ITEMS, "example.com")
        operations = OperationIndex(description).list_operations()

        manifest = await synthesizer.domain_manifest("example.com", description, operations)

        assert manifest["name"] == "example.com"
        assert manifest["_id"] == "example.com"
        assert manifest["description"] == "API client for Test"
        assert manifest["dist-tags"] == {"latest": "1.0.0"}
        assert list(manifest["versions"]) == ["1.0.0"]
        version = manifest["versions"]["1.0.0"]
        assert version["operations"] == [
            {"id": "listItems", "method": "get", "path": "/items", "summary": "", "description": ""}
        ]
        assert version["main"] == "index.js"
        assert version["dist"]["tarball"] == "https://npm.oapis.org/example.com/-/example.com-1.0.0.tgz"
        assert "- listItems" in manifest["readme"]
        assert set(manifest["time"]) == {"created", "modified", "1.0.0"}

    @pytest.mark.asyncio
    async def test_dist_digest_matches_cached_bytes(self, synthesizer, cache):
        """The advertised shasum is the digest of the bytes stored for the tarball URL."""
        description = APIDescription.from_document(PETSTORE, "petstore.test")
        operations = OperationIndex(description).list_operations()

        manifest = await synthesizer.domain_manifest("petstore.test", description, operations)
        record = await cache.load_archive("petstore.test", "1.0.0")

        assert manifest["versions"]["1.0.0"]["dist"]["shasum"] == hashlib.sha1(record.data).hexdigest()
        assert manifest["versions"]["1.0.0"]["dist"]["integrity"] == record.integrity

    @pytest.mark.asyncio
    async def test_archive_contents(self, synthesizer, cache):
        """The archive holds package.json, README.md and index.js under package/."""
        description = APIDescription.from_document(PETSTORE, "petstore.test")
        operations = OperationIndex(description).list_operations()

        await synthesizer.domain_manifest("petstore.test", description, operations)
        files = read_tgz((await cache.load_archive("petstore.test", "1.0.0")).data)

        assert list(files) == ["package/package.json", "package/README.md", "package/index.js"]
        package_json = json.loads(files["package/package.json"])
        assert package_json["name"] == "petstore.test"
        assert package_json["version"] == "1.0.0"
        assert package_json["main"] == "index.js"
        source = files["package/index.js"].decode()
        assert 'exports["getPet"]' in source
        assert 'exports["pets/update"] = async function petsUpdate(' in source
        assert 'exports["deletePet"]' in source

    @pytest.mark.asyncio
    async def test_archive_uses_reproducible_mtime(self, synthesizer, cache):
        description = APIDescription.from_document(LIST_ITEMS, "example.com")

        await synthesizer.domain_manifest("example.com", description, OperationIndex(description).list_operations())
        tar_bytes = gzip.decompress((await cache.load_archive("example.com", "1.0.0")).data)

        assert int(tar_bytes[136:147], 8) == REPRODUCIBLE_MTIME

    @pytest.mark.asyncio
    async def test_operation_manifest(self, synthesizer, cache):
        """Scoped manifests wrap one operation under @scope/name."""
        description = APIDescription.from_document(PETSTORE, "petstore.test")
        operation = OperationIndex(description).find_operation("getpet")

        manifest = await synthesizer.operation_manifest("petstore", "getpet", operation, description)

        assert manifest["name"] == "@petstore/getpet"
        assert manifest["description"] == "Returns a single pet by id"
        version = manifest["versions"]["1.0.0"]
        assert "operations" not in version
        assert version["dist"]["tarball"] == "https://npm.oapis.org/@petstore/getpet/-/getpet-1.0.0.tgz"
        record = await cache.load_archive("@petstore/getpet", "1.0.0")
        assert version["dist"]["shasum"] == record.shasum
        files = read_tgz(record.data)
        assert json.loads(files["package/package.json"])["name"] == "@petstore/getpet"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,expected", [
        ("getPet", "Returns a single pet by id"),
        ("pets__update", "Update a pet"),
        ("deletePet", "Generated from Petstore"),
    ])
    async def test_operation_description_priority(self, synthesizer, name, expected):
        """description, then summary, then the document title."""
        description = APIDescription.from_document(PETSTORE, "petstore.test")
        operation = OperationIndex(description).find_operation(name)

        manifest = await synthesizer.operation_manifest("petstore", name, operation, description)

        assert manifest["description"] == expected
        assert manifest["versions"]["1.0.0"]["description"] == expected

    @pytest.mark.asyncio
    async def test_no_manifest_without_stored_archive(self):
        """A failed store write aborts before any manifest exists."""
        store = AsyncMock()
        store.put.return_value = False
        synthesizer = ManifestSynthesizer(PackageBuilder(), ArchiveCache(store), "https://npm.oapis.org")
        description = APIDescription.from_document(LIST_ITEMS, "example.com")

        with pytest.raises(ArchiveStoreError):
            await synthesizer.domain_manifest("example.com", description, OperationIndex(description).list_operations())

    @pytest.mark.asyncio
    async def test_colliding_identifiers_keep_every_operation(self, synthesizer, cache):
        """Ids that derive the same JavaScript name are all exported."""
        description = APIDescription.from_document(
            {
                "paths": {
                    "/a": {"get": {"operationId": "list-items"}},
                    "/b": {"get": {"operationId": "listItems"}},
                    "/c": {"get": {"operationId": "list_items"}},
                }
            },
            "example.com",
        )

        await synthesizer.domain_manifest("example.com", description, OperationIndex(description).list_operations())
        source = read_tgz((await cache.load_archive("example.com", "1.0.0")).data)["package/index.js"].decode()

        assert 'exports["list-items"] = async function listItems(' in source
        assert 'exports["listItems"] = async function listItems(' in source
        assert 'exports["list_items"] = async function listItems(' in source
        assert source.count("exports[") == 3

    @pytest.mark.asyncio
    async def test_materialization_is_timed(self, cache):
        """Each build observes one duration sample per mode."""
        metrics = MetricsCollector("registry")
        synthesizer = ManifestSynthesizer(PackageBuilder(), cache, "https://npm.oapis.org", metrics=metrics)
        description = APIDescription.from_document(LIST_ITEMS, "example.com")

        await synthesizer.domain_manifest("example.com", description, OperationIndex(description).list_operations())

        assert metrics.registry.get_sample_value(
            "materialization_duration_seconds_count", {"mode": "domain"}
        ) == 1.0
        assert metrics.registry.get_sample_value(
            "packages_materialized_total", {"mode": "domain"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_collaborators_are_used(self, cache):
        """Injected generator output passes through the eraser into index.js."""
        generator = type("Gen", (), {"generate": lambda self, op, base: f"const {op.operation_id}: number = 1;\n"})()
        eraser = type("Eraser", (), {"strip": lambda self, src: src.replace(": number", "")})()
        synthesizer = ManifestSynthesizer(PackageBuilder(generator, eraser), cache, "https://npm.oapis.org")
        description = APIDescription.from_document(LIST_ITEMS, "example.com")

        await synthesizer.domain_manifest("example.com", description, OperationIndex(description).list_operations())
        files = read_tgz((await cache.load_archive("example.com", "1.0.0")).data)

        assert files["package/index.js"] == b"const listItems = 1;\n"


class TestStubGenerator:
    """Test cases for the default JavaScript stub generator."""

    @pytest.fixture
    def operations(self):
        description = APIDescription.from_document(PETSTORE, "petstore.test")
        return {op.operation_id: op for op in OperationIndex(description).list_operations()}

    def test_generate_get_with_parameters(self, operations):
        source = JavaScriptStubGenerator().generate(operations["getPet"], "https://api.petstore.test/v2/")

        assert 'exports["getPet"] = async function getPet(params = {}, init = {}) {' in source
        assert 'let path = "/pets/{petId}";' in source
        assert 'path.split("{petId}").join(encodeURIComponent(String(params["petId"])))' in source
        assert 'new URL("https://api.petstore.test/v2" + path)' in source
        assert 'url.searchParams.set("fields", String(params["fields"]))' in source
        assert 'headers["X-Trace"] = String(params["X-Trace"])' in source
        assert 'method: "GET"' in source
        assert "request.body" not in source
        assert " * Fetch a pet" in source

    def test_generate_request_body(self, operations):
        source = JavaScriptStubGenerator().generate(operations["pets/update"], "https://x.test")

        assert 'method: "PUT"' in source
        assert "request.body = JSON.stringify(params.body);" in source
        assert 'path.split("{petId}")' in source

    def test_comment_terminator_escaped(self, operations):
        operation = operations["deletePet"]
        operation.summary = "evil */ code"

        source = JavaScriptStubGenerator().generate(operation, "https://x.test")

        assert "evil * / code" in source

    @pytest.mark.parametrize("operation_id,identifier", [
        ("listItems", "listItems"),
        ("list/items", "listItems"),
        ("get_user-by_id", "getUserById"),
        ("delete", "_delete"),
        ("2fa/verify", "_2faVerify"),
        ("///", "_operation"),
    ])
    def test_to_identifier(self, operation_id, identifier):
        assert to_identifier(operation_id) == identifier
