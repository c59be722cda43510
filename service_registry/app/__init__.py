"""
Registry Service package for OAPIS.

The registry answers npm metadata and tarball requests by synthesizing
packages from remote OpenAPI descriptions:
- Metadata requests fetch the description, build the package archive,
  digest and cache it, then return a manifest pointing at it.
- Tarball requests serve the cached archive verbatim, or fail.

Structure:
- app.main: FastAPI app, routes, and collaborator wiring.
- app.routing: request path classification.
- app.adapters: upstream API description client.
- app.domain: description models and operation lookup.
- app.packaging: tar encoding, package layout, manifest synthesis.
- app.caching: archive digests, cache stores and retrieval.
"""
