"""
API description client for the Registry Service.
"""

import json
from typing import Any, Dict, Optional

import httpx
import yaml

from shared.logging import get_logger
from ..domain.models import APIDescription


class DescriptionClient:
    """Fetches OpenAPI documents from the domain a package is named after.

    Every failure (transport error, non-2xx status, unparseable body) is
    reported as ``None``; callers treat that exactly like an unknown
    package. There is a single attempt per call.
    """

    def __init__(
        self,
        scheme: str = "https",
        document_path: str = "openapi.json",
        default_tld: str = "com",
        timeout: float = 10.0,
        metrics=None,
    ):
        self.scheme = scheme
        self.document_path = document_path.lstrip("/")
        self.default_tld = default_tld.lstrip(".")
        self.timeout = timeout
        self.metrics = metrics
        self.logger = get_logger("registry.description_client")

    def normalize_host(self, domain: str) -> str:
        """Bare names get the default top-level domain appended."""
        domain = domain.strip().strip("/")
        if "." in domain:
            return domain
        return f"{domain}.{self.default_tld}"

    def document_url(self, host: str) -> str:
        return f"{self.scheme}://{host}/{self.document_path}"

    async def fetch(self, domain: str) -> Optional[APIDescription]:
        """Fetch and parse the API description for ``domain``."""
        host = self.normalize_host(domain)
        url = self.document_url(host)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.get(url, headers={"Accept": "application/json, application/yaml"})
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            # names that do not form a valid host are lookup misses like any other
            self.logger.warning("API description fetch failed", url=url, error=str(exc))
            self._record("transport_error")
            return None

        if not response.is_success:
            self.logger.info("API description not available", url=url, status_code=response.status_code)
            self._record("status_error")
            return None

        document = self._parse_document(response.text)
        if document is None:
            self.logger.warning("API description is not a usable OpenAPI document", url=url)
            self._record("parse_error")
            return None

        self.logger.debug("API description retrieved", url=url, paths=len(document["paths"]))
        self._record("ok")
        return APIDescription.from_document(document, host, self.scheme)

    def _parse_document(self, text: str) -> Optional[Dict[str, Any]]:
        """Parse JSON first, then YAML; require a ``paths`` mapping."""
        try:
            document = json.loads(text)
        except json.JSONDecodeError:
            try:
                document = yaml.safe_load(text)
            except yaml.YAMLError:
                return None

        if not isinstance(document, dict) or not isinstance(document.get("paths"), dict):
            return None
        return document

    def _record(self, result: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("description_fetch_total", result=result)
