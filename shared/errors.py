"""
Shared error handling for the OAPIS Registry.

Registry clients (npm, yarn, pnpm) understand CouchDB-style error bodies,
so every expected failure renders as ``{"error": ..., "reason": ...}``.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Registry error body."""

    error: str
    reason: str


class RegistryException(Exception):
    """Base exception for registry services."""

    status_code: int = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(error=self.code, reason=self.message)


class PackageNotFoundError(RegistryException):
    """The API description or the requested operation does not exist."""

    status_code = 404

    def __init__(self, message: str = "package not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("not_found", message, details)


class ArchiveUnavailableError(RegistryException):
    """No unexpired archive is stored for the requested package version."""

    status_code = 404

    def __init__(
        self,
        message: str = "archive not available, request package metadata first",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__("not_found", message, details)


class ArchiveStoreError(RegistryException):
    """The cache store rejected an archive write."""

    status_code = 500

    def __init__(self, message: str = "archive store write failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("internal_error", message, details)
