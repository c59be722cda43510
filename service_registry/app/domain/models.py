"""
API description data models for the Registry Service.
"""

from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field


HTTP_METHODS = ("get", "post", "put", "patch", "delete")


@dataclass
class Parameter:
    """Operation parameter (path, query, header or cookie)."""
    name: str
    location: str
    required: bool = False
    schema: Dict[str, Any] = field(default_factory=dict)
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Parameter":
        return cls(
            name=str(data.get("name", "")),
            location=str(data.get("in", "query")),
            required=bool(data.get("required", False)),
            schema=data.get("schema") if isinstance(data.get("schema"), dict) else {},
            description=data.get("description"),
        )


@dataclass
class Operation:
    """One named endpoint inside an API description."""
    operation_id: str
    method: str
    path: str
    summary: Optional[str] = None
    description: Optional[str] = None
    parameters: List[Parameter] = field(default_factory=list)
    request_body: Optional[Dict[str, Any]] = None
    responses: Dict[str, Any] = field(default_factory=dict)
    servers: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, method: str, path: str, data: Dict[str, Any]) -> "Operation":
        parameters = [
            Parameter.from_dict(item)
            for item in data.get("parameters") or []
            if isinstance(item, dict)
        ]
        return cls(
            operation_id=str(data["operationId"]),
            method=method,
            path=path,
            summary=data.get("summary"),
            description=data.get("description"),
            parameters=parameters,
            request_body=data.get("requestBody") if isinstance(data.get("requestBody"), dict) else None,
            responses=data.get("responses") if isinstance(data.get("responses"), dict) else {},
            servers=[s for s in data.get("servers") or [] if isinstance(s, dict)],
        )


@dataclass
class APIDescription:
    """A fetched OpenAPI document.

    Only ``paths`` is required; ``info.title`` and ``servers`` fall back to
    the host the document was fetched from.
    """
    title: str
    version: str
    base_url: str
    paths: Dict[str, Any]
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_document(cls, document: Dict[str, Any], host: str, scheme: str = "https") -> "APIDescription":
        info = document.get("info") if isinstance(document.get("info"), dict) else {}
        servers = document.get("servers") if isinstance(document.get("servers"), list) else []

        base_url = f"{scheme}://{host}"
        if servers and isinstance(servers[0], dict) and servers[0].get("url"):
            base_url = str(servers[0]["url"])

        return cls(
            title=str(info.get("title") or host),
            version=str(info.get("version") or ""),
            base_url=base_url,
            paths=document["paths"],
            raw=document,
        )
