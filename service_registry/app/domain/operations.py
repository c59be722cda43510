"""
Operation enumeration and lookup over an API description.
"""

from typing import List, Optional

from .models import APIDescription, HTTP_METHODS, Operation


PACKAGE_PATH_SEPARATOR = "__"


def package_name_to_operation_id(package_name: str) -> str:
    """Translate a package name into the operation id it stands for.

    Package names cannot contain ``/``, so ``__`` is accepted as an alias.
    """
    return package_name.replace(PACKAGE_PATH_SEPARATOR, "/")


class OperationIndex:
    """Read-only view over the operations of one API description."""

    def __init__(self, description: APIDescription):
        self.description = description
        self._operations: Optional[List[Operation]] = None

    def list_operations(self) -> List[Operation]:
        """Enumerate operations in document order, verbs in HTTP_METHODS order."""
        if self._operations is None:
            operations: List[Operation] = []
            for path, path_item in self.description.paths.items():
                if not isinstance(path_item, dict):
                    continue
                for method in HTTP_METHODS:
                    operation = path_item.get(method)
                    if not isinstance(operation, dict) or not operation.get("operationId"):
                        continue
                    operations.append(Operation.from_dict(method, path, operation))
            self._operations = operations
        return self._operations

    def find_operation(self, package_name: str) -> Optional[Operation]:
        """Find the operation a package name refers to.

        Matching is case-insensitive. When a description reuses an operation
        id the first one enumerated wins; duplicate ids are invalid OpenAPI
        and no further tie-breaking is attempted.
        """
        wanted = package_name_to_operation_id(package_name).lower()
        for operation in self.list_operations():
            if operation.operation_id.lower() == wanted:
                return operation
        return None
