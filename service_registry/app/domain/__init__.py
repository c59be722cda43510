"""
Domain package for the Registry Service.

API description models and the operation index that resolves package
names to operations.
"""

from .models import APIDescription, Operation, Parameter
from .operations import OperationIndex, package_name_to_operation_id

__all__ = [
    "APIDescription",
    "Operation",
    "Parameter",
    "OperationIndex",
    "package_name_to_operation_id",
]
