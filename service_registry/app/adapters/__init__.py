"""
Adapters package for the Registry Service.

Contains HTTP client wrappers for upstream dependencies. Adapters never
retry and never raise for upstream failures; they report absence instead.
"""

from .description_client import DescriptionClient

__all__ = [
    "DescriptionClient",
]
