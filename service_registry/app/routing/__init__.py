"""
Routing package for the Registry Service.
"""

from .path_router import RouteKind, RouteMatch, classify_path

__all__ = ["RouteKind", "RouteMatch", "classify_path"]
