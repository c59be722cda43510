"""
Classification of registry request paths.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


TARBALL_MARKER = "-"
TARBALL_SUFFIX = ".tgz"


class RouteKind(str, Enum):
    """Request shapes the registry answers."""
    ROOT = "root"
    PACKAGE = "package"
    SCOPED_PACKAGE = "scoped_package"
    TARBALL = "tarball"
    SCOPED_TARBALL = "scoped_tarball"


@dataclass(frozen=True)
class RouteMatch:
    kind: RouteKind
    package: Optional[str] = None
    scope: Optional[str] = None
    version: Optional[str] = None

    @property
    def is_tarball(self) -> bool:
        return self.kind in (RouteKind.TARBALL, RouteKind.SCOPED_TARBALL)


def _version_from_filename(package: str, filename: str) -> str:
    """Text between ``<package>-`` and ``.tgz``.

    The prefix is skipped by length, not verified: a filename for another
    package yields a version that simply never matches a stored archive.
    """
    return filename[len(package) + 1:-len(TARBALL_SUFFIX)]


def _scope(segment: str) -> str:
    # npm sends scoped names as "@scope%2Fname"
    return segment[1:] if segment.startswith("@") else segment


def classify_path(path: str) -> Optional[RouteMatch]:
    """Classify a request path; ``None`` when it has no registry shape."""
    parts = [part for part in path.split("/") if part]

    if not parts:
        return RouteMatch(RouteKind.ROOT)

    if len(parts) == 1:
        return RouteMatch(RouteKind.PACKAGE, package=parts[0])

    if len(parts) == 2:
        return RouteMatch(RouteKind.SCOPED_PACKAGE, package=parts[1], scope=_scope(parts[0]))

    if len(parts) == 3 and parts[1] == TARBALL_MARKER and parts[2].endswith(TARBALL_SUFFIX):
        package = parts[0]
        return RouteMatch(RouteKind.TARBALL, package=package, version=_version_from_filename(package, parts[2]))

    if len(parts) == 4 and parts[2] == TARBALL_MARKER and parts[3].endswith(TARBALL_SUFFIX):
        package = parts[1]
        return RouteMatch(
            RouteKind.SCOPED_TARBALL,
            package=package,
            scope=_scope(parts[0]),
            version=_version_from_filename(package, parts[3]),
        )

    return None
