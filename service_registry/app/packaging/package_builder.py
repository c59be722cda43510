"""
Assembles the files of a generated npm package.
"""

import json
from typing import Any, Dict, List, Optional

from shared.logging import get_logger
from ..domain.models import Operation
from .codegen import JavaScriptStubGenerator, PassthroughAnnotationEraser
from .tarball import ArchiveEntry


PACKAGE_ROOT = "package"
DEFAULT_DESCRIPTION = "Generated API client"
AUTHOR = "npm.oapis.org"
TEST_SCRIPT = 'echo "Error: no test specified" && exit 1'


def package_json(name: str, version: str, description: str) -> Dict[str, Any]:
    """The ``package.json`` shared by the archive and the manifest."""
    return {
        "name": name,
        "version": version,
        "description": description,
        "main": "index.js",
        "scripts": {"test": TEST_SCRIPT},
        "dependencies": {},
        "author": AUTHOR,
        "license": "MIT",
    }


class PackageBuilder:
    """Turns operations into the ordered entries of a package archive."""

    def __init__(self, generator=None, eraser=None):
        self.generator = generator or JavaScriptStubGenerator()
        self.eraser = eraser or PassthroughAnnotationEraser()
        self.logger = get_logger("registry.package_builder")

    def build_entries(
        self,
        name: str,
        version: str,
        operations: List[Operation],
        base_url: str,
        description: Optional[str] = None,
        readme: Optional[str] = None,
    ) -> List[ArchiveEntry]:
        """Entries for ``package.json``, ``README.md`` and ``index.js``."""
        description = description or DEFAULT_DESCRIPTION
        manifest = package_json(name, version, description)

        source = "\n".join(self.generator.generate(operation, base_url) for operation in operations)
        source = self.eraser.strip(source)

        self.logger.debug(
            "Package sources generated",
            package=name,
            operations=len(operations),
            source_bytes=len(source),
        )

        return [
            ArchiveEntry.text(f"{PACKAGE_ROOT}/package.json", json.dumps(manifest, indent=2)),
            ArchiveEntry.text(f"{PACKAGE_ROOT}/README.md", readme or f"# {name}\n\n{description}"),
            ArchiveEntry.text(f"{PACKAGE_ROOT}/index.js", source),
        ]
