"""Library manifests and workspace discovery.

A library directory declares itself with a libunit.ini manifest:

    [library]
    name = Hello
    sources = lib/**/*.swift
    dependencies = Utils, Common

name defaults to the directory name, sources to every .swift file below
the manifest, and dependencies, when omitted, are detected from the import
statements of the sources. Scanning a workspace registers each declared
library with its planned artifact paths, the same thing a library's own
build configuration does when it runs.
"""

import configparser
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

from .config import MANIFEST_NAME
from .imports import SYSTEM_MODULES, detect_imports
from .registry.models import ArtifactLayout, LibraryUnit
from .registry.registry import Registry
from .registry.scope import canonical_roots

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_PATTERNS = ("**/*.swift",)


class ManifestError(Exception):
    """Raised when a library manifest cannot be parsed."""

    pass


def _split_list(value: str) -> tuple[str, ...]:
    parts = value.replace("\n", ",").split(",")
    return tuple(p.strip() for p in parts if p.strip())


@dataclass(frozen=True)
class LibraryManifest:
    """Parsed libunit.ini.

    Attributes:
        path: Manifest file
        name: Library name
        source_patterns: Glob patterns relative to the manifest directory
        dependencies: Declared dependencies, or None to detect from imports
    """

    path: Path
    name: str
    source_patterns: tuple[str, ...] = DEFAULT_SOURCE_PATTERNS
    dependencies: Optional[tuple[str, ...]] = None

    @property
    def root(self) -> Path:
        return self.path.parent

    @classmethod
    def load(cls, path: Union[str, Path]) -> "LibraryManifest":
        """Parse a manifest file.

        Raises:
            ManifestError: If the file is unreadable or has no [library] section.
        """
        manifest_path = Path(path)
        parser = configparser.ConfigParser(inline_comment_prefixes=(";", "#"))
        try:
            read = parser.read(manifest_path, encoding="utf-8")
        except configparser.Error as e:
            raise ManifestError(f"Invalid manifest {manifest_path}: {e}") from e
        if not read:
            raise ManifestError(f"Manifest not found: {manifest_path}")
        if not parser.has_section("library"):
            raise ManifestError(f"Manifest {manifest_path} has no [library] section")

        section = parser["library"]
        name = section.get("name", "").strip() or manifest_path.parent.name
        patterns = _split_list(section.get("sources", "")) or DEFAULT_SOURCE_PATTERNS
        dependencies: Optional[tuple[str, ...]] = None
        if "dependencies" in section:
            dependencies = _split_list(section["dependencies"])

        return cls(path=manifest_path, name=name, source_patterns=patterns, dependencies=dependencies)

    def sources(self) -> list[Path]:
        """Source files matched by the manifest patterns, sorted."""
        found: set[Path] = set()
        for pattern in self.source_patterns:
            found.update(p for p in self.root.glob(pattern) if p.is_file())
        return sorted(found)

    def resolve_dependencies(self, sources: Iterable[Path], implicit: Iterable[str] = ()) -> tuple[str, ...]:
        """Declared dependencies, or the modules imported by the sources.

        Args:
            sources: Source files to scan when no dependencies are declared
            implicit: Modules every library gets for free (core runtime)
        """
        if self.dependencies is not None:
            return self.dependencies
        ignore = set(SYSTEM_MODULES) | set(implicit) | {self.name}
        return tuple(detect_imports(sources, ignore=ignore))


class Workspace:
    """Discovers library manifests below module roots and registers them.

    Args:
        registry: Registry to populate
        layout: Artifact layout used to plan each library's outputs
        core_unit: Core runtime unit, never recorded as a detected dependency
    """

    def __init__(self, registry: Registry, layout: ArtifactLayout, core_unit: Optional[str] = None) -> None:
        self.registry = registry
        self.layout = layout
        self.core_unit = core_unit

    def find_manifests(self, module_roots: Iterable[Union[str, Path]], base_dir: Optional[Path] = None) -> list[Path]:
        """Manifest files below the existing module roots, without duplicates."""
        manifests: list[Path] = []
        for root in canonical_roots(module_roots, base_dir):
            for manifest in sorted(root.rglob(MANIFEST_NAME)):
                if manifest not in manifests:
                    manifests.append(manifest)
        return manifests

    def register_manifest(self, manifest: LibraryManifest) -> Optional[LibraryUnit]:
        """Register one library declared by a manifest.

        Returns:
            The registered unit, or None when the manifest matches no sources.
        """
        sources = manifest.sources()
        if not sources:
            logger.warning("No sources found for library %s in %s", manifest.name, manifest.root)
            return None

        implicit = [self.core_unit] if self.core_unit else []
        dependencies = manifest.resolve_dependencies(sources, implicit=implicit)
        return self.registry.register(
            manifest.name,
            manifest.root,
            dependencies,
            artifacts=self.layout.for_unit(manifest.name),
        )

    def scan(self, module_roots: Iterable[Union[str, Path]], base_dir: Optional[Path] = None) -> list[LibraryUnit]:
        """Register every library declared below the module roots.

        Raises:
            ManifestError: If a manifest cannot be parsed.
            DuplicateRegistrationError: If two manifests declare the same name.
        """
        registered: list[LibraryUnit] = []
        for manifest_path in self.find_manifests(module_roots, base_dir):
            unit = self.register_manifest(LibraryManifest.load(manifest_path))
            if unit is not None:
                registered.append(unit)
        logger.info("Registered %d libraries from workspace", len(registered))
        return registered
