"""Data models for the library registry.

Defines the records shared by the registry, scope filter, resolver and
assembler:
- ArtifactPaths: Compiled object and interface descriptor of one unit
- ArtifactLayout: Where a build directory places unit artifacts
- LibraryUnit: One registered, independently compiled library
- LinkPlan: Ordered search paths and link units for a consumer
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Optional

from .errors import ArtifactNotReadyError


class RegistrationPolicy(Enum):
    """How the registry treats a second registration of the same name."""

    STRICT = "strict"
    LAST_WRITE_WINS = "last_write_wins"


@dataclass(frozen=True)
class ArtifactPaths:
    """Build outputs of a library unit.

    Attributes:
        object_file: Compiled object linked into consumers
        interface_file: Module interface descriptor imported by consumers
    """

    object_file: Path
    interface_file: Path

    @property
    def search_dir(self) -> Path:
        """Directory a consumer adds to its module search path."""
        return self.interface_file.parent

    def missing(self) -> list[Path]:
        """Return the artifact files that do not exist on disk."""
        return [p for p in (self.object_file, self.interface_file) if not p.is_file()]

    def to_dict(self) -> dict[str, str]:
        """Serialize to dictionary."""
        return {
            "object_file": str(self.object_file),
            "interface_file": str(self.interface_file),
        }

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> "ArtifactPaths":
        """Deserialize from dictionary."""
        return cls(
            object_file=Path(data["object_file"]),
            interface_file=Path(data["interface_file"]),
        )


@dataclass(frozen=True)
class ArtifactLayout:
    """Artifact placement inside a build directory.

    Every unit gets its own directory so the interface descriptor directory
    can be used directly as a module search path:

        <build_dir>/modules/<name>/<name>.o
        <build_dir>/modules/<name>/<name><interface_suffix>
    """

    build_dir: Path
    interface_suffix: str = ".swiftmodule"
    object_suffix: str = ".o"

    @property
    def modules_dir(self) -> Path:
        return self.build_dir / "modules"

    def unit_dir(self, name: str) -> Path:
        return self.modules_dir / name

    def for_unit(self, name: str) -> ArtifactPaths:
        """Planned artifact paths for the named unit."""
        unit_dir = self.unit_dir(name)
        return ArtifactPaths(
            object_file=unit_dir / f"{name}{self.object_suffix}",
            interface_file=unit_dir / f"{name}{self.interface_suffix}",
        )

    def ensure_dirs(self, name: str) -> Path:
        """Create the output directory for the named unit."""
        unit_dir = self.unit_dir(name)
        unit_dir.mkdir(parents=True, exist_ok=True)
        return unit_dir


def ordered_unique(names: Iterable[str]) -> tuple[str, ...]:
    """De-duplicate names while keeping first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for name in names:
        if name and name not in seen:
            seen.add(name)
            result.append(name)
    return tuple(result)


@dataclass(frozen=True)
class LibraryUnit:
    """A registered, independently compiled library.

    Attributes:
        name: Unique identifier and resolution key
        source_root: Canonical (absolute, symlink-resolved) source tree
        dependencies: Names of units this unit imports, in declaration order
        artifacts: Planned or produced build outputs (None if unknown)
    """

    name: str
    source_root: Path
    dependencies: tuple[str, ...] = ()
    artifacts: Optional[ArtifactPaths] = None

    @property
    def artifact_ready(self) -> bool:
        """True once the compiled object and interface descriptor both exist."""
        return self.artifacts is not None and not self.artifacts.missing()

    def require_artifacts(self) -> ArtifactPaths:
        """Return the artifact paths, raising if the unit is not built.

        Raises:
            ArtifactNotReadyError: If no artifacts are recorded or a file is missing.
        """
        if self.artifacts is None:
            raise ArtifactNotReadyError(self.name)
        missing = self.artifacts.missing()
        if missing:
            raise ArtifactNotReadyError(self.name, missing)
        return self.artifacts

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "name": self.name,
            "source_root": str(self.source_root),
            "dependencies": list(self.dependencies),
            "artifacts": self.artifacts.to_dict() if self.artifacts else None,
            "artifact_ready": self.artifact_ready,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LibraryUnit":
        """Deserialize from dictionary."""
        artifacts = data.get("artifacts")
        return cls(
            name=data["name"],
            source_root=Path(data["source_root"]),
            dependencies=tuple(data.get("dependencies", [])),
            artifacts=ArtifactPaths.from_dict(artifacts) if artifacts else None,
        )


@dataclass
class LinkPlan:
    """Compiler and linker inputs for one consumer.

    search_paths and link_units are index-aligned: search_paths[i] is the
    interface directory of link_units[i]. runtime_search_paths belong to
    implicitly available units and always come first on the command line.
    """

    search_paths: list[Path] = field(default_factory=list)
    link_units: list[str] = field(default_factory=list)
    runtime_search_paths: list[Path] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.link_units)

    def include_flags(self, flag: str = "-I") -> list[str]:
        """Render search paths as compiler arguments, runtime paths first."""
        args: list[str] = []
        for path in [*self.runtime_search_paths, *self.search_paths]:
            args.extend([flag, str(path)])
        return args

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "search_paths": [str(p) for p in self.search_paths],
            "link_units": list(self.link_units),
            "runtime_search_paths": [str(p) for p in self.runtime_search_paths],
        }
