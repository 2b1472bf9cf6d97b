"""Owned store of registered library units.

Each library unit registers itself while its own build configuration runs.
Consumers configured later look units up by name. The registry is an
explicit object passed to the scope filter, resolver and assembler rather
than process-wide state.
"""

import logging
import os
import threading
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional, Union

from .errors import DuplicateRegistrationError, UnknownDependencyError
from .models import ArtifactPaths, LibraryUnit, RegistrationPolicy, ordered_unique

logger = logging.getLogger(__name__)


def canonicalize(path: Union[str, Path], base_dir: Optional[Path] = None) -> Path:
    """Return the absolute, symlink-resolved form of a path.

    Args:
        path: Path to canonicalize (may be relative)
        base_dir: Directory relative paths are resolved against (defaults to cwd)

    Returns:
        Canonical path. The path does not need to exist.
    """
    candidate = Path(os.path.expanduser(str(path)))
    if not candidate.is_absolute() and base_dir is not None:
        candidate = Path(base_dir) / candidate
    return candidate.resolve()


class Registry:
    """Mapping from library name to LibraryUnit.

    Thread-safe: registrations and snapshots are serialized under a single
    lock, so a multi-threaded host cannot observe a half-written entry.

    Usage:
        registry = Registry()
        registry.register("Core", "/src/core")
        registry.register("Util", "/src/util", ["Core"])
        unit = registry.lookup("Util")
    """

    def __init__(self, policy: RegistrationPolicy = RegistrationPolicy.STRICT) -> None:
        self.policy = policy
        self._units: dict[str, LibraryUnit] = {}
        self._lock = threading.Lock()

    def register(
        self,
        name: str,
        source_root: Union[str, Path],
        dependencies: Iterable[str] = (),
        artifacts: Optional[ArtifactPaths] = None,
    ) -> LibraryUnit:
        """Add or update a library unit.

        Registering a name again with the same canonical source root is
        idempotent; the later declaration refreshes dependencies, and
        artifacts when it passes them (recorded artifacts are kept
        otherwise). A different source root is a configuration error under
        the strict policy and an overwrite under last-write-wins.

        Args:
            name: Unique library name
            source_root: Library source tree (canonicalized here)
            dependencies: Names of libraries this one imports, in order
            artifacts: Planned or produced build outputs

        Returns:
            The stored LibraryUnit.

        Raises:
            ValueError: If name is empty.
            DuplicateRegistrationError: If name is taken by another source root
                and the policy is STRICT.
        """
        if not name:
            raise ValueError("Library name must not be empty")

        unit = LibraryUnit(
            name=name,
            source_root=canonicalize(source_root),
            dependencies=ordered_unique(dependencies),
            artifacts=artifacts,
        )

        with self._lock:
            existing = self._units.get(name)
            if existing is not None and existing.source_root != unit.source_root:
                if self.policy is RegistrationPolicy.STRICT:
                    raise DuplicateRegistrationError(name, existing.source_root, unit.source_root)
                logger.warning("Overwriting library %s: %s replaces %s", name, unit.source_root, existing.source_root)
            elif existing is not None:
                logger.debug("Library %s re-registered from %s", name, unit.source_root)
                if artifacts is None:
                    unit = replace(unit, artifacts=existing.artifacts)
            self._units[name] = unit

        logger.info("Registered library: %s at %s", name, unit.source_root)
        return unit

    def record_artifacts(self, name: str, artifacts: ArtifactPaths) -> LibraryUnit:
        """Attach build outputs reported by the compiler to a registered unit.

        Raises:
            UnknownDependencyError: If the name is not registered.
        """
        with self._lock:
            existing = self._units.get(name)
            if existing is None:
                raise UnknownDependencyError(name)
            updated = replace(existing, artifacts=artifacts)
            self._units[name] = updated
            return updated

    def lookup(self, name: str) -> Optional[LibraryUnit]:
        """Return the unit registered under name, or None."""
        with self._lock:
            return self._units.get(name)

    def get(self, name: str) -> LibraryUnit:
        """Return the unit registered under name.

        Raises:
            UnknownDependencyError: If the name is not registered.
        """
        unit = self.lookup(name)
        if unit is None:
            raise UnknownDependencyError(name)
        return unit

    def all_names(self) -> list[str]:
        """Registered names in registration order."""
        with self._lock:
            return list(self._units)

    def units(self) -> list[LibraryUnit]:
        """Snapshot of all registered units in registration order."""
        with self._lock:
            return list(self._units.values())

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._units

    def __len__(self) -> int:
        with self._lock:
            return len(self._units)

    def __iter__(self) -> Iterator[LibraryUnit]:
        return iter(self.units())

    def to_dict(self) -> dict[str, Any]:
        """Serialize registry state to dictionary."""
        with self._lock:
            return {
                "policy": self.policy.value,
                "units": {name: unit.to_dict() for name, unit in self._units.items()},
            }
