"""Exception hierarchy for registry, discovery and resolution failures.

Fatal errors (duplicate identity, cycles, unknown names) propagate to the
consumer that triggered them. ArtifactNotReadyError is absorbed by the
scope filter as an exclusion.
"""

from pathlib import Path
from typing import Optional, Sequence


class RegistryError(Exception):
    """Base class for all library registry errors."""

    pass


class DuplicateRegistrationError(RegistryError):
    """Raised when a name is registered twice with different source roots."""

    def __init__(self, name: str, existing_root: Path, new_root: Path):
        self.name = name
        self.existing_root = existing_root
        self.new_root = new_root
        super().__init__(f"Library '{name}' is already registered from {existing_root}, refusing to register it again from {new_root}")


class CyclicDependencyError(RegistryError):
    """Raised when a dependency cycle is reachable from the requested unit.

    Attributes:
        path: Full recursion stack at detection time plus the repeated name
        cycle: The closed loop only, starting and ending at the repeated name
    """

    def __init__(self, path: Sequence[str]):
        self.path = list(path)
        repeated = self.path[-1]
        self.cycle = self.path[self.path.index(repeated) :]
        super().__init__(f"Cyclic dependency detected: {' -> '.join(self.cycle)}")


class UnknownDependencyError(RegistryError):
    """Raised when a name is not present in the registry at resolution time."""

    def __init__(self, name: str, required_by: Optional[str] = None):
        self.name = name
        self.required_by = required_by
        if required_by:
            message = f"Library '{required_by}' depends on unknown library '{name}'"
        else:
            message = f"Unknown library '{name}'"
        super().__init__(message)


class ArtifactNotReadyError(RegistryError):
    """Raised when a unit's compiled object or interface descriptor is missing."""

    def __init__(self, name: str, missing: Sequence[Path] = ()):
        self.name = name
        self.missing = list(missing)
        if self.missing:
            detail = ", ".join(str(p) for p in self.missing)
            message = f"Library '{name}' is not built yet (missing {detail})"
        else:
            message = f"Library '{name}' has no recorded build artifacts"
        super().__init__(message)
