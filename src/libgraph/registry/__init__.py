"""Library registry, discovery and dependency resolution.

Public API:
    Registry: Owned store of library units, keyed by name.
    ScopeFilter: Finds the registered units visible to a consumer.
    DependencyResolver: Orders units dependencies-first, rejecting cycles.
    LinkAssembler: Turns an order into search paths and link units.
"""

from .assembler import LinkAssembler
from .errors import (
    ArtifactNotReadyError,
    CyclicDependencyError,
    DuplicateRegistrationError,
    RegistryError,
    UnknownDependencyError,
)
from .models import (
    ArtifactLayout,
    ArtifactPaths,
    LibraryUnit,
    LinkPlan,
    RegistrationPolicy,
)
from .registry import Registry, canonicalize
from .resolver import DependencyResolver, ResolutionState, resolve
from .scope import ScopeFilter, canonical_roots, is_within, visible_units

__all__ = [
    "ArtifactLayout",
    "ArtifactNotReadyError",
    "ArtifactPaths",
    "CyclicDependencyError",
    "DependencyResolver",
    "DuplicateRegistrationError",
    "LibraryUnit",
    "LinkAssembler",
    "LinkPlan",
    "RegistrationPolicy",
    "Registry",
    "RegistryError",
    "ResolutionState",
    "ScopeFilter",
    "UnknownDependencyError",
    "canonical_roots",
    "canonicalize",
    "is_within",
    "resolve",
    "visible_units",
]
