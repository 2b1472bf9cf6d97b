"""libgraph - library registry and build-ordering engine.

Library units register themselves with a Registry while they configure.
A consumer then finds the units visible to it (ScopeFilter), orders them
dependencies-first (DependencyResolver) and turns the order into module
search paths and link units (LinkAssembler).

Public API:
    Registry, ScopeFilter, DependencyResolver, LinkAssembler
    configure_consumer: All three consumer steps in one call
    Workspace, LibraryManifest: Register libraries declared by libunit.ini files
"""

__version__ = "0.3.0"

from .consumer import ConsumerResolution, configure_consumer
from .registry import (
    ArtifactLayout,
    ArtifactNotReadyError,
    ArtifactPaths,
    CyclicDependencyError,
    DependencyResolver,
    DuplicateRegistrationError,
    LibraryUnit,
    LinkAssembler,
    LinkPlan,
    RegistrationPolicy,
    Registry,
    RegistryError,
    ScopeFilter,
    UnknownDependencyError,
)
from .workspace import LibraryManifest, ManifestError, Workspace

__all__ = [
    "ArtifactLayout",
    "ArtifactNotReadyError",
    "ArtifactPaths",
    "ConsumerResolution",
    "CyclicDependencyError",
    "DependencyResolver",
    "DuplicateRegistrationError",
    "LibraryManifest",
    "LibraryUnit",
    "LinkAssembler",
    "LinkPlan",
    "ManifestError",
    "RegistrationPolicy",
    "Registry",
    "RegistryError",
    "ScopeFilter",
    "UnknownDependencyError",
    "Workspace",
    "__version__",
    "configure_consumer",
]
