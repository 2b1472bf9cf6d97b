"""Turn a resolved build order into compiler and linker inputs."""

from pathlib import Path
from typing import Iterable, Optional, Sequence

from .errors import ArtifactNotReadyError
from .models import LinkPlan
from .registry import Registry


class LinkAssembler:
    """Builds the module search paths and link order for a consumer.

    Args:
        registry: Registry holding the units named in the order
        implicit_units: Units every consumer already has (e.g. the core
            runtime); they are skipped in search paths and link units
        runtime_search_paths: Search paths of the implicit units, placed
            first on the compiler command line
    """

    def __init__(
        self,
        registry: Registry,
        implicit_units: Iterable[str] = (),
        runtime_search_paths: Optional[Sequence[Path]] = None,
    ) -> None:
        self.registry = registry
        self.implicit_units = frozenset(implicit_units)
        self.runtime_search_paths = list(runtime_search_paths or [])

    def assemble(self, order: Sequence[str]) -> LinkPlan:
        """Produce index-aligned search paths and link units.

        Args:
            order: Resolved build order, dependencies first

        Returns:
            LinkPlan preserving the order of the input.

        Raises:
            UnknownDependencyError: If a name is not registered.
            ArtifactNotReadyError: If a unit has no recorded artifact paths.
        """
        plan = LinkPlan(runtime_search_paths=list(self.runtime_search_paths))
        for name in order:
            if name in self.implicit_units or name in plan.link_units:
                continue
            unit = self.registry.get(name)
            if unit.artifacts is None:
                raise ArtifactNotReadyError(name)
            plan.search_paths.append(unit.artifacts.search_dir)
            plan.link_units.append(name)
        return plan
