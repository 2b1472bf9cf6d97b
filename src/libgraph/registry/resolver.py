"""Dependency resolution for registered libraries.

Resolves a library's transitive dependencies into one linear build order
using a depth-first topological sort. Every dependency appears before the
units that import it, no unit appears twice, and cycles are rejected with
the offending path.

Resolution state is created per top-level request and never cached: the
registry may grow between requests as more libraries configure themselves.
"""

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional

from .errors import CyclicDependencyError, UnknownDependencyError
from .registry import Registry


@dataclass
class ResolutionState:
    """Bookkeeping for one resolution request.

    Attributes:
        resolved: Final build order, dependencies first
        visiting: Units on the current traversal stack, outermost first
    """

    resolved: list[str] = field(default_factory=list)
    visiting: list[str] = field(default_factory=list)
    _resolved_names: set[str] = field(default_factory=set, init=False, repr=False, compare=False)
    _visiting_names: set[str] = field(default_factory=set, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._resolved_names.update(self.resolved)
        self._visiting_names.update(self.visiting)

    def is_resolved(self, name: str) -> bool:
        return name in self._resolved_names

    def is_visiting(self, name: str) -> bool:
        return name in self._visiting_names

    def enter(self, name: str) -> None:
        """Push a unit onto the traversal stack."""
        self.visiting.append(name)
        self._visiting_names.add(name)

    def leave(self) -> str:
        """Pop the innermost unit and append it to the build order."""
        name = self.visiting.pop()
        self._visiting_names.discard(name)
        self.resolved.append(name)
        self._resolved_names.add(name)
        return name


class DependencyResolver:
    """Orders libraries so that dependencies come before dependents.

    Usage:
        resolver = DependencyResolver(registry)
        order = resolver.resolve("App")                  # [..., "App"]
        deps = resolver.resolve("App", include_self=False)
    """

    def __init__(self, registry: Registry) -> None:
        self.registry = registry

    def resolve(self, name: str, include_self: bool = True) -> list[str]:
        """Resolve the transitive dependencies of a single library.

        Args:
            name: Library to resolve
            include_self: Whether the requested library ends the order

        Returns:
            Build order with every dependency before its dependents.

        Raises:
            CyclicDependencyError: If a cycle is reachable from name.
            UnknownDependencyError: If name or any dependency is not registered.
        """
        state = ResolutionState()
        self.visit(name, state)
        if include_self:
            return list(state.resolved)
        return [n for n in state.resolved if n != name]

    def resolve_many(self, names: Iterable[str]) -> list[str]:
        """Resolve several libraries into one combined build order.

        Shared dependencies appear once, before the first library that
        needs them. Roots are processed in the given order.
        """
        state = ResolutionState()
        for name in names:
            self.visit(name, state)
        return list(state.resolved)

    def visit(self, name: str, state: ResolutionState, required_by: Optional[str] = None) -> None:
        """Depth-first visit of one library, appending it to state.resolved.

        Iterative: keeps an explicit stack of dependency iterators.

        Args:
            name: Library to visit
            state: Resolution state shared across the request
            required_by: Library whose dependency list named this one
        """
        if state.is_resolved(name):
            return
        if state.is_visiting(name):
            raise CyclicDependencyError([*state.visiting, name])

        stack = [self._enter(name, state, required_by)]
        while stack:
            current, pending = stack[-1]
            dep_name = next(pending, None)
            if dep_name is None:
                stack.pop()
                state.leave()
                continue
            if state.is_resolved(dep_name):
                continue
            if state.is_visiting(dep_name):
                raise CyclicDependencyError([*state.visiting, dep_name])
            stack.append(self._enter(dep_name, state, current))

    def _enter(self, name: str, state: ResolutionState, required_by: Optional[str]) -> tuple[str, Iterator[str]]:
        state.enter(name)
        unit = self.registry.lookup(name)
        if unit is None:
            raise UnknownDependencyError(name, required_by=required_by)
        return name, iter(unit.dependencies)


def resolve(registry: Registry, name: str, include_self: bool = True) -> list[str]:
    """Convenience wrapper around DependencyResolver.resolve()."""
    return DependencyResolver(registry).resolve(name, include_self=include_self)
