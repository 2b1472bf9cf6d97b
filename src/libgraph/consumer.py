"""Consumer configuration: discovery, resolution and assembly in one pass.

When an application or library configures itself it:
1. asks the scope filter which registered libraries it can see,
2. resolves those libraries (and its own declared dependencies) into one
   dependencies-first order, rejecting cycles and unknown names,
3. assembles the module search paths and link units for the compiler.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from .registry.assembler import LinkAssembler
from .registry.models import LinkPlan
from .registry.registry import Registry
from .registry.resolver import DependencyResolver, ResolutionState
from .registry.scope import ScopeFilter

logger = logging.getLogger(__name__)


@dataclass
class ConsumerResolution:
    """Everything a consumer hands to the compiler collaborator.

    Attributes:
        visible: Libraries visible to the consumer (core runtime first)
        order: Build order of everything the consumer needs, dependencies first
        plan: Search paths and link units derived from order
    """

    visible: list[str] = field(default_factory=list)
    order: list[str] = field(default_factory=list)
    plan: LinkPlan = field(default_factory=LinkPlan)


def configure_consumer(
    registry: Registry,
    module_roots: Iterable[Union[str, Path]],
    consumer: Optional[str] = None,
    core_unit: Optional[str] = None,
    base_dir: Optional[Path] = None,
    runtime_search_paths: Optional[Sequence[Path]] = None,
) -> ConsumerResolution:
    """Discover, resolve and assemble the libraries for one consumer.

    Args:
        registry: Registry snapshot to work from
        module_roots: The consumer's module root directories
        consumer: Name of the consumer when it is itself a registered library
        core_unit: Always-visible core runtime unit
        base_dir: Consumer directory used to resolve relative module roots
        runtime_search_paths: Search paths of the core runtime

    Returns:
        ConsumerResolution with the visible set, build order and link plan.

    Raises:
        CyclicDependencyError: If a cycle is reachable from the consumer's libraries.
        UnknownDependencyError: If a required library was never registered.
        ArtifactNotReadyError: If a required library has no planned artifacts.
    """
    visible = ScopeFilter(registry, core_unit=core_unit, base_dir=base_dir).visible_units(module_roots, exclude_self=consumer)

    resolver = DependencyResolver(registry)
    state = ResolutionState()
    if consumer is not None and consumer in registry:
        resolver.visit(consumer, state)
    for name in visible:
        if name == core_unit and name not in registry:
            continue
        resolver.visit(name, state)
    order = [name for name in state.resolved if name != consumer]

    implicit = [core_unit] if core_unit else []
    plan = LinkAssembler(registry, implicit_units=implicit, runtime_search_paths=runtime_search_paths).assemble(order)

    logger.debug("Consumer %s links %s", consumer or "<app>", ", ".join(plan.link_units) or "nothing")
    return ConsumerResolution(visible=visible, order=order, plan=plan)
