"""Scope filtering: which registered libraries a consumer may use.

A consumer configures a set of module root directories. A registered
library is visible to that consumer when its source tree lies inside one
of those roots and its build artifacts already exist. The core runtime
unit is visible to every consumer regardless of roots.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, Optional, Union

from .errors import ArtifactNotReadyError
from .registry import Registry, canonicalize

logger = logging.getLogger(__name__)


def canonical_roots(module_roots: Iterable[Union[str, Path]], base_dir: Optional[Path] = None) -> list[Path]:
    """Canonicalize and de-duplicate module roots, dropping missing ones.

    Args:
        module_roots: Configured root directories, possibly relative
        base_dir: Consumer directory relative roots are resolved against

    Returns:
        Existing canonical root directories in first-seen order.
    """
    roots: list[Path] = []
    for root in module_roots:
        if not root:
            continue
        resolved = canonicalize(root, base_dir)
        if not resolved.is_dir():
            logger.debug("Skipping module root %s: not a directory", resolved)
            continue
        if resolved not in roots:
            roots.append(resolved)
    return roots


def is_within(path: Path, root: Path) -> bool:
    """Check whether path equals root or lies below it.

    Both sides get a trailing separator before the prefix test, so that
    /mods/foo is not considered inside /mods/fo.
    """
    path_str = str(path).rstrip(os.sep) + os.sep
    root_str = str(root).rstrip(os.sep) + os.sep
    return path_str.startswith(root_str)


class ScopeFilter:
    """Computes the libraries visible to a consumer.

    Args:
        registry: Registry to read units from
        core_unit: Name of the always-visible core runtime unit (None to disable)
        base_dir: Consumer directory used to resolve relative module roots
    """

    def __init__(self, registry: Registry, core_unit: Optional[str] = None, base_dir: Optional[Path] = None) -> None:
        self.registry = registry
        self.core_unit = core_unit
        self.base_dir = base_dir

    def visible_units(self, module_roots: Iterable[Union[str, Path]], exclude_self: Optional[str] = None) -> list[str]:
        """Return the names of registered units visible to the consumer.

        Args:
            module_roots: The consumer's module root directories
            exclude_self: Name of the consumer itself, never reported

        Returns:
            Core runtime unit first (when configured), then visible units in
            registration order. Units that are not built yet are left out.
        """
        roots = canonical_roots(module_roots, self.base_dir)

        visible: list[str] = []
        if self.core_unit and self.core_unit != exclude_self:
            visible.append(self.core_unit)

        for unit in self.registry.units():
            if unit.name == exclude_self or unit.name in visible:
                continue
            if not any(is_within(unit.source_root, root) for root in roots):
                continue
            try:
                unit.require_artifacts()
            except ArtifactNotReadyError as e:
                logger.debug("Excluding %s from visible libraries: %s", unit.name, e)
                continue
            visible.append(unit.name)

        return visible


def visible_units(
    registry: Registry,
    module_roots: Iterable[Union[str, Path]],
    exclude_self: Optional[str] = None,
    core_unit: Optional[str] = None,
    base_dir: Optional[Path] = None,
) -> list[str]:
    """Convenience wrapper around ScopeFilter.visible_units()."""
    return ScopeFilter(registry, core_unit=core_unit, base_dir=base_dir).visible_units(module_roots, exclude_self=exclude_self)
