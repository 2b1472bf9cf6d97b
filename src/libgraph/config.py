"""
Libgraph configuration.

Environment-driven settings, resolved once per consumer configuration pass.

Environment variables:
- LIBGRAPH_HOME: Base directory (default ~/.libgraph)
- LIBGRAPH_DEV_MODE=1: Use an isolated cache (cache_dev) next to the production one
- LIBGRAPH_CACHE_DIR: Explicit cache directory for fetched libraries
- LIBGRAPH_EXTRA_MODULES / EXTRA_LIBGRAPH_MODULES: Extra module roots,
  separated by ';' or the platform path separator
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .registry.models import ArtifactLayout, RegistrationPolicy

DEFAULT_CORE_UNIT = "Zephyr"
DEFAULT_INTERFACE_SUFFIX = ".swiftmodule"
MANIFEST_NAME = "libunit.ini"

EXTRA_MODULES_VARS = ("LIBGRAPH_EXTRA_MODULES", "EXTRA_LIBGRAPH_MODULES")


def is_dev_mode(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Check if development mode is enabled."""
    env = os.environ if environ is None else environ
    return env.get("LIBGRAPH_DEV_MODE") == "1"


def get_home_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if environ is None else environ
    home = env.get("LIBGRAPH_HOME")
    if home:
        return Path(home).expanduser().resolve()
    return Path.home() / ".libgraph"


def get_cache_root(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Get the cache directory for fetched libraries, respecting LIBGRAPH_DEV_MODE.

    Returns:
        Path to cache root directory
    """
    env = os.environ if environ is None else environ
    cache_env = env.get("LIBGRAPH_CACHE_DIR")

    if cache_env:
        return Path(cache_env).expanduser().resolve()
    elif is_dev_mode(env):
        return get_home_dir(env) / "cache_dev"
    else:
        return get_home_dir(env) / "cache"


def split_path_list(value: str) -> list[str]:
    """Split a module root list on ';' and the platform path separator."""
    separators = {";", os.pathsep}
    pattern = "|".join(re.escape(s) for s in separators)
    return [part.strip() for part in re.split(pattern, value) if part.strip()]


def extra_module_roots_from_env(environ: Optional[Mapping[str, str]] = None) -> list[str]:
    """Module roots supplied through the environment, in variable order."""
    env = os.environ if environ is None else environ
    roots: list[str] = []
    for var in EXTRA_MODULES_VARS:
        value = env.get(var, "")
        if value:
            roots.extend(split_path_list(value))
    return roots


@dataclass(frozen=True)
class LibgraphConfig:
    """Settings for one consumer's configuration pass.

    Attributes:
        build_dir: Directory holding unit artifacts (modules/<name>/...)
        module_roots: Directories the consumer treats as its library universe
        core_unit: Always-visible core runtime unit (None to disable)
        policy: How duplicate registrations are handled
        interface_suffix: File suffix of interface descriptors
        cache_root: Where fetched remote libraries are checked out
    """

    build_dir: Path
    module_roots: tuple[str, ...] = ()
    core_unit: Optional[str] = DEFAULT_CORE_UNIT
    policy: RegistrationPolicy = RegistrationPolicy.STRICT
    interface_suffix: str = DEFAULT_INTERFACE_SUFFIX
    cache_root: Path = field(default_factory=get_cache_root)

    @property
    def layout(self) -> ArtifactLayout:
        return ArtifactLayout(self.build_dir, interface_suffix=self.interface_suffix)

    @property
    def external_libs_dir(self) -> Path:
        return self.cache_root / "external_libs"

    @classmethod
    def from_env(
        cls,
        build_dir: Path,
        module_roots: tuple[str, ...] = (),
        core_unit: Optional[str] = DEFAULT_CORE_UNIT,
        policy: RegistrationPolicy = RegistrationPolicy.STRICT,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "LibgraphConfig":
        """Create a config, appending module roots from the environment."""
        roots = tuple(module_roots) + tuple(extra_module_roots_from_env(environ))
        return cls(
            build_dir=build_dir,
            module_roots=roots,
            core_unit=core_unit,
            policy=policy,
            cache_root=get_cache_root(environ),
        )
